from __future__ import annotations

import logging
import uuid
from typing import Dict, Optional

from app.config import Settings
from app.pdf.generator import generate_invoice_pdf
from app.schemas.invoice import InvoiceData
from app.schemas.workspace import WorkspaceStage, WorkspaceState
from app.services.exceptions import NotFoundError
from app.services.invoice import InvoiceService
from app.services.invoice_form import InvoiceFormController
from app.services.notifications import NotificationFeed
from app.services.object_urls import ObjectUrlRegistry
from app.services.preview import InvoicePreview, PdfDownload

logger = logging.getLogger(__name__)


class InvoiceWorkspace:
    """One invoice editing session: the form plus, once submitted, its preview."""

    def __init__(
        self,
        workspace_id: str,
        form: InvoiceFormController,
        *,
        registry: ObjectUrlRegistry,
        settings: Settings,
    ) -> None:
        self.workspace_id = workspace_id
        self.form = form
        self.notifications = NotificationFeed()
        self.preview: Optional[InvoicePreview] = None
        self._registry = registry
        self._settings = settings

    @property
    def stage(self) -> WorkspaceStage:
        return WorkspaceStage.PREVIEW if self.preview is not None else WorkspaceStage.FORM

    def _render(self, invoice: InvoiceData) -> bytes:
        return generate_invoice_pdf(
            invoice,
            currency_symbol=self._settings.currency_symbol,
            creator=self._settings.pdf_creator,
            compress=self._settings.pdf_compress,
        )

    def edit(self) -> InvoiceFormController:
        """Return to the form, tearing down any preview."""

        if self.preview is not None:
            self.preview.close()
            self.preview = None
        return self.form

    def submit(self, invoices: InvoiceService | None = None) -> InvoicePreview:
        snapshot = self.form.submit()
        if self.preview is None:
            self.preview = InvoicePreview(
                snapshot,
                registry=self._registry,
                notifier=self.notifications,
                invoices=invoices,
                renderer=self._render,
            )
            self.preview.load()
        else:
            self.preview.update(snapshot)
        return self.preview

    def require_preview(self) -> InvoicePreview:
        if self.preview is None:
            raise NotFoundError("Invoice has not been submitted for preview")
        return self.preview

    async def save(self) -> Optional[InvoiceData]:
        """Persist the previewed invoice and keep editing the stored copy."""

        saved = await self.require_preview().request_save()
        if saved is not None:
            self.form.adopt(saved)
        return saved

    async def save_and_download(self) -> Optional[PdfDownload]:
        if await self.save() is None:
            return None
        return self.require_preview().request_download()

    def close(self) -> None:
        self.edit()

    def to_state(self) -> WorkspaceState:
        invoice = self.preview.data if self.preview is not None else self.form.data
        return WorkspaceState(
            workspace_id=self.workspace_id,
            stage=self.stage,
            invoice=invoice,
            current_item=self.form.current_item,
            preview_url=self.preview.url if self.preview is not None else None,
            notifications=self.notifications.drain(),
        )


class WorkspaceStore:
    def __init__(self, settings: Settings, registry: ObjectUrlRegistry | None = None) -> None:
        self._settings = settings
        self.registry = registry or ObjectUrlRegistry()
        self._workspaces: Dict[str, InvoiceWorkspace] = {}

    def open(self, form: InvoiceFormController) -> InvoiceWorkspace:
        workspace_id = uuid.uuid4().hex
        workspace = InvoiceWorkspace(
            workspace_id, form, registry=self.registry, settings=self._settings
        )
        self._workspaces[workspace_id] = workspace
        logger.info("Opened invoice workspace %s", workspace_id)
        return workspace

    def get(self, workspace_id: str) -> InvoiceWorkspace:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        return workspace

    def close(self, workspace_id: str) -> None:
        workspace = self._workspaces.pop(workspace_id, None)
        if workspace is None:
            raise NotFoundError(f"Workspace {workspace_id} not found")
        workspace.close()
        logger.info("Closed invoice workspace %s", workspace_id)

    def close_all(self) -> None:
        for workspace in self._workspaces.values():
            workspace.close()
        self._workspaces.clear()

    def __len__(self) -> int:
        return len(self._workspaces)


_workspace_store: Optional[WorkspaceStore] = None


def get_workspace_store(settings: Settings) -> WorkspaceStore:
    global _workspace_store
    if _workspace_store is None:
        _workspace_store = WorkspaceStore(settings)
    return _workspace_store


def reset_workspace_store() -> None:
    global _workspace_store
    if _workspace_store is not None:
        _workspace_store.close_all()
    _workspace_store = None
