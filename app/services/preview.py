"""Invoice preview: inline PDF handle management, downloads and saving.

At most one inline preview URL is live per preview. It is replaced (and the
old one revoked) whenever the invoice changes, and revoked on ``close``.
Downloads use their own short-lived URL that is revoked before returning.
Every failure is reported through the notification feed and leaves the
preview exactly as it was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import quote

from app.pdf.generator import PDF_MEDIA_TYPE, generate_invoice_pdf
from app.schemas.invoice import InvoiceData
from app.services.exceptions import ServiceError
from app.services.invoice import InvoiceService
from app.services.notifications import NotificationFeed
from app.services.object_urls import ObjectUrlRegistry

logger = logging.getLogger(__name__)

PdfRenderer = Callable[[InvoiceData], bytes]

_UNSAFE_FILENAME_CHARS = frozenset("\"\\/")


def download_filename(invoice: InvoiceData) -> str:
    return f"invoice-{invoice.invoice_number}.pdf"


def content_disposition(filename: str, disposition: str = "attachment") -> str:
    """Build a ``Content-Disposition`` value safe for any invoice number.

    ``filename`` carries a printable-ASCII fallback with quotes, backslashes and
    path separators replaced; ``filename*`` carries the exact name (RFC 6266).
    """

    fallback = "".join(
        char if " " <= char <= "~" and char not in _UNSAFE_FILENAME_CHARS else "_"
        for char in filename
    )
    return f"{disposition}; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@dataclass(frozen=True)
class PdfDownload:
    filename: str
    content: bytes
    media_type: str = PDF_MEDIA_TYPE


class InvoicePreview:
    def __init__(
        self,
        data: InvoiceData,
        *,
        registry: ObjectUrlRegistry,
        notifier: NotificationFeed,
        invoices: InvoiceService | None = None,
        renderer: PdfRenderer = generate_invoice_pdf,
    ) -> None:
        self._data = data.model_copy(deep=True)
        self._registry = registry
        self._notifier = notifier
        self._invoices = invoices
        self._render = renderer
        self._url: Optional[str] = None
        self._closed = False

    @property
    def data(self) -> InvoiceData:
        return self._data.model_copy(deep=True)

    @property
    def url(self) -> Optional[str]:
        return self._url

    def load(self) -> Optional[str]:
        """Render the current invoice into a fresh inline preview URL."""

        if self._closed:
            raise RuntimeError("Preview has been closed")
        try:
            content = self._render(self._data)
        except Exception:
            logger.exception("Error loading preview for %s", self._data.invoice_number)
            self._notifier.error("Failed to generate invoice preview")
            return self._url

        previous, self._url = self._url, self._registry.create(content, PDF_MEDIA_TYPE)
        if previous is not None:
            self._registry.revoke(previous)
        return self._url

    def update(self, data: InvoiceData) -> Optional[str]:
        """Switch to new invoice data; the old data is kept if rendering fails."""

        if self._closed:
            raise RuntimeError("Preview has been closed")
        previous_data, self._data = self._data, data.model_copy(deep=True)
        previous_url = self._url
        url = self.load()
        if url is previous_url:
            self._data = previous_data
        return url

    def close(self) -> None:
        if self._url is not None:
            self._registry.revoke(self._url)
            self._url = None
        self._closed = True

    def request_download(self) -> Optional[PdfDownload]:
        try:
            content = self._render(self._data)
        except Exception:
            logger.exception("Error generating PDF for %s", self._data.invoice_number)
            self._notifier.error("Failed to generate PDF")
            return None

        url = self._registry.create(content, PDF_MEDIA_TYPE)
        try:
            blob = self._registry.resolve(url)
            download = PdfDownload(
                filename=download_filename(self._data),
                content=blob.content,
                media_type=blob.media_type,
            )
        finally:
            self._registry.revoke(url)
        self._notifier.success("Invoice PDF generated successfully!")
        return download

    async def request_save(self) -> Optional[InvoiceData]:
        if self._invoices is None:
            raise RuntimeError("No invoice service configured for saving")
        try:
            saved = await self._invoices.save(self._data)
        except ServiceError as exc:
            logger.exception("Error saving invoice %s", self._data.invoice_number)
            self._notifier.error(f"Failed to save invoice: {exc}")
            return None

        self._notifier.success("Invoice saved successfully!")
        # The stored record wins even if the refreshed preview cannot be rendered.
        self._data = saved.model_copy(deep=True)
        self.load()
        return self.data

    async def request_save_and_download(self) -> Optional[PdfDownload]:
        saved = await self.request_save()
        if saved is None:
            return None
        return self.request_download()
