"""Invoice editing sessions: the form, its preview, downloads and saving."""

from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response
from fastapi.responses import HTMLResponse

from app.config import Settings, get_settings
from app.dependencies.services import (
    get_catalog_service,
    get_invoice_service,
    get_workspaces,
)
from app.invoice_view import render_invoice_html
from app.pdf.generator import PDF_MEDIA_TYPE
from app.schemas.workspace import (
    ClientSelection,
    CourseSelection,
    FieldUpdate,
    ItemChanges,
    ItemDraft,
    WorkspaceCreateRequest,
    WorkspaceState,
)
from app.services import CatalogService, InvoiceService
from app.services.exceptions import FormValidationError, NotFoundError, ServiceError
from app.services.invoice_form import InvoiceFormController
from app.services.preview import PdfDownload, content_disposition, download_filename
from app.services.workspaces import WorkspaceStore

router = APIRouter()


@contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except FormValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.message) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


def _attachment(download: PdfDownload) -> Response:
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": content_disposition(download.filename)},
    )


@router.post("", response_model=WorkspaceState, status_code=201)
async def open_workspace(
    req: Optional[WorkspaceCreateRequest] = Body(None),
    workspaces: WorkspaceStore = Depends(get_workspaces),
    catalog: CatalogService = Depends(get_catalog_service),
    invoices: InvoiceService = Depends(get_invoice_service),
    settings: Settings = Depends(get_settings),
):
    with _http_errors():
        courses = await catalog.list_courses()
        students = await catalog.list_students()
        initial = None
        if req is not None and req.invoice_id:
            initial = await invoices.get(req.invoice_id)
    form = InvoiceFormController(
        courses=courses, students=students, settings=settings, initial=initial
    )
    return workspaces.open(form).to_state()


@router.get("/{workspace_id}", response_model=WorkspaceState)
async def get_workspace(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        return workspaces.get(workspace_id).to_state()


@router.delete("/{workspace_id}", status_code=204)
async def close_workspace(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspaces.close(workspace_id)
    return Response(status_code=204)


@router.patch("/{workspace_id}/fields", response_model=WorkspaceState)
async def update_field(
    workspace_id: str,
    update: FieldUpdate,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().set_field(update.path, update.value)
        return workspace.to_state()


@router.patch("/{workspace_id}/current-item", response_model=WorkspaceState)
async def update_current_item(
    workspace_id: str,
    changes: ItemChanges,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().update_current_item(
            description=changes.description,
            quantity=changes.quantity,
            rate=changes.rate,
        )
        return workspace.to_state()


@router.delete("/{workspace_id}/current-item", response_model=WorkspaceState)
async def reset_current_item(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().reset_current_item()
        return workspace.to_state()


@router.post("/{workspace_id}/items", response_model=WorkspaceState)
async def add_item(
    workspace_id: str,
    draft: Optional[ItemDraft] = Body(None),
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    """Add the scratch item, or the item sent in the body, to the invoice."""

    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().add_item(draft)
        return workspace.to_state()


@router.patch("/{workspace_id}/items/{item_id}", response_model=WorkspaceState)
async def update_item(
    workspace_id: str,
    item_id: str,
    changes: ItemChanges,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().update_item(
            item_id,
            description=changes.description,
            quantity=changes.quantity,
            rate=changes.rate,
        )
        return workspace.to_state()


@router.delete("/{workspace_id}/items/{item_id}", response_model=WorkspaceState)
async def remove_item(
    workspace_id: str,
    item_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().remove_item(item_id)
        return workspace.to_state()


@router.post("/{workspace_id}/course", response_model=WorkspaceState)
async def select_course(
    workspace_id: str,
    selection: CourseSelection,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().select_course(selection.course_id)
        return workspace.to_state()


@router.post("/{workspace_id}/client", response_model=WorkspaceState)
async def select_client(
    workspace_id: str,
    selection: ClientSelection,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.edit().select_client(selection.student_id)
        return workspace.to_state()


@router.post("/{workspace_id}/submit", response_model=WorkspaceState)
async def submit_workspace(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
    invoices: InvoiceService = Depends(get_invoice_service),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        workspace.submit(invoices)
        return workspace.to_state()


@router.get("/{workspace_id}/preview", response_class=HTMLResponse)
async def preview_page(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
    settings: Settings = Depends(get_settings),
):
    with _http_errors():
        preview = workspaces.get(workspace_id).require_preview()
    pdf_src = f"/workspaces/{workspace_id}/preview.pdf" if preview.url else None
    return HTMLResponse(
        render_invoice_html(
            preview.data,
            currency_symbol=settings.currency_symbol,
            pdf_src=pdf_src,
        )
    )


@router.get("/{workspace_id}/preview.pdf")
async def preview_pdf(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        preview = workspaces.get(workspace_id).require_preview()
    blob = workspaces.registry.resolve(preview.url) if preview.url else None
    if blob is None:
        raise HTTPException(status_code=404, detail="Preview is not available")
    return Response(
        content=blob.content,
        media_type=blob.media_type or PDF_MEDIA_TYPE,
        headers={
            "Content-Disposition": content_disposition(download_filename(preview.data), "inline")
        },
    )


@router.get("/{workspace_id}/download")
async def download_pdf(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        preview = workspaces.get(workspace_id).require_preview()
    download = preview.request_download()
    if download is None:
        raise HTTPException(status_code=500, detail="Failed to generate PDF")
    return _attachment(download)


@router.post("/{workspace_id}/save", response_model=WorkspaceState)
async def save_invoice(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    """Persist the previewed invoice; failures surface as error notifications."""

    with _http_errors():
        workspace = workspaces.get(workspace_id)
        await workspace.save()
        return workspace.to_state()


@router.post("/{workspace_id}/save-and-download")
async def save_and_download(
    workspace_id: str,
    workspaces: WorkspaceStore = Depends(get_workspaces),
):
    with _http_errors():
        workspace = workspaces.get(workspace_id)
        download = await workspace.save_and_download()
    if download is None:
        errors = [n.message for n in workspace.notifications.peek() if n.level == "error"]
        raise HTTPException(
            status_code=502,
            detail=errors[-1] if errors else "Failed to save invoice",
        )
    return _attachment(download)
