from fastapi import APIRouter, Depends, HTTPException, Response

from app.config import Settings, get_settings
from app.dependencies.services import get_invoice_service
from app.pdf.generator import PDF_MEDIA_TYPE, generate_invoice_pdf
from app.schemas.invoice import InvoiceData
from app.schemas.workspace import InvoiceListResponse, InvoicePatch
from app.services import InvoiceService
from app.services.exceptions import NotFoundError, ServiceError
from app.services.preview import content_disposition, download_filename

router = APIRouter()


def pdf_response(invoice: InvoiceData, settings: Settings, *, disposition: str = "attachment") -> Response:
    content = generate_invoice_pdf(
        invoice,
        currency_symbol=settings.currency_symbol,
        creator=settings.pdf_creator,
        compress=settings.pdf_compress,
    )
    return Response(
        content=content,
        media_type=PDF_MEDIA_TYPE,
        headers={
            "Content-Disposition": content_disposition(download_filename(invoice), disposition)
        },
    )


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(service: InvoiceService = Depends(get_invoice_service)):
    try:
        invoices = await service.list()
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return InvoiceListResponse(total=len(invoices), items=invoices)


@router.post("", response_model=InvoiceData, status_code=201)
async def create_invoice(
    invoice: InvoiceData,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.create(invoice)
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.post("/pdf")
async def render_invoice_pdf(
    invoice: InvoiceData,
    settings: Settings = Depends(get_settings),
):
    return pdf_response(invoice, settings)


@router.get("/{invoice_id}", response_model=InvoiceData)
async def get_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.get(invoice_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.patch("/{invoice_id}", response_model=InvoiceData)
async def update_invoice(
    invoice_id: str,
    patch: InvoicePatch,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        return await service.update(invoice_id, patch.to_changes())
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.delete("/{invoice_id}", status_code=204)
async def delete_invoice(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
):
    try:
        await service.delete(invoice_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return Response(status_code=204)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(
    invoice_id: str,
    service: InvoiceService = Depends(get_invoice_service),
    settings: Settings = Depends(get_settings),
):
    try:
        invoice = await service.get(invoice_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except ServiceError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return pdf_response(invoice, settings)
