from __future__ import annotations

import base64
import re
from datetime import date

from app.pdf.formatting import format_display_date, format_long_date, format_money, format_rate
from app.pdf.generator import generate_invoice_pdf, preview_invoice_pdf
from app.schemas.invoice import InvoiceData, InvoiceItem, InvoiceStatus
from app.services.object_urls import ObjectUrlRegistry

GENERATED_ON = date(2026, 10, 19)

# 1x1 transparent PNG
PNG_PIXEL = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page[^s]", pdf))


def _with_items(invoice: InvoiceData, count: int) -> InvoiceData:
    items = [
        InvoiceItem(id=f"item-{index}", description=f"Workshop session {index}", quantity=1, rate=25)
        for index in range(count)
    ]
    return invoice.model_copy(update={"items": items})


def test_formatting_helpers() -> None:
    assert format_money(5) == "$5.00"
    assert format_money("12.345", "Rs ") == "Rs 12.35"
    assert format_rate(8.5) == "8.5"
    assert format_rate(10) == "10"
    assert format_display_date(date(2025, 9, 7)) == "9/7/2025"
    assert format_long_date(date(2025, 9, 7)) == "September 7, 2025"


def test_generates_pdf_document(sample_invoice: InvoiceData) -> None:
    pdf = generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON)

    assert pdf.startswith(b"%PDF")
    assert b"(INVOICE)" in pdf
    assert b"Invoice #: INV-1001" in pdf
    assert b"Thank you for your business!" in pdf
    assert b"Generated on 10/19/2026" in pdf
    assert b"$550.00" in pdf
    assert b"Tax \\(10%\\):" in pdf
    assert b"Notes:" in pdf
    assert b"Terms and Conditions:" in pdf
    assert _page_count(pdf) == 1


def test_same_invoice_renders_identical_bytes(sample_invoice: InvoiceData) -> None:
    first = generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON)
    second = generate_invoice_pdf(sample_invoice.model_copy(deep=True), generated_on=GENERATED_ON)

    assert first == second


def test_compressed_output_is_still_deterministic(sample_invoice: InvoiceData) -> None:
    first = generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON, compress=True)
    second = generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON, compress=True)

    assert first == second
    assert b"(INVOICE)" not in first


def test_empty_notes_and_terms_are_omitted(sample_invoice: InvoiceData) -> None:
    invoice = sample_invoice.model_copy(update={"notes": "   ", "terms": None})

    pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)

    assert b"Notes:" not in pdf
    assert b"Terms and Conditions:" not in pdf


def test_long_item_lists_spill_onto_later_pages(sample_invoice: InvoiceData) -> None:
    invoice = _with_items(sample_invoice, 80)

    pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)

    pages = _page_count(pdf)
    assert pages >= 2
    # The header row repeats at the top of every page the table spans.
    assert pdf.count(b"(Description)") >= 2
    assert b"(Page 2)" in pdf
    assert b"Workshop session 79" in pdf
    assert pdf.count(b"Thank you for your business!") == pages


def test_status_is_printed_upper_case(sample_invoice: InvoiceData) -> None:
    invoice = sample_invoice.model_copy(update={"status": InvoiceStatus.OVERDUE})

    pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)

    assert b"(OVERDUE)" in pdf


def test_currency_symbol_is_configurable(sample_invoice: InvoiceData) -> None:
    pdf = generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON, currency_symbol="EUR ")

    assert b"EUR 550.00" in pdf
    assert b"$550.00" not in pdf


def test_broken_logo_does_not_abort_generation(sample_invoice: InvoiceData, tmp_path) -> None:
    for logo in (
        "data:image/png;base64,not-really-base64!!",
        str(tmp_path / "missing.png"),
        "https://example.com/logo.png",
    ):
        invoice = sample_invoice.model_copy(
            update={"company_info": sample_invoice.company_info.model_copy(update={"logo": logo})}
        )
        pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)
        assert pdf.startswith(b"%PDF")
        assert b"(INVOICE)" in pdf


def test_embedded_logo_is_drawn(sample_invoice: InvoiceData) -> None:
    logo = "data:image/png;base64," + base64.b64encode(PNG_PIXEL).decode("ascii")
    invoice = sample_invoice.model_copy(
        update={"company_info": sample_invoice.company_info.model_copy(update={"logo": logo})}
    )

    pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)

    assert b"/Subtype /Image" in pdf


def test_gstin_is_printed_when_present(sample_invoice: InvoiceData) -> None:
    invoice = sample_invoice.model_copy(
        update={"company_info": sample_invoice.company_info.model_copy(update={"gstin": "29ABCDE1234F1Z5"})}
    )

    pdf = generate_invoice_pdf(invoice, generated_on=GENERATED_ON)

    assert b"GSTIN: 29ABCDE1234F1Z5" in pdf


def test_preview_url_resolves_to_the_same_bytes(sample_invoice: InvoiceData) -> None:
    registry = ObjectUrlRegistry()

    url = preview_invoice_pdf(sample_invoice, registry, generated_on=GENERATED_ON)

    blob = registry.resolve(url)
    assert blob is not None
    assert blob.media_type == "application/pdf"
    assert blob.content == generate_invoice_pdf(sample_invoice, generated_on=GENERATED_ON)
    registry.revoke(url)
    assert len(registry) == 0
