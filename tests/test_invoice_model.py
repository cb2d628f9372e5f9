from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from app.schemas.invoice import (
    InvoiceData,
    InvoiceItem,
    compute_totals,
    invoice_from_record,
    invoice_to_record,
)


def test_item_amount_is_quantity_times_rate() -> None:
    item = InvoiceItem(id="a", description="Course A", quantity=3, rate="19.99")

    assert item.amount == Decimal("59.97")
    assert item.model_copy(update={"quantity": 4}).amount == Decimal("79.96")


def test_compute_totals_rounds_tax_half_up() -> None:
    items = [InvoiceItem(id="a", description="Course A", quantity=1, rate="10.10")]

    totals = compute_totals(items, Decimal("8.5"))

    # 10.10 * 8.5% = 0.8585
    assert totals.subtotal == Decimal("10.10")
    assert totals.tax == Decimal("0.86")
    assert totals.total == Decimal("10.96")


def test_compute_totals_for_empty_items() -> None:
    totals = compute_totals([], 8.5)

    assert totals.subtotal == Decimal("0.00")
    assert totals.tax == Decimal("0.00")
    assert totals.total == Decimal("0.00")


def test_totals_follow_items_and_tax_rate(sample_invoice: InvoiceData) -> None:
    assert sample_invoice.subtotal == Decimal("500.00")
    assert sample_invoice.tax == Decimal("50.00")
    assert sample_invoice.total == Decimal("550.00")

    updated = sample_invoice.model_copy(update={"tax_rate": Decimal("0")})
    assert updated.tax == Decimal("0.00")
    assert updated.total == Decimal("500.00")


def test_duplicate_item_ids_are_rejected(sample_invoice: InvoiceData) -> None:
    payload = sample_invoice.model_dump()
    payload["items"][1]["id"] = payload["items"][0]["id"]

    with pytest.raises(ValidationError):
        InvoiceData.model_validate(payload)


def test_item_requires_description_and_positive_quantity() -> None:
    with pytest.raises(ValidationError):
        InvoiceItem(id="a", description="", quantity=1, rate=1)
    with pytest.raises(ValidationError):
        InvoiceItem(id="a", description="Course", quantity=0, rate=1)
    with pytest.raises(ValidationError):
        InvoiceItem(id="a", description="Course", quantity=1, rate=-1)


def test_camel_case_payload_is_accepted() -> None:
    invoice = InvoiceData.model_validate(
        {
            "invoiceNumber": "INV-7",
            "issueDate": "2026-10-19",
            "dueDate": "2026-11-18",
            "clientInfo": {"name": "Meera", "email": "meera@example.com", "zipCode": "560001"},
            "items": [{"id": "x", "description": "Course", "quantity": 2, "rate": 50}],
            "taxRate": 5,
        }
    )

    assert invoice.client_info.zip_code == "560001"
    assert invoice.total == Decimal("105.00")
    dumped = invoice.model_dump(mode="json", by_alias=True)
    assert dumped["invoiceNumber"] == "INV-7"
    assert dumped["items"][0]["amount"] == "100.00"


def test_record_projection_round_trips(sample_invoice: InvoiceData) -> None:
    record = invoice_to_record(sample_invoice)

    assert record["invoice_number"] == "INV-1001"
    assert record["company_info"]["zip_code"] == "12345"
    assert "id" not in record
    assert "created_at" not in record
    assert invoice_from_record(record) == sample_invoice


def test_stored_totals_are_recomputed(sample_invoice: InvoiceData) -> None:
    record = invoice_to_record(sample_invoice)
    record["total"] = "9999.00"
    record["subtotal"] = "1.00"

    invoice = invoice_from_record(record)

    assert invoice.total == Decimal("550.00")


def test_legacy_flat_record_is_upgraded() -> None:
    record = {
        "id": "INVOICE-00001",
        "invoice_number": "INV-OLD",
        "invoice_date": "2025-01-05",
        "due_date": "2025-02-04",
        "company_name": "ITwala Academy",
        "company_email": "billing@itwala.academy",
        "client_name": "Legacy Learner",
        "client_email": "legacy@example.com",
        "items": None,
        "tax_rate": None,
        "status": None,
    }

    invoice = invoice_from_record(record)

    assert invoice.issue_date == date(2025, 1, 5)
    assert invoice.company_info.name == "ITwala Academy"
    assert invoice.client_info.email == "legacy@example.com"
    assert invoice.items == []
    assert invoice.tax_rate == Decimal("0")
    assert invoice.status.value == "draft"
