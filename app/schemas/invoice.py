"""Invoice entity model and the totals computation rule.

Money is held as ``Decimal`` quantized to cents. ``amount``, ``subtotal``,
``tax`` and ``total`` are computed fields: they are derived from the items and
the tax rate every time they are read and are never accepted as input.

The API speaks camelCase (``invoiceNumber``); the persistence projection is
the snake_case field names (``invoice_number``).
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Quantize a numeric value to cents using half-up rounding."""

    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class InvoiceStatus(str, Enum):
    """Display label only. Any status may be set at any time."""

    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class CourseRef(CamelModel):
    id: str
    name: str
    code: str


class InvoiceItem(CamelModel):
    id: str = Field(min_length=1)
    description: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    rate: Decimal = Field(default=ZERO, ge=0)
    course: Optional[CourseRef] = None

    @field_validator("rate")
    def _quantize_rate(cls, value: Decimal) -> Decimal:
        return to_money(value)

    @computed_field
    @property
    def amount(self) -> Decimal:
        return to_money(self.rate * self.quantity)


class CompanyInfo(CamelModel):
    name: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    country: str = ""
    email: str = ""
    phone: str = ""
    website: Optional[str] = None
    logo: Optional[str] = None
    gstin: Optional[str] = Field(default=None, alias="GSTIN")


class ClientInfo(CamelModel):
    name: str = ""
    email: str = ""
    address: str = ""
    city: str = ""
    zip_code: str = ""
    country: str = ""
    phone: Optional[str] = None


class InvoiceTotals(CamelModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(items: Iterable[InvoiceItem], tax_rate: Any) -> InvoiceTotals:
    """Derive subtotal, tax and total from line items and a percentage rate.

    Tax is rounded half-up to cents; total is the exact sum of the rounded
    parts so the three figures always reconcile.
    """

    subtotal = sum((item.amount for item in items), ZERO)
    rate = tax_rate if isinstance(tax_rate, Decimal) else Decimal(str(tax_rate))
    tax = to_money(subtotal * rate / 100)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


class InvoiceData(CamelModel):
    id: Optional[str] = None
    invoice_number: str
    issue_date: date
    due_date: date
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    client_info: ClientInfo = Field(default_factory=ClientInfo)
    items: List[InvoiceItem] = Field(default_factory=list)
    tax_rate: Decimal = Field(default=Decimal("8.5"), ge=0)
    notes: Optional[str] = None
    terms: Optional[str] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _unique_item_ids(self) -> "InvoiceData":
        seen = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"Duplicate line item id {item.id!r}")
            seen.add(item.id)
        return self

    @property
    def totals(self) -> InvoiceTotals:
        return compute_totals(self.items, self.tax_rate)

    @computed_field
    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @computed_field
    @property
    def tax(self) -> Decimal:
        return self.totals.tax

    @computed_field
    @property
    def total(self) -> Decimal:
        return self.totals.total


_STORAGE_MANAGED = ("id", "created_at", "updated_at")

_LEGACY_COMPANY_COLUMNS = ("name", "address", "email", "phone", "website")
_LEGACY_CLIENT_COLUMNS = ("name", "address", "email", "phone")


def invoice_to_record(invoice: InvoiceData) -> Dict[str, Any]:
    """Project an invoice onto the snake_case shape stored by the backend.

    Storage-managed keys are omitted while unset so inserts let the backend
    assign them.
    """

    record = invoice.model_dump(mode="json")
    for key in _STORAGE_MANAGED:
        if record.get(key) is None:
            record.pop(key, None)
    return record


def _upgrade_legacy_record(record: Mapping[str, Any]) -> Dict[str, Any]:
    data = dict(record)
    if not data.get("issue_date") and data.get("invoice_date"):
        data["issue_date"] = data["invoice_date"]
    if "company_info" not in data and any(f"company_{c}" in data for c in _LEGACY_COMPANY_COLUMNS):
        data["company_info"] = {
            column: data.get(f"company_{column}") or "" for column in _LEGACY_COMPANY_COLUMNS
        }
    if "client_info" not in data and any(f"client_{c}" in data for c in _LEGACY_CLIENT_COLUMNS):
        data["client_info"] = {
            column: data.get(f"client_{column}") or "" for column in _LEGACY_CLIENT_COLUMNS
        }
    if data.get("tax_rate") is None:
        data["tax_rate"] = 0
    if not data.get("status"):
        data["status"] = InvoiceStatus.DRAFT.value
    if data.get("items") is None:
        data["items"] = []
    return data


def invoice_from_record(record: Mapping[str, Any]) -> InvoiceData:
    """Rebuild an invoice from a stored record.

    Stored totals are ignored and recomputed from the items.
    """

    return InvoiceData.model_validate(_upgrade_legacy_record(record))
