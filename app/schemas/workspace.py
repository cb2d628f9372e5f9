from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, computed_field

from app.schemas.invoice import (
    ZERO,
    CamelModel,
    ClientInfo,
    CompanyInfo,
    CourseRef,
    InvoiceData,
    InvoiceItem,
    InvoiceStatus,
    to_money,
)


class Notification(CamelModel):
    level: Literal["success", "error"]
    message: str


class WorkspaceStage(str, Enum):
    FORM = "form"
    PREVIEW = "preview"


class ItemDraft(CamelModel):
    """Scratch line item being edited before it is added to the invoice.

    Unlike ``InvoiceItem`` nothing here is validated; ``add_item`` decides.
    """

    id: Optional[str] = None
    description: str = ""
    quantity: int = 1
    rate: Decimal = ZERO
    course: Optional[CourseRef] = None

    @computed_field
    @property
    def amount(self) -> Decimal:
        return to_money(self.rate * self.quantity)


class FieldUpdate(CamelModel):
    path: str = Field(..., min_length=1, description="Dotted field path, e.g. clientInfo.name")
    value: Any = None


class ItemChanges(CamelModel):
    """Raw item edits; numeric values are coerced permissively."""

    description: Optional[str] = None
    quantity: Any = None
    rate: Any = None


class CourseSelection(CamelModel):
    course_id: str


class ClientSelection(CamelModel):
    student_id: str


class WorkspaceCreateRequest(CamelModel):
    invoice_id: Optional[str] = Field(None, description="Stored invoice to load for editing")


class WorkspaceState(CamelModel):
    workspace_id: str
    stage: WorkspaceStage
    invoice: InvoiceData
    current_item: ItemDraft
    preview_url: Optional[str] = None
    notifications: List[Notification] = Field(default_factory=list)


class InvoicePatch(CamelModel):
    """Partial update of a stored invoice; only the fields sent are applied."""

    invoice_number: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    company_info: Optional[CompanyInfo] = None
    client_info: Optional[ClientInfo] = None
    items: Optional[List[InvoiceItem]] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    terms: Optional[str] = None
    status: Optional[InvoiceStatus] = None

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class InvoiceListResponse(CamelModel):
    total: int
    items: List[InvoiceData]
