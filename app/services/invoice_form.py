"""Invoice form controller.

Holds the draft ``InvoiceData`` plus a scratch line item, applies edits and
enforces the preconditions for adding items and submitting. Every failed
operation raises ``FormValidationError`` and leaves the draft untouched.

Numeric input is coerced rather than rejected so typing is never blocked:
an unparseable quantity becomes 1, an unparseable rate or tax rate becomes 0.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence, Set, Type

from pydantic import BaseModel, ValidationError

from app.config import Settings, get_settings
from app.schemas.catalog import CourseSummary, StudentSummary
from app.schemas.invoice import (
    ZERO,
    ClientInfo,
    CompanyInfo,
    CourseRef,
    InvoiceData,
    InvoiceItem,
    InvoiceStatus,
    InvoiceTotals,
    to_money,
)
from app.schemas.workspace import ItemDraft
from app.services.exceptions import FormValidationError

logger = logging.getLogger(__name__)

_READ_ONLY_FIELDS = {"id", "items", "created_at", "updated_at"}
_NESTED_FIELDS = {"company_info": CompanyInfo, "client_info": ClientInfo}


def default_invoice(settings: Settings, *, now: datetime | None = None) -> InvoiceData:
    """Build a fresh draft with the seller defaults and standard payment terms."""

    now = now or datetime.now(timezone.utc)
    issue_date = now.date()
    return InvoiceData(
        invoice_number=f"INV-{int(now.timestamp() * 1000)}",
        issue_date=issue_date,
        due_date=issue_date + timedelta(days=settings.payment_terms_days),
        company_info=CompanyInfo(
            name=settings.company_name,
            address=settings.company_address,
            city=settings.company_city,
            zip_code=settings.company_zip_code,
            country=settings.company_country,
            email=settings.company_email,
            phone=settings.company_phone,
            website=settings.company_website,
            logo=settings.company_logo,
            gstin=settings.company_gstin,
        ),
        tax_rate=settings.default_tax_rate,
        notes=settings.default_notes,
        terms=settings.default_terms,
        status=InvoiceStatus.DRAFT,
    )


def coerce_quantity(value: Any) -> int:
    try:
        quantity = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 1
    return quantity or 1


def coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        return ZERO
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation:
        return ZERO
    return number if number.is_finite() else ZERO


def _resolve_field(model: Type[BaseModel], key: str, path: str) -> str:
    for name, info in model.model_fields.items():
        if key == name or key == info.alias:
            return name
    raise FormValidationError(f"Unknown field {path!r}", field=path)


class InvoiceFormController:
    def __init__(
        self,
        *,
        courses: Sequence[CourseSummary] = (),
        students: Sequence[StudentSummary] = (),
        settings: Settings | None = None,
        initial: InvoiceData | None = None,
        now: datetime | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.courses = list(courses)
        self.students = list(students)
        if initial is not None:
            self._data = initial.model_copy(deep=True)
        else:
            self._data = default_invoice(self._settings, now=now)
        self._current = ItemDraft()
        self._issued_ids: Set[str] = {item.id for item in self._data.items}

    @property
    def data(self) -> InvoiceData:
        return self._data.model_copy(deep=True)

    @property
    def current_item(self) -> ItemDraft:
        return self._current.model_copy(deep=True)

    @property
    def totals(self) -> InvoiceTotals:
        return self._data.totals

    def _new_item_id(self) -> str:
        while True:
            candidate = f"item-{uuid.uuid4().hex[:12]}"
            if candidate not in self._issued_ids:
                return candidate

    def set_field(self, path: str, value: Any) -> InvoiceData:
        """Set an invoice-level, company or client field by dotted path.

        Paths accept field names or their camelCase aliases, e.g.
        ``clientInfo.name`` or ``tax_rate``.
        """

        parts = path.split(".")
        name = _resolve_field(InvoiceData, parts[0], path)
        if name in _READ_ONLY_FIELDS:
            raise FormValidationError(f"Field {path!r} cannot be set directly", field=path)

        payload = self._data.model_dump()
        if len(parts) == 1:
            if name in _NESTED_FIELDS:
                raise FormValidationError(f"Field {path!r} needs a sub-field", field=path)
            payload[name] = coerce_decimal(value) if name == "tax_rate" else value
        elif len(parts) == 2 and name in _NESTED_FIELDS:
            sub_name = _resolve_field(_NESTED_FIELDS[name], parts[1], path)
            payload[name][sub_name] = value
        else:
            raise FormValidationError(f"Unknown field {path!r}", field=path)

        try:
            self._data = InvoiceData.model_validate(payload)
        except ValidationError as exc:
            raise FormValidationError(f"Invalid value for {path}", field=path) from exc
        return self.data

    def update_current_item(
        self,
        *,
        description: str | None = None,
        quantity: Any = None,
        rate: Any = None,
    ) -> ItemDraft:
        changes: dict = {}
        if description is not None:
            changes["description"] = description
        if quantity is not None:
            changes["quantity"] = coerce_quantity(quantity)
        if rate is not None:
            changes["rate"] = coerce_decimal(rate)
        self._current = self._current.model_copy(update=changes)
        return self.current_item

    def reset_current_item(self) -> None:
        self._current = ItemDraft()

    def select_course(self, course_id: str) -> ItemDraft:
        """Pre-fill the scratch item from a catalog course without adding it."""

        course = next((c for c in self.courses if c.id == course_id), None)
        if course is None:
            raise FormValidationError(f"Course {course_id} not found", field="courseId")

        self._current = self._current.model_copy(
            update={
                "id": self._new_item_id(),
                "description": f"{course.title} - Online Course",
                "quantity": self._current.quantity or 1,
                "rate": to_money(course.price or 0),
                "course": CourseRef(id=course.id, name=course.title, code=course.id),
            }
        )
        return self.current_item

    def select_client(self, student_id: str) -> ClientInfo:
        """Replace the client block wholesale with a student's contact details."""

        student = next((s for s in self.students if s.id == student_id), None)
        if student is None:
            raise FormValidationError(f"Student {student_id} not found", field="studentId")

        client_info = ClientInfo(
            name=student.full_name or student.email,
            email=student.email,
            phone=student.phone or "",
        )
        self._data = self._data.model_copy(update={"client_info": client_info})
        return client_info.model_copy()

    def add_item(self, candidate: ItemDraft | None = None) -> InvoiceItem:
        draft = candidate if candidate is not None else self._current
        if not draft.description.strip():
            raise FormValidationError("Please fill in all item fields", field="description")
        if draft.quantity <= 0:
            raise FormValidationError("Please fill in all item fields", field="quantity")
        if not draft.rate:
            raise FormValidationError("Please fill in all item fields", field="rate")

        item_id = draft.id if draft.id and draft.id not in self._issued_ids else self._new_item_id()
        try:
            item = InvoiceItem(
                id=item_id,
                description=draft.description,
                quantity=draft.quantity,
                rate=draft.rate,
                course=draft.course,
            )
        except ValidationError as exc:
            raise FormValidationError("Invalid line item", field="rate") from exc

        self._data = self._data.model_copy(update={"items": [*self._data.items, item]})
        self._issued_ids.add(item_id)
        self._current = ItemDraft()
        logger.debug("Added line item %s to %s", item_id, self._data.invoice_number)
        return item

    def update_item(
        self,
        item_id: str,
        *,
        description: str | None = None,
        quantity: Any = None,
        rate: Any = None,
    ) -> InvoiceItem:
        index = next((i for i, item in enumerate(self._data.items) if item.id == item_id), None)
        if index is None:
            raise FormValidationError(f"Line item {item_id} not found", field="items")

        current = self._data.items[index]
        changes = current.model_dump(exclude={"amount"})
        if description is not None:
            changes["description"] = description
        if quantity is not None:
            changes["quantity"] = coerce_quantity(quantity)
        if rate is not None:
            changes["rate"] = coerce_decimal(rate)
        try:
            updated = InvoiceItem.model_validate(changes)
        except ValidationError as exc:
            raise FormValidationError("Invalid line item", field="items") from exc

        items = list(self._data.items)
        items[index] = updated
        self._data = self._data.model_copy(update={"items": items})
        return updated

    def remove_item(self, item_id: str) -> bool:
        items = [item for item in self._data.items if item.id != item_id]
        if len(items) == len(self._data.items):
            return False
        self._data = self._data.model_copy(update={"items": items})
        return True

    def submit(self) -> InvoiceData:
        """Check the submission preconditions and return a frozen snapshot."""

        client = self._data.client_info
        if not client.name.strip() or not client.email.strip():
            raise FormValidationError("Please fill in client information", field="clientInfo")
        if not self._data.items:
            raise FormValidationError("Please add at least one item", field="items")
        return self._data.model_copy(deep=True)

    def adopt(self, invoice: InvoiceData) -> None:
        """Continue editing from a persisted copy of the draft, keeping its id."""

        self._data = invoice.model_copy(deep=True)
        self._issued_ids.update(item.id for item in self._data.items)
