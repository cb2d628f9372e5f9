from __future__ import annotations

import copy
import itertools
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from app.schemas.catalog import CourseSummary, StudentSummary


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _BaseRepository:
    def __init__(self, prefix: str) -> None:
        self._prefix = prefix
        self._counter = itertools.count(1)

    def _next_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):05d}"


class CourseRecord:
    def __init__(
        self,
        *,
        course_id: str,
        title: str,
        price: Decimal | float | None,
        status: str = "published",
    ) -> None:
        self.course_id = course_id
        self.title = title
        self.price = Decimal(str(price)) if price is not None else None
        self.status = status


class StudentRecord:
    def __init__(
        self,
        *,
        student_id: str,
        email: str,
        full_name: str | None = None,
        phone: str | None = None,
    ) -> None:
        self.student_id = student_id
        self.email = email
        self.full_name = full_name
        self.phone = phone


class CatalogRepository:
    """Read-only course and student lists used to pre-fill invoices."""

    def __init__(self) -> None:
        self._courses: Dict[str, CourseRecord] = {}
        self._students: Dict[str, StudentRecord] = {}
        self._seed()

    def _seed(self) -> None:
        courses = [
            CourseRecord(course_id="course-python-fundamentals", title="Python Fundamentals", price=4999),
            CourseRecord(course_id="course-data-science", title="Data Science with Python", price=8999),
            CourseRecord(course_id="course-cloud-devops", title="Cloud & DevOps Essentials", price=12499.5),
            CourseRecord(course_id="course-full-stack", title="Full Stack Web Development", price=14999),
            CourseRecord(
                course_id="course-generative-ai",
                title="Generative AI for Product Teams",
                price=19999,
                status="draft",
            ),
        ]
        students = [
            StudentRecord(
                student_id="student-aarav",
                email="aarav.sharma@example.com",
                full_name="Aarav Sharma",
                phone="+91 98765 43210",
            ),
            StudentRecord(
                student_id="student-meera",
                email="meera.iyer@example.com",
                full_name="Meera Iyer",
            ),
            StudentRecord(student_id="student-no-name", email="learner@example.com"),
        ]
        for course in courses:
            self.add_course(course)
        for student in students:
            self.add_student(student)

    def add_course(self, record: CourseRecord) -> None:
        self._courses[record.course_id] = record

    def add_student(self, record: StudentRecord) -> None:
        self._students[record.student_id] = record

    async def list_courses(self) -> List[CourseSummary]:
        return [
            CourseSummary(id=course.course_id, title=course.title, price=course.price)
            for course in self._courses.values()
            if course.status == "published"
        ]

    async def list_students(self) -> List[StudentSummary]:
        return [
            StudentSummary(
                id=student.student_id,
                email=student.email,
                full_name=student.full_name,
                phone=student.phone,
            )
            for student in self._students.values()
        ]


class InvoiceRepository(_BaseRepository):
    """In-memory stand-in for the backend ``invoices`` table.

    Records use the snake_case projection produced by ``invoice_to_record``.
    """

    def __init__(self) -> None:
        super().__init__("INVOICE")
        self._invoices: Dict[str, Dict[str, Any]] = {}

    async def create(self, record: Mapping[str, Any]) -> Dict[str, Any]:
        invoice_id = self._next_id()
        timestamp = _utc_now_iso()
        stored = copy.deepcopy(dict(record))
        stored.update({"id": invoice_id, "created_at": timestamp, "updated_at": timestamp})
        self._invoices[invoice_id] = stored
        return copy.deepcopy(stored)

    async def update(self, invoice_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise KeyError(f"Invoice {invoice_id} not found")
        invoice.update(copy.deepcopy(dict(changes)))
        invoice["id"] = invoice_id
        invoice["updated_at"] = _utc_now_iso()
        return copy.deepcopy(invoice)

    async def list(self) -> List[Dict[str, Any]]:
        # Newest first; insertion order is creation order.
        return [copy.deepcopy(invoice) for invoice in reversed(list(self._invoices.values()))]

    async def get(self, invoice_id: str) -> Optional[Dict[str, Any]]:
        invoice = self._invoices.get(invoice_id)
        return copy.deepcopy(invoice) if invoice is not None else None

    async def delete(self, invoice_id: str) -> bool:
        return self._invoices.pop(invoice_id, None) is not None


@dataclass
class MockDataStore:
    catalog: CatalogRepository
    invoices: InvoiceRepository


_mock_store: Optional[MockDataStore] = None


def get_mock_store() -> MockDataStore:
    global _mock_store
    if _mock_store is None:
        _mock_store = MockDataStore(
            catalog=CatalogRepository(),
            invoices=InvoiceRepository(),
        )
    return _mock_store


def reset_mock_store() -> None:
    global _mock_store
    _mock_store = None
