from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CourseSummary(BaseModel):
    """Published course as offered for invoice line items."""

    id: str
    title: str
    price: Optional[Decimal] = None


class StudentSummary(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = None
    phone: Optional[str] = None


class CourseListResponse(BaseModel):
    total: int
    items: List[CourseSummary] = Field(default_factory=list)


class StudentListResponse(BaseModel):
    total: int
    items: List[StudentSummary] = Field(default_factory=list)
