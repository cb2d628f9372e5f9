from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from app.config import Settings
from app.schemas.invoice import ClientInfo, CompanyInfo, InvoiceData, InvoiceItem
from app.services.mock_store import reset_mock_store
from app.services.workspaces import reset_workspace_store


@pytest.fixture(autouse=True)
def _reset_state() -> None:
    reset_mock_store()
    reset_workspace_store()
    yield
    reset_workspace_store()
    reset_mock_store()


class MockLatencyClient:
    """Client stub that records simulate_latency calls."""

    def __init__(self) -> None:
        self.use_mock_data = True
        self.latency_called = False

    async def simulate_latency(self) -> None:
        self.latency_called = True


@pytest.fixture
def latency_client() -> MockLatencyClient:
    return MockLatencyClient()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def sample_invoice() -> InvoiceData:
    return InvoiceData(
        invoice_number="INV-1001",
        issue_date=date(2026, 10, 19),
        due_date=date(2026, 11, 18),
        company_info=CompanyInfo(
            name="ITwala Academy",
            address="123 Education Street",
            city="Learning City",
            zip_code="12345",
            country="United States",
            email="billing@itwala.academy",
            phone="+1 (555) 123-4567",
        ),
        client_info=ClientInfo(name="Aarav Sharma", email="aarav.sharma@example.com"),
        items=[
            InvoiceItem(id="item-1", description="Course A", quantity=2, rate=100),
            InvoiceItem(id="item-2", description="Course B", quantity=1, rate=300),
        ],
        tax_rate=10,
        notes="Thanks for learning with us.",
        terms="Payment due in 30 days.",
    )
