from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.config import get_settings
from app.main import app
from app.services.workspaces import get_workspace_store

INVOICE_PAYLOAD = {
    "invoiceNumber": "INV-2001",
    "issueDate": "2026-10-19",
    "dueDate": "2026-11-18",
    "companyInfo": {"name": "ITwala Academy", "email": "billing@itwala.academy"},
    "clientInfo": {"name": "Meera Iyer", "email": "meera.iyer@example.com"},
    "items": [
        {"id": "item-1", "description": "Course A", "quantity": 2, "rate": 100},
        {"id": "item-2", "description": "Course B", "quantity": 1, "rate": 300},
    ],
    "taxRate": 10,
}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _open_workspace(client: TestClient, **body) -> str:
    response = client.post("/workspaces", json=body or None)
    assert response.status_code == 201
    return response.json()["workspaceId"]


def _fill_workspace(client: TestClient, workspace_id: str) -> None:
    assert client.post(f"/workspaces/{workspace_id}/client", json={"studentId": "student-aarav"}).status_code == 200
    assert client.post(f"/workspaces/{workspace_id}/course", json={"courseId": "course-python-fundamentals"}).status_code == 200
    assert client.post(f"/workspaces/{workspace_id}/items").status_code == 200


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_catalog_endpoints(client: TestClient) -> None:
    courses = client.get("/catalog/courses").json()
    students = client.get("/catalog/students").json()

    assert courses["total"] == 4
    assert all(course["id"] != "course-generative-ai" for course in courses["items"])
    assert students["total"] == 3


def test_invoice_crud(client: TestClient) -> None:
    created = client.post("/invoices", json=INVOICE_PAYLOAD)
    assert created.status_code == 201
    body = created.json()
    invoice_id = body["id"]
    assert Decimal(body["subtotal"]) == Decimal("500")
    assert Decimal(body["total"]) == Decimal("550")
    assert body["clientInfo"]["name"] == "Meera Iyer"

    listing = client.get("/invoices").json()
    assert listing["total"] == 1
    assert listing["items"][0]["invoiceNumber"] == "INV-2001"

    patched = client.patch(f"/invoices/{invoice_id}", json={"taxRate": 0, "status": "sent"})
    assert patched.status_code == 200
    assert Decimal(patched.json()["total"]) == Decimal("500")
    assert patched.json()["status"] == "sent"

    fetched = client.get(f"/invoices/{invoice_id}").json()
    assert fetched["status"] == "sent"

    pdf = client.get(f"/invoices/{invoice_id}/pdf")
    assert pdf.status_code == 200
    assert pdf.headers["content-type"] == "application/pdf"
    assert pdf.headers["content-disposition"] == (
        "attachment; filename=\"invoice-INV-2001.pdf\"; filename*=UTF-8''invoice-INV-2001.pdf"
    )
    assert pdf.content.startswith(b"%PDF")

    assert client.delete(f"/invoices/{invoice_id}").status_code == 204
    assert client.get(f"/invoices/{invoice_id}").status_code == 404
    assert client.delete(f"/invoices/{invoice_id}").status_code == 404


def test_invoice_validation_errors(client: TestClient) -> None:
    payload = {**INVOICE_PAYLOAD, "items": [INVOICE_PAYLOAD["items"][0]] * 2}

    assert client.post("/invoices", json=payload).status_code == 422
    assert client.patch("/invoices/INVOICE-404", json={"notes": "x"}).status_code == 404


def test_render_arbitrary_invoice_pdf(client: TestClient) -> None:
    response = client.post("/invoices/pdf", json=INVOICE_PAYLOAD)

    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")
    assert "invoice-INV-2001.pdf" in response.headers["content-disposition"]


def test_pdf_filename_with_non_ascii_invoice_number(client: TestClient) -> None:
    response = client.post("/invoices/pdf", json={**INVOICE_PAYLOAD, "invoiceNumber": "INV–2026/₹"})

    assert response.status_code == 200
    assert response.headers["content-disposition"] == (
        "attachment; filename=\"invoice-INV_2026__.pdf\"; "
        "filename*=UTF-8''invoice-INV%E2%80%932026%2F%E2%82%B9.pdf"
    )


def test_pdf_filename_cannot_be_overridden_by_invoice_number(client: TestClient) -> None:
    number = 'A"; filename="evil.exe'
    invoice_id = client.post("/invoices", json={**INVOICE_PAYLOAD, "invoiceNumber": number}).json()["id"]

    response = client.get(f"/invoices/{invoice_id}/pdf")

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert disposition.count('filename="') == 1
    assert 'evil.exe"' not in disposition
    assert disposition.startswith('attachment; filename="invoice-A_; filename=_evil.exe.pdf"; ')


def test_new_workspace_starts_with_defaults(client: TestClient) -> None:
    response = client.post("/workspaces")

    assert response.status_code == 201
    state = response.json()
    assert state["stage"] == "form"
    assert state["invoice"]["invoiceNumber"].startswith("INV-")
    assert state["invoice"]["companyInfo"]["name"] == get_settings().company_name
    assert state["invoice"]["items"] == []
    assert state["currentItem"]["quantity"] == 1
    assert state["previewUrl"] is None


def test_workspace_form_edits(client: TestClient) -> None:
    workspace_id = _open_workspace(client)

    state = client.patch(
        f"/workspaces/{workspace_id}/fields", json={"path": "clientInfo.name", "value": "Meera"}
    ).json()
    assert state["invoice"]["clientInfo"]["name"] == "Meera"

    state = client.patch(
        f"/workspaces/{workspace_id}/current-item",
        json={"description": "Mentoring", "quantity": "2", "rate": "150"},
    ).json()
    assert Decimal(state["currentItem"]["amount"]) == Decimal("300")

    state = client.delete(f"/workspaces/{workspace_id}/current-item").json()
    assert state["currentItem"]["description"] == ""

    client.patch(
        f"/workspaces/{workspace_id}/current-item",
        json={"description": "Mentoring", "quantity": "2", "rate": "150"},
    )
    state = client.post(f"/workspaces/{workspace_id}/items").json()
    item_id = state["invoice"]["items"][0]["id"]
    assert state["currentItem"]["description"] == ""

    state = client.patch(f"/workspaces/{workspace_id}/items/{item_id}", json={"quantity": 3}).json()
    assert Decimal(state["invoice"]["items"][0]["amount"]) == Decimal("450")

    state = client.delete(f"/workspaces/{workspace_id}/items/{item_id}").json()
    assert state["invoice"]["items"] == []

    state = client.delete(f"/workspaces/{workspace_id}/items/unknown").json()
    assert state["invoice"]["items"] == []


def test_workspace_validation_messages(client: TestClient) -> None:
    workspace_id = _open_workspace(client)

    response = client.post(f"/workspaces/{workspace_id}/items")
    assert response.status_code == 422
    assert response.json()["detail"] == "Please fill in all item fields"

    response = client.post(f"/workspaces/{workspace_id}/submit")
    assert response.status_code == 422
    assert response.json()["detail"] == "Please fill in client information"

    response = client.post(f"/workspaces/{workspace_id}/course", json={"courseId": "nope"})
    assert response.status_code == 422

    response = client.get(f"/workspaces/{workspace_id}/preview")
    assert response.status_code == 404


def test_unknown_workspace_is_not_found(client: TestClient) -> None:
    assert client.get("/workspaces/missing").status_code == 404
    assert client.delete("/workspaces/missing").status_code == 404


def test_workspace_preview_download_and_save(client: TestClient) -> None:
    workspace_id = _open_workspace(client)
    _fill_workspace(client, workspace_id)
    registry = get_workspace_store(get_settings()).registry

    state = client.post(f"/workspaces/{workspace_id}/submit").json()
    assert state["stage"] == "preview"
    assert state["previewUrl"].startswith("blob:")
    assert len(registry) == 1
    invoice_number = state["invoice"]["invoiceNumber"]

    page = client.get(f"/workspaces/{workspace_id}/preview")
    assert page.status_code == 200
    assert "Bill To" in page.text
    assert "Python Fundamentals - Online Course" in page.text
    assert f"/workspaces/{workspace_id}/preview.pdf" in page.text

    inline = client.get(f"/workspaces/{workspace_id}/preview.pdf")
    assert inline.status_code == 200
    assert inline.headers["content-disposition"] == (
        f"inline; filename=\"invoice-{invoice_number}.pdf\"; filename*=UTF-8''invoice-{invoice_number}.pdf"
    )

    download = client.get(f"/workspaces/{workspace_id}/download")
    assert download.status_code == 200
    assert download.headers["content-disposition"].startswith(
        f'attachment; filename="invoice-{invoice_number}.pdf"; '
    )
    assert len(registry) == 1

    state = client.post(f"/workspaces/{workspace_id}/save").json()
    saved_id = state["invoice"]["id"]
    assert saved_id is not None
    assert any(n["message"] == "Invoice saved successfully!" for n in state["notifications"])

    response = client.post(f"/workspaces/{workspace_id}/save-and-download")
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")

    # Saving twice updates the same stored record.
    listing = client.get("/invoices").json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == saved_id


def test_editing_after_preview_returns_to_form(client: TestClient) -> None:
    workspace_id = _open_workspace(client)
    _fill_workspace(client, workspace_id)
    client.post(f"/workspaces/{workspace_id}/submit")
    registry = get_workspace_store(get_settings()).registry

    state = client.patch(
        f"/workspaces/{workspace_id}/fields", json={"path": "notes", "value": "Updated"}
    ).json()

    assert state["stage"] == "form"
    assert state["previewUrl"] is None
    assert len(registry) == 0

    state = client.post(f"/workspaces/{workspace_id}/submit").json()
    assert state["stage"] == "preview"
    assert state["invoice"]["notes"] == "Updated"


def test_workspace_loads_stored_invoice(client: TestClient) -> None:
    invoice_id = client.post("/invoices", json=INVOICE_PAYLOAD).json()["id"]

    workspace_id = _open_workspace(client, invoiceId=invoice_id)
    state = client.get(f"/workspaces/{workspace_id}").json()

    assert state["invoice"]["id"] == invoice_id
    assert len(state["invoice"]["items"]) == 2
    assert client.post("/workspaces", json={"invoiceId": "INVOICE-404"}).status_code == 404


def test_closing_workspace_revokes_preview(client: TestClient) -> None:
    workspace_id = _open_workspace(client)
    _fill_workspace(client, workspace_id)
    client.post(f"/workspaces/{workspace_id}/submit")
    registry = get_workspace_store(get_settings()).registry
    assert len(registry) == 1

    assert client.delete(f"/workspaces/{workspace_id}").status_code == 204

    assert len(registry) == 0
    assert client.get(f"/workspaces/{workspace_id}").status_code == 404
