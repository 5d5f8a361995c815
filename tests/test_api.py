"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from facturier.api.routes.documents import get_document_service
from facturier.config import get_settings
from facturier.domain.models import DocumentKind
from facturier.main import create_app


@pytest.fixture
def client(monkeypatch, service):
    monkeypatch.setenv("FACTURIER_SEQUENCE_BACKEND", "memory")
    get_settings.cache_clear()

    app = create_app()
    app.dependency_overrides[get_document_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()


PARTIES = {
    "issuer": {
        "name": "Atelier Verre & Co",
        "address_lines": ["12 Rue des Lilas", "75011 Paris"],
        "tax_id": "FR12345678901",
        "currency": "EUR",
    },
    "customer": {"name": "Boulangerie Martin", "address_lines": ["69002 Lyon"]},
}


def invoice_payload(**overrides) -> dict:
    payload = {
        "account_id": "acc_1",
        "kind": "invoice",
        **PARTIES,
        "issue_date": "2024-10-15",
        "secondary_date": "2024-11-14",
        "line_items": [
            {"description": "Window pane", "quantity": "3", "unit_price": "10.00", "tax_rate_percent": "19"},
        ],
    }
    payload.update(overrides)
    return payload


def test_health_without_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "not used"
    assert body["sequence_backend"] == "memory"


def test_issue_document(client):
    response = client.post("/api/v1/documents", json=invoice_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["number"] == "FACT202410-0001"
    assert body["status"] == "draft"
    assert body["currency"] == "EUR"
    assert body["totals"]["grand_total"] == "35.70"
    assert body["totals"]["stamp_fee"] == "1.00"
    assert body["totals"]["payable_total"] == "36.70"


def test_issue_reports_every_line_violation(client):
    payload = invoice_payload(line_items=[
        {"description": "Zero", "quantity": "0", "unit_price": "10"},
        {"description": "Too taxed", "quantity": "1", "unit_price": "10", "tax_rate_percent": "101"},
    ])

    response = client.post("/api/v1/documents", json=payload)

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "Validation Failure"
    assert [issue["field_path"] for issue in body["issues"]] == [
        "line_items[0].quantity",
        "line_items[1].tax_rate_percent",
    ]

    # The rejected request did not use up a number
    assert client.post("/api/v1/documents", json=invoice_payload()).json()["number"] == "FACT202410-0001"


def test_issue_without_due_date_rejected(client):
    response = client.post("/api/v1/documents", json=invoice_payload(secondary_date=None))

    assert response.status_code == 422
    assert response.json()["issues"][0]["field_path"] == "secondary_date"


def test_issue_pdf(client):
    response = client.post("/api/v1/documents/pdf", json=invoice_payload())

    assert response.status_code == 201
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-document-number"] == "FACT202410-0001"
    assert 'filename="fact-FACT202410-0001.pdf"' in response.headers["content-disposition"]
    assert response.headers["etag"].startswith('"sha256:')
    assert response.content.startswith(b"%PDF")


def test_render_is_repeatable(client):
    record = client.post("/api/v1/documents", json=invoice_payload(notes="Thank you")).json()

    first = client.post("/api/v1/documents/render", json=record)
    second = client.post("/api/v1/documents/render", json=record)

    assert first.status_code == 200
    assert first.content == second.content
    assert first.headers["etag"] == second.headers["etag"]


def test_render_without_line_items_is_not_found(client):
    record = client.post("/api/v1/documents", json=invoice_payload()).json()
    record["line_items"] = []

    response = client.post("/api/v1/documents/render", json=record)

    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"


def test_transition(client):
    record = client.post("/api/v1/documents", json=invoice_payload()).json()

    response = client.post("/api/v1/documents/transition", json={"document": record, "status": "paid"})
    assert response.status_code == 200
    assert response.json()["status"] == "paid"
    assert response.json()["number"] == record["number"]

    response = client.post("/api/v1/documents/transition", json={"document": record, "status": "accepted"})
    assert response.status_code == 422


def test_convert_quote(client):
    quote = client.post(
        "/api/v1/documents",
        json=invoice_payload(kind="quote", secondary_date="2024-11-15"),
    ).json()
    assert quote["number"] == "DEV202410-0001"

    response = client.post(
        "/api/v1/quotes/convert",
        json={"account_id": "acc_1", "quote": quote, "issue_date": "2024-10-20"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["quote"]["status"] == "accepted"
    assert body["invoice"]["number"] == "FACT202410-0001"
    assert body["invoice"]["secondary_date"] == "2024-11-19"
    assert body["invoice"]["totals"] == quote["totals"]


def test_sequence_exhausted_is_conflict(client, counter_store):
    counter_store._values[("acc_1", DocumentKind.INVOICE, "202410")] = 9999

    response = client.post("/api/v1/documents", json=invoice_payload())

    assert response.status_code == 409
    assert response.json()["error"] == "Sequence Exhausted"


def test_malformed_payload_rejected_by_schema(client):
    response = client.post("/api/v1/documents", json=invoice_payload(kind="receipt"))
    assert response.status_code == 422


def test_unprintable_customer_rejected_before_numbering(client):
    customer = {
        "name": "Very Long Company Name " * 10,
        "address_lines": [f"Address line {n}" for n in range(1, 9)],
        "email": "billing@example.com",
    }

    response = client.post("/api/v1/documents/pdf", json=invoice_payload(customer=customer))

    assert response.status_code == 422
    assert response.json()["issues"][0]["field_path"] == "customer"
    assert client.post("/api/v1/documents", json=invoice_payload()).json()["number"] == "FACT202410-0001"


def test_huge_quantity_is_a_validation_failure(client):
    payload = invoice_payload(line_items=[
        {"description": "Grain of sand", "quantity": "1e30", "unit_price": "1.00"},
    ])

    response = client.post("/api/v1/documents", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "Validation Failure"
    assert "line_items[0].quantity" in [issue["field_path"] for issue in response.json()["issues"]]


def test_unhandled_error_uses_error_body(monkeypatch, service):
    monkeypatch.setenv("FACTURIER_SEQUENCE_BACKEND", "memory")
    monkeypatch.setenv("FACTURIER_DEBUG", "false")
    get_settings.cache_clear()

    app = create_app()

    async def boom():
        raise RuntimeError("database password is hunter2")

    app.add_api_route("/boom", boom)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/boom")
    get_settings.cache_clear()

    assert response.status_code == 500
    assert response.json() == {
        "error": "Internal Server Error",
        "detail": "An internal error occurred",
        "issues": [],
    }


def test_no_cors_headers(client):
    response = client.get("/health", headers={"Origin": "https://evil.example"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers
