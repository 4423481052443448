"""HTTP surface wired to in-memory stores and a stub provider."""

import base64

import pytest
from fakes import InMemoryBlobStore, InMemoryRecordStore
from fastapi.testclient import TestClient

from emailer.api.main import create_app
from emailer.domain.errors import StoreUnavailable
from emailer.domain.models import DeliveryOutcome
from emailer.infrastructure.container import Services
from emailer.infrastructure.settings import Settings


class StubProvider:
    def __init__(self, status_code: int = 202):
        self.status_code = status_code

    async def send(self, message):
        return DeliveryOutcome(success=self.status_code in (200, 202), status_code=self.status_code)


def _services(status_code: int = 202, api_key: str | None = "SG.key") -> Services:
    return Services(
        settings=Settings(sendgrid_api_key=api_key, _env_file=None),
        records=InMemoryRecordStore(),
        blobs=InMemoryBlobStore(),
        provider=StubProvider(status_code),
    )


@pytest.fixture
def services() -> Services:
    return _services()


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client


def _payload(**overrides):
    body = {
        "from_name": "Alice",
        "from_email": "alice@example.com",
        "to_name": "Bob",
        "to_email": "bob@example.org",
        "subject": "Invoice",
        "body": "See attached.",
        "attachments": [
            {
                "file_name": "invoice.pdf",
                "content_type": "application/pdf",
                "content": base64.b64encode(b"%PDF-1.7 body").decode(),
            }
        ],
    }
    body.update(overrides)
    return body


def test_root(client):
    assert client.get("/").json() == "Welcome to Emailer API"


def test_send_then_fetch(client):
    response = client.post("/api/sendemail", json=_payload())

    assert response.status_code == 200
    sent = response.json()
    assert sent["message"] == "Email received, saved, and sent successfully"
    assert sent["partition_key"] == "alice@example.com"

    fetched = client.get(f"/api/email/{sent['partition_key']}/{sent['row_key']}")

    assert fetched.status_code == 200
    email = fetched.json()
    assert email["to_email"] == "bob@example.org"
    assert email["subject"] == "Invoice"
    [attachment] = email["attachments"]
    assert attachment["file_name"] == "invoice.pdf"
    assert attachment["size"] == len(b"%PDF-1.7 body")
    assert base64.b64decode(attachment["content"]) == b"%PDF-1.7 body"


def test_null_attachments_accepted(client):
    response = client.post("/api/sendemail", json=_payload(attachments=None))
    assert response.status_code == 200


def test_too_many_attachments_is_bad_request(client, services):
    attachments = [{"file_name": f"{i}.txt", "content": ""} for i in range(6)]

    response = client.post("/api/sendemail", json=_payload(attachments=attachments))

    assert response.status_code == 400
    assert "Maximum of 5 attachments" in response.json()["detail"]
    assert services.records.rows == {}


def test_too_large_is_bad_request(client):
    big = base64.b64encode(b"x" * (10 * 1024 * 1024 + 1)).decode()

    response = client.post("/api/sendemail", json=_payload(attachments=[{"file_name": "big.bin", "content": big}]))

    assert response.status_code == 400
    assert "exceeds 10 MB limit" in response.json()["detail"]


def test_invalid_address_is_rejected(client):
    response = client.post("/api/sendemail", json=_payload(to_email="nobody"))
    assert response.status_code == 422


def test_provider_rejection_is_bad_gateway():
    with TestClient(create_app(_services(status_code=401))) as client:
        response = client.post("/api/sendemail", json=_payload())
    assert response.status_code == 502
    assert response.json()["detail"] == "Error processing email"


def test_store_outage_is_service_unavailable(services, client):
    async def offline(record):
        raise StoreUnavailable("table offline")

    services.records.create_record = offline

    response = client.post("/api/sendemail", json=_payload())

    assert response.status_code == 503


def test_missing_email_is_not_found(client):
    response = client.get("/api/email/alice@example.com/3f2b8c1e-0000-0000-0000-000000000000")
    assert response.status_code == 404


def test_health_ok(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert set(body["checks"]) == {"storage_records", "storage_blobs", "sendgrid"}


def test_health_reports_missing_sendgrid_key():
    with TestClient(create_app(_services(api_key=None))) as client:
        response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["checks"]["sendgrid"]["status"] == "unhealthy"
