"""Tests for the SendGrid email payloads."""

import base64
import json

import httpx
import pytest

from trekbook.config import settings
from trekbook.services.notification_service import NotificationService, format_amount


@pytest.fixture
def outbox(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test-key")
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        return httpx.Response(202)

    service = NotificationService()
    service._http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return service, requests


def test_format_amount():
    assert format_amount(1_000_000) == "INR 10,000.00"
    assert format_amount(None) == "INR 0.00"


async def test_email_skipped_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", None)

    assert await NotificationService().send_email("asha@example.com", "Hi", "<p>Hi</p>") is False


async def test_attachment_is_base64_encoded(outbox):
    service, requests = outbox

    sent = await service.send_email(
        "asha@example.com",
        "Invoice - TRK-ABC123",
        "<p>Attached</p>",
        attachments=[("invoice_TRK-ABC123.pdf", b"%PDF-1.4", "application/pdf")],
    )
    await service.close()

    assert sent is True
    attachment = requests[0]["attachments"][0]
    assert attachment["filename"] == "invoice_TRK-ABC123.pdf"
    assert attachment["type"] == "application/pdf"
    assert base64.b64decode(attachment["content"]) == b"%PDF-1.4"


async def test_rejected_email_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "sendgrid_api_key", "SG.test-key")
    service = NotificationService()
    service._http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(400, text="bad sender"))
    )

    assert await service.send_email("asha@example.com", "Hi", "<p>Hi</p>") is False
    await service.close()
