"""SendGrid provider for sending outbound email."""

from __future__ import annotations

import base64
from typing import Any

import httpx
from loguru import logger

from emailer.domain.errors import ConfigurationError, ProviderError
from emailer.domain.models import DeliveryOutcome, EmailMessage, EmailPriority

SUCCESS_STATUSES = frozenset({200, 202})  # OK, Accepted

_PRIORITY_HEADERS = {
    EmailPriority.HIGH: {"X-Priority": "1", "Importance": "high"},
    EmailPriority.LOW: {"X-Priority": "5", "Importance": "low"},
}


def build_payload(message: EmailMessage) -> dict[str, Any]:
    """Translate a message into a SendGrid v3 ``mail/send`` request body."""
    personalization: dict[str, Any] = {
        "to": [{"email": message.to_email, "name": message.to_name}],
    }
    if message.cc:
        personalization["cc"] = [{"email": addr} for addr in message.cc]
    if message.bcc:
        personalization["bcc"] = [{"email": addr} for addr in message.bcc]
    if message.send_at is not None:
        personalization["send_at"] = int(message.send_at.timestamp())

    payload: dict[str, Any] = {
        "personalizations": [personalization],
        "from": {"email": message.from_email, "name": message.from_name},
        "subject": message.subject,
        "content": [
            {
                "type": "text/html" if message.is_html else "text/plain",
                "value": message.body,
            }
        ],
    }

    if message.attachments:
        payload["attachments"] = [
            {
                "content": base64.b64encode(att.content).decode("ascii"),
                "filename": att.file_name,
                "type": att.content_type,
                "disposition": "attachment",
            }
            for att in message.attachments
        ]

    headers = _PRIORITY_HEADERS.get(message.priority)
    if headers:
        payload["headers"] = dict(headers)

    return payload


def classify_response(status_code: int, text: str, message_id: str | None = None) -> DeliveryOutcome:
    """Map a provider HTTP status onto a delivery outcome."""
    if status_code in SUCCESS_STATUSES:
        return DeliveryOutcome(success=True, status_code=status_code, provider_message_id=message_id)
    return DeliveryOutcome(
        success=False,
        status_code=status_code,
        message=f"HTTP {status_code}: {text[:200]}",
    )


class SendGridProvider:
    """SendGrid delivery provider. Submits each message exactly once."""

    BASE_URL = "https://api.sendgrid.com/v3"

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ConfigurationError("SENDGRID_API_KEY is required")
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def send(self, message: EmailMessage) -> DeliveryOutcome:
        """Send an email via the SendGrid API."""
        payload = build_payload(message)

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/mail/send",
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    timeout=self.timeout,
                )
        except httpx.TimeoutException as e:
            logger.error(f"SendGrid API timeout sending to {message.to_email}")
            raise ProviderError("Request timeout") from e
        except httpx.HTTPError as e:
            logger.error(f"SendGrid API exception: {e}")
            raise ProviderError(f"SendGrid request failed: {e}") from e

        outcome = classify_response(
            response.status_code,
            response.text,
            response.headers.get("X-Message-Id"),
        )
        if outcome.success:
            logger.info(f"Email sent to {message.to_email}, message_id={outcome.provider_message_id}")
        else:
            logger.error(f"SendGrid API error {response.status_code}: {response.text[:200]}")
        return outcome
