"""
API routes for the Emailer service.
"""

import base64
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Base64Bytes, Field

from emailer.domain.errors import EmailerError, ErrorKind
from emailer.domain.models import Attachment, EmailMessage, StoredEmail
from emailer.infrastructure.container import Services

router = APIRouter()

_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PROVIDER: 502,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.CONFIGURATION: 503,
}


# ============================================================================
# Request/Response Models
# ============================================================================


class AttachmentIn(BaseModel):
    """An attachment with base64-encoded content."""

    file_name: str = Field(..., min_length=1)
    content_type: str = "application/octet-stream"
    content: Base64Bytes = b""


class SendEmailRequest(EmailMessage):
    """Request body for the send endpoint; attachment content is base64."""

    attachments: list[AttachmentIn] = Field(default_factory=list)

    def to_message(self) -> EmailMessage:
        return EmailMessage(
            **self.model_dump(exclude={"attachments"}),
            attachments=[
                Attachment(file_name=a.file_name, content_type=a.content_type, content=a.content)
                for a in self.attachments
            ],
        )


class SendEmailResponse(BaseModel):
    message: str
    partition_key: str
    row_key: str
    status_code: int | None = None


class AttachmentOut(BaseModel):
    file_name: str
    content_type: str
    size: int
    attachment_id: str | None = None
    content: str = Field(..., description="Base64-encoded content")


class StoredEmailResponse(BaseModel):
    partition_key: str
    row_key: str
    from_email: str
    to_email: str
    subject: str
    sent_date: datetime
    attachments: list[AttachmentOut] = Field(default_factory=list)

    @classmethod
    def from_stored(cls, email: StoredEmail) -> "StoredEmailResponse":
        return cls(
            **email.model_dump(exclude={"attachments"}),
            attachments=[
                AttachmentOut(
                    file_name=a.file_name,
                    content_type=a.content_type,
                    size=a.size,
                    attachment_id=a.attachment_id,
                    content=base64.b64encode(a.content).decode("ascii"),
                )
                for a in email.attachments
            ],
        )


def get_services(request: Request) -> Services:
    return request.app.state.services


def _http_error(e: EmailerError) -> HTTPException:
    status = _STATUS_BY_KIND.get(e.kind, 500)
    # Only validation text is echoed; other failures stay generic.
    detail = e.message if e.kind in (ErrorKind.VALIDATION, ErrorKind.NOT_FOUND) else "Error processing email"
    return HTTPException(status_code=status, detail=detail)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/")
async def root() -> str:
    return "Welcome to Emailer API"


@router.post("/api/sendemail", response_model=SendEmailResponse)
async def send_email(
    payload: SendEmailRequest,
    services: Services = Depends(get_services),
) -> SendEmailResponse:
    """Validate, save and send an email."""
    message = payload.to_message()
    logger.info(
        f"Received email: from={message.from_email}, to={message.to_email}, "
        f"subject={message.subject!r}, attachments={len(message.attachments)}"
    )
    try:
        receipt = await services.send_email.execute(message)
    except EmailerError as e:
        logger.error(f"Error processing email: {e}")
        raise _http_error(e) from e

    return SendEmailResponse(
        message="Email received, saved, and sent successfully",
        partition_key=receipt.key.partition_key,
        row_key=receipt.key.row_key,
        status_code=receipt.outcome.status_code,
    )


@router.get("/api/email/{partition_key}/{row_key}", response_model=StoredEmailResponse)
async def get_email(
    partition_key: str,
    row_key: str,
    services: Services = Depends(get_services),
) -> StoredEmailResponse:
    """Load a stored email with its attachments."""
    try:
        email = await services.persistence.load(partition_key, row_key)
    except EmailerError as e:
        raise _http_error(e) from e
    except ValueError as e:
        # Malformed row key
        raise HTTPException(status_code=404, detail=str(e)) from e
    return StoredEmailResponse.from_stored(email)


@router.get("/health")
async def health(services: Services = Depends(get_services)) -> JSONResponse:
    """Report per-component health."""
    checks = {
        "storage_records": await services.records.health_check(),
        "storage_blobs": await services.blobs.health_check(),
        "sendgrid": (
            {"status": "healthy"}
            if services.settings.sendgrid_configured
            else {"status": "unhealthy", "description": "SendGrid API key is not configured"}
        ),
    }
    healthy = all(c.get("status") == "healthy" for c in checks.values())
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)
