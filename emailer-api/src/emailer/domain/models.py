"""Domain models for the emailer."""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", re.IGNORECASE)


def validate_email_address(value: str | None) -> str:
    """Check an address the same way for sender, recipient, cc and bcc."""
    if value is None or not str(value).strip():
        raise ValueError("Email address is required.")
    if not EMAIL_PATTERN.match(str(value)):
        raise ValueError("Invalid email address format.")
    return value


class EmailPriority(str, Enum):
    """Delivery priority requested by the sender."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Attachment(BaseModel):
    """A binary attachment carried with a message."""

    file_name: str = Field(..., min_length=1)
    content_type: str = "application/octet-stream"
    content: bytes = b""
    attachment_id: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


class EmailMessage(BaseModel):
    """An outbound email as submitted by a caller."""

    from_name: str = Field(..., min_length=1)
    from_email: str
    to_name: str = Field(..., min_length=1)
    to_email: str
    subject: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    is_html: bool = False
    attachments: list[Attachment] = Field(default_factory=list)
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    priority: EmailPriority = EmailPriority.NORMAL
    send_at: datetime | None = None

    @field_validator("from_email", "to_email", mode="before")
    @classmethod
    def _check_address(cls, value):
        return validate_email_address(value)

    @field_validator("cc", "bcc")
    @classmethod
    def _check_copies(cls, values: list[str]) -> list[str]:
        return [validate_email_address(v) for v in values]

    @field_validator("attachments", mode="before")
    @classmethod
    def _default_attachments(cls, value):
        return [] if value is None else value

    @property
    def total_attachment_size(self) -> int:
        return sum(a.size for a in self.attachments)


class StoredEmail(BaseModel):
    """A persisted message reassembled from the record and blob stores."""

    partition_key: str
    row_key: str
    from_email: str
    to_email: str
    subject: str
    sent_date: datetime
    attachments: list[Attachment] = Field(default_factory=list)


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of handing a message to the delivery provider. Never persisted."""

    success: bool
    status_code: int | None = None
    message: str | None = None
    provider_message_id: str | None = None
