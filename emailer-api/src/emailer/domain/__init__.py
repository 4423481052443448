"""Domain models and entities."""

from emailer.domain.entities.attachment import (
    AttachmentKey,
    BlobMetadata,
    make_blob_id,
    owner_prefix,
    parse_blob_id,
)
from emailer.domain.entities.email_record import MessageRecord, RecordKey
from emailer.domain.models import (
    Attachment,
    DeliveryOutcome,
    EmailMessage,
    EmailPriority,
    StoredEmail,
)

__all__ = [
    "Attachment",
    "AttachmentKey",
    "BlobMetadata",
    "DeliveryOutcome",
    "EmailMessage",
    "EmailPriority",
    "MessageRecord",
    "RecordKey",
    "StoredEmail",
    "make_blob_id",
    "owner_prefix",
    "parse_blob_id",
]
