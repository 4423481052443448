"""Write a message as one record plus its attachment blobs, and read it back."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from loguru import logger

from emailer.application.ports.blob_store import BlobStore
from emailer.application.ports.record_store import RecordStore
from emailer.domain.entities.attachment import make_blob_id, owner_prefix, parse_blob_id
from emailer.domain.entities.email_record import MessageRecord, RecordKey
from emailer.domain.errors import NotFound, ValidationError
from emailer.domain.models import Attachment, EmailMessage, StoredEmail

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
MAX_ATTACHMENTS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmailPersistence:
    """Persist messages across the record store and the blob store.

    Save order is: validate, write the record, then write each blob in turn.
    A blob write failing part-way leaves the record and the earlier blobs in
    place; the store error is raised to the caller and nothing is retried here.
    """

    def __init__(
        self,
        records: RecordStore,
        blobs: BlobStore,
        max_attachment_bytes: int = MAX_ATTACHMENT_BYTES,
        max_attachments: int = MAX_ATTACHMENTS,
        clock: Callable[[], datetime] = _utcnow,
        new_row_key: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self.records = records
        self.blobs = blobs
        self.max_attachment_bytes = max_attachment_bytes
        self.max_attachments = max_attachments
        self.clock = clock
        self.new_row_key = new_row_key

    def validate(self, message: EmailMessage) -> None:
        """Reject messages over the attachment caps before anything is written."""
        if message.total_attachment_size > self.max_attachment_bytes:
            limit_mb = self.max_attachment_bytes // (1024 * 1024)
            raise ValidationError(f"Total attachment size exceeds {limit_mb} MB limit")
        if len(message.attachments) > self.max_attachments:
            raise ValidationError(f"Maximum of {self.max_attachments} attachments allowed")

    async def save(self, message: EmailMessage) -> RecordKey:
        self.validate(message)

        record = MessageRecord(
            partition_key=message.from_email,
            row_key=self.new_row_key(),
            to_email=message.to_email,
            subject=message.subject,
            sent_date=self.clock(),
        )
        await self.records.create_record(record)
        logger.info(f"Saved email record {record.partition_key}/{record.row_key}")

        for index, attachment in enumerate(message.attachments):
            blob_id = make_blob_id(record.row_key, index, attachment.file_name)
            await self.blobs.put_blob(blob_id, attachment.content, attachment.content_type)
            logger.debug(f"Stored attachment {blob_id} ({attachment.size} bytes)")

        return record.key

    async def load(self, partition_key: str, row_key: str) -> StoredEmail:
        record = await self.records.get_record(partition_key, row_key)

        found: list[tuple[int, Attachment]] = []
        async for meta in self.blobs.list_blobs(owner_prefix(row_key), with_content_type=True):
            try:
                key = parse_blob_id(meta.blob_id)
            except ValueError:
                logger.warning(f"Skipping blob with unparseable id {meta.blob_id!r} under {row_key}")
                continue
            try:
                content = await self.blobs.get_blob_content(meta.blob_id)
            except NotFound:
                # Swept between listing and download.
                if not await self._record_exists(partition_key, row_key):
                    raise NotFound(f"Email {partition_key}/{row_key} not found")
                logger.warning(f"Attachment {meta.blob_id} vanished while loading {row_key}, skipping")
                continue
            found.append(
                (
                    key.index,
                    Attachment(
                        file_name=key.file_name,
                        content_type=meta.content_type or "application/octet-stream",
                        content=content,
                        attachment_id=meta.blob_id,
                    ),
                )
            )

        # Blobs are swept before their record; a vanished record means the
        # listing above may be partial.
        if not await self._record_exists(partition_key, row_key):
            raise NotFound(f"Email {partition_key}/{row_key} not found")

        found.sort(key=lambda item: item[0])
        return StoredEmail(
            partition_key=record.partition_key,
            row_key=record.row_key,
            from_email=record.partition_key,
            to_email=record.to_email,
            subject=record.subject,
            sent_date=record.sent_date,
            attachments=[attachment for _, attachment in found],
        )

    async def _record_exists(self, partition_key: str, row_key: str) -> bool:
        try:
            await self.records.get_record(partition_key, row_key)
        except NotFound:
            return False
        return True
