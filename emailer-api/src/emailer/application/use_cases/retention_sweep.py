"""Delete email records and attachment blobs older than the retention window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from loguru import logger

from emailer.application.ports.blob_store import BlobStore
from emailer.application.ports.record_store import RecordStore
from emailer.application.retry import RetryPolicy
from emailer.domain.entities.attachment import owner_prefix, parse_blob_id

DEFAULT_RETENTION = timedelta(hours=48)


@dataclass
class SweepReport:
    """Counts for one successful sweep (the attempt that completed)."""

    cutoff: datetime
    records_deleted: int = 0
    blobs_deleted: int = 0
    attempts: int = 1


class RetentionSweeper:
    """Remove expired messages from both stores.

    Phase 1 walks records with ``sent_date <= cutoff`` and deletes each one
    together with every blob carrying its row-key prefix. Phase 2 walks all
    blobs and deletes those whose own ``created_on <= cutoff``, whether or not
    the owning record has expired.

    Both phases run as a single unit under the retry policy: any exception
    restarts the sweep from phase 1. Deletes are idempotent, so re-scanning
    already processed entries is harmless.
    """

    def __init__(
        self,
        records: RecordStore,
        blobs: BlobStore,
        retention: timedelta = DEFAULT_RETENTION,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.records = records
        self.blobs = blobs
        self.retention = retention
        self.retry_policy = retry_policy or RetryPolicy()
        self.clock = clock

    async def sweep(self) -> SweepReport:
        attempts = 0

        async def body() -> SweepReport:
            nonlocal attempts
            attempts += 1
            cutoff = self.clock() - self.retention
            report = SweepReport(cutoff=cutoff, attempts=attempts)
            await self._expire_records(cutoff, report)
            await self._expire_blobs(cutoff, report)
            return report

        report = await self.retry_policy.run(body)
        logger.info(
            f"Retention sweep complete: cutoff={report.cutoff.isoformat()}, "
            f"records_deleted={report.records_deleted}, blobs_deleted={report.blobs_deleted}, "
            f"attempts={report.attempts}"
        )
        return report

    async def _expire_records(self, cutoff: datetime, report: SweepReport) -> None:
        async for record in self.records.query_older_than(cutoff):
            async for meta in self.blobs.list_blobs(owner_prefix(record.row_key)):
                await self.blobs.delete_blob(meta.blob_id)
                report.blobs_deleted += 1
                logger.info(f"Deleted blob: {meta.blob_id} (owner expired)")
            await self.records.delete_record(record.partition_key, record.row_key)
            report.records_deleted += 1
            logger.info(f"Deleted email from table: PartitionKey={record.partition_key}, RowKey={record.row_key}")

    async def _expire_blobs(self, cutoff: datetime, report: SweepReport) -> None:
        async for meta in self.blobs.list_blobs():
            if meta.created_on > cutoff:
                continue
            await self.blobs.delete_blob(meta.blob_id)
            report.blobs_deleted += 1
            logger.info(f"Deleted blob: {meta.blob_id}")
            await self._warn_if_owner_alive(meta.blob_id)

    async def _warn_if_owner_alive(self, blob_id: str) -> None:
        # Age-based blob expiry can outrun the owning record; surface it.
        try:
            row_key = parse_blob_id(blob_id).row_key
        except ValueError:
            logger.warning(f"Deleted blob {blob_id} has no parseable owning record id")
            return
        record = await self.records.find_by_row_key(row_key)
        if record is not None:
            logger.warning(
                f"Expired blob {blob_id} belonged to live record "
                f"{record.partition_key}/{record.row_key}"
            )
