"""RetentionSweeper: cutoff selection, cascade delete and whole-body retry."""

from datetime import datetime, timedelta, timezone

import pytest
from fakes import InMemoryRecordStore

from emailer.application.retry import RetryPolicy
from emailer.application.use_cases.persist_email import EmailPersistence
from emailer.application.use_cases.retention_sweep import RetentionSweeper
from emailer.domain.errors import StoreUnavailable
from emailer.domain.models import Attachment

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class Recorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


async def _save_at(records, blobs, make_message, when, attachments=()):
    blobs.now = when
    persistence = EmailPersistence(records, blobs, clock=lambda: when)
    return await persistence.save(
        make_message([Attachment(file_name=name, content=b"x") for name in attachments])
    )


def _sweeper(records, blobs, sleep=None, **kwargs):
    policy = RetryPolicy(sleep=sleep or Recorder())
    return RetentionSweeper(records, blobs, retry_policy=policy, clock=lambda: NOW, **kwargs)


class TestSweep:
    async def test_deletes_expired_records_and_keeps_young_ones(self, records, blobs, make_message):
        old = await _save_at(records, blobs, make_message, NOW - timedelta(hours=49), ["old.pdf"])
        young = await _save_at(records, blobs, make_message, NOW - timedelta(hours=1), ["young.pdf"])

        report = await _sweeper(records, blobs).sweep()

        assert report.cutoff == NOW - timedelta(hours=48)
        assert report.records_deleted == 1
        assert report.blobs_deleted == 1
        assert list(records.rows) == [(young.partition_key, young.row_key)]
        assert all(blob_id.startswith(young.row_key) for blob_id in blobs.blobs)
        assert not any(blob_id.startswith(old.row_key) for blob_id in blobs.blobs)

    async def test_record_exactly_at_cutoff_is_deleted(self, records, blobs, make_message):
        await _save_at(records, blobs, make_message, NOW - timedelta(hours=48))
        report = await _sweeper(records, blobs).sweep()
        assert report.records_deleted == 1
        assert records.rows == {}

    async def test_nothing_expired_leaves_stores_untouched(self, records, blobs, make_message):
        await _save_at(records, blobs, make_message, NOW - timedelta(hours=47), ["a.txt"])
        report = await _sweeper(records, blobs).sweep()
        assert (report.records_deleted, report.blobs_deleted) == (0, 0)
        assert len(records.rows) == 1
        assert len(blobs.blobs) == 1

    async def test_cascade_removes_young_blobs_of_expired_record(self, records, blobs, make_message):
        key = await _save_at(records, blobs, make_message, NOW - timedelta(hours=72), ["a.txt"])
        # Blob re-uploaded recently (upsert), so its own age is below the cutoff.
        blobs.now = NOW - timedelta(minutes=5)
        await blobs.put_blob(f"{key.row_key}_0_a.txt", b"x", "text/plain")

        await _sweeper(records, blobs).sweep()

        assert records.rows == {}
        assert blobs.blobs == {}

    async def test_expired_blob_of_young_record_is_still_deleted(self, records, blobs, make_message):
        key = await _save_at(records, blobs, make_message, NOW - timedelta(hours=1), ["a.txt"])
        blobs.blobs[f"{key.row_key}_0_a.txt"] = (b"x", "text/plain", NOW - timedelta(days=3))

        report = await _sweeper(records, blobs).sweep()

        assert report.records_deleted == 0
        assert report.blobs_deleted == 1
        assert blobs.blobs == {}
        assert len(records.rows) == 1

    async def test_unparseable_expired_blob_is_deleted(self, records, blobs):
        blobs.blobs["stray-object"] = (b"x", "text/plain", NOW - timedelta(days=3))
        report = await _sweeper(records, blobs).sweep()
        assert report.blobs_deleted == 1
        assert blobs.blobs == {}

    async def test_custom_retention(self, records, blobs, make_message):
        await _save_at(records, blobs, make_message, NOW - timedelta(hours=2))
        report = await _sweeper(records, blobs, retention=timedelta(hours=1)).sweep()
        assert report.records_deleted == 1


class FlakyRecordStore(InMemoryRecordStore):
    """Fails the first ``failures`` scans with a transient error."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.scans = 0

    async def query_older_than(self, cutoff):
        self.scans += 1
        if self.scans <= self.failures:
            raise StoreUnavailable(f"table unavailable (scan {self.scans})")
        async for record in super().query_older_than(cutoff):
            yield record


class TestRetry:
    async def test_completes_on_fifth_attempt(self, blobs, make_message):
        records = FlakyRecordStore(failures=4)
        await _save_at(records, blobs, make_message, NOW - timedelta(hours=50), ["a.txt"])
        sleep = Recorder()

        report = await _sweeper(records, blobs, sleep=sleep).sweep()

        assert report.attempts == 5
        assert records.scans == 5
        assert sleep.delays == [2, 4, 8, 16]
        assert records.rows == {}
        assert blobs.blobs == {}

    async def test_gives_up_after_five_attempts(self, blobs):
        records = FlakyRecordStore(failures=5)
        sleep = Recorder()

        with pytest.raises(StoreUnavailable, match="scan 5"):
            await _sweeper(records, blobs, sleep=sleep).sweep()

        assert records.scans == 5
        assert sleep.delays == [2, 4, 8, 16]

    async def test_retry_restarts_whole_body(self, records, blobs, make_message):
        for hours in (50, 60, 70):
            await _save_at(records, blobs, make_message, NOW - timedelta(hours=hours), ["a.txt"])

        failed = {"done": False}
        original_delete = records.delete_record

        async def delete_then_fail_once(partition_key, row_key):
            await original_delete(partition_key, row_key)
            if not failed["done"]:
                failed["done"] = True
                raise StoreUnavailable("connection reset")

        records.delete_record = delete_then_fail_once
        sleep = Recorder()

        report = await _sweeper(records, blobs, sleep=sleep).sweep()

        assert report.attempts == 2
        assert sleep.delays == [2]
        assert records.rows == {}
        assert blobs.blobs == {}
