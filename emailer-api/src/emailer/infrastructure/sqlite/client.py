"""SQLite record store for email metadata (the "Emails" table)."""

from __future__ import annotations

import asyncio
import re
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, AsyncIterator, Generator

from loguru import logger

from emailer.domain.entities.email_record import MessageRecord
from emailer.domain.errors import ConflictError, NotFound, StoreUnavailable

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _to_db_time(value: datetime) -> str:
    # Fixed-width UTC ISO strings compare correctly as text.
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_db_time(value: str) -> datetime:
    return datetime.fromisoformat(value).astimezone(timezone.utc)


class SqliteRecordStore:
    """Record store backed by a single SQLite table keyed by (partition, row).

    Every call opens its own connection inside a worker thread, so the store
    can be shared by concurrent requests and the sweeper.
    """

    def __init__(
        self,
        db_path: str | Path = "/app/data/emails.db",
        table: str = "Emails",
        page_size: int = 100,
    ):
        if not _TABLE_NAME.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.db_path = Path(db_path)
        self.table = table
        self.page_size = page_size
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Create database and table if they don't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._connection() as conn:
                conn.executescript(f"""
                    PRAGMA journal_mode=WAL;

                    CREATE TABLE IF NOT EXISTS {self.table} (
                        partition_key TEXT NOT NULL,
                        row_key TEXT NOT NULL,
                        to_email TEXT NOT NULL,
                        subject TEXT NOT NULL,
                        sent_date TEXT NOT NULL,

                        PRIMARY KEY (partition_key, row_key)
                    );

                    CREATE INDEX IF NOT EXISTS idx_{self.table.lower()}_sent_date
                        ON {self.table}(sent_date);
                    CREATE INDEX IF NOT EXISTS idx_{self.table.lower()}_row_key
                        ON {self.table}(row_key);
                """)
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"Cannot open record store at {self.db_path}: {e}") from e
        logger.info(f"SQLite record store initialized at {self.db_path} (table {self.table})")

    @contextmanager
    def _connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path, timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            partition_key=row["partition_key"],
            row_key=row["row_key"],
            to_email=row["to_email"],
            subject=row["subject"],
            sent_date=_from_db_time(row["sent_date"]),
        )

    # -- blocking helpers, run via asyncio.to_thread ------------------------

    def _insert(self, record: MessageRecord) -> None:
        try:
            with self._connection() as conn:
                conn.execute(
                    f"""INSERT INTO {self.table}
                       (partition_key, row_key, to_email, subject, sent_date)
                       VALUES (?, ?, ?, ?, ?)""",
                    (
                        record.partition_key,
                        record.row_key,
                        record.to_email,
                        record.subject,
                        _to_db_time(record.sent_date),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise ConflictError(
                f"Record {record.partition_key}/{record.row_key} already exists"
            ) from e
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to create record: {e}") from e

    def _select_one(self, where: str, params: tuple) -> sqlite3.Row | None:
        try:
            with self._connection() as conn:
                cursor = conn.execute(f"SELECT * FROM {self.table} WHERE {where}", params)
                return cursor.fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to read record: {e}") from e

    def _select_page(self, cutoff: str, after_rowid: int) -> list[sqlite3.Row]:
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    f"""SELECT rowid, * FROM {self.table}
                       WHERE sent_date <= ? AND rowid > ?
                       ORDER BY rowid
                       LIMIT ?""",
                    (cutoff, after_rowid, self.page_size),
                )
                return cursor.fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to query records: {e}") from e

    def _delete(self, partition_key: str, row_key: str) -> int:
        try:
            with self._connection() as conn:
                cursor = conn.execute(
                    f"DELETE FROM {self.table} WHERE partition_key = ? AND row_key = ?",
                    (partition_key, row_key),
                )
                return cursor.rowcount
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Failed to delete record: {e}") from e

    # -- RecordStore ------------------------------------------------------------

    async def create_record(self, record: MessageRecord) -> None:
        await asyncio.to_thread(self._insert, record)
        logger.debug(f"Created record {record.partition_key}/{record.row_key}")

    async def get_record(self, partition_key: str, row_key: str) -> MessageRecord:
        row = await asyncio.to_thread(
            self._select_one,
            "partition_key = ? AND row_key = ?",
            (partition_key, row_key),
        )
        if row is None:
            raise NotFound(f"Email {partition_key}/{row_key} not found")
        return self._row_to_record(row)

    async def find_by_row_key(self, row_key: str) -> MessageRecord | None:
        row = await asyncio.to_thread(self._select_one, "row_key = ?", (row_key,))
        return self._row_to_record(row) if row is not None else None

    async def query_older_than(self, cutoff: datetime) -> AsyncIterator[MessageRecord]:
        """Yield records with ``sent_date <= cutoff`` one page at a time."""
        db_cutoff = _to_db_time(cutoff)
        last_rowid = 0
        while True:
            rows = await asyncio.to_thread(self._select_page, db_cutoff, last_rowid)
            for row in rows:
                yield self._row_to_record(row)
            if len(rows) < self.page_size:
                return
            last_rowid = rows[-1]["rowid"]

    async def delete_record(self, partition_key: str, row_key: str) -> None:
        deleted = await asyncio.to_thread(self._delete, partition_key, row_key)
        if not deleted:
            logger.debug(f"Record {partition_key}/{row_key} already absent")

    async def health_check(self) -> dict[str, Any]:
        """Check that the database file can be queried."""
        try:
            await asyncio.to_thread(self._select_one, "1 = 0", ())
            return {"status": "healthy", "path": str(self.db_path), "table": self.table}
        except StoreUnavailable as e:
            logger.error(f"Record store health check failed: {e}")
            return {"status": "unhealthy", "path": str(self.db_path), "error": str(e)}
