"""SQLite record store for email metadata."""

from emailer.infrastructure.sqlite.client import SqliteRecordStore

__all__ = [
    "SqliteRecordStore",
]
