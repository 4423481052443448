from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RecordKey:
    partition_key: str  # sender address
    row_key: str


@dataclass(frozen=True)
class MessageRecord:
    partition_key: str
    row_key: str
    to_email: str
    subject: str
    sent_date: datetime  # UTC, assigned on save

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.partition_key, self.row_key)
