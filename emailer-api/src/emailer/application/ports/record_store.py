from __future__ import annotations

from datetime import datetime
from typing import Any, AsyncIterator, Protocol

from emailer.domain.entities.email_record import MessageRecord


class RecordStore(Protocol):
    """Key-value table of message metadata keyed by (partition, row)."""

    async def create_record(self, record: MessageRecord) -> None: ...

    async def get_record(self, partition_key: str, row_key: str) -> MessageRecord: ...

    async def find_by_row_key(self, row_key: str) -> MessageRecord | None: ...

    def query_older_than(self, cutoff: datetime) -> AsyncIterator[MessageRecord]: ...

    async def delete_record(self, partition_key: str, row_key: str) -> None: ...

    async def health_check(self) -> dict[str, Any]: ...
