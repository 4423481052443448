from __future__ import annotations

from typing import Any, AsyncIterator, Protocol

from emailer.domain.entities.attachment import BlobMetadata


class BlobStore(Protocol):
    """Binary store for attachment payloads keyed by blob id."""

    async def put_blob(self, blob_id: str, data: bytes, content_type: str) -> None: ...

    def list_blobs(self, prefix: str = "", with_content_type: bool = False) -> AsyncIterator[BlobMetadata]:
        """Yield blobs whose id starts with ``prefix``.

        ``content_type`` is only filled in when ``with_content_type`` is set;
        stores may need an extra request per blob to read it.
        """
        ...

    async def get_blob_content(self, blob_id: str) -> bytes: ...

    async def delete_blob(self, blob_id: str) -> None: ...

    async def health_check(self) -> dict[str, Any]: ...
