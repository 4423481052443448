from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

# Blob ids look like "{row_key}_{index}_{file_name}". Row keys are UUID strings
# and never contain "_", so the first two separators are unambiguous.
SEPARATOR = "_"


@dataclass(frozen=True)
class AttachmentKey:
    row_key: str
    index: int
    file_name: str

    @property
    def blob_id(self) -> str:
        return make_blob_id(self.row_key, self.index, self.file_name)


@dataclass(frozen=True)
class BlobMetadata:
    blob_id: str
    size: int
    content_type: Optional[str]
    created_on: datetime


def owner_prefix(row_key: str) -> str:
    """Prefix shared by every blob owned by the record with ``row_key``."""
    if not row_key or SEPARATOR in row_key:
        raise ValueError(f"Invalid row key: {row_key!r}")
    return f"{row_key}{SEPARATOR}"


def make_blob_id(row_key: str, index: int, file_name: str) -> str:
    if index < 0:
        raise ValueError(f"Attachment index must be non-negative, got {index}")
    if not file_name:
        raise ValueError("Attachment file name is required")
    return f"{owner_prefix(row_key)}{index}{SEPARATOR}{file_name}"


def parse_blob_id(blob_id: str) -> AttachmentKey:
    """Split a blob id back into its owning row key, index and file name."""
    parts = blob_id.split(SEPARATOR, 2)
    if len(parts) != 3 or not parts[0] or not parts[2] or not parts[1].isdigit():
        raise ValueError(f"Unparseable attachment blob id: {blob_id!r}")
    row_key, index, file_name = parts
    return AttachmentKey(row_key=row_key, index=int(index), file_name=file_name)
