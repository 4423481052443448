"""Attachment blob storage."""

from emailer.infrastructure.attachments.s3_store import (
    S3BlobStore,
    S3StoreConfig,
    s3_store_from_settings,
)

__all__ = [
    "S3BlobStore",
    "S3StoreConfig",
    "s3_store_from_settings",
]
