from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from emailer.domain.entities.attachment import BlobMetadata
from emailer.domain.errors import NotFound, StoreUnavailable
from emailer.infrastructure.settings import Settings

_MISSING_CODES = {"NoSuchKey", "NotFound", "404"}


@dataclass(frozen=True)
class S3StoreConfig:
    endpoint: Optional[str]
    region: str
    access_key: Optional[str]
    secret_key: Optional[str]
    bucket: str
    prefix: str = "email-attachments"
    use_ssl: bool = False
    force_path_style: bool = True


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", "Unknown"))


class S3BlobStore:
    """Attachment blobs stored as objects under ``{prefix}/{blob_id}``."""

    def __init__(self, cfg: S3StoreConfig, page_size: int = 1000) -> None:
        self.cfg = cfg
        self.page_size = page_size
        s3_cfg = Config(s3={"addressing_style": "path"} if cfg.force_path_style else {})
        self.client = boto3.client(
            "s3",
            endpoint_url=cfg.endpoint,
            aws_access_key_id=cfg.access_key,
            aws_secret_access_key=cfg.secret_key,
            region_name=cfg.region,
            use_ssl=cfg.use_ssl,
            config=s3_cfg,
        )

    def _key(self, blob_id: str) -> str:
        return f"{self.cfg.prefix}/{blob_id}"

    def _blob_id(self, key: str) -> str:
        return key[len(self.cfg.prefix) + 1:]

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self.client.head_bucket(Bucket=self.cfg.bucket)
            return
        except ClientError as e:
            if _error_code(e) not in _MISSING_CODES | {"NoSuchBucket"}:
                raise StoreUnavailable(f"Failed to check bucket {self.cfg.bucket}: {_error_code(e)}") from e
        except BotoCoreError as e:
            raise StoreUnavailable(f"Failed to check bucket {self.cfg.bucket}: {e}") from e

        try:
            self.client.create_bucket(Bucket=self.cfg.bucket)
            logger.info(f"Created bucket {self.cfg.bucket}")
        except (BotoCoreError, ClientError) as e:
            raise StoreUnavailable(f"Failed to create bucket {self.cfg.bucket}: {e}") from e

    async def put_blob(self, blob_id: str, data: bytes, content_type: str) -> None:
        key = self._key(blob_id)
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.cfg.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed: key={key}, error={e}")
            raise StoreUnavailable(f"Failed to upload blob {blob_id}: {e}") from e
        logger.debug(f"Uploaded blob {key} ({len(data)} bytes)")

    def _list_page(self, prefix: str, token: Optional[str]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "Bucket": self.cfg.bucket,
            "Prefix": f"{self.cfg.prefix}/{prefix}",
            "MaxKeys": self.page_size,
        }
        if token:
            kwargs["ContinuationToken"] = token
        return self.client.list_objects_v2(**kwargs)

    def _content_type(self, key: str) -> Optional[str]:
        try:
            return self.client.head_object(Bucket=self.cfg.bucket, Key=key).get("ContentType")
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return None
            raise

    async def list_blobs(self, prefix: str = "", with_content_type: bool = False) -> AsyncIterator[BlobMetadata]:
        """Yield blob metadata one listing page at a time.

        ListObjectsV2 does not return ContentType; ``with_content_type`` adds
        one HEAD per object to read it.
        """
        token: Optional[str] = None
        while True:
            try:
                page = await asyncio.to_thread(self._list_page, prefix, token)
            except (BotoCoreError, ClientError) as e:
                raise StoreUnavailable(f"Failed to list blobs: {e}") from e

            for obj in page.get("Contents", []):
                content_type = None
                if with_content_type:
                    try:
                        content_type = await asyncio.to_thread(self._content_type, obj["Key"])
                    except (BotoCoreError, ClientError) as e:
                        raise StoreUnavailable(f"Failed to read blob properties: {e}") from e
                yield BlobMetadata(
                    blob_id=self._blob_id(obj["Key"]),
                    size=obj.get("Size", 0),
                    content_type=content_type,
                    created_on=obj["LastModified"],
                )

            if not page.get("IsTruncated"):
                return
            token = page.get("NextContinuationToken")

    def _download(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.cfg.bucket, Key=key)
        return response["Body"].read()

    async def get_blob_content(self, blob_id: str) -> bytes:
        key = self._key(blob_id)
        try:
            return await asyncio.to_thread(self._download, key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                raise NotFound(f"Blob {blob_id} not found") from e
            raise StoreUnavailable(f"Failed to download blob {blob_id}: {_error_code(e)}") from e
        except BotoCoreError as e:
            raise StoreUnavailable(f"Failed to download blob {blob_id}: {e}") from e

    async def delete_blob(self, blob_id: str) -> None:
        key = self._key(blob_id)
        try:
            # S3 answers 204 for absent keys, so this is idempotent as-is.
            await asyncio.to_thread(self.client.delete_object, Bucket=self.cfg.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _MISSING_CODES:
                return
            raise StoreUnavailable(f"Failed to delete blob {blob_id}: {_error_code(e)}") from e
        except BotoCoreError as e:
            raise StoreUnavailable(f"Failed to delete blob {blob_id}: {e}") from e

    async def health_check(self) -> dict[str, Any]:
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.cfg.bucket)
            return {"status": "healthy", "bucket": self.cfg.bucket, "prefix": self.cfg.prefix}
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Blob store health check failed: {e}")
            return {"status": "unhealthy", "bucket": self.cfg.bucket, "error": str(e)}


def s3_store_from_settings(settings: Settings) -> S3BlobStore:
    cfg = S3StoreConfig(
        endpoint=settings.s3_endpoint,
        region=settings.s3_region,
        access_key=settings.s3_access_key,
        secret_key=settings.s3_secret_key.get_secret_value() if settings.s3_secret_key else None,
        bucket=settings.s3_bucket,
        prefix=settings.s3_prefix,
        use_ssl=settings.s3_use_ssl,
        force_path_style=settings.s3_force_path_style,
    )
    return S3BlobStore(cfg)
