"""Build the long-lived store and provider handles from settings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from loguru import logger

from emailer.application.ports.blob_store import BlobStore
from emailer.application.ports.delivery_provider import DeliveryProvider
from emailer.application.ports.record_store import RecordStore
from emailer.application.retry import RetryPolicy
from emailer.application.use_cases.persist_email import EmailPersistence
from emailer.application.use_cases.retention_sweep import RetentionSweeper
from emailer.application.use_cases.send_email import SendEmailUseCase
from emailer.infrastructure.attachments.s3_store import s3_store_from_settings
from emailer.infrastructure.email.providers.sendgrid import SendGridProvider
from emailer.infrastructure.settings import Settings
from emailer.infrastructure.sqlite.client import SqliteRecordStore


@dataclass
class Services:
    """Handles shared for the lifetime of the process."""

    settings: Settings
    records: RecordStore
    blobs: BlobStore
    provider: DeliveryProvider | None = None

    @property
    def persistence(self) -> EmailPersistence:
        return EmailPersistence(
            self.records,
            self.blobs,
            max_attachment_bytes=self.settings.max_attachment_bytes,
            max_attachments=self.settings.max_attachments,
        )

    @property
    def send_email(self) -> SendEmailUseCase:
        if self.provider is None:
            raise RuntimeError("Delivery provider is not configured")
        return SendEmailUseCase(self.persistence, self.provider)

    def sweeper(self, retry_policy: RetryPolicy | None = None) -> RetentionSweeper:
        policy = retry_policy or RetryPolicy(
            max_attempts=self.settings.sweep_max_attempts,
            initial_delay=self.settings.sweep_initial_backoff_seconds,
        )
        return RetentionSweeper(
            self.records,
            self.blobs,
            retention=timedelta(hours=self.settings.retention_hours),
            retry_policy=policy,
        )


def build_storage(settings: Settings) -> tuple[SqliteRecordStore, BlobStore]:
    records = SqliteRecordStore(settings.sqlite_db_path, table=settings.records_table)
    blobs = s3_store_from_settings(settings)
    blobs.ensure_bucket()
    return records, blobs


def build_services(settings: Settings, with_provider: bool = True) -> Services:
    """Wire stores and provider. A missing SendGrid key fails here, at startup."""
    records, blobs = build_storage(settings)
    provider = None
    if with_provider:
        api_key = settings.sendgrid_api_key.get_secret_value() if settings.sendgrid_api_key else None
        provider = SendGridProvider(
            api_key,
            base_url=settings.sendgrid_base_url,
            timeout=settings.sendgrid_timeout_seconds,
        )
    logger.info(f"Services initialized (provider={'sendgrid' if provider else 'none'})")
    return Services(settings=settings, records=records, blobs=blobs, provider=provider)
