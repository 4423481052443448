"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Emailer API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # Record store (SQLite)
    sqlite_db_path: str = "/app/data/emails.db"
    records_table: str = "Emails"

    # Blob store (S3 / MinIO)
    s3_endpoint: str | None = None
    s3_region: str = "us-east-1"
    s3_access_key: str | None = None
    s3_secret_key: SecretStr | None = None
    s3_bucket: str = "emailer"
    s3_prefix: str = "email-attachments"
    s3_use_ssl: bool = False
    s3_force_path_style: bool = True

    # Delivery provider (SendGrid)
    sendgrid_api_key: SecretStr | None = None
    sendgrid_base_url: str = "https://api.sendgrid.com/v3"
    sendgrid_timeout_seconds: float = 30.0

    # Attachment caps
    max_attachment_bytes: int = 10 * 1024 * 1024
    max_attachments: int = 5

    # Retention sweep
    retention_hours: int = 48
    sweep_interval_seconds: int = 300
    sweep_max_attempts: int = Field(default=5, ge=1)
    sweep_initial_backoff_seconds: float = 2.0

    @computed_field
    @property
    def sendgrid_configured(self) -> bool:
        """Whether a non-empty SendGrid API key is present."""
        return bool(self.sendgrid_api_key and self.sendgrid_api_key.get_secret_value())


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
