"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"


class Settings(BaseSettings):
    """Application configuration values loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE, env_file_encoding=ENV_FILE_ENCODING, extra="ignore"
    )

    database_url: str = Field(
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        description="Secret key for signing JWT tokens", min_length=1
    )
    access_token_expire_minutes: int = Field(
        default=60,
        description="Number of minutes before access tokens expire",
        gt=0,
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Public URL of the web client, used to build absolute action links",
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: str = Field(default="INFO", description="Root log level for scripts")

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending transactional emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of transactional messages",
        min_length=3,
    )

    vapid_public_key: str | None = Field(
        default=None, description="VAPID public key shared with browsers"
    )
    vapid_private_key: str | None = Field(
        default=None, description="VAPID private key used to sign push requests"
    )
    vapid_subject: str = Field(
        default="mailto:notifications@projectflow.app",
        description="Contact URI sent as the VAPID 'sub' claim",
    )

    notification_max_retries: int = Field(
        default=3,
        description="Retry ceiling applied uniformly to every delivery channel",
        ge=0,
    )
    notification_retry_base_seconds: int = Field(
        default=60,
        description="Backoff base; a retry waits base * 2^retry_count seconds",
        gt=0,
    )
    notification_batch_size: int = Field(
        default=10,
        description="Maximum number of queue entries claimed per channel per cycle",
        gt=0,
    )
    notification_delivery_timeout_seconds: float = Field(
        default=10.0,
        description="Hard timeout applied to a single provider call",
        gt=0,
    )
    notification_worker_interval_seconds: int = Field(
        default=60,
        description="Default interval between queue processing cycles",
        gt=0,
    )
    notification_retention_days: int = Field(
        default=90,
        description="Read notifications older than this are purged by the cleanup job",
        gt=0,
    )

    @model_validator(mode="after")
    def _validate_provider_pairs(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        if bool(self.vapid_public_key) ^ bool(self.vapid_private_key):
            raise ValueError(
                "VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY must both be provided to enable push"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
