"""Application configuration settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

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
        default="sqlite:///./notifications.db",
        description="Database connection URL used by SQLAlchemy to connect to the DB",
        min_length=1,
    )
    secret_key: str = Field(
        default="change-me",
        description="Secret key used to verify the bearer tokens issued by the identity service",
        min_length=1,
    )
    app_timezone: str | None = Field(
        default=None,
        description="IANA timezone name (or UTC offset) used for wall-clock comparisons",
    )

    sendgrid_api_key: str | None = Field(
        default=None,
        description="SendGrid API key used for sending notification emails via the REST API",
    )
    sendgrid_sender: str | None = Field(
        default=None,
        description="Email address that will appear as the sender of notification emails",
        min_length=3,
    )
    twilio_account_sid: str | None = Field(default=None, description="Twilio account SID")
    twilio_auth_token: str | None = Field(default=None, description="Twilio auth token")
    twilio_sms_number: str | None = Field(
        default=None, description="Twilio phone number used as the SMS sender"
    )
    firebase_credentials_path: str | None = Field(
        default=None,
        description=(
            "Path to a Firebase service account file. When empty the default "
            "application credentials are used"
        ),
    )

    retry_max_attempts: int = Field(
        default=3, description="Maximum number of automatic retry passes", ge=0
    )
    retry_base_delay_minutes: float = Field(
        default=5, description="Base delay of the exponential retry backoff", gt=0
    )
    retry_batch_size: int = Field(
        default=100, description="Maximum notifications processed per retry sweep", gt=0
    )
    channel_send_timeout_seconds: float = Field(
        default=10, description="Upper bound for a single provider call", gt=0
    )
    dispatch_max_concurrency: int = Field(
        default=50, description="Maximum number of concurrent background dispatches", gt=0
    )
    quiet_hours_policy: Literal["proceed", "defer"] = Field(
        default="proceed",
        description=(
            "What to do when a notification is created during the recipient's quiet "
            "hours: deliver right away or defer channel dispatch until the window ends"
        ),
    )
    retry_sweep_interval_seconds: float = Field(
        default=60, description="Interval of the in-process retry sweep (0 disables it)", ge=0
    )
    expiry_cleanup_interval_seconds: float = Field(
        default=300,
        description="Interval of the in-process expiry cleanup (0 disables it)",
        ge=0,
    )

    @model_validator(mode="after")
    def _validate_provider_pairs(self) -> "Settings":
        if bool(self.sendgrid_api_key) ^ bool(self.sendgrid_sender):
            raise ValueError(
                "SENDGRID_API_KEY and SENDGRID_SENDER must both be provided to enable email"
            )
        if self.sendgrid_sender and "@" not in self.sendgrid_sender:
            raise ValueError("SENDGRID_SENDER must be a valid email address")
        if bool(self.twilio_account_sid) ^ bool(self.twilio_auth_token):
            raise ValueError(
                "TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN must both be provided to enable SMS"
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
