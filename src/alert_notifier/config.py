"""Configuration management service with Pydantic Settings.

This module provides centralized configuration for the alert notifier,
loading and validating environment variables at startup. Channel settings
are not part of it: they arrive with each channel configuration and are
validated by the channel's notifier.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_CONTENT_TYPES = ("text/html", "text/plain")


class SmtpSettings(BaseSettings):
    """Outgoing email settings."""

    model_config = SettingsConfigDict(env_prefix="SMTP_")

    from_address: str = Field(
        default="admin@alerting.localhost",
        alias="SMTP_FROM_ADDRESS",
        description="Sender address of notification emails",
    )
    from_name: str = Field(
        default="Alerting",
        alias="SMTP_FROM_NAME",
        description="Sender display name of notification emails",
    )
    content_types: list[str] = Field(
        default_factory=lambda: list(SUPPORTED_CONTENT_TYPES),
        alias="SMTP_CONTENT_TYPES",
        description="Body content types to render (JSON list)",
    )

    @field_validator("from_address")
    @classmethod
    def validate_from_address(cls, v: str) -> str:
        """Validate the sender address looks like an email address."""
        if "@" not in v:
            raise ValueError("SMTP_FROM_ADDRESS must be an email address")
        return v

    @field_validator("content_types")
    @classmethod
    def validate_content_types(cls, v: list[str]) -> list[str]:
        """Validate content types are ones the email layouts exist for."""
        if not v:
            raise ValueError("SMTP_CONTENT_TYPES must not be empty")
        unsupported = [ct for ct in v if ct not in SUPPORTED_CONTENT_TYPES]
        if unsupported:
            raise ValueError(
                f"Unsupported content types {unsupported}, "
                f"expected any of {list(SUPPORTED_CONTENT_TYPES)}"
            )
        return v


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from alert_notifier.config import get_settings

        settings = get_settings()
        print(settings.external_url)
        print(settings.smtp.from_address)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    smtp: SmtpSettings = Field(default_factory=SmtpSettings)

    external_url: str = Field(
        default="http://localhost:3000",
        alias="EXTERNAL_URL",
        description="Public base URL notification links point to",
    )
    dispatch_timeout: float = Field(
        default=30.0,
        alias="DISPATCH_TIMEOUT",
        description="Seconds to wait for a delivery command to complete",
        gt=0,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    dry_run: bool = Field(
        default=False,
        alias="DRY_RUN",
        description="Render notifications without queueing emails",
    )

    @field_validator("external_url")
    @classmethod
    def validate_external_url(cls, v: str) -> str:
        """Validate external URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("EXTERNAL_URL must be an HTTP(S) URL")
        return v.rstrip("/")

    def summary(self) -> dict[str, str]:
        """Get a printable summary of the settings."""
        return {
            "external_url": self.external_url,
            "from": f"{self.smtp.from_name} <{self.smtp.from_address}>",
            "content_types": ", ".join(self.smtp.content_types),
            "dispatch_timeout": f"{self.dispatch_timeout}s",
            "log_level": self.log_level,
            "dry_run": str(self.dry_run),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
