"""Notification dispatch settings."""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationSettings(BaseSettings):
    """Dispatch engine configuration.

    Environment variables use NOTIFY_ prefix.
    Example: NOTIFY_DEFAULT_TIMEZONE=Europe/Stockholm, NOTIFY_DISPATCH_TIMEOUT_SECONDS=10
    """

    # ──────────────────────────────────────────────────────────────
    # Preference defaults
    # ──────────────────────────────────────────────────────────────

    default_channels: list[str] = Field(
        default_factory=lambda: ["IN_APP", "EMAIL"],
        min_length=1,
        description="Channels allowed for a notification type when the user has no stored preference",
    )
    default_timezone: str = Field(
        default="UTC",
        description="IANA timezone used when neither the quiet-hours window nor the user has one",
    )
    default_locale: str = Field(
        default="sv",
        min_length=2,
        max_length=10,
        description="Locale used for template keys when the user directory has none",
    )

    # ──────────────────────────────────────────────────────────────
    # Concurrency
    # ──────────────────────────────────────────────────────────────

    dispatch_timeout_seconds: float | None = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Deadline for channel fan-out; unfinished channels are abandoned (None = wait for all)",
    )
    max_concurrent_dispatches: int = Field(
        default=16,
        ge=1,
        le=1024,
        description="Maximum dispatches processed in parallel by send_many",
    )

    # ──────────────────────────────────────────────────────────────
    # Presentation
    # ──────────────────────────────────────────────────────────────

    sms_brand: str = Field(
        default="123hansa",
        min_length=1,
        max_length=30,
        description="Prefix for outgoing SMS messages",
    )
    push_icon: str = Field(
        default="/icons/notification-icon.png",
        description="Icon path included in push payloads",
    )
    push_badge: str = Field(
        default="/icons/badge.png",
        description="Badge path included in push payloads",
    )
    link_base_url: str = Field(
        default="",
        description="Prefix for click-through URLs in push payloads (empty = site-relative paths)",
    )

    @field_validator("default_channels", mode="before")
    @classmethod
    def normalize_channels(cls, v: object) -> object:
        """Accept comma-separated strings and normalize to uppercase."""
        if isinstance(v, str):
            v = [item for item in v.split(",") if item.strip()]
        if isinstance(v, list):
            return [str(item).strip().upper() for item in v]
        return v

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
