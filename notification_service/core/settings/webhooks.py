"""Webhook delivery configuration settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookSettings(BaseSettings):
    """Configuration for outbound notification webhooks.

    Controls HTTP timeouts and payload limits for webhook deliveries.
    """

    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=300,
        description="Timeout for webhook HTTP requests (seconds)",
    )
    connect_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Connection timeout for webhook HTTP requests (seconds)",
    )
    user_agent: str = Field(
        default="Notification-Webhook/1.0",
        description="User-Agent header sent with webhook requests",
    )
    max_payload_size_bytes: int = Field(
        default=1048576,  # 1MB
        ge=1024,
        le=10485760,  # 10MB max
        description="Maximum webhook payload size in bytes",
    )
    secret_bytes: int = Field(
        default=32,
        ge=16,
        le=128,
        description="Random bytes used when generating a webhook secret",
    )

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
