"""Realtime (WebSocket / Redis Pub/Sub) settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RealtimeSettings(BaseSettings):
    """In-app realtime feed settings.

    Environment variables use REALTIME_ prefix.
    Example: REALTIME_REDIS_URL=redis://localhost:6379/0
    """

    redis_url: str | None = Field(
        default=None,
        description="Redis URL for cross-instance Pub/Sub (None = local-only mode)",
    )
    channel_prefix: str = Field(
        default="ws:",
        max_length=50,
        description="Prefix for Redis Pub/Sub channels",
    )
    max_connections_per_user: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum WebSocket connections per user ID",
    )

    @property
    def is_redis_configured(self) -> bool:
        """Whether Redis Pub/Sub should be used."""
        return bool(self.redis_url)

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
