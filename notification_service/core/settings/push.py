"""Web Push (VAPID) transport settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PushSettings(BaseSettings):
    """VAPID configuration for the push channel.

    Environment variables use PUSH_ prefix.
    Example: PUSH_VAPID_PRIVATE_KEY=..., PUSH_VAPID_SUBJECT=mailto:noreply@123hansa.se
    """

    vapid_public_key: str | None = Field(default=None, description="VAPID public key (base64url)")
    vapid_private_key: SecretStr | None = Field(
        default=None, description="VAPID private key (base64url or PEM path)",
    )
    vapid_subject: str = Field(
        default="mailto:noreply@123hansa.se",
        description="VAPID 'sub' claim (mailto: or https: URL)",
    )
    timeout_seconds: float = Field(
        default=10.0, gt=0, le=120, description="Timeout for push service requests",
    )

    @property
    def is_configured(self) -> bool:
        """Whether VAPID keys are present."""
        return bool(self.vapid_public_key and self.vapid_private_key)

    model_config = SettingsConfigDict(
        env_prefix="PUSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
