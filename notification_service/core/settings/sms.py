"""SMS (Twilio) transport settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class SmsSettings(BaseSettings):
    """Twilio configuration for the SMS channel.

    Environment variables use SMS_ prefix.
    Example: SMS_ACCOUNT_SID=AC..., SMS_FROM_NUMBER=+46700000000
    """

    account_sid: str | None = Field(default=None, description="Twilio account SID")
    auth_token: SecretStr | None = Field(default=None, description="Twilio auth token")
    from_number: str | None = Field(default=None, description="Sender phone number (E.164)")

    @property
    def is_configured(self) -> bool:
        """Whether all Twilio credentials are present."""
        return bool(self.account_sid and self.auth_token and self.from_number)

    model_config = SettingsConfigDict(
        env_prefix="SMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
