"""User directory client settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class UserDirectorySettings(BaseSettings):
    """Settings for the HTTP user directory lookup.

    Environment variables use USER_DIRECTORY_ prefix.
    Example: USER_DIRECTORY_BASE_URL=http://users:8000/api/v1
    """

    base_url: str | None = Field(
        default=None,
        description="Base URL of the user service (GET {base_url}/users/{id}/contact)",
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout for directory lookups",
    )

    model_config = SettingsConfigDict(
        env_prefix="USER_DIRECTORY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
