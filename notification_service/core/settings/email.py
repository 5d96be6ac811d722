"""Email (SMTP) transport settings."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class EmailSettings(BaseSettings):
    """SMTP configuration for the email channel.

    Environment variables use EMAIL_ prefix.
    Example: EMAIL_SMTP_HOST=smtp.example.com, EMAIL_SMTP_PORT=587
    """

    enabled: bool = Field(default=True, description="Enable the SMTP transport")
    smtp_host: str = Field(default="localhost", description="SMTP server hostname")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_username: str | None = Field(default=None, description="SMTP username")
    smtp_password: SecretStr | None = Field(default=None, description="SMTP password")
    use_tls: bool = Field(default=True, description="Use STARTTLS (port 587)")
    use_ssl: bool = Field(default=False, description="Use implicit TLS (port 465)")
    timeout: float = Field(default=30.0, gt=0, le=300, description="SMTP timeout in seconds")
    default_from_email: str = Field(
        default="noreply@123hansa.se",
        description="Sender address for notification emails",
    )
    default_from_name: str | None = Field(default="123hansa", description="Sender display name")

    @property
    def from_header(self) -> str:
        """Formatted From header value."""
        if self.default_from_name:
            return f"{self.default_from_name} <{self.default_from_email}>"
        return self.default_from_email

    model_config = SettingsConfigDict(
        env_prefix="EMAIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )
