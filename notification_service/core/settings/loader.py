"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the process.

Usage:
    from notification_service.core.settings.loader import get_notification_settings

    settings = get_notification_settings()  # First call: loads and validates
    settings = get_notification_settings()  # Subsequent calls: returns cached instance

Testing:
    In tests, clear the cache to force reload:
    get_notification_settings.cache_clear()
"""

from __future__ import annotations

from functools import lru_cache

from .app import AppSettings
from .database import DatabaseSettings
from .directory import UserDirectorySettings
from .email import EmailSettings
from .logs import LoggingSettings
from .notifications import NotificationSettings
from .push import PushSettings
from .realtime import RealtimeSettings
from .sms import SmsSettings
from .webhooks import WebhookSettings


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """Get cached application settings."""
    return AppSettings()


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings."""
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings."""
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_notification_settings() -> NotificationSettings:
    """Get cached notification dispatch settings."""
    return NotificationSettings()


@lru_cache(maxsize=1)
def get_email_settings() -> EmailSettings:
    """Get cached SMTP settings."""
    return EmailSettings()


@lru_cache(maxsize=1)
def get_sms_settings() -> SmsSettings:
    """Get cached Twilio settings."""
    return SmsSettings()


@lru_cache(maxsize=1)
def get_push_settings() -> PushSettings:
    """Get cached VAPID settings."""
    return PushSettings()


@lru_cache(maxsize=1)
def get_webhook_settings() -> WebhookSettings:
    """Get cached webhook delivery settings."""
    return WebhookSettings()


@lru_cache(maxsize=1)
def get_realtime_settings() -> RealtimeSettings:
    """Get cached realtime settings."""
    return RealtimeSettings()


@lru_cache(maxsize=1)
def get_user_directory_settings() -> UserDirectorySettings:
    """Get cached user directory settings."""
    return UserDirectorySettings()


def clear_all_caches() -> None:
    """Clear every settings cache (useful in tests)."""
    for loader in (
        get_app_settings,
        get_db_settings,
        get_logging_settings,
        get_notification_settings,
        get_email_settings,
        get_sms_settings,
        get_push_settings,
        get_webhook_settings,
        get_realtime_settings,
        get_user_directory_settings,
    ):
        loader.cache_clear()
