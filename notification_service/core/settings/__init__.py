"""Modular Pydantic Settings v2 configuration.

One frozen settings class per domain, each read from environment variables
with its own prefix (APP_, LOG_, DB_, NOTIFY_, EMAIL_, SMS_, PUSH_, WEBHOOK_,
REALTIME_, USER_DIRECTORY_) and an optional .env file.

Import settings via cached loaders:
    from notification_service.core.settings import get_notification_settings
"""

from __future__ import annotations

from .loader import (
    clear_all_caches,
    get_app_settings,
    get_db_settings,
    get_email_settings,
    get_logging_settings,
    get_notification_settings,
    get_push_settings,
    get_realtime_settings,
    get_sms_settings,
    get_user_directory_settings,
    get_webhook_settings,
)

__all__ = [
    "clear_all_caches",
    "get_app_settings",
    "get_db_settings",
    "get_email_settings",
    "get_logging_settings",
    "get_notification_settings",
    "get_push_settings",
    "get_realtime_settings",
    "get_sms_settings",
    "get_user_directory_settings",
    "get_webhook_settings",
]
