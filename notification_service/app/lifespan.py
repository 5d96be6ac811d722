"""Application lifespan management.

Startup Order:
1. Logging
2. Database (connectivity check, optional table creation)
3. Realtime connection manager (Redis Pub/Sub when configured)
4. Shared HTTP client and the notification service

Shutdown Order: Reverse of startup. Channel sends abandoned at a dispatch
deadline get a bounded grace period before the HTTP client closes.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import TYPE_CHECKING

import httpx

from notification_service.core.settings import get_app_settings, get_logging_settings, get_webhook_settings
from notification_service.features.notifications.dependencies import (
    build_notification_service,
    init_notification_service,
    shutdown_notification_service,
)
from notification_service.infra.database import close_database, get_session_factory, init_database
from notification_service.infra.logging import setup_logging
from notification_service.infra.logging import shutdown as shutdown_logging
from notification_service.infra.realtime import start_connection_manager, stop_connection_manager

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app_settings = get_app_settings()
    setup_logging(get_logging_settings())
    logger.info(
        "Application starting",
        extra={
            "service": app_settings.service_name,
            "version": app_settings.version,
            "environment": app_settings.environment,
        },
    )

    await init_database()
    manager = await start_connection_manager()

    webhook_settings = get_webhook_settings()
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(webhook_settings.timeout_seconds, connect=webhook_settings.connect_timeout_seconds),
        follow_redirects=False,
    )
    init_notification_service(
        build_notification_service(
            session_factory=get_session_factory(),
            publisher=manager,
            http_client=http_client,
        ),
    )
    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Application shutting down")
        await shutdown_notification_service(timeout=SHUTDOWN_GRACE_SECONDS)
        await http_client.aclose()
        await stop_connection_manager()
        await close_database()
        logger.info("Application shutdown complete")
        shutdown_logging()
