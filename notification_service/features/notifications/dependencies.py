"""Service wiring and FastAPI dependencies for the notifications feature.

``build_notification_service`` assembles the dispatcher, stores and channel
table from settings. The application lifespan calls
``init_notification_service`` once; route handlers receive the instance via
``NotificationServiceDep``.

Example usage:
    from notification_service.features.notifications.dependencies import (
        CurrentUserIdDep,
        NotificationServiceDep,
    )

    @router.get("/unread-count")
    async def unread_count(user_id: CurrentUserIdDep, service: NotificationServiceDep) -> UnreadCount:
        return UnreadCount(unread_count=await service.get_unread_count(user_id))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Header
import httpx

from notification_service.core.exceptions import ServiceUnavailableException
from notification_service.core.settings import (
    get_email_settings,
    get_notification_settings,
    get_push_settings,
    get_sms_settings,
    get_user_directory_settings,
    get_webhook_settings,
)
from notification_service.features.notifications.channels import (
    EmailSender,
    InAppSender,
    PushSender,
    SMSSender,
    WebhookSender,
)
from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.enums import Channel
from notification_service.features.notifications.preferences import PreferenceResolver
from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator
from notification_service.features.notifications.service import NotificationService
from notification_service.features.notifications.store import (
    SqlNotificationStore,
    SqlPreferenceStore,
    SqlSubscriptionStore,
)
from notification_service.features.notifications.subscriptions import SubscriptionRegistry
from notification_service.infra.directory import HttpUserDirectory, NullUserDirectory
from notification_service.infra.email import SmtpEmailTransport
from notification_service.infra.push import WebPushTransport
from notification_service.infra.sms import TwilioSMSTransport

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.features.notifications.channels import ChannelSender
    from notification_service.features.notifications.interfaces import (
        EmailTransport,
        PushTransport,
        RealtimePublisher,
        SMSTransport,
        UserDirectory,
    )

logger = logging.getLogger(__name__)

_service: NotificationService | None = None


def build_notification_service(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    publisher: RealtimePublisher,
    http_client: httpx.AsyncClient,
    directory: UserDirectory | None = None,
    email_transport: EmailTransport | None = None,
    sms_transport: SMSTransport | None = None,
    push_transport: PushTransport | None = None,
) -> NotificationService:
    """Assemble a NotificationService from settings.

    Transports not passed explicitly are created from their settings when
    configured. A channel without a transport is left out of the channel
    table, so requests for it record a "channel not configured" outcome.
    """
    settings = get_notification_settings()
    webhook_settings = get_webhook_settings()
    default_channels = [Channel(c) for c in settings.default_channels]

    notification_store = SqlNotificationStore(session_factory)
    preference_store = SqlPreferenceStore(session_factory, default_channels)
    registry = SubscriptionRegistry(
        SqlSubscriptionStore(session_factory),
        webhook_secret_bytes=webhook_settings.secret_bytes,
    )

    if directory is None:
        directory = _directory_from_settings(http_client)
    if email_transport is None and get_email_settings().enabled:
        email_transport = SmtpEmailTransport(get_email_settings())
    if sms_transport is None and get_sms_settings().is_configured:
        sms_transport = TwilioSMSTransport(get_sms_settings())
    if push_transport is None and get_push_settings().is_configured:
        push_transport = WebPushTransport(get_push_settings())

    senders: dict[Channel, ChannelSender] = {
        Channel.IN_APP: InAppSender(publisher, notification_store),
        Channel.WEBHOOK: WebhookSender(
            http_client,
            registry,
            user_agent=webhook_settings.user_agent,
            timeout=httpx.Timeout(
                webhook_settings.timeout_seconds,
                connect=webhook_settings.connect_timeout_seconds,
            ),
            max_payload_size_bytes=webhook_settings.max_payload_size_bytes,
        ),
    }
    if email_transport is not None:
        senders[Channel.EMAIL] = EmailSender(email_transport)
    if sms_transport is not None:
        senders[Channel.SMS] = SMSSender(sms_transport, settings.sms_brand)
    if push_transport is not None:
        senders[Channel.PUSH] = PushSender(
            push_transport,
            registry,
            icon=settings.push_icon,
            badge=settings.push_badge,
            link_base_url=settings.link_base_url,
        )

    dispatcher = NotificationDispatcher(
        resolver=PreferenceResolver(preference_store, default_channels),
        evaluator=QuietHoursEvaluator(settings.default_timezone),
        store=notification_store,
        directory=directory,
        senders=senders,
        default_locale=settings.default_locale,
        default_timeout=settings.dispatch_timeout_seconds,
    )
    logger.info(
        "Notification service configured",
        extra={"channels": sorted(str(c) for c in senders)},
    )
    return NotificationService(
        dispatcher=dispatcher,
        store=notification_store,
        preference_store=preference_store,
        registry=registry,
        publisher=publisher,
        max_concurrent_dispatches=settings.max_concurrent_dispatches,
    )


def _directory_from_settings(http_client: httpx.AsyncClient) -> UserDirectory:
    directory_settings = get_user_directory_settings()
    if not directory_settings.base_url:
        logger.warning("No user directory configured; EMAIL and SMS will report missing contact info")
        return NullUserDirectory()
    return HttpUserDirectory(
        http_client,
        directory_settings.base_url,
        timeout=directory_settings.timeout_seconds,
    )


def init_notification_service(service: NotificationService) -> NotificationService:
    global _service
    _service = service
    return service


async def shutdown_notification_service(timeout: float | None = 5.0) -> None:
    """Drain abandoned channel sends and forget the instance."""
    global _service
    if _service is not None:
        await _service.shutdown(timeout=timeout)
        _service = None


def get_notification_service() -> NotificationService:
    """Return the application's NotificationService.

    Raises:
        ServiceUnavailableException: The lifespan has not initialized it.
    """
    if _service is None:
        raise ServiceUnavailableException(
            detail="Notification service is not initialized",
            extra={"service": "notifications"},
        )
    return _service


def get_current_user_id(
    x_user_id: Annotated[str, Header(min_length=1, max_length=255, pattern=r"\S", description="Caller's user id")],
) -> str:
    """Caller identity from the ``X-User-ID`` header; blank values are rejected."""
    return x_user_id.strip()


CurrentUserIdDep = Annotated[str, Depends(get_current_user_id)]
NotificationServiceDep = Annotated[NotificationService, Depends(get_notification_service)]


__all__ = [
    "CurrentUserIdDep",
    "NotificationServiceDep",
    "build_notification_service",
    "get_current_user_id",
    "get_notification_service",
    "init_notification_service",
    "shutdown_notification_service",
]
