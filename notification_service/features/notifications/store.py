"""SQLAlchemy-backed stores for the dispatch engine.

Each operation opens and commits its own session, so concurrent channel
tasks within one dispatch never share a session.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from notification_service.features.notifications.enums import Channel, DispatchState, NotificationType, Priority
from notification_service.features.notifications.models import (
    Notification,
    PushSubscription,
    UserNotificationPreference,
    WebhookEndpoint,
)
from notification_service.features.notifications.repository import (
    get_notification_repository,
    get_push_subscription_repository,
    get_user_notification_preference_repository,
    get_webhook_endpoint_repository,
)
from notification_service.features.notifications.schemas import (
    DeviceInfo,
    NotificationRecord,
    PreferencesUpdate,
    PushKeys,
    PushSubscriptionRecord,
    QuietHours,
    TypePreference,
    UserPreferences,
    WebhookEndpointRecord,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from notification_service.features.notifications.interfaces import NewNotification

logger = logging.getLogger(__name__)


def notification_to_record(notification: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=notification.id,
        user_id=notification.user_id,
        type=NotificationType(notification.notification_type),
        title=notification.title,
        message=notification.message,
        data=notification.data or {},
        priority=Priority(notification.priority),
        channels=[Channel(c) for c in notification.channels],
        status=DispatchState(notification.status),
        created_at=notification.created_at,
        read_at=notification.read_at,
        expires_at=notification.expires_at,
        scheduled_for=notification.scheduled_for,
    )


def preference_to_schema(row: UserNotificationPreference) -> TypePreference:
    quiet_hours = None
    if row.quiet_hours_start and row.quiet_hours_end:
        quiet_hours = QuietHours(
            start=row.quiet_hours_start,
            end=row.quiet_hours_end,
            timezone=row.quiet_hours_timezone,
        )
    return TypePreference(
        enabled=row.enabled,
        channels=[Channel(c) for c in row.channels],
        quiet_hours=quiet_hours,
    )


def subscription_to_record(row: PushSubscription) -> PushSubscriptionRecord:
    device_info = None
    if row.user_agent or row.platform:
        device_info = DeviceInfo(user_agent=row.user_agent, platform=row.platform)
    return PushSubscriptionRecord(
        user_id=row.user_id,
        endpoint=row.endpoint,
        keys=PushKeys(p256dh=row.p256dh, auth=row.auth),
        device_info=device_info,
        created_at=row.created_at,
    )


class SqlNotificationStore:
    """NotificationStore over the notifications table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._repo = get_notification_repository()

    async def create(self, values: NewNotification) -> NotificationRecord:
        async with self._session_factory() as session:
            notification = await self._repo.create(
                session,
                Notification(
                    user_id=values.user_id,
                    notification_type=str(values.type),
                    title=values.title,
                    message=values.message,
                    data=values.data,
                    priority=str(values.priority),
                    channels=[str(c) for c in values.channels],
                    status=str(values.status),
                    expires_at=values.expires_at,
                    scheduled_for=values.scheduled_for,
                ),
            )
            await session.commit()
            return notification_to_record(notification)

    async def mark_read(self, record_id: UUID, user_id: str) -> NotificationRecord | None:
        async with self._session_factory() as session:
            notification = await self._repo.mark_as_read(session, record_id, user_id)
            await session.commit()
            return notification_to_record(notification) if notification else None

    async def list(
        self,
        user_id: str,
        *,
        page: int,
        page_size: int,
        types: Sequence[NotificationType] | None = None,
    ) -> tuple[list[NotificationRecord], int]:
        async with self._session_factory() as session:
            items, total = await self._repo.list_for_user(
                session,
                user_id,
                notification_types=[str(t) for t in types] if types else None,
                limit=page_size,
                offset=(page - 1) * page_size,
            )
            return [notification_to_record(n) for n in items], total

    async def count_unread(self, user_id: str) -> int:
        async with self._session_factory() as session:
            return await self._repo.count_unread(session, user_id)


class SqlPreferenceStore:
    """PreferenceStore over user_notification_preferences.

    Args:
        session_factory: Session factory; one session per call.
        default_channels: Channels given to a type that is created by a
            partial update without an explicit channel list.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_channels: Sequence[Channel],
    ) -> None:
        self._session_factory = session_factory
        self._default_channels = [str(c) for c in default_channels]
        self._repo = get_user_notification_preference_repository()

    async def get(self, user_id: str) -> UserPreferences:
        async with self._session_factory() as session:
            rows = await self._repo.list_for_user(session, user_id)
            return UserPreferences(
                user_id=user_id,
                types={NotificationType(row.notification_type): preference_to_schema(row) for row in rows},
            )

    async def update(self, user_id: str, update: PreferencesUpdate) -> UserPreferences:
        try:
            await self._apply(user_id, update)
        except IntegrityError:
            # A concurrent update inserted the same (user, type) row first
            logger.info("Preference insert raced, retrying as update", extra={"user_id": user_id})
            await self._apply(user_id, update)
        return await self.get(user_id)

    async def _apply(self, user_id: str, update: PreferencesUpdate) -> None:
        async with self._session_factory() as session:
            for notification_type, change in update.types.items():
                row = await self._repo.get_for_user_and_type(session, user_id, str(notification_type))
                if row is None:
                    row = UserNotificationPreference(
                        user_id=user_id,
                        notification_type=str(notification_type),
                        enabled=True,
                        channels=list(self._default_channels),
                    )
                    session.add(row)

                if change.enabled is not None:
                    row.enabled = change.enabled
                if change.channels is not None:
                    row.channels = [str(c) for c in dict.fromkeys(change.channels)]
                if change.clear_quiet_hours:
                    row.quiet_hours_start = row.quiet_hours_end = row.quiet_hours_timezone = None
                elif change.quiet_hours is not None:
                    row.quiet_hours_start = change.quiet_hours.start
                    row.quiet_hours_end = change.quiet_hours.end
                    row.quiet_hours_timezone = change.quiet_hours.timezone
            await session.commit()


class SqlSubscriptionStore:
    """Push subscriptions and webhook endpoints."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._push_repo = get_push_subscription_repository()
        self._webhook_repo = get_webhook_endpoint_repository()

    async def list_push(self, user_id: str) -> list[PushSubscriptionRecord]:
        async with self._session_factory() as session:
            rows = await self._push_repo.list_for_user(session, user_id)
            return [subscription_to_record(row) for row in rows]

    async def upsert_push(self, record: PushSubscriptionRecord) -> PushSubscriptionRecord:
        try:
            return await self._upsert_push(record)
        except IntegrityError:
            return await self._upsert_push(record)

    async def _upsert_push(self, record: PushSubscriptionRecord) -> PushSubscriptionRecord:
        device_info = record.device_info or DeviceInfo()
        async with self._session_factory() as session:
            row = await self._push_repo.get_by_endpoint(session, record.endpoint)
            if row is None:
                row = PushSubscription(endpoint=record.endpoint)
                session.add(row)
            # An endpoint re-registered by another login moves to that user
            row.user_id = record.user_id
            row.p256dh = record.keys.p256dh
            row.auth = record.keys.auth
            row.user_agent = device_info.user_agent
            row.platform = device_info.platform
            await session.flush()
            await session.refresh(row)
            await session.commit()
            return subscription_to_record(row)

    async def delete_push(self, endpoint: str, *, user_id: str | None = None) -> bool:
        async with self._session_factory() as session:
            removed = await self._push_repo.delete_by_endpoint(session, endpoint, user_id=user_id)
            await session.commit()
            return removed > 0

    async def list_webhooks(self, user_id: str) -> list[WebhookEndpointRecord]:
        async with self._session_factory() as session:
            rows = await self._webhook_repo.list_for_user(session, user_id)
            return [WebhookEndpointRecord.model_validate(row) for row in rows]

    async def add_webhook(self, user_id: str, url: str, secret: str) -> WebhookEndpointRecord:
        async with self._session_factory() as session:
            row = await self._webhook_repo.create(
                session,
                WebhookEndpoint(user_id=user_id, url=url, secret=secret),
            )
            await session.commit()
            return WebhookEndpointRecord.model_validate(row)

    async def delete_webhook(self, webhook_id: UUID, user_id: str) -> bool:
        async with self._session_factory() as session:
            removed = await self._webhook_repo.delete_for_user(session, webhook_id, user_id)
            await session.commit()
            return removed > 0
