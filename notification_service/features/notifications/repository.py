"""Repositories for the notifications feature.

All methods take the session explicitly; commits happen in ``store.py``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import and_, delete, func, or_, select, update

from notification_service.core.database.repository import BaseRepository
from notification_service.features.notifications.models import (
    Notification,
    PushSubscription,
    UserNotificationPreference,
    WebhookEndpoint,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession


def _not_expired(now: datetime):
    return or_(Notification.expires_at.is_(None), Notification.expires_at > now)


class NotificationRepository(BaseRepository[Notification]):
    """Queries over notification records."""

    def __init__(self) -> None:
        super().__init__(Notification)

    async def get_for_user(
        self,
        session: AsyncSession,
        notification_id: UUID,
        user_id: str,
    ) -> Notification | None:
        stmt = select(Notification).where(
            and_(Notification.id == notification_id, Notification.user_id == user_id),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        notification_types: Sequence[str] | None = None,
        limit: int = 20,
        offset: int = 0,
        now: datetime | None = None,
    ) -> tuple[Sequence[Notification], int]:
        """List unexpired notifications for a user, newest first.

        Returns:
            Tuple of (notifications, total_count)
        """
        now = now or datetime.now(UTC)
        stmt = select(Notification).where(
            and_(Notification.user_id == user_id, _not_expired(now)),
        )
        if notification_types:
            stmt = stmt.where(Notification.notification_type.in_(list(notification_types)))

        stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
        result = await self.search(session, stmt, limit=limit, offset=offset)

        self._lazy.debug(lambda: f"db.list_for_user({user_id=}) -> {len(result.items)}/{result.total} notifications")
        return result.items, result.total

    async def count_unread(
        self,
        session: AsyncSession,
        user_id: str,
        *,
        now: datetime | None = None,
    ) -> int:
        now = now or datetime.now(UTC)
        stmt = select(func.count()).where(
            and_(
                Notification.user_id == user_id,
                Notification.read_at.is_(None),
                _not_expired(now),
            ),
        )
        count = (await session.execute(stmt)).scalar() or 0

        self._lazy.debug(lambda: f"db.count_unread({user_id=}) -> {count}")
        return count

    async def mark_as_read(
        self,
        session: AsyncSession,
        notification_id: UUID,
        user_id: str,
        *,
        read_at: datetime | None = None,
    ) -> Notification | None:
        """Set read_at on a user's notification unless it is already set.

        The conditional UPDATE keeps concurrent calls from moving read_at.

        Returns:
            The notification, or None if it does not belong to the user.
        """
        read_at = read_at or datetime.now(UTC)
        await session.execute(
            update(Notification)
            .where(
                and_(
                    Notification.id == notification_id,
                    Notification.user_id == user_id,
                    Notification.read_at.is_(None),
                ),
            )
            .values(read_at=read_at)
            .execution_options(synchronize_session=False),
        )
        notification = await self.get_for_user(session, notification_id, user_id)
        if notification is not None:
            await session.refresh(notification)

        self._lazy.debug(
            lambda: f"db.mark_as_read({notification_id}) -> {'read' if notification else 'not found'}"
        )
        return notification


class UserNotificationPreferenceRepository(BaseRepository[UserNotificationPreference]):
    def __init__(self) -> None:
        super().__init__(UserNotificationPreference)

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
    ) -> Sequence[UserNotificationPreference]:
        stmt = select(UserNotificationPreference).where(UserNotificationPreference.user_id == user_id)
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(lambda: f"db.list_preferences({user_id=}) -> {len(items)} types")
        return items

    async def get_for_user_and_type(
        self,
        session: AsyncSession,
        user_id: str,
        notification_type: str,
    ) -> UserNotificationPreference | None:
        stmt = select(UserNotificationPreference).where(
            and_(
                UserNotificationPreference.user_id == user_id,
                UserNotificationPreference.notification_type == notification_type,
            ),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


class PushSubscriptionRepository(BaseRepository[PushSubscription]):
    def __init__(self) -> None:
        super().__init__(PushSubscription)

    async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[PushSubscription]:
        stmt = (
            select(PushSubscription)
            .where(PushSubscription.user_id == user_id)
            .order_by(PushSubscription.created_at.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_endpoint(self, session: AsyncSession, endpoint: str) -> PushSubscription | None:
        return await self.get_by(session, PushSubscription.endpoint, endpoint)

    async def delete_by_endpoint(
        self,
        session: AsyncSession,
        endpoint: str,
        *,
        user_id: str | None = None,
    ) -> int:
        """Delete by endpoint with a single DELETE; a missing row deletes nothing.

        Returns:
            Number of rows removed (0 or 1).
        """
        stmt = delete(PushSubscription).where(PushSubscription.endpoint == endpoint)
        if user_id is not None:
            stmt = stmt.where(PushSubscription.user_id == user_id)
        result = await session.execute(stmt.execution_options(synchronize_session=False))
        removed = result.rowcount or 0

        self._lazy.debug(lambda: f"db.delete_push(endpoint={endpoint[:40]}...) -> {removed} removed")
        return removed


class WebhookEndpointRepository(BaseRepository[WebhookEndpoint]):
    def __init__(self) -> None:
        super().__init__(WebhookEndpoint)

    async def list_for_user(self, session: AsyncSession, user_id: str) -> Sequence[WebhookEndpoint]:
        stmt = (
            select(WebhookEndpoint)
            .where(WebhookEndpoint.user_id == user_id)
            .order_by(WebhookEndpoint.created_at.asc())
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def delete_for_user(self, session: AsyncSession, webhook_id: UUID, user_id: str) -> int:
        stmt = delete(WebhookEndpoint).where(
            and_(WebhookEndpoint.id == webhook_id, WebhookEndpoint.user_id == user_id),
        )
        result = await session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount or 0


_notification_repository: NotificationRepository | None = None
_preference_repository: UserNotificationPreferenceRepository | None = None
_push_repository: PushSubscriptionRepository | None = None
_webhook_repository: WebhookEndpointRepository | None = None


def get_notification_repository() -> NotificationRepository:
    """Get NotificationRepository singleton instance."""
    global _notification_repository
    if _notification_repository is None:
        _notification_repository = NotificationRepository()
    return _notification_repository


def get_user_notification_preference_repository() -> UserNotificationPreferenceRepository:
    """Get UserNotificationPreferenceRepository singleton instance."""
    global _preference_repository
    if _preference_repository is None:
        _preference_repository = UserNotificationPreferenceRepository()
    return _preference_repository


def get_push_subscription_repository() -> PushSubscriptionRepository:
    """Get PushSubscriptionRepository singleton instance."""
    global _push_repository
    if _push_repository is None:
        _push_repository = PushSubscriptionRepository()
    return _push_repository


def get_webhook_endpoint_repository() -> WebhookEndpointRepository:
    """Get WebhookEndpointRepository singleton instance."""
    global _webhook_repository
    if _webhook_repository is None:
        _webhook_repository = WebhookEndpointRepository()
    return _webhook_repository
