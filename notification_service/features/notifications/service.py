"""Notification service: the operations exposed to callers and the HTTP API."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from notification_service.core.exceptions import AppException, NotFoundException, ValidationException
from notification_service.features.notifications.channels.in_app import UNREAD_COUNT_EVENT
from notification_service.features.notifications.schemas import NotificationPage

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from notification_service.features.notifications.dispatcher import NotificationDispatcher
    from notification_service.features.notifications.enums import NotificationType
    from notification_service.features.notifications.interfaces import (
        NotificationStore,
        PreferenceStore,
        RealtimePublisher,
    )
    from notification_service.features.notifications.schemas import (
        DispatchResult,
        NotificationRecord,
        NotificationRequest,
        PreferencesUpdate,
        PushSubscriptionCreate,
        PushSubscriptionRecord,
        UserPreferences,
        WebhookEndpointRecord,
    )
    from notification_service.features.notifications.subscriptions import SubscriptionRegistry

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class NotificationService:
    """Facade over the dispatcher, stores and subscription registry.

    Args:
        dispatcher: Runs individual dispatches.
        store: Notification records (list, mark read, counts).
        preference_store: Per-user preferences.
        registry: Push subscriptions and webhook endpoints.
        publisher: Realtime fan-out used to refresh unread counters.
        max_concurrent_dispatches: Upper bound on parallel dispatches in send_many.
    """

    def __init__(
        self,
        *,
        dispatcher: NotificationDispatcher,
        store: NotificationStore,
        preference_store: PreferenceStore,
        registry: SubscriptionRegistry,
        publisher: RealtimePublisher,
        max_concurrent_dispatches: int = 16,
    ) -> None:
        self._dispatcher = dispatcher
        self._store = store
        self._preference_store = preference_store
        self._registry = registry
        self._publisher = publisher
        self._max_concurrent_dispatches = max_concurrent_dispatches

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def send(
        self,
        request: NotificationRequest | Mapping[str, Any],
        **kwargs: Any,
    ) -> DispatchResult:
        """Dispatch one notification; see NotificationDispatcher.send."""
        return await self._dispatcher.send(request, **kwargs)

    async def send_many(
        self,
        requests: Sequence[NotificationRequest | Mapping[str, Any]],
        **kwargs: Any,
    ) -> list[DispatchResult | AppException]:
        """Dispatch independent requests concurrently.

        At most ``max_concurrent_dispatches`` run at once. Results keep the
        input order; a request that fails validation or persistence yields
        its AppException in place of a result instead of failing the batch.
        """
        semaphore = asyncio.Semaphore(self._max_concurrent_dispatches)

        async def run(item: NotificationRequest | Mapping[str, Any]) -> DispatchResult | AppException:
            async with semaphore:
                try:
                    return await self._dispatcher.send(item, **kwargs)
                except AppException as e:
                    return e

        results = await asyncio.gather(*(run(item) for item in requests))
        logger.info(
            "Batch dispatch completed",
            extra={
                "batch_size": len(requests),
                "failed": sum(1 for r in results if isinstance(r, AppException)),
            },
        )
        return list(results)

    async def shutdown(self, timeout: float | None = 5.0) -> None:
        await self._dispatcher.drain(timeout=timeout)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def mark_as_read(self, record_id: UUID, user_id: str) -> NotificationRecord:
        """Mark a record read. Repeated calls leave ``read_at`` unchanged.

        Raises:
            NotFoundException: No such record for this user.
        """
        record = await self._store.mark_read(record_id, user_id)
        if record is None:
            raise NotFoundException(
                detail=f"Notification {record_id} not found",
                type="notification-not-found",
                extra={"notification_id": str(record_id)},
            )

        await self._publish_unread_count(user_id)
        return record

    async def list_notifications(
        self,
        user_id: str,
        page: int = 1,
        types: Sequence[NotificationType] | None = None,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> NotificationPage:
        if page < 1:
            raise ValidationException(detail="page must be >= 1", extra={"field": "page"})
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationException(
                detail=f"page_size must be between 1 and {MAX_PAGE_SIZE}",
                extra={"field": "page_size"},
            )

        records, total = await self._store.list(user_id, page=page, page_size=page_size, types=types)
        unread = await self._store.count_unread(user_id)
        return NotificationPage(
            records=records,
            total_count=total,
            unread_count=unread,
            page=page,
            page_size=page_size,
        )

    async def get_unread_count(self, user_id: str) -> int:
        return await self._store.count_unread(user_id)

    async def _publish_unread_count(self, user_id: str) -> None:
        try:
            unread = await self._store.count_unread(user_id)
            await self._publisher.publish(user_id, UNREAD_COUNT_EVENT, {"count": unread})
        except Exception as e:
            logger.warning("Failed to publish unread count", extra={"user_id": user_id, "error": str(e)})

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self, user_id: str) -> UserPreferences:
        return await self._preference_store.get(user_id)

    async def update_preferences(self, user_id: str, partial: PreferencesUpdate) -> UserPreferences:
        """Merge a partial update into the stored preferences."""
        preferences = await self._preference_store.update(user_id, partial)
        logger.info(
            "Notification preferences updated",
            extra={"user_id": user_id, "types": [str(t) for t in partial.types]},
        )
        return preferences

    # ------------------------------------------------------------------
    # Push subscriptions and webhooks
    # ------------------------------------------------------------------

    async def subscribe_to_push(self, user_id: str, subscription: PushSubscriptionCreate) -> PushSubscriptionRecord:
        return await self._registry.add_push(user_id, subscription)

    async def unsubscribe_from_push(self, user_id: str, endpoint: str) -> None:
        """Remove one of the user's endpoints; unknown endpoints are a no-op."""
        await self._registry.remove_push(user_id, endpoint)

    async def list_push_subscriptions(self, user_id: str) -> list[PushSubscriptionRecord]:
        return await self._registry.list_push(user_id)

    async def register_webhook(self, user_id: str, url: str, secret: str | None = None) -> WebhookEndpointRecord:
        return await self._registry.add_webhook(user_id, url, secret)

    async def list_webhooks(self, user_id: str) -> list[WebhookEndpointRecord]:
        return await self._registry.list_webhooks(user_id)

    async def delete_webhook(self, user_id: str, webhook_id: UUID) -> None:
        """Raises NotFoundException when the user has no such endpoint."""
        if not await self._registry.delete_webhook(user_id, webhook_id):
            raise NotFoundException(
                detail=f"Webhook endpoint {webhook_id} not found",
                type="webhook-not-found",
                extra={"webhook_id": str(webhook_id)},
            )
