"""Push subscription and webhook endpoint registry."""

from __future__ import annotations

from datetime import UTC, datetime
import logging
import secrets
from typing import TYPE_CHECKING

from notification_service.features.notifications.metrics import push_subscription_pruned_total
from notification_service.features.notifications.schemas import (
    PushSubscriptionCreate,
    PushSubscriptionRecord,
    WebhookEndpointRecord,
)

if TYPE_CHECKING:
    from uuid import UUID

    from notification_service.features.notifications.interfaces import SubscriptionStore

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """Stores and retrieves push subscriptions and webhook endpoints per user.

    ``delete_push`` is idempotent and safe to call concurrently: deleting an
    endpoint that is already gone is a no-op, and the push channel calls it
    without checking existence first.
    """

    def __init__(self, store: SubscriptionStore, *, webhook_secret_bytes: int = 32) -> None:
        self._store = store
        self._webhook_secret_bytes = webhook_secret_bytes

    async def list_push(self, user_id: str) -> list[PushSubscriptionRecord]:
        return await self._store.list_push(user_id)

    async def add_push(
        self,
        user_id: str,
        subscription: PushSubscriptionCreate,
        *,
        now: datetime | None = None,
    ) -> PushSubscriptionRecord:
        """Register (or re-register) a subscription; the endpoint is the key."""
        record = PushSubscriptionRecord(
            user_id=user_id,
            endpoint=str(subscription.endpoint),
            keys=subscription.keys,
            device_info=subscription.device_info,
            created_at=now or datetime.now(UTC),
        )
        stored = await self._store.upsert_push(record)
        logger.info(
            "Push subscription registered",
            extra={"user_id": user_id, "platform": record.device_info.platform if record.device_info else None},
        )
        return stored

    async def remove_push(self, user_id: str, endpoint: str) -> bool:
        """Unsubscribe one of the user's own endpoints. Unknown endpoints are a no-op."""
        removed = await self._store.delete_push(endpoint, user_id=user_id)
        logger.info("Push subscription removed", extra={"user_id": user_id, "removed": removed})
        return removed

    async def delete_push(self, endpoint: str) -> None:
        """Prune an endpoint the push service reported as gone."""
        removed = await self._store.delete_push(endpoint)
        if removed:
            push_subscription_pruned_total.inc()
        logger.info("Stale push subscription pruned", extra={"removed": removed})

    async def list_webhooks(self, user_id: str) -> list[WebhookEndpointRecord]:
        return await self._store.list_webhooks(user_id)

    async def add_webhook(self, user_id: str, url: str, secret: str | None = None) -> WebhookEndpointRecord:
        """Register a webhook endpoint, generating a signing secret when none is given."""
        secret = secret or secrets.token_hex(self._webhook_secret_bytes)
        endpoint = await self._store.add_webhook(user_id, url, secret)
        logger.info("Webhook endpoint registered", extra={"user_id": user_id, "webhook_id": str(endpoint.id)})
        return endpoint

    async def delete_webhook(self, user_id: str, webhook_id: UUID) -> bool:
        return await self._store.delete_webhook(webhook_id, user_id)
