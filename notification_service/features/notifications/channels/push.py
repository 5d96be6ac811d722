"""Web Push channel."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from notification_service.features.notifications.channels.base import BaseChannelSender, ChannelDeliveryFailure
from notification_service.features.notifications.enums import (
    Channel,
    Priority,
    PushSendStatus,
    push_ttl_for,
    push_urgency_for,
)
from notification_service.features.notifications.events import notification_url, push_actions

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import RecipientContext
    from notification_service.features.notifications.interfaces import PushTransport
    from notification_service.features.notifications.schemas import NotificationRecord, PushSubscriptionRecord
    from notification_service.features.notifications.subscriptions import SubscriptionRegistry


def build_push_payload(
    record: NotificationRecord,
    *,
    icon: str,
    badge: str,
    link_base_url: str = "",
) -> dict[str, Any]:
    """Payload delivered to the service worker."""
    url = f"{link_base_url.rstrip('/')}{notification_url(record.type, record.data)}"
    return {
        "title": record.title,
        "message": record.message,
        "icon": icon,
        "badge": badge,
        "tag": str(record.id),
        "url": url,
        "data": {
            **record.data,
            "notificationId": str(record.id),
            "type": str(record.type),
            "url": url,
        },
        "actions": push_actions(record.type),
        "requireInteraction": record.priority == Priority.URGENT,
    }


class PushSender(BaseChannelSender):
    """Send to every subscription of the user concurrently.

    Succeeds when at least one subscription accepted the message. Endpoints
    reported gone are deleted from the registry as they are discovered.
    """

    channel = Channel.PUSH

    def __init__(
        self,
        transport: PushTransport,
        registry: SubscriptionRegistry,
        *,
        icon: str,
        badge: str,
        link_base_url: str = "",
    ) -> None:
        super().__init__()
        self._transport = transport
        self._registry = registry
        self._icon = icon
        self._badge = badge
        self._link_base_url = link_base_url

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        subscriptions = await self._registry.list_push(record.user_id)
        if not subscriptions:
            raise ChannelDeliveryFailure("no push subscriptions", "no_targets")

        payload = build_push_payload(
            record,
            icon=self._icon,
            badge=self._badge,
            link_base_url=self._link_base_url,
        )
        urgency = push_urgency_for(record.priority)
        ttl = push_ttl_for(record.type)

        statuses = await asyncio.gather(
            *(self._send_one(sub, payload, urgency, ttl) for sub in subscriptions),
        )

        accepted = statuses.count(PushSendStatus.OK)
        if accepted == 0:
            gone = statuses.count(PushSendStatus.GONE)
            raise ChannelDeliveryFailure(
                f"0/{len(statuses)} push subscriptions accepted ({gone} gone)",
                "transport",
            )

    async def _send_one(
        self,
        subscription: PushSubscriptionRecord,
        payload: dict[str, Any],
        urgency: str,
        ttl: int,
    ) -> PushSendStatus:
        try:
            status = await self._transport.send(subscription, payload, urgency=urgency, ttl=ttl)
        except Exception as exc:
            self._logger.warning(
                "Push transport raised",
                extra={"user_id": subscription.user_id, "error": str(exc)},
            )
            return PushSendStatus.ERROR

        if status == PushSendStatus.GONE:
            try:
                await self._registry.delete_push(subscription.endpoint)
            except Exception as exc:
                self._logger.warning(
                    "Failed to prune push subscription",
                    extra={"user_id": subscription.user_id, "error": str(exc)},
                )
        return status
