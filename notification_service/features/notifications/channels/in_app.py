"""In-app channel: realtime feed plus unread counter."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.channels.base import BaseChannelSender
from notification_service.features.notifications.enums import Channel

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import RecipientContext
    from notification_service.features.notifications.interfaces import NotificationStore, RealtimePublisher
    from notification_service.features.notifications.schemas import NotificationRecord

NOTIFICATION_EVENT = "notification"
UNREAD_COUNT_EVENT = "unread-count"


class InAppSender(BaseChannelSender):
    """Publish the record to the user's realtime topic, then the new unread count.

    Delivery reaches whichever sessions are connected right now; the record
    itself is already persisted by the dispatcher, so offline users see it
    in their listing.
    """

    channel = Channel.IN_APP

    def __init__(self, publisher: RealtimePublisher, store: NotificationStore) -> None:
        super().__init__()
        self._publisher = publisher
        self._store = store

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        await self._publisher.publish(
            record.user_id,
            NOTIFICATION_EVENT,
            record.model_dump(mode="json"),
        )
        unread = await self._store.count_unread(record.user_id)
        await self._publisher.publish(record.user_id, UNREAD_COUNT_EVENT, {"count": unread})
