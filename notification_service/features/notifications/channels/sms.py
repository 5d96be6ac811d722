"""SMS channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.channels.base import BaseChannelSender, ChannelDeliveryFailure
from notification_service.features.notifications.enums import Channel

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import RecipientContext
    from notification_service.features.notifications.interfaces import SMSTransport
    from notification_service.features.notifications.schemas import NotificationRecord


def sms_text(brand: str, title: str, message: str) -> str:
    return f"{brand}: {title} - {message}"


class SMSSender(BaseChannelSender):
    channel = Channel.SMS

    def __init__(self, transport: SMSTransport, brand: str) -> None:
        super().__init__()
        self._transport = transport
        self._brand = brand

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        contact = await recipient.resolve_contact()
        if contact is None or not contact.phone:
            raise ChannelDeliveryFailure("no contact info", "no_contact_info")

        await self._transport.send(contact.phone, sms_text(self._brand, record.title, record.message))
