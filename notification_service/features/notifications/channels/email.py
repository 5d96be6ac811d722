"""Email channel."""

from __future__ import annotations

from typing import TYPE_CHECKING

from notification_service.features.notifications.channels.base import BaseChannelSender, ChannelDeliveryFailure
from notification_service.features.notifications.enums import Channel

if TYPE_CHECKING:
    from notification_service.features.notifications.channels.base import RecipientContext
    from notification_service.features.notifications.interfaces import EmailTransport
    from notification_service.features.notifications.schemas import NotificationRecord


def email_template_key(notification_type: str, locale: str) -> str:
    """``email-template-{type}-{locale}`` with the type lower-cased."""
    return f"email-template-{notification_type.lower()}-{locale}"


class EmailSender(BaseChannelSender):
    channel = Channel.EMAIL

    def __init__(self, transport: EmailTransport) -> None:
        super().__init__()
        self._transport = transport

    async def _deliver(self, record: NotificationRecord, recipient: RecipientContext) -> None:
        contact = await recipient.resolve_contact()
        if contact is None or not contact.email:
            raise ChannelDeliveryFailure("no contact info", "no_contact_info")

        await self._transport.send(
            contact.email,
            email_template_key(record.type, recipient.locale_for(contact)),
            {
                "notification_id": str(record.id),
                "title": record.title,
                "message": record.message,
                "data": record.data,
            },
        )
