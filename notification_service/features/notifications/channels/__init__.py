"""Channel senders, one per delivery channel."""

from notification_service.features.notifications.channels.base import (
    BaseChannelSender,
    ChannelDeliveryFailure,
    ChannelSender,
    RecipientContext,
)
from notification_service.features.notifications.channels.email import EmailSender, email_template_key
from notification_service.features.notifications.channels.in_app import InAppSender
from notification_service.features.notifications.channels.push import PushSender, build_push_payload
from notification_service.features.notifications.channels.sms import SMSSender, sms_text
from notification_service.features.notifications.channels.webhook import (
    WebhookSender,
    build_envelope,
    compute_signature,
    serialize_envelope,
    verify_signature,
)

__all__ = [
    "BaseChannelSender",
    "ChannelDeliveryFailure",
    "ChannelSender",
    "EmailSender",
    "InAppSender",
    "PushSender",
    "RecipientContext",
    "SMSSender",
    "WebhookSender",
    "build_envelope",
    "build_push_payload",
    "compute_signature",
    "email_template_key",
    "serialize_envelope",
    "sms_text",
    "verify_signature",
]
