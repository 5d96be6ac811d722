"""Multi-channel notification dispatch.

A notification request is checked against the recipient's per-type
preferences and quiet hours, persisted, and fanned out concurrently to the
allowed channels (in-app, email, SMS, web push, webhook). One channel
failing never affects the others.

Architecture:
    - Dispatcher: preference gating, quiet hours, concurrent fan-out
    - Channels: one sender per channel over a pluggable transport
    - Stores: SQLAlchemy-backed records, preferences and subscriptions
    - Service: the operations exposed to callers and the HTTP API

Example:
    ```python
    from notification_service.features.notifications import events

    result = await service.send(
        events.offer_received(
            "seller-1",
            offer_id="o-1",
            business_id="b-1",
            buyer_id="buyer-1",
            amount=1_250_000,
            business_title="Café i Göteborg",
        ),
    )
    ```

The HTTP router and service wiring live in ``router`` and ``dependencies``
and are imported by the application factory.
"""

from notification_service.features.notifications.dispatcher import NotificationDispatcher
from notification_service.features.notifications.enums import (
    Channel,
    DispatchState,
    NotificationType,
    Priority,
)
from notification_service.features.notifications.models import (
    Notification,
    PushSubscription,
    UserNotificationPreference,
    WebhookEndpoint,
)
from notification_service.features.notifications.schemas import (
    ChannelDeliveryOutcome,
    DispatchResult,
    NotificationRecord,
    NotificationRequest,
)
from notification_service.features.notifications.service import NotificationService

__all__ = [
    "Channel",
    "ChannelDeliveryOutcome",
    "DispatchResult",
    "DispatchState",
    "Notification",
    "NotificationDispatcher",
    "NotificationRecord",
    "NotificationRequest",
    "NotificationService",
    "NotificationType",
    "Priority",
    "PushSubscription",
    "UserNotificationPreference",
    "WebhookEndpoint",
]
