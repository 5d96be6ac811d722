"""Web Push transport (VAPID) using pywebpush.

pywebpush issues blocking HTTP requests, so each send runs in a worker thread.
A 404 or 410 from the push service means the subscription no longer exists.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from pywebpush import WebPushException, webpush

from notification_service.features.notifications.enums import PushSendStatus

if TYPE_CHECKING:
    from notification_service.core.settings.push import PushSettings
    from notification_service.features.notifications.schemas import PushSubscriptionRecord

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class WebPushTransport:
    def __init__(self, settings: PushSettings) -> None:
        if not settings.is_configured:
            msg = "VAPID private key is required for the Web Push transport"
            raise ValueError(msg)
        self._settings = settings

    def _post(self, subscription_info: dict[str, Any], data: str, urgency: str, ttl: int) -> None:
        settings = self._settings
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=settings.vapid_private_key.get_secret_value(),
            vapid_claims={"sub": settings.vapid_subject},
            ttl=ttl,
            headers={"Urgency": urgency},
            timeout=settings.timeout_seconds,
        )

    async def send(
        self,
        subscription: PushSubscriptionRecord,
        payload: dict[str, Any],
        *,
        urgency: str,
        ttl: int,
    ) -> PushSendStatus:
        """Deliver one payload to one browser subscription."""
        subscription_info = {
            "endpoint": subscription.endpoint,
            "keys": {"p256dh": subscription.keys.p256dh, "auth": subscription.keys.auth},
        }
        data = json.dumps(payload, ensure_ascii=False, default=str)

        try:
            await asyncio.to_thread(self._post, subscription_info, data, urgency, ttl)
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in GONE_STATUS_CODES:
                logger.info(
                    "Push subscription expired",
                    extra={"user_id": subscription.user_id, "status_code": status_code},
                )
                return PushSendStatus.GONE
            logger.warning(
                "Push service rejected message",
                extra={"user_id": subscription.user_id, "status_code": status_code, "error": str(e)},
            )
            return PushSendStatus.ERROR
        return PushSendStatus.OK
