"""Twilio SMS transport.

The Twilio REST client is synchronous, so each send runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client as TwilioClient

if TYPE_CHECKING:
    from notification_service.core.settings.sms import SmsSettings

logger = logging.getLogger(__name__)


class SMSDeliveryError(Exception):
    """Raised when Twilio rejected the message."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class TwilioSMSTransport:
    def __init__(self, settings: SmsSettings, client: TwilioClient | None = None) -> None:
        if not settings.is_configured:
            msg = "Twilio account SID, auth token and sender number are required"
            raise ValueError(msg)

        self._from_number = settings.from_number
        self._client = client or TwilioClient(
            settings.account_sid,
            settings.auth_token.get_secret_value() if settings.auth_token else None,
        )

    def _create(self, number: str, text: str) -> str:
        message = self._client.messages.create(to=number, from_=self._from_number, body=text)
        return message.sid

    async def send(self, number: str, text: str) -> None:
        """Send one SMS.

        Raises:
            SMSDeliveryError: Twilio returned an error.
        """
        try:
            sid = await asyncio.to_thread(self._create, number, text)
        except TwilioRestException as e:
            raise SMSDeliveryError(f"Twilio rejected message: {e.msg}", code=e.code) from e
        except TwilioException as e:
            raise SMSDeliveryError(f"Twilio error: {e}") from e

        logger.debug("SMS accepted by Twilio", extra={"sid": sid})
