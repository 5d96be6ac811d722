"""SMS transport."""

from __future__ import annotations

from .twilio import SMSDeliveryError, TwilioSMSTransport

__all__ = ["SMSDeliveryError", "TwilioSMSTransport"]
