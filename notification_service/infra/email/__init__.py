"""Email transport."""

from __future__ import annotations

from .smtp import TEMPLATE_HEADER, EmailDeliveryError, SmtpEmailTransport

__all__ = ["TEMPLATE_HEADER", "EmailDeliveryError", "SmtpEmailTransport"]
