"""SMTP email transport using aiosmtplib.

Templates are rendered downstream: the message carries the template key in an
``X-Template-Key`` header and a plain-text fallback body built from the
notification title and message.

Usage:
    from notification_service.infra.email import SmtpEmailTransport

    transport = SmtpEmailTransport(get_email_settings())
    await transport.send("user@example.com", "email-template-offer_received-sv", data)
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, make_msgid
import json
import logging
import ssl
from typing import TYPE_CHECKING, Any

import aiosmtplib

if TYPE_CHECKING:
    from notification_service.core.settings.email import EmailSettings

logger = logging.getLogger(__name__)

TEMPLATE_HEADER = "X-Template-Key"


class EmailDeliveryError(Exception):
    """Raised when the SMTP server did not accept the message."""


class SmtpEmailTransport:
    """Send one message per notification over SMTP.

    Supports STARTTLS (port 587), implicit TLS (port 465) and plain
    connections, with optional LOGIN/PLAIN authentication.
    """

    def __init__(self, settings: EmailSettings) -> None:
        if not settings.smtp_host:
            msg = "SMTP host is required for the SMTP transport"
            raise ValueError(msg)

        self._settings = settings
        logger.info(
            "SMTP transport initialized",
            extra={
                "host": settings.smtp_host,
                "port": settings.smtp_port,
                "use_tls": settings.use_tls,
                "use_ssl": settings.use_ssl,
            },
        )

    def _create_ssl_context(self) -> ssl.SSLContext | None:
        if not (self._settings.use_tls or self._settings.use_ssl):
            return None
        return ssl.create_default_context()

    def build_message(self, address: str, template_key: str, data: dict[str, Any]) -> MIMEMultipart:
        """Build the MIME message for one recipient."""
        mime_msg = MIMEMultipart("alternative")
        mime_msg["Subject"] = str(data.get("title", ""))
        mime_msg["From"] = self._settings.from_header
        mime_msg["To"] = address
        mime_msg["Date"] = formatdate(localtime=False)
        mime_msg["Message-ID"] = make_msgid()
        mime_msg[TEMPLATE_HEADER] = template_key

        body = f"{data.get('title', '')}\n\n{data.get('message', '')}\n"
        mime_msg.attach(MIMEText(body, "plain", "utf-8"))
        # Template variables for the rendering relay
        mime_msg.attach(MIMEText(json.dumps(data, default=str, ensure_ascii=False), "json", "utf-8"))
        return mime_msg

    async def send(self, address: str, template_key: str, data: dict[str, Any]) -> None:
        """Send one email.

        Raises:
            EmailDeliveryError: The server refused the message or the
                connection failed.
        """
        settings = self._settings
        mime_message = self.build_message(address, template_key, data)
        password = settings.smtp_password.get_secret_value() if settings.smtp_password else None

        smtp = aiosmtplib.SMTP(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            use_tls=settings.use_ssl,
            start_tls=settings.use_tls if not settings.use_ssl else False,
            tls_context=self._create_ssl_context(),
            timeout=settings.timeout,
        )

        try:
            async with smtp:
                if settings.smtp_username and password:
                    await smtp.login(settings.smtp_username, password)
                errors, _response = await smtp.send_message(mime_message)
        except aiosmtplib.SMTPAuthenticationError as e:
            raise EmailDeliveryError(f"SMTP authentication failed: {e}") from e
        except aiosmtplib.SMTPRecipientsRefused as e:
            raise EmailDeliveryError(f"Recipient refused: {e}") from e
        except aiosmtplib.SMTPConnectError as e:
            raise EmailDeliveryError(f"SMTP connection failed: {e}") from e
        except aiosmtplib.SMTPException as e:
            raise EmailDeliveryError(f"SMTP error: {e}") from e

        if errors:
            raise EmailDeliveryError(f"Recipient rejected: {errors.get(address, errors)}")

        logger.debug(
            "Email accepted by SMTP server",
            extra={"message_id": mime_message["Message-ID"], "template_key": template_key},
        )
