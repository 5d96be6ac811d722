"""User directory clients.

The directory answers ``GET {base_url}/users/{user_id}/contact`` with a JSON
object holding ``email``, ``phone``, ``locale`` and ``timezone`` (each
optional). Unknown users answer 404.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from notification_service.features.notifications.interfaces import UserContact

logger = logging.getLogger(__name__)


class HttpUserDirectory:
    def __init__(self, client: httpx.AsyncClient, base_url: str, *, timeout: float = 5.0) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    async def lookup(self, user_id: str) -> UserContact | None:
        """Fetch contact details.

        Returns None for an unknown user. Transport errors and other non-2xx
        answers raise ``httpx.HTTPError``.
        """
        url = f"{self._base_url}/users/{quote(user_id, safe='')}/contact"
        response = await self._client.get(url, timeout=self._timeout)
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.debug("User not found in directory", extra={"user_id": user_id})
            return None
        response.raise_for_status()
        return contact_from_json(user_id, response.json())


class NullUserDirectory:
    """Directory used when no user service is configured."""

    async def lookup(self, user_id: str) -> UserContact | None:
        return None


def contact_from_json(user_id: str, body: dict[str, Any]) -> UserContact:
    def _text(key: str) -> str | None:
        value = body.get(key)
        return str(value) if value else None

    return UserContact(
        user_id=user_id,
        email=_text("email"),
        phone=_text("phone"),
        locale=_text("locale"),
        timezone=_text("timezone"),
    )
