"""Per-user, per-type preference resolution."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

from notification_service.features.notifications.enums import Channel
from notification_service.features.notifications.metrics import preference_lookup_degraded_total

if TYPE_CHECKING:
    from collections.abc import Iterable

    from notification_service.features.notifications.enums import NotificationType
    from notification_service.features.notifications.interfaces import PreferenceStore
    from notification_service.features.notifications.schemas import QuietHours

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedPreference:
    """Effective preference for one (user, type) pair."""

    enabled: bool
    allowed_channels: frozenset[Channel]
    quiet_hours: QuietHours | None = None
    is_default: bool = False


class PreferenceResolver:
    """Resolve whether a type is enabled, which channels are allowed, and quiet hours.

    A missing stored preference yields the system default: enabled, the
    configured default channels, no quiet hours. If the preference store
    cannot be reached the defaults are used as well; the lookup failure is
    logged as ``PreferenceLookupDegraded`` and never raised.
    """

    def __init__(self, store: PreferenceStore, default_channels: Iterable[Channel]) -> None:
        self._store = store
        self._default = ResolvedPreference(
            enabled=True,
            allowed_channels=frozenset(Channel(c) for c in default_channels),
            quiet_hours=None,
            is_default=True,
        )

    @property
    def default(self) -> ResolvedPreference:
        return self._default

    async def resolve(self, user_id: str, notification_type: NotificationType) -> ResolvedPreference:
        try:
            preferences = await self._store.get(user_id)
        except Exception as e:
            preference_lookup_degraded_total.inc()
            logger.warning(
                "PreferenceLookupDegraded: using default preferences",
                extra={
                    "user_id": user_id,
                    "notification_type": str(notification_type),
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return self._default

        stored = preferences.types.get(notification_type)
        if stored is None:
            return self._default

        return ResolvedPreference(
            enabled=stored.enabled,
            allowed_channels=frozenset(stored.channels),
            quiet_hours=stored.quiet_hours,
        )
