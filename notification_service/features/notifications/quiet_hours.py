"""Quiet-hours evaluation.

Pure functions of (window, instant, timezone); priority bypass is decided by
the dispatcher, not here.
"""

from __future__ import annotations

from datetime import UTC, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from notification_service.features.notifications.schemas import QuietHours

logger = logging.getLogger(__name__)


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def _ensure_aware(now: datetime) -> datetime:
    return now if now.tzinfo is not None else now.replace(tzinfo=UTC)


class QuietHoursEvaluator:
    """Decide whether an instant falls inside a local quiet-hours window.

    The window's own timezone wins; otherwise the caller-supplied fallback
    (the user's directory timezone), otherwise ``default_timezone``.

    Start is inclusive and end exclusive. ``start > end`` wraps midnight;
    ``start == end`` is an empty window.

    Example:
        evaluator = QuietHoursEvaluator("UTC")
        window = QuietHours(start="22:00", end="07:00", timezone="Europe/Stockholm")
        evaluator.is_quiet(window, datetime(2026, 1, 1, 2, 0, tzinfo=UTC))  # True (03:00 local)
    """

    def __init__(self, default_timezone: str = "UTC") -> None:
        self._default_zone = ZoneInfo(default_timezone)

    def zone_for(self, quiet_hours: QuietHours, fallback_timezone: str | None = None) -> ZoneInfo:
        for candidate in (quiet_hours.timezone, fallback_timezone):
            if not candidate:
                continue
            try:
                return ZoneInfo(candidate)
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning("Unknown timezone, trying fallback", extra={"timezone": candidate})
        return self._default_zone

    def is_quiet(
        self,
        quiet_hours: QuietHours | None,
        now: datetime,
        *,
        fallback_timezone: str | None = None,
    ) -> bool:
        if quiet_hours is None:
            return False

        start = _parse_hhmm(quiet_hours.start)
        end = _parse_hhmm(quiet_hours.end)
        if start == end:
            return False

        local = _ensure_aware(now).astimezone(self.zone_for(quiet_hours, fallback_timezone)).time()
        if start < end:
            return start <= local < end
        return local >= start or local < end

    def window_end(
        self,
        quiet_hours: QuietHours,
        now: datetime,
        *,
        fallback_timezone: str | None = None,
    ) -> datetime:
        """Return the UTC instant at which the window containing ``now`` closes.

        Only meaningful when ``is_quiet`` is true for the same arguments.
        """
        zone = self.zone_for(quiet_hours, fallback_timezone)
        local_now = _ensure_aware(now).astimezone(zone)
        end = _parse_hhmm(quiet_hours.end)

        end_date = local_now.date()
        if local_now.time() >= end:
            end_date += timedelta(days=1)

        # Wall-clock construction; fold=0 resolves DST-ambiguous ends to the first occurrence
        local_end = datetime.combine(end_date, end, tzinfo=zone)
        return local_end.astimezone(UTC)
