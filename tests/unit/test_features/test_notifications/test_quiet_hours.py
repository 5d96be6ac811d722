"""Unit tests for quiet-hours evaluation."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from notification_service.features.notifications.quiet_hours import QuietHoursEvaluator
from notification_service.features.notifications.schemas import QuietHours


@pytest.fixture
def evaluator() -> QuietHoursEvaluator:
    return QuietHoursEvaluator("UTC")


def at(hour: int, minute: int = 0, *, day: int = 15) -> datetime:
    return datetime(2026, 1, day, hour, minute, tzinfo=UTC)


class TestIsQuiet:
    """Window membership in the window's local time."""

    @pytest.mark.parametrize(
        ("hour", "minute", "expected"),
        [
            (23, 30, True),
            (3, 0, True),
            (22, 0, True),
            (7, 0, False),
            (6, 59, True),
            (12, 0, False),
        ],
    )
    def test_window_wrapping_midnight(self, evaluator, hour, minute, expected):
        """22:00-07:00 covers the late evening and early morning, start inclusive, end exclusive."""
        window = QuietHours(start="22:00", end="07:00", timezone="UTC")

        assert evaluator.is_quiet(window, at(hour, minute)) is expected

    @pytest.mark.parametrize(("hour", "expected"), [(8, False), (9, True), (16, True), (17, False)])
    def test_same_day_window(self, evaluator, hour, expected):
        window = QuietHours(start="09:00", end="17:00", timezone="UTC")

        assert evaluator.is_quiet(window, at(hour)) is expected

    def test_equal_start_and_end_is_empty(self, evaluator):
        window = QuietHours(start="08:00", end="08:00", timezone="UTC")

        assert not evaluator.is_quiet(window, at(8))
        assert not evaluator.is_quiet(window, at(20))

    def test_no_window_is_never_quiet(self, evaluator):
        assert evaluator.is_quiet(None, at(3)) is False

    def test_converts_to_window_timezone(self, evaluator):
        """21:30 UTC is 22:30 in Stockholm in winter."""
        window = QuietHours(start="22:00", end="07:00", timezone="Europe/Stockholm")

        assert evaluator.is_quiet(window, at(21, 30))
        assert not evaluator.is_quiet(window, at(20, 30))

    def test_falls_back_to_user_timezone(self, evaluator):
        window = QuietHours(start="22:00", end="07:00")

        assert evaluator.is_quiet(window, at(21, 30), fallback_timezone="Europe/Stockholm")
        assert not evaluator.is_quiet(window, at(21, 30))

    def test_falls_back_to_default_timezone(self):
        evaluator = QuietHoursEvaluator("Asia/Tokyo")
        window = QuietHours(start="22:00", end="07:00")

        # 14:00 UTC is 23:00 in Tokyo
        assert evaluator.is_quiet(window, at(14))

    def test_unknown_user_timezone_uses_default(self, evaluator):
        window = QuietHours(start="22:00", end="07:00")

        assert evaluator.is_quiet(window, at(23), fallback_timezone="Mars/Olympus_Mons")

    def test_naive_now_is_treated_as_utc(self, evaluator):
        window = QuietHours(start="22:00", end="07:00", timezone="UTC")

        assert evaluator.is_quiet(window, datetime(2026, 1, 15, 23, 0))


class TestWindowEnd:
    def test_end_later_same_day(self, evaluator):
        window = QuietHours(start="22:00", end="07:00", timezone="UTC")

        assert evaluator.window_end(window, at(3)) == at(7)

    def test_end_next_day(self, evaluator):
        window = QuietHours(start="22:00", end="07:00", timezone="UTC")

        assert evaluator.window_end(window, at(23)) == at(7, day=16)

    def test_end_is_returned_in_utc(self, evaluator):
        window = QuietHours(start="22:00", end="07:00", timezone="Europe/Stockholm")

        end = evaluator.window_end(window, at(23))

        assert end.tzinfo == UTC
        assert end == at(6, day=16)


class TestQuietHoursSchema:
    @pytest.mark.parametrize("value", ["24:00", "7:00", "07:60", "0700", ""])
    def test_rejects_malformed_times(self, value):
        with pytest.raises(ValueError):
            QuietHours(start=value, end="07:00")

    def test_rejects_unknown_timezone(self):
        with pytest.raises(ValueError):
            QuietHours(start="22:00", end="07:00", timezone="Nowhere/Atlantis")
