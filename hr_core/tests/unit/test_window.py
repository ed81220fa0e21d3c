"""Tests for Monday-anchored rota week windows."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from hr_core.rota.window import RotaWindow, week_window


class TestWeekWindow:
    """start = Monday at/before the reference, 00:00; end = Sunday 23:59:59.999."""

    @pytest.mark.parametrize(
        "reference",
        [
            date(2026, 3, 2),  # Monday itself
            date(2026, 3, 4),  # Wednesday
            date(2026, 3, 8),  # Sunday
        ],
    )
    def test_any_day_maps_to_its_monday(self, reference: date) -> None:
        window = week_window(reference)
        assert window.start == datetime(2026, 3, 2, tzinfo=UTC)
        assert window.end == datetime(2026, 3, 8, 23, 59, 59, 999000, tzinfo=UTC)

    def test_window_spans_seven_days_less_a_millisecond(self) -> None:
        window = week_window(date(2026, 7, 15))
        assert window.end - window.start == timedelta(days=7) - timedelta(milliseconds=1)
        assert window.start.weekday() == 0
        assert window.end.weekday() == 6

    def test_sunday_late_evening_stays_in_same_week(self) -> None:
        window = week_window(datetime(2026, 3, 8, 23, 30, tzinfo=UTC))
        assert window.anchor == date(2026, 3, 2)

    def test_aware_reference_is_converted_to_window_timezone(self) -> None:
        # Monday 01:00 in UTC+2 is still Sunday in UTC.
        plus_two = timezone(timedelta(hours=2))
        window = week_window(datetime(2026, 3, 9, 1, 0, tzinfo=plus_two), UTC)
        assert window.anchor == date(2026, 3, 2)

    def test_naive_reference_is_read_in_window_timezone(self) -> None:
        london = ZoneInfo("Europe/London")
        window = week_window(datetime(2026, 3, 9, 0, 30), london)
        assert window.anchor == date(2026, 3, 9)
        assert window.start.tzinfo is london

    def test_defaults_to_current_week(self) -> None:
        window = week_window()
        assert window.contains(datetime.now(UTC))

    def test_crosses_year_boundary(self) -> None:
        window = week_window(date(2027, 1, 1))  # Friday
        assert window.anchor == date(2026, 12, 28)
        assert window.end.date() == date(2027, 1, 3)


class TestNavigation:
    def test_next_and_previous_move_by_whole_weeks(self) -> None:
        window = week_window(date(2026, 3, 4))
        assert window.next().anchor == date(2026, 3, 9)
        assert window.previous().anchor == date(2026, 2, 23)
        assert window.next().previous() == window

    def test_shifted_keeps_seven_day_span(self) -> None:
        window = week_window(date(2026, 3, 4)).shifted(-10)
        assert window.start.weekday() == 0
        assert window.end - window.start == timedelta(days=7) - timedelta(milliseconds=1)

    def test_shift_across_dst_keeps_local_midnight(self) -> None:
        london = ZoneInfo("Europe/London")
        # Clocks go forward on Sunday 29 March 2026.
        window = week_window(date(2026, 3, 25), london).next()
        assert window.start.hour == 0
        assert window.start.utcoffset() == timedelta(hours=1)


class TestRotaWindow:
    def test_starting_rejects_non_monday(self) -> None:
        with pytest.raises(ValueError, match="Monday"):
            RotaWindow.starting(date(2026, 3, 3))

    def test_contains_is_inclusive(self) -> None:
        window = week_window(date(2026, 3, 2))
        assert window.contains(window.start)
        assert window.contains(window.end)
        assert not window.contains(window.end + timedelta(milliseconds=1))
