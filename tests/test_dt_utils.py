"""Tests for dt_utils - local-time slots, date keys and DST-safe day shifts.

Covers the timezone matrix the scheduling rules depend on:
- America/New_York (DST, spring forward 2026-03-08)
- Australia/Sydney (DST, opposite hemisphere)
- Asia/Tokyo (no DST)
- UTC baseline
"""

# pylint: disable=redefined-outer-name  # Pytest fixtures shadow names

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from freezegun import freeze_time
import pytest

from custom_components.nudge_scheduler.utils import dt_utils

TEST_TIMEZONES = ["America/New_York", "Australia/Sydney", "Asia/Tokyo", "UTC"]


@pytest.fixture
def default_tz():
    """Set and restore the module default timezone."""
    previous = dt_utils.get_default_timezone()
    tz = ZoneInfo("America/New_York")
    dt_utils.set_default_timezone(tz)
    yield tz
    dt_utils.set_default_timezone(previous)


# ============================================================================
# "HH:MM" slots
# ============================================================================


class TestTimeSlots:
    """Parsing and formatting of wall-clock slots."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("09:00", (9, 0)),
            ("23:59", (23, 59)),
            (" 7:05 ", (7, 5)),
            ("24:00", None),
            ("12:60", None),
            ("noon", None),
            ("12:00:00", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_time_local(self, value, expected) -> None:
        """Only in-range HH:MM values parse."""
        assert dt_utils.parse_time_local(value) == expected

    def test_format_time_local_zero_pads(self) -> None:
        """Slots are always stored zero padded."""
        assert dt_utils.format_time_local(7, 5) == "07:05"


# ============================================================================
# ISO instants
# ============================================================================


class TestIsoInstants:
    """Tolerant ISO parsing."""

    def test_z_suffix_and_offset_are_normalized_to_utc(self) -> None:
        """Both forms come back as the same aware UTC instant."""
        zulu = dt_utils.dt_parse_iso("2026-01-01T09:00:00Z")
        offset = dt_utils.dt_parse_iso("2026-01-01T10:00:00+01:00")
        assert zulu == offset == datetime(2026, 1, 1, 9, 0, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["", None, "yesterday", 42, "2026-13-45T00:00"])
    def test_invalid_values_yield_none(self, value) -> None:
        """Garbage never raises."""
        assert dt_utils.dt_parse_iso(value) is None

    def test_naive_values_use_default_timezone(self, default_tz) -> None:
        """Naive strings are read in the configured local timezone."""
        parsed = dt_utils.dt_parse_iso("2026-01-01T09:00:00")
        assert parsed == datetime(2026, 1, 1, 14, 0, tzinfo=UTC)


# ============================================================================
# Local calendar dates
# ============================================================================


class TestLocalDates:
    """Date keys follow the local calendar, not UTC."""

    def test_date_key_is_local(self) -> None:
        """Late evening in New York is already tomorrow in UTC."""
        instant = datetime(2026, 1, 2, 3, 0, tzinfo=UTC)
        assert dt_utils.local_date_key(instant, ZoneInfo("America/New_York")) == "2026-01-01"
        assert dt_utils.local_date_key(instant, ZoneInfo("UTC")) == "2026-01-02"

    def test_parse_date_key(self) -> None:
        """Invalid keys parse to None."""
        assert dt_utils.parse_date_key("2026-02-28") == date(2026, 2, 28)
        assert dt_utils.parse_date_key("2026-02-30") is None
        assert dt_utils.parse_date_key(None) is None

    @pytest.mark.parametrize("tz_name", TEST_TIMEZONES)
    def test_shift_keeps_wall_clock(self, tz_name) -> None:
        """A week of shifts never drifts off 09:00 local."""
        tz = ZoneInfo(tz_name)
        start = dt_utils.at_local_time(date(2026, 3, 4), 9, 0, tz)
        for days in range(1, 8):
            local = dt_utils.as_local(dt_utils.shift_local_days(start, days, tz), tz)
            assert (local.hour, local.minute) == (9, 0)
            assert local.date() == date(2026, 3, 4) + timedelta(days=days)

    def test_shift_across_spring_forward_is_23_hours(self) -> None:
        """Same time-of-day, one hour less elapsed."""
        tz = ZoneInfo("America/New_York")
        start = dt_utils.at_local_time(date(2026, 3, 7), 14, 0, tz)
        shifted = dt_utils.shift_local_days(start, 1, tz)
        assert shifted - start == timedelta(hours=23)


# ============================================================================
# Next occurrence
# ============================================================================


class TestNextOccurrence:
    """Next local occurrence of a slot."""

    def test_upcoming_today(self) -> None:
        """A slot later today is used as-is."""
        tz = ZoneInfo("Asia/Tokyo")
        now = dt_utils.at_local_time(date(2026, 1, 1), 7, 0, tz)
        result = dt_utils.next_local_occurrence("09:30", now, tz)
        assert dt_utils.as_local(result, tz) == datetime(2026, 1, 1, 9, 30, tzinfo=tz)

    def test_exactly_now_moves_to_tomorrow(self) -> None:
        """The slot must be strictly after now."""
        tz = ZoneInfo("UTC")
        now = datetime(2026, 1, 1, 9, 30, tzinfo=UTC)
        result = dt_utils.next_local_occurrence("09:30", now, tz)
        assert result == datetime(2026, 1, 2, 9, 30, tzinfo=UTC)

    def test_invalid_slot_uses_fallback(self) -> None:
        """Malformed slots fall back to the caller's default."""
        now = datetime(2026, 1, 1, 6, 0, tzinfo=UTC)
        result = dt_utils.next_local_occurrence(
            "bad", now, ZoneInfo("UTC"), fallback_hour=8, fallback_minute=15
        )
        assert result == datetime(2026, 1, 1, 8, 15, tzinfo=UTC)

    def test_has_passed_local_time(self) -> None:
        """Passed at or after the slot, never for malformed values."""
        tz = ZoneInfo("UTC")
        now = datetime(2026, 1, 1, 9, 0, tzinfo=UTC)
        assert dt_utils.has_passed_local_time("09:00", now, tz)
        assert not dt_utils.has_passed_local_time("09:01", now, tz)
        assert not dt_utils.has_passed_local_time("nope", now, tz)

    @freeze_time("2026-06-01 12:00:00")
    def test_now_helpers_are_aware(self, default_tz) -> None:
        """Current-time helpers return aware datetimes in the right zone."""
        assert dt_utils.dt_now_utc() == datetime(2026, 6, 1, 12, 0, tzinfo=UTC)
        assert dt_utils.dt_now_local().utcoffset() == timedelta(hours=-4)
        assert dt_utils.dt_now_iso() == "2026-06-01T12:00:00+00:00"
