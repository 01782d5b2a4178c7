"""Date and time utilities for Nudge Scheduler.

Pure Python date/time functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed.
   Uses standard library: datetime, zoneinfo, and dateutil.

Local-time conventions:
    - Schedule slots are wall-clock "HH:MM" strings in the user's timezone.
    - Date keys are the LOCAL calendar date ("YYYY-MM-DD"), never UTC,
      because daily caps are a human "per day" concept.
    - Moving a slot to another day keeps the wall-clock time, even across
      DST transitions.

Functions:
    - set_default_timezone / get_default_timezone
    - dt_now_utc, dt_now_local, dt_now_iso
    - as_utc, as_local
    - dt_parse_iso, dt_to_iso
    - parse_time_local, format_time_local, is_valid_time_local
    - local_date_key, parse_date_key
    - at_local_time, shift_local_days, same_local_time_on
    - next_local_occurrence, has_passed_local_time
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities (no HA dependency)
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

# Module-level logger (no HA dependency)
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

DATE_KEY_FORMAT = "%Y-%m-%d"


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this during integration setup to configure the user's timezone.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware)."""
    return datetime.now(tz or DEFAULT_TIME_ZONE)


def dt_now_iso() -> str:
    """Return the current instant as a UTC ISO 8601 string."""
    return dt_now_utc().isoformat()


# ==============================================================================
# Timezone Conversion
# ==============================================================================


def as_utc(dt_obj: datetime) -> datetime:
    """Convert a datetime to UTC, assuming the default timezone when naive."""
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=DEFAULT_TIME_ZONE)
    return dt_obj.astimezone(UTC)


def as_local(dt_obj: datetime, tz: ZoneInfo | None = None) -> datetime:
    """Convert a datetime to local timezone, assuming UTC when naive."""
    tz_info = tz or DEFAULT_TIME_ZONE
    if dt_obj.tzinfo is None:
        dt_obj = dt_obj.replace(tzinfo=UTC)
    return dt_obj.astimezone(tz_info)


# ==============================================================================
# ISO Instants
# ==============================================================================


def dt_parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 instant into a UTC-aware datetime.

    Persisted ledgers may hold values written by older versions or by other
    clients, so parsing is tolerant: anything unparseable yields None and the
    caller decides how to degrade.

    Args:
        value: ISO string ("2026-01-01T09:00:00Z", "2026-01-01T09:00:00+01:00"),
               an aware/naive datetime, or None.

    Returns:
        UTC-aware datetime, or None if the input is empty or invalid.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        return None
    try:
        parsed = isoparse(value)
    except (ValueError, OverflowError):
        _LOGGER.debug("Ignoring unparseable ISO instant: %s", value)
        return None
    return as_utc(parsed)


def dt_to_iso(dt_obj: datetime) -> str:
    """Serialize an instant as a UTC ISO 8601 string."""
    return as_utc(dt_obj).isoformat()


# ==============================================================================
# "HH:MM" Schedule Slots
# ==============================================================================


def parse_time_local(time_local: str | None) -> tuple[int, int] | None:
    """Parse a wall-clock "HH:MM" slot.

    Returns:
        (hour, minute), or None if the value is missing, malformed or out of
        range (hour 0-23, minute 0-59).

    Example:
        >>> parse_time_local("14:05")
        (14, 5)
    """
    if not time_local or not isinstance(time_local, str):
        return None
    parts = time_local.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        hour = int(parts[0])
        minute = int(parts[1])
    except ValueError:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return hour, minute


def is_valid_time_local(time_local: str | None) -> bool:
    """Return True if the value is a valid "HH:MM" slot."""
    return parse_time_local(time_local) is not None


def format_time_local(hour: int, minute: int) -> str:
    """Format an hour/minute pair as a zero-padded "HH:MM" slot."""
    return f"{hour:02d}:{minute:02d}"


# ==============================================================================
# Local Calendar Dates
# ==============================================================================


def local_date_key(instant: datetime, tz: ZoneInfo | None = None) -> str:
    """Return the local calendar date of an instant as "YYYY-MM-DD"."""
    return as_local(instant, tz).date().isoformat()


def parse_date_key(date_key: str | None) -> date | None:
    """Parse a "YYYY-MM-DD" date key, returning None when invalid."""
    if not date_key or not isinstance(date_key, str):
        return None
    try:
        return date.fromisoformat(date_key)
    except ValueError:
        return None


def at_local_time(
    local_date: date, hour: int, minute: int, tz: ZoneInfo | None = None
) -> datetime:
    """Build the instant for a wall-clock time on a local calendar date.

    Returns a UTC-aware datetime. Nonexistent local times (spring-forward gap)
    resolve the way zoneinfo resolves them (fold=0).
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    local_dt = datetime.combine(local_date, time(hour, minute)).replace(tzinfo=tz_info)
    return local_dt.astimezone(UTC)


def shift_local_days(
    instant: datetime, days: int, tz: ZoneInfo | None = None
) -> datetime:
    """Move an instant by whole local calendar days, keeping wall-clock time.

    Example:
        2026-03-07 14:00 America/New_York + 1 day → 2026-03-08 14:00 EDT
        (23 elapsed hours, same time-of-day).
    """
    local_dt = as_local(instant, tz)
    target_date = local_dt.date() + relativedelta(days=days)
    return at_local_time(target_date, local_dt.hour, local_dt.minute, tz)


def same_local_time_on(
    instant: datetime, local_date: date, tz: ZoneInfo | None = None
) -> datetime:
    """Return the instant at the same wall-clock time on another local date."""
    local_dt = as_local(instant, tz)
    return at_local_time(local_date, local_dt.hour, local_dt.minute, tz)


def next_local_occurrence(
    time_local: str | None,
    now: datetime,
    tz: ZoneInfo | None = None,
    *,
    fallback_hour: int = 9,
    fallback_minute: int = 0,
) -> datetime:
    """Return the next instant at which the local "HH:MM" slot occurs.

    Today if the slot is still upcoming (strictly after now), else tomorrow.
    A malformed slot falls back to fallback_hour:fallback_minute.
    """
    parsed = parse_time_local(time_local)
    if parsed is None:
        _LOGGER.debug(
            "Invalid time slot %r, falling back to %02d:%02d",
            time_local,
            fallback_hour,
            fallback_minute,
        )
        parsed = (fallback_hour, fallback_minute)
    hour, minute = parsed
    today = as_local(now, tz).date()
    candidate = at_local_time(today, hour, minute, tz)
    if candidate <= as_utc(now):
        candidate = at_local_time(today + relativedelta(days=1), hour, minute, tz)
    return candidate


def has_passed_local_time(
    time_local: str | None, now: datetime, tz: ZoneInfo | None = None
) -> bool:
    """Return True if the local "HH:MM" slot has already passed today.

    Malformed slots never count as passed.
    """
    parsed = parse_time_local(time_local)
    if parsed is None:
        return False
    local_now = as_local(now, tz)
    return local_now.hour * 60 + local_now.minute >= parsed[0] * 60 + parsed[1]
