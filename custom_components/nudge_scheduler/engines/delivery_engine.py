"""Delivery Engine - Pure logic inferring which notifications have fired.

Local notification hosts never report "this fired". The only evidence is:
- A one-shot notification disappears from the host's scheduled set once it
  fires, so absence after the scheduled instant (plus a grace period) means
  it was delivered.
- A repeating notification never disappears, so its daily firing is estimated
  from the wall clock: the configured time-of-day has passed today.

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
Ledger writes, analytics events and rescheduling belong in DeliveryManager.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import (
    as_local,
    as_utc,
    at_local_time,
    dt_parse_iso,
    local_date_key,
    parse_time_local,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo

FIRED_GRACE = timedelta(seconds=const.FIRED_GRACE_SECONDS)


class DeliveryEngine:
    """Pure logic engine for delivery estimates.

    All methods are static - no instance state.
    """

    @staticmethod
    def scheduled_ids(scheduled: list[dict[str, Any]]) -> set[str]:
        """Return the identifiers in a host scheduled set."""
        return {
            item[const.SCHEDULED_IDENTIFIER]
            for item in scheduled
            if isinstance(item, dict) and item.get(const.SCHEDULED_IDENTIFIER)
        }

    @staticmethod
    def scheduled_of_type(
        scheduled: list[dict[str, Any]], nudge_type: str
    ) -> list[dict[str, Any]]:
        """Return host entries whose content data carries the given type."""
        matches = []
        for item in scheduled:
            if not isinstance(item, dict):
                continue
            content = item.get(const.SCHEDULED_CONTENT) or {}
            data = content.get(const.CONTENT_DATA) or {}
            if data.get(const.CONTENT_DATA_TYPE) == nudge_type:
                matches.append(item)
        return matches

    @staticmethod
    def one_shot_fired(
        notification_id: str | None,
        scheduled_for_iso: str | None,
        scheduled_ids: set[str],
        now: datetime,
    ) -> bool:
        """Return True if a one-shot notification should be considered fired.

        Its instant must be at least FIRED_GRACE in the past (so we never race
        the host's own firing) and it must be gone from the scheduled set.
        Unparseable instants are never inferred fired.
        """
        if not notification_id:
            return False
        scheduled_for = dt_parse_iso(scheduled_for_iso)
        if scheduled_for is None:
            return False
        if scheduled_for > as_utc(now) - FIRED_GRACE:
            return False
        return notification_id not in scheduled_ids

    @staticmethod
    def activity_reminder_fired(
        entry: dict[str, Any], scheduled_ids: set[str], now: datetime
    ) -> bool:
        """Return True if a live activity reminder entry is inferred fired."""
        if entry.get(const.REMINDER_CANCELLED_AT) or entry.get(const.REMINDER_FIRED_AT):
            return False
        return DeliveryEngine.one_shot_fired(
            entry.get(const.REMINDER_NOTIFICATION_ID),
            entry.get(const.REMINDER_SCHEDULED_FOR),
            scheduled_ids,
            now,
        )

    @staticmethod
    def activity_reminder_prunable(entry: dict[str, Any]) -> bool:
        """Return True once an entry is settled (fired or cancelled)."""
        return bool(
            entry.get(const.REMINDER_CANCELLED_AT) or entry.get(const.REMINDER_FIRED_AT)
        )

    @staticmethod
    def repeating_fire_due(
        ledger: dict[str, Any],
        scheduled_ids: set[str],
        now: datetime,
        tz: ZoneInfo | None = None,
    ) -> str | None:
        """Return today's date key if a repeating daily nudge is estimated fired.

        Heuristic: today's occurrence of scheduleTimeLocal is at least
        FIRED_GRACE in the past, the notification is still registered, the first
        scheduled instant is not after today's occurrence, and no estimate was
        recorded for today yet. A day on which no reconcile runs after the
        threshold is simply skipped.
        """
        notification_id = ledger.get(const.NUDGE_LEDGER_NOTIFICATION_ID)
        if not notification_id or notification_id not in scheduled_ids:
            return None
        parsed = parse_time_local(ledger.get(const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL))
        if parsed is None:
            return None

        today = as_local(now, tz).date()
        today_key = today.isoformat()
        if ledger.get(const.NUDGE_LEDGER_LAST_FIRED_DATE_KEY) == today_key:
            return None

        occurrence = at_local_time(today, parsed[0], parsed[1], tz)
        if occurrence > as_utc(now) - FIRED_GRACE:
            return None

        first_fire = dt_parse_iso(ledger.get(const.NUDGE_LEDGER_SCHEDULED_FOR))
        if first_fire is not None and local_date_key(first_fire, tz) > today_key:
            return None
        return today_key
