"""Nudge Policy Engine - Pure logic deciding when a nudge may fire.

This engine provides stateless, pure Python functions for:
- Picking the first candidate instant for a nudge type
- Enforcing the global daily cap on system nudges (per LOCAL calendar date)
- Enforcing the global minimum spacing between different system nudge types
- Goal nudge suppression once the user has shown up today
- Choosing which goal a goal nudge should be about
- Whether the show-up should be a setup nudge instead
- Soft engagement signals (reported, never a gate)

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All functions are static methods that operate on passed-in data.
Scheduling against the host belongs in NotificationManager.

Constraint resolution never moves the time-of-day: a violating candidate is
pushed to the same wall-clock time on the next local date and re-checked,
until both rules hold or MAX_POLICY_ITERATIONS is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import (
    as_local,
    as_utc,
    dt_parse_iso,
    local_date_key,
    next_local_occurrence,
    same_local_time_on,
    shift_local_days,
)

if TYPE_CHECKING:
    from zoneinfo import ZoneInfo


# =============================================================================
# DECISION REASONS
# =============================================================================

REASON_DAILY_CAP = "daily_cap"
REASON_SPACING = "spacing"
REASON_SHOWED_UP_TODAY = "showed_up_today"
REASON_NO_TARGET = "no_target"
REASON_TARGET_IN_PAST = "target_in_past"
REASON_UNSTABLE = "unstable"
REASON_UNKNOWN_TYPE = "unknown_type"

# Fallback slot when a stored "HH:MM" is malformed.
_FALLBACK_TIMES: dict[str, tuple[int, int]] = {
    const.NUDGE_TYPE_DAILY_SHOW_UP: (const.FALLBACK_HOUR_SHOW_UP, 0),
    const.NUDGE_TYPE_DAILY_FOCUS: (const.FALLBACK_HOUR_FOCUS, 0),
    const.NUDGE_TYPE_GOAL_NUDGE: (16, 0),
    const.NUDGE_TYPE_SETUP_NEXT_STEP: (const.FALLBACK_HOUR_SHOW_UP, 0),
}


@dataclass
class PolicyDecision:
    """Outcome of a policy evaluation.

    Attributes:
        fire_at: UTC instant the nudge should fire, or None for "do not schedule"
        pushed_days: How many whole days the first candidate was pushed
        reasons: Ordered list of rules that pushed or suppressed the candidate
                 (e.g. "daily_cap:2026-01-01", "spacing:dailyShowUp")
        backoff_suggested: Engagement signal, the type was ignored repeatedly
    """

    fire_at: datetime | None
    pushed_days: int = 0
    reasons: list[str] = field(default_factory=list)
    backoff_suggested: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view for diagnostics and logs."""
        return {
            "fire_at": self.fire_at.isoformat() if self.fire_at else None,
            "pushed_days": self.pushed_days,
            "reasons": list(self.reasons),
            "backoff_suggested": self.backoff_suggested,
        }


@dataclass
class GoalNudgeCandidate:
    """Goal selected as the subject of a goal nudge."""

    goal_id: str
    goal_title: str
    arc_name: str | None = None


# =============================================================================
# NUDGE POLICY ENGINE
# =============================================================================


class NudgePolicyEngine:
    """Pure logic engine for nudge fire-time decisions.

    All methods are static - no instance state. This enables easy unit testing
    without any Home Assistant mocking.
    """

    # =========================================================================
    # Ledger Queries
    # =========================================================================

    @staticmethod
    def effective_sent_count(
        ledger: dict[str, Any], nudge_type: str, date_key: str
    ) -> int:
        """Count system nudges on a local date, excluding this type's own pending slot.

        A type being rescheduled gives its pending slot back, so that slot must
        not count against its own replacement.
        """
        counts = ledger.get(const.LEDGER_SENT_COUNT_BY_DATE) or {}
        try:
            count = int(counts.get(date_key, 0))
        except (TypeError, ValueError):
            count = 0

        pending = (ledger.get(const.LEDGER_PENDING_BY_TYPE) or {}).get(nudge_type)
        if (
            isinstance(pending, dict)
            and pending.get(const.LEDGER_PENDING_DATE_KEY) == date_key
        ):
            count -= 1
        return max(0, count)

    @staticmethod
    def spacing_conflict(
        ledger: dict[str, Any],
        nudge_type: str,
        candidate: datetime,
        min_spacing: timedelta = timedelta(hours=const.SYSTEM_NUDGE_MIN_SPACING_HOURS),
    ) -> str | None:
        """Return the other system type that is too close to candidate, if any.

        Pending future slots are in lastSentAtByType too, so two nudges
        scheduled ahead of time also keep their distance.
        """
        last_sent_by_type = ledger.get(const.LEDGER_LAST_SENT_AT_BY_TYPE) or {}
        for other_type in sorted(last_sent_by_type):
            if other_type == nudge_type:
                continue
            if other_type not in const.SYSTEM_NUDGE_TYPES:
                continue
            last_sent = dt_parse_iso(last_sent_by_type[other_type])
            if last_sent is None:
                continue
            if abs(candidate - last_sent) < min_spacing:
                return other_type
        return None

    @staticmethod
    def engagement_backoff_suggested(ledger: dict[str, Any], nudge_type: str) -> bool:
        """Return True when a type has gone unopened several times in a row.

        Soft signal only. It is surfaced in decisions and diagnostics, never
        used to suppress scheduling.
        """
        no_open = ledger.get(const.LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE) or {}
        try:
            streak = int(no_open.get(nudge_type, 0))
        except (TypeError, ValueError):
            return False
        return streak >= const.ENGAGEMENT_BACKOFF_NO_OPEN_THRESHOLD

    @staticmethod
    def preferred_open_hour(ledger: dict[str, Any], nudge_type: str) -> int | None:
        """Return the local hour at which a type is most often opened, if known."""
        hours = (ledger.get(const.LEDGER_OPEN_HOUR_COUNTS_BY_TYPE) or {}).get(
            nudge_type
        )
        if not isinstance(hours, dict) or not hours:
            return None
        best_hour, best_count = None, 0
        for hour_key, count in hours.items():
            try:
                hour, count = int(hour_key), int(count)
            except (TypeError, ValueError):
                continue
            if count > best_count or (count == best_count and hour < (best_hour or 0)):
                best_hour, best_count = hour, count
        return best_hour

    # =========================================================================
    # Fire-Time Decisions
    # =========================================================================

    @staticmethod
    def first_candidate(
        nudge_type: str,
        now: datetime,
        preferences: dict[str, Any],
        *,
        earliest: datetime | None = None,
        tz: ZoneInfo | None = None,
    ) -> datetime:
        """Return the first instant a system nudge could fire at.

        The next local occurrence of the configured time-of-day. When earliest
        is later than that, the same time-of-day on earliest's local date (or
        the day after, if that is still before earliest).
        """
        _enable_key, time_key = const.PREF_KEYS_BY_TYPE[nudge_type]
        fallback_hour, fallback_minute = _FALLBACK_TIMES[nudge_type]
        candidate = next_local_occurrence(
            preferences.get(time_key),
            now,
            tz,
            fallback_hour=fallback_hour,
            fallback_minute=fallback_minute,
        )
        if earliest is not None and candidate < as_utc(earliest):
            candidate = same_local_time_on(candidate, as_local(earliest, tz).date(), tz)
            if candidate < as_utc(earliest):
                candidate = shift_local_days(candidate, 1, tz)
        return candidate

    @staticmethod
    def evaluate(
        nudge_type: str,
        now: datetime,
        preferences: dict[str, Any],
        ledger: dict[str, Any],
        *,
        target: datetime | None = None,
        showed_up_today: bool = False,
        earliest: datetime | None = None,
        tz: ZoneInfo | None = None,
    ) -> PolicyDecision:
        """Decide the fire time for a nudge type and explain the decision.

        Args:
            nudge_type: One of const.NUDGE_TYPES
            now: Current instant (aware)
            preferences: Preferences document (per-type times)
            ledger: System nudge ledger document
            target: Explicit instant, required for activityReminder
            showed_up_today: Domain fact used to suppress goalNudge
            earliest: Lower bound for the first candidate ("tomorrow or later")
            tz: Local timezone (defaults to dt_utils default)

        Returns:
            PolicyDecision whose fire_at is None when nothing should be scheduled.
        """
        now = as_utc(now)
        backoff = NudgePolicyEngine.engagement_backoff_suggested(ledger, nudge_type)

        if nudge_type == const.NUDGE_TYPE_ACTIVITY_REMINDER:
            # User-requested reminders are exempt from system caps and spacing.
            if target is None:
                return PolicyDecision(None, reasons=[REASON_NO_TARGET])
            target = as_utc(target)
            if target <= now:
                return PolicyDecision(None, reasons=[REASON_TARGET_IN_PAST])
            return PolicyDecision(target, backoff_suggested=backoff)

        if nudge_type not in const.SYSTEM_NUDGE_TYPES:
            return PolicyDecision(None, reasons=[REASON_UNKNOWN_TYPE])

        if nudge_type == const.NUDGE_TYPE_GOAL_NUDGE and showed_up_today:
            return PolicyDecision(None, reasons=[REASON_SHOWED_UP_TODAY])

        candidate = NudgePolicyEngine.first_candidate(
            nudge_type, now, preferences, earliest=earliest, tz=tz
        )
        reasons: list[str] = []
        pushed_days = 0

        for _ in range(const.MAX_POLICY_ITERATIONS):
            date_key = local_date_key(candidate, tz)
            if (
                NudgePolicyEngine.effective_sent_count(ledger, nudge_type, date_key)
                >= const.SYSTEM_NUDGE_DAILY_CAP
            ):
                reasons.append(f"{REASON_DAILY_CAP}:{date_key}")
            else:
                conflict = NudgePolicyEngine.spacing_conflict(
                    ledger, nudge_type, candidate
                )
                if conflict is None:
                    return PolicyDecision(
                        candidate,
                        pushed_days=pushed_days,
                        reasons=reasons,
                        backoff_suggested=backoff,
                    )
                reasons.append(f"{REASON_SPACING}:{conflict}")
            candidate = shift_local_days(candidate, 1, tz)
            pushed_days += 1

        reasons.append(REASON_UNSTABLE)
        return PolicyDecision(
            None, pushed_days=pushed_days, reasons=reasons, backoff_suggested=backoff
        )

    @staticmethod
    def decide_fire_time(
        nudge_type: str,
        now: datetime,
        preferences: dict[str, Any],
        ledger: dict[str, Any],
        *,
        target: datetime | None = None,
        showed_up_today: bool = False,
        earliest: datetime | None = None,
        tz: ZoneInfo | None = None,
    ) -> datetime | None:
        """Return only the fire instant of evaluate() (None means no-op)."""
        return NudgePolicyEngine.evaluate(
            nudge_type,
            now,
            preferences,
            ledger,
            target=target,
            showed_up_today=showed_up_today,
            earliest=earliest,
            tz=tz,
        ).fire_at

    # =========================================================================
    # Setup Next Step
    # =========================================================================

    @staticmethod
    def setup_next_step_reason(snapshot: dict[str, Any]) -> str | None:
        """Return why the user has nothing to show up for yet, or None.

        No goals at all reads as "no_goals". Goals without a single open
        (not done, not cancelled) activity read as "no_activities".
        """
        if not snapshot.get(const.DATA_GOALS):
            return const.SETUP_REASON_NO_GOALS
        activities = snapshot.get(const.DATA_ACTIVITIES) or {}
        if not any(
            isinstance(activity, dict)
            and activity.get(const.ACTIVITY_STATUS) not in const.ACTIVITY_CLOSED_STATUSES
            for activity in activities.values()
        ):
            return const.SETUP_REASON_NO_ACTIVITIES
        return None

    # =========================================================================
    # Goal Nudge Subject
    # =========================================================================

    @staticmethod
    def _activity_scheduled_on(
        activity: dict[str, Any], date_key: str, tz: ZoneInfo | None
    ) -> bool:
        if activity.get(const.ACTIVITY_SCHEDULED_DATE) == date_key:
            return True
        scheduled_at = dt_parse_iso(activity.get(const.ACTIVITY_SCHEDULED_AT))
        return scheduled_at is not None and local_date_key(scheduled_at, tz) == date_key

    @staticmethod
    def pick_goal_nudge_candidate(
        snapshot: dict[str, Any], now: datetime, tz: ZoneInfo | None = None
    ) -> GoalNudgeCandidate | None:
        """Pick the goal a goal nudge should be about.

        Only active goals of active arcs with at least one incomplete activity
        count. A goal with an activity scheduled today wins (earliest scheduled
        time first), otherwise the goal with the most incomplete activities.
        """
        arcs = snapshot.get(const.DATA_ARCS) or {}
        goals = snapshot.get(const.DATA_GOALS) or {}
        activities = snapshot.get(const.DATA_ACTIVITIES) or {}

        active_arc_ids = {
            arc_id
            for arc_id, arc in arcs.items()
            if isinstance(arc, dict)
            and arc.get(const.ARC_STATUS) == const.ARC_STATUS_ACTIVE
        }
        if not active_arc_ids:
            return None

        today_key = local_date_key(now, tz)
        stats: dict[str, dict[str, Any]] = {}
        for activity in activities.values():
            if not isinstance(activity, dict):
                continue
            goal_id = activity.get(const.ACTIVITY_GOAL_ID) or ""
            goal = goals.get(goal_id)
            if not isinstance(goal, dict):
                continue
            if goal.get(const.GOAL_ARC_ID) not in active_arc_ids:
                continue
            if goal.get(const.GOAL_STATUS) not in const.GOAL_ACTIVE_STATUSES:
                continue
            if (
                activity.get(const.ACTIVITY_STATUS)
                in const.ACTIVITY_INCOMPLETE_EXCLUDED_STATUSES
            ):
                continue

            entry = stats.setdefault(
                goal_id, {"incomplete": 0, "has_today": False, "earliest_today": None}
            )
            entry["incomplete"] += 1
            if NudgePolicyEngine._activity_scheduled_on(activity, today_key, tz):
                entry["has_today"] = True
                scheduled_at = dt_parse_iso(activity.get(const.ACTIVITY_SCHEDULED_AT))
                if scheduled_at is not None and (
                    entry["earliest_today"] is None
                    or scheduled_at < entry["earliest_today"]
                ):
                    entry["earliest_today"] = scheduled_at

        if not stats:
            return None

        def _rank(goal_id: str) -> tuple[int, float, int]:
            entry = stats[goal_id]
            if entry["has_today"]:
                earliest = entry["earliest_today"]
                return (0, earliest.timestamp() if earliest else 0.0, 0)
            return (1, 0.0, -entry["incomplete"])

        best_id = sorted(stats, key=_rank)[0]
        goal = goals.get(best_id) or {}
        arc = arcs.get(goal.get(const.GOAL_ARC_ID) or "") or {}
        return GoalNudgeCandidate(
            goal_id=best_id,
            goal_title=str(goal.get(const.GOAL_TITLE) or "").strip(),
            arc_name=(str(arc.get(const.ARC_NAME) or "").strip() or None),
        )
