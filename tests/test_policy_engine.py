"""Tests for NudgePolicyEngine - pure logic, no HA fixtures needed.

Covers the daily cap, the cross-type spacing rule, goal nudge suppression
and the invariants every returned fire time must satisfy.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from custom_components.nudge_scheduler import const
from custom_components.nudge_scheduler.engines.policy_engine import (
    REASON_DAILY_CAP,
    REASON_SHOWED_UP_TODAY,
    REASON_SPACING,
    REASON_TARGET_IN_PAST,
    REASON_UNSTABLE,
    NudgePolicyEngine,
)
from custom_components.nudge_scheduler.store import get_default_document

TZ_UTC = ZoneInfo("UTC")
TZ_NY = ZoneInfo("America/New_York")


def _ledger(**fields) -> dict:
    ledger = get_default_document(const.DOC_SYSTEM_NUDGES)
    ledger.update(fields)
    return ledger


def _prefs(**overrides) -> dict:
    return {**const.DEFAULT_PREFERENCES, **overrides}


# =============================================================================
# TEST: SCENARIOS
# =============================================================================


class TestScenarios:
    """End-to-end policy decisions from documented scenarios."""

    def test_daily_cap_pushes_to_next_day(self) -> None:
        """Two nudges already counted today → show-up moves to tomorrow 09:00."""
        ledger = _ledger(**{const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 2}})
        now = datetime(2026, 1, 1, 7, 0, tzinfo=UTC)

        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_SHOW_UP,
            now,
            _prefs(**{const.PREF_DAILY_SHOW_UP_TIME: "09:00"}),
            ledger,
            tz=TZ_UTC,
        )

        assert decision.fire_at == datetime(2026, 1, 2, 9, 0, tzinfo=UTC)
        assert decision.pushed_days == 1
        assert decision.reasons == [f"{REASON_DAILY_CAP}:2026-01-01"]

    def test_spacing_pushes_and_keeps_time_of_day(self) -> None:
        """Show-up sent at 12:00 → focus at 14:00 moves to tomorrow 14:00."""
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_SHOW_UP: "2026-01-01T12:00:00+00:00"
                },
                const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 1},
            }
        )
        now = datetime(2026, 1, 1, 12, 30, tzinfo=UTC)

        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_FOCUS,
            now,
            _prefs(**{const.PREF_DAILY_FOCUS_TIME: "14:00"}),
            ledger,
            tz=TZ_UTC,
        )

        assert decision.fire_at == datetime(2026, 1, 2, 14, 0, tzinfo=UTC)
        assert decision.reasons == [f"{REASON_SPACING}:{const.NUDGE_TYPE_DAILY_SHOW_UP}"]

    def test_goal_nudge_suppressed_after_show_up(self) -> None:
        """A show-up today means no goal nudge at all."""
        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_GOAL_NUDGE,
            datetime(2026, 1, 1, 10, 0, tzinfo=UTC),
            _prefs(),
            _ledger(),
            showed_up_today=True,
            tz=TZ_UTC,
        )

        assert decision.fire_at is None
        assert decision.reasons == [REASON_SHOWED_UP_TODAY]


# =============================================================================
# TEST: CAP
# =============================================================================


class TestDailyCap:
    """Daily cap counting rules."""

    def test_own_pending_slot_does_not_count(self) -> None:
        """Rescheduling a type releases its own slot for the same date."""
        ledger = _ledger(
            **{
                const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 2},
                const.LEDGER_PENDING_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_FOCUS: {
                        const.LEDGER_PENDING_NOTIFICATION_ID: "n1",
                        const.LEDGER_PENDING_SCHEDULED_FOR: "2026-01-01T08:00:00+00:00",
                        const.LEDGER_PENDING_DATE_KEY: "2026-01-01",
                    }
                },
            }
        )

        assert (
            NudgePolicyEngine.effective_sent_count(
                ledger, const.NUDGE_TYPE_DAILY_FOCUS, "2026-01-01"
            )
            == 1
        )
        assert (
            NudgePolicyEngine.effective_sent_count(
                ledger, const.NUDGE_TYPE_GOAL_NUDGE, "2026-01-01"
            )
            == 2
        )

    def test_corrupt_count_treated_as_zero(self) -> None:
        """A non-numeric count never blocks scheduling."""
        ledger = _ledger(**{const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": "many"}})
        assert (
            NudgePolicyEngine.effective_sent_count(
                ledger, const.NUDGE_TYPE_DAILY_FOCUS, "2026-01-01"
            )
            == 0
        )

    def test_cap_uses_local_calendar_date(self) -> None:
        """The cap is keyed by the local date, not the UTC date."""
        # 03:00 UTC on 2026-01-02 is still 2026-01-01 in New York, so the
        # next 09:00 slot lands on local 2026-01-02 which has no sends yet.
        ledger = _ledger(**{const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 2}})
        now = datetime(2026, 1, 2, 3, 0, tzinfo=UTC)  # 2026-01-01 22:00 NY

        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_SHOW_UP,
            now,
            _prefs(**{const.PREF_DAILY_SHOW_UP_TIME: "09:00"}),
            ledger,
            tz=TZ_NY,
        )

        assert decision.fire_at == datetime(2026, 1, 2, 14, 0, tzinfo=UTC)
        assert decision.pushed_days == 0

    def test_unstable_after_max_iterations(self) -> None:
        """Every day capped → no fire time, reported as unstable."""
        start = datetime(2026, 1, 1, tzinfo=UTC)
        counts = {
            (start + timedelta(days=offset)).date().isoformat(): 2
            for offset in range(const.MAX_POLICY_ITERATIONS + 2)
        }
        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_FOCUS,
            start,
            _prefs(**{const.PREF_DAILY_FOCUS_TIME: "08:00"}),
            _ledger(**{const.LEDGER_SENT_COUNT_BY_DATE: counts}),
            tz=TZ_UTC,
        )

        assert decision.fire_at is None
        assert decision.pushed_days == const.MAX_POLICY_ITERATIONS
        assert decision.reasons[-1] == REASON_UNSTABLE


# =============================================================================
# TEST: SPACING
# =============================================================================


class TestSpacing:
    """Cross-type spacing rules."""

    def test_same_type_is_not_a_conflict(self) -> None:
        """A type's own last send never blocks it."""
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_FOCUS: "2026-01-01T12:00:00+00:00"
                }
            }
        )
        assert (
            NudgePolicyEngine.spacing_conflict(
                ledger,
                const.NUDGE_TYPE_DAILY_FOCUS,
                datetime(2026, 1, 1, 13, 0, tzinfo=UTC),
            )
            is None
        )

    def test_future_pending_slot_also_keeps_distance(self) -> None:
        """A send scheduled later today conflicts with an earlier candidate."""
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_GOAL_NUDGE: "2026-01-01T16:00:00+00:00"
                }
            }
        )
        assert (
            NudgePolicyEngine.spacing_conflict(
                ledger,
                const.NUDGE_TYPE_DAILY_SHOW_UP,
                datetime(2026, 1, 1, 11, 0, tzinfo=UTC),
            )
            == const.NUDGE_TYPE_GOAL_NUDGE
        )

    def test_exactly_six_hours_is_allowed(self) -> None:
        """The minimum spacing is inclusive."""
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_SHOW_UP: "2026-01-01T08:00:00+00:00"
                }
            }
        )
        assert (
            NudgePolicyEngine.spacing_conflict(
                ledger,
                const.NUDGE_TYPE_DAILY_FOCUS,
                datetime(2026, 1, 1, 14, 0, tzinfo=UTC),
            )
            is None
        )

    def test_unparseable_last_sent_is_ignored(self) -> None:
        """Garbage in lastSentAtByType never blocks a candidate."""
        ledger = _ledger(
            **{const.LEDGER_LAST_SENT_AT_BY_TYPE: {const.NUDGE_TYPE_DAILY_SHOW_UP: "soon"}}
        )
        assert (
            NudgePolicyEngine.spacing_conflict(
                ledger,
                const.NUDGE_TYPE_DAILY_FOCUS,
                datetime(2026, 1, 1, 14, 0, tzinfo=UTC),
            )
            is None
        )

    def test_spacing_uses_recorded_show_up_instant_only(self) -> None:
        """Day-one show-up pushes focus to day two, next to day two's show-up.

        The repeating show-up is recorded at its first instant, so the pushed
        focus is not moved again for the later daily occurrences.
        """
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_SHOW_UP: "2026-01-01T09:00:00+00:00"
                },
                const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 1},
            }
        )

        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_FOCUS,
            datetime(2026, 1, 1, 7, 0, tzinfo=UTC),
            _prefs(**{const.PREF_DAILY_FOCUS_TIME: "10:00"}),
            ledger,
            tz=TZ_UTC,
        )

        assert decision.fire_at == datetime(2026, 1, 2, 10, 0, tzinfo=UTC)
        assert decision.reasons == [f"{REASON_SPACING}:{const.NUDGE_TYPE_DAILY_SHOW_UP}"]

    def test_setup_nudge_keeps_distance_like_the_show_up(self) -> None:
        """A pending setup nudge spaces out the other system types."""
        ledger = _ledger(
            **{
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_SETUP_NEXT_STEP: "2026-01-01T09:00:00+00:00"
                }
            }
        )
        assert (
            NudgePolicyEngine.spacing_conflict(
                ledger,
                const.NUDGE_TYPE_DAILY_FOCUS,
                datetime(2026, 1, 1, 10, 0, tzinfo=UTC),
            )
            == const.NUDGE_TYPE_SETUP_NEXT_STEP
        )


# =============================================================================
# TEST: SETUP NEXT STEP
# =============================================================================


@pytest.mark.parametrize(
    ("goals", "activities", "expected"),
    [
        ({}, {}, const.SETUP_REASON_NO_GOALS),
        ({}, {"a1": {const.ACTIVITY_STATUS: "planned"}}, const.SETUP_REASON_NO_GOALS),
        ({"g1": {const.GOAL_ID: "g1"}}, {}, const.SETUP_REASON_NO_ACTIVITIES),
        (
            {"g1": {const.GOAL_ID: "g1"}},
            {
                "a1": {const.ACTIVITY_STATUS: "done"},
                "a2": {const.ACTIVITY_STATUS: "cancelled"},
            },
            const.SETUP_REASON_NO_ACTIVITIES,
        ),
        ({"g1": {const.GOAL_ID: "g1"}}, {"a1": {const.ACTIVITY_STATUS: "skipped"}}, None),
        ({"g1": {const.GOAL_ID: "g1"}}, {"a1": {}}, None),
    ],
)
def test_setup_next_step_reason(goals, activities, expected) -> None:
    """Setup is needed until there is a goal and one open activity."""
    snapshot = {const.DATA_GOALS: goals, const.DATA_ACTIVITIES: activities}
    assert NudgePolicyEngine.setup_next_step_reason(snapshot) == expected


# =============================================================================
# TEST: INVARIANTS
# =============================================================================


class TestInvariants:
    """Any returned fire time satisfies both rules."""

    @pytest.mark.parametrize(
        ("nudge_type", "time_local"),
        [
            (const.NUDGE_TYPE_DAILY_SHOW_UP, "09:00"),
            (const.NUDGE_TYPE_DAILY_FOCUS, "10:30"),
            (const.NUDGE_TYPE_GOAL_NUDGE, "16:00"),
        ],
    )
    def test_fire_time_respects_cap_and_spacing(self, nudge_type, time_local) -> None:
        """Returned instants are in the future, under the cap and spaced."""
        _enable_key, time_key = const.PREF_KEYS_BY_TYPE[nudge_type]
        ledger = _ledger(
            **{
                const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 2, "2026-01-02": 1},
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    other: "2026-01-02T12:00:00+00:00"
                    for other in const.SYSTEM_NUDGE_TYPES
                    if other != nudge_type
                },
            }
        )
        now = datetime(2026, 1, 1, 6, 0, tzinfo=UTC)

        fire_at = NudgePolicyEngine.decide_fire_time(
            nudge_type, now, _prefs(**{time_key: time_local}), ledger, tz=TZ_UTC
        )

        assert fire_at is not None
        assert fire_at > now
        assert fire_at.strftime("%H:%M") == time_local
        date_key = fire_at.date().isoformat()
        assert (
            NudgePolicyEngine.effective_sent_count(ledger, nudge_type, date_key)
            < const.SYSTEM_NUDGE_DAILY_CAP
        )
        assert NudgePolicyEngine.spacing_conflict(ledger, nudge_type, fire_at) is None

    def test_push_preserves_wall_clock_across_dst(self) -> None:
        """Pushing over the spring-forward night keeps 09:00 local."""
        ledger = _ledger(**{const.LEDGER_SENT_COUNT_BY_DATE: {"2026-03-07": 2}})
        now = datetime(2026, 3, 7, 12, 0, tzinfo=UTC)  # 07:00 EST

        fire_at = NudgePolicyEngine.decide_fire_time(
            const.NUDGE_TYPE_DAILY_SHOW_UP,
            now,
            _prefs(**{const.PREF_DAILY_SHOW_UP_TIME: "09:00"}),
            ledger,
            tz=TZ_NY,
        )

        assert fire_at is not None
        local = fire_at.astimezone(TZ_NY)
        assert (local.date().isoformat(), local.hour, local.minute) == ("2026-03-08", 9, 0)


# =============================================================================
# TEST: CANDIDATES AND EXEMPTIONS
# =============================================================================


class TestCandidates:
    """First candidate selection and activity reminder exemption."""

    def test_slot_already_passed_today_moves_to_tomorrow(self) -> None:
        """09:00 at 09:00 is not upcoming anymore."""
        fire_at = NudgePolicyEngine.first_candidate(
            const.NUDGE_TYPE_DAILY_SHOW_UP,
            datetime(2026, 1, 1, 9, 0, tzinfo=UTC),
            _prefs(**{const.PREF_DAILY_SHOW_UP_TIME: "09:00"}),
            tz=TZ_UTC,
        )
        assert fire_at == datetime(2026, 1, 2, 9, 0, tzinfo=UTC)

    def test_malformed_time_uses_fallback(self) -> None:
        """A malformed slot falls back to the type's default hour."""
        fire_at = NudgePolicyEngine.first_candidate(
            const.NUDGE_TYPE_DAILY_SHOW_UP,
            datetime(2026, 1, 1, 6, 0, tzinfo=UTC),
            _prefs(**{const.PREF_DAILY_SHOW_UP_TIME: "25:99"}),
            tz=TZ_UTC,
        )
        assert fire_at == datetime(
            2026, 1, 1, const.FALLBACK_HOUR_SHOW_UP, 0, tzinfo=UTC
        )

    def test_earliest_moves_candidate_to_that_day(self) -> None:
        """Focus completed today → next candidate is tomorrow at the same time."""
        fire_at = NudgePolicyEngine.first_candidate(
            const.NUDGE_TYPE_DAILY_FOCUS,
            datetime(2026, 1, 1, 6, 0, tzinfo=UTC),
            _prefs(**{const.PREF_DAILY_FOCUS_TIME: "08:00"}),
            earliest=datetime(2026, 1, 2, 0, 0, tzinfo=UTC),
            tz=TZ_UTC,
        )
        assert fire_at == datetime(2026, 1, 2, 8, 0, tzinfo=UTC)

    def test_activity_reminder_ignores_cap_and_spacing(self) -> None:
        """User-requested reminders fire at their target regardless of the ledger."""
        target = datetime(2026, 1, 1, 13, 0, tzinfo=UTC)
        ledger = _ledger(
            **{
                const.LEDGER_SENT_COUNT_BY_DATE: {"2026-01-01": 5},
                const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_SHOW_UP: "2026-01-01T12:00:00+00:00"
                },
            }
        )
        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_ACTIVITY_REMINDER,
            datetime(2026, 1, 1, 10, 0, tzinfo=UTC),
            _prefs(),
            ledger,
            target=target,
        )
        assert decision.fire_at == target

    def test_activity_reminder_in_past_is_declined(self) -> None:
        """A reminder whose instant passed is not scheduled."""
        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_ACTIVITY_REMINDER,
            datetime(2026, 1, 1, 10, 0, tzinfo=UTC),
            _prefs(),
            _ledger(),
            target=datetime(2026, 1, 1, 9, 0, tzinfo=UTC),
        )
        assert decision.fire_at is None
        assert decision.reasons == [REASON_TARGET_IN_PAST]


# =============================================================================
# TEST: ENGAGEMENT SIGNALS
# =============================================================================


class TestEngagement:
    """Soft engagement signals never gate scheduling."""

    def test_backoff_suggested_but_still_scheduled(self) -> None:
        """Three ignored nudges raise the signal, the nudge is still scheduled."""
        ledger = _ledger(
            **{
                const.LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_FOCUS: const.ENGAGEMENT_BACKOFF_NO_OPEN_THRESHOLD
                }
            }
        )
        decision = NudgePolicyEngine.evaluate(
            const.NUDGE_TYPE_DAILY_FOCUS,
            datetime(2026, 1, 1, 6, 0, tzinfo=UTC),
            _prefs(**{const.PREF_DAILY_FOCUS_TIME: "08:00"}),
            ledger,
            tz=TZ_UTC,
        )
        assert decision.backoff_suggested
        assert decision.fire_at == datetime(2026, 1, 1, 8, 0, tzinfo=UTC)

    def test_preferred_open_hour(self) -> None:
        """The most frequent open hour wins, ties go to the earlier hour."""
        ledger = _ledger(
            **{
                const.LEDGER_OPEN_HOUR_COUNTS_BY_TYPE: {
                    const.NUDGE_TYPE_DAILY_FOCUS: {"9": 2, "7": 3, "18": 3}
                }
            }
        )
        assert (
            NudgePolicyEngine.preferred_open_hour(ledger, const.NUDGE_TYPE_DAILY_FOCUS)
            == 7
        )
        assert (
            NudgePolicyEngine.preferred_open_hour(ledger, const.NUDGE_TYPE_GOAL_NUDGE)
            is None
        )


# =============================================================================
# TEST: GOAL NUDGE SUBJECT
# =============================================================================


class TestGoalCandidate:
    """Choosing the goal a goal nudge is about."""

    @staticmethod
    def _snapshot() -> dict:
        return {
            const.DATA_ARCS: {
                "arc-1": {const.ARC_ID: "arc-1", const.ARC_NAME: "Health", const.ARC_STATUS: "active"},
                "arc-2": {const.ARC_ID: "arc-2", const.ARC_NAME: "Old", const.ARC_STATUS: "archived"},
            },
            const.DATA_GOALS: {
                "g-many": {const.GOAL_ID: "g-many", const.GOAL_TITLE: "Run", const.GOAL_STATUS: "in_progress", const.GOAL_ARC_ID: "arc-1"},
                "g-today": {const.GOAL_ID: "g-today", const.GOAL_TITLE: "Read", const.GOAL_STATUS: "planned", const.GOAL_ARC_ID: "arc-1"},
                "g-archived": {const.GOAL_ID: "g-archived", const.GOAL_TITLE: "Skip", const.GOAL_STATUS: "in_progress", const.GOAL_ARC_ID: "arc-2"},
            },
            const.DATA_ACTIVITIES: {
                "a1": {const.ACTIVITY_ID: "a1", const.ACTIVITY_GOAL_ID: "g-many", const.ACTIVITY_STATUS: "planned"},
                "a2": {const.ACTIVITY_ID: "a2", const.ACTIVITY_GOAL_ID: "g-many", const.ACTIVITY_STATUS: "planned"},
                "a3": {const.ACTIVITY_ID: "a3", const.ACTIVITY_GOAL_ID: "g-today", const.ACTIVITY_STATUS: "planned", const.ACTIVITY_SCHEDULED_DATE: "2026-01-01"},
                "a4": {const.ACTIVITY_ID: "a4", const.ACTIVITY_GOAL_ID: "g-archived", const.ACTIVITY_STATUS: "planned"},
                "a5": {const.ACTIVITY_ID: "a5", const.ACTIVITY_GOAL_ID: "g-archived", const.ACTIVITY_STATUS: "planned"},
                "a6": {const.ACTIVITY_ID: "a6", const.ACTIVITY_GOAL_ID: "g-archived", const.ACTIVITY_STATUS: "planned"},
            },
        }

    def test_goal_with_activity_today_wins(self) -> None:
        """An activity scheduled today beats a larger backlog."""
        candidate = NudgePolicyEngine.pick_goal_nudge_candidate(
            self._snapshot(), datetime(2026, 1, 1, 10, 0, tzinfo=UTC), TZ_UTC
        )
        assert candidate is not None
        assert candidate.goal_id == "g-today"
        assert candidate.arc_name == "Health"

    def test_largest_backlog_otherwise(self) -> None:
        """Without anything scheduled today, the biggest incomplete backlog wins."""
        candidate = NudgePolicyEngine.pick_goal_nudge_candidate(
            self._snapshot(), datetime(2026, 1, 5, 10, 0, tzinfo=UTC), TZ_UTC
        )
        assert candidate is not None
        assert candidate.goal_id == "g-many"

    def test_no_active_arcs_means_no_candidate(self) -> None:
        """Goals under inactive arcs are never nudged about."""
        snapshot = self._snapshot()
        snapshot[const.DATA_ARCS]["arc-1"][const.ARC_STATUS] = "archived"
        assert (
            NudgePolicyEngine.pick_goal_nudge_candidate(
                snapshot, datetime(2026, 1, 1, 10, 0, tzinfo=UTC), TZ_UTC
            )
            is None
        )

    def test_candidate_uses_goal_key(self) -> None:
        """The goal's key identifies it even when its stored id field disagrees."""
        snapshot = self._snapshot()
        snapshot[const.DATA_GOALS]["g-today"][const.GOAL_ID] = "stale-id"

        candidate = NudgePolicyEngine.pick_goal_nudge_candidate(
            snapshot, datetime(2026, 1, 1, 10, 0, tzinfo=UTC), TZ_UTC
        )

        assert candidate is not None
        assert candidate.goal_id == "g-today"
        assert candidate.goal_title == "Read"
