"""Delivery Manager - Infers fired notifications and re-arms nudges.

Runs on every background wake-up (coordinator refresh) and on app launch
(integration setup). Each pass is rebuilt from durable documents only, so it
behaves the same in a fresh process as in a warm one.

Per pass:
1. Activity reminders: entries gone from the host after their instant are
   reported fired once, stamped, then pruned.
2. dailyShowUp (repeating): once per local date after its time-of-day, one
   delivery estimate; re-armed through the scheduler when nothing is scheduled.
   With no goals or no open activities the slot is re-armed as a one-shot
   setupNextStep instead, estimated on disappearance like the other one-shots.
3. dailyFocus (one-shot): estimated on disappearance; "nag until done" means
   completed today → move to tomorrow, otherwise keep the next occurrence armed.
4. goalNudge (one-shot): estimated on disappearance; re-armed when missing.

Idempotency: a second pass with no intervening change emits nothing and
writes nothing.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.delivery_engine import DeliveryEngine
from ..engines.policy_engine import NudgePolicyEngine
from ..helpers import ledger_helpers as lh
from ..utils.dt_utils import (
    as_local,
    at_local_time,
    dt_now_utc,
    dt_parse_iso,
    dt_to_iso,
    local_date_key,
    parse_time_local,
)
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..hosts import LocalNotificationHost


class DeliveryManager(BaseManager):
    """Reconciles the ledgers against the host's scheduled set."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: NudgeSchedulerCoordinator,
        host: LocalNotificationHost,
    ) -> None:
        """Initialize the manager with its notification host."""
        super().__init__(hass, coordinator)
        self.host = host

    async def async_setup(self) -> None:
        """Nothing to subscribe to; passes are driven by the coordinator."""

    async def async_reconcile(
        self, source: str, *, now: datetime | None = None
    ) -> dict[str, Any]:
        """Run one reconciliation pass.

        Args:
            source: const.RECONCILE_SOURCE_* (reported in analytics events)
            now: Override for the current instant (tests)

        Returns:
            Summary counts for diagnostics. Never raises.
        """
        now = now or dt_now_utc()
        summary: dict[str, Any] = {
            "source": source,
            "ran_at": dt_to_iso(now),
            "fired_estimated": 0,
            "pruned": 0,
            "rescheduled": [],
        }
        try:
            scheduled = list(await self.host.async_get_all_scheduled())
        except Exception as err:  # pylint: disable=broad-exception-caught
            # Without the scheduled set nothing can be inferred; next pass retries.
            const.LOGGER.warning(
                "WARNING: Reconcile (%s) skipped, scheduled set unavailable: %s",
                source,
                err,
            )
            summary["skipped"] = True
            return summary

        await self._async_reconcile_activity_reminders(scheduled, now, source, summary)

        preferences = await self.coordinator.async_load_preferences()
        notifications_ok = False
        if preferences.get(const.PREF_NOTIFICATIONS_ENABLED):
            status = await self.coordinator.permission_manager.async_sync(
                const.CAPABILITY_NOTIFICATIONS
            )
            notifications_ok = status == const.PERMISSION_AUTHORIZED

        await self._async_reconcile_daily_show_up(
            scheduled, preferences, notifications_ok, now, source, summary
        )
        await self._async_reconcile_daily_focus(
            scheduled, preferences, notifications_ok, now, source, summary
        )
        await self._async_reconcile_goal_nudge(
            scheduled, preferences, notifications_ok, now, source, summary
        )

        if summary["fired_estimated"] or summary["rescheduled"]:
            const.LOGGER.debug("DEBUG: Reconcile summary: %s", summary)
        return summary

    # -------------------------------------------------------------------------
    # Activity reminders
    # -------------------------------------------------------------------------

    async def _async_reconcile_activity_reminders(
        self,
        scheduled: list[dict[str, Any]],
        now: datetime,
        source: str,
        summary: dict[str, Any],
    ) -> None:
        scheduled_ids = DeliveryEngine.scheduled_ids(scheduled)
        ledger = await lh.async_load_activity_reminder_ledger(self.store)

        for activity_id, entry in ledger.items():
            if not DeliveryEngine.activity_reminder_fired(entry, scheduled_ids, now):
                continue
            self._fire_estimated(
                const.NUDGE_TYPE_ACTIVITY_REMINDER,
                entry[const.REMINDER_NOTIFICATION_ID],
                now,
                source,
                **{
                    const.ATTR_ACTIVITY_ID: activity_id,
                    const.ATTR_SCHEDULED_FOR: entry[const.REMINDER_SCHEDULED_FOR],
                },
            )
            summary["fired_estimated"] += 1
            await lh.async_mark_activity_reminder_fired(
                self.store, activity_id, entry[const.REMINDER_SCHEDULED_FOR], now
            )

        pruned = await lh.async_prune_activity_reminders(self.store)
        summary["pruned"] += len(pruned)

    # -------------------------------------------------------------------------
    # One-shot system nudges (shared)
    # -------------------------------------------------------------------------

    async def _async_estimate_one_shot(
        self,
        nudge_type: str,
        scheduled_ids: set[str],
        now: datetime,
        source: str,
        summary: dict[str, Any],
    ) -> None:
        """Report a one-shot system nudge that vanished after its instant."""
        ledger = await lh.async_load_daily_ledger(self.store, nudge_type)
        notification_id = ledger.get(const.NUDGE_LEDGER_NOTIFICATION_ID)
        scheduled_for_iso = ledger.get(const.NUDGE_LEDGER_SCHEDULED_FOR)
        if not DeliveryEngine.one_shot_fired(
            notification_id, scheduled_for_iso, scheduled_ids, now
        ):
            return

        fired_at = dt_parse_iso(scheduled_for_iso) or now
        date_key = local_date_key(fired_at)
        extra: dict[str, Any] = {
            const.ATTR_DATE_KEY: date_key,
            const.ATTR_SCHEDULED_FOR: scheduled_for_iso,
            const.ATTR_SCHEDULE_TIME_LOCAL: ledger.get(
                const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL
            ),
        }
        if ledger.get(const.NUDGE_LEDGER_GOAL_ID):
            extra[const.ATTR_GOAL_ID] = ledger[const.NUDGE_LEDGER_GOAL_ID]
        if ledger.get(const.NUDGE_LEDGER_REASON):
            extra[const.ATTR_SETUP_REASON] = ledger[const.NUDGE_LEDGER_REASON]
        self._fire_estimated(nudge_type, notification_id, now, source, **extra)
        summary["fired_estimated"] += 1

        await lh.async_record_system_nudge_fired_estimated(
            self.store, nudge_type, fired_at, date_key
        )
        await lh.async_update_daily_ledger(
            self.store,
            nudge_type,
            **{
                const.NUDGE_LEDGER_NOTIFICATION_ID: None,
                const.NUDGE_LEDGER_SCHEDULED_FOR: None,
                const.NUDGE_LEDGER_LAST_FIRED_DATE_KEY: date_key,
            },
        )

    # -------------------------------------------------------------------------
    # dailyShowUp
    # -------------------------------------------------------------------------

    async def _async_reconcile_daily_show_up(
        self,
        scheduled: list[dict[str, Any]],
        preferences: dict[str, Any],
        notifications_ok: bool,
        now: datetime,
        source: str,
        summary: dict[str, Any],
    ) -> None:
        nudge_type = const.NUDGE_TYPE_DAILY_SHOW_UP
        scheduled_ids = DeliveryEngine.scheduled_ids(scheduled)
        ledger = await lh.async_load_daily_ledger(self.store, nudge_type)

        date_key = DeliveryEngine.repeating_fire_due(ledger, scheduled_ids, now)
        if date_key is not None:
            time_local = ledger[const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL]
            hour, minute = parse_time_local(time_local)  # type: ignore[misc]
            occurrence = at_local_time(as_local(now).date(), hour, minute)
            self._fire_estimated(
                nudge_type,
                ledger[const.NUDGE_LEDGER_NOTIFICATION_ID],
                now,
                source,
                **{
                    const.ATTR_DATE_KEY: date_key,
                    const.ATTR_SCHEDULE_TIME_LOCAL: time_local,
                },
            )
            summary["fired_estimated"] += 1
            await lh.async_record_system_nudge_fired_estimated(
                self.store, nudge_type, occurrence, date_key
            )
            await lh.async_update_daily_ledger(
                self.store,
                nudge_type,
                **{const.NUDGE_LEDGER_LAST_FIRED_DATE_KEY: date_key},
            )

        setup_type = const.NUDGE_TYPE_SETUP_NEXT_STEP
        await self._async_estimate_one_shot(
            setup_type, scheduled_ids, now, source, summary
        )

        manager = self.coordinator.notification_manager
        enabled = notifications_ok and preferences.get(const.PREF_ALLOW_DAILY_SHOW_UP)
        still_scheduled = DeliveryEngine.scheduled_of_type(scheduled, nudge_type)
        setup_scheduled = DeliveryEngine.scheduled_of_type(scheduled, setup_type)
        if not enabled:
            if still_scheduled:
                await manager.async_cancel_system_nudge(nudge_type)
            if setup_scheduled:
                await manager.async_cancel_system_nudge(setup_type)
            return
        if still_scheduled:
            return

        domain = await self.coordinator.async_load_domain()
        if NudgePolicyEngine.setup_next_step_reason(domain) is None:
            # Also drops a setup nudge that is no longer needed.
            if await manager.async_schedule_daily_show_up(
                now=now, source=const.SCHEDULE_SOURCE_RECONCILE
            ):
                summary["rescheduled"].append(nudge_type)
        elif not setup_scheduled:
            if await manager.async_schedule_setup_next_step(
                now=now, source=const.SCHEDULE_SOURCE_RECONCILE
            ):
                summary["rescheduled"].append(setup_type)

    # -------------------------------------------------------------------------
    # dailyFocus
    # -------------------------------------------------------------------------

    async def _async_reconcile_daily_focus(
        self,
        scheduled: list[dict[str, Any]],
        preferences: dict[str, Any],
        notifications_ok: bool,
        now: datetime,
        source: str,
        summary: dict[str, Any],
    ) -> None:
        nudge_type = const.NUDGE_TYPE_DAILY_FOCUS
        await self._async_estimate_one_shot(
            nudge_type, DeliveryEngine.scheduled_ids(scheduled), now, source, summary
        )

        still_scheduled = DeliveryEngine.scheduled_of_type(scheduled, nudge_type)
        manager = self.coordinator.notification_manager
        if not (notifications_ok and preferences.get(const.PREF_ALLOW_DAILY_FOCUS)):
            if still_scheduled:
                await manager.async_cancel_system_nudge(nudge_type)
            return

        domain = await self.coordinator.async_load_domain()
        local_today = as_local(now).date()
        completed_today = (
            domain.get(const.DATA_LAST_COMPLETED_FOCUS_DATE) == local_today.isoformat()
        )

        if completed_today:
            tomorrow_start = at_local_time(local_today + timedelta(days=1), 0, 0)
            due_today = [
                item
                for item in still_scheduled
                if (
                    dt_parse_iso(
                        (item.get(const.SCHEDULED_TRIGGER) or {}).get(const.TRIGGER_DATE)
                    )
                    or now
                )
                < tomorrow_start
            ]
            if due_today or not still_scheduled:
                # Done for today: the next nag is tomorrow at the same time.
                if await manager.async_schedule_daily_focus(
                    earliest=tomorrow_start,
                    now=now,
                    source=const.SCHEDULE_SOURCE_RECONCILE,
                ):
                    summary["rescheduled"].append(nudge_type)
            return

        if not still_scheduled:
            if await manager.async_schedule_daily_focus(
                now=now, source=const.SCHEDULE_SOURCE_RECONCILE
            ):
                summary["rescheduled"].append(nudge_type)

    # -------------------------------------------------------------------------
    # goalNudge
    # -------------------------------------------------------------------------

    async def _async_reconcile_goal_nudge(
        self,
        scheduled: list[dict[str, Any]],
        preferences: dict[str, Any],
        notifications_ok: bool,
        now: datetime,
        source: str,
        summary: dict[str, Any],
    ) -> None:
        nudge_type = const.NUDGE_TYPE_GOAL_NUDGE
        await self._async_estimate_one_shot(
            nudge_type, DeliveryEngine.scheduled_ids(scheduled), now, source, summary
        )

        still_scheduled = DeliveryEngine.scheduled_of_type(scheduled, nudge_type)
        manager = self.coordinator.notification_manager
        if not (notifications_ok and preferences.get(const.PREF_ALLOW_GOAL_NUDGES)):
            if still_scheduled:
                await manager.async_cancel_system_nudge(nudge_type)
            return
        if not still_scheduled:
            # The scheduler applies the "already showed up today" suppression.
            if await manager.async_schedule_goal_nudge(
                now=now, source=const.SCHEDULE_SOURCE_RECONCILE
            ):
                summary["rescheduled"].append(nudge_type)

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def _fire_estimated(
        self,
        nudge_type: str,
        notification_id: str | None,
        now: datetime,
        source: str,
        **extra: Any,
    ) -> None:
        """Emit exactly one fired-estimate event for an inferred occurrence."""
        const.LOGGER.debug(
            "DEBUG: '%s' notification %s estimated fired (%s)",
            nudge_type,
            notification_id,
            source,
        )
        self.fire_bus_event(
            const.EVENT_NOTIFICATION_FIRED_ESTIMATED,
            **{
                const.ATTR_NOTIFICATION_TYPE: nudge_type,
                const.ATTR_NOTIFICATION_ID: notification_id,
                const.ATTR_DETECTED_AT: dt_to_iso(now),
                const.ATTR_DETECTION_SOURCE: source,
                **extra,
            },
        )
