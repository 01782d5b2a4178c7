"""Notification Manager - Drives the nudge policy against the notification host.

Responsibilities:
- Schedule dailyShowUp (repeating), dailyFocus, goalNudge and setupNextStep
  (one-shot) through NudgePolicyEngine
- Schedule/cancel per-activity reminders, keyed by activity id
- Keep the ledgers in step with the host: a ledger write happens only after
  the host confirmed the call it describes
- React to preference and activity changes (dispatcher signals)

Every host call is best-effort. Failures are logged and the next reconcile
pass heals whatever was missed; nothing here raises to callers.

Event Flow:
    set_preferences service  ──► preferences_changed ──► async_apply_preferences()
    upsert/remove_activity   ──► activities_changed  ──► async_sync_activities()
    DeliveryManager          ──► async_schedule_*()  (re-arming after firing)
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.delivery_engine import DeliveryEngine
from ..engines.policy_engine import GoalNudgeCandidate, NudgePolicyEngine
from ..helpers import ledger_helpers as lh
from ..utils.dt_utils import (
    as_local,
    dt_now_utc,
    dt_parse_iso,
    dt_to_iso,
    format_time_local,
    is_valid_time_local,
    local_date_key,
)
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..hosts import LocalNotificationHost
    from ..type_defs import NotificationContent, NotificationTrigger


class NotificationManager(BaseManager):
    """Schedules nudges and keeps their ledgers consistent with the host."""

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
        """Subscribe to activity and preference changes."""
        self.on_change(const.SIGNAL_SUFFIX_ACTIVITIES_CHANGED, self._on_activities_changed)
        self.on_change(const.SIGNAL_SUFFIX_PREFERENCES_CHANGED, self._on_preferences_changed)

    async def _on_activities_changed(
        self, previous: dict[str, Any] | None, current: dict[str, Any] | None
    ) -> None:
        await self.async_sync_activities(previous or {}, current or {})

    async def _on_preferences_changed(
        self, previous: dict[str, Any] | None, current: dict[str, Any] | None
    ) -> None:
        await self.async_apply_preferences(current or {}, previous)

    # =========================================================================
    # Host Boundary
    # =========================================================================

    async def _async_get_scheduled(self) -> list[dict[str, Any]] | None:
        try:
            return list(await self.host.async_get_all_scheduled())
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning("WARNING: Could not read scheduled notifications: %s", err)
            return None

    async def _async_host_cancel(self, notification_id: str | None) -> bool:
        if not notification_id:
            return True
        try:
            await self.host.async_cancel(notification_id)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Could not cancel notification %s: %s", notification_id, err
            )
            return False
        return True

    async def _async_host_schedule(
        self, content: NotificationContent, trigger: NotificationTrigger
    ) -> str | None:
        try:
            notification_id = await self.host.async_schedule(content, trigger)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Could not schedule '%s' notification: %s",
                content[const.CONTENT_DATA].get(const.CONTENT_DATA_TYPE),
                err,
            )
            return None
        if not notification_id:
            const.LOGGER.warning("WARNING: Notification host returned no identifier")
            return None
        return notification_id

    # =========================================================================
    # Gating
    # =========================================================================

    async def _async_notifications_allowed(
        self, preferences: dict[str, Any], enable_key: str
    ) -> bool:
        """Return True if the type is enabled and notifications are authorized.

        The permission is re-synced from the host, never read from cache.
        """
        if not preferences.get(const.PREF_NOTIFICATIONS_ENABLED):
            return False
        if not preferences.get(enable_key):
            return False
        status = await self.coordinator.permission_manager.async_sync(
            const.CAPABILITY_NOTIFICATIONS
        )
        if status != const.PERMISSION_AUTHORIZED:
            const.LOGGER.debug(
                "DEBUG: Notifications not authorized (%s) - skipping %s", status, enable_key
            )
            return False
        return True

    # =========================================================================
    # System Nudges
    # =========================================================================

    async def async_schedule_daily_show_up(
        self,
        time_local: str | None = None,
        *,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_SETTINGS,
    ) -> str | None:
        """(Re)schedule the repeating daily show-up nudge.

        The show-up supersedes a pending setupNextStep: the two never coexist.
        """
        # Released first so its pending slot does not space out the show-up.
        await self.async_cancel_system_nudge(const.NUDGE_TYPE_SETUP_NEXT_STEP)
        return await self._async_schedule_system_nudge(
            const.NUDGE_TYPE_DAILY_SHOW_UP, time_local=time_local, now=now, source=source
        )

    async def async_schedule_setup_next_step(
        self,
        *,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_RECONCILE,
    ) -> str | None:
        """Schedule the one-shot setup nudge in the show-up slot.

        Only while there are no goals or no open activities; otherwise any
        pending setup nudge is cancelled and None returned.
        """
        return await self._async_schedule_system_nudge(
            const.NUDGE_TYPE_SETUP_NEXT_STEP, now=now, source=source
        )

    async def async_schedule_daily_focus(
        self,
        time_local: str | None = None,
        *,
        earliest: datetime | None = None,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_SETTINGS,
    ) -> str | None:
        """(Re)schedule the one-shot daily focus nudge.

        Args:
            earliest: Lower bound for the fire time (e.g. tomorrow once today's
                      focus session is already completed)
        """
        return await self._async_schedule_system_nudge(
            const.NUDGE_TYPE_DAILY_FOCUS,
            time_local=time_local,
            earliest=earliest,
            now=now,
            source=source,
        )

    async def async_schedule_goal_nudge(
        self,
        *,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_SETTINGS,
    ) -> str | None:
        """(Re)schedule the one-shot goal nudge, unless the user showed up today."""
        return await self._async_schedule_system_nudge(
            const.NUDGE_TYPE_GOAL_NUDGE, now=now, source=source
        )

    async def _async_schedule_system_nudge(
        self,
        nudge_type: str,
        *,
        time_local: str | None = None,
        earliest: datetime | None = None,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_SETTINGS,
    ) -> str | None:
        """Gate → policy → cancel old → schedule → ledger.

        Returns:
            The notification id now scheduled for the type, or None.
        """
        now = now or dt_now_utc()
        enable_key, time_key = const.PREF_KEYS_BY_TYPE[nudge_type]
        preferences = await self.coordinator.async_load_preferences()
        if time_local is None or not is_valid_time_local(time_local):
            time_local = preferences.get(time_key)
        preferences = {**preferences, time_key: time_local}

        if not await self._async_notifications_allowed(preferences, enable_key):
            await self.async_cancel_system_nudge(nudge_type)
            return None

        domain = await self.coordinator.async_load_domain()
        today_key = local_date_key(now)
        candidate: GoalNudgeCandidate | None = None
        setup_reason: str | None = None
        showed_up_today = False
        if nudge_type == const.NUDGE_TYPE_GOAL_NUDGE:
            showed_up_today = domain.get(const.DATA_LAST_SHOW_UP_DATE) == today_key
            if not showed_up_today:
                candidate = NudgePolicyEngine.pick_goal_nudge_candidate(domain, now)
                if candidate is None:
                    const.LOGGER.debug("DEBUG: No goal to nudge about - skipping goalNudge")
                    await self.async_cancel_system_nudge(nudge_type)
                    return None
        elif nudge_type == const.NUDGE_TYPE_SETUP_NEXT_STEP:
            setup_reason = NudgePolicyEngine.setup_next_step_reason(domain)
            if setup_reason is None:
                const.LOGGER.debug("DEBUG: Nothing left to set up - skipping setupNextStep")
                await self.async_cancel_system_nudge(nudge_type)
                return None

        ledger = await lh.async_load_system_nudge_ledger(self.store)
        decision = NudgePolicyEngine.evaluate(
            nudge_type,
            now,
            preferences,
            ledger,
            showed_up_today=showed_up_today,
            earliest=earliest,
        )
        if decision.backoff_suggested:
            const.LOGGER.info(
                "INFO: '%s' went unopened %d+ times in a row; consider another time",
                nudge_type,
                const.ENGAGEMENT_BACKOFF_NO_OPEN_THRESHOLD,
            )
        if decision.fire_at is None:
            const.LOGGER.debug(
                "DEBUG: Policy declined '%s': %s", nudge_type, decision.reasons
            )
            await self.async_cancel_system_nudge(nudge_type)
            return None
        if decision.pushed_days:
            const.LOGGER.debug(
                "DEBUG: '%s' pushed %d day(s): %s",
                nudge_type,
                decision.pushed_days,
                decision.reasons,
            )

        fire_at = decision.fire_at
        fire_at_iso = dt_to_iso(fire_at)
        local_fire = as_local(fire_at)
        schedule_time_local = format_time_local(local_fire.hour, local_fire.minute)
        type_ledger = await lh.async_load_daily_ledger(self.store, nudge_type)

        scheduled = await self._async_get_scheduled()
        if scheduled is None:
            return None
        existing_ids = {
            item[const.SCHEDULED_IDENTIFIER]
            for item in DeliveryEngine.scheduled_of_type(scheduled, nudge_type)
        }
        current_id = type_ledger.get(const.NUDGE_LEDGER_NOTIFICATION_ID)

        # Already scheduled for exactly this instant: nothing to do.
        if (
            current_id in existing_ids
            and len(existing_ids) == 1
            and type_ledger.get(const.NUDGE_LEDGER_SCHEDULED_FOR) == fire_at_iso
            and type_ledger.get(const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL) == schedule_time_local
            and (
                candidate is None
                or type_ledger.get(const.NUDGE_LEDGER_GOAL_ID) == candidate.goal_id
            )
            and (
                setup_reason is None
                or type_ledger.get(const.NUDGE_LEDGER_REASON) == setup_reason
            )
        ):
            return current_id

        for notification_id in existing_ids | ({current_id} if current_id else set()):
            await self._async_host_cancel(notification_id)

        content = self._build_system_content(nudge_type, candidate, setup_reason)
        trigger = self._build_trigger(nudge_type, fire_at)
        notification_id = await self._async_host_schedule(content, trigger)
        if notification_id is None:
            # The old instance is gone; give its slot back.
            await lh.async_release_system_nudge(self.store, nudge_type)
            await lh.async_update_daily_ledger(
                self.store,
                nudge_type,
                **{
                    const.NUDGE_LEDGER_NOTIFICATION_ID: None,
                    const.NUDGE_LEDGER_SCHEDULED_FOR: None,
                },
            )
            return None

        await lh.async_record_system_nudge_scheduled(
            self.store, nudge_type, notification_id, fire_at, local_date_key(fire_at)
        )
        ledger_fields: dict[str, Any] = {
            const.NUDGE_LEDGER_NOTIFICATION_ID: notification_id,
            const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL: schedule_time_local,
            const.NUDGE_LEDGER_SCHEDULED_FOR: fire_at_iso,
        }
        if candidate is not None:
            ledger_fields[const.NUDGE_LEDGER_GOAL_ID] = candidate.goal_id
        if setup_reason is not None:
            ledger_fields[const.NUDGE_LEDGER_REASON] = setup_reason
        await lh.async_update_daily_ledger(self.store, nudge_type, **ledger_fields)

        const.LOGGER.debug(
            "DEBUG: Scheduled '%s' for %s (id %s, source %s)",
            nudge_type,
            fire_at_iso,
            notification_id,
            source,
        )
        event_data: dict[str, Any] = {
            const.ATTR_NOTIFICATION_TYPE: nudge_type,
            const.ATTR_NOTIFICATION_ID: notification_id,
            const.ATTR_SCHEDULED_FOR: fire_at_iso,
            const.ATTR_SCHEDULE_TIME_LOCAL: schedule_time_local,
            const.ATTR_SCHEDULED_SOURCE: source,
            const.ATTR_GOAL_ID: candidate.goal_id if candidate else None,
        }
        if setup_reason is not None:
            event_data[const.ATTR_SETUP_REASON] = setup_reason
        self.fire_bus_event(const.EVENT_NOTIFICATION_SCHEDULED, **event_data)
        return notification_id

    async def async_cancel_system_nudge(self, nudge_type: str) -> None:
        """Cancel every host instance of a system nudge and release its slot."""
        type_ledger = await lh.async_load_daily_ledger(self.store, nudge_type)
        to_cancel: set[str] = set()
        if type_ledger.get(const.NUDGE_LEDGER_NOTIFICATION_ID):
            to_cancel.add(type_ledger[const.NUDGE_LEDGER_NOTIFICATION_ID])
        scheduled = await self._async_get_scheduled() or []
        to_cancel.update(
            item[const.SCHEDULED_IDENTIFIER]
            for item in DeliveryEngine.scheduled_of_type(scheduled, nudge_type)
        )

        all_cancelled = True
        for notification_id in to_cancel:
            all_cancelled = await self._async_host_cancel(notification_id) and all_cancelled
        if not all_cancelled:
            # Keep the ledger pointing at what may still fire.
            return

        if await lh.async_release_system_nudge(self.store, nudge_type):
            const.LOGGER.debug("DEBUG: Released pending '%s' slot", nudge_type)
        await lh.async_update_daily_ledger(
            self.store,
            nudge_type,
            **{
                const.NUDGE_LEDGER_NOTIFICATION_ID: None,
                const.NUDGE_LEDGER_SCHEDULED_FOR: None,
            },
        )

    async def async_record_opened(
        self,
        nudge_type: str,
        notification_id: str | None = None,
        opened_at: datetime | None = None,
    ) -> None:
        """Record that the user opened a system nudge (engagement signal)."""
        if nudge_type not in const.SYSTEM_NUDGE_TYPES:
            const.LOGGER.debug(
                "DEBUG: Open of '%s' not tracked for engagement", nudge_type
            )
            return
        opened_at = opened_at or dt_now_utc()
        await lh.async_record_system_nudge_opened(self.store, nudge_type, opened_at)
        self.fire_bus_event(
            const.EVENT_NOTIFICATION_OPENED,
            **{
                const.ATTR_NOTIFICATION_TYPE: nudge_type,
                const.ATTR_NOTIFICATION_ID: notification_id,
                const.ATTR_OPENED_AT: dt_to_iso(opened_at),
            },
        )

    @staticmethod
    def _build_system_content(
        nudge_type: str,
        candidate: GoalNudgeCandidate | None = None,
        setup_reason: str | None = None,
    ) -> NotificationContent:
        data: dict[str, Any] = {const.CONTENT_DATA_TYPE: nudge_type}
        if nudge_type == const.NUDGE_TYPE_DAILY_SHOW_UP:
            title, body = const.COPY_DAILY_SHOW_UP_TITLE, const.COPY_DAILY_SHOW_UP_BODY
        elif nudge_type == const.NUDGE_TYPE_DAILY_FOCUS:
            title, body = const.COPY_DAILY_FOCUS_TITLE, const.COPY_DAILY_FOCUS_BODY
        elif nudge_type == const.NUDGE_TYPE_SETUP_NEXT_STEP:
            reason = setup_reason or const.SETUP_REASON_NO_ACTIVITIES
            title, body = const.COPY_SETUP_NEXT_STEP[reason]
            data[const.CONTENT_DATA_REASON] = reason
        else:
            goal_title = candidate.goal_title if candidate else ""
            title = const.COPY_GOAL_NUDGE_TITLE.format(goal_title=goal_title)
            if candidate and candidate.arc_name:
                body = const.COPY_GOAL_NUDGE_BODY_WITH_ARC.format(
                    goal_title=goal_title, arc_name=candidate.arc_name
                )
            else:
                body = const.COPY_GOAL_NUDGE_BODY
            if candidate:
                data[const.CONTENT_DATA_GOAL_ID] = candidate.goal_id
        return {
            const.CONTENT_TITLE: title,
            const.CONTENT_BODY: body,
            const.CONTENT_DATA: data,
        }  # type: ignore[return-value]

    @staticmethod
    def _build_trigger(nudge_type: str, fire_at: datetime) -> NotificationTrigger:
        """dailyShowUp repeats every day from fire_at; everything else is one-shot."""
        if nudge_type == const.NUDGE_TYPE_DAILY_SHOW_UP:
            local_fire = as_local(fire_at)
            return {
                const.TRIGGER_TYPE: const.TRIGGER_TYPE_DAILY,
                const.TRIGGER_HOUR: local_fire.hour,
                const.TRIGGER_MINUTE: local_fire.minute,
                const.TRIGGER_STARTS_AT: dt_to_iso(fire_at),
            }  # type: ignore[return-value]
        return {
            const.TRIGGER_TYPE: const.TRIGGER_TYPE_DATE,
            const.TRIGGER_DATE: dt_to_iso(fire_at),
        }  # type: ignore[return-value]

    # =========================================================================
    # Activity Reminders
    # =========================================================================

    async def async_schedule_activity_reminder(
        self,
        activity_id: str,
        *,
        now: datetime | None = None,
        source: str = const.SCHEDULE_SOURCE_SETTINGS,
    ) -> str | None:
        """Schedule (or clear) the reminder of one activity.

        Activities that are gone, closed, without reminder_at, or whose
        reminder is in the past end up with no reminder.
        """
        now = now or dt_now_utc()
        preferences = await self.coordinator.async_load_preferences()
        domain = await self.coordinator.async_load_domain()
        activity = (domain.get(const.DATA_ACTIVITIES) or {}).get(activity_id)

        if (
            not isinstance(activity, dict)
            or activity.get(const.ACTIVITY_STATUS) in const.ACTIVITY_CLOSED_STATUSES
        ):
            await self.async_cancel_activity_reminder(activity_id)
            return None

        if not await self._async_notifications_allowed(
            preferences, const.PREF_ALLOW_ACTIVITY_REMINDERS
        ):
            await self.async_cancel_activity_reminder(activity_id)
            return None

        target = dt_parse_iso(activity.get(const.ACTIVITY_REMINDER_AT))
        fire_at = NudgePolicyEngine.decide_fire_time(
            const.NUDGE_TYPE_ACTIVITY_REMINDER, now, preferences, {}, target=target
        )
        if fire_at is None:
            await self.async_cancel_activity_reminder(activity_id)
            return None
        fire_at_iso = dt_to_iso(fire_at)

        ledger = await lh.async_load_activity_reminder_ledger(self.store)
        entry = ledger.get(activity_id) or {}
        scheduled = await self._async_get_scheduled()
        if scheduled is None:
            return None
        if (
            not DeliveryEngine.activity_reminder_prunable(entry)
            and entry.get(const.REMINDER_SCHEDULED_FOR) == fire_at_iso
            and entry.get(const.REMINDER_NOTIFICATION_ID)
            in DeliveryEngine.scheduled_ids(scheduled)
        ):
            return entry[const.REMINDER_NOTIFICATION_ID]

        await self.async_cancel_activity_reminder(activity_id, scheduled=scheduled)

        content: NotificationContent = {
            const.CONTENT_TITLE: activity.get(const.ACTIVITY_TITLE)
            or const.COPY_ACTIVITY_REMINDER_TITLE,
            const.CONTENT_BODY: const.COPY_ACTIVITY_REMINDER_BODY,
            const.CONTENT_DATA: {
                const.CONTENT_DATA_TYPE: const.NUDGE_TYPE_ACTIVITY_REMINDER,
                const.CONTENT_DATA_ACTIVITY_ID: activity_id,
            },
        }  # type: ignore[assignment]
        notification_id = await self._async_host_schedule(
            content, self._build_trigger(const.NUDGE_TYPE_ACTIVITY_REMINDER, fire_at)
        )
        if notification_id is None:
            return None

        await lh.async_upsert_activity_reminder(
            self.store,
            {
                const.REMINDER_ACTIVITY_ID: activity_id,
                const.REMINDER_NOTIFICATION_ID: notification_id,
                const.REMINDER_SCHEDULED_FOR: fire_at_iso,
            },  # type: ignore[arg-type]
        )
        self.fire_bus_event(
            const.EVENT_NOTIFICATION_SCHEDULED,
            **{
                const.ATTR_NOTIFICATION_TYPE: const.NUDGE_TYPE_ACTIVITY_REMINDER,
                const.ATTR_NOTIFICATION_ID: notification_id,
                const.ATTR_ACTIVITY_ID: activity_id,
                const.ATTR_SCHEDULED_FOR: fire_at_iso,
                const.ATTR_SCHEDULED_SOURCE: source,
            },
        )
        return notification_id

    async def async_cancel_activity_reminder(
        self,
        activity_id: str,
        *,
        scheduled: list[dict[str, Any]] | None = None,
    ) -> bool:
        """Cancel an activity's reminder and mark its ledger entry cancelled.

        Stray host entries carrying the same activity id are cancelled too.

        Returns:
            True if a live reminder was cancelled.
        """
        if scheduled is None:
            scheduled = await self._async_get_scheduled() or []
        ledger = await lh.async_load_activity_reminder_ledger(self.store)
        entry = ledger.get(activity_id) or {}

        strays = {
            item[const.SCHEDULED_IDENTIFIER]
            for item in DeliveryEngine.scheduled_of_type(
                scheduled, const.NUDGE_TYPE_ACTIVITY_REMINDER
            )
            if (item[const.SCHEDULED_CONTENT].get(const.CONTENT_DATA) or {}).get(
                const.CONTENT_DATA_ACTIVITY_ID
            )
            == activity_id
        }
        for notification_id in strays - {entry.get(const.REMINDER_NOTIFICATION_ID)}:
            await self._async_host_cancel(notification_id)

        if not entry or DeliveryEngine.activity_reminder_prunable(entry):
            return False

        await self._async_host_cancel(entry.get(const.REMINDER_NOTIFICATION_ID))
        # Marked cancelled even if the host call failed; the reconciler never
        # infers a cancelled entry as fired.
        cancelled = await lh.async_mark_activity_reminder_cancelled(
            self.store, activity_id, dt_now_utc()
        )
        if cancelled:
            const.LOGGER.debug("DEBUG: Cancelled reminder for activity %s", activity_id)
        return cancelled

    async def async_sync_activities(
        self, previous: dict[str, Any], current: dict[str, Any]
    ) -> None:
        """Reconcile reminders for the activities that changed.

        Args:
            previous: {activity_id: snapshot or None} before the change
            current: {activity_id: snapshot or None} after the change
        """
        for activity_id in sorted(set(previous) | set(current)):
            before = previous.get(activity_id) or {}
            after = current.get(activity_id)
            if (
                not isinstance(after, dict)
                or after.get(const.ACTIVITY_STATUS) in const.ACTIVITY_CLOSED_STATUSES
            ):
                await self.async_cancel_activity_reminder(activity_id)
                continue
            if (
                not before
                or before.get(const.ACTIVITY_REMINDER_AT)
                != after.get(const.ACTIVITY_REMINDER_AT)
                or before.get(const.ACTIVITY_STATUS) != after.get(const.ACTIVITY_STATUS)
                or before.get(const.ACTIVITY_TITLE) != after.get(const.ACTIVITY_TITLE)
            ):
                await self.async_schedule_activity_reminder(activity_id)

    # =========================================================================
    # Preferences
    # =========================================================================

    async def async_apply_preferences(
        self,
        preferences: dict[str, Any],
        previous: dict[str, Any] | None = None,
    ) -> None:
        """Reschedule whatever a preference change affects.

        With no previous preferences every type is re-evaluated.
        """
        def _changed(*keys: str) -> bool:
            if previous is None:
                return True
            return any(previous.get(key) != preferences.get(key) for key in keys)

        master_changed = _changed(const.PREF_NOTIFICATIONS_ENABLED)

        if master_changed or _changed(*const.PREF_KEYS_BY_TYPE[const.NUDGE_TYPE_DAILY_SHOW_UP]):
            await self.async_schedule_daily_show_up()
        if master_changed or _changed(*const.PREF_KEYS_BY_TYPE[const.NUDGE_TYPE_DAILY_FOCUS]):
            await self.async_schedule_daily_focus()
        if master_changed or _changed(*const.PREF_KEYS_BY_TYPE[const.NUDGE_TYPE_GOAL_NUDGE]):
            await self.async_schedule_goal_nudge()

        if master_changed or _changed(const.PREF_ALLOW_ACTIVITY_REMINDERS):
            domain = await self.coordinator.async_load_domain()
            reminders = await lh.async_load_activity_reminder_ledger(self.store)
            activity_ids = set(domain.get(const.DATA_ACTIVITIES) or {}) | set(reminders)
            for activity_id in sorted(activity_ids):
                await self.async_schedule_activity_reminder(activity_id)
