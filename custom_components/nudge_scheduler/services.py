# File: services.py
"""Defines custom services for the Nudge Scheduler integration.

The services are the inbound interface: the app (or an automation) pushes the
domain snapshot and user preferences through them, reports engagement, and
forwards raw geofence events. Every write lands in a durable document first;
change signals are sent afterwards so managers re-read what was written.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import voluptuous as vol
from homeassistant.core import HomeAssistant, ServiceCall
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import config_validation as cv
from homeassistant.util import dt as dt_util

from . import const
from .coordinator import NudgeSchedulerCoordinator
from .helpers.event_helpers import async_send_change
from .utils.dt_utils import (
    as_local,
    at_local_time,
    dt_now_utc,
    is_valid_time_local,
    local_date_key,
)

# --- Service Schemas ---
SET_PREFERENCES_SCHEMA = vol.Schema(
    {
        vol.Optional(const.PREF_NOTIFICATIONS_ENABLED): cv.boolean,
        vol.Optional(const.PREF_ALLOW_ACTIVITY_REMINDERS): cv.boolean,
        vol.Optional(const.PREF_ALLOW_DAILY_SHOW_UP): cv.boolean,
        vol.Optional(const.PREF_DAILY_SHOW_UP_TIME): cv.string,
        vol.Optional(const.PREF_ALLOW_DAILY_FOCUS): cv.boolean,
        vol.Optional(const.PREF_DAILY_FOCUS_TIME): cv.string,
        vol.Optional(const.PREF_ALLOW_GOAL_NUDGES): cv.boolean,
        vol.Optional(const.PREF_GOAL_NUDGE_TIME): cv.string,
        vol.Optional(const.PREF_LOCATION_OFFERS_ENABLED): cv.boolean,
    }
)

UPSERT_ACTIVITY_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_ACTIVITY_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_STATUS): vol.In(const.ACTIVITY_STATUSES),
        vol.Optional(const.FIELD_GOAL_ID): vol.Any(cv.string, None),
        vol.Optional(const.FIELD_SCHEDULED_DATE): vol.Any(cv.string, None),
        vol.Optional(const.FIELD_SCHEDULED_AT): vol.Any(cv.string, None),
        vol.Optional(const.FIELD_REMINDER_AT): vol.Any(cv.string, None),
        vol.Optional(const.FIELD_LATITUDE): cv.latitude,
        vol.Optional(const.FIELD_LONGITUDE): cv.longitude,
        vol.Optional(const.FIELD_RADIUS_M): vol.Coerce(float),
        vol.Optional(const.FIELD_TRIGGER): vol.In(const.LOCATION_TRIGGERS),
        vol.Optional(const.FIELD_LABEL): cv.string,
        vol.Optional(const.FIELD_CLEAR_LOCATION, default=False): cv.boolean,
    }
)

REMOVE_ACTIVITY_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_ACTIVITY_ID): cv.string,
    }
)

UPSERT_GOAL_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_GOAL_ID): cv.string,
        vol.Optional(const.FIELD_TITLE): cv.string,
        vol.Optional(const.FIELD_STATUS): cv.string,
        vol.Optional(const.FIELD_ARC_ID): vol.Any(cv.string, None),
        vol.Optional(const.FIELD_ARC_NAME): cv.string,
    }
)

RECORD_DATE_SCHEMA = vol.Schema(
    {
        vol.Optional(const.FIELD_DATE): cv.date,
    }
)

RECORD_NUDGE_OPENED_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_NUDGE_TYPE): vol.In(const.NUDGE_TYPES),
        vol.Optional(const.ATTR_NOTIFICATION_ID): cv.string,
    }
)

RECONCILE_NOW_SCHEMA = vol.Schema({})

ENSURE_PERMISSION_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_CAPABILITY): vol.In(const.CAPABILITIES),
        vol.Optional(
            const.FIELD_REASON, default=const.PERMISSION_REASON_DAILY
        ): vol.In(const.PERMISSION_REASONS),
    }
)

GEOFENCE_EVENT_SCHEMA = vol.Schema(
    {
        vol.Required(const.FIELD_EVENT): vol.Any(
            vol.In((const.GEOFENCE_EVENT_ENTER, const.GEOFENCE_EVENT_EXIT)),
            vol.All(
                vol.Coerce(int),
                vol.In((const.GEOFENCE_EVENT_CODE_ENTER, const.GEOFENCE_EVENT_CODE_EXIT)),
            ),
        ),
        vol.Required(const.FIELD_REGION_IDENTIFIER): cv.string,
    }
)


# --- Helpers ---


def _get_coordinator(hass: HomeAssistant) -> NudgeSchedulerCoordinator | None:
    """Return the coordinator of the (single) loaded entry."""
    domain_entries = hass.data.get(const.DOMAIN)
    if not domain_entries:
        return None
    entry_data = next(iter(domain_entries.values()), None)
    return entry_data[const.COORDINATOR] if entry_data else None


def _send_change(
    hass: HomeAssistant,
    coordinator: NudgeSchedulerCoordinator,
    suffix: str,
    previous: Any,
    current: Any,
) -> None:
    """Send an instance-scoped change signal to the managers."""
    async_send_change(
        hass, coordinator.config_entry.entry_id, suffix, previous, current
    )


def _iso_instant(value: str | None, field: str) -> str | None:
    """Validate a user supplied date/time and return it as a UTC ISO string.

    Naive values are read in Home Assistant's configured timezone.
    """
    if value in (None, ""):
        return None
    parsed = dt_util.parse_datetime(value)
    if parsed is None:
        raise HomeAssistantError(const.ERROR_INVALID_DATETIME_FMT.format(value, field))
    return dt_util.as_utc(parsed).isoformat()


def _iso_date(value: str | None, field: str) -> str | None:
    if value in (None, ""):
        return None
    parsed = dt_util.parse_date(value)
    if parsed is None:
        raise HomeAssistantError(const.ERROR_INVALID_DATETIME_FMT.format(value, field))
    return parsed.isoformat()


def async_setup_services(hass: HomeAssistant):
    """Register Nudge Scheduler services."""

    # --- Preferences ---

    async def handle_set_preferences(call: ServiceCall):
        """Merge preference changes and apply them."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Set Preferences: %s", const.MSG_NO_ENTRY_FOUND)
            return

        updates = dict(call.data)
        for _enable_key, time_key in const.PREF_KEYS_BY_TYPE.values():
            if time_key in updates and not is_valid_time_local(updates[time_key]):
                raise HomeAssistantError(
                    const.ERROR_INVALID_TIME_FMT.format(updates[time_key], time_key)
                )

        previous = await coordinator.async_load_preferences()
        previous = dict(previous)

        def _apply(preferences: dict[str, Any]) -> None:
            preferences.update(updates)

        await coordinator.store.async_update(const.DOC_PREFERENCES, _apply)
        current = await coordinator.async_load_preferences()
        if current == previous:
            const.LOGGER.debug("DEBUG: Set Preferences: nothing changed")
            return

        const.LOGGER.info("INFO: Preferences updated: %s", sorted(updates))
        _send_change(
            hass,
            coordinator,
            const.SIGNAL_SUFFIX_PREFERENCES_CHANGED,
            previous,
            dict(current),
        )

    # --- Domain snapshot ---

    async def handle_upsert_activity(call: ServiceCall):
        """Create or update one activity in the domain snapshot."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Upsert Activity: %s", const.MSG_NO_ENTRY_FOUND)
            return

        data = call.data
        activity_id = data[const.FIELD_ACTIVITY_ID]
        fields: dict[str, Any] = {}
        if const.FIELD_TITLE in data:
            fields[const.ACTIVITY_TITLE] = data[const.FIELD_TITLE]
        if const.FIELD_STATUS in data:
            fields[const.ACTIVITY_STATUS] = data[const.FIELD_STATUS]
        if const.FIELD_GOAL_ID in data:
            fields[const.ACTIVITY_GOAL_ID] = data[const.FIELD_GOAL_ID]
        if const.FIELD_SCHEDULED_DATE in data:
            fields[const.ACTIVITY_SCHEDULED_DATE] = _iso_date(
                data[const.FIELD_SCHEDULED_DATE], const.FIELD_SCHEDULED_DATE
            )
        if const.FIELD_SCHEDULED_AT in data:
            fields[const.ACTIVITY_SCHEDULED_AT] = _iso_instant(
                data[const.FIELD_SCHEDULED_AT], const.FIELD_SCHEDULED_AT
            )
        if const.FIELD_REMINDER_AT in data:
            fields[const.ACTIVITY_REMINDER_AT] = _iso_instant(
                data[const.FIELD_REMINDER_AT], const.FIELD_REMINDER_AT
            )

        has_lat = const.FIELD_LATITUDE in data
        has_lon = const.FIELD_LONGITUDE in data
        if has_lat != has_lon:
            raise HomeAssistantError(const.ERROR_INCOMPLETE_LOCATION)

        def _apply(domain: dict[str, Any]) -> tuple[dict[str, Any] | None, dict[str, Any]]:
            activities = domain[const.DATA_ACTIVITIES]
            before = activities.get(activity_id)
            activity = dict(before) if isinstance(before, dict) else {}
            activity[const.ACTIVITY_ID] = activity_id
            activity.setdefault(const.ACTIVITY_TITLE, "")
            activity.setdefault(const.ACTIVITY_STATUS, const.ACTIVITY_STATUS_PLANNED)
            activity.update(fields)

            if data[const.FIELD_CLEAR_LOCATION]:
                activity.pop(const.ACTIVITY_LOCATION, None)
            elif has_lat or const.ACTIVITY_LOCATION in activity:
                location = dict(activity.get(const.ACTIVITY_LOCATION) or {})
                if has_lat:
                    location[const.LOCATION_LATITUDE] = data[const.FIELD_LATITUDE]
                    location[const.LOCATION_LONGITUDE] = data[const.FIELD_LONGITUDE]
                for field, key in (
                    (const.FIELD_RADIUS_M, const.LOCATION_RADIUS_M),
                    (const.FIELD_TRIGGER, const.LOCATION_TRIGGER),
                    (const.FIELD_LABEL, const.LOCATION_LABEL),
                ):
                    if field in data:
                        location[key] = data[field]
                location.setdefault(const.LOCATION_RADIUS_M, const.GEOFENCE_RADIUS_DEFAULT_M)
                location.setdefault(const.LOCATION_TRIGGER, const.LOCATION_TRIGGER_ARRIVE)
                activity[const.ACTIVITY_LOCATION] = location

            activities[activity_id] = activity
            return before if isinstance(before, dict) else None, activity

        before, after = await coordinator.store.async_update(const.DOC_DOMAIN, _apply)
        await coordinator.async_load_domain()
        if before == after:
            const.LOGGER.debug("DEBUG: Upsert Activity: '%s' unchanged", activity_id)
            return

        const.LOGGER.debug("DEBUG: Activity '%s' upserted", activity_id)
        _send_change(
            hass,
            coordinator,
            const.SIGNAL_SUFFIX_ACTIVITIES_CHANGED,
            {activity_id: before},
            {activity_id: after},
        )

    async def handle_remove_activity(call: ServiceCall):
        """Remove an activity; its reminder is cancelled by the scheduler."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Remove Activity: %s", const.MSG_NO_ENTRY_FOUND)
            return

        activity_id = call.data[const.FIELD_ACTIVITY_ID]

        def _apply(domain: dict[str, Any]) -> dict[str, Any] | None:
            return domain[const.DATA_ACTIVITIES].pop(activity_id, None)

        before = await coordinator.store.async_update(const.DOC_DOMAIN, _apply)
        await coordinator.async_load_domain()
        if before is None:
            const.LOGGER.warning(
                "WARNING: Remove Activity: %s",
                const.ERROR_ACTIVITY_NOT_FOUND_FMT.format(activity_id),
            )
            raise HomeAssistantError(const.ERROR_ACTIVITY_NOT_FOUND_FMT.format(activity_id))

        _send_change(
            hass,
            coordinator,
            const.SIGNAL_SUFFIX_ACTIVITIES_CHANGED,
            {activity_id: before},
            {activity_id: None},
        )

    async def handle_upsert_goal(call: ServiceCall):
        """Create or update a goal (and optionally its arc)."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Upsert Goal: %s", const.MSG_NO_ENTRY_FOUND)
            return

        data = call.data
        goal_id = data[const.FIELD_GOAL_ID]

        def _apply(domain: dict[str, Any]) -> None:
            goal = dict(domain[const.DATA_GOALS].get(goal_id) or {})
            goal[const.GOAL_ID] = goal_id
            goal.setdefault(const.GOAL_TITLE, "")
            goal.setdefault(const.GOAL_STATUS, "in_progress")
            if const.FIELD_TITLE in data:
                goal[const.GOAL_TITLE] = data[const.FIELD_TITLE]
            if const.FIELD_STATUS in data:
                goal[const.GOAL_STATUS] = data[const.FIELD_STATUS]
            if const.FIELD_ARC_ID in data:
                goal[const.GOAL_ARC_ID] = data[const.FIELD_ARC_ID]
            arc_id = goal.get(const.GOAL_ARC_ID)
            if arc_id and const.FIELD_ARC_NAME in data:
                arc = dict(domain[const.DATA_ARCS].get(arc_id) or {})
                arc[const.ARC_ID] = arc_id
                arc[const.ARC_NAME] = data[const.FIELD_ARC_NAME]
                arc.setdefault(const.ARC_STATUS, const.ARC_STATUS_ACTIVE)
                domain[const.DATA_ARCS][arc_id] = arc
            domain[const.DATA_GOALS][goal_id] = goal

        await coordinator.store.async_update(const.DOC_DOMAIN, _apply)
        await coordinator.async_load_domain()
        # Goal copy lives in the scheduled content; refresh it.
        await coordinator.notification_manager.async_schedule_goal_nudge(
            source=const.SCHEDULE_SOURCE_USER_ACTION
        )

    # --- Progress / engagement ---

    async def handle_record_show_up(call: ServiceCall):
        """Record that the user showed up on a date (default: today)."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Record Show Up: %s", const.MSG_NO_ENTRY_FOUND)
            return

        date_key = (
            call.data[const.FIELD_DATE].isoformat()
            if const.FIELD_DATE in call.data
            else local_date_key(dt_now_utc())
        )

        def _apply(domain: dict[str, Any]) -> None:
            domain[const.DATA_LAST_SHOW_UP_DATE] = date_key

        await coordinator.store.async_update(const.DOC_DOMAIN, _apply)
        await coordinator.async_load_domain()
        # Showing up today suppresses today's goal nudge.
        await coordinator.notification_manager.async_schedule_goal_nudge(
            source=const.SCHEDULE_SOURCE_USER_ACTION
        )

    async def handle_record_focus_completed(call: ServiceCall):
        """Record a completed focus session; the next focus nag moves to tomorrow."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning(
                "WARNING: Record Focus Completed: %s", const.MSG_NO_ENTRY_FOUND
            )
            return

        now = dt_now_utc()
        date_key = (
            call.data[const.FIELD_DATE].isoformat()
            if const.FIELD_DATE in call.data
            else local_date_key(now)
        )

        def _apply(domain: dict[str, Any]) -> None:
            domain[const.DATA_LAST_COMPLETED_FOCUS_DATE] = date_key

        await coordinator.store.async_update(const.DOC_DOMAIN, _apply)
        await coordinator.async_load_domain()
        if date_key == local_date_key(now):
            tomorrow = as_local(now).date() + timedelta(days=1)
            await coordinator.notification_manager.async_schedule_daily_focus(
                earliest=at_local_time(tomorrow, 0, 0),
                now=now,
                source=const.SCHEDULE_SOURCE_USER_ACTION,
            )

    async def handle_record_nudge_opened(call: ServiceCall):
        """Record that a nudge was opened (engagement signal)."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning(
                "WARNING: Record Nudge Opened: %s", const.MSG_NO_ENTRY_FOUND
            )
            return
        await coordinator.notification_manager.async_record_opened(
            call.data[const.FIELD_NUDGE_TYPE], call.data.get(const.ATTR_NOTIFICATION_ID)
        )

    # --- Maintenance ---

    async def handle_reconcile_now(_call: ServiceCall):
        """Run a delivery reconcile and a geofence reconcile immediately."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Reconcile Now: %s", const.MSG_NO_ENTRY_FOUND)
            return
        summary = await coordinator.delivery_manager.async_reconcile(
            const.RECONCILE_SOURCE_MANUAL
        )
        await coordinator.geofence_manager.async_reconcile_now()
        const.LOGGER.info("INFO: Manual reconcile finished: %s", summary)

    async def handle_ensure_permission(call: ServiceCall):
        """Make sure a capability is usable, explaining why when it is not."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning(
                "WARNING: Ensure Permission: %s", const.MSG_NO_ENTRY_FOUND
            )
            return
        await coordinator.permission_manager.async_ensure_with_rationale(
            call.data[const.FIELD_CAPABILITY], call.data[const.FIELD_REASON]
        )

    async def handle_geofence_event(call: ServiceCall):
        """Forward an enter/exit event reported by an external geofencing source."""
        coordinator = _get_coordinator(hass)
        if not coordinator:
            const.LOGGER.warning("WARNING: Geofence Event: %s", const.MSG_NO_ENTRY_FOUND)
            return
        await coordinator.location_offer_manager.async_handle_geofence_event(
            {
                const.RAW_GEOFENCE_EVENT_TYPE: call.data[const.FIELD_EVENT],
                const.RAW_GEOFENCE_REGION: {
                    const.RAW_GEOFENCE_IDENTIFIER: call.data[const.FIELD_REGION_IDENTIFIER]
                },
            }
        )

    for service, handler, schema in (
        (const.SERVICE_SET_PREFERENCES, handle_set_preferences, SET_PREFERENCES_SCHEMA),
        (const.SERVICE_UPSERT_ACTIVITY, handle_upsert_activity, UPSERT_ACTIVITY_SCHEMA),
        (const.SERVICE_REMOVE_ACTIVITY, handle_remove_activity, REMOVE_ACTIVITY_SCHEMA),
        (const.SERVICE_UPSERT_GOAL, handle_upsert_goal, UPSERT_GOAL_SCHEMA),
        (const.SERVICE_RECORD_SHOW_UP, handle_record_show_up, RECORD_DATE_SCHEMA),
        (
            const.SERVICE_RECORD_FOCUS_COMPLETED,
            handle_record_focus_completed,
            RECORD_DATE_SCHEMA,
        ),
        (
            const.SERVICE_RECORD_NUDGE_OPENED,
            handle_record_nudge_opened,
            RECORD_NUDGE_OPENED_SCHEMA,
        ),
        (const.SERVICE_RECONCILE_NOW, handle_reconcile_now, RECONCILE_NOW_SCHEMA),
        (const.SERVICE_ENSURE_PERMISSION, handle_ensure_permission, ENSURE_PERMISSION_SCHEMA),
        (const.SERVICE_GEOFENCE_EVENT, handle_geofence_event, GEOFENCE_EVENT_SCHEMA),
    ):
        hass.services.async_register(const.DOMAIN, service, handler, schema=schema)

    const.LOGGER.info("INFO: Nudge Scheduler services have been registered successfully")


async def async_unload_services(hass: HomeAssistant):
    """Unregister Nudge Scheduler services when unloading the integration."""
    for service in const.ALL_SERVICES:
        if hass.services.has_service(const.DOMAIN, service):
            hass.services.async_remove(const.DOMAIN, service)

    const.LOGGER.info("INFO: Nudge Scheduler services have been unregistered")
