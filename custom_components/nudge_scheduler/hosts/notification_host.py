"""Local notification host backed by Home Assistant notify services.

Home Assistant has no "scheduled local notification" registry, so this host
keeps one: the scheduled set lives in the `scheduled_notifications` document
and every entry is armed as a timer. When a timer fires, the notification is
sent through the configured notify service. One-shot entries then leave the
set, exactly like a mobile OS drops a delivered one-shot from its pending list.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid

from homeassistant.core import CALLBACK_TYPE, HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import (
    async_track_point_in_utc_time,
    async_track_time_change,
)

from .. import const
from ..notification_helper import async_send_notification, build_open_action
from ..utils.dt_utils import as_utc, dt_now_utc, dt_parse_iso
from .base import LocalNotificationHost

if TYPE_CHECKING:
    from ..store import NudgeSchedulerStore
    from ..type_defs import (
        NotificationContent,
        NotificationTrigger,
        ScheduledNotification,
    )


class HomeAssistantNotificationHost(LocalNotificationHost):
    """Persisted scheduled set + HA timers + notify service delivery."""

    def __init__(
        self,
        hass: HomeAssistant,
        store: NudgeSchedulerStore,
        notify_service: str | None,
    ) -> None:
        """Initialize the host.

        Args:
            hass: Home Assistant instance
            store: Document store holding the scheduled set
            notify_service: "notify.<service>" used for delivery
        """
        self.hass = hass
        self._store = store
        self.notify_service = notify_service
        self._timers: dict[str, CALLBACK_TYPE] = {}

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def async_setup(self) -> None:
        """Re-arm timers for every persisted entry.

        One-shots whose instant passed while Home Assistant was down are
        delivered late, the way a device delivers after waking up.
        """
        scheduled = await self._store.async_load(const.DOC_SCHEDULED_NOTIFICATIONS)
        overdue: list[str] = []
        now = dt_now_utc()
        for notification_id, entry in scheduled.items():
            if not isinstance(entry, dict):
                continue
            trigger = entry.get(const.SCHEDULED_TRIGGER) or {}
            if trigger.get(const.TRIGGER_TYPE) == const.TRIGGER_TYPE_DATE:
                when = dt_parse_iso(trigger.get(const.TRIGGER_DATE))
                if when is not None and when <= now:
                    overdue.append(notification_id)
                    continue
            self._arm(notification_id, trigger)

        for notification_id in overdue:
            const.LOGGER.debug(
                "DEBUG: Delivering overdue one-shot notification %s", notification_id
            )
            await self._async_deliver(notification_id)

    def async_shutdown(self) -> None:
        """Cancel all armed timers (entries stay persisted)."""
        for unsub in self._timers.values():
            unsub()
        self._timers.clear()

    # -------------------------------------------------------------------------
    # LocalNotificationHost
    # -------------------------------------------------------------------------

    async def async_get_all_scheduled(self) -> list[ScheduledNotification]:
        """Return the persisted scheduled set."""
        scheduled = await self._store.async_load(const.DOC_SCHEDULED_NOTIFICATIONS)
        return [entry for entry in scheduled.values() if isinstance(entry, dict)]

    async def async_schedule(
        self, content: NotificationContent, trigger: NotificationTrigger
    ) -> str:
        """Persist and arm a notification.

        Raises:
            HomeAssistantError: The trigger is malformed or already in the past.
        """
        self._validate_trigger(trigger)
        notification_id = uuid.uuid4().hex
        entry = {
            const.SCHEDULED_IDENTIFIER: notification_id,
            const.SCHEDULED_CONTENT: dict(content),
            const.SCHEDULED_TRIGGER: dict(trigger),
        }

        def _add(scheduled: dict[str, Any]) -> None:
            scheduled[notification_id] = entry

        await self._store.async_update(const.DOC_SCHEDULED_NOTIFICATIONS, _add)
        self._arm(notification_id, entry[const.SCHEDULED_TRIGGER])
        const.LOGGER.debug(
            "DEBUG: Scheduled notification %s (%s)",
            notification_id,
            trigger.get(const.TRIGGER_TYPE),
        )
        return notification_id

    async def async_cancel(self, notification_id: str) -> None:
        """Disarm and forget a notification."""
        unsub = self._timers.pop(notification_id, None)
        if unsub is not None:
            unsub()

        def _remove(scheduled: dict[str, Any]) -> None:
            scheduled.pop(notification_id, None)

        await self._store.async_update(const.DOC_SCHEDULED_NOTIFICATIONS, _remove)

    async def async_present_now(self, content: NotificationContent) -> str:
        """Send immediately.

        Raises:
            HomeAssistantError: The notify service is missing or failed.
        """
        notification_id = uuid.uuid4().hex
        if not await self._async_send(notification_id, content):
            raise HomeAssistantError(
                f"Notification could not be delivered via {self.notify_service}"
            )
        return notification_id

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @staticmethod
    def _validate_trigger(trigger: NotificationTrigger) -> None:
        trigger_type = trigger.get(const.TRIGGER_TYPE)
        if trigger_type == const.TRIGGER_TYPE_DATE:
            when = dt_parse_iso(trigger.get(const.TRIGGER_DATE))
            if when is None:
                raise HomeAssistantError("Date trigger needs a valid instant")
            if when <= dt_now_utc():
                raise HomeAssistantError("Date trigger is in the past")
            return
        if trigger_type == const.TRIGGER_TYPE_DAILY:
            hour = trigger.get(const.TRIGGER_HOUR)
            minute = trigger.get(const.TRIGGER_MINUTE)
            if not isinstance(hour, int) or not 0 <= hour <= 23:
                raise HomeAssistantError("Daily trigger needs an hour 0-23")
            if not isinstance(minute, int) or not 0 <= minute <= 59:
                raise HomeAssistantError("Daily trigger needs a minute 0-59")
            return
        raise HomeAssistantError(f"Unsupported trigger type: {trigger_type}")

    def _arm(self, notification_id: str, trigger: dict[str, Any]) -> None:
        """Arm the HA timer matching a trigger."""
        trigger_type = trigger.get(const.TRIGGER_TYPE)

        async def _async_fired(now: datetime) -> None:
            if trigger_type == const.TRIGGER_TYPE_DAILY:
                starts_at = dt_parse_iso(trigger.get(const.TRIGGER_STARTS_AT))
                # Occurrences before the first permitted instant are skipped.
                if starts_at is not None and as_utc(now) < starts_at:
                    return
            await self._async_deliver(notification_id)

        if trigger_type == const.TRIGGER_TYPE_DATE:
            when = dt_parse_iso(trigger.get(const.TRIGGER_DATE))
            if when is None:
                return
            self._timers[notification_id] = async_track_point_in_utc_time(
                self.hass, _async_fired, when
            )
        elif trigger_type == const.TRIGGER_TYPE_DAILY:
            self._timers[notification_id] = async_track_time_change(
                self.hass,
                _async_fired,
                hour=trigger.get(const.TRIGGER_HOUR),
                minute=trigger.get(const.TRIGGER_MINUTE),
                second=0,
            )

    async def _async_deliver(self, notification_id: str) -> None:
        """Deliver a scheduled entry, dropping it afterwards if one-shot."""
        scheduled = await self._store.async_load(const.DOC_SCHEDULED_NOTIFICATIONS)
        entry = scheduled.get(notification_id)
        if not isinstance(entry, dict):
            return
        trigger = entry.get(const.SCHEDULED_TRIGGER) or {}
        if trigger.get(const.TRIGGER_TYPE) != const.TRIGGER_TYPE_DAILY:
            self._timers.pop(notification_id, None)

            def _remove(data: dict[str, Any]) -> None:
                data.pop(notification_id, None)

            await self._store.async_update(const.DOC_SCHEDULED_NOTIFICATIONS, _remove)

        if not await self._async_send(notification_id, entry.get(const.SCHEDULED_CONTENT) or {}):
            const.LOGGER.warning(
                "WARNING: Scheduled notification %s fired but could not be delivered",
                notification_id,
            )

    async def _async_send(self, notification_id: str, content: dict[str, Any]) -> bool:
        data = dict(content.get(const.CONTENT_DATA) or {})
        nudge_type = data.get(const.CONTENT_DATA_TYPE) or ""
        return await async_send_notification(
            self.hass,
            self.notify_service,
            content.get(const.CONTENT_TITLE) or "",
            content.get(const.CONTENT_BODY) or "",
            actions=[build_open_action(nudge_type, notification_id)],
            extra_data={
                const.NOTIFY_TAG: f"{const.NOTIFY_TAG_PREFIX}_{notification_id}",
                const.DOMAIN: data,
            },
        )
