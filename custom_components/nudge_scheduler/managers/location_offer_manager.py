"""Location Offer Manager - Turns geofence transitions into offers.

A geofence callback may be the first thing to run after a restart, so the
handler loads everything it gates on (preferences, permission statuses, the
activity) from durable storage. The coordinator's in-memory snapshot is only
a fallback for an activity the domain document does not know yet.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Any

from .. import const
from ..engines.geofence_engine import GeofenceEngine
from ..helpers import ledger_helpers as lh
from ..utils.dt_utils import dt_now_utc, dt_to_iso
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..hosts import LocalNotificationHost
    from ..type_defs import NotificationContent


class LocationOfferManager(BaseManager):
    """Handles raw enter/exit events from the geofence host."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: NudgeSchedulerCoordinator,
        host: LocalNotificationHost,
    ) -> None:
        """Initialize the manager with the host used to present offers."""
        super().__init__(hass, coordinator)
        self.host = host
        self._offer_locks: dict[str, asyncio.Lock] = {}

    async def async_setup(self) -> None:
        """No subscriptions; events arrive from the geofence host or a service."""

    async def async_handle_geofence_event(
        self, payload: Any, now: datetime | None = None
    ) -> bool:
        """Present a location offer for a raw geofence payload.

        Returns:
            True if an offer was presented (and recorded).
        """
        now = now or dt_now_utc()
        parsed = GeofenceEngine.parse_payload(payload)
        if parsed is None:
            const.LOGGER.debug("DEBUG: Ignoring malformed geofence payload: %s", payload)
            return False
        event, activity_id = parsed

        preferences = await self.coordinator.async_load_preferences()
        if not preferences.get(const.PREF_NOTIFICATIONS_ENABLED):
            return self._skip(activity_id, event, "notifications_disabled")
        if (
            await lh.async_get_permission_status(self.store, const.CAPABILITY_NOTIFICATIONS)
            != const.PERMISSION_AUTHORIZED
        ):
            return self._skip(activity_id, event, "notifications_not_authorized")
        if not preferences.get(const.PREF_LOCATION_OFFERS_ENABLED):
            return self._skip(activity_id, event, "location_offers_disabled")
        if (
            await lh.async_get_permission_status(self.store, const.CAPABILITY_LOCATION)
            != const.PERMISSION_AUTHORIZED
        ):
            return self._skip(activity_id, event, "location_not_authorized")

        activity = await self._async_find_activity(activity_id)
        if activity is None:
            return self._skip(activity_id, event, "activity_missing")
        if activity.get(const.ACTIVITY_STATUS) in const.ACTIVITY_CLOSED_STATUSES:
            return self._skip(activity_id, event, "activity_closed")
        location = activity.get(const.ACTIVITY_LOCATION) or {}
        if not GeofenceEngine.event_matches_trigger(
            location.get(const.LOCATION_TRIGGER), event
        ):
            return self._skip(activity_id, event, "trigger_mismatch")

        # Check, send and record form one step per debounce key.
        async with self._get_offer_lock(activity_id, event):
            if not await lh.async_should_fire_location_offer(
                self.store, activity_id, event, now
            ):
                return self._skip(activity_id, event, "debounced")

            try:
                notification_id = await self.host.async_present_now(
                    self._build_content(activity_id, activity, event)
                )
            except Exception as err:  # pylint: disable=broad-exception-caught
                # Not recorded: a failed send must not use up the debounce window.
                const.LOGGER.warning(
                    "WARNING: Location offer for %s (%s) could not be sent: %s",
                    activity_id,
                    event,
                    err,
                )
                return False

            await lh.async_record_location_offer_fired(
                self.store, activity_id, event, now
            )

        self.fire_bus_event(
            const.EVENT_GEOFENCE,
            **{
                const.ATTR_NOTIFICATION_TYPE: const.NOTIFICATION_TYPE_LOCATION_OFFER,
                const.ATTR_NOTIFICATION_ID: notification_id,
                const.ATTR_ACTIVITY_ID: activity_id,
                const.FIELD_EVENT: event,
                const.ATTR_DETECTED_AT: dt_to_iso(now),
            },
        )
        return True

    def _get_offer_lock(self, activity_id: str, event: str) -> asyncio.Lock:
        """Return the lock guarding one location offer debounce key."""
        lock_key = lh.location_offer_key(activity_id, event)
        if lock_key not in self._offer_locks:
            self._offer_locks[lock_key] = asyncio.Lock()
        return self._offer_locks[lock_key]

    async def _async_find_activity(self, activity_id: str) -> dict[str, Any] | None:
        domain = await self.coordinator.async_load_domain()
        activity = (domain.get(const.DATA_ACTIVITIES) or {}).get(activity_id)
        if isinstance(activity, dict):
            return activity
        cached = (self.coordinator.cached_domain.get(const.DATA_ACTIVITIES) or {}).get(
            activity_id
        )
        return cached if isinstance(cached, dict) else None

    @staticmethod
    def _build_content(
        activity_id: str, activity: dict[str, Any], event: str
    ) -> NotificationContent:
        location = activity.get(const.ACTIVITY_LOCATION) or {}
        title = activity.get(const.ACTIVITY_TITLE) or const.COPY_LOCATION_OFFER_DEFAULT_TITLE
        label = location.get(const.LOCATION_LABEL) or const.COPY_LOCATION_OFFER_DEFAULT_LABEL
        body = (
            const.COPY_LOCATION_OFFER_BODY_ENTER
            if event == const.GEOFENCE_EVENT_ENTER
            else const.COPY_LOCATION_OFFER_BODY_EXIT
        ).format(label=label)
        return {
            const.CONTENT_TITLE: const.COPY_LOCATION_OFFER_TITLE.format(title=title),
            const.CONTENT_BODY: body,
            const.CONTENT_DATA: {
                const.CONTENT_DATA_TYPE: const.NOTIFICATION_TYPE_LOCATION_OFFER,
                const.CONTENT_DATA_ACTIVITY_ID: activity_id,
                const.CONTENT_DATA_EVENT: event,
            },
        }  # type: ignore[return-value]

    @staticmethod
    def _skip(activity_id: str, event: str, reason: str) -> bool:
        const.LOGGER.debug(
            "DEBUG: No location offer for %s (%s): %s", activity_id, event, reason
        )
        return False
