"""Geofence host backed by a Home Assistant tracker entity.

Watches the configured device_tracker/person entity and compares each reported
GPS position with the monitored circles. Transitions are reported as the raw
payloads a mobile geofencing API produces ({eventType: 1|2, region: {identifier}}),
so the event handler sees the same shape whatever the host.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from homeassistant.const import ATTR_LATITUDE, ATTR_LONGITUDE
from homeassistant.core import (
    CALLBACK_TYPE,
    Event,
    EventStateChangedData,
    HomeAssistant,
    State,
    callback,
)
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.event import async_track_state_change_event
from homeassistant.util.location import distance

from .. import const
from .base import GeofenceHost

if TYPE_CHECKING:
    from ..type_defs import GeofenceRegion

GeofenceEventCallback = Callable[[dict[str, Any]], Awaitable[Any]]


def state_position(state: State | None) -> tuple[float, float] | None:
    """Return (latitude, longitude) from a tracker state, if it reports GPS."""
    if state is None:
        return None
    latitude = state.attributes.get(ATTR_LATITUDE)
    longitude = state.attributes.get(ATTR_LONGITUDE)
    if not isinstance(latitude, (int, float)) or not isinstance(longitude, (int, float)):
        return None
    return float(latitude), float(longitude)


class HomeAssistantGeofenceHost(GeofenceHost):
    """Region monitoring driven by tracker state changes."""

    def __init__(
        self,
        hass: HomeAssistant,
        tracker_entity: str | None,
        on_event: GeofenceEventCallback,
    ) -> None:
        """Initialize the host.

        Args:
            hass: Home Assistant instance
            tracker_entity: Entity reporting latitude/longitude, or None
            on_event: Coroutine receiving raw enter/exit payloads
        """
        self.hass = hass
        self.tracker_entity = tracker_entity
        self._on_event = on_event
        self._regions: list[GeofenceRegion] = []
        self._inside: set[str] = set()
        self._unsub: CALLBACK_TYPE | None = None

    @property
    def regions(self) -> list[GeofenceRegion]:
        """Currently monitored regions."""
        return list(self._regions)

    async def async_is_available(self) -> bool:
        """Monitoring exists only when a tracker entity is configured."""
        return bool(self.tracker_entity)

    async def async_has_started(self) -> bool:
        """Return True while subscribed to the tracker."""
        return self._unsub is not None

    async def async_start(self, regions: list[GeofenceRegion]) -> None:
        """Monitor regions; the current position seeds state without events."""
        if not self.tracker_entity:
            raise HomeAssistantError("No tracker entity configured")
        self._stop()
        self._regions = list(regions)
        position = state_position(self.hass.states.get(self.tracker_entity))
        self._inside = self._regions_containing(position) if position else set()
        self._unsub = async_track_state_change_event(
            self.hass, [self.tracker_entity], self._handle_state_change
        )
        const.LOGGER.debug(
            "DEBUG: Geofence monitoring started for %d region(s) on %s",
            len(self._regions),
            self.tracker_entity,
        )

    async def async_stop(self) -> None:
        """Stop monitoring."""
        self._stop()

    def _stop(self) -> None:
        if self._unsub is not None:
            self._unsub()
            self._unsub = None
            const.LOGGER.debug("DEBUG: Geofence monitoring stopped")
        self._regions = []
        self._inside = set()

    def _regions_containing(self, position: tuple[float, float]) -> set[str]:
        inside = set()
        for region in self._regions:
            meters = distance(
                position[0],
                position[1],
                region[const.REGION_LATITUDE],
                region[const.REGION_LONGITUDE],
            )
            if meters is not None and meters <= region[const.REGION_RADIUS]:
                inside.add(region[const.REGION_IDENTIFIER])
        return inside

    @callback
    def _handle_state_change(self, event: Event[EventStateChangedData]) -> None:
        position = state_position(event.data["new_state"])
        if position is None:
            return
        inside = self._regions_containing(position)
        entered = inside - self._inside
        exited = self._inside - inside
        self._inside = inside

        for region in self._regions:
            identifier = region[const.REGION_IDENTIFIER]
            if identifier in entered and region[const.REGION_NOTIFY_ON_ENTER]:
                self._dispatch(const.GEOFENCE_EVENT_CODE_ENTER, identifier)
            elif identifier in exited and region[const.REGION_NOTIFY_ON_EXIT]:
                self._dispatch(const.GEOFENCE_EVENT_CODE_EXIT, identifier)

    def _dispatch(self, event_code: int, identifier: str) -> None:
        payload = {
            const.RAW_GEOFENCE_EVENT_TYPE: event_code,
            const.RAW_GEOFENCE_REGION: {const.RAW_GEOFENCE_IDENTIFIER: identifier},
        }
        self.hass.async_create_task(self._on_event(payload))
