"""Permission host derived from the Home Assistant configuration.

Home Assistant cannot show an OS prompt, so "permission" means the configured
delivery and location sources actually work:

notifications:
    - no notify service configured → undetermined (can still be set up)
    - configured but not registered → denied (only the options flow fixes it)
    - registered → granted
location:
    - no tracker entity configured → None (capability absent)
    - entity does not exist → undetermined
    - entity without GPS attributes → denied
    - entity reporting latitude/longitude → granted
"""

from __future__ import annotations

from typing import Any

from homeassistant.core import HomeAssistant

from .. import const
from ..notification_helper import notify_service_exists
from .base import PermissionHost
from .geofence_host import state_position


class HomeAssistantPermissionHost(PermissionHost):
    """Reports capability permissions in a mobile-style raw shape."""

    def __init__(
        self,
        hass: HomeAssistant,
        notify_service: str | None,
        tracker_entity: str | None,
    ) -> None:
        """Initialize the host."""
        self.hass = hass
        self.notify_service = notify_service
        self.tracker_entity = tracker_entity

    async def async_get(self, capability: str) -> dict[str, Any] | None:
        """Return the raw status for a capability."""
        if capability == const.CAPABILITY_NOTIFICATIONS:
            if not self.notify_service:
                return _raw(const.RAW_STATUS_UNDETERMINED, can_ask_again=True)
            if notify_service_exists(self.hass, self.notify_service):
                return _raw(const.RAW_STATUS_GRANTED)
            return _raw(const.RAW_STATUS_DENIED)

        if capability == const.CAPABILITY_LOCATION:
            if not self.tracker_entity:
                return None
            state = self.hass.states.get(self.tracker_entity)
            if state is None:
                return _raw(const.RAW_STATUS_UNDETERMINED, can_ask_again=True)
            if state_position(state) is None:
                return _raw(const.RAW_STATUS_DENIED)
            return _raw(const.RAW_STATUS_GRANTED)

        return None

    async def async_request(self, capability: str) -> dict[str, Any] | None:
        """Nothing can be prompted; re-read the configuration."""
        return await self.async_get(capability)


def _raw(status: str, *, can_ask_again: bool = False) -> dict[str, Any]:
    return {
        const.RAW_PERMISSION_STATUS: status,
        const.RAW_PERMISSION_GRANTED: status == const.RAW_STATUS_GRANTED,
        const.RAW_PERMISSION_CAN_ASK_AGAIN: can_ask_again,
    }
