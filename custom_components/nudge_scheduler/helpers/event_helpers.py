"""Change signals between the services and the managers.

Every signal in this integration announces that a durable slice changed:
preferences, activities or permission statuses. The payload is always the
pair ``{"previous": ..., "current": ...}`` so listeners can diff; the
document itself stays the source of truth.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_send

from .. import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant


def get_event_signal(entry_id: str, suffix: str) -> str:
    """Return the dispatcher signal name for one config entry.

    Format: 'nudge_scheduler_{entry_id}_{suffix}'
    """
    return f"{const.SIGNAL_PREFIX}_{entry_id}_{suffix}"


def build_change_payload(previous: Any, current: Any) -> dict[str, Any]:
    """Wrap both sides of a change in the dispatcher payload."""
    return {const.CHANGE_PREVIOUS: previous, const.CHANGE_CURRENT: current}


def async_send_change(
    hass: HomeAssistant, entry_id: str, suffix: str, previous: Any, current: Any
) -> None:
    """Announce that a slice changed after it was written to its document."""
    const.LOGGER.debug("DEBUG: Change signal '%s' for entry %s", suffix, entry_id)
    async_dispatcher_send(
        hass,
        get_event_signal(entry_id, suffix),
        build_change_payload(previous, current),
    )
