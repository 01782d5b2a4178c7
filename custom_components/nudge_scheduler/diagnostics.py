"""Diagnostics support for Nudge Scheduler integration.

Dumps every durable document as stored, plus the last reconcile summary and
the geofence manager's view, so a ledger can be inspected (or pasted back)
without reformatting.
"""

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from . import const
from .coordinator import NudgeSchedulerCoordinator


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator: NudgeSchedulerCoordinator = hass.data[const.DOMAIN][entry.entry_id][
        const.COORDINATOR
    ]

    documents = {
        document: await coordinator.store.async_load(document)
        for document in const.ALL_DOCUMENTS
    }
    return {
        "documents": documents,
        "last_reconcile": coordinator.data,
        "geofence": {
            "signature": coordinator.geofence_manager.last_signature,
            "last_stop_reason": coordinator.geofence_manager.last_stop_reason,
            "pending_reconcile": coordinator.geofence_manager.has_pending,
        },
    }
