# File: __init__.py
"""Initialization file for the Nudge Scheduler integration.

Handles setting up the integration from its config entry: document storage,
the coordinator (whose first refresh is the app-launch reconcile), services,
companion-app action routing and the initial geofence reconcile.

Key Features:
- Config entry setup, unload and removal support.
- Background reconcile on the coordinator's update interval.
- Storage cleanup when the entry is removed.
"""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import Event, HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.util import dt as dt_util

from . import const
from .coordinator import NudgeSchedulerCoordinator
from .notification_action_handler import async_handle_notification_action
from .services import async_setup_services, async_unload_services
from .store import NudgeSchedulerStore
from .utils import dt_utils


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up the integration from a config entry."""
    const.LOGGER.info("INFO: Starting setup for Nudge Scheduler entry: %s", entry.entry_id)

    # Set the home assistant configured timezone for date/time operations
    # Must be done early before any components that use datetime helpers
    const.set_default_timezone(hass)
    dt_utils.set_default_timezone(dt_util.get_time_zone(hass.config.time_zone))

    store = NudgeSchedulerStore(hass)
    coordinator = NudgeSchedulerCoordinator(hass, entry, store)

    try:
        # Arms persisted notifications and runs the app-launch reconcile.
        await coordinator.async_config_entry_first_refresh()
    except ConfigEntryNotReady as e:
        const.LOGGER.error("ERROR: Failed to refresh coordinator data: %s", e)
        raise ConfigEntryNotReady from e

    hass.data.setdefault(const.DOMAIN, {})[entry.entry_id] = {
        const.COORDINATOR: coordinator,
        const.STORE: store,
    }

    async_setup_services(hass)

    # Listen for notification actions from the companion app.
    async def handle_notification_event(event: Event) -> None:
        """Handle notification action events."""
        await async_handle_notification_action(hass, event)

    entry.async_on_unload(
        hass.bus.async_listen(
            const.MOBILE_APP_NOTIFICATION_ACTION_EVENT, handle_notification_event
        )
    )
    entry.async_on_unload(entry.add_update_listener(async_reload_entry))

    coordinator.geofence_manager.async_request_reconcile()

    const.LOGGER.info("INFO: Nudge Scheduler setup complete for entry: %s", entry.entry_id)
    return True


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload after the options changed (notify service, tracker, interval)."""
    await hass.config_entries.async_reload(entry.entry_id)


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    const.LOGGER.info("INFO: Unloading Nudge Scheduler entry: %s", entry.entry_id)

    entry_data = hass.data[const.DOMAIN].pop(entry.entry_id)
    coordinator: NudgeSchedulerCoordinator = entry_data[const.COORDINATOR]
    await coordinator.async_shutdown()

    if not hass.data[const.DOMAIN]:
        await async_unload_services(hass)

    return True


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry."""
    const.LOGGER.info("INFO: Removing Nudge Scheduler entry: %s", entry.entry_id)

    # The entry is already unloaded here, so go straight to storage.
    await NudgeSchedulerStore(hass).async_remove_all()

    const.LOGGER.info("INFO: Nudge Scheduler entry data cleared: %s", entry.entry_id)
