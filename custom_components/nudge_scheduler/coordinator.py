# File: coordinator.py
"""Coordinator for the Nudge Scheduler integration.

Owns the document store, the host adapters and the managers. The periodic
refresh is the background wake-up: every update runs one delivery
reconciliation pass. The very first refresh (config entry setup) is reported
as an app launch.

Nothing in memory here is authoritative. The cached snapshots only exist for
diagnostics and as a fallback for handlers that race a service write.
"""

from datetime import timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import const
from .engines.policy_engine import NudgePolicyEngine
from .helpers import ledger_helpers as lh
from .hosts import (
    HomeAssistantGeofenceHost,
    HomeAssistantNotificationHost,
    HomeAssistantPermissionHost,
)
from .managers import (
    DeliveryManager,
    GeofenceManager,
    LocationOfferManager,
    NotificationManager,
    PermissionManager,
)
from .store import NudgeSchedulerStore


def get_entry_setting(config_entry: ConfigEntry, key: str, default: Any = None) -> Any:
    """Read a setting, options taking precedence over the initial data."""
    if key in config_entry.options:
        return config_entry.options[key]
    return config_entry.data.get(key, default)


class NudgeSchedulerCoordinator(DataUpdateCoordinator):
    """Coordinator for the Nudge Scheduler integration."""

    def __init__(
        self,
        hass: HomeAssistant,
        config_entry: ConfigEntry,
        store: NudgeSchedulerStore,
    ):
        """Initialize the NudgeSchedulerCoordinator."""
        update_interval_minutes = get_entry_setting(
            config_entry, const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
        )

        super().__init__(
            hass,
            const.LOGGER,
            name=f"{const.DOMAIN}{const.COORDINATOR_SUFFIX}",
            update_interval=timedelta(minutes=update_interval_minutes),
        )
        self.config_entry = config_entry
        self.store = store
        self.cached_domain: dict[str, Any] = {}
        self.cached_preferences: dict[str, Any] = dict(const.DEFAULT_PREFERENCES)
        self._launched = False

        notify_service = get_entry_setting(config_entry, const.CONF_NOTIFY_SERVICE)
        tracker_entity = get_entry_setting(config_entry, const.CONF_TRACKER_ENTITY)

        # Hosts
        self.notification_host = HomeAssistantNotificationHost(
            hass, store, notify_service
        )
        self.permission_host = HomeAssistantPermissionHost(
            hass, notify_service, tracker_entity
        )
        self.geofence_host = HomeAssistantGeofenceHost(
            hass, tracker_entity, self._async_handle_geofence_event
        )

        # Managers
        self.permission_manager = PermissionManager(
            hass, self, self.permission_host
        )
        self.notification_manager = NotificationManager(
            hass, self, self.notification_host
        )
        self.delivery_manager = DeliveryManager(hass, self, self.notification_host)
        self.geofence_manager = GeofenceManager(hass, self, self.geofence_host)
        self.location_offer_manager = LocationOfferManager(
            hass, self, self.notification_host
        )

    @property
    def managers(self) -> tuple:
        """All managers, in setup order."""
        return (
            self.permission_manager,
            self.notification_manager,
            self.delivery_manager,
            self.geofence_manager,
            self.location_offer_manager,
        )

    # -------------------------------------------------------------------------------------
    # Durable snapshots
    # -------------------------------------------------------------------------------------

    async def async_load_preferences(self) -> dict[str, Any]:
        """Read the preferences document and refresh the cached copy."""
        preferences = await self.store.async_load(const.DOC_PREFERENCES)
        self.cached_preferences = preferences
        return preferences

    async def async_load_domain(self) -> dict[str, Any]:
        """Read the domain snapshot document and refresh the cached copy."""
        domain = await self.store.async_load(const.DOC_DOMAIN)
        self.cached_domain = domain
        return domain

    async def _async_handle_geofence_event(self, payload: Any) -> None:
        await self.location_offer_manager.async_handle_geofence_event(payload)

    # -------------------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------------------

    async def async_config_entry_first_refresh(self):
        """Arm persisted notifications and managers, then run the launch pass."""
        await self.notification_host.async_setup()
        for manager in self.managers:
            await manager.async_setup()
        await self.async_load_domain()
        await self.async_load_preferences()
        await super().async_config_entry_first_refresh()

    async def async_shutdown(self) -> None:
        """Release timers and region monitoring."""
        self.geofence_manager.async_cancel_pending()
        await self.geofence_host.async_stop()
        self.notification_host.async_shutdown()
        await super().async_shutdown()

    # -------------------------------------------------------------------------------------
    # Periodic + First Refresh
    # -------------------------------------------------------------------------------------

    async def _async_update_data(self):
        """Periodic update: one delivery reconciliation pass."""
        source = (
            const.RECONCILE_SOURCE_BACKGROUND_FETCH
            if self._launched
            else const.RECONCILE_SOURCE_APP_LAUNCH
        )
        try:
            summary = await self.delivery_manager.async_reconcile(source)
            self._launched = True
            summary.update(await self._async_engagement_summary())
            return summary
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise UpdateFailed(f"Error reconciling nudges: {err}") from err

    async def _async_engagement_summary(self) -> dict[str, dict[str, Any]]:
        """Soft engagement signals per system type, exposed for diagnostics only."""
        ledger = await lh.async_load_system_nudge_ledger(self.store)
        return {
            "engagement_backoff": {
                nudge_type: NudgePolicyEngine.engagement_backoff_suggested(
                    ledger, nudge_type
                )
                for nudge_type in const.SYSTEM_NUDGE_TYPES
            },
            "preferred_open_hour": {
                nudge_type: NudgePolicyEngine.preferred_open_hour(ledger, nudge_type)
                for nudge_type in const.SYSTEM_NUDGE_TYPES
            },
        }
