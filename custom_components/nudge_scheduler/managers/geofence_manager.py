"""Geofence Manager - Keeps monitored regions equal to the eligible activities.

Triggered (debounced) by activity, preference and permission changes. Each run
walks a gating chain and fails closed: the first failing gate stops
monitoring entirely.

    location offers enabled
      → notifications enabled and authorized
        → location authorized (re-synced, never cached)
          → geofencing available
            → at least one eligible activity

Monitoring is restarted only when the region signature changed or monitoring
is not running, so edits that don't move a region cause no churn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.core import CALLBACK_TYPE, callback
from homeassistant.helpers.event import async_call_later

from .. import const
from ..engines.geofence_engine import GeofenceEngine
from ..utils.dt_utils import dt_now_iso
from .base_manager import BaseManager

if TYPE_CHECKING:
    from datetime import datetime

    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..hosts import GeofenceHost


class GeofenceManager(BaseManager):
    """Reconciles host region monitoring against eligible activities."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: NudgeSchedulerCoordinator,
        host: GeofenceHost,
    ) -> None:
        """Initialize the manager with its geofence host."""
        super().__init__(hass, coordinator)
        self.host = host
        self._pending: CALLBACK_TYPE | None = None
        self._last_signature: str | None = None
        self.last_stop_reason: str | None = None

    @property
    def last_signature(self) -> str | None:
        """Signature of the region set last applied successfully."""
        return self._last_signature

    async def async_setup(self) -> None:
        """Restore the applied signature and subscribe to gating inputs."""
        applied = await self.store.async_load(const.DOC_GEOFENCE_REGIONS)
        self._last_signature = applied.get(const.GEOFENCE_DOC_SIGNATURE)

        self.on_change(const.SIGNAL_SUFFIX_ACTIVITIES_CHANGED, self._on_inputs_changed)
        self.on_change(const.SIGNAL_SUFFIX_PREFERENCES_CHANGED, self._on_preferences_changed)
        self.on_change(const.SIGNAL_SUFFIX_PERMISSIONS_CHANGED, self._on_inputs_changed)
        self.coordinator.config_entry.async_on_unload(self.async_cancel_pending)

    async def _on_inputs_changed(self, _previous: Any, _current: Any) -> None:
        self.async_request_reconcile()

    async def _on_preferences_changed(
        self, _previous: dict[str, Any] | None, current: dict[str, Any] | None
    ) -> None:
        if not (current or {}).get(const.PREF_LOCATION_OFFERS_ENABLED):
            # Disabling must take effect now, not after the debounce.
            await self.async_stop()
            return
        self.async_request_reconcile()

    # -------------------------------------------------------------------------
    # Debounce
    # -------------------------------------------------------------------------

    @callback
    def async_request_reconcile(self) -> None:
        """Schedule a reconcile after the debounce delay (trailing edge).

        A pending run is cancelled and replaced, never queued.
        """
        self.async_cancel_pending()
        self._pending = async_call_later(
            self.hass,
            const.GEOFENCE_RECONCILE_DEBOUNCE_SECONDS,
            self._async_debounced,
        )

    @callback
    def async_cancel_pending(self) -> None:
        """Drop the pending debounced run, if any."""
        if self._pending is not None:
            self._pending()
            self._pending = None

    @property
    def has_pending(self) -> bool:
        """Return True while a debounced run is waiting."""
        return self._pending is not None

    async def _async_debounced(self, _now: datetime) -> None:
        self._pending = None
        await self.async_reconcile_now()

    # -------------------------------------------------------------------------
    # Reconcile
    # -------------------------------------------------------------------------

    async def async_reconcile_now(self) -> bool:
        """Apply the desired region set now.

        Returns:
            True if monitoring is running afterwards.
        """
        preferences = await self.coordinator.async_load_preferences()
        if not preferences.get(const.PREF_LOCATION_OFFERS_ENABLED):
            return await self._async_stop_monitoring("location_offers_disabled")
        if not preferences.get(const.PREF_NOTIFICATIONS_ENABLED):
            return await self._async_stop_monitoring("notifications_disabled")

        permissions = self.coordinator.permission_manager
        if (
            await permissions.async_sync(const.CAPABILITY_NOTIFICATIONS)
            != const.PERMISSION_AUTHORIZED
        ):
            return await self._async_stop_monitoring("notifications_not_authorized")
        if (
            await permissions.async_sync(const.CAPABILITY_LOCATION)
            != const.PERMISSION_AUTHORIZED
        ):
            return await self._async_stop_monitoring("location_not_authorized")

        try:
            available = await self.host.async_is_available()
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning("WARNING: Geofence availability check failed: %s", err)
            available = False
        if not available:
            return await self._async_stop_monitoring("geofencing_unavailable")

        domain = await self.coordinator.async_load_domain()
        regions = GeofenceEngine.build_regions(domain.get(const.DATA_ACTIVITIES) or {})
        if not regions:
            return await self._async_stop_monitoring("no_eligible_activities")

        signature = GeofenceEngine.region_signature(regions)
        try:
            started = await self.host.async_has_started()
        except Exception:  # pylint: disable=broad-exception-caught
            started = False
        if started and signature == self._last_signature:
            const.LOGGER.debug("DEBUG: Geofence regions unchanged - no restart")
            return True

        try:
            if started:
                await self.host.async_stop()
            await self.host.async_start(regions)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning("WARNING: Could not start geofence monitoring: %s", err)
            self._last_signature = None
            return False

        self._last_signature = signature
        self.last_stop_reason = None

        def _save(doc: dict[str, Any]) -> None:
            doc[const.GEOFENCE_DOC_SIGNATURE] = signature
            doc[const.GEOFENCE_DOC_REGIONS] = [dict(region) for region in regions]
            doc[const.GEOFENCE_DOC_APPLIED_AT] = dt_now_iso()

        await self.store.async_update(const.DOC_GEOFENCE_REGIONS, _save)
        const.LOGGER.info(
            "INFO: Geofence monitoring applied for %d region(s)", len(regions)
        )
        return True

    async def async_stop(self) -> None:
        """Cancel any pending run and stop monitoring immediately."""
        self.async_cancel_pending()
        await self._async_stop_monitoring("stopped")

    async def _async_stop_monitoring(self, reason: str) -> bool:
        """Fail closed: stop monitoring and forget the applied signature."""
        const.LOGGER.debug("DEBUG: Geofence monitoring off (%s)", reason)
        self.last_stop_reason = reason
        self._last_signature = None
        try:
            if await self.host.async_has_started():
                await self.host.async_stop()
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning("WARNING: Could not stop geofence monitoring: %s", err)

        def _clear(doc: dict[str, Any]) -> None:
            doc[const.GEOFENCE_DOC_SIGNATURE] = None
            doc[const.GEOFENCE_DOC_REGIONS] = []
            doc.pop(const.GEOFENCE_DOC_APPLIED_AT, None)

        await self.store.async_update(const.DOC_GEOFENCE_REGIONS, _clear)
        return False
