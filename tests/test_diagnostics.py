"""Tests for Nudge Scheduler diagnostics module.

Diagnostics export every durable document exactly as stored, plus the last
reconcile summary and the geofence manager's state.
"""

# pylint: disable=redefined-outer-name  # Pytest fixtures shadow names
# pylint: disable=unused-argument  # Some fixtures needed for setup only

import pytest
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.nudge_scheduler import const
from custom_components.nudge_scheduler.diagnostics import (
    async_get_config_entry_diagnostics,
)

pytestmark = pytest.mark.asyncio


async def test_config_entry_diagnostics_dumps_documents(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Test every document is present and reflects storage."""
    coordinator = hass.data[const.DOMAIN][init_integration.entry_id][const.COORDINATOR]
    await coordinator.store.async_save(
        const.DOC_LOCATION_OFFERS,
        {"a1:enter": {const.LOCATION_OFFER_LAST_FIRED_AT: "2026-01-01T18:00:00+00:00"}},
    )

    result = await async_get_config_entry_diagnostics(hass, init_integration)

    assert set(result["documents"]) == set(const.ALL_DOCUMENTS)
    assert result["documents"][const.DOC_LOCATION_OFFERS] == {
        "a1:enter": {const.LOCATION_OFFER_LAST_FIRED_AT: "2026-01-01T18:00:00+00:00"}
    }
    # Permissions were synced against the mocked notify service and tracker.
    assert result["documents"][const.DOC_PERMISSIONS] == {
        const.CAPABILITY_NOTIFICATIONS: const.PERMISSION_AUTHORIZED,
        const.CAPABILITY_LOCATION: const.PERMISSION_AUTHORIZED,
    }


async def test_config_entry_diagnostics_reports_runtime_state(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Test the launch reconcile summary and geofence state are included."""
    result = await async_get_config_entry_diagnostics(hass, init_integration)

    assert result["last_reconcile"]["source"] == const.RECONCILE_SOURCE_APP_LAUNCH
    assert set(result["last_reconcile"]["engagement_backoff"]) == set(
        const.SYSTEM_NUDGE_TYPES
    )
    assert result["geofence"] == {
        "signature": None,
        "last_stop_reason": "location_offers_disabled",
        "pending_reconcile": False,
    }


async def test_config_entry_diagnostics_reports_preferred_open_hour(
    hass: HomeAssistant, init_integration: MockConfigEntry
) -> None:
    """Test the most common open hour per type is surfaced after a refresh."""
    coordinator = hass.data[const.DOMAIN][init_integration.entry_id][const.COORDINATOR]

    def _mutate(ledger: dict) -> None:
        ledger[const.LEDGER_OPEN_HOUR_COUNTS_BY_TYPE] = {
            const.NUDGE_TYPE_DAILY_FOCUS: {"8": 4, "20": 1}
        }

    await coordinator.store.async_update(const.DOC_SYSTEM_NUDGES, _mutate)
    await coordinator.async_refresh()

    result = await async_get_config_entry_diagnostics(hass, init_integration)

    preferred = result["last_reconcile"]["preferred_open_hour"]
    assert preferred[const.NUDGE_TYPE_DAILY_FOCUS] == 8
    assert preferred[const.NUDGE_TYPE_DAILY_SHOW_UP] is None
