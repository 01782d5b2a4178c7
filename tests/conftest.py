"""Shared fixtures for Nudge Scheduler tests."""

from collections.abc import AsyncGenerator
from typing import Any
from zoneinfo import ZoneInfo

import pytest
from homeassistant.config_entries import ConfigEntryState
from homeassistant.core import HomeAssistant
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.nudge_scheduler.coordinator import NudgeSchedulerCoordinator
from custom_components.nudge_scheduler.utils import dt_utils
from tests.helpers import (
    FakeGeofenceHost,
    FakeNotificationHost,
    FakePermissionHost,
    build_config_entry,
    build_coordinator,
    setup_integration,
)

# pylint: disable=invalid-name
pytest_plugins = "pytest_homeassistant_custom_component"
# pylint: enable=invalid-name
# pylint: disable=redefined-outer-name


@pytest.fixture(autouse=True)
def auto_enable_custom_integrations(enable_custom_integrations: Any) -> Any:
    """Enable custom integrations in tests."""
    # pylint: disable=unused-argument
    yield


@pytest.fixture(autouse=True)
def utc_default_timezone() -> Any:
    """Run every test with dt_utils on UTC unless the test changes it."""
    dt_utils.set_default_timezone(ZoneInfo("UTC"))
    yield
    dt_utils.set_default_timezone(ZoneInfo("UTC"))


@pytest.fixture
def mock_config_entry() -> MockConfigEntry:
    """Return a mock config entry."""
    return build_config_entry()


@pytest.fixture
def notification_host() -> FakeNotificationHost:
    """Return an in-memory notification host."""
    return FakeNotificationHost()


@pytest.fixture
def geofence_host() -> FakeGeofenceHost:
    """Return an in-memory geofence host."""
    return FakeGeofenceHost()


@pytest.fixture
def permission_host() -> FakePermissionHost:
    """Return a permission host that grants everything."""
    return FakePermissionHost()


@pytest.fixture
async def coordinator(
    hass: HomeAssistant,
    mock_config_entry: MockConfigEntry,
    notification_host: FakeNotificationHost,
    geofence_host: FakeGeofenceHost,
    permission_host: FakePermissionHost,
) -> AsyncGenerator[NudgeSchedulerCoordinator, None]:
    """Return a coordinator wired to the fake hosts."""
    coordinator = await build_coordinator(
        hass, mock_config_entry, notification_host, geofence_host, permission_host
    )
    yield coordinator
    coordinator.geofence_manager.async_cancel_pending()


@pytest.fixture
async def init_integration(
    hass: HomeAssistant, mock_config_entry: MockConfigEntry
) -> AsyncGenerator[MockConfigEntry, None]:
    """Set up the Nudge Scheduler integration with Home Assistant hosts."""
    await setup_integration(hass, mock_config_entry)
    yield mock_config_entry
    if mock_config_entry.state is ConfigEntryState.LOADED:
        await hass.config_entries.async_unload(mock_config_entry.entry_id)
        await hass.async_block_till_done()
