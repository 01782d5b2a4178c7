"""Tests for the Home Assistant backed host adapters."""

# pylint: disable=redefined-outer-name  # Pytest fixtures shadow names
# pylint: disable=protected-access  # Reading the armed timers

from collections.abc import AsyncGenerator
from datetime import timedelta
from typing import Any

import pytest
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
import homeassistant.util.dt as dt_util
from pytest_homeassistant_custom_component.common import (
    async_fire_time_changed,
    async_mock_service,
)

from custom_components.nudge_scheduler import const
from custom_components.nudge_scheduler.hosts import (
    HomeAssistantGeofenceHost,
    HomeAssistantNotificationHost,
    HomeAssistantPermissionHost,
)
from custom_components.nudge_scheduler.store import NudgeSchedulerStore
from tests.helpers import HOME, NOTIFY_SERVICE, TRACKER_ENTITY

CONTENT = {
    const.CONTENT_TITLE: "Stretch",
    const.CONTENT_BODY: "It's time.",
    const.CONTENT_DATA: {
        const.CONTENT_DATA_TYPE: const.NUDGE_TYPE_ACTIVITY_REMINDER,
        const.CONTENT_DATA_ACTIVITY_ID: "a1",
    },
}

REGION = {
    const.REGION_IDENTIFIER: "a1",
    const.REGION_LATITUDE: HOME[0],
    const.REGION_LONGITUDE: HOME[1],
    const.REGION_RADIUS: 150.0,
    const.REGION_NOTIFY_ON_ENTER: True,
    const.REGION_NOTIFY_ON_EXIT: False,
}


def _set_position(hass: HomeAssistant, latitude: float, longitude: float) -> None:
    hass.states.async_set(
        TRACKER_ENTITY, "not_home", {"latitude": latitude, "longitude": longitude}
    )


@pytest.fixture
async def notification_host(
    hass: HomeAssistant,
) -> AsyncGenerator[HomeAssistantNotificationHost, None]:
    """Return a notification host on a fresh store; timers cancelled after."""
    host = HomeAssistantNotificationHost(hass, NudgeSchedulerStore(hass), NOTIFY_SERVICE)
    yield host
    host.async_shutdown()


class TestNotificationHost:
    """Persisted scheduled set and timer delivery."""

    async def test_one_shot_delivers_and_leaves_set(
        self, hass: HomeAssistant, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """A date trigger fires once through notify and is dropped."""
        calls = async_mock_service(hass, "notify", "mobile_app_phone")
        when = dt_util.utcnow() + timedelta(minutes=10)
        notification_id = await notification_host.async_schedule(
            CONTENT,
            {const.TRIGGER_TYPE: const.TRIGGER_TYPE_DATE, const.TRIGGER_DATE: when.isoformat()},
        )
        assert [
            entry[const.SCHEDULED_IDENTIFIER]
            for entry in await notification_host.async_get_all_scheduled()
        ] == [notification_id]

        async_fire_time_changed(hass, when + timedelta(seconds=1))
        await hass.async_block_till_done()

        (call,) = calls
        assert call.data[const.NOTIFY_TITLE] == "Stretch"
        assert call.data[const.NOTIFY_DATA][const.NOTIFY_ACTIONS][0][const.NOTIFY_ACTION] == (
            f"nudge_opened|{const.NUDGE_TYPE_ACTIVITY_REMINDER}|{notification_id}"
        )
        assert await notification_host.async_get_all_scheduled() == []

    async def test_past_or_malformed_trigger_rejected(
        self, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """Nothing is persisted for an instant already gone."""
        past = dt_util.utcnow() - timedelta(minutes=1)
        with pytest.raises(HomeAssistantError):
            await notification_host.async_schedule(
                CONTENT,
                {const.TRIGGER_TYPE: const.TRIGGER_TYPE_DATE, const.TRIGGER_DATE: past.isoformat()},
            )
        with pytest.raises(HomeAssistantError):
            await notification_host.async_schedule(
                CONTENT, {const.TRIGGER_TYPE: const.TRIGGER_TYPE_DAILY, const.TRIGGER_HOUR: 24}
            )
        assert await notification_host.async_get_all_scheduled() == []

    async def test_cancel_disarms(
        self, hass: HomeAssistant, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """A cancelled notification is never delivered."""
        calls = async_mock_service(hass, "notify", "mobile_app_phone")
        when = dt_util.utcnow() + timedelta(minutes=10)
        notification_id = await notification_host.async_schedule(
            CONTENT,
            {const.TRIGGER_TYPE: const.TRIGGER_TYPE_DATE, const.TRIGGER_DATE: when.isoformat()},
        )

        await notification_host.async_cancel(notification_id)
        async_fire_time_changed(hass, when + timedelta(seconds=1))
        await hass.async_block_till_done()

        assert calls == []
        assert notification_host._timers == {}

    async def test_daily_trigger_stays_scheduled(
        self, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """Repeating entries are armed and kept in the set."""
        notification_id = await notification_host.async_schedule(
            CONTENT,
            {
                const.TRIGGER_TYPE: const.TRIGGER_TYPE_DAILY,
                const.TRIGGER_HOUR: 8,
                const.TRIGGER_MINUTE: 0,
            },
        )

        assert notification_id in notification_host._timers
        assert len(await notification_host.async_get_all_scheduled()) == 1

    async def test_setup_delivers_overdue_one_shots(
        self, hass: HomeAssistant, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """One-shots missed while Home Assistant was down are sent late."""
        calls = async_mock_service(hass, "notify", "mobile_app_phone")
        past = dt_util.utcnow() - timedelta(hours=1)
        entry: dict[str, Any] = {
            const.SCHEDULED_IDENTIFIER: "late",
            const.SCHEDULED_CONTENT: CONTENT,
            const.SCHEDULED_TRIGGER: {
                const.TRIGGER_TYPE: const.TRIGGER_TYPE_DATE,
                const.TRIGGER_DATE: past.isoformat(),
            },
        }
        await notification_host._store.async_save(
            const.DOC_SCHEDULED_NOTIFICATIONS, {"late": entry}
        )

        await notification_host.async_setup()
        await hass.async_block_till_done()

        assert len(calls) == 1
        assert await notification_host.async_get_all_scheduled() == []

    async def test_present_now_without_service_raises(
        self, notification_host: HomeAssistantNotificationHost
    ) -> None:
        """An unregistered notify service is a delivery failure."""
        with pytest.raises(HomeAssistantError):
            await notification_host.async_present_now(CONTENT)


class TestGeofenceHost:
    """Transitions derived from tracker positions."""

    async def test_enter_reported_once(self, hass: HomeAssistant) -> None:
        """Crossing into a region reports enter; staying inside does not repeat."""
        received: list[dict[str, Any]] = []

        async def _on_event(payload: dict[str, Any]) -> None:
            received.append(payload)

        _set_position(hass, HOME[0] + 0.1, HOME[1])
        host = HomeAssistantGeofenceHost(hass, TRACKER_ENTITY, _on_event)
        await host.async_start([REGION])
        assert await host.async_has_started()

        _set_position(hass, HOME[0], HOME[1])
        await hass.async_block_till_done()
        _set_position(hass, HOME[0] + 0.0001, HOME[1])
        await hass.async_block_till_done()

        assert received == [
            {
                const.RAW_GEOFENCE_EVENT_TYPE: const.GEOFENCE_EVENT_CODE_ENTER,
                const.RAW_GEOFENCE_REGION: {const.RAW_GEOFENCE_IDENTIFIER: "a1"},
            }
        ]

        # Exit is not monitored for this region.
        _set_position(hass, HOME[0] + 0.1, HOME[1])
        await hass.async_block_till_done()
        assert len(received) == 1

        await host.async_stop()
        assert not await host.async_has_started()

    async def test_start_inside_seeds_without_event(self, hass: HomeAssistant) -> None:
        """Starting while already inside reports nothing."""
        received: list[dict[str, Any]] = []

        async def _on_event(payload: dict[str, Any]) -> None:
            received.append(payload)

        _set_position(hass, HOME[0], HOME[1])
        host = HomeAssistantGeofenceHost(hass, TRACKER_ENTITY, _on_event)
        await host.async_start([REGION])
        _set_position(hass, HOME[0] + 0.0001, HOME[1])
        await hass.async_block_till_done()

        assert received == []
        await host.async_stop()

    async def test_no_tracker_is_unavailable(self, hass: HomeAssistant) -> None:
        """Without a tracker entity monitoring cannot start."""

        async def _on_event(payload: dict[str, Any]) -> None:
            """Never called."""

        host = HomeAssistantGeofenceHost(hass, None, _on_event)
        assert not await host.async_is_available()
        with pytest.raises(HomeAssistantError):
            await host.async_start([REGION])


class TestPermissionHost:
    """Raw statuses derived from the configuration."""

    async def test_notifications(self, hass: HomeAssistant) -> None:
        """Registered, missing and unconfigured notify services."""
        host = HomeAssistantPermissionHost(hass, NOTIFY_SERVICE, None)
        assert (await host.async_get(const.CAPABILITY_NOTIFICATIONS))[
            const.RAW_PERMISSION_STATUS
        ] == const.RAW_STATUS_DENIED

        async_mock_service(hass, "notify", "mobile_app_phone")
        assert (await host.async_get(const.CAPABILITY_NOTIFICATIONS))[
            const.RAW_PERMISSION_GRANTED
        ] is True

        unconfigured = HomeAssistantPermissionHost(hass, None, None)
        assert (await unconfigured.async_get(const.CAPABILITY_NOTIFICATIONS))[
            const.RAW_PERMISSION_STATUS
        ] == const.RAW_STATUS_UNDETERMINED

    async def test_location(self, hass: HomeAssistant) -> None:
        """Absent, missing, GPS-less and GPS-reporting trackers."""
        assert await HomeAssistantPermissionHost(hass, None, None).async_get(
            const.CAPABILITY_LOCATION
        ) is None

        host = HomeAssistantPermissionHost(hass, None, TRACKER_ENTITY)
        assert (await host.async_get(const.CAPABILITY_LOCATION))[
            const.RAW_PERMISSION_STATUS
        ] == const.RAW_STATUS_UNDETERMINED

        hass.states.async_set(TRACKER_ENTITY, "home")
        assert (await host.async_get(const.CAPABILITY_LOCATION))[
            const.RAW_PERMISSION_STATUS
        ] == const.RAW_STATUS_DENIED

        _set_position(hass, HOME[0], HOME[1])
        assert (await host.async_get(const.CAPABILITY_LOCATION))[
            const.RAW_PERMISSION_STATUS
        ] == const.RAW_STATUS_GRANTED
