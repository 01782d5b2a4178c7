"""Base manager class for Nudge Scheduler managers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from homeassistant.helpers.dispatcher import async_dispatcher_connect

from .. import const
from ..helpers.event_helpers import async_send_change, get_event_signal

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..store import NudgeSchedulerStore

    ChangeHandler = Callable[[Any, Any], Awaitable[None]]


class BaseManager(ABC):
    """Shared plumbing for the scheduler, reconcilers and handlers.

    Managers never hold the truth: every decision re-reads its documents
    through ``self.store``. They learn that a document changed through change
    signals (previous/current pairs) and report outcomes to the analytics
    collaborator as Home Assistant bus events.
    """

    def __init__(
        self, hass: HomeAssistant, coordinator: NudgeSchedulerCoordinator
    ) -> None:
        """Initialize manager.

        Args:
            hass: Home Assistant instance
            coordinator: Parent coordinator managing this integration instance
        """
        self.hass = hass
        self.coordinator = coordinator
        self.entry_id = coordinator.config_entry.entry_id

    @property
    def store(self) -> NudgeSchedulerStore:
        """Document store shared by all managers."""
        return self.coordinator.store

    def send_change(self, suffix: str, previous: Any, current: Any) -> None:
        """Announce a change this manager has already persisted."""
        async_send_change(self.hass, self.entry_id, suffix, previous, current)

    def on_change(self, suffix: str, handler: ChangeHandler) -> None:
        """Call ``handler(previous, current)`` for each change signal.

        The subscription ends when the config entry unloads.
        """

        async def _dispatch(payload: dict[str, Any]) -> None:
            await handler(
                payload.get(const.CHANGE_PREVIOUS), payload.get(const.CHANGE_CURRENT)
            )

        unsub = async_dispatcher_connect(
            self.hass, get_event_signal(self.entry_id, suffix), _dispatch
        )
        self.coordinator.config_entry.async_on_unload(unsub)

    def fire_bus_event(self, event_type: str, **data: Any) -> None:
        """Publish an analytics event on the Home Assistant bus."""
        self.hass.bus.async_fire(event_type, data)

    @abstractmethod
    async def async_setup(self) -> None:
        """Restore state and subscribe to change signals."""
