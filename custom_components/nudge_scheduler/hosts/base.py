"""Host adapter interfaces.

The scheduler never talks to a notification, geofencing or permission system
directly. It talks to these seams, which may fail (raise) at any call; the
managers catch at their boundary and rely on the next reconcile to self-heal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..type_defs import (
        GeofenceRegion,
        NotificationContent,
        NotificationTrigger,
        ScheduledNotification,
    )


class LocalNotificationHost(ABC):
    """Schedules notifications that fire later without the scheduler running.

    One-shot ("date") notifications are removed from the scheduled set once
    they fire. Repeating ("daily") notifications stay until cancelled. There is
    no delivery callback: the scheduled set is the only evidence.
    """

    @abstractmethod
    async def async_get_all_scheduled(self) -> list[ScheduledNotification]:
        """Return the currently scheduled notifications."""

    @abstractmethod
    async def async_schedule(
        self, content: NotificationContent, trigger: NotificationTrigger
    ) -> str:
        """Schedule a notification and return its opaque identifier."""

    @abstractmethod
    async def async_cancel(self, notification_id: str) -> None:
        """Cancel a scheduled notification (unknown ids are ignored)."""

    @abstractmethod
    async def async_present_now(self, content: NotificationContent) -> str:
        """Deliver a notification immediately, raising if delivery failed."""


class GeofenceHost(ABC):
    """Monitors circular regions and reports enter/exit transitions."""

    @abstractmethod
    async def async_is_available(self) -> bool:
        """Return True if region monitoring is supported at all."""

    @abstractmethod
    async def async_has_started(self) -> bool:
        """Return True if monitoring is currently running."""

    @abstractmethod
    async def async_start(self, regions: list[GeofenceRegion]) -> None:
        """Start monitoring exactly the given regions."""

    @abstractmethod
    async def async_stop(self) -> None:
        """Stop monitoring every region."""


class PermissionHost(ABC):
    """Reports and requests capability permissions in the host's own shape."""

    @abstractmethod
    async def async_get(self, capability: str) -> dict[str, Any] | None:
        """Return the raw permission response, or None if the capability is absent."""

    @abstractmethod
    async def async_request(self, capability: str) -> dict[str, Any] | None:
        """Prompt for a permission and return the raw response."""
