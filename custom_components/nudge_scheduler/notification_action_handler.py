# File: notification_action_handler.py
"""Handle notification actions from HA companion notifications.

Every nudge is sent with an "Open" action. When the user taps it, the
companion app fires `mobile_app_notification_action` with the action string
we built, and this handler turns it into an engagement signal.

Separation of concerns:
- notification_action_handler.py = "The Router" (INCOMING action callbacks)
- NotificationManager = "The Voice" (OUTGOING notifications)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import const

if TYPE_CHECKING:
    from homeassistant.core import Event, HomeAssistant

    from .coordinator import NudgeSchedulerCoordinator


@dataclass
class ParsedAction:
    """Type-safe parsed notification action.

    Action strings are pipe-separated: "nudge_opened|<nudge_type>|<notification_id>"

    Attributes:
        action_type: The action constant (const.ACTION_NUDGE_OPENED)
        nudge_type: Type carried by the notification's data
        notification_id: Host identifier of the notification
    """

    action_type: str
    nudge_type: str
    notification_id: str | None = None


def parse_notification_action(action_field: str | None) -> ParsedAction | None:
    """Parse a notification action string into a ParsedAction.

    Returns:
        ParsedAction if the string is one of ours, None otherwise.

    Example:
        >>> parsed = parse_notification_action("nudge_opened|dailyFocus|abc123")
        >>> parsed.nudge_type       # "dailyFocus"
        >>> parsed.notification_id  # "abc123"
    """
    if not action_field or not isinstance(action_field, str):
        return None

    parts = action_field.split(const.ACTION_SEPARATOR)
    if parts[0] != const.ACTION_NUDGE_OPENED:
        # Actions from other integrations share the event; not an error.
        return None
    if len(parts) < 2 or parts[1] not in const.NUDGE_TYPES:
        const.LOGGER.warning("WARNING: Invalid nudge action string: %s", action_field)
        return None

    return ParsedAction(
        action_type=parts[0],
        nudge_type=parts[1],
        notification_id=parts[2] if len(parts) > 2 and parts[2] else None,
    )


async def async_handle_notification_action(hass: HomeAssistant, event: Event) -> None:
    """Handle notification actions from HA companion notifications.

    Args:
        hass: Home Assistant instance
        event: Event containing the notification action data
    """
    parsed = parse_notification_action(event.data.get(const.NOTIFY_ACTION))
    if parsed is None:
        return

    entries = hass.data.get(const.DOMAIN) or {}
    if not entries:
        const.LOGGER.error("ERROR: No loaded Nudge Scheduler entry for action %s", parsed)
        return

    for entry_data in entries.values():
        coordinator: NudgeSchedulerCoordinator = entry_data[const.COORDINATOR]
        await coordinator.notification_manager.async_record_opened(
            parsed.nudge_type, parsed.notification_id
        )
