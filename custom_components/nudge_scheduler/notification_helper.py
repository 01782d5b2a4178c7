# File: notification_helper.py
"""Sends notifications using Home Assistant's notify services.

This module implements a helper for sending nudges via Home Assistant's notify
services (HA Companion notifications), with an optional payload of actions.
Actionable notifications encode their context (type and notification id)
directly into the action string, e.g. "nudge_opened|dailyFocus|<id>".
"""

from __future__ import annotations

from typing import Any

from homeassistant.core import HomeAssistant

from . import const


def split_notify_service(notify_service: str) -> tuple[str, str]:
    """Split "notify.mobile_app_x" (or "mobile_app_x") into domain and service."""
    if "." not in notify_service:
        return const.NOTIFY_DOMAIN, notify_service
    domain, service = notify_service.split(".", 1)
    return domain, service


def notify_service_exists(hass: HomeAssistant, notify_service: str | None) -> bool:
    """Return True if the configured notify service is registered."""
    if not notify_service:
        return False
    domain, service = split_notify_service(notify_service)
    return hass.services.has_service(domain, service)


def build_open_action(nudge_type: str, notification_id: str) -> dict[str, str]:
    """Build the companion-app action used to report an opened nudge."""
    return {
        const.NOTIFY_ACTION: const.ACTION_SEPARATOR.join(
            (const.ACTION_NUDGE_OPENED, nudge_type, notification_id)
        ),
        const.NOTIFY_TITLE: "Open",
    }


async def async_send_notification(
    hass: HomeAssistant,
    notify_service: str | None,
    title: str,
    message: str,
    actions: list[dict[str, str]] | None = None,
    extra_data: dict[str, Any] | None = None,
) -> bool:
    """Send a notification using the specified notify service.

    Gracefully handles missing notification services (fresh installs, or when
    the mobile app isn't configured yet): logs a warning and returns False.

    Returns:
        True only if the notify service accepted the call.
    """
    if not notify_service:
        const.LOGGER.warning(
            "WARNING: No notify service configured - skipping notification '%s'",
            title,
        )
        return False

    domain, service = split_notify_service(notify_service)

    # Validate service exists before attempting to send
    if not hass.services.has_service(domain, service):
        const.LOGGER.warning(
            "WARNING: Notification service '%s.%s' not available - skipping "
            "notification. Configure the mobile app integration or pick another "
            "notify service in the integration options.",
            domain,
            service,
        )
        return False

    payload: dict[str, Any] = {const.NOTIFY_TITLE: title, const.NOTIFY_MESSAGE: message}

    if actions:
        data = payload.setdefault(const.NOTIFY_DATA, {})
        data[const.NOTIFY_ACTIONS] = actions

    if extra_data:
        data = payload.setdefault(const.NOTIFY_DATA, {})
        data.update(extra_data)

    try:
        await hass.services.async_call(domain, service, payload, blocking=True)
    except Exception as err:  # pylint: disable=broad-exception-caught
        # Broad exception allowed: notify platforms raise arbitrary errors and
        # this runs from timer callbacks where an escaping error is lost.
        const.LOGGER.error(
            "ERROR: Unexpected error sending notification via '%s.%s': %s. Payload: %s",
            domain,
            service,
            err,
            payload,
        )
        return False

    const.LOGGER.debug("DEBUG: Notification sent via '%s.%s'", domain, service)
    return True
