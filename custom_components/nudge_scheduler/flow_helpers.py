# File: flow_helpers.py
"""Helpers for the Nudge Scheduler integration's Config and Options flow.

Follows the validate/build split used across the flows:
- validate_settings_inputs(user_input) -> errors_dict (empty dict = no errors)
- build_settings_schema(default, include_interval) -> vol.Schema
- build_settings_data(user_input) -> normalized settings dict
"""

from typing import Any

import voluptuous as vol
from homeassistant.helpers import selector

from . import const
from .notification_helper import split_notify_service

TRACKER_DOMAINS = ("device_tracker", "person")


def build_settings_schema(
    default: dict[str, Any] | None = None, include_interval: bool = False
) -> vol.Schema:
    """Build the schema for the delivery/location settings step."""
    default = default or {}
    fields: dict[Any, Any] = {
        vol.Optional(
            const.CONF_NOTIFY_SERVICE,
            description={"suggested_value": default.get(const.CONF_NOTIFY_SERVICE)},
        ): selector.TextSelector(),
        vol.Optional(
            const.CONF_TRACKER_ENTITY,
            description={"suggested_value": default.get(const.CONF_TRACKER_ENTITY)},
        ): selector.EntitySelector(
            selector.EntitySelectorConfig(domain=list(TRACKER_DOMAINS))
        ),
    }
    if include_interval:
        fields[
            vol.Required(
                const.CONF_UPDATE_INTERVAL,
                default=default.get(
                    const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL
                ),
            )
        ] = selector.NumberSelector(
            selector.NumberSelectorConfig(
                mode=selector.NumberSelectorMode.BOX, min=1, step=1
            )
        )
    return vol.Schema(fields)


def normalize_notify_service(value: str | None) -> str | None:
    """Return "notify.<service>" for a bare or qualified service name."""
    if not value or not value.strip():
        return None
    domain, service = split_notify_service(value.strip())
    return f"{domain}.{service}"


def validate_settings_inputs(user_input: dict[str, Any]) -> dict[str, str]:
    """Validate the settings step; returns errors keyed by field."""
    errors: dict[str, str] = {}

    notify_service = normalize_notify_service(user_input.get(const.CONF_NOTIFY_SERVICE))
    if notify_service is not None:
        domain, service = split_notify_service(notify_service)
        if domain != const.NOTIFY_DOMAIN or not service:
            errors[const.CONF_NOTIFY_SERVICE] = const.ERROR_INVALID_NOTIFY_SERVICE

    tracker_entity = user_input.get(const.CONF_TRACKER_ENTITY)
    if tracker_entity and tracker_entity.split(".", 1)[0] not in TRACKER_DOMAINS:
        errors[const.CONF_TRACKER_ENTITY] = const.ERROR_INVALID_TRACKER_ENTITY

    return errors


def build_settings_data(
    user_input: dict[str, Any], include_interval: bool = False
) -> dict[str, Any]:
    """Normalize validated settings for storage in the config entry."""
    data: dict[str, Any] = {
        const.CONF_NOTIFY_SERVICE: normalize_notify_service(
            user_input.get(const.CONF_NOTIFY_SERVICE)
        ),
        const.CONF_TRACKER_ENTITY: user_input.get(const.CONF_TRACKER_ENTITY) or None,
    }
    if include_interval:
        data[const.CONF_UPDATE_INTERVAL] = int(
            user_input.get(const.CONF_UPDATE_INTERVAL, const.DEFAULT_UPDATE_INTERVAL)
        )
    return data
