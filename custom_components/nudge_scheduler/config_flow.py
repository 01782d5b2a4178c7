# File: config_flow.py
"""Config flow for the Nudge Scheduler integration.

A single instance is allowed. The only setup inputs are where notifications go
(a companion-app notify service) and, optionally, which tracker provides
location for geofenced offers. User preferences are not part of the flow: the
app writes them through the set_preferences service.
"""

from typing import Any, Optional

from homeassistant import config_entries
from homeassistant.core import callback

from . import const
from . import flow_helpers as fh
from .options_flow import NudgeSchedulerOptionsFlowHandler

# pylint: disable=abstract-method


class NudgeSchedulerConfigFlow(config_entries.ConfigFlow, domain=const.DOMAIN):
    """Config Flow for Nudge Scheduler."""

    VERSION = 1

    async def async_step_user(self, user_input: Optional[dict[str, Any]] = None):
        """Ask for the notify service and the optional tracker entity."""
        if any(self._async_current_entries()):
            return self.async_abort(reason=const.ABORT_SINGLE_INSTANCE)

        errors: dict[str, str] = {}
        if user_input is not None:
            errors = fh.validate_settings_inputs(user_input)
            if not errors:
                return self.async_create_entry(
                    title=const.NUDGE_SCHEDULER_TITLE,
                    data=fh.build_settings_data(user_input),
                )

        return self.async_show_form(
            step_id=const.CONFIG_FLOW_STEP_USER,
            data_schema=fh.build_settings_schema(user_input),
            errors=errors,
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the Options Flow."""
        return NudgeSchedulerOptionsFlowHandler(config_entry)
