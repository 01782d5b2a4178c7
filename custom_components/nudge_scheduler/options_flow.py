# File: options_flow.py
"""Options Flow for the Nudge Scheduler integration.

Edits the notify service, the tracker entity and the background reconcile
interval. Saving reloads the entry (update listener in __init__.py) so the
hosts pick up the new targets.
"""

from typing import Any, Optional

from homeassistant import config_entries

from . import const
from . import flow_helpers as fh


class NudgeSchedulerOptionsFlowHandler(config_entries.OptionsFlow):
    """Options Flow for delivery and location settings."""

    def __init__(self, _config_entry: config_entries.ConfigEntry):
        """Initialize the options flow."""

    async def async_step_init(self, user_input: Optional[dict[str, Any]] = None):
        """Show and save the settings form."""
        errors: dict[str, str] = {}
        if user_input is not None:
            errors = fh.validate_settings_inputs(user_input)
            if not errors:
                const.LOGGER.debug("DEBUG: Options updated: %s", sorted(user_input))
                return self.async_create_entry(
                    title="",
                    data=fh.build_settings_data(user_input, include_interval=True),
                )

        current = {**self.config_entry.data, **self.config_entry.options}
        return self.async_show_form(
            step_id=const.OPTIONS_FLOW_STEP_INIT,
            data_schema=fh.build_settings_schema(
                user_input or current, include_interval=True
            ),
            errors=errors,
        )
