"""Permission Manager - Capability permission state for the policy layer.

Responsibilities:
- Normalize heterogeneous raw host responses into PermissionStatus
- Persist the status per capability (permissions document)
- Re-sync from the host before gating decisions (never trust the cache)
- Surface "open settings" affordances instead of re-prompting after a denial

State machine per capability:
    notRequested --(request)--> authorized | denied | restricted
    unavailable is terminal for as long as the capability is absent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from homeassistant.components import persistent_notification

from .. import const
from ..helpers import ledger_helpers as lh
from .base_manager import BaseManager

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

    from ..coordinator import NudgeSchedulerCoordinator
    from ..hosts import PermissionHost


def normalize_permission_response(raw: dict[str, Any] | None) -> str:
    """Map a raw host permission response to a PermissionStatus.

    This is the only place raw response shapes are read.

    - None (capability absent) → unavailable
    - granted=True or status "granted" → authorized
    - status "denied" → denied
    - status "undetermined" or no status → notRequested
    - status "restricted" or any other status → restricted
    """
    if raw is None:
        return const.PERMISSION_UNAVAILABLE
    if not isinstance(raw, dict):
        return const.PERMISSION_NOT_REQUESTED
    status = raw.get(const.RAW_PERMISSION_STATUS)
    if raw.get(const.RAW_PERMISSION_GRANTED) is True or status == const.RAW_STATUS_GRANTED:
        return const.PERMISSION_AUTHORIZED
    if status == const.RAW_STATUS_DENIED:
        return const.PERMISSION_DENIED
    if status in (None, "", const.RAW_STATUS_UNDETERMINED):
        return const.PERMISSION_NOT_REQUESTED
    return const.PERMISSION_RESTRICTED


def _persistent_notification_id(capability: str) -> str:
    return f"{const.PERSISTENT_NOTIFICATION_ID_PREFIX}_{capability}"


class PermissionManager(BaseManager):
    """Keeps persisted permission statuses in step with the host."""

    def __init__(
        self,
        hass: HomeAssistant,
        coordinator: NudgeSchedulerCoordinator,
        host: PermissionHost,
    ) -> None:
        """Initialize the manager with its permission host."""
        super().__init__(hass, coordinator)
        self.host = host

    async def async_setup(self) -> None:
        """Sync every capability once so the first gating decisions are fresh."""
        for capability in const.CAPABILITIES:
            await self.async_sync(capability)

    async def async_get_status(self, capability: str) -> str:
        """Return the persisted status without touching the host."""
        return await lh.async_get_permission_status(self.store, capability)

    async def async_sync(self, capability: str) -> str:
        """Query the host, persist the normalized status and return it."""
        try:
            raw = await self.host.async_get(capability)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Permission query for '%s' failed: %s", capability, err
            )
            raw = None
        return await self._async_store_status(capability, normalize_permission_response(raw))

    async def async_request(self, capability: str) -> bool:
        """Ask the host for a permission, persist the outcome.

        Returns:
            True if the capability ended up authorized.
        """
        try:
            raw = await self.host.async_request(capability)
        except Exception as err:  # pylint: disable=broad-exception-caught
            const.LOGGER.warning(
                "WARNING: Permission request for '%s' failed: %s", capability, err
            )
            raw = None
        status = await self._async_store_status(
            capability, normalize_permission_response(raw)
        )
        return status == const.PERMISSION_AUTHORIZED

    async def async_ensure_with_rationale(self, capability: str, reason: str) -> bool:
        """Make sure a capability is usable, explaining why when it is not.

        Re-syncs first. Authorized short-circuits to True. notRequested shows
        the rationale and requests. denied/restricted/unavailable surface a
        persistent notification pointing at the settings and never re-prompt.
        """
        status = await self.async_sync(capability)
        notification_id = _persistent_notification_id(capability)

        if status == const.PERMISSION_AUTHORIZED:
            persistent_notification.async_dismiss(self.hass, notification_id)
            return True

        if status == const.PERMISSION_NOT_REQUESTED:
            const.LOGGER.debug(
                "DEBUG: Requesting '%s' permission (reason: %s)", capability, reason
            )
            if await self.async_request(capability):
                persistent_notification.async_dismiss(self.hass, notification_id)
                return True
            persistent_notification.async_create(
                self.hass,
                const.COPY_PERMISSION_REQUEST_MESSAGE.get(
                    reason, const.COPY_PERMISSION_REQUEST_MESSAGE[const.PERMISSION_REASON_DAILY]
                ),
                title=const.COPY_PERMISSION_REQUEST_TITLE[capability],
                notification_id=notification_id,
            )
            return False

        if status == const.PERMISSION_UNAVAILABLE:
            message = const.COPY_PERMISSION_UNAVAILABLE_MESSAGE
        else:
            message = const.COPY_PERMISSION_BLOCKED_MESSAGE[capability]
        const.LOGGER.info(
            "INFO: '%s' permission is %s - directing user to settings", capability, status
        )
        persistent_notification.async_create(
            self.hass,
            message,
            title=const.COPY_PERMISSION_BLOCKED_TITLE[capability],
            notification_id=notification_id,
        )
        return False

    async def _async_store_status(self, capability: str, status: str) -> str:
        previous = await lh.async_get_permission_status(self.store, capability)
        if await lh.async_set_permission_status(self.store, capability, status):
            const.LOGGER.debug(
                "DEBUG: Permission '%s' changed from %s to %s", capability, previous, status
            )
            self.send_change(
                const.SIGNAL_SUFFIX_PERMISSIONS_CHANGED,
                {capability: previous},
                {capability: status},
            )
        return status
