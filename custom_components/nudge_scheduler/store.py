# File: store.py
"""Handles persistent document storage for the Nudge Scheduler integration.

Uses Home Assistant's Storage helper to keep every ledger in its own namespaced
document (`.storage/nudge_scheduler.<document>`), so one corrupt file never
takes the others down with it.

Every read goes to durable storage. Handlers can run right after a restart
with nothing warmed up, so an in-memory copy is never treated as the source of
truth.
"""

from __future__ import annotations

from collections.abc import Callable
import copy
from typing import TYPE_CHECKING, Any, TypeVar

from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from . import const

if TYPE_CHECKING:
    from homeassistant.core import HomeAssistant

_T = TypeVar("_T")


def get_default_document(document: str) -> dict[str, Any]:
    """Return the canonical empty structure for a document.

    This is the SINGLE SOURCE OF TRUTH for the storage schema. Missing fields
    in persisted documents are filled from here on read.
    """
    if document == const.DOC_SYSTEM_NUDGES:
        return {
            const.LEDGER_SENT_COUNT_BY_DATE: {},
            const.LEDGER_LAST_SENT_AT_BY_TYPE: {},
            const.LEDGER_LAST_OPENED_AT_BY_TYPE: {},
            const.LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE: {},
            const.LEDGER_OPEN_HOUR_COUNTS_BY_TYPE: {},
            const.LEDGER_PENDING_BY_TYPE: {},
        }
    if document in (
        const.DOC_DAILY_SHOW_UP,
        const.DOC_DAILY_FOCUS,
        const.DOC_GOAL_NUDGE,
    ):
        return {
            const.NUDGE_LEDGER_NOTIFICATION_ID: None,
            const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL: None,
        }
    if document == const.DOC_SETUP_NEXT_STEP:
        return {
            const.NUDGE_LEDGER_NOTIFICATION_ID: None,
            const.NUDGE_LEDGER_SCHEDULE_TIME_LOCAL: None,
            const.NUDGE_LEDGER_REASON: None,
        }
    if document == const.DOC_PERMISSIONS:
        return {
            capability: const.PERMISSION_NOT_REQUESTED
            for capability in const.CAPABILITIES
        }
    if document == const.DOC_PREFERENCES:
        return dict(const.DEFAULT_PREFERENCES)
    if document == const.DOC_DOMAIN:
        return {
            const.DATA_ACTIVITIES: {},
            const.DATA_GOALS: {},
            const.DATA_ARCS: {},
            const.DATA_LAST_SHOW_UP_DATE: None,
            const.DATA_LAST_COMPLETED_FOCUS_DATE: None,
        }
    if document == const.DOC_GEOFENCE_REGIONS:
        return {
            const.GEOFENCE_DOC_SIGNATURE: None,
            const.GEOFENCE_DOC_REGIONS: [],
        }
    # Keyed maps: activity_reminders, location_offers, scheduled_notifications
    return {}


class NudgeSchedulerStore:
    """Durable key/value store for all scheduling documents.

    Pure data access: no policy lives here. The store is passed explicitly to
    the managers that own each document.
    """

    def __init__(self, hass: HomeAssistant, key_prefix: str = const.STORAGE_KEY_PREFIX) -> None:
        """Initialize the store.

        Args:
            hass: Home Assistant core object.
            key_prefix: Prefix for the storage keys (default: const.STORAGE_KEY_PREFIX).
        """
        self.hass = hass
        self._key_prefix = key_prefix
        self._stores: dict[str, Store] = {}

    def _get_store(self, document: str) -> Store:
        """Return (creating on first use) the Store backing a document."""
        store = self._stores.get(document)
        if store is None:
            store = Store(
                self.hass,
                const.STORAGE_VERSION,
                f"{self._key_prefix}.{document}",
            )
            self._stores[document] = store
        return store

    def get_storage_path(self, document: str) -> str:
        """Get the storage file path for a document."""
        return self._get_store(document).path

    async def async_load(self, document: str) -> dict[str, Any]:
        """Load a document from durable storage.

        Missing documents return the default structure. Unreadable or corrupt
        documents also return the default structure: losing rate-limit history
        is less harmful than refusing to schedule anything.
        """
        default = get_default_document(document)
        try:
            raw = await self._get_store(document).async_load()
        except (HomeAssistantError, OSError, ValueError) as err:
            const.LOGGER.warning(
                "WARNING: Document '%s' is unreadable, treating it as empty: %s",
                document,
                err,
            )
            return default

        if raw is None:
            return default
        if not isinstance(raw, dict):
            const.LOGGER.warning(
                "WARNING: Document '%s' has unexpected type %s, treating it as empty",
                document,
                type(raw).__name__,
            )
            return default

        # Fill fields added after the document was written.
        for key, value in default.items():
            if key not in raw:
                raw[key] = value
            elif isinstance(value, dict) and not isinstance(raw[key], dict):
                const.LOGGER.warning(
                    "WARNING: Field '%s' in document '%s' is malformed, resetting it",
                    key,
                    document,
                )
                raw[key] = value
        return raw

    async def async_save(self, document: str, data: dict[str, Any]) -> bool:
        """Save a document to durable storage.

        Returns:
            True if the write succeeded. Errors are logged, never raised.
        """
        try:
            await self._get_store(document).async_save(data)
        except OSError as err:
            const.LOGGER.error(
                "ERROR: Failed to save '%s' due to file system error: %s. "
                "Check disk space and file permissions for %s",
                document,
                err,
                self.get_storage_path(document),
            )
            return False
        except (TypeError, ValueError) as err:
            const.LOGGER.error(
                "ERROR: Failed to save '%s' due to non-serializable data: %s",
                document,
                err,
            )
            return False
        const.LOGGER.debug("DEBUG: Document '%s' saved", document)
        return True

    async def async_update(
        self,
        document: str,
        mutator: Callable[[dict[str, Any]], _T],
    ) -> _T:
        """Read-modify-write a document.

        This is the only mutation path for ledgers. The document is written back
        only when the mutator actually changed it, so running an idempotent pass
        twice performs no second write.

        Args:
            document: Document name (const.DOC_*).
            mutator: Function mutating the loaded dict in place; its return value
                     is passed through to the caller.
        """
        data = await self.async_load(document)
        before = copy.deepcopy(data)
        result = mutator(data)
        if data != before:
            await self.async_save(document, data)
        return result

    async def async_remove_all(self) -> None:
        """Delete every document file (used when the config entry is removed)."""
        for document in const.ALL_DOCUMENTS:
            try:
                await self._get_store(document).async_remove()
            except OSError as err:
                const.LOGGER.error(
                    "ERROR: Failed to remove storage file %s: %s. Check file permissions",
                    self.get_storage_path(document),
                    err,
                )
        const.LOGGER.info("INFO: All Nudge Scheduler documents removed")
