"""Direct unit tests for NudgeSchedulerStore.

Covers the default-document fallbacks for missing and corrupt files, the
write-only-on-change update path and document removal.
"""

# pylint: disable=protected-access  # Accessing _get_store for testing
# pylint: disable=redefined-outer-name  # Pytest fixtures redefine names

from typing import Any
from unittest.mock import patch

import pytest
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError

from custom_components.nudge_scheduler import const
from custom_components.nudge_scheduler.store import (
    NudgeSchedulerStore,
    get_default_document,
)


@pytest.fixture
def store(hass: HomeAssistant) -> NudgeSchedulerStore:
    """Return a store instance."""
    return NudgeSchedulerStore(hass)


def _stored(data: Any, document: str) -> dict[str, Any]:
    return {
        "version": const.STORAGE_VERSION,
        "minor_version": 1,
        "key": f"{const.STORAGE_KEY_PREFIX}.{document}",
        "data": data,
    }


async def test_missing_document_returns_default(store: NudgeSchedulerStore) -> None:
    """Test that a document never written loads as its default structure."""
    assert await store.async_load(const.DOC_SYSTEM_NUDGES) == get_default_document(
        const.DOC_SYSTEM_NUDGES
    )
    assert await store.async_load(const.DOC_PREFERENCES) == const.DEFAULT_PREFERENCES
    assert await store.async_load(const.DOC_ACTIVITY_REMINDERS) == {}


async def test_non_dict_document_returns_default(
    hass_storage: dict[str, Any], store: NudgeSchedulerStore
) -> None:
    """Test that a document holding a list is treated as empty."""
    hass_storage[f"nudge_scheduler.{const.DOC_SYSTEM_NUDGES}"] = _stored(
        ["garbage"], const.DOC_SYSTEM_NUDGES
    )

    loaded = await store.async_load(const.DOC_SYSTEM_NUDGES)

    assert loaded == get_default_document(const.DOC_SYSTEM_NUDGES)


async def test_malformed_field_is_reset(
    hass_storage: dict[str, Any], store: NudgeSchedulerStore
) -> None:
    """Test that a map field holding the wrong type is reset, others kept."""
    hass_storage[f"nudge_scheduler.{const.DOC_SYSTEM_NUDGES}"] = _stored(
        {
            const.LEDGER_SENT_COUNT_BY_DATE: "oops",
            const.LEDGER_LAST_SENT_AT_BY_TYPE: {
                const.NUDGE_TYPE_DAILY_FOCUS: "2026-01-01T15:00:00+00:00"
            },
        },
        const.DOC_SYSTEM_NUDGES,
    )

    loaded = await store.async_load(const.DOC_SYSTEM_NUDGES)

    assert loaded[const.LEDGER_SENT_COUNT_BY_DATE] == {}
    assert loaded[const.LEDGER_LAST_SENT_AT_BY_TYPE] == {
        const.NUDGE_TYPE_DAILY_FOCUS: "2026-01-01T15:00:00+00:00"
    }
    assert loaded[const.LEDGER_PENDING_BY_TYPE] == {}


async def test_unreadable_document_returns_default(store: NudgeSchedulerStore) -> None:
    """Test that a load error degrades to the default structure."""
    backing = store._get_store(const.DOC_PERMISSIONS)
    with patch.object(backing, "async_load", side_effect=HomeAssistantError("bad json")):
        loaded = await store.async_load(const.DOC_PERMISSIONS)

    assert loaded == {
        const.CAPABILITY_NOTIFICATIONS: const.PERMISSION_NOT_REQUESTED,
        const.CAPABILITY_LOCATION: const.PERMISSION_NOT_REQUESTED,
    }


async def test_update_writes_only_on_change(store: NudgeSchedulerStore) -> None:
    """Test that an update whose mutator changes nothing skips the write."""
    backing = store._get_store(const.DOC_LOCATION_OFFERS)

    def _add(doc: dict[str, Any]) -> str:
        doc["a1:enter"] = {const.LOCATION_OFFER_LAST_FIRED_AT: "2026-01-01T18:00:00+00:00"}
        return "added"

    with patch.object(backing, "async_save", wraps=backing.async_save) as mock_save:
        assert await store.async_update(const.DOC_LOCATION_OFFERS, _add) == "added"
        assert await store.async_update(const.DOC_LOCATION_OFFERS, _add) == "added"

    assert mock_save.call_count == 1
    assert "a1:enter" in await store.async_load(const.DOC_LOCATION_OFFERS)


async def test_save_failure_is_reported(store: NudgeSchedulerStore) -> None:
    """Test that a file system error is logged and returned as False."""
    backing = store._get_store(const.DOC_DOMAIN)
    with patch.object(backing, "async_save", side_effect=OSError("disk full")):
        assert await store.async_save(const.DOC_DOMAIN, {}) is False


async def test_remove_all_clears_documents(
    hass_storage: dict[str, Any], store: NudgeSchedulerStore
) -> None:
    """Test that every document file is removed."""
    await store.async_save(const.DOC_PREFERENCES, dict(const.DEFAULT_PREFERENCES))
    await store.async_save(const.DOC_DOMAIN, get_default_document(const.DOC_DOMAIN))
    assert f"nudge_scheduler.{const.DOC_PREFERENCES}" in hass_storage

    await store.async_remove_all()

    assert not any(key.startswith("nudge_scheduler.") for key in hass_storage)
