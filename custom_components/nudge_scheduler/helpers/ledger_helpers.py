"""Typed ledger access for Nudge Scheduler.

Read-modify-write functions over the documents held by NudgeSchedulerStore.
These are pure data access: they never decide WHEN something should fire,
they only record what the scheduler and reconciler observed.

Documents:
    - activity_reminders: {activityId: ActivityReminderLedgerEntry}
    - daily_show_up / daily_focus / goal_nudge / setup_next_step: DailyNudgeLedger
    - system_nudges: SystemNudgeLedger (caps, spacing, engagement signals)
    - location_offers: {"<entityId>:<event>": {lastFiredAtIso}}
    - permissions: {capability: PermissionStatus}
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from .. import const
from ..utils.dt_utils import as_local, dt_parse_iso, dt_to_iso

if TYPE_CHECKING:
    from ..store import NudgeSchedulerStore
    from ..type_defs import ActivityReminderLedgerEntry


DAILY_LEDGER_DOCUMENTS = {
    const.NUDGE_TYPE_DAILY_SHOW_UP: const.DOC_DAILY_SHOW_UP,
    const.NUDGE_TYPE_DAILY_FOCUS: const.DOC_DAILY_FOCUS,
    const.NUDGE_TYPE_GOAL_NUDGE: const.DOC_GOAL_NUDGE,
    const.NUDGE_TYPE_SETUP_NEXT_STEP: const.DOC_SETUP_NEXT_STEP,
}


# =============================================================================
# Activity Reminder Ledger
# =============================================================================


async def async_load_activity_reminder_ledger(
    store: NudgeSchedulerStore,
) -> dict[str, Any]:
    """Load all activity reminder entries keyed by activity id."""
    ledger = await store.async_load(const.DOC_ACTIVITY_REMINDERS)
    # Drop entries that are not objects (hand-edited or truncated files).
    return {key: value for key, value in ledger.items() if isinstance(value, dict)}


async def async_upsert_activity_reminder(
    store: NudgeSchedulerStore, entry: ActivityReminderLedgerEntry
) -> None:
    """Create or replace the entry for an activity."""

    def _mutate(ledger: dict[str, Any]) -> None:
        ledger[entry[const.REMINDER_ACTIVITY_ID]] = dict(entry)

    await store.async_update(const.DOC_ACTIVITY_REMINDERS, _mutate)


async def async_mark_activity_reminder_cancelled(
    store: NudgeSchedulerStore, activity_id: str, cancelled_at: datetime
) -> bool:
    """Stamp cancelledAtIso on a live entry.

    Returns:
        True if an entry was marked, False if there was nothing to cancel.
    """

    def _mutate(ledger: dict[str, Any]) -> bool:
        existing = ledger.get(activity_id)
        if not isinstance(existing, dict):
            return False
        if existing.get(const.REMINDER_CANCELLED_AT) or existing.get(
            const.REMINDER_FIRED_AT
        ):
            return False
        existing[const.REMINDER_CANCELLED_AT] = dt_to_iso(cancelled_at)
        return True

    return await store.async_update(const.DOC_ACTIVITY_REMINDERS, _mutate)


async def async_mark_activity_reminder_fired(
    store: NudgeSchedulerStore,
    activity_id: str,
    fired_at_iso: str,
    detected_at: datetime,
) -> None:
    """Stamp firedAtIso (the scheduled instant) and the detection time."""

    def _mutate(ledger: dict[str, Any]) -> None:
        existing = ledger.get(activity_id)
        if not isinstance(existing, dict):
            return
        existing[const.REMINDER_FIRED_AT] = fired_at_iso
        existing[const.REMINDER_FIRED_DETECTED_AT] = dt_to_iso(detected_at)

    await store.async_update(const.DOC_ACTIVITY_REMINDERS, _mutate)


async def async_delete_activity_reminder(
    store: NudgeSchedulerStore, activity_id: str
) -> None:
    """Remove an activity's entry entirely."""

    def _mutate(ledger: dict[str, Any]) -> None:
        ledger.pop(activity_id, None)

    await store.async_update(const.DOC_ACTIVITY_REMINDERS, _mutate)


async def async_prune_activity_reminders(store: NudgeSchedulerStore) -> list[str]:
    """Delete entries that are already fired or cancelled.

    Returns:
        The pruned activity ids.
    """

    def _mutate(ledger: dict[str, Any]) -> list[str]:
        pruned = [
            activity_id
            for activity_id, entry in ledger.items()
            if not isinstance(entry, dict)
            or entry.get(const.REMINDER_FIRED_AT)
            or entry.get(const.REMINDER_CANCELLED_AT)
        ]
        for activity_id in pruned:
            del ledger[activity_id]
        return pruned

    return await store.async_update(const.DOC_ACTIVITY_REMINDERS, _mutate)


# =============================================================================
# Daily Show-Up / Daily Focus / Goal Nudge Ledgers
# =============================================================================


async def async_load_daily_ledger(
    store: NudgeSchedulerStore, nudge_type: str
) -> dict[str, Any]:
    """Load the singleton ledger for a system nudge type."""
    return await store.async_load(DAILY_LEDGER_DOCUMENTS[nudge_type])


async def async_update_daily_ledger(
    store: NudgeSchedulerStore, nudge_type: str, **fields: Any
) -> None:
    """Merge fields into a system nudge ledger, keeping unknown fields."""

    def _mutate(ledger: dict[str, Any]) -> None:
        ledger.update(fields)

    await store.async_update(DAILY_LEDGER_DOCUMENTS[nudge_type], _mutate)


# =============================================================================
# System Nudge Ledger
# =============================================================================


async def async_load_system_nudge_ledger(
    store: NudgeSchedulerStore,
) -> dict[str, Any]:
    """Load the cross-type cap/spacing ledger."""
    return await store.async_load(const.DOC_SYSTEM_NUDGES)


def _release_pending(ledger: dict[str, Any], nudge_type: str) -> dict[str, Any] | None:
    """Give back the cap/spacing allowance held by a pending (unfired) slot."""
    pending = ledger[const.LEDGER_PENDING_BY_TYPE].pop(nudge_type, None)
    if not isinstance(pending, dict):
        return None

    date_key = pending.get(const.LEDGER_PENDING_DATE_KEY)
    counts = ledger[const.LEDGER_SENT_COUNT_BY_DATE]
    if date_key and date_key in counts:
        counts[date_key] = max(0, int(counts[date_key]) - 1)
        if counts[date_key] == 0:
            del counts[date_key]

    last_sent = ledger[const.LEDGER_LAST_SENT_AT_BY_TYPE]
    if last_sent.get(nudge_type) == pending.get(const.LEDGER_PENDING_SCHEDULED_FOR):
        previous = pending.get(const.LEDGER_PENDING_PREVIOUS_SENT_AT)
        if previous:
            last_sent[nudge_type] = previous
        else:
            last_sent.pop(nudge_type, None)
    return pending


async def async_record_system_nudge_scheduled(
    store: NudgeSchedulerStore,
    nudge_type: str,
    notification_id: str,
    fire_at: datetime,
    date_key: str,
) -> None:
    """Record a confirmed schedule against the global cap and spacing.

    Replacing a pending slot for the same type first releases the old slot, so
    repeated rescheduling never inflates sentCountByDate.
    """

    def _mutate(ledger: dict[str, Any]) -> None:
        _release_pending(ledger, nudge_type)
        fire_at_iso = dt_to_iso(fire_at)
        last_sent = ledger[const.LEDGER_LAST_SENT_AT_BY_TYPE]
        counts = ledger[const.LEDGER_SENT_COUNT_BY_DATE]
        ledger[const.LEDGER_PENDING_BY_TYPE][nudge_type] = {
            const.LEDGER_PENDING_NOTIFICATION_ID: notification_id,
            const.LEDGER_PENDING_SCHEDULED_FOR: fire_at_iso,
            const.LEDGER_PENDING_DATE_KEY: date_key,
            const.LEDGER_PENDING_PREVIOUS_SENT_AT: last_sent.get(nudge_type),
        }
        counts[date_key] = int(counts.get(date_key, 0)) + 1
        last_sent[nudge_type] = fire_at_iso

    await store.async_update(const.DOC_SYSTEM_NUDGES, _mutate)


async def async_release_system_nudge(
    store: NudgeSchedulerStore, nudge_type: str
) -> bool:
    """Release the pending slot of a cancelled, never-fired system nudge."""

    def _mutate(ledger: dict[str, Any]) -> bool:
        return _release_pending(ledger, nudge_type) is not None

    return await store.async_update(const.DOC_SYSTEM_NUDGES, _mutate)


async def async_record_system_nudge_fired_estimated(
    store: NudgeSchedulerStore,
    nudge_type: str,
    fired_at: datetime,
    date_key: str,
) -> None:
    """Record an inferred firing.

    A pending slot for the same date is consumed (it was already counted when it
    was scheduled). Otherwise, as for each later day of a repeating nudge, the
    occurrence is counted now. Each firing without an intervening open bumps
    consecutiveNoOpenByType.
    """

    def _mutate(ledger: dict[str, Any]) -> None:
        pending_by_type = ledger[const.LEDGER_PENDING_BY_TYPE]
        pending = pending_by_type.get(nudge_type)
        if (
            isinstance(pending, dict)
            and pending.get(const.LEDGER_PENDING_DATE_KEY) == date_key
        ):
            del pending_by_type[nudge_type]
        else:
            counts = ledger[const.LEDGER_SENT_COUNT_BY_DATE]
            counts[date_key] = int(counts.get(date_key, 0)) + 1
            ledger[const.LEDGER_LAST_SENT_AT_BY_TYPE][nudge_type] = dt_to_iso(fired_at)

        no_open = ledger[const.LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE]
        no_open[nudge_type] = int(no_open.get(nudge_type, 0)) + 1

    await store.async_update(const.DOC_SYSTEM_NUDGES, _mutate)


async def async_record_system_nudge_opened(
    store: NudgeSchedulerStore, nudge_type: str, opened_at: datetime
) -> None:
    """Record an open: resets the no-open streak and tallies the local hour."""

    def _mutate(ledger: dict[str, Any]) -> None:
        ledger[const.LEDGER_LAST_OPENED_AT_BY_TYPE][nudge_type] = dt_to_iso(opened_at)
        ledger[const.LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE][nudge_type] = 0
        hours = ledger[const.LEDGER_OPEN_HOUR_COUNTS_BY_TYPE].setdefault(nudge_type, {})
        hour_key = str(as_local(opened_at).hour)
        hours[hour_key] = int(hours.get(hour_key, 0)) + 1

    await store.async_update(const.DOC_SYSTEM_NUDGES, _mutate)


# =============================================================================
# Location Offer Ledger
# =============================================================================


def location_offer_key(activity_id: str, event: str) -> str:
    """Build the per-entity-per-direction debounce key."""
    return f"{activity_id}:{event}"


async def async_should_fire_location_offer(
    store: NudgeSchedulerStore,
    activity_id: str,
    event: str,
    now: datetime,
    min_spacing: timedelta = timedelta(minutes=const.LOCATION_OFFER_MIN_SPACING_MINUTES),
) -> bool:
    """Return True if the debounce window for this key has elapsed."""
    ledger = await store.async_load(const.DOC_LOCATION_OFFERS)
    entry = ledger.get(location_offer_key(activity_id, event))
    if not isinstance(entry, dict):
        return True
    last_fired = dt_parse_iso(entry.get(const.LOCATION_OFFER_LAST_FIRED_AT))
    if last_fired is None:
        return True
    return now - last_fired >= min_spacing


async def async_record_location_offer_fired(
    store: NudgeSchedulerStore, activity_id: str, event: str, fired_at: datetime
) -> None:
    """Record a successful location offer for its debounce key."""

    def _mutate(ledger: dict[str, Any]) -> None:
        ledger[location_offer_key(activity_id, event)] = {
            const.LOCATION_OFFER_LAST_FIRED_AT: dt_to_iso(fired_at)
        }

    await store.async_update(const.DOC_LOCATION_OFFERS, _mutate)


# =============================================================================
# Permission Status
# =============================================================================


async def async_get_permission_status(
    store: NudgeSchedulerStore, capability: str
) -> str:
    """Return the persisted status for a capability (never the host's truth)."""
    permissions = await store.async_load(const.DOC_PERMISSIONS)
    status = permissions.get(capability)
    if status not in const.PERMISSION_STATUSES:
        return const.PERMISSION_NOT_REQUESTED
    return status


async def async_set_permission_status(
    store: NudgeSchedulerStore, capability: str, status: str
) -> bool:
    """Persist a capability's status.

    Returns:
        True if the stored value changed.
    """

    def _mutate(permissions: dict[str, Any]) -> bool:
        changed = permissions.get(capability) != status
        permissions[capability] = status
        return changed

    return await store.async_update(const.DOC_PERMISSIONS, _mutate)
