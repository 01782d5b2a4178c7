"""Type definitions for Nudge Scheduler data structures.

TypedDict describes the persisted JSON documents and the shapes exchanged with
host adapters. Ledger documents use the camelCase keys mobile clients write, so
documents stay interchangeable with what a device-side ledger would hold.

NOTE: TypedDict is STATIC ANALYSIS ONLY. Persisted documents may be missing any
field (forward-compatible storage), so runtime code always reads with .get().

IMPORTANT: This file must NOT import from coordinator.py or managers to avoid
circular dependencies.
"""

from typing import Any, Literal, NotRequired, TypedDict

# =============================================================================
# Type Aliases (for readability)
# =============================================================================

ActivityId = str
NotificationId = str  # Opaque handle returned by the notification host
ISODatetime = str  # ISO 8601 instant "2026-01-18T12:30:00+00:00"
DateKey = str  # Local calendar date "2026-01-18"
TimeLocal = str  # Wall-clock slot "HH:MM"

NudgeType = Literal[
    "dailyShowUp", "dailyFocus", "goalNudge", "setupNextStep", "activityReminder"
]
PermissionStatus = Literal[
    "notRequested", "authorized", "denied", "restricted", "unavailable"
]
GeofenceEvent = Literal["enter", "exit"]
LocationTrigger = Literal["arrive", "leave"]


# =============================================================================
# Ledger Documents
# =============================================================================


class PendingNudgeSlot(TypedDict):
    """A scheduled, not yet fired system nudge counted against the caps."""

    notificationId: NotificationId
    scheduledForIso: ISODatetime
    dateKey: DateKey
    previousSentAtIso: NotRequired[ISODatetime | None]


class SystemNudgeLedger(TypedDict):
    """Cross-type rate-limit and engagement state (singleton document)."""

    sentCountByDate: dict[DateKey, int]
    lastSentAtByType: dict[str, ISODatetime]
    lastOpenedAtByType: dict[str, ISODatetime]
    consecutiveNoOpenByType: dict[str, int]
    openHourCountsByType: dict[str, dict[str, int]]
    pendingByType: dict[str, PendingNudgeSlot]


class ActivityReminderLedgerEntry(TypedDict):
    """Bookkeeping for one per-activity reminder."""

    activityId: ActivityId
    notificationId: NotificationId
    scheduledForIso: ISODatetime
    firedAtIso: NotRequired[ISODatetime]
    firedDetectedAtIso: NotRequired[ISODatetime]
    cancelledAtIso: NotRequired[ISODatetime]


class DailyNudgeLedger(TypedDict):
    """Singleton ledger for dailyShowUp, dailyFocus, goalNudge and setupNextStep."""

    notificationId: NotificationId | None
    scheduleTimeLocal: TimeLocal | None
    scheduledForIso: NotRequired[ISODatetime | None]
    lastFiredDateKey: NotRequired[DateKey]
    goalId: NotRequired[str | None]
    reason: NotRequired[str | None]


class LocationOfferEntry(TypedDict):
    """Debounce record for one "{entityId}:{event}" key."""

    lastFiredAtIso: ISODatetime


# =============================================================================
# Domain Snapshot (read-only input)
# =============================================================================


class LocationTriggerConfig(TypedDict):
    """Place attached to an activity."""

    latitude: float
    longitude: float
    radius_m: NotRequired[float | None]
    trigger: NotRequired[LocationTrigger | None]
    label: NotRequired[str | None]


class ActivitySnapshot(TypedDict):
    """Read-only fields the scheduler consumes from an activity."""

    id: ActivityId
    title: NotRequired[str]
    status: str
    goal_id: NotRequired[str | None]
    scheduled_date: NotRequired[DateKey | None]
    scheduled_at: NotRequired[ISODatetime | None]
    reminder_at: NotRequired[ISODatetime | None]
    location: NotRequired[LocationTriggerConfig | None]


class GoalSnapshot(TypedDict):
    """Goal fields used to pick a goal nudge."""

    id: str
    title: str
    status: str
    arc_id: NotRequired[str | None]


class ArcSnapshot(TypedDict):
    """Arc fields used to pick a goal nudge."""

    id: str
    name: str
    status: str


class DomainSnapshot(TypedDict):
    """Persisted domain document."""

    activities: dict[ActivityId, ActivitySnapshot]
    goals: dict[str, GoalSnapshot]
    arcs: dict[str, ArcSnapshot]
    last_show_up_date: NotRequired[DateKey | None]
    last_completed_focus_session_date: NotRequired[DateKey | None]


class NotificationPreferences(TypedDict):
    """User notification preferences."""

    notifications_enabled: bool
    allow_activity_reminders: bool
    allow_daily_show_up: bool
    daily_show_up_time: TimeLocal
    allow_daily_focus: bool
    daily_focus_time: TimeLocal
    allow_goal_nudges: bool
    goal_nudge_time: TimeLocal
    location_offers_enabled: bool


# =============================================================================
# Host Shapes
# =============================================================================


class NotificationContent(TypedDict):
    """Content passed to the notification host."""

    title: str
    body: str
    data: dict[str, Any]


class NotificationTrigger(TypedDict):
    """One-shot ("date") or repeating ("daily") trigger."""

    type: Literal["date", "daily"]
    date: NotRequired[ISODatetime]
    hour: NotRequired[int]
    minute: NotRequired[int]
    startsAt: NotRequired[ISODatetime]


class ScheduledNotification(TypedDict):
    """Entry of the host's "currently scheduled" set."""

    identifier: NotificationId
    content: NotificationContent
    trigger: NotificationTrigger


class GeofenceRegion(TypedDict):
    """Region handed to the geofencing host (derived, never a source of truth)."""

    identifier: ActivityId
    latitude: float
    longitude: float
    radius: float
    notifyOnEnter: bool
    notifyOnExit: bool


class RawPermissionResponse(TypedDict, total=False):
    """Heterogeneous permission response from a host."""

    status: str
    granted: bool
    can_ask_again: bool
