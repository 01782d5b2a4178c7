"""Constants for the Nudge Scheduler integration.

This file centralizes configuration keys, defaults, storage document names,
ledger field names, event names and policy limits used across the integration.
"""

import logging

import homeassistant.util.dt as dt_util


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
NUDGE_SCHEDULER_TITLE = "Nudge Scheduler"

# Integration Domain
DOMAIN = "nudge_scheduler"

# Logger
LOGGER = logging.getLogger(__package__)

# Coordinator
COORDINATOR = "coordinator"
COORDINATOR_SUFFIX = "_coordinator"
STORE = "store"

# Storage and Versioning
STORAGE_VERSION = 1
STORAGE_KEY_PREFIX = DOMAIN

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# Background reconcile cadence (minutes). Mobile hosts clamp this to ~15 min.
DEFAULT_UPDATE_INTERVAL = 15

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_NOTIFY_SERVICE = "notify_service"
CONF_TRACKER_ENTITY = "tracker_entity"
CONF_UPDATE_INTERVAL = "update_interval"

CONFIG_FLOW_STEP_USER = "user"
OPTIONS_FLOW_STEP_INIT = "init"

ERROR_INVALID_NOTIFY_SERVICE = "invalid_notify_service"
ERROR_INVALID_TRACKER_ENTITY = "invalid_tracker_entity"
ABORT_SINGLE_INSTANCE = "single_instance_allowed"

# ------------------------------------------------------------------------------------------------
# Storage Documents
# ------------------------------------------------------------------------------------------------
DOC_SYSTEM_NUDGES = "system_nudges"
DOC_ACTIVITY_REMINDERS = "activity_reminders"
DOC_DAILY_SHOW_UP = "daily_show_up"
DOC_DAILY_FOCUS = "daily_focus"
DOC_GOAL_NUDGE = "goal_nudge"
DOC_SETUP_NEXT_STEP = "setup_next_step"
DOC_LOCATION_OFFERS = "location_offers"
DOC_PERMISSIONS = "permissions"
DOC_PREFERENCES = "preferences"
DOC_DOMAIN = "domain"
DOC_SCHEDULED_NOTIFICATIONS = "scheduled_notifications"
DOC_GEOFENCE_REGIONS = "geofence_regions"

ALL_DOCUMENTS = (
    DOC_SYSTEM_NUDGES,
    DOC_ACTIVITY_REMINDERS,
    DOC_DAILY_SHOW_UP,
    DOC_DAILY_FOCUS,
    DOC_GOAL_NUDGE,
    DOC_SETUP_NEXT_STEP,
    DOC_LOCATION_OFFERS,
    DOC_PERMISSIONS,
    DOC_PREFERENCES,
    DOC_DOMAIN,
    DOC_SCHEDULED_NOTIFICATIONS,
    DOC_GEOFENCE_REGIONS,
)

# ------------------------------------------------------------------------------------------------
# Nudge Types
# ------------------------------------------------------------------------------------------------
NUDGE_TYPE_DAILY_SHOW_UP = "dailyShowUp"
NUDGE_TYPE_DAILY_FOCUS = "dailyFocus"
NUDGE_TYPE_GOAL_NUDGE = "goalNudge"
NUDGE_TYPE_SETUP_NEXT_STEP = "setupNextStep"
NUDGE_TYPE_ACTIVITY_REMINDER = "activityReminder"
NOTIFICATION_TYPE_LOCATION_OFFER = "locationOffer"

NUDGE_TYPES = (
    NUDGE_TYPE_DAILY_SHOW_UP,
    NUDGE_TYPE_DAILY_FOCUS,
    NUDGE_TYPE_GOAL_NUDGE,
    NUDGE_TYPE_SETUP_NEXT_STEP,
    NUDGE_TYPE_ACTIVITY_REMINDER,
)

# System-initiated types subject to the global cap and spacing rules.
SYSTEM_NUDGE_TYPES = (
    NUDGE_TYPE_DAILY_SHOW_UP,
    NUDGE_TYPE_DAILY_FOCUS,
    NUDGE_TYPE_GOAL_NUDGE,
    NUDGE_TYPE_SETUP_NEXT_STEP,
)

# ------------------------------------------------------------------------------------------------
# Policy Limits
# ------------------------------------------------------------------------------------------------
SYSTEM_NUDGE_DAILY_CAP = 2
SYSTEM_NUDGE_MIN_SPACING_HOURS = 6
MAX_POLICY_ITERATIONS = 14
ENGAGEMENT_BACKOFF_NO_OPEN_THRESHOLD = 3

FIRED_GRACE_SECONDS = 60

LOCATION_OFFER_MIN_SPACING_MINUTES = 30

GEOFENCE_RECONCILE_DEBOUNCE_SECONDS = 0.4
GEOFENCE_MAX_REGIONS = 20
GEOFENCE_RADIUS_MIN_M = 15.0
GEOFENCE_RADIUS_MAX_M = 5000.0
GEOFENCE_RADIUS_DEFAULT_M = 150.0
GEOFENCE_SIGNATURE_PRECISION = 5

# ------------------------------------------------------------------------------------------------
# Default Times (HH:MM, local)
# ------------------------------------------------------------------------------------------------
DEFAULT_DAILY_SHOW_UP_TIME = "08:00"
DEFAULT_DAILY_FOCUS_TIME = "08:00"
DEFAULT_GOAL_NUDGE_TIME = "16:00"
FALLBACK_HOUR_SHOW_UP = 9
FALLBACK_HOUR_FOCUS = 8

# ------------------------------------------------------------------------------------------------
# Preferences Document Keys
# ------------------------------------------------------------------------------------------------
PREF_NOTIFICATIONS_ENABLED = "notifications_enabled"
PREF_ALLOW_ACTIVITY_REMINDERS = "allow_activity_reminders"
PREF_ALLOW_DAILY_SHOW_UP = "allow_daily_show_up"
PREF_DAILY_SHOW_UP_TIME = "daily_show_up_time"
PREF_ALLOW_DAILY_FOCUS = "allow_daily_focus"
PREF_DAILY_FOCUS_TIME = "daily_focus_time"
PREF_ALLOW_GOAL_NUDGES = "allow_goal_nudges"
PREF_GOAL_NUDGE_TIME = "goal_nudge_time"
PREF_LOCATION_OFFERS_ENABLED = "location_offers_enabled"

DEFAULT_PREFERENCES = {
    PREF_NOTIFICATIONS_ENABLED: False,
    PREF_ALLOW_ACTIVITY_REMINDERS: True,
    PREF_ALLOW_DAILY_SHOW_UP: False,
    PREF_DAILY_SHOW_UP_TIME: DEFAULT_DAILY_SHOW_UP_TIME,
    PREF_ALLOW_DAILY_FOCUS: False,
    PREF_DAILY_FOCUS_TIME: DEFAULT_DAILY_FOCUS_TIME,
    PREF_ALLOW_GOAL_NUDGES: False,
    PREF_GOAL_NUDGE_TIME: DEFAULT_GOAL_NUDGE_TIME,
    PREF_LOCATION_OFFERS_ENABLED: False,
}

# Per-type (enable flag, time-of-day) preference lookup.
PREF_KEYS_BY_TYPE = {
    NUDGE_TYPE_DAILY_SHOW_UP: (PREF_ALLOW_DAILY_SHOW_UP, PREF_DAILY_SHOW_UP_TIME),
    NUDGE_TYPE_DAILY_FOCUS: (PREF_ALLOW_DAILY_FOCUS, PREF_DAILY_FOCUS_TIME),
    NUDGE_TYPE_GOAL_NUDGE: (PREF_ALLOW_GOAL_NUDGES, PREF_GOAL_NUDGE_TIME),
    # Stands in for the show-up while there is nothing to show up for.
    NUDGE_TYPE_SETUP_NEXT_STEP: (PREF_ALLOW_DAILY_SHOW_UP, PREF_DAILY_SHOW_UP_TIME),
}

# ------------------------------------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------------------------------------
CAPABILITY_NOTIFICATIONS = "notifications"
CAPABILITY_LOCATION = "location"
CAPABILITIES = (CAPABILITY_NOTIFICATIONS, CAPABILITY_LOCATION)

PERMISSION_NOT_REQUESTED = "notRequested"
PERMISSION_AUTHORIZED = "authorized"
PERMISSION_DENIED = "denied"
PERMISSION_RESTRICTED = "restricted"
PERMISSION_UNAVAILABLE = "unavailable"

PERMISSION_STATUSES = (
    PERMISSION_NOT_REQUESTED,
    PERMISSION_AUTHORIZED,
    PERMISSION_DENIED,
    PERMISSION_RESTRICTED,
    PERMISSION_UNAVAILABLE,
)

# Raw host response shape
RAW_PERMISSION_STATUS = "status"
RAW_PERMISSION_GRANTED = "granted"
RAW_PERMISSION_CAN_ASK_AGAIN = "can_ask_again"
RAW_STATUS_GRANTED = "granted"
RAW_STATUS_DENIED = "denied"
RAW_STATUS_UNDETERMINED = "undetermined"

PERMISSION_REASON_ACTIVITY = "activity"
PERMISSION_REASON_DAILY = "daily"
PERMISSION_REASON_LOCATION_OFFERS = "location_offers"
PERMISSION_REASON_ATTACH_PLACE = "attach_place"

PERMISSION_REASONS = (
    PERMISSION_REASON_ACTIVITY,
    PERMISSION_REASON_DAILY,
    PERMISSION_REASON_LOCATION_OFFERS,
    PERMISSION_REASON_ATTACH_PLACE,
)

PERSISTENT_NOTIFICATION_ID_PREFIX = f"{DOMAIN}_permission"

# ------------------------------------------------------------------------------------------------
# System Nudge Ledger Keys
# ------------------------------------------------------------------------------------------------
LEDGER_SENT_COUNT_BY_DATE = "sentCountByDate"
LEDGER_LAST_SENT_AT_BY_TYPE = "lastSentAtByType"
LEDGER_LAST_OPENED_AT_BY_TYPE = "lastOpenedAtByType"
LEDGER_CONSECUTIVE_NO_OPEN_BY_TYPE = "consecutiveNoOpenByType"
LEDGER_OPEN_HOUR_COUNTS_BY_TYPE = "openHourCountsByType"
LEDGER_PENDING_BY_TYPE = "pendingByType"

LEDGER_PENDING_NOTIFICATION_ID = "notificationId"
LEDGER_PENDING_SCHEDULED_FOR = "scheduledForIso"
LEDGER_PENDING_DATE_KEY = "dateKey"
LEDGER_PENDING_PREVIOUS_SENT_AT = "previousSentAtIso"

# Activity reminder entry keys
REMINDER_ACTIVITY_ID = "activityId"
REMINDER_NOTIFICATION_ID = "notificationId"
REMINDER_SCHEDULED_FOR = "scheduledForIso"
REMINDER_FIRED_AT = "firedAtIso"
REMINDER_FIRED_DETECTED_AT = "firedDetectedAtIso"
REMINDER_CANCELLED_AT = "cancelledAtIso"

# Repeating / one-shot system nudge ledger keys
NUDGE_LEDGER_NOTIFICATION_ID = "notificationId"
NUDGE_LEDGER_SCHEDULE_TIME_LOCAL = "scheduleTimeLocal"
NUDGE_LEDGER_SCHEDULED_FOR = "scheduledForIso"
NUDGE_LEDGER_LAST_FIRED_DATE_KEY = "lastFiredDateKey"
NUDGE_LEDGER_GOAL_ID = "goalId"
NUDGE_LEDGER_REASON = "reason"

# Location offer ledger
LOCATION_OFFER_LAST_FIRED_AT = "lastFiredAtIso"

# Geofence regions document
GEOFENCE_DOC_SIGNATURE = "signature"
GEOFENCE_DOC_REGIONS = "regions"
GEOFENCE_DOC_APPLIED_AT = "appliedAtIso"

# ------------------------------------------------------------------------------------------------
# Domain Snapshot Keys
# ------------------------------------------------------------------------------------------------
DATA_ACTIVITIES = "activities"
DATA_GOALS = "goals"
DATA_ARCS = "arcs"
DATA_LAST_SHOW_UP_DATE = "last_show_up_date"
DATA_LAST_COMPLETED_FOCUS_DATE = "last_completed_focus_session_date"

ACTIVITY_ID = "id"
ACTIVITY_TITLE = "title"
ACTIVITY_STATUS = "status"
ACTIVITY_GOAL_ID = "goal_id"
ACTIVITY_SCHEDULED_DATE = "scheduled_date"
ACTIVITY_SCHEDULED_AT = "scheduled_at"
ACTIVITY_REMINDER_AT = "reminder_at"
ACTIVITY_LOCATION = "location"

LOCATION_LATITUDE = "latitude"
LOCATION_LONGITUDE = "longitude"
LOCATION_RADIUS_M = "radius_m"
LOCATION_TRIGGER = "trigger"
LOCATION_LABEL = "label"

LOCATION_TRIGGER_ARRIVE = "arrive"
LOCATION_TRIGGER_LEAVE = "leave"
LOCATION_TRIGGERS = (LOCATION_TRIGGER_ARRIVE, LOCATION_TRIGGER_LEAVE)

ACTIVITY_STATUS_PLANNED = "planned"
ACTIVITY_STATUS_IN_PROGRESS = "in_progress"
ACTIVITY_STATUS_DONE = "done"
ACTIVITY_STATUS_SKIPPED = "skipped"
ACTIVITY_STATUS_CANCELLED = "cancelled"
ACTIVITY_STATUSES = (
    ACTIVITY_STATUS_PLANNED,
    ACTIVITY_STATUS_IN_PROGRESS,
    ACTIVITY_STATUS_DONE,
    ACTIVITY_STATUS_SKIPPED,
    ACTIVITY_STATUS_CANCELLED,
)
ACTIVITY_CLOSED_STATUSES = frozenset(
    {ACTIVITY_STATUS_DONE, ACTIVITY_STATUS_CANCELLED}
)
ACTIVITY_INCOMPLETE_EXCLUDED_STATUSES = frozenset(
    {ACTIVITY_STATUS_DONE, ACTIVITY_STATUS_SKIPPED, ACTIVITY_STATUS_CANCELLED}
)

GOAL_ID = "id"
GOAL_TITLE = "title"
GOAL_STATUS = "status"

# Why the show-up is replaced by a setup nudge
SETUP_REASON_NO_GOALS = "no_goals"
SETUP_REASON_NO_ACTIVITIES = "no_activities"
GOAL_ARC_ID = "arc_id"
GOAL_ACTIVE_STATUSES = frozenset({"planned", "in_progress"})

ARC_ID = "id"
ARC_NAME = "name"
ARC_STATUS = "status"
ARC_STATUS_ACTIVE = "active"

# ------------------------------------------------------------------------------------------------
# Geofence Events
# ------------------------------------------------------------------------------------------------
GEOFENCE_EVENT_ENTER = "enter"
GEOFENCE_EVENT_EXIT = "exit"
# Numeric codes used by mobile geofencing APIs (Enter = 1, Exit = 2).
GEOFENCE_EVENT_CODE_ENTER = 1
GEOFENCE_EVENT_CODE_EXIT = 2

RAW_GEOFENCE_EVENT_TYPE = "eventType"
RAW_GEOFENCE_TYPE = "type"
RAW_GEOFENCE_REGION = "region"
RAW_GEOFENCE_REGION_IDENTIFIER = "regionIdentifier"
RAW_GEOFENCE_IDENTIFIER = "identifier"

REGION_IDENTIFIER = "identifier"
REGION_LATITUDE = "latitude"
REGION_LONGITUDE = "longitude"
REGION_RADIUS = "radius"
REGION_NOTIFY_ON_ENTER = "notifyOnEnter"
REGION_NOTIFY_ON_EXIT = "notifyOnExit"

# ------------------------------------------------------------------------------------------------
# Host Notification Shape
# ------------------------------------------------------------------------------------------------
SCHEDULED_IDENTIFIER = "identifier"
SCHEDULED_CONTENT = "content"
SCHEDULED_TRIGGER = "trigger"

CONTENT_TITLE = "title"
CONTENT_BODY = "body"
CONTENT_DATA = "data"
CONTENT_DATA_TYPE = "type"
CONTENT_DATA_ACTIVITY_ID = "activityId"
CONTENT_DATA_GOAL_ID = "goalId"
CONTENT_DATA_EVENT = "event"
CONTENT_DATA_REASON = "reason"

TRIGGER_TYPE = "type"
TRIGGER_TYPE_DATE = "date"
TRIGGER_TYPE_DAILY = "daily"
TRIGGER_DATE = "date"
TRIGGER_HOUR = "hour"
TRIGGER_MINUTE = "minute"
TRIGGER_STARTS_AT = "startsAt"

NOTIFY_DOMAIN = "notify"
NOTIFY_TITLE = "title"
NOTIFY_MESSAGE = "message"
NOTIFY_DATA = "data"
NOTIFY_TAG = "tag"
NOTIFY_ACTIONS = "actions"
NOTIFY_ACTION = "action"
NOTIFY_TAG_PREFIX = "nudge"

# ------------------------------------------------------------------------------------------------
# Dispatcher Signals
# ------------------------------------------------------------------------------------------------
SIGNAL_PREFIX = DOMAIN
SIGNAL_SUFFIX_ACTIVITIES_CHANGED = "activities_changed"
SIGNAL_SUFFIX_PREFERENCES_CHANGED = "preferences_changed"
SIGNAL_SUFFIX_PERMISSIONS_CHANGED = "permissions_changed"
CHANGE_PREVIOUS = "previous"
CHANGE_CURRENT = "current"

# ------------------------------------------------------------------------------------------------
# Bus Events (analytics collaborator)
# ------------------------------------------------------------------------------------------------
EVENT_NOTIFICATION_FIRED_ESTIMATED = f"{DOMAIN}_notification_fired_estimated"
EVENT_NOTIFICATION_SCHEDULED = f"{DOMAIN}_notification_scheduled"
EVENT_NOTIFICATION_OPENED = f"{DOMAIN}_notification_opened"
EVENT_GEOFENCE = f"{DOMAIN}_geofence"

ATTR_NOTIFICATION_TYPE = "notification_type"
ATTR_NOTIFICATION_ID = "notification_id"
ATTR_ACTIVITY_ID = "activity_id"
ATTR_GOAL_ID = "goal_id"
ATTR_SETUP_REASON = "reason"
ATTR_SCHEDULED_FOR = "scheduled_for"
ATTR_DATE_KEY = "date_key"
ATTR_SCHEDULE_TIME_LOCAL = "schedule_time_local"
ATTR_DETECTED_AT = "detected_at"
ATTR_DETECTION_SOURCE = "detection_source"
ATTR_SCHEDULED_SOURCE = "scheduled_source"
ATTR_OPENED_AT = "opened_at"

RECONCILE_SOURCE_BACKGROUND_FETCH = "background_fetch"
RECONCILE_SOURCE_APP_LAUNCH = "app_launch"
RECONCILE_SOURCE_MANUAL = "manual"
SCHEDULE_SOURCE_SETTINGS = "settings"
SCHEDULE_SOURCE_RECONCILE = "reconcile"
SCHEDULE_SOURCE_USER_ACTION = "user_action"

# Companion app notification actions
MOBILE_APP_NOTIFICATION_ACTION_EVENT = "mobile_app_notification_action"
ACTION_NUDGE_OPENED = "nudge_opened"
ACTION_SEPARATOR = "|"

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_SET_PREFERENCES = "set_preferences"
SERVICE_UPSERT_ACTIVITY = "upsert_activity"
SERVICE_REMOVE_ACTIVITY = "remove_activity"
SERVICE_UPSERT_GOAL = "upsert_goal"
SERVICE_RECORD_SHOW_UP = "record_show_up"
SERVICE_RECORD_FOCUS_COMPLETED = "record_focus_completed"
SERVICE_RECORD_NUDGE_OPENED = "record_nudge_opened"
SERVICE_RECONCILE_NOW = "reconcile_now"
SERVICE_ENSURE_PERMISSION = "ensure_permission"
SERVICE_GEOFENCE_EVENT = "geofence_event"

ALL_SERVICES = (
    SERVICE_SET_PREFERENCES,
    SERVICE_UPSERT_ACTIVITY,
    SERVICE_REMOVE_ACTIVITY,
    SERVICE_UPSERT_GOAL,
    SERVICE_RECORD_SHOW_UP,
    SERVICE_RECORD_FOCUS_COMPLETED,
    SERVICE_RECORD_NUDGE_OPENED,
    SERVICE_RECONCILE_NOW,
    SERVICE_ENSURE_PERMISSION,
    SERVICE_GEOFENCE_EVENT,
)

FIELD_ACTIVITY_ID = "activity_id"
FIELD_TITLE = "title"
FIELD_STATUS = "status"
FIELD_GOAL_ID = "goal_id"
FIELD_SCHEDULED_DATE = "scheduled_date"
FIELD_SCHEDULED_AT = "scheduled_at"
FIELD_REMINDER_AT = "reminder_at"
FIELD_LATITUDE = "latitude"
FIELD_LONGITUDE = "longitude"
FIELD_RADIUS_M = "radius_m"
FIELD_TRIGGER = "trigger"
FIELD_LABEL = "label"
FIELD_CLEAR_LOCATION = "clear_location"
FIELD_ARC_ID = "arc_id"
FIELD_ARC_NAME = "arc_name"
FIELD_DATE = "date"
FIELD_NUDGE_TYPE = "nudge_type"
FIELD_CAPABILITY = "capability"
FIELD_REASON = "reason"
FIELD_EVENT = "event"
FIELD_REGION_IDENTIFIER = "region_identifier"

# ------------------------------------------------------------------------------------------------
# Notification Copy
# ------------------------------------------------------------------------------------------------
COPY_ACTIVITY_REMINDER_TITLE = "Activity reminder"
COPY_ACTIVITY_REMINDER_BODY = "Take a tiny step on this activity."
COPY_DAILY_SHOW_UP_TITLE = "Align your day with your arcs"
COPY_DAILY_SHOW_UP_BODY = "Review Today and choose one tiny step."
COPY_DAILY_FOCUS_TITLE = "Finish one focus session today"
COPY_DAILY_FOCUS_BODY = (
    "Complete one full timer to earn clarity now and build momentum for tomorrow."
)
COPY_GOAL_NUDGE_TITLE = "Tiny step for: {goal_title}"
COPY_GOAL_NUDGE_BODY_WITH_ARC = "Pick one activity for {goal_title} ({arc_name})."
COPY_GOAL_NUDGE_BODY = "Choose one activity and keep momentum."
COPY_SETUP_NEXT_STEP = {
    SETUP_REASON_NO_GOALS: (
        "Start your first goal",
        "Create one goal so nudges can start arriving at the right moments.",
    ),
    SETUP_REASON_NO_ACTIVITIES: (
        "Add one tiny step",
        "Add one activity so you can build momentum today.",
    ),
}
COPY_LOCATION_OFFER_TITLE = "Mark “{title}” done?"
COPY_LOCATION_OFFER_BODY_ENTER = "Arrived at {label}."
COPY_LOCATION_OFFER_BODY_EXIT = "Left {label}."
COPY_LOCATION_OFFER_DEFAULT_TITLE = "Activity"
COPY_LOCATION_OFFER_DEFAULT_LABEL = "your place"

COPY_PERMISSION_BLOCKED_TITLE = {
    CAPABILITY_NOTIFICATIONS: "Notifications disabled",
    CAPABILITY_LOCATION: "Location is blocked",
}
COPY_PERMISSION_BLOCKED_MESSAGE = {
    CAPABILITY_NOTIFICATIONS: (
        "Nudge notifications cannot be delivered. Check that the configured notify "
        "service exists and re-enable notifications under Settings > Devices & "
        "Services > Nudge Scheduler."
    ),
    CAPABILITY_LOCATION: (
        "Location-based offers need a tracker reporting GPS coordinates. Select a "
        "tracker entity under Settings > Devices & Services > Nudge Scheduler."
    ),
}
COPY_PERMISSION_UNAVAILABLE_MESSAGE = (
    "No tracker entity is configured, so location features are unavailable."
)
COPY_PERMISSION_REQUEST_TITLE = {
    CAPABILITY_NOTIFICATIONS: "Allow gentle reminders?",
    CAPABILITY_LOCATION: "Allow location-based offers?",
}
COPY_PERMISSION_REQUEST_MESSAGE = {
    PERMISSION_REASON_ACTIVITY: (
        "Reminders can fire when Activities are due so tiny steps don't slip "
        "through the cracks. Configure a notify service to allow them."
    ),
    PERMISSION_REASON_DAILY: (
        "A daily nudge can help you review Today and choose one tiny step. "
        "Configure a notify service to allow it."
    ),
    PERMISSION_REASON_LOCATION_OFFERS: (
        "Arriving at or leaving a place can prompt you to finish an Activity. "
        "Select a tracker entity to allow it."
    ),
    PERMISSION_REASON_ATTACH_PLACE: (
        "Attaching a place uses your tracker's location. Select a tracker entity "
        "to allow it."
    ),
}

# ------------------------------------------------------------------------------------------------
# Service Errors
# ------------------------------------------------------------------------------------------------
MSG_NO_ENTRY_FOUND = "No Nudge Scheduler entry found"
ERROR_ACTIVITY_NOT_FOUND_FMT = "Activity '{}' not found"
ERROR_INVALID_TIME_FMT = "Invalid time '{}' for {}; expected HH:MM"
ERROR_INVALID_DATETIME_FMT = "Invalid date/time '{}' for {}"
ERROR_INCOMPLETE_LOCATION = "Both latitude and longitude are required for a location"
