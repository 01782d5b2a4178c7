"""Host adapters for Nudge Scheduler.

Seams standing in for the device primitives the scheduler drives:
- LocalNotificationHost: scheduled local notifications
- GeofenceHost: region monitoring
- PermissionHost: capability permissions

Each seam has a Home Assistant implementation; tests substitute fakes.
"""

from .base import GeofenceHost, LocalNotificationHost, PermissionHost
from .geofence_host import HomeAssistantGeofenceHost
from .notification_host import HomeAssistantNotificationHost
from .permission_host import HomeAssistantPermissionHost

__all__ = [
    "GeofenceHost",
    "HomeAssistantGeofenceHost",
    "HomeAssistantNotificationHost",
    "HomeAssistantPermissionHost",
    "LocalNotificationHost",
    "PermissionHost",
]
