"""Manager modules for Nudge Scheduler integration.

Managers orchestrate workflows and coordinate between engines and hosts.
They are stateful, event-aware, and handle cross-cutting concerns.
"""

from .base_manager import BaseManager
from .delivery_manager import DeliveryManager
from .geofence_manager import GeofenceManager
from .location_offer_manager import LocationOfferManager
from .notification_manager import NotificationManager
from .permission_manager import PermissionManager, normalize_permission_response

__all__ = [
    "BaseManager",
    "DeliveryManager",
    "GeofenceManager",
    "LocationOfferManager",
    "NotificationManager",
    "PermissionManager",
    "normalize_permission_response",
]
