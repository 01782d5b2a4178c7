"""Test helpers for Nudge Scheduler integration tests.

This module re-exports all helpers for convenient imports:

    from tests.helpers import (
        # Fakes
        FakeNotificationHost, FakeGeofenceHost, FakePermissionHost,

        # Setup
        build_coordinator, setup_integration, save_preferences, save_domain,
    )

See individual modules for full documentation:
- fakes.py: In-memory host adapters
- setup.py: Coordinator and config entry setup
"""

from tests.helpers.fakes import (
    FakeGeofenceHost,
    FakeNotificationHost,
    FakePermissionHost,
)
from tests.helpers.setup import (
    HOME,
    NOTIFY_SERVICE,
    TRACKER_ENTITY,
    build_config_entry,
    build_coordinator,
    located_activity,
    save_domain,
    save_preferences,
    setup_integration,
)

__all__ = [
    "HOME",
    "NOTIFY_SERVICE",
    "TRACKER_ENTITY",
    "FakeGeofenceHost",
    "FakeNotificationHost",
    "FakePermissionHost",
    "build_config_entry",
    "build_coordinator",
    "located_activity",
    "save_domain",
    "save_preferences",
    "setup_integration",
]
