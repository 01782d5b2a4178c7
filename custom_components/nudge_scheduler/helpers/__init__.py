# File: helpers/__init__.py
"""Home Assistant-bound helper functions for Nudge Scheduler.

This module contains functions that REQUIRE Home Assistant dependencies
(directly, or through NudgeSchedulerStore).

NOTE: Functions that need `hass` or the store belong here, NOT in utils/.

Submodules:
    - event_helpers: Change signals (previous/current) between services and managers
    - ledger_helpers: Typed read-modify-write access to ledger documents

Usage:
    from . import ledger_helpers as lh
    from .event_helpers import async_send_change
"""

from . import event_helpers, ledger_helpers

__all__ = [
    "event_helpers",
    "ledger_helpers",
]
