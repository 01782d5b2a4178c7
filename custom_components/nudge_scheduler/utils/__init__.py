"""Pure Python utilities for Nudge Scheduler.

This module contains pure Python functions with ZERO Home Assistant dependencies.
All functions here can be unit tested without Home Assistant mocking.

⚠️ UTILS PURITY: NO `homeassistant.*` imports allowed in this module.

Submodules:
    - dt_utils: Local-time slots, date keys, ISO instants

Usage:
    from . import dt_utils
    from .dt_utils import local_date_key
"""

from . import dt_utils

__all__ = ["dt_utils"]
