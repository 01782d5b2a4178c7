"""Engine modules for Nudge Scheduler integration.

Contains specialized computation engines:
- policy_engine: Fire-time decisions (daily cap, spacing, goal suppression)
- delivery_engine: Fired-notification inference from scheduled sets
- geofence_engine: Region derivation, signatures and raw event parsing
"""

# Use relative imports within package to avoid mypy module resolution issues
from .delivery_engine import DeliveryEngine
from .geofence_engine import GeofenceEngine
from .policy_engine import GoalNudgeCandidate, NudgePolicyEngine, PolicyDecision

__all__ = [
    "DeliveryEngine",
    "GeofenceEngine",
    "GoalNudgeCandidate",
    "NudgePolicyEngine",
    "PolicyDecision",
]
