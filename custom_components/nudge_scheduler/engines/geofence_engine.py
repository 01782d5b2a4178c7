"""Geofence Engine - Pure logic for regions, signatures and raw events.

This engine provides stateless, pure Python functions for:
- Deciding which activities are eligible for location monitoring
- Building clamped geofence regions from activity location triggers
- Computing a content signature of a region set
- Parsing raw enter/exit payloads from the geofencing host
- Matching an event direction against an activity's configured trigger

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
Starting/stopping monitoring belongs in GeofenceManager.
"""

from __future__ import annotations

import json
import math
from typing import TYPE_CHECKING, Any

from .. import const

if TYPE_CHECKING:
    from ..type_defs import GeofenceRegion


def _finite_number(value: Any) -> float | None:
    """Return value as a float if it is a finite real number (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


class GeofenceEngine:
    """Pure logic engine for geofence regions and events."""

    @staticmethod
    def clamp_radius(radius: Any) -> float:
        """Clamp a radius to the supported range, defaulting when absent."""
        number = _finite_number(radius)
        if number is None:
            return const.GEOFENCE_RADIUS_DEFAULT_M
        return min(const.GEOFENCE_RADIUS_MAX_M, max(const.GEOFENCE_RADIUS_MIN_M, number))

    @staticmethod
    def is_eligible(activity: dict[str, Any]) -> bool:
        """Return True if an activity should have a monitored region.

        Eligible: not done/cancelled, a location with finite latitude and
        longitude, a trigger that is absent or one of arrive/leave, and a
        radius that is absent or a finite number.
        """
        if not isinstance(activity, dict):
            return False
        if activity.get(const.ACTIVITY_STATUS) in const.ACTIVITY_CLOSED_STATUSES:
            return False
        location = activity.get(const.ACTIVITY_LOCATION)
        if not isinstance(location, dict):
            return False
        if _finite_number(location.get(const.LOCATION_LATITUDE)) is None:
            return False
        if _finite_number(location.get(const.LOCATION_LONGITUDE)) is None:
            return False
        trigger = location.get(const.LOCATION_TRIGGER)
        if trigger is not None and trigger not in const.LOCATION_TRIGGERS:
            return False
        radius = location.get(const.LOCATION_RADIUS_M)
        if radius is not None and _finite_number(radius) is None:
            return False
        return True

    @staticmethod
    def build_region(activity: dict[str, Any]) -> GeofenceRegion:
        """Build the region for an eligible activity.

        arrive → enter only, leave → exit only, no trigger → both.
        """
        location = activity[const.ACTIVITY_LOCATION]
        trigger = location.get(const.LOCATION_TRIGGER)
        return {
            const.REGION_IDENTIFIER: activity[const.ACTIVITY_ID],
            const.REGION_LATITUDE: float(location[const.LOCATION_LATITUDE]),
            const.REGION_LONGITUDE: float(location[const.LOCATION_LONGITUDE]),
            const.REGION_RADIUS: GeofenceEngine.clamp_radius(
                location.get(const.LOCATION_RADIUS_M)
            ),
            const.REGION_NOTIFY_ON_ENTER: trigger != const.LOCATION_TRIGGER_LEAVE,
            const.REGION_NOTIFY_ON_EXIT: trigger != const.LOCATION_TRIGGER_ARRIVE,
        }  # type: ignore[return-value]

    @staticmethod
    def build_regions(activities: dict[str, Any]) -> list[GeofenceRegion]:
        """Build the desired region set, sorted by identifier and capped."""
        regions = []
        for activity_id in sorted(activities):
            activity = activities[activity_id]
            if not GeofenceEngine.is_eligible(activity):
                continue
            # The activity id is the dict key; older snapshots may omit "id".
            activity = {**activity, const.ACTIVITY_ID: activity.get(const.ACTIVITY_ID) or activity_id}
            regions.append(GeofenceEngine.build_region(activity))
            if len(regions) >= const.GEOFENCE_MAX_REGIONS:
                break
        return regions

    @staticmethod
    def region_signature(regions: list[GeofenceRegion]) -> str:
        """Return a stable content signature for a region set.

        Sorted by identifier with coordinates rounded to 5 decimal places, so
        float noise and unrelated activity edits never change it.
        """
        precision = const.GEOFENCE_SIGNATURE_PRECISION
        rows = sorted(
            (
                str(region[const.REGION_IDENTIFIER]),
                round(float(region[const.REGION_LATITUDE]), precision),
                round(float(region[const.REGION_LONGITUDE]), precision),
                round(float(region[const.REGION_RADIUS]), 1),
                bool(region[const.REGION_NOTIFY_ON_ENTER]),
                bool(region[const.REGION_NOTIFY_ON_EXIT]),
            )
            for region in regions
        )
        return json.dumps(rows, separators=(",", ":"))

    @staticmethod
    def normalize_event(raw_event: Any) -> str | None:
        """Map a raw event code or name to "enter"/"exit"."""
        if isinstance(raw_event, bool):
            return None
        if raw_event in (const.GEOFENCE_EVENT_CODE_ENTER, const.GEOFENCE_EVENT_ENTER):
            return const.GEOFENCE_EVENT_ENTER
        if raw_event in (const.GEOFENCE_EVENT_CODE_EXIT, const.GEOFENCE_EVENT_EXIT):
            return const.GEOFENCE_EVENT_EXIT
        if isinstance(raw_event, str):
            lowered = raw_event.strip().lower()
            if lowered in (const.GEOFENCE_EVENT_ENTER, const.GEOFENCE_EVENT_EXIT):
                return lowered
            if lowered.isdigit():
                return GeofenceEngine.normalize_event(int(lowered))
        return None

    @staticmethod
    def parse_payload(payload: Any) -> tuple[str, str] | None:
        """Extract (event, region identifier) from a raw geofence payload.

        Accepts {eventType|type, region.identifier|regionIdentifier|identifier}.
        """
        if not isinstance(payload, dict):
            return None
        raw_event = payload.get(const.RAW_GEOFENCE_EVENT_TYPE)
        if raw_event is None:
            raw_event = payload.get(const.RAW_GEOFENCE_TYPE)
        event = GeofenceEngine.normalize_event(raw_event)
        if event is None:
            return None

        identifier = None
        region = payload.get(const.RAW_GEOFENCE_REGION)
        if isinstance(region, dict):
            identifier = region.get(const.RAW_GEOFENCE_IDENTIFIER)
        if not identifier:
            identifier = payload.get(const.RAW_GEOFENCE_REGION_IDENTIFIER) or payload.get(
                const.RAW_GEOFENCE_IDENTIFIER
            )
        if not identifier or not isinstance(identifier, str):
            return None
        return event, identifier

    @staticmethod
    def event_matches_trigger(trigger: Any, event: str) -> bool:
        """Return True if the event direction matches the configured trigger.

        Activities without a recognised trigger accept both directions.
        """
        if trigger == const.LOCATION_TRIGGER_ARRIVE:
            return event == const.GEOFENCE_EVENT_ENTER
        if trigger == const.LOCATION_TRIGGER_LEAVE:
            return event == const.GEOFENCE_EVENT_EXIT
        return True
