"""Maneuver detection and sequencing along an active route."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import (
    MEDIUM_TURN_ANGLE,
    MIN_MANEUVER_SEGMENT_M,
    SHARP_TURN_ANGLE,
    SLIGHT_TURN_ANGLE,
    U_TURN_ANGLE,
)
from .geo import LatLon, bearing, distance_between, format_maneuver_distance
from .models import ManeuverInstruction, ManeuverType
from .route_matching import PreparedRoute, prepare_route

_LOG = logging.getLogger(__name__)

_INSTRUCTIONS = {
    ManeuverType.TURN_LEFT: "Turn left",
    ManeuverType.TURN_RIGHT: "Turn right",
    ManeuverType.SHARP_LEFT: "Sharp left turn",
    ManeuverType.SHARP_RIGHT: "Sharp right turn",
    ManeuverType.SLIGHT_LEFT: "Keep left",
    ManeuverType.SLIGHT_RIGHT: "Keep right",
    ManeuverType.STRAIGHT: "Continue straight",
    ManeuverType.U_TURN: "Make a U-turn",
    ManeuverType.ARRIVE: "You have arrived at your destination",
    ManeuverType.DEPART: "Start your route",
}


def instruction_text(maneuver_type: ManeuverType) -> str:
    return _INSTRUCTIONS[maneuver_type]


def normalize_bearing_change(change: float) -> float:
    """Wrap a bearing difference into [-180, 180]."""

    while change > 180:
        change -= 360
    while change < -180:
        change += 360
    return change


def classify_turn(bearing_change: float) -> ManeuverType:
    """Map a signed bearing change to a maneuver type.

    Bearings grow clockwise, so a positive change is a right turn.
    """

    magnitude = abs(bearing_change)
    if magnitude < SLIGHT_TURN_ANGLE:
        return ManeuverType.STRAIGHT
    if magnitude > U_TURN_ANGLE:
        return ManeuverType.U_TURN
    if bearing_change > 0:
        if magnitude > SHARP_TURN_ANGLE:
            return ManeuverType.SHARP_RIGHT
        if magnitude > MEDIUM_TURN_ANGLE:
            return ManeuverType.TURN_RIGHT
        return ManeuverType.SLIGHT_RIGHT
    if magnitude > SHARP_TURN_ANGLE:
        return ManeuverType.SHARP_LEFT
    if magnitude > MEDIUM_TURN_ANGLE:
        return ManeuverType.TURN_LEFT
    return ManeuverType.SLIGHT_LEFT


def detect_maneuvers(points: Sequence[LatLon]) -> List[ManeuverInstruction]:
    """Derive turn instructions from route geometry.

    Used when the routing service supplies no instruction list. The result
    always starts with a depart and ends with an arrive maneuver; vertices
    whose adjacent legs are shorter than ``MIN_MANEUVER_SEGMENT_M`` are
    skipped because their bearing is dominated by noise.
    """

    if len(points) < 2:
        return []

    prepared = prepare_route(points)
    maneuvers: List[ManeuverInstruction] = [
        _build(ManeuverType.DEPART, 0.0, points[0], 0)
    ]
    for index in range(1, len(points) - 1):
        before, current, after = points[index - 1], points[index], points[index + 1]
        if (
            distance_between(before, current) < MIN_MANEUVER_SEGMENT_M
            or distance_between(current, after) < MIN_MANEUVER_SEGMENT_M
        ):
            continue
        change = normalize_bearing_change(bearing(current, after) - bearing(before, current))
        maneuver_type = classify_turn(change)
        if maneuver_type is ManeuverType.STRAIGHT:
            continue
        maneuvers.append(
            _build(maneuver_type, float(prepared.cumulative_m[index]), current, index)
        )
        _LOG.debug(
            "Maneuver detected type=%s index=%d change=%.1f",
            maneuver_type.value,
            index,
            change,
        )

    last = len(points) - 1
    maneuvers.append(
        _build(ManeuverType.ARRIVE, prepared.total_length_m, points[last], last)
    )
    _LOG.debug("Detected %d maneuvers", len(maneuvers))
    return maneuvers


def find_next_maneuver(
    maneuvers: Sequence[ManeuverInstruction], segment_index: int
) -> Optional[ManeuverInstruction]:
    """First maneuver not yet passed, falling back to the final one."""

    if not maneuvers:
        return None
    for maneuver in maneuvers:
        if maneuver.route_point_index > segment_index:
            return maneuver
    return maneuvers[-1]


def distance_to_maneuver(
    prepared: PreparedRoute,
    segment_index: int,
    position: LatLon,
    maneuver: Optional[ManeuverInstruction],
) -> float:
    """Polyline distance from ``position`` (on ``segment_index``) to ``maneuver``."""

    if maneuver is None or prepared.point_count == 0:
        return 0.0
    target_index = min(max(maneuver.route_point_index, 0), prepared.point_count - 1)
    target_along = float(prepared.cumulative_m[target_index])
    current_along = prepared.distance_along_route(segment_index, position)
    return max(target_along - current_along, 0.0)


def voice_instruction(maneuver: ManeuverInstruction, distance_m: float) -> str:
    """Spoken prompt such as ``"in 300 meters, Turn left"``."""

    if distance_m < 50:
        lead = "now"
    elif distance_m < 100:
        lead = "in 50 meters"
    elif distance_m < 1000:
        lead = f"in {int(round(distance_m / 100.0)) * 100} meters"
    else:
        lead = f"in {distance_m / 1000:.1f} kilometers"
    return f"{lead}, {maneuver.voice_instruction}"


def _build(
    maneuver_type: ManeuverType, distance_m: float, location: LatLon, index: int
) -> ManeuverInstruction:
    return ManeuverInstruction(
        type=maneuver_type,
        instruction=instruction_text(maneuver_type),
        distance_m=distance_m,
        location=location,
        route_point_index=index,
    )


__all__ = [
    "classify_turn",
    "detect_maneuvers",
    "distance_to_maneuver",
    "find_next_maneuver",
    "format_maneuver_distance",
    "instruction_text",
    "normalize_bearing_change",
    "voice_instruction",
]
