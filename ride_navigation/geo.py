"""Pure geographic helpers: distances, bearings, bounds and projections.

No side effects, no imports from other project modules. Points are
``(lat, lon)`` tuples in decimal degrees.
"""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Tuple

import numpy as np
from numpy.typing import ArrayLike, NDArray

LatLon = Tuple[float, float]

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_320.0

_COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")


@dataclass(frozen=True, slots=True)
class BoundingBox:
    """Axis-aligned lat/lon box."""

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


def distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in metres (haversine).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """

    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    sin_half_lat = math.sin((lat2_rad - lat1_rad) / 2.0)
    sin_half_lon = math.sin(math.radians(lon2 - lon1) / 2.0)
    a = sin_half_lat**2 + math.cos(lat1_rad) * math.cos(lat2_rad) * sin_half_lon**2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def distance_between(first: LatLon, second: LatLon) -> float:
    """Haversine distance between two ``(lat, lon)`` pairs."""

    return distance(first[0], first[1], second[0], second[1])


def haversine_array(
    lat1: ArrayLike, lon1: ArrayLike, lat2: ArrayLike, lon2: ArrayLike
) -> NDArray[np.float64]:
    """Vectorised haversine distance in metres."""

    lat1_rad = np.radians(np.asarray(lat1, dtype=float))
    lat2_rad = np.radians(np.asarray(lat2, dtype=float))
    d_lon = np.radians(np.asarray(lon2, dtype=float) - np.asarray(lon1, dtype=float))
    a = (
        np.sin((lat2_rad - lat1_rad) / 2.0) ** 2
        + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(d_lon / 2.0) ** 2
    )
    return EARTH_RADIUS_M * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def bearing(start: LatLon, end: LatLon) -> float:
    """Forward azimuth from ``start`` to ``end`` in degrees [0, 360).

    0 is north, 90 east. Identical points yield 0.
    """

    lat1 = math.radians(start[0])
    lat2 = math.radians(end[0])
    d_lon = math.radians(end[1] - start[1])
    y = math.sin(d_lon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(
        d_lon
    )
    result = (math.degrees(math.atan2(y, x)) + 360.0) % 360.0
    # -0.0 and float rounding can land exactly on 360.
    return 0.0 if result >= 360.0 else result


def midpoint(first: LatLon, second: LatLon) -> LatLon:
    """Great-circle midpoint between two points."""

    lat1 = math.radians(first[0])
    lon1 = math.radians(first[1])
    lat2 = math.radians(second[0])
    d_lon = math.radians(second[1] - first[1])

    b_x = math.cos(lat2) * math.cos(d_lon)
    b_y = math.cos(lat2) * math.sin(d_lon)
    lat3 = math.atan2(
        math.sin(lat1) + math.sin(lat2),
        math.sqrt((math.cos(lat1) + b_x) ** 2 + b_y**2),
    )
    lon3 = lon1 + math.atan2(b_y, math.cos(lat1) + b_x)
    return math.degrees(lat3), math.degrees(lon3)


def bounding_box(center: LatLon, radius_m: float) -> BoundingBox:
    """Return the lat/lon box extending ``radius_m`` around ``center``."""

    lat_delta = radius_m / METERS_PER_DEGREE_LAT
    lon_scale = METERS_PER_DEGREE_LAT * math.cos(math.radians(center[0]))
    lon_delta = radius_m / lon_scale if lon_scale > 0 else 180.0
    return BoundingBox(
        min_lat=center[0] - lat_delta,
        max_lat=center[0] + lat_delta,
        min_lon=center[1] - lon_delta,
        max_lon=center[1] + lon_delta,
    )


def point_in_box(point: LatLon, box: BoundingBox) -> bool:
    """Inclusive containment test."""

    return (
        box.min_lat <= point[0] <= box.max_lat
        and box.min_lon <= point[1] <= box.max_lon
    )


def segment_projection_parameter(
    point: LatLon, seg_start: LatLon, seg_end: LatLon
) -> float:
    """Return the clamped parameter ``t`` of ``point`` projected onto a segment.

    Uses an equirectangular approximation around the segment so longitude
    degrees are shrunk by ``cos(lat)``. A zero-length segment yields 0.
    """

    lon_scale = math.cos(math.radians((seg_start[0] + seg_end[0]) / 2.0))
    dx = (seg_end[1] - seg_start[1]) * lon_scale
    dy = seg_end[0] - seg_start[0]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return 0.0
    px = (point[1] - seg_start[1]) * lon_scale
    py = point[0] - seg_start[0]
    t = (px * dx + py * dy) / length_sq
    return min(max(t, 0.0), 1.0)


def project_point_on_segment(
    point: LatLon, seg_start: LatLon, seg_end: LatLon
) -> LatLon:
    """Closest point to ``point`` on the segment, never extrapolated."""

    t = segment_projection_parameter(point, seg_start, seg_end)
    if t == 0.0:
        return seg_start
    return (
        seg_start[0] + t * (seg_end[0] - seg_start[0]),
        seg_start[1] + t * (seg_end[1] - seg_start[1]),
    )


def format_bearing(degrees: float) -> str:
    """Compass label (N, NE, ... NW) for a bearing."""

    index = math.floor((degrees + 22.5) / 45.0) % 8
    return _COMPASS_POINTS[index]


def format_distance(meters: float, decimals: int = 1) -> str:
    """Short distance label: ``"500m"`` or ``"1.5km"``."""

    if meters < 1000:
        return f"{round(meters)}m"
    return f"{meters / 1000:.{decimals}f}km"


def format_maneuver_distance(meters: float) -> str:
    """Distance label used for turn instructions.

    Under 100 m whole metres, under 1 km rounded to 10 m, otherwise km with
    one decimal.
    """

    if meters < 100:
        return f"{meters:.0f} meters"
    if meters < 1000:
        return f"{int(round(meters / 10.0)) * 10} meters"
    return f"{meters / 1000:.1f} km"


__all__ = [
    "BoundingBox",
    "EARTH_RADIUS_M",
    "LatLon",
    "bearing",
    "bounding_box",
    "distance",
    "distance_between",
    "format_bearing",
    "format_distance",
    "format_maneuver_distance",
    "haversine_array",
    "midpoint",
    "point_in_box",
    "project_point_on_segment",
    "segment_projection_parameter",
]
