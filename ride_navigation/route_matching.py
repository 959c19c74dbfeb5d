"""Snap-to-route map matching and prepared route geometry."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Optional, Sequence, Tuple, Union

from cachetools import LRUCache
import numpy as np
from numpy.typing import NDArray

from .config import ROUTE_CACHE_SIZE, SNAP_MAX_DISTANCE_M, SNAP_WINDOW_SIZE
from .geo import LatLon, distance_between, haversine_array
from .models import LocationFix, RouteResult

MetricArray = NDArray[np.float64]
Position = Union[LocationFix, LatLon]

_RouteCacheKey = Tuple[LatLon, ...]


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Nearest point on the route found inside the search window."""

    point: LatLon
    segment_index: int
    distance_m: float
    on_route: bool


@dataclass(frozen=True, slots=True, eq=False)
class PreparedRoute:
    """Route polyline with precomputed cumulative distances."""

    points: Tuple[LatLon, ...]
    latlon: MetricArray
    cumulative_m: MetricArray

    @property
    def total_length_m(self) -> float:
        if self.cumulative_m.size == 0:
            return 0.0
        return float(self.cumulative_m[-1])

    @property
    def point_count(self) -> int:
        return len(self.points)

    def distance_along_route(self, segment_index: int, point: LatLon) -> float:
        """Distance from the route start to ``point`` lying on ``segment_index``."""

        if not self.points:
            return 0.0
        index = min(max(segment_index, 0), len(self.points) - 1)
        along = float(self.cumulative_m[index]) + distance_between(
            self.points[index], point
        )
        if index + 1 < len(self.points):
            along = min(along, float(self.cumulative_m[index + 1]))
        return along

    def remaining_distance(self, segment_index: int, point: LatLon) -> float:
        """Polyline distance from ``point`` on ``segment_index`` to the end."""

        return max(self.total_length_m - self.distance_along_route(segment_index, point), 0.0)


_route_cache: LRUCache[_RouteCacheKey, PreparedRoute] = LRUCache(
    maxsize=max(1, ROUTE_CACHE_SIZE)
)
_route_cache_lock = RLock()


def prepare_route(route: Union[RouteResult, Sequence[LatLon]]) -> PreparedRoute:
    """Return cumulative-distance geometry for a route, memoised by its points."""

    points = route.points if isinstance(route, RouteResult) else route
    key: _RouteCacheKey = tuple((float(lat), float(lon)) for lat, lon in points)
    with _route_cache_lock:
        cached = _route_cache.get(key)
    if cached is not None:
        return cached

    latlon = np.asarray(key, dtype=float).reshape(-1, 2)
    if len(latlon) > 1:
        legs = haversine_array(latlon[:-1, 0], latlon[:-1, 1], latlon[1:, 0], latlon[1:, 1])
        cumulative = np.concatenate(([0.0], np.cumsum(legs)))
    else:
        cumulative = np.zeros(len(latlon), dtype=float)
    prepared = PreparedRoute(points=key, latlon=latlon, cumulative_m=cumulative)
    with _route_cache_lock:
        _route_cache[key] = prepared
    return prepared


def clear_route_cache() -> None:
    """Empty the prepared route cache (primarily for testing)."""

    with _route_cache_lock:
        _route_cache.clear()


def match_to_route(
    position: Position,
    points: Sequence[LatLon],
    anchor_index: int,
    *,
    max_snap_distance_m: float = SNAP_MAX_DISTANCE_M,
    window_size: int = SNAP_WINDOW_SIZE,
) -> Optional[RouteMatch]:
    """Find the nearest route point to ``position`` near ``anchor_index``.

    Only segments in ``[anchor - window_size, anchor + window_size)`` are
    searched, which keeps the cost independent of route length and stops a
    fix from snapping onto a distant pass of a looping route.

    Segments from the anchor onwards are tried first; the segments behind the
    anchor only count when nothing ahead is within ``max_snap_distance_m``.
    On a route that doubles back over itself this keeps the rider on the
    pass they are actually riding instead of the earlier one.

    Args:
        position: Fix or ``(lat, lon)`` to match.
        points: Route polyline.
        anchor_index: Segment index the rider was last matched to.
        max_snap_distance_m: Matches further than this are off-route.
        window_size: Number of segments searched either side of the anchor.

    Returns:
        The closest projection (lowest segment index wins ties, a projection
        onto a shared vertex belongs to the following segment) with
        ``on_route`` set when it lies within ``max_snap_distance_m``, or
        None when the window holds no segment.
    """

    lat, lon = position.position if isinstance(position, LocationFix) else position
    start = max(0, anchor_index - window_size)
    end = min(len(points) - 1, anchor_index + window_size)
    if start >= end:
        return None

    window = np.asarray(points[start : end + 1], dtype=float).reshape(-1, 2)
    seg_starts = window[:-1]
    seg_ends = window[1:]

    lon_scale = np.cos(np.radians((seg_starts[:, 0] + seg_ends[:, 0]) / 2.0))
    dx = (seg_ends[:, 1] - seg_starts[:, 1]) * lon_scale
    dy = seg_ends[:, 0] - seg_starts[:, 0]
    px = (lon - seg_starts[:, 1]) * lon_scale
    py = lat - seg_starts[:, 0]
    length_sq = dx * dx + dy * dy
    with np.errstate(divide="ignore", invalid="ignore"):
        t = np.where(length_sq > 0.0, (px * dx + py * dy) / length_sq, 0.0)
    t = np.clip(np.nan_to_num(t, nan=0.0), 0.0, 1.0)

    proj_lat = seg_starts[:, 0] + t * (seg_ends[:, 0] - seg_starts[:, 0])
    proj_lon = seg_starts[:, 1] + t * (seg_ends[:, 1] - seg_starts[:, 1])
    distances = haversine_array(lat, lon, proj_lat, proj_lon)

    # argmin returns the first minimum, matching a strict "<" scan.
    ahead = min(max(anchor_index - start, 0), len(distances))
    forward = distances[ahead:]
    if forward.size and float(forward.min()) <= max_snap_distance_m:
        best = ahead + int(np.argmin(forward))
    else:
        best = int(np.argmin(distances))
    while (
        best + 1 < len(distances)
        and t[best] >= 1.0
        and distances[best + 1] <= distances[best] + 1e-6
    ):
        best += 1
    best_distance = float(distances[best])
    return RouteMatch(
        point=(float(proj_lat[best]), float(proj_lon[best])),
        segment_index=start + best,
        distance_m=best_distance,
        on_route=best_distance <= max_snap_distance_m,
    )


def snap_to_route(
    position: Position,
    points: Sequence[LatLon],
    anchor_index: int,
    max_snap_distance_m: float = SNAP_MAX_DISTANCE_M,
    window_size: int = SNAP_WINDOW_SIZE,
) -> Optional[LatLon]:
    """Return the snapped point, or None when the fix is off-route."""

    match = match_to_route(
        position,
        points,
        anchor_index,
        max_snap_distance_m=max_snap_distance_m,
        window_size=window_size,
    )
    if match is None or not match.on_route:
        return None
    return match.point


__all__ = [
    "PreparedRoute",
    "RouteMatch",
    "clear_route_cache",
    "match_to_route",
    "prepare_route",
    "snap_to_route",
]
