"""Loading of routes and recorded fix tracks.

Routes arrive as GraphHopper-style JSON paths; recorded rides arrive as CSV
exports with one fix per row. Both are validated here so the navigation core
only ever sees well-formed models.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd
from polyline import decode as polyline_decode

from .errors import RouteFormatError, TrackFormatError
from .geo import LatLon
from .maneuvers import instruction_text
from .models import (
    LocationFix,
    ManeuverInstruction,
    ManeuverType,
    RouteHazard,
    RouteResult,
    RouteType,
)
from .route_matching import match_to_route, prepare_route

_LOG = logging.getLogger(__name__)

_REQUIRED_FIX_COLS = {"timestamp", "latitude", "longitude"}
_OPTIONAL_FIX_COLS = ("altitude", "accuracy", "speed", "heading")

# GraphHopper instruction sign -> maneuver type.
_SIGN_TO_MANEUVER: Dict[int, ManeuverType] = {
    -98: ManeuverType.U_TURN,
    -8: ManeuverType.U_TURN,
    -7: ManeuverType.SLIGHT_LEFT,
    -3: ManeuverType.SHARP_LEFT,
    -2: ManeuverType.TURN_LEFT,
    -1: ManeuverType.SLIGHT_LEFT,
    0: ManeuverType.STRAIGHT,
    1: ManeuverType.SLIGHT_RIGHT,
    2: ManeuverType.TURN_RIGHT,
    3: ManeuverType.SHARP_RIGHT,
    4: ManeuverType.ARRIVE,
    5: ManeuverType.STRAIGHT,
    6: ManeuverType.STRAIGHT,
    7: ManeuverType.SLIGHT_RIGHT,
    8: ManeuverType.U_TURN,
}


def decode_polyline(encoded: str) -> List[LatLon]:
    """Decode an encoded polyline string into a list of (lat, lon) tuples."""

    if not encoded:
        return []
    try:
        decoded = polyline_decode(encoded)
    except (ValueError, TypeError, IndexError) as exc:
        raise RouteFormatError("Unable to decode polyline") from exc
    return [(float(lat), float(lon)) for lat, lon in decoded]


def route_from_payload(payload: Mapping[str, Any]) -> RouteResult:
    """Build a :class:`RouteResult` from a routing service response.

    Accepts either a full response (``{"paths": [...]}``, first path used)
    or a single path object.

    Args:
        payload: Decoded JSON with ``points`` (encoded polyline string or
            GeoJSON ``LineString`` with ``[lon, lat]`` coordinates),
            ``distance`` in meters and ``time`` in milliseconds. Optional
            ``instructions`` (GraphHopper ``sign``/``interval`` entries),
            ``hazards`` and ``route_type``.

    Returns:
        The parsed route.

    Raises:
        RouteFormatError: When the payload has no usable geometry or its
            numeric fields cannot be parsed.
    """

    if not isinstance(payload, Mapping):
        raise RouteFormatError("Route payload must be a JSON object")
    path: Mapping[str, Any] = payload
    if "paths" in payload:
        paths = payload.get("paths") or []
        if not paths:
            raise RouteFormatError("Route payload contains no paths")
        path = paths[0]

    points = _parse_points(path.get("points"))
    if len(points) < 2:
        raise RouteFormatError(f"Route needs at least 2 points, got {len(points)}")

    prepared = prepare_route(points)
    try:
        distance_m = float(path.get("distance", prepared.total_length_m))
        duration_s = float(path.get("time", 0.0)) / 1000.0
    except (TypeError, ValueError) as exc:
        raise RouteFormatError("Route distance/time must be numeric") from exc

    route_type_raw = str(path.get("route_type", RouteType.FASTEST.value)).lower()
    try:
        route_type = RouteType(route_type_raw)
    except ValueError as exc:
        raise RouteFormatError(f"Unknown route type '{route_type_raw}'") from exc

    maneuvers = tuple(
        _parse_instruction(raw, points, prepared.cumulative_m)
        for raw in path.get("instructions") or []
    )
    hazards = tuple(_parse_hazard(raw, points) for raw in path.get("hazards") or [])

    _LOG.debug(
        "Parsed route: %d points, %.0f m, %d instructions, %d hazards",
        len(points),
        distance_m,
        len(maneuvers),
        len(hazards),
    )
    return RouteResult(
        points=tuple(points),
        distance_m=distance_m,
        duration_s=duration_s,
        route_type=route_type,
        maneuvers=maneuvers,
        hazards=hazards,
        metadata={k: path[k] for k in ("description", "ascend", "descend") if k in path},
    )


def load_route(path: str | Path) -> RouteResult:
    """Read a route JSON file."""

    route_path = Path(path)
    try:
        with route_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except OSError as exc:
        raise RouteFormatError(f"Cannot read route file {route_path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RouteFormatError(f"Route file {route_path} is not valid JSON: {exc}") from exc
    route = route_from_payload(payload)
    _LOG.info("Loaded route %s (%d points, %.0f m)", route_path, len(route.points), route.distance_m)
    return route


def load_fixes(path: str | Path) -> List[LocationFix]:
    """Read a CSV track of location fixes ordered by timestamp.

    Raises:
        TrackFormatError: When the file is unreadable, required columns are
            missing or a row holds an unparseable timestamp or coordinate.
    """

    track_path = Path(path)
    try:
        df = pd.read_csv(track_path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise TrackFormatError(f"Cannot read track file {track_path}: {exc}") from exc

    df.columns = [str(col).strip().lower() for col in df.columns]
    missing = _REQUIRED_FIX_COLS - set(df.columns)
    if missing:
        raise TrackFormatError(
            f"Track file {track_path} missing required columns: {', '.join(sorted(missing))}"
        )

    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True, errors="coerce")
    for col in ("latitude", "longitude", *_OPTIONAL_FIX_COLS):
        if col in df.columns:
            df[col] = pd.to_numeric(df[col], errors="coerce")

    invalid = df[df[["timestamp", "latitude", "longitude"]].isna().any(axis=1)]
    if not invalid.empty:
        row_label = int(invalid.index[0]) + 2  # header is row 1
        raise TrackFormatError(
            f"Track file {track_path} has invalid timestamp or coordinates in row {row_label}"
        )

    df = df.sort_values("timestamp", kind="stable")
    fixes = [_fix_from_row(row) for row in df.to_dict(orient="records")]
    _LOG.info("Loaded %d fixes from %s", len(fixes), track_path)
    return fixes


def _parse_points(raw: Any) -> List[LatLon]:
    if raw is None:
        raise RouteFormatError("Route payload has no 'points'")
    if isinstance(raw, str):
        return decode_polyline(raw)
    if isinstance(raw, Mapping):
        coordinates = raw.get("coordinates")
        if not isinstance(coordinates, Sequence):
            raise RouteFormatError("GeoJSON points must contain a 'coordinates' list")
        points: List[LatLon] = []
        for coord in coordinates:
            # GeoJSON order is [lon, lat(, elevation)].
            if not isinstance(coord, Sequence) or len(coord) < 2:
                raise RouteFormatError(f"Invalid coordinate {coord!r}")
            try:
                points.append((float(coord[1]), float(coord[0])))
            except (TypeError, ValueError) as exc:
                raise RouteFormatError(f"Invalid coordinate {coord!r}") from exc
        return points
    raise RouteFormatError(f"Unsupported points encoding: {type(raw).__name__}")


def _parse_instruction(
    raw: Mapping[str, Any], points: Sequence[LatLon], cumulative_m: Sequence[float]
) -> ManeuverInstruction:
    try:
        sign = int(raw.get("sign", 0))
        interval = raw.get("interval") or [0, 0]
        index = int(interval[0])
    except (TypeError, ValueError, IndexError) as exc:
        raise RouteFormatError(f"Invalid route instruction {raw!r}") from exc
    index = min(max(index, 0), len(points) - 1)
    if sign == 4:
        # Finish instructions point at the last vertex.
        index = len(points) - 1

    maneuver_type = _SIGN_TO_MANEUVER.get(sign, ManeuverType.STRAIGHT)
    if index == 0 and maneuver_type is ManeuverType.STRAIGHT:
        maneuver_type = ManeuverType.DEPART
    text = str(raw.get("text") or instruction_text(maneuver_type))
    return ManeuverInstruction(
        type=maneuver_type,
        instruction=text,
        distance_m=float(cumulative_m[index]),
        location=points[index],
        route_point_index=index,
    )


def _parse_hazard(raw: Mapping[str, Any], points: Sequence[LatLon]) -> RouteHazard:
    try:
        location = (float(raw["lat"]), float(raw["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise RouteFormatError(f"Hazard needs numeric 'lat' and 'lon': {raw!r}") from exc

    along: Optional[float] = raw.get("distance_along_route")
    offset: Optional[float] = raw.get("distance_from_route")
    if along is None or offset is None:
        match = match_to_route(
            location, points, 0, max_snap_distance_m=float("inf"), window_size=len(points)
        )
        if match is not None:
            prepared = prepare_route(points)
            if along is None:
                along = prepared.distance_along_route(match.segment_index, match.point)
            if offset is None:
                offset = match.distance_m

    return RouteHazard(
        hazard_id=str(raw.get("id", "")),
        kind=str(raw.get("type", "hazard")),
        title=str(raw.get("title", "")),
        location=location,
        distance_along_route_m=float(along or 0.0),
        distance_from_route_m=float(offset or 0.0),
    )


def _fix_from_row(row: Mapping[str, Any]) -> LocationFix:
    optional = {
        col: (None if pd.isna(row.get(col)) else float(row[col]))
        for col in _OPTIONAL_FIX_COLS
        if col in row
    }
    return LocationFix(
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        timestamp=row["timestamp"].to_pydatetime(),
        **optional,
    )


__all__ = [
    "decode_polyline",
    "load_fixes",
    "load_route",
    "route_from_payload",
]
