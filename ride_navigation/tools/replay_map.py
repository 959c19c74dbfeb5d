"""Render a replayed ride and its navigation states on an interactive map."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import folium  # Using folium to build an interactive Leaflet map.

from ..geo import LatLon
from ..models import LocationFix, ManeuverType, NavigationState, RouteResult

PathLike = Union[str, Path]

_ROUTE_COLOR = "#1a9641"
_TRAIL_COLOR = "#2c7bb6"
_OFF_ROUTE_COLOR = "#d73027"
_MANEUVER_COLOR = "#fdae61"


def _off_route_runs(
    fixes: Sequence[LocationFix], states: Sequence[NavigationState]
) -> List[List[LatLon]]:
    """Return contiguous stretches of fixes that were flagged off-route."""

    runs: List[List[LatLon]] = []
    current: List[LatLon] = []
    for fix, state in zip(fixes, states):
        if state.is_off_route:
            current.append(fix.position)
            continue
        if current:
            runs.append(current)
            current = []
    if current:
        runs.append(current)
    return runs


def _arrival_point(
    fixes: Sequence[LocationFix], states: Sequence[NavigationState]
) -> Optional[Tuple[LocationFix, NavigationState]]:
    for fix, state in zip(fixes, states):
        if state.has_arrived:
            return fix, state
    return None


def create_replay_map(
    route: RouteResult,
    fixes: Sequence[LocationFix],
    states: Sequence[NavigationState],
    *,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create a map showing the planned route against the ridden trail.

    Args:
        route: Route that was navigated.
        fixes: Fixes in the order they were replayed.
        states: Navigation state produced for each fix (same length).
        output_html_path: Optional path to persist the map as HTML.

    Returns:
        A :class:`folium.Map` with the route, trail, off-route stretches,
        maneuver markers and the arrival point.

    Raises:
        ValueError: If ``states`` does not align with ``fixes`` or the route
            has no geometry.
    """

    if len(states) != len(fixes):
        raise ValueError("Navigation states do not align with replayed fixes")
    if not route.points:
        raise ValueError("Route has no points to draw")

    folium_map = folium.Map(location=route.points[0], zoom_start=15, control_scale=True)
    folium.PolyLine(
        list(route.points),
        color=_ROUTE_COLOR,
        weight=5,
        opacity=0.8,
        tooltip=f"Route ({route.distance_km} km)",
    ).add_to(folium_map)

    trail = [fix.position for fix in fixes]
    if len(trail) >= 2:
        folium.PolyLine(
            trail,
            color=_TRAIL_COLOR,
            weight=3,
            opacity=0.7,
            tooltip="Ridden trail",
        ).add_to(folium_map)

    for run in _off_route_runs(fixes, states):
        if len(run) == 1:
            folium.CircleMarker(
                location=run[0],
                radius=5,
                color=_OFF_ROUTE_COLOR,
                fill=True,
                fill_color=_OFF_ROUTE_COLOR,
                tooltip="Off route",
            ).add_to(folium_map)
            continue
        folium.PolyLine(
            run,
            color=_OFF_ROUTE_COLOR,
            weight=6,
            opacity=0.9,
            tooltip="Off route",
        ).add_to(folium_map)

    maneuvers = states[0].all_maneuvers if states else route.maneuvers
    for maneuver in maneuvers:
        if maneuver.type in (ManeuverType.DEPART, ManeuverType.ARRIVE):
            continue
        folium.CircleMarker(
            location=maneuver.location,
            radius=6,
            color=_MANEUVER_COLOR,
            fill=True,
            fill_color=_MANEUVER_COLOR,
            tooltip=f"{maneuver.type.icon} {maneuver.instruction}",
        ).add_to(folium_map)

    arrival = _arrival_point(fixes, states)
    if arrival is not None:
        fix, state = arrival
        popup = folium.Popup(
            html=(
                f"<strong>Arrived</strong> {fix.timestamp:%H:%M:%S}<br>"
                f"Avg {state.average_speed_with_stops_kmh:.1f}"
                f"-{state.average_speed_without_stops_kmh:.1f} km/h"
            ),
            max_width=300,
        )
        folium.Marker(
            location=fix.position,
            tooltip="Arrival",
            popup=popup,
            icon=folium.Icon(color="green", icon="flag"),
        ).add_to(folium_map)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        folium_map.save(str(output_path))

    return folium_map


__all__ = ["create_replay_map"]
