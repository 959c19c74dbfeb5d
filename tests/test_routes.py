"""Tests for route payload parsing and recorded track loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ride_navigation.errors import RouteFormatError, TrackFormatError
from ride_navigation.models import ManeuverType, RouteType
from ride_navigation.routes import (
    decode_polyline,
    load_fixes,
    load_route,
    route_from_payload,
)

from conftest import offset


def _geojson_path(points, **extra):
    payload = {
        "points": {
            "type": "LineString",
            "coordinates": [[lon, lat, 12.0] for lat, lon in points],
        },
        "distance": 200.0,
        "time": 48000,
    }
    payload.update(extra)
    return payload


def _l_points():
    north = [offset(i * 10.0) for i in range(11)]
    east = [offset(100.0, i * 10.0) for i in range(1, 11)]
    return north + east


def test_decode_polyline() -> None:
    points = decode_polyline("_p~iF~ps|U_ulLnnqC_mqNvxq`@")
    assert points == [
        pytest.approx((38.5, -120.2)),
        pytest.approx((40.7, -120.95)),
        pytest.approx((43.252, -126.453)),
    ]
    assert decode_polyline("") == []


def test_route_from_geojson_path() -> None:
    points = _l_points()
    route = route_from_payload({"paths": [_geojson_path(points)]})
    assert len(route.points) == 21
    assert route.points[0] == pytest.approx(points[0])
    assert route.distance_m == 200.0
    assert route.duration_s == 48.0
    assert route.route_type is RouteType.FASTEST
    assert route.maneuvers == ()


def test_route_from_encoded_path() -> None:
    route = route_from_payload(
        {"points": "_p~iF~ps|U_ulLnnqC_mqNvxq`@", "distance": 1000, "time": 60000}
    )
    assert len(route.points) == 3
    assert route.duration_s == 60.0


def test_instructions_are_mapped_to_maneuvers() -> None:
    points = _l_points()
    instructions = [
        {"sign": 0, "text": "Continue onto High Street", "interval": [0, 10]},
        {"sign": 2, "text": "Turn right onto Mill Lane", "interval": [10, 20]},
        {"sign": 4, "text": "Arrive at destination", "interval": [20, 20]},
    ]
    route = route_from_payload(_geojson_path(points, instructions=instructions))
    assert [m.type for m in route.maneuvers] == [
        ManeuverType.DEPART,
        ManeuverType.TURN_RIGHT,
        ManeuverType.ARRIVE,
    ]
    turn = route.maneuvers[1]
    assert turn.instruction == "Turn right onto Mill Lane"
    assert turn.route_point_index == 10
    assert turn.distance_m == pytest.approx(100.0, abs=0.1)
    assert route.maneuvers[-1].route_point_index == 20


def test_hazards_are_projected_when_distance_missing() -> None:
    points = _l_points()
    hazards = [
        {"id": "h1", "type": "pothole", "title": "Pothole", "lat": offset(40.0, 5.0)[0], "lon": offset(40.0, 5.0)[1]},
        {"id": "h2", "type": "works", "lat": 1.0, "lon": 2.0, "distance_along_route": 150.0, "distance_from_route": 0.0},
    ]
    route = route_from_payload(_geojson_path(points, hazards=hazards))
    first, second = route.hazards
    assert first.kind == "pothole"
    assert first.distance_along_route_m == pytest.approx(40.0, abs=0.1)
    assert first.distance_from_route_m == pytest.approx(5.0, abs=0.1)
    assert second.distance_along_route_m == 150.0


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"paths": []},
        {"points": {"type": "LineString", "coordinates": [[0.0, 51.0]]}},
        {"points": {"type": "LineString"}},
        {"points": 42},
        {"points": {"coordinates": [[0.0, 51.0], ["x", 51.1]]}},
        {"points": {"coordinates": [[0.0, 51.0], [0.0, 51.1]]}, "distance": "far"},
        {"points": {"coordinates": [[0.0, 51.0], [0.0, 51.1]]}, "route_type": "scenic"},
        {"points": {"coordinates": [[0.0, 51.0], [0.0, 51.1]]}, "hazards": [{"id": "x"}]},
    ],
)
def test_invalid_payloads_raise(payload) -> None:
    with pytest.raises(RouteFormatError):
        route_from_payload(payload)


def test_load_route(tmp_path: Path) -> None:
    path = tmp_path / "route.json"
    path.write_text(json.dumps({"paths": [_geojson_path(_l_points(), route_type="safest")]}))
    route = load_route(path)
    assert route.route_type is RouteType.SAFEST
    assert len(route.points) == 21


def test_load_route_errors(tmp_path: Path) -> None:
    with pytest.raises(RouteFormatError):
        load_route(tmp_path / "missing.json")
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    with pytest.raises(RouteFormatError):
        load_route(broken)


def test_load_fixes(tmp_path: Path) -> None:
    path = tmp_path / "ride.csv"
    path.write_text(
        "Timestamp,Latitude,Longitude,Speed,Accuracy\n"
        "2025-01-01T08:00:02Z,51.48010,-3.18,5.0,4\n"
        "2025-01-01T08:00:00Z,51.48000,-3.18,,\n"
        "2025-01-01T08:00:01Z,51.48005,-3.18,4.5,6\n"
    )
    fixes = load_fixes(path)
    assert [f.latitude for f in fixes] == [51.48, 51.48005, 51.4801]
    assert fixes[0].speed is None
    assert fixes[0].accuracy is None
    assert fixes[1].speed == 4.5
    assert fixes[0].heading is None
    assert fixes[0].timestamp.tzinfo is not None
    assert (fixes[2].timestamp - fixes[0].timestamp).total_seconds() == 2.0


def test_load_fixes_missing_columns(tmp_path: Path) -> None:
    path = tmp_path / "ride.csv"
    path.write_text("timestamp,latitude\n2025-01-01T08:00:00Z,51.48\n")
    with pytest.raises(TrackFormatError, match="longitude"):
        load_fixes(path)


def test_load_fixes_invalid_row(tmp_path: Path) -> None:
    path = tmp_path / "ride.csv"
    path.write_text(
        "timestamp,latitude,longitude\n"
        "2025-01-01T08:00:00Z,51.48,-3.18\n"
        "not-a-time,51.48,-3.18\n"
    )
    with pytest.raises(TrackFormatError, match="row 3"):
        load_fixes(path)


def test_load_fixes_unreadable(tmp_path: Path) -> None:
    with pytest.raises(TrackFormatError):
        load_fixes(tmp_path / "missing.csv")
