"""Tests for maneuver detection, sequencing and voice prompts."""

from __future__ import annotations

import pytest

from ride_navigation.maneuvers import (
    classify_turn,
    detect_maneuvers,
    distance_to_maneuver,
    find_next_maneuver,
    instruction_text,
    normalize_bearing_change,
    voice_instruction,
)
from ride_navigation.models import ManeuverType
from ride_navigation.route_matching import prepare_route

from conftest import make_straight_route, offset


@pytest.mark.parametrize(
    "change, expected",
    [
        (0.0, ManeuverType.STRAIGHT),
        (-19.9, ManeuverType.STRAIGHT),
        (30.0, ManeuverType.SLIGHT_RIGHT),
        (-30.0, ManeuverType.SLIGHT_LEFT),
        (45.0, ManeuverType.SLIGHT_RIGHT),
        (90.0, ManeuverType.TURN_RIGHT),
        (-90.0, ManeuverType.TURN_LEFT),
        (130.0, ManeuverType.SHARP_RIGHT),
        (-130.0, ManeuverType.SHARP_LEFT),
        (170.0, ManeuverType.U_TURN),
        (-175.0, ManeuverType.U_TURN),
    ],
)
def test_classify_turn(change: float, expected: ManeuverType) -> None:
    assert classify_turn(change) is expected


def test_normalize_bearing_change() -> None:
    assert normalize_bearing_change(270.0) == -90.0
    assert normalize_bearing_change(-270.0) == 90.0
    assert normalize_bearing_change(540.0) == 180.0
    assert normalize_bearing_change(45.0) == 45.0


def test_detects_right_turn_on_l_route(l_route) -> None:
    maneuvers = detect_maneuvers(l_route.points)
    assert [m.type for m in maneuvers] == [
        ManeuverType.DEPART,
        ManeuverType.TURN_RIGHT,
        ManeuverType.ARRIVE,
    ]
    turn = maneuvers[1]
    assert turn.route_point_index == 10
    assert turn.distance_m == pytest.approx(100.0, abs=0.05)
    assert turn.instruction == "Turn right"
    assert maneuvers[-1].route_point_index == len(l_route.points) - 1
    assert maneuvers[-1].distance_m == pytest.approx(200.0, abs=0.1)


def test_detects_left_turn() -> None:
    points = [offset(0.0), offset(50.0), offset(50.0, -50.0)]
    types = [m.type for m in detect_maneuvers(points)]
    assert types == [ManeuverType.DEPART, ManeuverType.TURN_LEFT, ManeuverType.ARRIVE]


def test_straight_route_has_only_depart_and_arrive(straight_route) -> None:
    types = [m.type for m in detect_maneuvers(straight_route.points)]
    assert types == [ManeuverType.DEPART, ManeuverType.ARRIVE]


def test_short_legs_are_ignored() -> None:
    points = [offset(0.0), offset(50.0), offset(50.0, 4.0), offset(100.0, 4.0)]
    types = [m.type for m in detect_maneuvers(points)]
    assert types == [ManeuverType.DEPART, ManeuverType.ARRIVE]


def test_detect_maneuvers_needs_two_points() -> None:
    assert detect_maneuvers([offset(0.0)]) == []


def test_find_next_maneuver(l_route) -> None:
    maneuvers = detect_maneuvers(l_route.points)
    assert find_next_maneuver(maneuvers, 0).type is ManeuverType.TURN_RIGHT
    assert find_next_maneuver(maneuvers, 9).type is ManeuverType.TURN_RIGHT
    assert find_next_maneuver(maneuvers, 10).type is ManeuverType.ARRIVE
    assert find_next_maneuver(maneuvers, 19).type is ManeuverType.ARRIVE
    assert find_next_maneuver(maneuvers, 25).type is ManeuverType.ARRIVE
    assert find_next_maneuver([], 0) is None


def test_distance_to_maneuver(l_route) -> None:
    prepared = prepare_route(l_route)
    maneuvers = detect_maneuvers(l_route.points)
    turn = maneuvers[1]
    assert distance_to_maneuver(prepared, 3, offset(35.0), turn) == pytest.approx(65.0, abs=0.1)
    assert distance_to_maneuver(prepared, 3, offset(35.0), None) == 0.0
    # Already past the maneuver clamps to zero.
    assert distance_to_maneuver(prepared, 12, offset(100.0, 25.0), turn) == 0.0


@pytest.mark.parametrize(
    "distance_m, expected",
    [
        (30.0, "now, Turn right"),
        (75.0, "in 50 meters, Turn right"),
        (340.0, "in 300 meters, Turn right"),
        (960.0, "in 1000 meters, Turn right"),
        (1500.0, "in 1.5 kilometers, Turn right"),
    ],
)
def test_voice_instruction(l_route, distance_m: float, expected: str) -> None:
    turn = detect_maneuvers(l_route.points)[1]
    assert voice_instruction(turn, distance_m) == expected


def test_instruction_text_covers_every_type() -> None:
    for maneuver_type in ManeuverType:
        assert instruction_text(maneuver_type)
    assert instruction_text(ManeuverType.DEPART) == "Start your route"


def test_maneuver_distance_text() -> None:
    route = make_straight_route(2500.0, spacing_m=50.0)
    arrive = detect_maneuvers(route.points)[-1]
    assert arrive.distance_text == "2.5 km"
