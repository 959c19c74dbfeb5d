"""Tests for snap-to-route matching and prepared route geometry."""

from __future__ import annotations

import pytest

from ride_navigation.geo import distance_between
from ride_navigation.route_matching import (
    clear_route_cache,
    match_to_route,
    prepare_route,
    snap_to_route,
)

from conftest import ORIGIN, make_fix, make_straight_route, offset


def test_prepare_route_cumulative_distances(straight_route) -> None:
    prepared = prepare_route(straight_route)
    assert prepared.point_count == 101
    assert prepared.cumulative_m[0] == 0.0
    assert prepared.cumulative_m[10] == pytest.approx(100.0, abs=0.01)
    assert prepared.total_length_m == pytest.approx(1000.0, abs=0.1)


def test_prepare_route_is_memoised(straight_route) -> None:
    clear_route_cache()
    first = prepare_route(straight_route)
    assert prepare_route(list(straight_route.points)) is first
    clear_route_cache()
    assert prepare_route(straight_route) is not first


def test_remaining_distance_from_snapped_point(straight_route) -> None:
    prepared = prepare_route(straight_route)
    point = offset(255.0)
    assert prepared.distance_along_route(25, point) == pytest.approx(255.0, abs=0.1)
    assert prepared.remaining_distance(25, point) == pytest.approx(745.0, abs=0.1)
    assert prepared.remaining_distance(99, straight_route.points[-1]) == pytest.approx(0.0, abs=0.01)


def test_fix_beside_route_snaps_onto_it(straight_route) -> None:
    match = match_to_route(offset(253.0, 5.0), straight_route.points, 20)
    assert match is not None
    assert match.on_route
    assert match.segment_index == 25
    assert match.distance_m == pytest.approx(5.0, abs=0.05)
    assert distance_between(match.point, offset(253.0)) < 0.05


def test_accepts_location_fix(straight_route) -> None:
    fix = make_fix(offset(42.0, -3.0))
    assert snap_to_route(fix, straight_route.points, 0) is not None


def test_far_fix_is_off_route(straight_route) -> None:
    position = offset(500.0, 30.0)
    assert snap_to_route(position, straight_route.points, 50) is None
    match = match_to_route(position, straight_route.points, 50)
    assert match is not None
    assert not match.on_route
    assert match.distance_m == pytest.approx(30.0, abs=0.1)


def test_snap_distance_boundary(straight_route) -> None:
    inside = match_to_route(offset(100.0, 19.5), straight_route.points, 10)
    outside = match_to_route(offset(100.0, 20.5), straight_route.points, 10)
    assert inside is not None and inside.on_route
    assert outside is not None and not outside.on_route


def test_l_shaped_route_snaps_to_second_leg(l_route) -> None:
    # Corner is at point 10; east leg runs through points 10..20.
    match = match_to_route(offset(96.0, 55.0), l_route.points, 10)
    assert match is not None and match.on_route
    assert 10 <= match.segment_index < 20
    assert distance_between(match.point, offset(100.0, 55.0)) < 0.1


def test_search_window_ignores_later_pass_of_out_and_back_route() -> None:
    out = [offset(i * 10.0) for i in range(101)]
    back = [offset(1000.0 - i * 10.0, 10.0) for i in range(101)]
    points = out + back
    position = offset(500.0, 9.0)

    windowed = match_to_route(position, points, 45)
    assert windowed is not None
    assert windowed.segment_index < 100
    assert windowed.distance_m == pytest.approx(9.0, abs=0.1)

    unrestricted = match_to_route(position, points, 0, window_size=len(points))
    assert unrestricted is not None
    assert unrestricted.segment_index > 100
    assert unrestricted.distance_m == pytest.approx(1.0, abs=0.1)


def test_window_is_clamped_at_route_ends(straight_route) -> None:
    start_match = match_to_route(offset(-5.0), straight_route.points, 0)
    assert start_match is not None
    assert start_match.segment_index == 0
    assert start_match.point == straight_route.points[0]

    end_match = match_to_route(offset(1003.0), straight_route.points, 99)
    assert end_match is not None
    assert end_match.segment_index == 99
    assert end_match.distance_m == pytest.approx(3.0, abs=0.05)


def test_degenerate_routes() -> None:
    assert match_to_route(ORIGIN, [ORIGIN], 0) is None
    assert match_to_route(ORIGIN, [], 0) is None

    stacked = [ORIGIN, ORIGIN, offset(10.0)]
    match = match_to_route(offset(0.0, 2.0), stacked, 0)
    assert match is not None
    assert match.segment_index == 0
    assert match.distance_m == pytest.approx(2.0, abs=0.05)


def test_custom_snap_threshold() -> None:
    route = make_straight_route(200.0)
    position = offset(50.0, 25.0)
    assert snap_to_route(position, route.points, 0) is None
    assert snap_to_route(position, route.points, 0, max_snap_distance_m=30.0) is not None


def test_three_point_l_shape_snaps_within_five_metres() -> None:
    points = [ORIGIN, offset(100.0), offset(100.0, 100.0)]
    position = offset(95.0, 50.0)
    snapped = snap_to_route(position, points, 0)
    assert snapped is not None
    assert distance_between(snapped, position) == pytest.approx(5.0, abs=0.05)
    assert distance_between(snapped, offset(100.0, 50.0)) < 0.05


def _retraced_route():
    out = [offset(i * 10.0) for i in range(101)]
    return out + out[-2::-1]


def test_retraced_route_prefers_segments_ahead_of_anchor() -> None:
    points = _retraced_route()
    match = match_to_route(offset(995.0), points, 100)
    assert match is not None and match.on_route
    assert match.segment_index == 100
    assert match.distance_m == pytest.approx(0.0, abs=0.01)


def test_turnaround_vertex_belongs_to_return_leg() -> None:
    points = _retraced_route()
    match = match_to_route(offset(1000.0), points, 99)
    assert match is not None
    assert match.segment_index == 100


def test_shared_vertex_resolves_to_following_segment(straight_route) -> None:
    match = match_to_route(offset(300.0), straight_route.points, 29)
    assert match is not None
    assert match.segment_index == 30
    assert match.point == pytest.approx(straight_route.points[30])


def test_segments_behind_anchor_used_when_nothing_ahead_matches(straight_route) -> None:
    match = match_to_route(offset(253.0, 2.0), straight_route.points, 30)
    assert match is not None and match.on_route
    assert match.segment_index == 25
    assert match.distance_m == pytest.approx(2.0, abs=0.05)
