"""Global pytest fixtures & helpers.

Adds project root to path and provides a manual clock plus route and fix
factories so navigation tests can describe rides in metres instead of
degrees.
"""
from __future__ import annotations

import math
import os
import sys
from datetime import datetime, timezone
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ride_navigation.geo import EARTH_RADIUS_M
from ride_navigation.models import LocationFix, RouteResult
from ride_navigation.utils import ManualClock

ORIGIN = (51.48, -3.18)
METERS_PER_DEGREE = EARTH_RADIUS_M * math.pi / 180.0
START_TIME = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


# --- Factory helpers -------------------------------------------------
def offset(north_m, east_m=0.0, origin=ORIGIN):
    """Point ``north_m``/``east_m`` metres away from ``origin``."""
    lat = origin[0] + north_m / METERS_PER_DEGREE
    lon = origin[1] + east_m / (METERS_PER_DEGREE * math.cos(math.radians(origin[0])))
    return lat, lon


def destination(start, bearing_deg, distance_m):
    rad = math.radians(bearing_deg)
    return offset(
        distance_m * math.cos(rad), distance_m * math.sin(rad), origin=start
    )


def make_straight_route(length_m=1000.0, spacing_m=10.0, **kwargs):
    count = int(round(length_m / spacing_m))
    points = tuple(offset(i * spacing_m) for i in range(count + 1))
    kwargs.setdefault("duration_s", length_m / 4.17)
    return RouteResult(points=points, distance_m=length_m, **kwargs)


def make_l_route(leg_m=100.0, spacing_m=10.0):
    """North for ``leg_m`` then east for ``leg_m``; the corner is a right turn."""
    steps = int(round(leg_m / spacing_m))
    north = [offset(i * spacing_m) for i in range(steps + 1)]
    east = [offset(leg_m, i * spacing_m) for i in range(1, steps + 1)]
    return RouteResult(
        points=tuple(north + east), distance_m=2 * leg_m, duration_s=2 * leg_m / 4.17
    )


def make_fix(position, timestamp=START_TIME, **kwargs):
    return LocationFix(
        latitude=position[0], longitude=position[1], timestamp=timestamp, **kwargs
    )


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def clock():
    return ManualClock(START_TIME)


@pytest.fixture
def straight_route():
    return make_straight_route()


@pytest.fixture
def l_route():
    return make_l_route()


@pytest.fixture
def ride(clock):
    """Return a helper feeding one fix per second into a session."""

    def _ride(session, position, seconds=1.0, **fix_kwargs):
        clock.advance(seconds)
        fix_kwargs.setdefault("speed", 5.0)
        return session.process_fix(make_fix(position, clock(), **fix_kwargs))

    return _ride
