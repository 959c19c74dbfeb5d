"""Speed-based map zoom, unit conversion and ETA helpers."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

from .config import DEFAULT_CRUISING_SPEED_MPS, MAX_PLAUSIBLE_SPEED_KMH

# (upper speed bound in m/s, zoom) pairs. Slower riders get a closer view.
_ZOOM_BANDS: Sequence[Tuple[float, float]] = (
    (0.28, 19.0),  # stationary, < 1 km/h
    (1.39, 18.5),  # walking, 1-5 km/h
    (2.78, 18.0),  # slow biking, 5-10 km/h
    (4.17, 17.5),  # normal biking, 10-15 km/h
    (5.56, 17.0),  # fast biking, 15-20 km/h
    (6.94, 16.5),  # 20-25 km/h
    (8.33, 16.0),  # racing, 25-30 km/h
    (11.11, 15.5),  # e-bike, 30-40 km/h
)
_MIN_ZOOM = 15.0


def navigation_zoom(speed_mps: Optional[float]) -> float:
    """Recommended map zoom for the current speed.

    ``None`` and negative speeds are treated as stationary.
    """

    if speed_mps is None or speed_mps < 0:
        return _ZOOM_BANDS[0][1]
    for upper_bound, zoom in _ZOOM_BANDS:
        if speed_mps < upper_bound:
            return zoom
    return _MIN_ZOOM


def mps_to_kmh(speed_mps: float) -> float:
    return speed_mps * 3.6


def kmh_to_mps(speed_kmh: float) -> float:
    return speed_kmh / 3.6


def format_speed(speed_mps: float, decimals: int = 0) -> str:
    """Format a speed in m/s as ``"20 km/h"``."""

    return f"{mps_to_kmh(speed_mps):.{decimals}f} km/h"


def is_valid_speed(
    speed_mps: Optional[float], max_kmh: float = MAX_PLAUSIBLE_SPEED_KMH
) -> bool:
    """Return True when the speed is plausible for cycling or walking."""

    if speed_mps is None:
        return False
    speed_kmh = mps_to_kmh(speed_mps)
    return 0 <= speed_kmh < max_kmh


def estimate_time_remaining(
    distance_m: float,
    speed_mps: Optional[float],
    *,
    min_speed_mps: float = 0.5,
    fallback_speed_mps: float = DEFAULT_CRUISING_SPEED_MPS,
) -> int:
    """Seconds needed to cover ``distance_m``.

    Falls back to ``fallback_speed_mps`` when the speed is missing or below
    ``min_speed_mps``.
    """

    if distance_m <= 0:
        return 0
    effective = speed_mps if speed_mps is not None and speed_mps >= min_speed_mps else None
    if effective is None:
        effective = fallback_speed_mps
    return int(round(distance_m / effective))


def format_duration(seconds: float) -> str:
    """Format a duration as ``"< 1 min"``, ``"12 min"`` or ``"1h 2min"``."""

    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes = remainder // 60
    if hours > 0:
        return f"{hours}h {minutes}min"
    if minutes > 0:
        return f"{minutes} min"
    return "< 1 min"


__all__ = [
    "estimate_time_remaining",
    "format_duration",
    "format_speed",
    "is_valid_speed",
    "kmh_to_mps",
    "mps_to_kmh",
    "navigation_zoom",
]
