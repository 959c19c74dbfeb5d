"""GPS breadcrumb trail and smoothed travel direction."""

from __future__ import annotations

from datetime import datetime, timedelta
import logging
from typing import List, Optional, Tuple

from .config import (
    BEARING_SMOOTHING_RATIO,
    BREADCRUMB_MAX_AGE_SECONDS,
    MAX_BREADCRUMBS,
    MIN_BREADCRUMB_DISTANCE_M,
    MIN_TRAVEL_DISTANCE_M,
)
from .geo import bearing, distance_between, format_bearing
from .models import Breadcrumb, LocationFix
from .utils import Clock, utc_now

_LOG = logging.getLogger(__name__)


class BreadcrumbTracker:
    """Short rolling window of recent fixes used to infer travel direction.

    The window acts as a cheap low-pass filter: fixes closer than
    ``min_breadcrumb_distance_m`` to the previous breadcrumb are dropped and
    only the newest ``max_breadcrumbs`` younger than ``max_age_s`` are kept.
    A single owner (the navigation session) writes to it.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        *,
        max_breadcrumbs: int = MAX_BREADCRUMBS,
        min_breadcrumb_distance_m: float = MIN_BREADCRUMB_DISTANCE_M,
        max_age_s: float = BREADCRUMB_MAX_AGE_SECONDS,
        min_travel_distance_m: float = MIN_TRAVEL_DISTANCE_M,
    ) -> None:
        self._clock = clock
        self._max_breadcrumbs = max(2, max_breadcrumbs)
        self._min_breadcrumb_distance_m = min_breadcrumb_distance_m
        self._max_age = timedelta(seconds=max_age_s)
        self._min_travel_distance_m = min_travel_distance_m
        self._breadcrumbs: List[Breadcrumb] = []
        self._last_bearing: Optional[float] = None

    def add_breadcrumb(self, fix: LocationFix) -> bool:
        """Store ``fix`` if it moved far enough from the last breadcrumb.

        Returns:
            True when the fix was stored, False when it was too close.
        """

        now = self._clock()
        self._evict_stale(now)
        position = fix.position
        if self._breadcrumbs:
            moved = distance_between(self._breadcrumbs[-1].position, position)
            if moved < self._min_breadcrumb_distance_m:
                return False

        self._breadcrumbs.append(
            Breadcrumb(position=position, timestamp=now, speed=fix.speed)
        )
        if len(self._breadcrumbs) > self._max_breadcrumbs:
            self._breadcrumbs.pop(0)
        return True

    def calculate_travel_direction(
        self,
        smoothing_ratio: float = BEARING_SMOOTHING_RATIO,
        logging_enabled: bool = False,
    ) -> Optional[float]:
        """Return the smoothed bearing of the trail, or None without signal.

        Args:
            smoothing_ratio: Weight of the new bearing (0.7 = 70% new).
            logging_enabled: Emit DEBUG records for each calculation.

        Returns:
            Bearing in degrees [0, 360), or None when fewer than two
            breadcrumbs exist or the trail is shorter than the noise floor.
        """

        self._evict_stale(self._clock())
        if len(self._breadcrumbs) < 2:
            return None

        start = self._breadcrumbs[0].position
        end = self._breadcrumbs[-1].position
        if distance_between(start, end) < self._min_travel_distance_m:
            return None

        raw = bearing(start, end)
        if logging_enabled:
            _LOG.debug(
                "Bearing calculation start=%.6f,%.6f end=%.6f,%.6f bearing=%.1f (%s)",
                start[0],
                start[1],
                end[0],
                end[1],
                raw,
                format_bearing(raw),
            )

        result = raw
        previous = self._last_bearing
        # Blending across north (e.g. 359 and 1) would point the wrong way.
        if previous is not None and abs(raw - previous) < 180:
            result = raw * smoothing_ratio + previous * (1 - smoothing_ratio)
            if logging_enabled:
                _LOG.debug(
                    "Bearing smoothed old=%.1f new=%.1f smoothed=%.1f ratio=%.2f",
                    previous,
                    raw,
                    result,
                    smoothing_ratio,
                )

        self._last_bearing = result
        return result

    def clear(self) -> None:
        self._breadcrumbs.clear()
        self._last_bearing = None

    @property
    def breadcrumbs(self) -> Tuple[Breadcrumb, ...]:
        return tuple(self._breadcrumbs)

    @property
    def breadcrumb_count(self) -> int:
        return len(self._breadcrumbs)

    @property
    def last_bearing(self) -> Optional[float]:
        return self._last_bearing

    def _evict_stale(self, now: datetime) -> None:
        self._breadcrumbs = [
            crumb for crumb in self._breadcrumbs if now - crumb.timestamp <= self._max_age
        ]


__all__ = ["BreadcrumbTracker"]
