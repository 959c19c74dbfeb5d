"""Benchmark per-fix navigation cost on long synthetic routes."""

from __future__ import annotations

import argparse
import statistics
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# Late imports rely on the adjusted sys.path above.
from ride_navigation.models import LocationFix, RouteResult  # noqa: E402
from ride_navigation.navigator import NavigationSession  # noqa: E402
from ride_navigation.route_matching import clear_route_cache, prepare_route  # noqa: E402
from ride_navigation.utils import ManualClock  # noqa: E402


@dataclass(slots=True)
class BenchmarkSummary:
    """Aggregated statistics for one benchmark run."""

    point_count: int
    fixes: int
    prepare_route_ms: float
    mean_fix_ms: float
    median_fix_ms: float
    worst_fix_ms: float


def _build_route(point_count: int) -> RouteResult:
    """Generate a straight northbound route with ~3.3 m point spacing."""

    base_lat = 37.0
    base_lon = -122.0
    step_deg = 3.0e-5
    points = tuple((base_lat + idx * step_deg, base_lon) for idx in range(point_count))
    length_m = (point_count - 1) * step_deg * 111_195.0
    return RouteResult(points=points, distance_m=length_m, duration_s=length_m / 5.0)


def run_benchmark(point_count: int, fix_count: int) -> BenchmarkSummary:
    """Replay ``fix_count`` fixes riding along the route and time each one."""

    if point_count < 2:
        raise ValueError("point_count must be at least 2")
    if fix_count <= 0:
        raise ValueError("fix_count must be positive")

    route = _build_route(point_count)
    clear_route_cache()
    start = time.perf_counter()
    prepare_route(route)
    prepare_ms = (time.perf_counter() - start) * 1000.0

    clock = ManualClock(datetime(2025, 1, 1, tzinfo=timezone.utc))
    session = NavigationSession(clock=clock)
    session.start_navigation(route)

    stride = max(1, (point_count - 1) // fix_count)
    durations: List[float] = []
    for idx in range(fix_count):
        lat, lon = route.points[min(idx * stride, point_count - 1)]
        clock.advance(1.0)
        fix = LocationFix(latitude=lat, longitude=lon, timestamp=clock(), speed=5.0)
        start = time.perf_counter()
        session.process_fix(fix)
        durations.append((time.perf_counter() - start) * 1000.0)

    return BenchmarkSummary(
        point_count=point_count,
        fixes=fix_count,
        prepare_route_ms=prepare_ms,
        mean_fix_ms=statistics.fmean(durations),
        median_fix_ms=statistics.median(durations),
        worst_fix_ms=max(durations),
    )


def _format_summary(summary: BenchmarkSummary) -> Dict[str, float]:
    return {
        "point_count": summary.point_count,
        "fixes": summary.fixes,
        "prepare_route_ms": summary.prepare_route_ms,
        "mean_fix_ms": summary.mean_fix_ms,
        "median_fix_ms": summary.median_fix_ms,
        "worst_fix_ms": summary.worst_fix_ms,
    }


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Benchmark navigation fix processing on long routes",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=20000,
        help="Number of points in the synthetic route",
    )
    parser.add_argument(
        "--fixes",
        type=int,
        default=2000,
        help="Number of fixes replayed along the route",
    )
    return parser.parse_args()


def main() -> None:
    """Entry point when running the module as a script."""

    args = _parse_args()
    summary = run_benchmark(args.points, args.fixes)
    formatted = _format_summary(summary)
    for key, value in formatted.items():
        if key in {"point_count", "fixes"}:
            print(f"{key}: {value}")
        else:
            print(f"{key}: {value:.3f}")


if __name__ == "__main__":
    main()
