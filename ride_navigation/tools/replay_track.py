"""Replay a recorded ride through a navigation session."""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import REPLAY_OUTPUT_DIR
from ..errors import NavigationError
from ..models import LocationFix, NavigationState, RouteResult
from ..navigator import NavigationSession, NavigationSettings
from ..routes import load_fixes, load_route
from ..utils import ManualClock
from .replay_map import create_replay_map


@dataclass(slots=True)
class ReplayResult:
    """States produced while replaying a track, one per fix."""

    route: RouteResult
    fixes: List[LocationFix]
    states: List[NavigationState] = field(default_factory=list)
    off_route_fixes: int = 0
    arrived_at_fix: Optional[int] = None

    @property
    def final_state(self) -> Optional[NavigationState]:
        return self.states[-1] if self.states else None


def replay_track(
    route: RouteResult,
    fixes: Sequence[LocationFix],
    settings: NavigationSettings | None = None,
) -> ReplayResult:
    """Feed ``fixes`` through a fresh session whose clock follows fix time."""

    result = ReplayResult(route=route, fixes=list(fixes))
    if not fixes:
        return result

    clock = ManualClock(fixes[0].timestamp)
    session = NavigationSession(settings=settings, clock=clock)
    session.start_navigation(route)
    for index, fix in enumerate(fixes):
        clock.set(fix.timestamp)
        state = session.process_fix(fix)
        result.states.append(state)
        if state.is_off_route:
            result.off_route_fixes += 1
        if state.has_arrived and result.arrived_at_fix is None:
            result.arrived_at_fix = index
    return result


def _default_output_path(route_path: Path) -> Path:
    return Path(REPLAY_OUTPUT_DIR) / f"{route_path.stem}-replay.html"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Replay a recorded ride (CSV fixes) against a route (JSON) and"
            " report navigation progress."
        )
    )
    parser.add_argument("route", type=Path, help="Route JSON file")
    parser.add_argument("fixes", type=Path, help="CSV of timestamp,latitude,longitude[,...]")
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional output HTML map; defaults to replay_maps/<route>-replay.html",
    )
    parser.add_argument(
        "--no-map",
        action="store_true",
        help="Skip writing the HTML map",
    )
    parser.add_argument(
        "--snap-distance-m",
        type=float,
        help="Override the maximum snap distance (metres)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point used via ``python -m ride_navigation.tools.replay_track``."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )

    try:
        route = load_route(args.route)
        fixes = load_fixes(args.fixes)
    except NavigationError as exc:
        logging.error("Failed to load replay inputs: %s", exc)
        return 1

    settings = NavigationSettings()
    if args.snap_distance_m is not None:
        settings.max_snap_distance_m = args.snap_distance_m

    result = replay_track(route, fixes, settings)
    final = result.final_state
    if final is None:
        logging.warning("Track %s contains no fixes", args.fixes)
        return 0

    logging.info(
        "Replayed %d fixes: traveled %.0f m in %.0f s (moving %.0f s)",
        len(result.states),
        final.total_distance_traveled,
        final.total_time_elapsed,
        final.total_time_moving,
    )
    logging.info(
        "Average speed %.1f km/h with stops, %.1f km/h without",
        final.average_speed_with_stops_kmh,
        final.average_speed_without_stops_kmh,
    )
    logging.info("Off-route fixes: %d", result.off_route_fixes)
    if result.arrived_at_fix is not None:
        logging.info("Arrived at fix %d", result.arrived_at_fix)
    else:
        logging.info("Not arrived; %s remaining", final.remaining_distance_text)

    if not args.no_map:
        output_path = args.output or _default_output_path(args.route)
        create_replay_map(route, result.fixes, result.states, output_html_path=output_path)
        logging.info("Replay map written to %s", output_path)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
