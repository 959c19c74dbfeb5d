"""Turn-by-turn navigation session.

``NavigationSession`` owns the active route, the breadcrumb tracker and the
current :class:`NavigationState`. Every location fix goes through
``process_fix`` which matches it against the route, advances the maneuver
sequence, updates the ride statistics and evaluates arrival. The result is a
new immutable state snapshot that is published to subscribers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
import logging
from typing import Callable, List, Optional, Tuple

from .breadcrumbs import BreadcrumbTracker
from .config import (
    APPROACH_DISTANCE_M,
    ARRIVAL_ACCURACY_M,
    ARRIVAL_DISTANCE_M,
    ARRIVAL_DWELL_SECONDS,
    ARRIVAL_MAX_SPEED_KMH,
    ARRIVAL_REQUIRES_ACCURACY,
    BEARING_LOGGING_ENABLED,
    BEARING_SMOOTHING_RATIO,
    BEARING_SMOOTHING_RATIO_3D,
    DEFAULT_CRUISING_SPEED_MPS,
    ETA_RANGE_MIN_ELAPSED_SECONDS,
    MAX_PLAUSIBLE_SPEED_KMH,
    MOVING_SPEED_THRESHOLD_MPS,
    OFF_ROUTE_DIALOG_DELAY_SECONDS,
    SNAP_MAX_DISTANCE_M,
    SNAP_WINDOW_SIZE,
)
from .geo import LatLon, distance_between, project_point_on_segment
from .maneuvers import (
    detect_maneuvers,
    distance_to_maneuver,
    find_next_maneuver,
    voice_instruction as build_voice_instruction,
)
from .models import LocationFix, NavigationState, RouteHazard, RouteResult
from .route_matching import PreparedRoute, RouteMatch, match_to_route, prepare_route
from .speed_policy import estimate_time_remaining, is_valid_speed, mps_to_kmh
from .utils import Clock, seconds_between, utc_now

StateListener = Callable[[NavigationState], None]
Unsubscribe = Callable[[], None]


@dataclass(slots=True)
class NavigationSettings:
    max_snap_distance_m: float = SNAP_MAX_DISTANCE_M
    snap_window_size: int = SNAP_WINDOW_SIZE
    moving_speed_threshold_mps: float = MOVING_SPEED_THRESHOLD_MPS
    max_plausible_speed_kmh: float = MAX_PLAUSIBLE_SPEED_KMH
    default_cruising_speed_mps: float = DEFAULT_CRUISING_SPEED_MPS
    approach_distance_m: float = APPROACH_DISTANCE_M
    arrival_distance_m: float = ARRIVAL_DISTANCE_M
    arrival_dwell_s: float = ARRIVAL_DWELL_SECONDS
    arrival_accuracy_m: float = ARRIVAL_ACCURACY_M
    arrival_requires_accuracy: bool = ARRIVAL_REQUIRES_ACCURACY
    arrival_max_speed_kmh: float = ARRIVAL_MAX_SPEED_KMH
    off_route_dialog_delay_s: float = OFF_ROUTE_DIALOG_DELAY_SECONDS
    eta_range_min_elapsed_s: float = ETA_RANGE_MIN_ELAPSED_SECONDS
    bearing_smoothing_ratio: float = BEARING_SMOOTHING_RATIO
    bearing_logging_enabled: bool = BEARING_LOGGING_ENABLED
    logger: logging.Logger | None = None

    @classmethod
    def for_3d_map(cls) -> "NavigationSettings":
        """Settings with the more responsive heading smoothing of the 3D view."""

        return cls(bearing_smoothing_ratio=BEARING_SMOOTHING_RATIO_3D)


class NavigationPhase(Enum):
    IDLE = "idle"
    ON_ROUTE = "on_route"
    OFF_ROUTE = "off_route"
    APPROACHING = "approaching"
    ARRIVED = "arrived"


@dataclass(frozen=True, slots=True)
class _RouteProgress:
    segment_index: int
    snapped_position: Optional[LatLon]
    remaining_m: float
    distance_to_next_m: float
    is_off_route: bool
    off_route_distance_m: float
    off_route_since: Optional[datetime]
    showing_dialog: bool


class NavigationSession:
    """Single-writer navigation state machine.

    Fixes must be fed sequentially from one thread; readers may grab
    ``state`` at any time since every update swaps in a new frozen snapshot.
    """

    def __init__(
        self,
        settings: NavigationSettings | None = None,
        clock: Clock = utc_now,
        tracker: BreadcrumbTracker | None = None,
    ) -> None:
        self.settings = settings or NavigationSettings()
        self._log = self.settings.logger or logging.getLogger(self.__class__.__name__)
        self._clock = clock
        self._tracker = tracker or BreadcrumbTracker(clock)
        self._state = NavigationState.initial()
        self._prepared: Optional[PreparedRoute] = None
        self._dialog_dismissed = False
        self._listeners: List[StateListener] = []
        self._arrival_listeners: List[StateListener] = []

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def tracker(self) -> BreadcrumbTracker:
        return self._tracker

    @property
    def phase(self) -> NavigationPhase:
        state = self._state
        if not state.is_navigating:
            return NavigationPhase.IDLE
        if state.has_arrived:
            return NavigationPhase.ARRIVED
        if state.is_off_route:
            return NavigationPhase.OFF_ROUTE
        if state.is_approaching_destination:
            return NavigationPhase.APPROACHING
        return NavigationPhase.ON_ROUTE

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        """Register ``listener`` for every new state; returns an unsubscribe."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def on_arrival(self, listener: StateListener) -> Unsubscribe:
        """Register ``listener`` to receive the arrival state exactly once."""

        self._arrival_listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._arrival_listeners:
                self._arrival_listeners.remove(listener)

        return _unsubscribe

    def voice_instruction(self) -> Optional[str]:
        state = self._state
        if not state.is_navigating or state.next_maneuver is None:
            return None
        return build_voice_instruction(state.next_maneuver, state.distance_to_next_maneuver)

    def upcoming_hazards(self, max_hazards: int = 5) -> List[RouteHazard]:
        """Hazards still ahead of the rider, nearest first."""

        state = self._state
        route = state.active_route
        if not state.is_navigating or route is None or self._prepared is None:
            return []
        travelled = max(self._prepared.total_length_m - state.total_distance_remaining, 0.0)
        ahead = [h for h in route.hazards if h.distance_along_route_m > travelled]
        ahead.sort(key=lambda h: h.distance_along_route_m)
        return ahead[: max(max_hazards, 0)]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_navigation(self, route: RouteResult) -> NavigationState:
        if len(route.points) < 2:
            self._log.warning(
                "Cannot start navigation: route has %d point(s), need at least 2",
                len(route.points),
            )
            return self._state

        self._tracker.clear()
        self._dialog_dismissed = False
        prepared = prepare_route(route)
        self._prepared = prepared
        maneuvers = tuple(route.maneuvers) or tuple(detect_maneuvers(route.points))
        start = route.points[0]
        next_maneuver = find_next_maneuver(maneuvers, 0)
        remaining = route.distance_m if route.distance_m > 0 else prepared.total_length_m
        state = NavigationState(
            is_navigating=True,
            active_route=route,
            current_position=start,
            snapped_position=start,
            current_segment_index=0,
            all_maneuvers=maneuvers,
            next_maneuver=next_maneuver,
            distance_to_next_maneuver=distance_to_maneuver(prepared, 0, start, next_maneuver),
            total_distance_remaining=remaining,
            estimated_time_remaining=int(round(max(route.duration_s, 0.0))),
            last_update_time=self._clock(),
            eta_range_min_elapsed_s=self.settings.eta_range_min_elapsed_s,
        )
        self._log.info(
            "Navigation started: %d points, %.0f m, %d maneuvers",
            len(route.points),
            remaining,
            len(maneuvers),
        )
        self._publish(state)
        return state

    def stop_navigation(self) -> NavigationState:
        was_navigating = self._state.is_navigating
        self._tracker.clear()
        self._prepared = None
        self._dialog_dismissed = False
        state = NavigationState.initial()
        if was_navigating:
            self._log.info("Navigation stopped")
        self._publish(state)
        return state

    def acknowledge_arrival(self) -> NavigationState:
        if not self._state.has_arrived:
            return self._state
        return self.stop_navigation()

    def dismiss_off_route_dialog(self) -> NavigationState:
        """Hide the off-route prompt until the rider rejoins the route."""

        if not self._state.is_navigating:
            return self._state
        self._dialog_dismissed = True
        if not self._state.showing_off_route_dialog:
            return self._state
        state = replace(self._state, showing_off_route_dialog=False)
        self._publish(state)
        return state

    # ------------------------------------------------------------------
    # Fix processing
    # ------------------------------------------------------------------

    def process_fix(self, fix: LocationFix) -> NavigationState:
        """Apply one location fix and return the resulting state.

        Args:
            fix: Latest sample from the location provider.

        Returns:
            The new state, or the current one unchanged when no navigation
            is active.
        """

        state = self._state
        route = state.active_route
        prepared = self._prepared
        if not state.is_navigating or route is None or prepared is None:
            return state

        settings = self.settings
        now = self._clock()
        position = fix.position
        elapsed = seconds_between(state.last_update_time, now)
        step_m = (
            distance_between(state.current_position, position)
            if state.current_position is not None
            else 0.0
        )

        speed = fix.speed
        if speed is None and elapsed > 0:
            speed = step_m / elapsed
        plausible = speed is None or is_valid_speed(speed, settings.max_plausible_speed_kmh)
        moving = (
            plausible and speed is not None and speed >= settings.moving_speed_threshold_mps
        )
        if not plausible:
            self._log.debug("Ignoring implausible speed %.2f m/s for smoothing", speed)

        heading = self._update_heading(fix, plausible, moving, state.current_heading)
        progress = self._match(fix, state, prepared, now)

        next_maneuver = find_next_maneuver(state.all_maneuvers, progress.segment_index)
        if (
            next_maneuver is not None
            and state.next_maneuver is not None
            and next_maneuver != state.next_maneuver
        ):
            self._log.info(
                "Passed maneuver %s, next %s at index %d",
                state.next_maneuver.type.value,
                next_maneuver.type.value,
                next_maneuver.route_point_index,
            )

        total_time = state.total_time_elapsed + elapsed
        traveled = state.total_distance_traveled + step_m
        time_moving = state.total_time_moving + (elapsed if moving else 0.0)
        distance_moving = state.total_distance_moving + (step_m if moving else 0.0)
        avg_with_stops = traveled / total_time if total_time > 0 else 0.0
        avg_without_stops = distance_moving / time_moving if time_moving > 0 else 0.0

        eta = estimate_time_remaining(
            progress.remaining_m,
            speed if moving else None,
            min_speed_mps=settings.moving_speed_threshold_mps,
            fallback_speed_mps=settings.default_cruising_speed_mps,
        )

        has_arrived, entry_time, approaching = self._evaluate_arrival(
            fix, speed, state, progress, now
        )

        new_state = replace(
            state,
            current_position=position,
            snapped_position=progress.snapped_position,
            current_speed=speed if plausible else None,
            current_heading=heading,
            current_segment_index=progress.segment_index,
            next_maneuver=next_maneuver,
            distance_to_next_maneuver=progress.distance_to_next_m,
            total_distance_remaining=progress.remaining_m,
            estimated_time_remaining=eta,
            is_off_route=progress.is_off_route,
            off_route_distance_m=progress.off_route_distance_m,
            showing_off_route_dialog=progress.showing_dialog,
            off_route_since=progress.off_route_since,
            last_update_time=now,
            is_approaching_destination=approaching,
            has_arrived=has_arrived,
            arrival_zone_entry_time=entry_time,
            average_speed_with_stops=avg_with_stops,
            average_speed_without_stops=avg_without_stops,
            total_distance_traveled=traveled,
            total_distance_moving=distance_moving,
            total_time_elapsed=total_time,
            total_time_moving=time_moving,
        )
        self._log.debug("Processed fix: %s", new_state)
        self._publish(new_state)
        if has_arrived and not state.has_arrived:
            self._log.info(
                "Arrived at destination after %.0f m in %.0f s",
                traveled,
                total_time,
            )
            self._notify_arrival(new_state)
        return new_state

    def _update_heading(
        self,
        fix: LocationFix,
        plausible: bool,
        moving: bool,
        previous: Optional[float],
    ) -> Optional[float]:
        travel_direction: Optional[float] = None
        if plausible:
            self._tracker.add_breadcrumb(fix)
            travel_direction = self._tracker.calculate_travel_direction(
                self.settings.bearing_smoothing_ratio,
                self.settings.bearing_logging_enabled,
            )
        if fix.heading is not None and moving and fix.heading >= 0:
            return fix.heading % 360.0
        if travel_direction is not None:
            return travel_direction
        return previous

    def _match(
        self,
        fix: LocationFix,
        state: NavigationState,
        prepared: PreparedRoute,
        now: datetime,
    ) -> _RouteProgress:
        settings = self.settings
        match: Optional[RouteMatch] = match_to_route(
            fix,
            prepared.points,
            state.current_segment_index,
            max_snap_distance_m=settings.max_snap_distance_m,
            window_size=settings.snap_window_size,
        )

        if match is not None and match.on_route:
            if state.is_off_route:
                self._log.info(
                    "Back on route at segment %d (%.1f m from route)",
                    match.segment_index,
                    match.distance_m,
                )
            self._dialog_dismissed = False
            segment_index = match.segment_index
            snapped = match.point
            if segment_index < state.current_segment_index:
                # Progress never rewinds; measure from the segment already reached.
                segment_index = state.current_segment_index
                snapped = project_point_on_segment(
                    fix.position,
                    prepared.points[segment_index],
                    prepared.points[segment_index + 1],
                )
            next_maneuver = find_next_maneuver(state.all_maneuvers, segment_index)
            return _RouteProgress(
                segment_index=segment_index,
                snapped_position=snapped,
                remaining_m=prepared.remaining_distance(segment_index, snapped),
                distance_to_next_m=distance_to_maneuver(
                    prepared, segment_index, snapped, next_maneuver
                ),
                is_off_route=False,
                off_route_distance_m=0.0,
                off_route_since=None,
                showing_dialog=False,
            )

        off_distance = (
            match.distance_m
            if match is not None
            else distance_between(fix.position, prepared.points[state.current_segment_index])
        )
        off_since = state.off_route_since or now
        if not state.is_off_route:
            self._log.info(
                "Off route: %.1f m from route near segment %d",
                off_distance,
                state.current_segment_index,
            )
        showing = (
            not self._dialog_dismissed
            and seconds_between(off_since, now) >= settings.off_route_dialog_delay_s
        )
        if showing and not state.showing_off_route_dialog:
            self._log.info("Off route for %.0f s, prompting rider", seconds_between(off_since, now))
        return _RouteProgress(
            segment_index=state.current_segment_index,
            snapped_position=None,
            remaining_m=state.total_distance_remaining,
            distance_to_next_m=state.distance_to_next_maneuver,
            is_off_route=True,
            off_route_distance_m=off_distance,
            off_route_since=off_since,
            showing_dialog=showing,
        )

    def _evaluate_arrival(
        self,
        fix: LocationFix,
        speed: Optional[float],
        state: NavigationState,
        progress: _RouteProgress,
        now: datetime,
    ) -> Tuple[bool, Optional[datetime], bool]:
        """Return ``(has_arrived, arrival_zone_entry_time, approaching)``."""

        settings = self.settings
        if state.has_arrived:
            return True, state.arrival_zone_entry_time, False

        if fix.accuracy is None:
            # Fixes without an accuracy estimate count as accurate unless required.
            accurate = not settings.arrival_requires_accuracy
        else:
            accurate = fix.accuracy < settings.arrival_accuracy_m
        slow = speed is None or mps_to_kmh(speed) < settings.arrival_max_speed_kmh
        in_zone = (
            not progress.is_off_route
            and progress.remaining_m < settings.arrival_distance_m
            and accurate
        )
        entry_time = state.arrival_zone_entry_time
        has_arrived = False
        if in_zone:
            if entry_time is None:
                entry_time = now
                self._log.debug("Entered arrival zone (%.1f m remaining)", progress.remaining_m)
            has_arrived = (
                slow and seconds_between(entry_time, now) >= settings.arrival_dwell_s
            )
        elif entry_time is not None:
            self._log.debug("Left arrival zone before dwell elapsed")
            entry_time = None

        approaching = not has_arrived and progress.remaining_m < settings.approach_distance_m
        return has_arrived, entry_time, approaching

    def _publish(self, state: NavigationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                self._log.exception("Navigation state listener failed")

    def _notify_arrival(self, state: NavigationState) -> None:
        for listener in list(self._arrival_listeners):
            try:
                listener(state)
            except Exception:
                self._log.exception("Arrival listener failed")


__all__ = [
    "NavigationPhase",
    "NavigationSession",
    "NavigationSettings",
    "StateListener",
]
