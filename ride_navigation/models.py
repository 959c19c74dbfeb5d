"""Dataclasses describing fixes, routes, maneuvers and navigation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .config import ETA_RANGE_MIN_ELAPSED_SECONDS
from .geo import LatLon, format_maneuver_distance
from .speed_policy import mps_to_kmh, navigation_zoom

# Averages at or below this (m/s) are too slow to base an ETA on.
_ETA_MIN_AVERAGE_SPEED_MPS = 0.5


@dataclass(frozen=True, slots=True)
class LocationFix:
    """A single sample from the device location provider."""

    latitude: float
    longitude: float
    timestamp: datetime
    altitude: Optional[float] = None
    accuracy: Optional[float] = None
    speed: Optional[float] = None  # m/s
    heading: Optional[float] = None  # degrees, 0 = north

    @property
    def position(self) -> LatLon:
        return self.latitude, self.longitude

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "accuracy": self.accuracy,
            "speed": self.speed,
            "heading": self.heading,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Breadcrumb:
    """Spatially de-duplicated fix retained for direction inference."""

    position: LatLon
    timestamp: datetime
    speed: Optional[float] = None


class ManeuverType(Enum):
    STRAIGHT = "straight"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    SHARP_LEFT = "sharp_left"
    SHARP_RIGHT = "sharp_right"
    SLIGHT_LEFT = "slight_left"
    SLIGHT_RIGHT = "slight_right"
    U_TURN = "u_turn"
    ARRIVE = "arrive"
    DEPART = "depart"

    @property
    def voice_text(self) -> str:
        return _VOICE_TEXT[self]

    @property
    def icon(self) -> str:
        return _ICONS[self]


_VOICE_TEXT: Dict[ManeuverType, str] = {
    ManeuverType.STRAIGHT: "Continue straight",
    ManeuverType.TURN_LEFT: "Turn left",
    ManeuverType.TURN_RIGHT: "Turn right",
    ManeuverType.SHARP_LEFT: "Sharp left turn",
    ManeuverType.SHARP_RIGHT: "Sharp right turn",
    ManeuverType.SLIGHT_LEFT: "Keep left",
    ManeuverType.SLIGHT_RIGHT: "Keep right",
    ManeuverType.U_TURN: "Make a U-turn",
    ManeuverType.ARRIVE: "Arrived at your destination",
    ManeuverType.DEPART: "Start your route",
}

_ICONS: Dict[ManeuverType, str] = {
    ManeuverType.STRAIGHT: "↑",
    ManeuverType.TURN_LEFT: "↰",
    ManeuverType.TURN_RIGHT: "↱",
    ManeuverType.SHARP_LEFT: "⮪",
    ManeuverType.SHARP_RIGHT: "⮫",
    ManeuverType.SLIGHT_LEFT: "↖",
    ManeuverType.SLIGHT_RIGHT: "↗",
    ManeuverType.U_TURN: "↶",
    ManeuverType.ARRIVE: "\U0001f3c1",
    ManeuverType.DEPART: "\U0001f6b4",
}


@dataclass(frozen=True, slots=True)
class ManeuverInstruction:
    """A turn or instruction event tied to a route point."""

    type: ManeuverType
    instruction: str
    distance_m: float  # from route start
    location: LatLon
    route_point_index: int

    @property
    def distance_text(self) -> str:
        return format_maneuver_distance(self.distance_m)

    @property
    def voice_instruction(self) -> str:
        return self.type.voice_text


class RouteType(Enum):
    FASTEST = "fastest"
    SAFEST = "safest"
    SHORTEST = "shortest"


@dataclass(frozen=True, slots=True)
class RouteHazard:
    """Hazard annotated onto a route by an external collaborator."""

    hazard_id: str
    kind: str
    title: str
    location: LatLon
    distance_along_route_m: float
    distance_from_route_m: float = 0.0


@dataclass(frozen=True, slots=True)
class RouteResult:
    """Route polyline plus metadata supplied by the routing service."""

    points: Tuple[LatLon, ...]
    distance_m: float
    duration_s: float
    route_type: RouteType = RouteType.FASTEST
    maneuvers: Tuple[ManeuverInstruction, ...] = ()
    hazards: Tuple[RouteHazard, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def destination(self) -> Optional[LatLon]:
        return self.points[-1] if self.points else None

    @property
    def distance_km(self) -> str:
        return f"{self.distance_m / 1000:.2f}"

    @property
    def duration_min(self) -> str:
        return f"{self.duration_s / 60:.0f}"


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Immutable snapshot of turn-by-turn navigation.

    A new value is produced for every processed fix; readers never observe a
    partially applied update.
    """

    is_navigating: bool = False
    active_route: Optional[RouteResult] = None
    current_position: Optional[LatLon] = None
    snapped_position: Optional[LatLon] = None
    current_speed: Optional[float] = None
    current_heading: Optional[float] = None
    current_segment_index: int = 0
    all_maneuvers: Tuple[ManeuverInstruction, ...] = ()
    next_maneuver: Optional[ManeuverInstruction] = None
    distance_to_next_maneuver: float = 0.0
    total_distance_remaining: float = 0.0
    estimated_time_remaining: int = 0
    is_off_route: bool = False
    off_route_distance_m: float = 0.0
    showing_off_route_dialog: bool = False
    off_route_since: Optional[datetime] = None
    last_update_time: Optional[datetime] = None
    is_approaching_destination: bool = False
    has_arrived: bool = False
    arrival_zone_entry_time: Optional[datetime] = None
    average_speed_with_stops: float = 0.0
    average_speed_without_stops: float = 0.0
    total_distance_traveled: float = 0.0
    total_distance_moving: float = 0.0
    total_time_elapsed: float = 0.0
    total_time_moving: float = 0.0
    eta_range_min_elapsed_s: float = ETA_RANGE_MIN_ELAPSED_SECONDS

    @classmethod
    def initial(cls) -> "NavigationState":
        return cls()

    # ------------------------------------------------------------------
    # Derived display values
    # ------------------------------------------------------------------

    @property
    def remaining_distance_text(self) -> str:
        if self.total_distance_remaining < 1000:
            return f"{self.total_distance_remaining:.0f} m"
        return f"{self.total_distance_remaining / 1000:.1f} km"

    @property
    def remaining_time_text(self) -> str:
        return _minutes_text(self.estimated_time_remaining)

    @property
    def speed_kmh(self) -> float:
        if self.current_speed is None:
            return 0.0
        return mps_to_kmh(self.current_speed)

    @property
    def recommended_zoom(self) -> float:
        return navigation_zoom(self.current_speed or 0.0)

    @property
    def average_speed_with_stops_kmh(self) -> float:
        return mps_to_kmh(self.average_speed_with_stops)

    @property
    def average_speed_without_stops_kmh(self) -> float:
        return mps_to_kmh(self.average_speed_without_stops)

    @property
    def has_eta_range(self) -> bool:
        """True once enough navigation data exists for the dual ETA."""

        return self.total_time_elapsed >= self.eta_range_min_elapsed_s

    @property
    def speed_text(self) -> str:
        """Live speed, plus both averages once enough data exists."""

        live = f"{self.speed_kmh:.1f}"
        if not self.has_eta_range:
            return f"{live} km/h"
        with_stops = f"{self.average_speed_with_stops_kmh:.1f}"
        without_stops = f"{self.average_speed_without_stops_kmh:.1f}"
        return f"{live} km/h - (Avg: {with_stops}-{without_stops} km/h)"

    @property
    def estimated_arrival(self) -> Optional[datetime]:
        if not self.is_navigating or self.last_update_time is None:
            return None
        return self.last_update_time + timedelta(seconds=self.estimated_time_remaining)

    @property
    def eta_text(self) -> str:
        eta = self.estimated_arrival
        if eta is None:
            return "--:--"
        return eta.strftime("%H:%M")

    @property
    def eta_range_seconds(self) -> Tuple[int, int]:
        """Return ``(pessimistic, optimistic)`` seconds to arrival.

        The pessimistic bound uses the average including stops, the
        optimistic one the average excluding them. Either falls back to the
        single-point estimate while its average is unusable.
        """

        if self.total_distance_remaining <= 0:
            return 0, 0
        pessimistic = self.estimated_time_remaining
        if self.average_speed_with_stops > _ETA_MIN_AVERAGE_SPEED_MPS:
            pessimistic = int(
                round(self.total_distance_remaining / self.average_speed_with_stops)
            )
        optimistic = self.estimated_time_remaining
        if self.average_speed_without_stops > _ETA_MIN_AVERAGE_SPEED_MPS:
            optimistic = int(
                round(self.total_distance_remaining / self.average_speed_without_stops)
            )
        return pessimistic, optimistic

    @property
    def eta_range_text(self) -> str:
        """Clock-time arrival window, or the single ETA before 30 s of data."""

        if (
            not self.is_navigating
            or self.last_update_time is None
            or not self.has_eta_range
        ):
            return self.eta_text
        pessimistic, optimistic = self.eta_range_seconds
        late = (self.last_update_time + timedelta(seconds=pessimistic)).strftime("%H:%M")
        early = (self.last_update_time + timedelta(seconds=optimistic)).strftime("%H:%M")
        if late == early:
            return late
        return f"{late} - {early}"

    @property
    def remaining_time_range_text(self) -> str:
        if not self.has_eta_range:
            return self.remaining_time_text
        pessimistic, optimistic = self.eta_range_seconds
        optimistic_min = int(round(optimistic / 60))
        pessimistic_min = int(round(pessimistic / 60))
        if abs(pessimistic_min - optimistic_min) <= 1:
            return self.remaining_time_text
        if optimistic_min < 60 and pessimistic_min < 60:
            return f"{optimistic_min}-{pessimistic_min} min"
        opt_hours, opt_mins = divmod(optimistic_min, 60)
        pess_hours, pess_mins = divmod(pessimistic_min, 60)
        return f"{opt_hours}h{opt_mins}min - {pess_hours}h{pess_mins}min"

    @property
    def progress(self) -> float:
        """Fraction of the route completed, 0.0 to 1.0."""

        if self.active_route is None:
            return 0.0
        total = self.active_route.distance_m
        if total <= 0:
            return 1.0
        return min(max(1.0 - self.total_distance_remaining / total, 0.0), 1.0)

    def __str__(self) -> str:
        return (
            f"NavigationState(is_navigating={self.is_navigating}, "
            f"segment={self.current_segment_index}, "
            f"distance_to_next={self.distance_to_next_maneuver:.0f}m, "
            f"remaining={self.remaining_distance_text}, "
            f"is_off_route={self.is_off_route})"
        )


def _minutes_text(seconds: float) -> str:
    minutes = int(round(seconds / 60))
    if minutes <= 1:
        return "less than 1 min"
    if minutes < 60:
        return f"{minutes} min"
    hours, mins = divmod(minutes, 60)
    return f"{hours}h {mins}min"


__all__ = [
    "Breadcrumb",
    "LocationFix",
    "ManeuverInstruction",
    "ManeuverType",
    "NavigationState",
    "RouteHazard",
    "RouteResult",
    "RouteType",
]
