"""Cycling turn-by-turn navigation core."""

from .errors import NavigationError, RouteFormatError, TrackFormatError
from .models import LocationFix, ManeuverInstruction, NavigationState, RouteResult
from .navigator import NavigationPhase, NavigationSession, NavigationSettings

__all__ = [
    "LocationFix",
    "ManeuverInstruction",
    "NavigationError",
    "NavigationPhase",
    "NavigationSession",
    "NavigationSettings",
    "NavigationState",
    "RouteFormatError",
    "RouteResult",
    "TrackFormatError",
]
