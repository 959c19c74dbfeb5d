"""Central error types used across the application."""

from __future__ import annotations


class NavigationError(RuntimeError):
    """Base error for the navigation package."""


class RouteFormatError(NavigationError):
    """Raised when a route payload or file cannot be turned into a route."""


class TrackFormatError(NavigationError):
    """Raised when a recorded fix track is missing required columns or values."""


__all__ = [
    "NavigationError",
    "RouteFormatError",
    "TrackFormatError",
]
