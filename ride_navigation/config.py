"""Central configuration for the ride navigation core.

All values are constants imported by the rest of the package. Each one can be
overridden through an environment variable of the same name (optionally via a
local `.env`). Per-session overrides go through ``NavigationSettings``.
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Breadcrumb trail
# ---------------------------------------------------------------------------
# Maximum breadcrumbs kept for travel direction inference.
MAX_BREADCRUMBS = _env_int("MAX_BREADCRUMBS", 5)

# A new fix must be this far (metres) from the last breadcrumb to be stored.
MIN_BREADCRUMB_DISTANCE_M = _env_float("MIN_BREADCRUMB_DISTANCE_M", 5.0)

# Breadcrumbs older than this many seconds are evicted.
BREADCRUMB_MAX_AGE_SECONDS = _env_float("BREADCRUMB_MAX_AGE_SECONDS", 20.0)

# Oldest-to-newest displacement (metres) required before a bearing is trusted.
MIN_TRAVEL_DISTANCE_M = _env_float("MIN_TRAVEL_DISTANCE_M", 8.0)

# Weight given to the new bearing when smoothing. 0.7 suits the 2D map, the
# 3D map uses the more responsive 0.9.
BEARING_SMOOTHING_RATIO = _env_float("BEARING_SMOOTHING_RATIO", 0.7)
BEARING_SMOOTHING_RATIO_3D = _env_float("BEARING_SMOOTHING_RATIO_3D", 0.9)

# Emit DEBUG records for every bearing calculation.
BEARING_LOGGING_ENABLED = _env_bool("BEARING_LOGGING_ENABLED", False)


# ---------------------------------------------------------------------------
# Snap-to-route
# ---------------------------------------------------------------------------
# Fixes further than this (metres) from the route are off-route.
SNAP_MAX_DISTANCE_M = _env_float("SNAP_MAX_DISTANCE_M", 20.0)

# Segments searched either side of the current segment index.
SNAP_WINDOW_SIZE = _env_int("SNAP_WINDOW_SIZE", 50)

# Off-route must persist this long (seconds) before the dialog is raised.
OFF_ROUTE_DIALOG_DELAY_SECONDS = _env_float("OFF_ROUTE_DIALOG_DELAY_SECONDS", 5.0)

# Maximum number of prepared route geometries kept in memory.
ROUTE_CACHE_SIZE = _env_int("ROUTE_CACHE_SIZE", 16)


# ---------------------------------------------------------------------------
# Speed, statistics and ETA
# ---------------------------------------------------------------------------
# Samples at or above this speed (m/s) count as moving.
MOVING_SPEED_THRESHOLD_MPS = _env_float("MOVING_SPEED_THRESHOLD_MPS", 0.5)

# Speeds above this are GPS glitches for a bicycle.
MAX_PLAUSIBLE_SPEED_KMH = _env_float("MAX_PLAUSIBLE_SPEED_KMH", 60.0)

# Used for the ETA when the live speed is unusable (15 km/h).
DEFAULT_CRUISING_SPEED_MPS = _env_float("DEFAULT_CRUISING_SPEED_MPS", 4.17)

# Seconds of navigation data required before an ETA range is reported.
ETA_RANGE_MIN_ELAPSED_SECONDS = _env_float("ETA_RANGE_MIN_ELAPSED_SECONDS", 30.0)


# ---------------------------------------------------------------------------
# Arrival detection
# ---------------------------------------------------------------------------
# Remaining distance (metres) under which the rider is approaching.
APPROACH_DISTANCE_M = _env_float("APPROACH_DISTANCE_M", 50.0)

# Remaining distance (metres) defining the arrival zone.
ARRIVAL_DISTANCE_M = _env_float("ARRIVAL_DISTANCE_M", 10.0)

# Time (seconds) the rider must stay in the arrival zone.
ARRIVAL_DWELL_SECONDS = _env_float("ARRIVAL_DWELL_SECONDS", 3.0)

# Fixes reporting a worse accuracy (metres) cannot enter the arrival zone.
ARRIVAL_ACCURACY_M = _env_float("ARRIVAL_ACCURACY_M", 10.0)

# When True, fixes without an accuracy estimate cannot enter the arrival zone.
ARRIVAL_REQUIRES_ACCURACY = _env_bool("ARRIVAL_REQUIRES_ACCURACY", False)

# Arrival is only confirmed below this speed (km/h).
ARRIVAL_MAX_SPEED_KMH = _env_float("ARRIVAL_MAX_SPEED_KMH", 5.0)


# ---------------------------------------------------------------------------
# Maneuver detection
# ---------------------------------------------------------------------------
# Bearing changes (degrees) separating slight, normal and sharp turns.
SLIGHT_TURN_ANGLE = _env_float("SLIGHT_TURN_ANGLE", 20.0)
MEDIUM_TURN_ANGLE = _env_float("MEDIUM_TURN_ANGLE", 45.0)
SHARP_TURN_ANGLE = _env_float("SHARP_TURN_ANGLE", 120.0)
U_TURN_ANGLE = _env_float("U_TURN_ANGLE", 150.0)

# Legs shorter than this (metres) are ignored when detecting turns.
MIN_MANEUVER_SEGMENT_M = _env_float("MIN_MANEUVER_SEGMENT_M", 10.0)


# ---------------------------------------------------------------------------
# Replay tooling
# ---------------------------------------------------------------------------
# Directory where replay maps are written when no output path is given.
REPLAY_OUTPUT_DIR = os.getenv("REPLAY_OUTPUT_DIR", "replay_maps")
