"""Utility entry points for offline replay of recorded rides."""

from .replay_map import create_replay_map
from .replay_track import ReplayResult, replay_track

__all__ = ["ReplayResult", "create_replay_map", "replay_track"]
