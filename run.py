#!/usr/bin/env python3
"""Convenience runner for replaying a recorded ride.

Usage:
    python run.py ROUTE.json FIXES.csv [--output map.html]
"""
import logging
import sys

from ride_navigation.tools.replay_track import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    sys.exit(main())
