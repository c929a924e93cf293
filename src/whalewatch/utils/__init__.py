"""Utility functions for the trade watcher."""

from whalewatch.utils.time import LatencyTimer, get_timestamp_us


__all__ = [
    "LatencyTimer",
    "get_timestamp_us",
]
