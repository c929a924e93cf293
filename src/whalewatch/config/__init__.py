"""Configuration module for the trade watcher."""

from whalewatch.config.constants import (
    BITQUERY_STREAM_URL,
    DEFAULT_BALANCE_FLOOR_THRESHOLD,
    LAMPORTS_PER_SOL,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
)
from whalewatch.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "BITQUERY_STREAM_URL",
    "DEFAULT_BALANCE_FLOOR_THRESHOLD",
    "LAMPORTS_PER_SOL",
    "MIN_RECONNECT_DELAY",
    "MAX_RECONNECT_DELAY",
]
