"""Telemetry module for logging and metrics."""

from whalewatch.telemetry.logger import AsyncLogger, setup_logging
from whalewatch.telemetry.metrics import LatencyStats, MetricsCollector


__all__ = [
    "AsyncLogger",
    "LatencyStats",
    "MetricsCollector",
    "setup_logging",
]
