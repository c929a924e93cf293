"""Liveness endpoint module."""

from whalewatch.health.server import HealthServer, create_app


__all__ = [
    "HealthServer",
    "create_app",
]
