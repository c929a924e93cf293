"""
Metrics collection for pipeline monitoring.

Tracks counters and submission latencies with efficient
in-memory storage.
"""

import time
from collections import deque
from dataclasses import dataclass


@dataclass
class LatencyStats:
    """Aggregated latency statistics."""

    min_ms: float = 0.0
    max_ms: float = 0.0
    avg_ms: float = 0.0
    p50_ms: float = 0.0
    p99_ms: float = 0.0
    count: int = 0


class MetricsCollector:
    """
    Collects pipeline counters and latencies.

    Counter names used by the pipeline:
    messages_received, messages_skipped, trades_received,
    trades_large, trades_rejected, opportunities_actionable,
    submissions_successful, submissions_failed, pairs_completed,
    pairs_broken, batch_errors.
    """

    def __init__(
        self,
        latency_window_size: int = 1000,
    ) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Number of samples to keep for latency stats.
        """
        self._window_size = latency_window_size
        self._latencies: dict[str, deque[float]] = {}
        self._counters: dict[str, int] = {}
        self._start_time = time.time()

    def record_latency(self, name: str, latency_ms: float) -> None:
        """
        Record a latency measurement.

        Args:
            name: Metric name (e.g., "submission").
            latency_ms: Latency in milliseconds.
        """
        if name not in self._latencies:
            self._latencies[name] = deque(maxlen=self._window_size)

        self._latencies[name].append(latency_ms)

    def increment_counter(self, name: str, value: int = 1) -> None:
        """
        Increment a counter.

        Args:
            name: Counter name.
            value: Amount to increment.
        """
        self._counters[name] = self._counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        """Get counter value."""
        return self._counters.get(name, 0)

    def get_latency_stats(self, name: str) -> LatencyStats:
        """
        Get aggregated statistics for a latency metric.

        Args:
            name: Metric name.

        Returns:
            LatencyStats, all zero if nothing was recorded.
        """
        samples = self._latencies.get(name)
        if not samples:
            return LatencyStats()

        sorted_samples = sorted(samples)
        n = len(sorted_samples)

        return LatencyStats(
            min_ms=sorted_samples[0],
            max_ms=sorted_samples[-1],
            avg_ms=sum(sorted_samples) / n,
            p50_ms=sorted_samples[n // 2],
            p99_ms=sorted_samples[min(n - 1, int(n * 0.99))],
            count=n,
        )

    @property
    def uptime_seconds(self) -> float:
        """Seconds since the collector was created."""
        return time.time() - self._start_time

    def to_dict(self) -> dict[str, float | int]:
        """Convert counters to dict for reporting."""
        data: dict[str, float | int] = dict(self._counters)
        data["uptime_seconds"] = round(self.uptime_seconds, 1)
        submission = self.get_latency_stats("submission")
        if submission.count:
            data["submission_avg_ms"] = round(submission.avg_ms, 1)
            data["submission_p99_ms"] = round(submission.p99_ms, 1)
        return data

    def reset(self) -> None:
        """Reset all metrics."""
        self._latencies.clear()
        self._counters.clear()
        self._start_time = time.time()
