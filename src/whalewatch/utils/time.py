"""
Clock helpers.

Wall-clock timestamps for snapshots and signatures, and a
monotonic timer for submission latency.
"""

import time


def get_timestamp_us() -> int:
    """Current Unix time in microseconds."""
    return time.time_ns() // 1000


class LatencyTimer:
    """
    Measures elapsed time of a block on the monotonic clock.

    Example:
        >>> with LatencyTimer() as timer:
        ...     pass
        >>> timer.latency_ms >= 0
        True
    """

    __slots__ = ("_started_ns", "_elapsed_ns")

    def __init__(self) -> None:
        self._started_ns = 0
        self._elapsed_ns = 0

    def __enter__(self) -> "LatencyTimer":
        self._started_ns = time.perf_counter_ns()
        return self

    def __exit__(self, *args: object) -> None:
        self._elapsed_ns = time.perf_counter_ns() - self._started_ns

    @property
    def latency_ms(self) -> float:
        """Elapsed milliseconds, zero until the block exits."""
        return self._elapsed_ns / 1_000_000
