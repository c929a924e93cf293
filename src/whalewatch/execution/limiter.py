"""
Concurrency and spacing limiter for ledger submissions.

Bounds the number of submissions in flight and the rate at which
new ones start, so bursts of buy/sell pairs reach the RPC endpoint
smoothly.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from whalewatch.config.constants import (
    DEFAULT_MAX_CONCURRENT_SUBMISSIONS,
    DEFAULT_MIN_SUBMISSION_SPACING_MS,
)


logger = logging.getLogger(__name__)


T = TypeVar("T")


class SubmissionLimiter:
    """
    First-come-first-served admission gate.

    An operation starts only when fewer than max_concurrent are
    running and at least min_spacing_ms have passed since the
    previous admitted start. Waiting operations are never dropped.
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT_SUBMISSIONS,
        min_spacing_ms: float = DEFAULT_MIN_SUBMISSION_SPACING_MS,
    ) -> None:
        """
        Initialize limiter.

        Args:
            max_concurrent: Maximum operations running at once.
            min_spacing_ms: Minimum gap between two operation starts.
        """
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        if min_spacing_ms < 0:
            raise ValueError(f"min_spacing_ms must be >= 0, got {min_spacing_ms}")

        self._max_concurrent = max_concurrent
        self._min_spacing = min_spacing_ms / 1000.0

        # Admission is serialized so the queue order is the arrival order
        self._admission = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrent)
        self._next_start: float | None = None

        self._in_flight = 0
        self._peak_in_flight = 0
        self._admitted = 0

    async def _admit(self) -> None:
        """Wait until both limits allow another start."""
        async with self._admission:
            await self._slots.acquire()

            try:
                loop = asyncio.get_running_loop()
                if self._next_start is not None:
                    wait_seconds = self._next_start - loop.time()
                    if wait_seconds > 0:
                        logger.debug(f"Spacing submission by {wait_seconds * 1000:.0f}ms")
                        await asyncio.sleep(wait_seconds)
            except BaseException:
                self._slots.release()
                raise

            self._next_start = loop.time() + self._min_spacing
            self._admitted += 1
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)

    async def schedule(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run an operation once admitted.

        Args:
            operation: Zero-argument callable returning an awaitable.

        Returns:
            The operation's result. Errors propagate unchanged.
        """
        await self._admit()

        try:
            return await operation()
        finally:
            self._in_flight -= 1
            self._slots.release()

    @property
    def max_concurrent(self) -> int:
        """Configured concurrency bound."""
        return self._max_concurrent

    @property
    def min_spacing_ms(self) -> float:
        """Configured spacing between starts."""
        return self._min_spacing * 1000.0

    @property
    def in_flight(self) -> int:
        """Operations currently running."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of operations seen running at once."""
        return self._peak_in_flight

    @property
    def admitted(self) -> int:
        """Total operations admitted so far."""
        return self._admitted
