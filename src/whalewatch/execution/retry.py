"""
Retry with exponential backoff for outbound ledger calls.

Generic wrapper with no knowledge of balances or trades: it only
sees a coroutine factory that may raise.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from whalewatch.config.constants import (
    DEFAULT_INITIAL_RETRY_DELAY_MS,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    RETRY_MULTIPLIER,
)
from whalewatch.core.types import RetryState


logger = logging.getLogger(__name__)


T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
SleepFunc = Callable[[float], Awaitable[None]]


class ResilientExecutor:
    """
    Runs an operation until it succeeds or attempts run out.

    Backoff is pure exponential with no jitter: the delay before
    attempt i (1-indexed, i > 1) is initial_delay_ms * 2^(i-2).
    The last failure is re-raised unchanged.
    """

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        initial_delay_ms: float = DEFAULT_INITIAL_RETRY_DELAY_MS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """
        Initialize executor.

        Args:
            max_attempts: Default number of attempts per operation.
            initial_delay_ms: Default delay after the first failure.
            sleep: Awaitable sleep taking seconds.
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self._max_attempts = max_attempts
        self._initial_delay_ms = initial_delay_ms
        self._sleep = sleep

        # Statistics
        self._total_retries = 0
        self._total_failures = 0

    async def execute(
        self,
        operation: Operation[T],
        max_attempts: int | None = None,
        initial_delay_ms: float | None = None,
        description: str = "operation",
    ) -> T:
        """
        Execute an operation with retries.

        Args:
            operation: Zero-argument callable returning an awaitable.
            max_attempts: Override of the default attempt count.
            initial_delay_ms: Override of the default first delay.
            description: Label used in log lines.

        Returns:
            The first successful result.

        Raises:
            Exception: The error of the final attempt.
        """
        attempts = self._max_attempts if max_attempts is None else max_attempts
        if attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {attempts}")

        state = RetryState(
            attempt=0,
            delay_ms=self._initial_delay_ms if initial_delay_ms is None else initial_delay_ms,
        )

        while True:
            state.attempt += 1
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if state.attempt >= attempts:
                    self._total_failures += 1
                    logger.error(
                        f"{description} failed after {state.attempt}/{attempts} attempts: {e}"
                    )
                    raise

                logger.warning(
                    f"{description} attempt {state.attempt}/{attempts} failed: {e}. "
                    f"Retrying in {state.delay_ms:.0f}ms"
                )
                self._total_retries += 1
                await self._sleep(state.delay_ms / 1000)
                state.delay_ms *= RETRY_MULTIPLIER

    @property
    def stats(self) -> dict[str, int]:
        """Get retry statistics."""
        return {
            "retries": self._total_retries,
            "failures": self._total_failures,
        }
