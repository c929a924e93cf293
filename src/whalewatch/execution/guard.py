"""
Balance-based circuit breaker.

Captures the starting balance once and halts all activity when the
balance doubles or falls to the capital floor.
"""

import logging

from whalewatch.config.constants import (
    DEFAULT_BALANCE_FLOOR_THRESHOLD,
    PROFIT_TARGET_MULTIPLIER,
)
from whalewatch.core.types import BalanceSnapshot, GuardDecision, GuardState, LedgerClient


logger = logging.getLogger(__name__)


class GuardNotInitializedError(RuntimeError):
    """Raised when a check runs before the baseline is captured."""


class BalanceGuard:
    """
    Decides STOP or CONTINUE from a fresh balance reading.

    The guard never retries a failed balance query; callers wrap
    it when they need resilience.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        floor_threshold: float = DEFAULT_BALANCE_FLOOR_THRESHOLD,
    ) -> None:
        """
        Initialize guard.

        Args:
            ledger: Ledger used for balance queries.
            floor_threshold: Balance in SOL at or below which to stop.
        """
        self._ledger = ledger
        self._floor_threshold = floor_threshold
        self._state: GuardState | None = None
        self._last_snapshot: BalanceSnapshot | None = None

    async def _fetch_balance(self) -> BalanceSnapshot:
        lamports = await self._ledger.get_balance()
        snapshot = BalanceSnapshot(lamports=lamports)
        self._last_snapshot = snapshot
        return snapshot

    async def initialize(self) -> float:
        """
        Capture the starting balance.

        Returns:
            Initial balance in SOL.
        """
        snapshot = await self._fetch_balance()
        self._state = GuardState(
            initial_balance=snapshot.sol,
            floor_threshold=self._floor_threshold,
        )
        logger.info(f"Initial balance: {snapshot.sol:.2f} SOL")
        return snapshot.sol

    async def check_condition(self) -> GuardDecision:
        """
        Compare the current balance against the baseline.

        Returns:
            GuardDecision.STOP when the balance doubled or hit the floor.

        Raises:
            GuardNotInitializedError: If initialize() was never called.
        """
        if self._state is None:
            raise GuardNotInitializedError("Balance guard used before initialize()")

        snapshot = await self._fetch_balance()
        decision = self.decide(self._state, snapshot.sol)

        if decision is GuardDecision.STOP:
            logger.warning(
                f"{self.stop_reason(self._state, snapshot.sol)}. Stopping transactions."
            )
        else:
            logger.debug(f"Balance {snapshot.sol:.4f} SOL within limits, continuing")

        return decision

    @staticmethod
    def decide(state: GuardState, current_balance: float) -> GuardDecision:
        """Pure STOP/CONTINUE rule."""
        if current_balance >= PROFIT_TARGET_MULTIPLIER * state.initial_balance:
            return GuardDecision.STOP
        if current_balance <= state.floor_threshold:
            return GuardDecision.STOP
        return GuardDecision.CONTINUE

    @staticmethod
    def stop_reason(state: GuardState, current_balance: float) -> str:
        """Describe which threshold a balance crosses."""
        if current_balance >= PROFIT_TARGET_MULTIPLIER * state.initial_balance:
            return f"Balance doubled ({current_balance:.4f} SOL)"
        if current_balance <= state.floor_threshold:
            return f"Balance dropped below {state.floor_threshold} SOL ({current_balance:.4f} SOL)"
        return ""

    @property
    def state(self) -> GuardState | None:
        """Baseline state, None before initialize()."""
        return self._state

    @property
    def is_initialized(self) -> bool:
        """Check whether the baseline was captured."""
        return self._state is not None

    @property
    def last_snapshot(self) -> BalanceSnapshot | None:
        """Most recent balance reading."""
        return self._last_snapshot
