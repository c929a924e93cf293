"""
Unit tests for BalanceGuard.

Tests the profit-target and capital-floor circuit breaker.
"""

import pytest

from tests.mocks import MockLedgerClient
from whalewatch.core.types import BalanceSnapshot, GuardDecision, GuardState
from whalewatch.execution.guard import BalanceGuard, GuardNotInitializedError
from whalewatch.ledger.client import LedgerError


class TestDecide:
    """Tests for the pure STOP/CONTINUE rule."""

    @pytest.fixture
    def state(self) -> GuardState:
        return GuardState(initial_balance=10.0, floor_threshold=4.4)

    @pytest.mark.parametrize(
        "balance,expected",
        [
            (10.0, GuardDecision.CONTINUE),
            (19.99, GuardDecision.CONTINUE),
            (20.0, GuardDecision.STOP),
            (25.0, GuardDecision.STOP),
            (4.41, GuardDecision.CONTINUE),
            (4.4, GuardDecision.STOP),
            (0.0, GuardDecision.STOP),
        ],
    )
    def test_thresholds(self, state: GuardState, balance: float, expected: GuardDecision) -> None:
        """Boundaries are inclusive on both sides."""
        assert BalanceGuard.decide(state, balance) is expected

    def test_decide_is_deterministic(self, state: GuardState) -> None:
        """Same inputs always yield the same decision."""
        decisions = {BalanceGuard.decide(state, 12.5) for _ in range(10)}
        assert decisions == {GuardDecision.CONTINUE}

    def test_initial_balance_below_floor(self) -> None:
        """A baseline at or below the floor stops immediately."""
        state = GuardState(initial_balance=4.0, floor_threshold=4.4)
        assert BalanceGuard.decide(state, 4.0) is GuardDecision.STOP

    def test_stop_reason(self, state: GuardState) -> None:
        """Stop reasons name the crossed threshold."""
        assert "doubled" in BalanceGuard.stop_reason(state, 20.0)
        assert "4.4" in BalanceGuard.stop_reason(state, 3.0)
        assert BalanceGuard.stop_reason(state, 10.0) == ""


class TestBalanceSnapshot:
    """Tests for lamport conversion."""

    def test_sol_conversion(self) -> None:
        """Lamports convert to SOL."""
        assert BalanceSnapshot(lamports=1_500_000_000).sol == 1.5

    def test_timestamp_set(self) -> None:
        """Snapshots are timestamped on creation."""
        assert BalanceSnapshot(lamports=1).timestamp_us > 0


class TestBalanceGuard:
    """Tests for BalanceGuard against a ledger."""

    @pytest.mark.asyncio
    async def test_initialize_captures_baseline(self) -> None:
        """Initialize stores the first reading."""
        guard = BalanceGuard(MockLedgerClient(balances=[10.0]), floor_threshold=4.4)

        initial = await guard.initialize()

        assert initial == 10.0
        assert guard.is_initialized
        assert guard.state == GuardState(initial_balance=10.0, floor_threshold=4.4)

    @pytest.mark.asyncio
    async def test_check_before_initialize_raises(self, guard: BalanceGuard) -> None:
        """Checking without a baseline is an error."""
        assert not guard.is_initialized

        with pytest.raises(GuardNotInitializedError):
            await guard.check_condition()

    @pytest.mark.asyncio
    async def test_profit_target_stops(self) -> None:
        """Doubling the balance stops trading."""
        ledger = MockLedgerClient(balances=[10.0, 20.5])
        guard = BalanceGuard(ledger, floor_threshold=4.4)

        await guard.initialize()
        decision = await guard.check_condition()

        assert decision is GuardDecision.STOP
        assert guard.last_snapshot is not None
        assert guard.last_snapshot.sol == 20.5

    @pytest.mark.asyncio
    async def test_floor_stops(self) -> None:
        """Falling to the floor stops trading."""
        ledger = MockLedgerClient(balances=[10.0, 4.3])
        guard = BalanceGuard(ledger, floor_threshold=4.4)

        await guard.initialize()

        assert await guard.check_condition() is GuardDecision.STOP

    @pytest.mark.asyncio
    async def test_within_band_continues(self) -> None:
        """Balances between floor and target continue."""
        ledger = MockLedgerClient(balances=[10.0, 12.0, 6.0])
        guard = BalanceGuard(ledger, floor_threshold=4.4)

        await guard.initialize()

        assert await guard.check_condition() is GuardDecision.CONTINUE
        assert await guard.check_condition() is GuardDecision.CONTINUE

    @pytest.mark.asyncio
    async def test_baseline_never_changes(self) -> None:
        """Later readings do not move the baseline."""
        ledger = MockLedgerClient(balances=[10.0, 15.0, 19.0])
        guard = BalanceGuard(ledger, floor_threshold=4.4)

        await guard.initialize()
        await guard.check_condition()
        await guard.check_condition()

        assert guard.state is not None
        assert guard.state.initial_balance == 10.0

    @pytest.mark.asyncio
    async def test_balance_failure_not_retried(self) -> None:
        """The guard itself performs a single query."""
        ledger = MockLedgerClient(balances=[10.0])
        guard = BalanceGuard(ledger, floor_threshold=4.4)
        await guard.initialize()

        ledger.balance_failures = 1

        with pytest.raises(LedgerError):
            await guard.check_condition()

        assert ledger.balance_calls == 2
