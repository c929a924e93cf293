"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

import pytest
from solders.keypair import Keypair

from tests.mocks import MockLedgerClient, make_trade
from whalewatch.config.settings import Settings
from whalewatch.core.types import TradeRecord
from whalewatch.execution.guard import BalanceGuard
from whalewatch.execution.limiter import SubmissionLimiter
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.execution.submitter import OrderSubmitter
from whalewatch.strategy.evaluator import OpportunityEvaluator
from whalewatch.telemetry.metrics import MetricsCollector


# =============================================================================
# Async Utilities
# =============================================================================


class RecordingSleep:
    """Sleep replacement that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Instant sleep that remembers its delays."""
    return RecordingSleep()


# =============================================================================
# Wallet Fixtures
# =============================================================================


@pytest.fixture
def counterparty_address() -> str:
    """Fresh recipient public key."""
    return str(Keypair().pubkey())


@pytest.fixture
def wallet_secret() -> str:
    """Fresh wallet secret in base58."""
    return str(Keypair())


@pytest.fixture
def settings(wallet_secret: str, counterparty_address: str) -> Settings:
    """Settings that never touch the network or bind a port."""
    return Settings(
        _env_file=None,
        wallet_secret_key=wallet_secret,
        counterparty_address=counterparty_address,
        health_enabled=False,
        min_submission_spacing_ms=0,
        initial_retry_delay_ms=0,
    )


# =============================================================================
# Trade Fixtures
# =============================================================================


@pytest.fixture
def profitable_trade() -> TradeRecord:
    """10 SOL bought at 100, marked at 103 USD."""
    return make_trade(amount=10.0, price=100.0, price_in_usd=103.0)


@pytest.fixture
def large_trade() -> TradeRecord:
    """Trade above the default large-trade threshold."""
    return make_trade(amount=2.0, price=50000.0, price_in_usd=60000.0)


@pytest.fixture
def small_trade() -> TradeRecord:
    """Trade below the default large-trade threshold."""
    return make_trade(amount=1.0, price=100.0, price_in_usd=150.0)


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def metrics() -> MetricsCollector:
    """Fresh metrics collector."""
    return MetricsCollector()


@pytest.fixture
def mock_ledger() -> MockLedgerClient:
    """Ledger holding 10 SOL."""
    return MockLedgerClient(balances=[10.0])


@pytest.fixture
def executor(recording_sleep: RecordingSleep) -> ResilientExecutor:
    """Retrying executor with instant backoff."""
    return ResilientExecutor(max_attempts=5, initial_delay_ms=1000, sleep=recording_sleep)


@pytest.fixture
def limiter() -> SubmissionLimiter:
    """Limiter without spacing."""
    return SubmissionLimiter(max_concurrent=20, min_spacing_ms=0)


@pytest.fixture
def submitter(
    mock_ledger: MockLedgerClient,
    limiter: SubmissionLimiter,
    executor: ResilientExecutor,
    counterparty_address: str,
    metrics: MetricsCollector,
) -> OrderSubmitter:
    """Submitter wired to the mock ledger."""
    return OrderSubmitter(
        ledger=mock_ledger,
        limiter=limiter,
        executor=executor,
        counterparty_address=counterparty_address,
        metrics=metrics,
    )


@pytest.fixture
def evaluator(submitter: OrderSubmitter, metrics: MetricsCollector) -> OpportunityEvaluator:
    """Evaluator with 0.000005 SOL fee and 1% slippage tolerance."""
    return OpportunityEvaluator(
        submitter=submitter,
        fixed_fee_per_transaction=0.000005,
        slippage_tolerance=0.01,
        metrics=metrics,
    )


@pytest.fixture
def guard(mock_ledger: MockLedgerClient) -> BalanceGuard:
    """Guard over the mock ledger with the default floor."""
    return BalanceGuard(ledger=mock_ledger, floor_threshold=4.4)
