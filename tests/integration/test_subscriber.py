"""
Integration tests for the subscription pipeline.

Tests the full flow from feed messages through the balance guard
and evaluator down to ledger transfers.
"""

import asyncio
from collections.abc import Callable

import pytest

from tests.mocks import MockFeedTransport, MockLedgerClient, make_trade
from whalewatch.core.types import SubscriberState, TradeBatch
from whalewatch.execution.guard import BalanceGuard
from whalewatch.execution.limiter import SubmissionLimiter
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.execution.submitter import OrderSubmitter
from whalewatch.ledger.client import LedgerError
from whalewatch.market.subscriber import FeedSubscriber, filter_large_trades
from whalewatch.strategy.evaluator import OpportunityEvaluator
from whalewatch.telemetry.metrics import MetricsCollector


SubscriberFactory = Callable[..., FeedSubscriber]


@pytest.fixture
def make_subscriber(
    executor: ResilientExecutor,
    limiter: SubmissionLimiter,
    counterparty_address: str,
    metrics: MetricsCollector,
) -> SubscriberFactory:
    """Build a subscriber over the given ledger and transport."""

    def _make(
        ledger: MockLedgerClient,
        transport: MockFeedTransport,
        threshold_usd: float = 50000.0,
        max_pending_batches: int = 64,
    ) -> FeedSubscriber:
        submitter = OrderSubmitter(
            ledger=ledger,
            limiter=limiter,
            executor=executor,
            counterparty_address=counterparty_address,
            metrics=metrics,
        )
        evaluator = OpportunityEvaluator(
            submitter=submitter,
            fixed_fee_per_transaction=0.000005,
            slippage_tolerance=0.01,
            metrics=metrics,
        )
        return FeedSubscriber(
            transport=transport,
            guard=BalanceGuard(ledger, floor_threshold=4.4),
            evaluator=evaluator,
            executor=executor,
            large_transaction_threshold_usd=threshold_usd,
            metrics=metrics,
            max_pending_batches=max_pending_batches,
        )

    return _make


def scenario_d_batch() -> TradeBatch:
    """10 SOL bought at 100, marked at 103 USD."""
    return [make_trade(amount=10.0, price=100.0, price_in_usd=103.0)]


class TestFilterLargeTrades:
    """Tests for the large-trade filter."""

    def test_keeps_order_and_boundary(self) -> None:
        """Trades at or above the threshold survive, in order."""
        trades = [
            make_trade(amount=1.0, price_in_usd=60000.0),
            make_trade(amount=2.0, price_in_usd=49999.99),
            make_trade(amount=3.0, price_in_usd=50000.0),
        ]

        assert [t.amount for t in filter_large_trades(trades, 50000.0)] == [1.0, 3.0]

    def test_empty(self) -> None:
        """Empty input gives empty output."""
        assert filter_large_trades([], 50000.0) == []


class TestFeedSubscriber:
    """End-to-end tests for FeedSubscriber."""

    @pytest.mark.asyncio
    async def test_profit_target_halts(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Doubling the balance stops before any evaluation."""
        ledger = MockLedgerClient(balances=[10.0, 20.5])
        transport = MockFeedTransport(
            batches=[scenario_d_batch(), scenario_d_batch()],
            end_after=False,
        )
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert subscriber.state is SubscriberState.STOPPED
        assert transport.is_stopped
        assert ledger.send_calls == 0
        assert metrics.get_counter("messages_received") == 1

    @pytest.mark.asyncio
    async def test_floor_halts(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Falling to the floor stops before any evaluation."""
        ledger = MockLedgerClient(balances=[10.0, 4.3])
        transport = MockFeedTransport(batches=[scenario_d_batch()], end_after=False)
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert subscriber.state is SubscriberState.STOPPED
        assert ledger.send_calls == 0

    @pytest.mark.asyncio
    async def test_small_trades_ignored(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Trades below the USD threshold are never evaluated."""
        ledger = MockLedgerClient(balances=[10.0])
        transport = MockFeedTransport(batches=[[make_trade(price_in_usd=100.0)]])
        subscriber = make_subscriber(ledger, transport)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert ledger.send_calls == 0
        assert metrics.get_counter("trades_received") == 1
        assert metrics.get_counter("trades_large") == 0
        assert metrics.get_counter("opportunities_actionable") == 0

    @pytest.mark.asyncio
    async def test_actionable_trade_executes_pair(
        self,
        make_subscriber: SubscriberFactory,
        metrics: MetricsCollector,
        counterparty_address: str,
    ) -> None:
        """An actionable trade yields a buy transfer then a sell transfer."""
        ledger = MockLedgerClient(balances=[10.0])
        transport = MockFeedTransport(batches=[scenario_d_batch()])
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert ledger.transferred_lamports == [10_000_000_000, 10_000_000_000]
        assert ledger.recipients == [counterparty_address, counterparty_address]
        assert metrics.get_counter("pairs_completed") == 1
        assert subscriber.state is SubscriberState.STOPPED

    @pytest.mark.asyncio
    async def test_guard_checked_per_message(self, make_subscriber: SubscriberFactory) -> None:
        """One fresh balance reading per message, after the initial one."""
        ledger = MockLedgerClient(balances=[10.0])
        transport = MockFeedTransport(batches=[[], [], []])
        subscriber = make_subscriber(ledger, transport)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert ledger.balance_calls == 4

    @pytest.mark.asyncio
    async def test_messages_after_stop_ignored(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Once STOP is decided later messages are never processed."""
        ledger = MockLedgerClient(balances=[10.0, 12.0, 21.0, 12.0])
        transport = MockFeedTransport(
            batches=[scenario_d_batch(), scenario_d_batch(), scenario_d_batch()],
        )
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert metrics.get_counter("messages_received") == 2
        assert metrics.get_counter("pairs_completed") == 1
        assert len(ledger.sent) == 2

    @pytest.mark.asyncio
    async def test_failed_submission_keeps_running(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """An abandoned transfer is logged and the next message still runs."""
        ledger = MockLedgerClient(balances=[10.0], send_failures=5)
        transport = MockFeedTransport(batches=[scenario_d_batch(), scenario_d_batch()])
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert metrics.get_counter("batch_errors") == 1
        assert metrics.get_counter("pairs_broken") == 1
        assert metrics.get_counter("pairs_completed") == 1
        assert metrics.get_counter("messages_received") == 2

    @pytest.mark.asyncio
    async def test_failed_balance_check_skips_message(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Without a fresh balance the message is skipped, not acted on."""
        # Call 1 is the initial query; calls 2-6 exhaust the first check
        ledger = MockLedgerClient(balances=[10.0], failing_balance_calls=range(2, 7))
        transport = MockFeedTransport(batches=[scenario_d_batch(), scenario_d_batch()])
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert metrics.get_counter("messages_skipped") == 1
        assert metrics.get_counter("pairs_completed") == 1
        assert len(ledger.sent) == 2

    @pytest.mark.asyncio
    async def test_transient_balance_failure_retried(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """A flaky balance query is retried before deciding."""
        ledger = MockLedgerClient(balances=[10.0], failing_balance_calls={2})
        transport = MockFeedTransport(batches=[scenario_d_batch()])
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        await asyncio.wait_for(subscriber.run(), timeout=5)

        assert metrics.get_counter("messages_skipped") == 0
        assert metrics.get_counter("pairs_completed") == 1

    @pytest.mark.asyncio
    async def test_initial_balance_failure(self, make_subscriber: SubscriberFactory) -> None:
        """Without a baseline the subscriber never subscribes."""
        ledger = MockLedgerClient(balances=[10.0], balance_failures=10)
        transport = MockFeedTransport(batches=[scenario_d_batch()])
        subscriber = make_subscriber(ledger, transport)

        with pytest.raises(LedgerError):
            await subscriber.run()

        assert not transport.is_started
        assert ledger.balance_calls == 5

    @pytest.mark.asyncio
    async def test_external_stop(self, make_subscriber: SubscriberFactory) -> None:
        """stop() ends an idle subscription and disposes the transport."""
        ledger = MockLedgerClient(balances=[10.0])
        transport = MockFeedTransport(end_after=False)
        subscriber = make_subscriber(ledger, transport)

        task = asyncio.create_task(subscriber.run())
        while subscriber.state is not SubscriberState.SUBSCRIBED:
            await asyncio.sleep(0)

        subscriber.stop()
        await asyncio.wait_for(task, timeout=5)

        assert subscriber.state is SubscriberState.STOPPED
        assert transport.stop_calls == 1

    def test_stop_with_full_channel(self, make_subscriber: SubscriberFactory) -> None:
        """stop() delivers the end marker even when the backlog is full."""
        subscriber = make_subscriber(
            MockLedgerClient(balances=[10.0]), MockFeedTransport(), max_pending_batches=1
        )
        subscriber.channel.put_nowait(scenario_d_batch())

        subscriber.stop()

        assert subscriber.channel.get_nowait() is None

    @pytest.mark.asyncio
    async def test_live_injection(
        self, make_subscriber: SubscriberFactory, metrics: MetricsCollector
    ) -> None:
        """Messages delivered while running are processed in order."""
        ledger = MockLedgerClient(balances=[10.0])
        transport = MockFeedTransport(end_after=False)
        subscriber = make_subscriber(ledger, transport, threshold_usd=100.0)

        task = asyncio.create_task(subscriber.run())
        while subscriber.state is not SubscriberState.SUBSCRIBED:
            await asyncio.sleep(0)

        await transport.inject([make_trade(amount=1.0)])
        await transport.inject([make_trade(amount=2.0)])
        await transport.end()
        await asyncio.wait_for(task, timeout=5)

        assert ledger.transferred_lamports == [
            1_000_000_000,
            1_000_000_000,
            2_000_000_000,
            2_000_000_000,
        ]
