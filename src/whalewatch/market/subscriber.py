"""
Long-lived subscription loop.

Consumes trade batches from the transport channel one at a time,
consults the balance guard before each, and hands large trades to
the evaluator until the guard says STOP.
"""

import asyncio
import logging
from collections.abc import Sequence

from whalewatch.config.constants import (
    DEFAULT_LARGE_TRANSACTION_THRESHOLD_USD,
    MAX_PENDING_BATCHES,
)
from whalewatch.core.types import (
    FeedTransport,
    GuardDecision,
    SubscriberState,
    TradeBatch,
    TradeRecord,
)
from whalewatch.execution.guard import BalanceGuard
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.market.feed import put_latest
from whalewatch.strategy.evaluator import OpportunityEvaluator
from whalewatch.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


def filter_large_trades(
    trades: Sequence[TradeRecord],
    threshold_usd: float,
) -> list[TradeRecord]:
    """Keep trades whose USD price reaches the threshold, in order."""
    return [trade for trade in trades if trade.price_in_usd >= threshold_usd]


class FeedSubscriber:
    """
    State machine driving the whole pipeline.

    INITIALIZING -> SUBSCRIBED -> (EVALUATING per message) -> STOPPED.
    STOPPED is terminal: the transport is disposed before run()
    returns and no later message is evaluated.
    """

    def __init__(
        self,
        transport: FeedTransport,
        guard: BalanceGuard,
        evaluator: OpportunityEvaluator,
        executor: ResilientExecutor,
        large_transaction_threshold_usd: float = DEFAULT_LARGE_TRANSACTION_THRESHOLD_USD,
        metrics: MetricsCollector | None = None,
        max_pending_batches: int = MAX_PENDING_BATCHES,
    ) -> None:
        """
        Initialize subscriber.

        Args:
            transport: Subscription transport.
            guard: Balance circuit breaker.
            evaluator: Opportunity evaluator.
            executor: Retrying executor for balance queries.
            large_transaction_threshold_usd: Minimum USD price to evaluate.
            metrics: Optional metrics collector.
            max_pending_batches: Channel capacity; the oldest batch is
                dropped when a new one arrives at capacity.
        """
        self._transport = transport
        self._guard = guard
        self._evaluator = evaluator
        self._executor = executor
        self._threshold = large_transaction_threshold_usd
        self._metrics = metrics or MetricsCollector()

        self._channel: asyncio.Queue[TradeBatch | None] = asyncio.Queue(
            maxsize=max_pending_batches
        )
        self._state = SubscriberState.INITIALIZING
        self._stop_requested = False

    @property
    def state(self) -> SubscriberState:
        """Get current lifecycle state."""
        return self._state

    @property
    def channel(self) -> "asyncio.Queue[TradeBatch | None]":
        """Channel the transport feeds."""
        return self._channel

    async def run(self) -> None:
        """
        Initialize the guard, subscribe and process messages until STOP.

        Raises:
            Exception: If the initial balance cannot be read.
        """
        self._state = SubscriberState.INITIALIZING

        await self._executor.execute(self._guard.initialize, description="initial balance query")

        logger.info("Subscribing to transaction feed...")
        await self._transport.start(self._channel)
        self._state = SubscriberState.SUBSCRIBED

        try:
            while not self._stop_requested:
                batch = await self._channel.get()

                if batch is None:
                    logger.info("Trade feed ended")
                    break

                if not await self._process_message(batch):
                    break
        finally:
            await self._close()

    async def _process_message(self, batch: TradeBatch) -> bool:
        """
        Evaluate one message.

        Returns:
            False once the guard decided to stop.
        """
        self._state = SubscriberState.EVALUATING
        self._metrics.increment_counter("messages_received")

        try:
            decision = await self._executor.execute(
                self._guard.check_condition, description="balance check"
            )
        except Exception as e:
            # Never act without a fresh balance reading
            self._metrics.increment_counter("messages_skipped")
            logger.error(f"Balance check failed, skipping message: {e}")
            self._state = SubscriberState.SUBSCRIBED
            return True

        if decision is GuardDecision.STOP:
            return False

        self._metrics.increment_counter("trades_received", len(batch))
        large_trades = filter_large_trades(batch, self._threshold)

        if large_trades:
            self._metrics.increment_counter("trades_large", len(large_trades))
            logger.info(f"Processing {len(large_trades)} large transactions...")
            try:
                await self._evaluator.process_batch(large_trades)
            except Exception:
                self._metrics.increment_counter("batch_errors")
                logger.exception("Batch evaluation aborted by a failed submission")

        self._state = SubscriberState.SUBSCRIBED
        return True

    async def _close(self) -> None:
        """Dispose the subscription and enter the terminal state."""
        if self._state is SubscriberState.STOPPED:
            return

        await self._transport.stop()
        self._state = SubscriberState.STOPPED
        logger.info("Feed subscriber stopped")

    def stop(self) -> None:
        """Request shutdown from outside the loop."""
        self._stop_requested = True
        put_latest(self._channel, None)
