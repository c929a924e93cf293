"""
Main watcher engine orchestrator.

Wires all components together and manages the process lifecycle.
"""

import asyncio
import logging
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from whalewatch.config.settings import Settings
from whalewatch.core.types import FeedTransport, LedgerClient
from whalewatch.execution.guard import BalanceGuard
from whalewatch.execution.limiter import SubmissionLimiter
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.execution.submitter import OrderSubmitter
from whalewatch.health.server import HealthServer
from whalewatch.ledger.client import SolanaLedgerClient
from whalewatch.market.feed import GraphQLFeed, build_subscription_query
from whalewatch.market.subscriber import FeedSubscriber
from whalewatch.strategy.evaluator import OpportunityEvaluator
from whalewatch.telemetry.logger import AsyncLogger, setup_logging
from whalewatch.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


class WhaleWatchEngine:
    """
    Main engine orchestrator.

    Manages the complete lifecycle of:
    - Ledger connectivity
    - Trade feed subscription
    - Opportunity evaluation and submission
    - Balance circuit breaker
    - Liveness endpoint
    """

    def __init__(
        self,
        settings: Settings,
        ledger: LedgerClient | None = None,
        transport: FeedTransport | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            settings: Application settings.
            ledger: Ledger client (default: Solana RPC client from settings).
            transport: Feed transport (default: GraphQL feed from settings).
        """
        self._settings = settings
        self._ledger = ledger
        self._transport = transport
        self._owns_ledger = ledger is None

        # Core components (initialized in setup)
        self._guard: BalanceGuard | None = None
        self._limiter: SubmissionLimiter | None = None
        self._executor: ResilientExecutor | None = None
        self._submitter: OrderSubmitter | None = None
        self._evaluator: OpportunityEvaluator | None = None
        self._subscriber: FeedSubscriber | None = None

        # Infrastructure
        self._metrics = MetricsCollector()
        self._health: HealthServer | None = None
        self._async_logger: AsyncLogger | None = None
        self._is_shut_down = False

    async def setup(self, configure_logging: bool = True) -> None:
        """
        Initialize all components.

        Args:
            configure_logging: Install the queue-based log handlers.
        """
        settings = self._settings

        if configure_logging:
            self._async_logger = setup_logging(
                level=settings.log_level,
                log_file=settings.log_file,
            )

        logger.info("Initializing trade watcher...")

        if self._ledger is None:
            self._ledger = SolanaLedgerClient.from_secret(
                settings.rpc_url,
                settings.wallet_secret_key.get_secret_value(),
            )
        logger.info(f"Wallet: {self._ledger.wallet_address}")

        if self._transport is None:
            self._transport = GraphQLFeed(
                url=settings.feed_url,
                query=build_subscription_query(settings.token_mint, settings.side_mint),
                token=settings.feed_token.get_secret_value() if settings.feed_token else None,
            )

        self._executor = ResilientExecutor(
            max_attempts=settings.max_retry_attempts,
            initial_delay_ms=settings.initial_retry_delay_ms,
        )

        self._limiter = SubmissionLimiter(
            max_concurrent=settings.max_concurrent_submissions,
            min_spacing_ms=settings.min_submission_spacing_ms,
        )

        self._submitter = OrderSubmitter(
            ledger=self._ledger,
            limiter=self._limiter,
            executor=self._executor,
            counterparty_address=settings.counterparty_address,
            metrics=self._metrics,
            dry_run=settings.dry_run,
        )

        self._evaluator = OpportunityEvaluator(
            submitter=self._submitter,
            fixed_fee_per_transaction=settings.fixed_fee_per_transaction,
            slippage_tolerance=settings.slippage_tolerance,
            metrics=self._metrics,
        )

        self._guard = BalanceGuard(
            ledger=self._ledger,
            floor_threshold=settings.balance_floor_threshold,
        )

        self._subscriber = FeedSubscriber(
            transport=self._transport,
            guard=self._guard,
            evaluator=self._evaluator,
            executor=self._executor,
            large_transaction_threshold_usd=settings.large_transaction_threshold_usd,
            metrics=self._metrics,
        )

        if settings.health_enabled:
            self._health = HealthServer(
                status_provider=self.status,
                host=settings.health_host,
                port=settings.health_port,
            )

        logger.info("Engine initialization complete")

    async def run(self) -> None:
        """Run until the circuit breaker trips, the feed ends or a signal arrives."""
        if self._subscriber is None:
            raise RuntimeError("Engine used before setup()")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_shutdown)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Signal handler for {sig.name} not supported here")

        try:
            if self._health:
                self._health.start()

            await self._subscriber.run()

        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.remove_signal_handler(sig)
                except (NotImplementedError, RuntimeError):
                    pass
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        if self._subscriber:
            self._subscriber.stop()

    async def shutdown(self) -> None:
        """Gracefully shut down the engine."""
        if self._is_shut_down:
            return
        self._is_shut_down = True

        logger.info("Shutting down engine...")

        if self._health:
            await self._health.stop()

        if self._owns_ledger and isinstance(self._ledger, SolanaLedgerClient):
            await self._ledger.close()

        logger.info(f"Final metrics: {self._metrics.to_dict()}")
        logger.info("Engine shutdown complete")

        if self._async_logger:
            self._async_logger.stop()

    def status(self) -> dict[str, Any]:
        """Snapshot for the liveness endpoint."""
        guard_state = self._guard.state if self._guard else None
        return {
            "state": self._subscriber.state.name if self._subscriber else "NOT_STARTED",
            "initial_balance": guard_state.initial_balance if guard_state else None,
            "dry_run": self._settings.dry_run,
            "in_flight_submissions": self._limiter.in_flight if self._limiter else 0,
            "metrics": self._metrics.to_dict(),
        }

    @property
    def subscriber(self) -> FeedSubscriber | None:
        """The feed subscriber, None before setup()."""
        return self._subscriber

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics


@asynccontextmanager
async def create_engine(settings: Settings) -> AsyncIterator[WhaleWatchEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            await engine.run()
    """
    engine = WhaleWatchEngine(settings)

    try:
        await engine.setup()
        yield engine
    finally:
        await engine.shutdown()
