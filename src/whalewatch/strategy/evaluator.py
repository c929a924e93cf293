"""
Opportunity evaluation for large DEX trades.

Computes net profit and slippage for each trade and, for the
actionable ones, submits a buy leg followed by a sell leg.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

from whalewatch.config.constants import (
    DEFAULT_FIXED_FEE_PER_TRANSACTION,
    DEFAULT_SLIPPAGE_TOLERANCE,
)
from whalewatch.core.types import LegRole, TradeRecord
from whalewatch.execution.submitter import InvalidTransferError, OrderSubmitter
from whalewatch.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Evaluation:
    """Profitability figures for one trade."""

    trade: TradeRecord
    buy_cost: float
    sell_revenue: float
    net_profit: float
    slippage_ratio: float | None
    actionable: bool


def evaluate_trade(
    trade: TradeRecord,
    fixed_fee_per_transaction: float = DEFAULT_FIXED_FEE_PER_TRANSACTION,
    slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE,
) -> Evaluation:
    """
    Compute profit figures for a trade.

    A zero or non-finite buy cost leaves the slippage ratio
    undefined and the trade non-actionable.

    Args:
        trade: Trade to evaluate.
        fixed_fee_per_transaction: Fee per leg in SOL.
        slippage_tolerance: Minimum revenue/cost ratio above 1.

    Returns:
        Evaluation with the actionable flag set.
    """
    buy_cost = trade.amount * trade.price
    sell_revenue = trade.amount * trade.price_in_usd
    net_profit = sell_revenue - buy_cost - 2 * fixed_fee_per_transaction

    if buy_cost == 0 or not math.isfinite(buy_cost) or not math.isfinite(sell_revenue):
        return Evaluation(trade, buy_cost, sell_revenue, net_profit, None, False)

    slippage_ratio = sell_revenue / buy_cost - 1
    actionable = net_profit > 0 and slippage_ratio >= slippage_tolerance

    return Evaluation(trade, buy_cost, sell_revenue, net_profit, slippage_ratio, actionable)


class OpportunityEvaluator:
    """
    Evaluates trades and triggers matched buy/sell transfers.

    Trades are processed one at a time in input order, and a sell
    leg only starts once its buy leg is confirmed.
    """

    __slots__ = ("_submitter", "_fee", "_slippage_tolerance", "_metrics")

    def __init__(
        self,
        submitter: OrderSubmitter,
        fixed_fee_per_transaction: float = DEFAULT_FIXED_FEE_PER_TRANSACTION,
        slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize evaluator.

        Args:
            submitter: Submitter for the buy and sell legs.
            fixed_fee_per_transaction: Fee per leg in SOL.
            slippage_tolerance: Minimum revenue/cost ratio above 1.
            metrics: Optional metrics collector.
        """
        self._submitter = submitter
        self._fee = fixed_fee_per_transaction
        self._slippage_tolerance = slippage_tolerance
        self._metrics = metrics or MetricsCollector()

    def evaluate(self, trade: TradeRecord) -> Evaluation:
        """Compute profit figures with this evaluator's fee and tolerance."""
        return evaluate_trade(trade, self._fee, self._slippage_tolerance)

    async def process_batch(self, trades: Sequence[TradeRecord]) -> None:
        """
        Evaluate trades sequentially and execute the actionable ones.

        Malformed trades and amounts that round to zero lamports are
        skipped. A failed leg propagates its error; the sell leg is
        never attempted after a failed buy.

        Args:
            trades: Trades in feed-delivered order.
        """
        for trade in trades:
            try:
                evaluation = self.evaluate(trade)
            except (ArithmeticError, TypeError, ValueError) as e:
                self._metrics.increment_counter("trades_rejected")
                logger.warning(f"Skipping malformed trade {trade!r}: {e}")
                continue

            if not evaluation.actionable:
                logger.debug(
                    f"Trade {trade.amount} {trade.currency_symbol} not actionable: "
                    f"net={evaluation.net_profit:.6f}, slippage={evaluation.slippage_ratio}"
                )
                continue

            try:
                self._submitter.build_job(trade.amount, LegRole.BUY)
            except InvalidTransferError as e:
                self._metrics.increment_counter("trades_rejected")
                logger.warning(f"Skipping untransferable trade {trade!r}: {e}")
                continue

            self._metrics.increment_counter("opportunities_actionable")
            logger.info(
                f"Profitable trade identified: {evaluation.net_profit:.6f} SOL "
                f"(slippage {evaluation.slippage_ratio:.4%}, {trade.amount} {trade.currency_symbol})"
            )

            await self._execute_pair(trade)

    async def _execute_pair(self, trade: TradeRecord) -> None:
        """Submit the buy leg, then the sell leg."""
        try:
            await self._submitter.submit_transfer(
                trade.amount, LegRole.BUY, price=trade.price, currency=trade.currency_symbol
            )
        except Exception:
            self._metrics.increment_counter("pairs_broken")
            logger.error(f"Buy leg failed for {trade.amount} {trade.currency_symbol}, sell leg skipped")
            raise

        try:
            await self._submitter.submit_transfer(
                trade.amount, LegRole.SELL, price=trade.price_in_usd, currency=trade.currency_symbol
            )
        except Exception:
            self._metrics.increment_counter("pairs_broken")
            logger.error(
                f"Sell leg failed for {trade.amount} {trade.currency_symbol} "
                f"after buy leg confirmed; position left open"
            )
            raise

        self._metrics.increment_counter("pairs_completed")

    @property
    def slippage_tolerance(self) -> float:
        """Minimum slippage ratio to act on."""
        return self._slippage_tolerance

    @property
    def fixed_fee(self) -> float:
        """Fee per leg."""
        return self._fee
