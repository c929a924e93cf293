#!/usr/bin/env python3
"""
Trade Watch Script.

Subscribes to the DEX trade feed and prints the large trades with
their profit evaluation, without submitting any transfer.
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from whalewatch.config.constants import LAMPORTS_PER_SOL, MAX_PENDING_BATCHES
from whalewatch.config.settings import get_settings
from whalewatch.core.types import TradeBatch
from whalewatch.ledger.client import SolanaLedgerClient
from whalewatch.market.feed import GraphQLFeed, build_subscription_query
from whalewatch.market.subscriber import filter_large_trades
from whalewatch.strategy.evaluator import evaluate_trade


MAX_MESSAGES = 20


async def main() -> int:
    """Watch the feed and display evaluations."""
    print("=" * 60)
    print("  LARGE TRADE WATCH")
    print("=" * 60)
    print()

    # Load settings
    try:
        settings = get_settings()
    except Exception as e:
        print(f"Error loading settings: {e}")
        print("Make sure .env file exists with wallet settings")
        return 1

    async with SolanaLedgerClient.from_secret(
        settings.rpc_url,
        settings.wallet_secret_key.get_secret_value(),
    ) as ledger:
        lamports = await ledger.get_balance()
        print(f"Wallet:  {ledger.wallet_address}")
        print(f"Balance: {lamports / LAMPORTS_PER_SOL:.4f} SOL")
        print()

    feed = GraphQLFeed(
        url=settings.feed_url,
        query=build_subscription_query(settings.token_mint, settings.side_mint),
        token=settings.feed_token.get_secret_value() if settings.feed_token else None,
    )
    channel: asyncio.Queue[TradeBatch | None] = asyncio.Queue(maxsize=MAX_PENDING_BATCHES)

    print(f"Watching trades >= {settings.large_transaction_threshold_usd:,.0f} USD "
          f"for {MAX_MESSAGES} messages...")
    print()

    messages = 0
    seen = 0
    actionable = 0

    await feed.start(channel)
    try:
        while messages < MAX_MESSAGES:
            batch = await channel.get()
            if batch is None:
                print("Feed ended")
                break

            messages += 1
            for trade in filter_large_trades(batch, settings.large_transaction_threshold_usd):
                seen += 1
                evaluation = evaluate_trade(
                    trade,
                    settings.fixed_fee_per_transaction,
                    settings.slippage_tolerance,
                )
                if evaluation.actionable:
                    actionable += 1

                ratio = (
                    f"{evaluation.slippage_ratio:+.4%}"
                    if evaluation.slippage_ratio is not None
                    else "n/a"
                )
                marker = "*" if evaluation.actionable else " "
                print(
                    f"{marker} {trade.amount:>14.4f} {trade.currency_symbol:<8} "
                    f"price={trade.price:<12.4f} usd={trade.price_in_usd:<12.2f} "
                    f"net={evaluation.net_profit:<14.6f} slippage={ratio}"
                )
    finally:
        await feed.stop()

    # Summary
    print()
    print("=" * 60)
    print("  SUMMARY")
    print("=" * 60)
    print()
    print(f"Messages:     {messages}")
    print(f"Large trades: {seen}")
    print(f"Actionable:   {actionable}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
