"""Market data module for the DEX trade feed."""

from whalewatch.market.feed import ConnectionState, FeedError, GraphQLFeed, build_subscription_query
from whalewatch.market.models import DexTradeEvent, parse_trade_batch
from whalewatch.market.subscriber import FeedSubscriber, filter_large_trades


__all__ = [
    "ConnectionState",
    "DexTradeEvent",
    "FeedError",
    "FeedSubscriber",
    "GraphQLFeed",
    "build_subscription_query",
    "filter_large_trades",
    "parse_trade_batch",
]
