"""Core module containing the engine and shared type definitions."""

from whalewatch.core.types import (
    BalanceSnapshot,
    FeedTransport,
    GuardDecision,
    GuardState,
    LedgerClient,
    LegRole,
    RetryState,
    SubmissionJob,
    SubscriberState,
    TradeBatch,
    TradeRecord,
)


__all__ = [
    "BalanceSnapshot",
    "FeedTransport",
    "GuardDecision",
    "GuardState",
    "LedgerClient",
    "LegRole",
    "RetryState",
    "SubmissionJob",
    "SubscriberState",
    "TradeBatch",
    "TradeRecord",
]
