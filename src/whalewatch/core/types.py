"""
Type definitions for the trade watcher.

This module contains the dataclasses, enums and Protocol definitions
shared across components. Value types use slots=True and are frozen
where they must never change after creation.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

from solders.instruction import Instruction

from whalewatch.config.constants import LAMPORTS_PER_SOL
from whalewatch.utils.time import get_timestamp_us


# =============================================================================
# Enums
# =============================================================================


class GuardDecision(str, Enum):
    """Outcome of a balance guard check."""

    CONTINUE = "CONTINUE"
    STOP = "STOP"


class LegRole(str, Enum):
    """Role of a transfer within a buy/sell pair. Used for logging only."""

    BUY = "buy"
    SELL = "sell"


class SubscriberState(Enum):
    """Feed subscriber lifecycle state."""

    INITIALIZING = auto()
    SUBSCRIBED = auto()
    EVALUATING = auto()
    STOPPED = auto()


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class TradeRecord:
    """
    A single DEX trade received from the feed.

    Frozen: consumed once by the evaluator and never mutated.
    """

    amount: float
    price: float
    currency_symbol: str
    price_in_usd: float
    block_time: str | None = None

    @property
    def notional(self) -> float:
        """Trade value in quote units."""
        return self.amount * self.price


# Batch of trades delivered by one feed message
TradeBatch = list[TradeRecord]


# =============================================================================
# Balance Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class BalanceSnapshot:
    """Point-in-time account balance."""

    lamports: int
    timestamp_us: int = field(default_factory=get_timestamp_us)

    @property
    def sol(self) -> float:
        """Balance in SOL."""
        return self.lamports / LAMPORTS_PER_SOL


@dataclass(slots=True, frozen=True)
class GuardState:
    """
    Baseline captured once at startup.

    Every STOP/CONTINUE decision is a pure function of this state
    and a fresh balance reading.
    """

    initial_balance: float
    floor_threshold: float


# =============================================================================
# Submission Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class SubmissionJob:
    """A transfer of native asset to the counterparty."""

    amount: float
    lamports: int
    role: LegRole
    recipient: str
    price: float | None = None
    currency: str = ""


@dataclass(slots=True)
class RetryState:
    """Attempt counter owned by a single retried operation."""

    attempt: int = 0
    delay_ms: float = 0.0


# =============================================================================
# Protocols
# =============================================================================


class LedgerClient(Protocol):
    """Operations the core needs from the ledger."""

    async def get_balance(self) -> int:
        """Return the wallet balance in lamports."""
        ...

    async def send_and_confirm(self, instructions: Sequence[Instruction]) -> str:
        """Sign, send and confirm a transaction. Returns its signature."""
        ...

    async def signature_landed(self, signature: str) -> bool:
        """Whether a sent transaction is on the ledger without error."""
        ...

    @property
    def wallet_address(self) -> str:
        """Public key of the paying wallet."""
        ...


class FeedTransport(Protocol):
    """Subscription transport feeding trade batches into a channel."""

    async def start(self, channel: "asyncio.Queue[TradeBatch | None]") -> None:
        """Open the subscription. `None` on the channel marks its end."""
        ...

    async def stop(self) -> None:
        """Dispose the subscription."""
        ...
