"""Mock implementations for testing."""

from tests.mocks.feed import MockFeedTransport, make_trade
from tests.mocks.ledger import MockLedgerClient


__all__ = [
    "MockFeedTransport",
    "MockLedgerClient",
    "make_trade",
]
