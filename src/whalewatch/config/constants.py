"""
Trading constants and configuration values.

This module contains all hardcoded values used throughout the watcher.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Endpoints
# =============================================================================

SOLANA_RPC_DEVNET_URL: Final[str] = "https://api.devnet.solana.com"

BITQUERY_STREAM_URL: Final[str] = "wss://streaming.bitquery.io/eap"

# graphql-ws wire protocol
GRAPHQL_WS_SUBPROTOCOL: Final[str] = "graphql-transport-ws"
GRAPHQL_SUBSCRIPTION_ID: Final[str] = "1"


# =============================================================================
# Ledger Units
# =============================================================================

LAMPORTS_PER_SOL: Final[int] = 1_000_000_000


# =============================================================================
# Trading Constraints
# =============================================================================

# Trades below this USD price are ignored before evaluation
DEFAULT_LARGE_TRANSACTION_THRESHOLD_USD: Final[float] = 50_000.0

# Minimum revenue/cost ratio above 1 to act on (1%)
DEFAULT_SLIPPAGE_TOLERANCE: Final[float] = 0.01

# Flat network fee per submitted transaction, in SOL
DEFAULT_FIXED_FEE_PER_TRANSACTION: Final[float] = 0.000005

# Balance at or below which all activity halts, in SOL
DEFAULT_BALANCE_FLOOR_THRESHOLD: Final[float] = 4.4

# Balance multiple of the starting balance that halts activity
PROFIT_TARGET_MULTIPLIER: Final[float] = 2.0


# =============================================================================
# Submission Limits
# =============================================================================

DEFAULT_MAX_CONCURRENT_SUBMISSIONS: Final[int] = 20
DEFAULT_MIN_SUBMISSION_SPACING_MS: Final[int] = 500


# =============================================================================
# Retry Strategy
# =============================================================================

DEFAULT_MAX_RETRY_ATTEMPTS: Final[int] = 5
DEFAULT_INITIAL_RETRY_DELAY_MS: Final[int] = 1000
RETRY_MULTIPLIER: Final[int] = 2


# =============================================================================
# Reconnection Strategy
# =============================================================================

MIN_RECONNECT_DELAY: Final[float] = 1.0  # seconds
MAX_RECONNECT_DELAY: Final[float] = 30.0  # seconds
RECONNECT_MULTIPLIER: Final[float] = 2.0


# =============================================================================
# WebSocket Configuration
# =============================================================================

WS_HEARTBEAT_INTERVAL: Final[float] = 20.0  # seconds
WS_ACK_TIMEOUT: Final[float] = 10.0  # seconds
WS_MAX_MESSAGE_SIZE: Final[int] = 10 * 1024 * 1024  # 10MB
WS_CLOSE_TIMEOUT: Final[float] = 5.0  # seconds

# Batches waiting for evaluation; the oldest is dropped beyond this
MAX_PENDING_BATCHES: Final[int] = 64


# =============================================================================
# Feed Query
# =============================================================================

DEX_TRADES_QUERY: Final[str] = """
subscription {
  Solana {
    General: DEXTradeByTokens%(filter)s {
      Block { Time }
      Trade { Amount Price Currency { Symbol } PriceInUSD }
    }
  }
}
"""


# =============================================================================
# Liveness Server
# =============================================================================

DEFAULT_HEALTH_HOST: Final[str] = "0.0.0.0"
DEFAULT_HEALTH_PORT: Final[int] = 3000


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
