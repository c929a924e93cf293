"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from solders.pubkey import Pubkey

from whalewatch.config.constants import (
    BITQUERY_STREAM_URL,
    DEFAULT_BALANCE_FLOOR_THRESHOLD,
    DEFAULT_FIXED_FEE_PER_TRANSACTION,
    DEFAULT_HEALTH_HOST,
    DEFAULT_HEALTH_PORT,
    DEFAULT_INITIAL_RETRY_DELAY_MS,
    DEFAULT_LARGE_TRANSACTION_THRESHOLD_USD,
    DEFAULT_MAX_CONCURRENT_SUBMISSIONS,
    DEFAULT_MAX_RETRY_ATTEMPTS,
    DEFAULT_MIN_SUBMISSION_SPACING_MS,
    DEFAULT_SLIPPAGE_TOLERANCE,
    SOLANA_RPC_DEVNET_URL,
)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Sensitive values use SecretStr for safe handling.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Wallet
    # =========================================================================

    wallet_secret_key: SecretStr = Field(
        ...,
        description="Wallet keypair as a base58 string or a JSON array of 64 bytes",
    )

    counterparty_address: str = Field(
        ...,
        description="Recipient public key for every buy and sell transfer",
    )

    # =========================================================================
    # Network Configuration
    # =========================================================================

    rpc_url: str = Field(
        default=SOLANA_RPC_DEVNET_URL,
        description="Solana JSON-RPC endpoint",
    )

    feed_url: str = Field(
        default=BITQUERY_STREAM_URL,
        description="GraphQL streaming endpoint for DEX trades",
    )

    feed_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for the streaming endpoint",
    )

    token_mint: str | None = Field(
        default=None,
        description="Restrict the feed to trades of this token mint",
    )

    side_mint: str | None = Field(
        default=None,
        description="Restrict the feed to trades against this quote mint",
    )

    # =========================================================================
    # Trading Configuration
    # =========================================================================

    large_transaction_threshold_usd: float = Field(
        default=DEFAULT_LARGE_TRANSACTION_THRESHOLD_USD,
        ge=0.0,
        description="Minimum trade USD price to consider for evaluation",
    )

    slippage_tolerance: float = Field(
        default=DEFAULT_SLIPPAGE_TOLERANCE,
        ge=0.0,
        le=1.0,
        description="Minimum revenue/cost ratio above 1 to act (e.g., 0.01 = 1%)",
    )

    fixed_fee_per_transaction: float = Field(
        default=DEFAULT_FIXED_FEE_PER_TRANSACTION,
        ge=0.0,
        description="Flat network fee per transaction in SOL",
    )

    # =========================================================================
    # Risk Management
    # =========================================================================

    balance_floor_threshold: float = Field(
        default=DEFAULT_BALANCE_FLOOR_THRESHOLD,
        ge=0.0,
        description="Halt when the balance drops to or below this many SOL",
    )

    # =========================================================================
    # Submission Pipeline
    # =========================================================================

    max_concurrent_submissions: int = Field(
        default=DEFAULT_MAX_CONCURRENT_SUBMISSIONS,
        ge=1,
        le=100,
        description="Maximum ledger submissions in flight at once",
    )

    min_submission_spacing_ms: int = Field(
        default=DEFAULT_MIN_SUBMISSION_SPACING_MS,
        ge=0,
        le=60000,
        description="Minimum time between two submission starts in milliseconds",
    )

    max_retry_attempts: int = Field(
        default=DEFAULT_MAX_RETRY_ATTEMPTS,
        ge=1,
        le=20,
        description="Attempts per ledger operation before giving up",
    )

    initial_retry_delay_ms: int = Field(
        default=DEFAULT_INITIAL_RETRY_DELAY_MS,
        ge=0,
        le=60000,
        description="Delay after the first failed attempt, doubled on each retry",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    dry_run: bool = Field(
        default=False,
        description="Log transfers without sending them to the ledger",
    )

    health_enabled: bool = Field(
        default=True,
        description="Serve the HTTP liveness endpoint",
    )

    health_host: str = Field(
        default=DEFAULT_HEALTH_HOST,
        description="Bind address of the liveness server",
    )

    health_port: int = Field(
        default=DEFAULT_HEALTH_PORT,
        ge=1,
        le=65535,
        description="Port of the liveness server",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional file receiving all log records",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("wallet_secret_key", mode="after")
    @classmethod
    def validate_secret_key(cls, v: SecretStr) -> SecretStr:
        """Ensure the wallet key is not empty."""
        if not v.get_secret_value().strip():
            raise ValueError("Wallet secret key cannot be empty")
        return v

    @field_validator("counterparty_address", mode="after")
    @classmethod
    def validate_counterparty(cls, v: str) -> str:
        """Ensure the counterparty is a valid base58 public key."""
        try:
            Pubkey.from_string(v)
        except ValueError as e:
            raise ValueError(f"Invalid counterparty address: {v}") from e
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def round_trip_fee(self) -> float:
        """Fee paid for a complete buy and sell pair."""
        return 2 * self.fixed_fee_per_transaction


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()  # type: ignore[call-arg, unused-ignore]
