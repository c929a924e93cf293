"""
Pydantic models for the DEX trade feed.

These models provide type-safe parsing of subscription payloads
with automatic validation.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from whalewatch.core.types import TradeBatch, TradeRecord


logger = logging.getLogger(__name__)


class CurrencyData(BaseModel):
    """Traded currency."""

    symbol: str | None = Field(default=None, alias="Symbol")

    model_config = {"populate_by_name": True}


class TradeData(BaseModel):
    """Trade figures of a DEX trade."""

    amount: float = Field(alias="Amount")
    price: float = Field(alias="Price")
    currency: CurrencyData = Field(default_factory=CurrencyData, alias="Currency")
    price_in_usd: float = Field(alias="PriceInUSD")

    model_config = {"populate_by_name": True}


class BlockData(BaseModel):
    """Block the trade was included in."""

    time: str | None = Field(default=None, alias="Time")

    model_config = {"populate_by_name": True}


class DexTradeEvent(BaseModel):
    """One entry of the `Solana.General` list."""

    block: BlockData | None = Field(default=None, alias="Block")
    trade: TradeData = Field(alias="Trade")

    model_config = {"populate_by_name": True}

    def to_record(self) -> TradeRecord:
        """Convert to the immutable core type."""
        return TradeRecord(
            amount=self.trade.amount,
            price=self.trade.price,
            currency_symbol=self.trade.currency.symbol or "",
            price_in_usd=self.trade.price_in_usd,
            block_time=self.block.time if self.block else None,
        )


def extract_trade_entries(data: dict[str, Any] | None) -> list[Any]:
    """
    Pull the raw trade list out of a subscription result.

    Args:
        data: The `data` object of a `next` payload.

    Returns:
        The `Solana.General` list, empty when absent.
    """
    if not isinstance(data, dict):
        return []

    solana = data.get("Solana")
    if not isinstance(solana, dict):
        return []

    entries = solana.get("General")
    return entries if isinstance(entries, list) else []


def parse_trade_batch(data: dict[str, Any] | None) -> TradeBatch:
    """
    Parse a subscription result into trade records.

    Entries that fail validation are logged and dropped.

    Args:
        data: The `data` object of a `next` payload.

    Returns:
        Parsed trades in delivery order.
    """
    trades: TradeBatch = []

    for entry in extract_trade_entries(data):
        try:
            trades.append(DexTradeEvent.model_validate(entry).to_record())
        except ValidationError as e:
            logger.warning(f"Dropping malformed trade entry: {e.error_count()} validation errors")

    return trades
