"""Ledger integration module for Solana."""

from whalewatch.ledger.client import LedgerError, SolanaLedgerClient, parse_keypair


__all__ = [
    "LedgerError",
    "SolanaLedgerClient",
    "parse_keypair",
]
