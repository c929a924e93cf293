"""
Async Solana ledger client.

Thin adapter over solana-py exposing the operations the
pipeline needs:
- Wallet balance in lamports
- Sign, send and confirm a transaction
- Status of an earlier submission
"""

import logging
from collections.abc import Sequence

import orjson
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException, UnconfirmedTxError
from solana.rpc.types import TxOpts
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.signature import Signature
from solders.transaction import Transaction


logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base exception for ledger client errors."""

    def __init__(self, message: str, signature: str | None = None) -> None:
        super().__init__(message)
        self.signature = signature


def parse_keypair(raw: str) -> Keypair:
    """
    Parse a wallet keypair.

    Args:
        raw: Base58 secret key, or a JSON array of 64 bytes.

    Returns:
        The keypair.

    Raises:
        ValueError: If the value is neither format.
    """
    value = raw.strip()
    if not value:
        raise ValueError("Empty wallet secret key")

    if value.startswith("["):
        try:
            arr = orjson.loads(value)
        except orjson.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON secret key: {e}") from e
        if not isinstance(arr, list) or len(arr) != 64:
            raise ValueError("JSON secret key must be an array of 64 bytes")
        return Keypair.from_bytes(bytes(arr))

    return Keypair.from_base58_string(value)


class SolanaLedgerClient:
    """
    Async Solana JSON-RPC client bound to one wallet.

    Every call is a single request without retries; the caller
    decides how to retry.
    """

    def __init__(self, rpc_url: str, keypair: Keypair) -> None:
        """
        Initialize the client.

        Args:
            rpc_url: JSON-RPC endpoint.
            keypair: Paying wallet.
        """
        self._rpc_url = rpc_url
        self._keypair = keypair
        self._client = AsyncClient(rpc_url, commitment=Confirmed)

    @classmethod
    def from_secret(cls, rpc_url: str, secret: str) -> "SolanaLedgerClient":
        """Create a client from a base58 or JSON secret key."""
        return cls(rpc_url, parse_keypair(secret))

    @property
    def wallet_address(self) -> str:
        """Public key of the paying wallet."""
        return str(self._keypair.pubkey())

    async def get_balance(self) -> int:
        """
        Get the wallet balance.

        Returns:
            Balance in lamports.

        Raises:
            LedgerError: On RPC or network errors.
        """
        try:
            resp = await self._client.get_balance(self._keypair.pubkey(), commitment=Confirmed)
        except (RPCException, SolanaRpcException) as e:
            raise LedgerError(f"Balance query failed: {e}") from e

        return resp.value

    async def send_and_confirm(self, instructions: Sequence[Instruction]) -> str:
        """
        Sign, send and confirm a transaction.

        A fresh blockhash is fetched on every call so a retried
        submission never reuses an expired one.

        Args:
            instructions: Instructions of the transaction.

        Returns:
            Transaction signature.

        Raises:
            LedgerError: On RPC errors, rejection or confirmation timeout.
        """
        signature: str | None = None

        try:
            latest = await self._client.get_latest_blockhash(commitment=Confirmed)
            blockhash = latest.value.blockhash

            message = Message.new_with_blockhash(
                list(instructions), self._keypair.pubkey(), blockhash
            )
            transaction = Transaction([self._keypair], message, blockhash)

            sent = await self._client.send_transaction(
                transaction,
                opts=TxOpts(preflight_commitment=Confirmed),
            )
            signature = str(sent.value)
            logger.debug(f"Transaction sent: {signature}")

            confirmation = await self._client.confirm_transaction(
                sent.value,
                commitment=Confirmed,
                last_valid_block_height=latest.value.last_valid_block_height,
            )
        except (RPCException, SolanaRpcException, UnconfirmedTxError) as e:
            raise LedgerError(f"Transaction failed: {e}", signature=signature) from e

        status = confirmation.value[0] if confirmation.value else None
        if status is not None and status.err is not None:
            raise LedgerError(f"Transaction rejected: {status.err}", signature=signature)

        return signature

    async def signature_landed(self, signature: str) -> bool:
        """
        Look up a previously sent transaction.

        Args:
            signature: Signature returned by an earlier submission.

        Returns:
            True if the transaction was processed without error.

        Raises:
            LedgerError: On RPC or network errors.
        """
        try:
            resp = await self._client.get_signature_statuses(
                [Signature.from_string(signature)],
                search_transaction_history=True,
            )
        except (RPCException, SolanaRpcException) as e:
            raise LedgerError(f"Signature status query failed: {e}", signature=signature) from e

        status = resp.value[0] if resp.value else None
        return status is not None and status.err is None

    async def close(self) -> None:
        """Close the RPC connection."""
        await self._client.close()

    async def __aenter__(self) -> "SolanaLedgerClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
