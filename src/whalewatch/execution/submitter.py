"""
Transfer submission for buy and sell legs.

Both legs are plain native-asset transfers to the configured
counterparty; the role only labels the log lines.
"""

import logging
import math
from decimal import ROUND_HALF_EVEN, Decimal

from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from whalewatch.config.constants import LAMPORTS_PER_SOL
from whalewatch.core.types import LedgerClient, LegRole, SubmissionJob
from whalewatch.execution.limiter import SubmissionLimiter
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.ledger.client import LedgerError
from whalewatch.telemetry.metrics import MetricsCollector
from whalewatch.utils.time import LatencyTimer, get_timestamp_us


logger = logging.getLogger(__name__)


class InvalidTransferError(ValueError):
    """Raised when a transfer amount cannot be sent."""


def sol_to_lamports(amount: float) -> int:
    """
    Convert a SOL amount to lamports with banker's rounding.

    Args:
        amount: Amount in SOL.

    Returns:
        Amount in lamports.

    Raises:
        InvalidTransferError: If the amount is not a finite number.

    Example:
        >>> sol_to_lamports(1.5)
        1500000000
        >>> sol_to_lamports(0.0000000025)
        2
    """
    if not math.isfinite(amount):
        raise InvalidTransferError(f"Amount must be finite, got {amount}")

    lamports = Decimal(repr(amount)) * LAMPORTS_PER_SOL
    return int(lamports.quantize(Decimal(1), rounding=ROUND_HALF_EVEN))


class OrderSubmitter:
    """
    Builds and submits single-transfer transactions.

    Every submission passes through the limiter, and inside it
    through the retrying executor:
    limiter.schedule(executor.execute(ledger.send_and_confirm)).
    """

    def __init__(
        self,
        ledger: LedgerClient,
        limiter: SubmissionLimiter,
        executor: ResilientExecutor,
        counterparty_address: str,
        metrics: MetricsCollector | None = None,
        dry_run: bool = False,
    ) -> None:
        """
        Initialize submitter.

        Args:
            ledger: Ledger client used to send transactions.
            limiter: Shared submission limiter.
            executor: Retrying executor.
            counterparty_address: Recipient of every transfer.
            metrics: Optional metrics collector.
            dry_run: Log transfers without sending them.
        """
        self._ledger = ledger
        self._limiter = limiter
        self._executor = executor
        self._recipient = Pubkey.from_string(counterparty_address)
        self._metrics = metrics or MetricsCollector()
        self._dry_run = dry_run

    def build_job(
        self,
        amount: float,
        role: LegRole,
        price: float | None = None,
        currency: str = "",
    ) -> SubmissionJob:
        """Create the job describing one leg."""
        lamports = sol_to_lamports(amount)
        if lamports <= 0:
            raise InvalidTransferError(
                f"{role.value} transfer of {amount} SOL rounds to {lamports} lamports"
            )

        return SubmissionJob(
            amount=amount,
            lamports=lamports,
            role=role,
            recipient=str(self._recipient),
            price=price,
            currency=currency,
        )

    async def submit_transfer(
        self,
        amount: float,
        role: LegRole,
        price: float | None = None,
        currency: str = "",
    ) -> str:
        """
        Submit one leg and wait for confirmation.

        Args:
            amount: Amount in SOL.
            role: Buy or sell, for logging.
            price: Price context passed by the caller, for logging.
            currency: Traded currency symbol, for logging.

        Returns:
            Confirmed transaction signature.
        """
        job = self.build_job(amount, role, price, currency)

        logger.info(
            f"Submitting {role.value} transfer: {amount} SOL ({job.lamports} lamports) "
            f"for {currency or '?'} at {price if price is not None else '?'} USD"
        )

        with LatencyTimer() as timer:
            try:
                signature = await self._limiter.schedule(lambda: self._send(job))
            except Exception:
                self._metrics.increment_counter("submissions_failed")
                logger.error(f"{role.value.capitalize()} transfer of {amount} SOL abandoned")
                raise

        self._metrics.increment_counter("submissions_successful")
        self._metrics.record_latency("submission", timer.latency_ms)

        logger.info(
            f"{role.value.capitalize()} order placed: {amount} {currency} at {price} USD "
            f"(signature={signature}, {timer.latency_ms:.0f}ms)"
        )
        return signature

    async def _send(self, job: SubmissionJob) -> str:
        """Send a job through the retrying executor."""
        if self._dry_run:
            signature = f"DRY_RUN_{job.role.value}_{get_timestamp_us()}"
            logger.info(f"[DRY RUN] Would transfer {job.lamports} lamports to {job.recipient}")
            return signature

        instruction = transfer(
            TransferParams(
                from_pubkey=Pubkey.from_string(self._ledger.wallet_address),
                to_pubkey=self._recipient,
                lamports=job.lamports,
            )
        )

        # Signatures sent by earlier attempts whose confirmation failed
        unconfirmed: list[str] = []

        async def attempt() -> str:
            for signature in unconfirmed:
                if await self._ledger.signature_landed(signature):
                    logger.warning(
                        f"{job.role.value.capitalize()} transfer {signature} landed after a "
                        f"failed confirmation, not resending"
                    )
                    return signature

            try:
                return await self._ledger.send_and_confirm([instruction])
            except LedgerError as e:
                if e.signature is not None:
                    unconfirmed.append(e.signature)
                raise

        return await self._executor.execute(
            attempt,
            description=f"{job.role.value} transfer of {job.amount} SOL",
        )

    @property
    def counterparty(self) -> str:
        """Recipient address of every transfer."""
        return str(self._recipient)

    @property
    def dry_run(self) -> bool:
        """Whether transfers are only logged."""
        return self._dry_run
