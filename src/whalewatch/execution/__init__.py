"""Execution module for guarded, rate-limited ledger submissions."""

from whalewatch.execution.guard import BalanceGuard, GuardNotInitializedError
from whalewatch.execution.limiter import SubmissionLimiter
from whalewatch.execution.retry import ResilientExecutor
from whalewatch.execution.submitter import InvalidTransferError, OrderSubmitter, sol_to_lamports


__all__ = [
    "BalanceGuard",
    "GuardNotInitializedError",
    "InvalidTransferError",
    "OrderSubmitter",
    "ResilientExecutor",
    "SubmissionLimiter",
    "sol_to_lamports",
]
