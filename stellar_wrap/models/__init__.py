"""Data models."""

from stellar_wrap.models.transaction import (
    HASH_STATES,
    TransactionSnapshot,
    TransactionState,
)
from stellar_wrap.models.mint import (
    LedgerStatus,
    MintParams,
    Network,
    SubmitResult,
    TransactionObserver,
    UsageStats,
)

__all__ = [
    "HASH_STATES",
    "TransactionSnapshot",
    "TransactionState",
    "LedgerStatus",
    "MintParams",
    "Network",
    "SubmitResult",
    "TransactionObserver",
    "UsageStats",
]
