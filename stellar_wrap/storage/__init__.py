"""Data storage layer."""

from stellar_wrap.storage import cache
from stellar_wrap.storage.transaction_store import DEFAULT_STORAGE_KEY, TransactionStore

__all__ = [
    "cache",
    "DEFAULT_STORAGE_KEY",
    "TransactionStore",
]
