"""Mint request and ledger models."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Callable

from pydantic import BaseModel, ConfigDict

from stellar_wrap.models.transaction import TransactionSnapshot, TransactionState


class Network(str, Enum):
    """Supported Stellar networks."""

    MAINNET = "mainnet"
    TESTNET = "testnet"

    @property
    def passphrase(self) -> str:
        """Network passphrase used when building transactions."""
        if self is Network.MAINNET:
            return "Public Global Stellar Network ; September 2015"
        return "Test SDF Network ; September 2015"


class LedgerStatus(str, Enum):
    """Finality status reported by a ledger node for a transaction hash."""

    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"


class UsageStats(BaseModel):
    """Yearly usage statistics embedded into the minted token."""

    total_volume: Decimal = Decimal("0")
    most_active_asset: str = "XLM"
    contract_calls: int = 0

    @classmethod
    def default(cls) -> UsageStats:
        """Zero-value stats used when the stats source is unavailable."""
        return cls()

    def to_contract_args(self) -> dict:
        """Arguments handed to the transaction builder."""
        return {
            "total_volume": str(self.total_volume),
            "most_active_asset": self.most_active_asset,
            "contract_calls": self.contract_calls,
        }


# Caller-supplied observer scoped to a single mint_wrap call
TransactionObserver = Callable[[TransactionState, TransactionSnapshot], None]


class MintParams(BaseModel):
    """Parameters for a single mint_wrap invocation."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    user_address: str
    network: str
    stats: UsageStats | None = None
    observer: TransactionObserver | None = None


class SubmitResult(BaseModel):
    """Result of handing a signed transaction to the ledger node."""

    transaction_hash: str
    status: str = "PENDING"
