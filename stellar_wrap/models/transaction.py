"""Transaction lifecycle data models."""

from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class TransactionState(str, Enum):
    """Lifecycle stage of a mint transaction."""

    IDLE = "idle"
    BUILDING = "building"
    SIMULATING = "simulating"
    SIMULATED = "simulated"
    SIGNING = "signing"
    SIGNED = "signed"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further forward transition can follow."""
        return self in (TransactionState.CONFIRMED, TransactionState.FAILED)

    @property
    def is_pending_confirmation(self) -> bool:
        """Whether the transaction is on the ledger awaiting finality."""
        return self in (TransactionState.SUBMITTED, TransactionState.CONFIRMING)


# States that may carry a transaction hash
HASH_STATES = frozenset({
    TransactionState.SUBMITTED,
    TransactionState.CONFIRMING,
    TransactionState.CONFIRMED,
    TransactionState.FAILED,
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionSnapshot(BaseModel):
    """Last known lifecycle state of the (single) mint transaction.

    Snapshots are immutable; every transition produces a new one.
    """

    model_config = ConfigDict(frozen=True)

    state: TransactionState = TransactionState.IDLE
    transaction_hash: str | None = None
    error_message: str | None = None
    network: str | None = None
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def can_resume(self) -> bool:
        """Whether polling can be re-attached to this snapshot."""
        return self.state.is_pending_confirmation and bool(self.transaction_hash)

    def to_dict(self) -> dict:
        """Serialize to a JSON-friendly dict."""
        return {
            "state": self.state.value,
            "transaction_hash": self.transaction_hash,
            "error_message": self.error_message,
            "network": self.network,
            "updated_at": self.updated_at.isoformat(),
        }
