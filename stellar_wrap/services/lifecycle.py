"""Lifecycle state machine for the mint transaction."""

import logging
from typing import Callable

from stellar_wrap.models import (
    HASH_STATES,
    TransactionSnapshot,
    TransactionState,
)
from stellar_wrap.services.observation_bus import ObservationBus

logger = logging.getLogger(__name__)

# Cancels any active confirmation polling; registered by the poller
Canceller = Callable[[], None]

# Marker for "leave the attribute as it is"
_KEEP = object()


class LifecycleStateMachine:
    """
    Owns the current TransactionSnapshot and records every transition.

    Mutators write their target state unconditionally; ordering is the
    orchestrator's responsibility. Every mutator publishes the new snapshot
    on the observation bus. The machine performs in-memory writes only; the
    one precondition is that ``mark_submitted`` needs a non-empty hash
    (ValueError otherwise).

    ``generation`` increases on every ``start`` and ``reset``. A flow that
    captured the generation at ``start`` owns the machine for as long as the
    value is unchanged.
    """

    def __init__(self, bus: ObservationBus | None = None):
        self.bus = bus or ObservationBus()
        self._snapshot = TransactionSnapshot()
        self._generation = 0
        self._cancellers: list[Canceller] = []

    @property
    def snapshot(self) -> TransactionSnapshot:
        """Get the current snapshot."""
        return self._snapshot

    @property
    def state(self) -> TransactionState:
        """Get the current state tag."""
        return self._snapshot.state

    @property
    def generation(self) -> int:
        """Get the ownership generation."""
        return self._generation

    def add_canceller(self, canceller: Canceller) -> None:
        """Register a hook that cancels pending timers on reset/failure."""
        self._cancellers.append(canceller)

    def restore(self, snapshot: TransactionSnapshot) -> None:
        """Seed state from persistence without notifying sinks."""
        self._cancel_pending()
        self._snapshot = snapshot
        logger.info(f"Restored transaction state: {snapshot.state.value}")

    # =========================================================================
    # Mutators
    # =========================================================================

    def start(self, network: str | None = None) -> int:
        """Begin a new transaction, superseding any in-flight one.

        Args:
            network: Network the transaction targets (kept for resume)

        Returns:
            The generation owned by the caller
        """
        self._cancel_pending()
        self._generation += 1
        self._transition(
            TransactionState.BUILDING, transaction_hash=None, network=network
        )
        return self._generation

    def mark_simulating(self) -> None:
        self._transition(TransactionState.SIMULATING)

    def mark_simulated(self) -> None:
        self._transition(TransactionState.SIMULATED)

    def mark_signing(self) -> None:
        self._transition(TransactionState.SIGNING)

    def mark_signed(self) -> None:
        self._transition(TransactionState.SIGNED)

    def mark_submitting(self) -> None:
        self._transition(TransactionState.SUBMITTING)

    def mark_submitted(self, transaction_hash: str) -> None:
        """Record the ledger-assigned hash and move to ``submitted``."""
        if not transaction_hash:
            raise ValueError("transaction_hash must be non-empty")
        current = self._snapshot.transaction_hash
        if current and current != transaction_hash:
            # Hash is immutable until the next reset/start
            logger.warning(
                f"Ignoring hash {transaction_hash}: transaction already has hash {current}"
            )
            transaction_hash = current
        self._transition(TransactionState.SUBMITTED, transaction_hash=transaction_hash)

    def mark_confirming(self) -> None:
        self._transition(TransactionState.CONFIRMING)

    def mark_confirmed(self) -> None:
        self._transition(TransactionState.CONFIRMED)

    def mark_failed(self, error: BaseException | str) -> None:
        """Fail the transaction from any state.

        Always cancels pending confirmation timers first. The hash, if known,
        is kept for display.
        """
        self._cancel_pending()
        message = str(error) if isinstance(error, BaseException) else error
        if not message:
            message = "Unknown error occurred"
        self._transition(TransactionState.FAILED, error_message=message)

    def reset(self) -> None:
        """Return to ``idle`` from any state, cancelling polling first."""
        self._cancel_pending()
        self._generation += 1
        self._transition(TransactionState.IDLE, transaction_hash=None, network=None)

    # =========================================================================
    # Internals
    # =========================================================================

    def _cancel_pending(self) -> None:
        for cancel in self._cancellers:
            cancel()

    def _transition(
        self,
        state: TransactionState,
        transaction_hash=_KEEP,
        error_message: str | None = None,
        network=_KEEP,
    ) -> None:
        """Write the new snapshot and publish it."""
        if transaction_hash is _KEEP:
            transaction_hash = self._snapshot.transaction_hash
        if network is _KEEP:
            network = self._snapshot.network
        if state not in HASH_STATES:
            transaction_hash = None
        if state is not TransactionState.FAILED:
            error_message = None

        self._snapshot = TransactionSnapshot(
            state=state,
            transaction_hash=transaction_hash,
            error_message=error_message,
            network=network,
        )
        logger.info(
            f"Transaction -> {state.value}"
            + (f" hash={transaction_hash}" if transaction_hash else "")
            + (f" error={error_message}" if error_message else "")
        )
        self.bus.notify(state, self._snapshot)
