"""Confirmation polling for submitted transactions.

Resolves "is transaction H final?" into ``confirmed`` or ``failed`` by
querying a ledger node at a fixed cadence, bounded by a hard deadline.

Each confirmation attempt is a PollingSession with its own token. Every
timer callback and every query result checks the token against the active
session before touching the lifecycle machine, so callbacks from a cancelled
session are no-ops.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from stellar_wrap.errors import (
    ConfirmationTimeoutError,
    LedgerTransactionFailedError,
    TransactionCancelledError,
)
from stellar_wrap.models import LedgerStatus
from stellar_wrap.services.lifecycle import LifecycleStateMachine

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 3000
DEFAULT_MAX_DURATION_MS = 60000


class LedgerStatusQuery(Protocol):
    """Side-effect-free transaction status lookup."""

    async def get_transaction_status(self, transaction_hash: str) -> LedgerStatus:
        ...


def _consume_outcome(future: asyncio.Future) -> None:
    # Resumed sessions have no awaiter; mark the exception as retrieved
    if not future.cancelled():
        future.exception()


@dataclass
class PollingSession:
    """One confirmation attempt for one transaction hash."""

    token: int
    transaction_hash: str
    started_at: float
    outcome: asyncio.Future
    interval_handle: asyncio.TimerHandle | None = None
    deadline_handle: asyncio.TimerHandle | None = None
    query_task: asyncio.Task | None = field(default=None, repr=False)
    query_count: int = 0

    def cancel_timers(self) -> None:
        """Cancel both scheduled timers."""
        if self.interval_handle is not None:
            self.interval_handle.cancel()
            self.interval_handle = None
        if self.deadline_handle is not None:
            self.deadline_handle.cancel()
            self.deadline_handle = None

    async def wait(self) -> str:
        """Wait for a terminal outcome.

        Returns:
            The confirmed transaction hash

        Raises:
            LedgerTransactionFailedError, ConfirmationTimeoutError,
            TransactionCancelledError
        """
        return await self.outcome


class ConfirmationPoller:
    """
    Poll a ledger node until a submitted transaction is final.

    At most one session is active per poller. Starting a new session, a
    machine reset, or a machine failure cancels the active one.
    """

    def __init__(
        self,
        machine: LifecycleStateMachine,
        status_query: LedgerStatusQuery | None,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        max_duration_ms: int = DEFAULT_MAX_DURATION_MS,
    ):
        """
        Args:
            machine: Lifecycle machine to drive
            status_query: Ledger node status lookup (may be set later)
            poll_interval_ms: Delay between status queries
            max_duration_ms: Hard budget for one confirmation attempt
        """
        if poll_interval_ms <= 0 or max_duration_ms <= 0:
            raise ValueError("poll_interval_ms and max_duration_ms must be positive")

        self._machine = machine
        self._status_query = status_query
        self.poll_interval_ms = poll_interval_ms
        self.max_duration_ms = max_duration_ms

        self._session: PollingSession | None = None
        self._token = 0

        machine.add_canceller(self.cancel)

    @property
    def session(self) -> PollingSession | None:
        """Get the active session, if any."""
        return self._session

    @property
    def is_active(self) -> bool:
        """Whether a confirmation attempt is in progress."""
        return self._session is not None

    def set_status_query(self, status_query: LedgerStatusQuery) -> None:
        """Use a different ledger node for subsequent sessions."""
        self._status_query = status_query

    def start(self, transaction_hash: str) -> PollingSession:
        """Start a fresh confirmation attempt for a transaction.

        Cancels any active session, moves the machine to ``confirming``,
        queries immediately and arms the deadline.
        """
        if not transaction_hash:
            raise ValueError("transaction_hash must be non-empty")
        if self._status_query is None:
            raise RuntimeError("No ledger status query configured")

        self.cancel()

        loop = asyncio.get_running_loop()
        self._token += 1
        session = PollingSession(
            token=self._token,
            transaction_hash=transaction_hash,
            started_at=loop.time(),
            outcome=loop.create_future(),
        )
        session.outcome.add_done_callback(_consume_outcome)
        self._session = session

        logger.info(
            f"Polling {transaction_hash} every {self.poll_interval_ms} ms "
            f"(budget {self.max_duration_ms} ms)"
        )
        self._machine.mark_confirming()

        session.deadline_handle = loop.call_later(
            self.max_duration_ms / 1000, self._on_deadline, session.token
        )
        self._tick(session.token)
        return session

    def cancel(self) -> None:
        """Cancel the active session. Safe to call at any time."""
        session = self._session
        if session is None:
            return

        self._finish(session)
        if not session.outcome.done():
            session.outcome.set_exception(
                TransactionCancelledError(
                    f"Confirmation polling for {session.transaction_hash} was cancelled"
                )
            )
        logger.info(f"Cancelled polling for {session.transaction_hash}")

    # =========================================================================
    # Timer callbacks
    # =========================================================================

    def _is_current(self, token: int) -> bool:
        return self._session is not None and self._session.token == token

    def _tick(self, token: int) -> None:
        """Fire one status query for the session owning ``token``."""
        if not self._is_current(token):
            return

        session = self._session
        session.interval_handle = None
        session.query_task = asyncio.get_running_loop().create_task(
            self._query(session)
        )

    async def _query(self, session: PollingSession) -> None:
        # Cancelled between scheduling and first run: never reach the node
        if not self._is_current(session.token):
            return

        status: LedgerStatus | None = None
        try:
            status = await self._status_query.get_transaction_status(
                session.transaction_hash
            )
        except Exception as e:
            # Query errors never fail the transaction; only the ledger or the deadline can
            logger.warning(f"Polling warning for {session.transaction_hash}: {e}")

        if not self._is_current(session.token):
            logger.debug(f"Discarding stale status for {session.transaction_hash}")
            return

        session.query_count += 1

        if status == LedgerStatus.SUCCESS:
            self._finish(session)
            self._machine.mark_confirmed()
            session.outcome.set_result(session.transaction_hash)
            return

        if status == LedgerStatus.FAILED:
            self._finish(session)
            error = LedgerTransactionFailedError()
            self._machine.mark_failed(error)
            session.outcome.set_exception(error)
            return

        # NOT_FOUND or query error: still pending, wait for the next tick
        session.interval_handle = asyncio.get_running_loop().call_later(
            self.poll_interval_ms / 1000, self._tick, session.token
        )

    def _on_deadline(self, token: int) -> None:
        if not self._is_current(token):
            return

        session = self._session
        self._finish(session)
        error = ConfirmationTimeoutError(self.max_duration_ms)
        logger.warning(f"{session.transaction_hash}: {error}")
        self._machine.mark_failed(error)
        session.outcome.set_exception(error)

    def _finish(self, session: PollingSession) -> None:
        """Detach the session and clear its timers."""
        session.cancel_timers()
        if self._session is session:
            self._session = None
