"""Persisted transaction store.

The durable, UI-facing sink of the observation bus. The in-memory snapshot
is updated synchronously on every transition; Redis writes happen behind,
through a single writer task that preserves transition order.

Data structure:
- {storage_key} -> JSON {state, transaction_hash, error_message, network, updated_at}
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import ValidationError

from stellar_wrap.models import TransactionSnapshot, TransactionState
from stellar_wrap.storage import cache

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "stellar-wrap-transaction-storage"


class TransactionStore:
    """Durable store for the live transaction snapshot."""

    name = "persisted"

    def __init__(self, storage_key: str = DEFAULT_STORAGE_KEY):
        self.storage_key = storage_key
        self._snapshot = TransactionSnapshot()
        self._queue: asyncio.Queue[TransactionSnapshot] | None = None
        self._writer: asyncio.Task | None = None

    @property
    def snapshot(self) -> TransactionSnapshot:
        """Get the latest snapshot seen."""
        return self._snapshot

    def notify(self, state: TransactionState, snapshot: TransactionSnapshot) -> None:
        """Record a transition and schedule it for persistence."""
        self._snapshot = snapshot

        if not cache.is_cache_available():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: memory only
            return

        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._writer is None or self._writer.done():
            self._writer = loop.create_task(self._write_loop())
        self._queue.put_nowait(snapshot)

    async def _write_loop(self) -> None:
        """Persist queued snapshots one at a time, in order."""
        while True:
            snapshot = await self._queue.get()
            try:
                await self.save(snapshot)
            finally:
                self._queue.task_done()

    async def save(self, snapshot: TransactionSnapshot) -> bool:
        """Write a snapshot to the cache.

        Returns:
            True if saved successfully
        """
        try:
            return await cache.set_json(self.storage_key, snapshot.to_dict())
        except Exception as e:
            logger.warning(f"Failed to save transaction state: {e}")
            return False

    async def load(self) -> TransactionSnapshot | None:
        """Load the persisted snapshot, if any.

        Returns:
            The snapshot, or None if absent/unreadable
        """
        if not cache.is_cache_available():
            return None

        data = await cache.get_json(self.storage_key)
        if data is None:
            return None

        try:
            snapshot = TransactionSnapshot.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable transaction state: {e}")
            return None

        self._snapshot = snapshot
        logger.info(f"Loaded transaction state: {snapshot.state.value}")
        return snapshot

    async def flush(self) -> None:
        """Wait until every queued snapshot is written."""
        if self._queue is not None and self._writer is not None and not self._writer.done():
            await self._queue.join()

    async def close(self) -> None:
        """Flush pending writes and stop the writer."""
        await self.flush()
        if self._writer is not None:
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None
