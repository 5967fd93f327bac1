"""Fan-out of lifecycle transitions to registered sinks."""

import logging
from typing import Protocol

from stellar_wrap.models import TransactionObserver, TransactionSnapshot, TransactionState

logger = logging.getLogger(__name__)


class TransactionSink(Protocol):
    """Receives every lifecycle transition, in order."""

    def notify(self, state: TransactionState, snapshot: TransactionSnapshot) -> None:
        ...


class CallbackSink:
    """Adapts a caller-supplied observer function to the sink protocol."""

    def __init__(self, callback: TransactionObserver, name: str = "caller"):
        self._callback = callback
        self.name = name

    def notify(self, state: TransactionState, snapshot: TransactionSnapshot) -> None:
        self._callback(state, snapshot)


class ObservationBus:
    """
    Broadcast lifecycle transitions to zero or more sinks.

    Sinks are called synchronously in registration order, so every sink sees
    transitions in exactly the order the machine produced them. Each sink runs
    inside its own failure boundary: an exception is logged and the next sink
    is still called.
    """

    def __init__(self):
        self._sinks: list[TransactionSink] = []

    def register(self, sink: TransactionSink) -> TransactionSink:
        """Add a sink. Returns it so callers can unregister later."""
        self._sinks.append(sink)
        return sink

    def unregister(self, sink: TransactionSink) -> None:
        """Remove a sink if registered."""
        if sink in self._sinks:
            self._sinks.remove(sink)

    def notify(self, state: TransactionState, snapshot: TransactionSnapshot) -> None:
        """Deliver a transition to every registered sink."""
        # Iterate over a copy: a sink may unregister itself while notified
        for sink in list(self._sinks):
            try:
                sink.notify(state, snapshot)
            except Exception as e:
                logger.warning(
                    f"Sink {getattr(sink, 'name', type(sink).__name__)} "
                    f"failed on {state.value}: {e}"
                )

    @property
    def sink_count(self) -> int:
        """Get number of registered sinks."""
        return len(self._sinks)
