"""Business services."""

from stellar_wrap.services.observation_bus import CallbackSink, ObservationBus, TransactionSink
from stellar_wrap.services.lifecycle import LifecycleStateMachine
from stellar_wrap.services.confirmation_poller import (
    DEFAULT_MAX_DURATION_MS,
    DEFAULT_POLL_INTERVAL_MS,
    ConfirmationPoller,
    LedgerStatusQuery,
    PollingSession,
)
from stellar_wrap.services.mint_orchestrator import MintOrchestrator, StatsSource

__all__ = [
    "CallbackSink",
    "ObservationBus",
    "TransactionSink",
    "LifecycleStateMachine",
    "DEFAULT_MAX_DURATION_MS",
    "DEFAULT_POLL_INTERVAL_MS",
    "ConfirmationPoller",
    "LedgerStatusQuery",
    "PollingSession",
    "MintOrchestrator",
    "StatsSource",
]
