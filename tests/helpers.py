"""Test doubles for the mint lifecycle."""

import asyncio
from dataclasses import dataclass

from stellar_wrap.models import LedgerStatus, SubmitResult
from stellar_wrap.services import (
    ConfirmationPoller,
    LifecycleStateMachine,
    MintOrchestrator,
    ObservationBus,
)
from stellar_wrap.storage import TransactionStore

VALID_ADDRESS = "G" + "A" * 55
OTHER_ADDRESS = "G" + "B" * 55
CONTRACT_ADDRESS = "C" + "D" * 55
TX_HASH = "a" * 64
OTHER_TX_HASH = "b" * 64

# Fast timings for polling tests (milliseconds)
POLL_INTERVAL_MS = 20
MAX_DURATION_MS = 200


class RecordingSink:
    """Sink that records every notification."""

    name = "recording"

    def __init__(self):
        self.states = []
        self.snapshots = []

    def notify(self, state, snapshot):
        self.states.append(state)
        self.snapshots.append(snapshot)


class FailingSink:
    """Sink that raises on every notification."""

    name = "failing"

    def __init__(self):
        self.calls = 0

    def notify(self, state, snapshot):
        self.calls += 1
        raise RuntimeError("observer exploded")


class ScriptedStatusQuery:
    """Returns scripted statuses per call, then a default.

    Exceptions in the script are raised instead of returned.
    """

    def __init__(self, statuses=(), default=LedgerStatus.NOT_FOUND, per_hash=None):
        self._statuses = list(statuses)
        self._default = default
        self._per_hash = per_hash or {}
        self.calls = []
        self.call_times = []

    async def get_transaction_status(self, transaction_hash):
        self.calls.append(transaction_hash)
        self.call_times.append(asyncio.get_running_loop().time())
        if transaction_hash in self._per_hash:
            return self._per_hash[transaction_hash]
        status = self._statuses.pop(0) if self._statuses else self._default
        if isinstance(status, Exception):
            raise status
        return status


class FakeBridge:
    """In-memory wallet bridge recording the machine state at each call."""

    def __init__(self, hashes=(TX_HASH,)):
        self._hashes = list(hashes)
        self.machine = None
        self.calls = []
        self.build_args = []
        self.ready_error = None
        self.sign_error = None
        self.sign_gates = []

    def _record(self, step):
        self.calls.append((step, self.machine.state if self.machine else None))

    def ensure_ready(self, network):
        if self.ready_error is not None:
            raise self.ready_error

    async def build(self, account_address, network, contract_args):
        self._record("build")
        self.build_args.append(contract_args)
        return "unsigned-xdr"

    async def simulate(self, transaction_xdr, network):
        self._record("simulate")
        return "prepared-xdr"

    async def sign(self, transaction_xdr, account_address, network):
        self._record("sign")
        if self.sign_gates:
            await self.sign_gates.pop(0).wait()
        if self.sign_error is not None:
            raise self.sign_error
        return "signed-xdr"

    async def submit(self, signed_xdr, network):
        self._record("submit")
        transaction_hash = self._hashes.pop(0) if len(self._hashes) > 1 else self._hashes[0]
        return SubmitResult(transaction_hash=transaction_hash)


@dataclass
class Stack:
    bus: ObservationBus
    machine: LifecycleStateMachine
    store: TransactionStore
    recorder: RecordingSink
    poller: ConfirmationPoller
    orchestrator: MintOrchestrator
    bridge: FakeBridge
    status_query: ScriptedStatusQuery


def build_stack(
    status_query=None,
    bridge=None,
    stats_source=None,
    contract_address=CONTRACT_ADDRESS,
    poll_interval_ms=POLL_INTERVAL_MS,
    max_duration_ms=MAX_DURATION_MS,
) -> Stack:
    """Wire a full lifecycle stack with test doubles."""
    status_query = status_query or ScriptedStatusQuery([LedgerStatus.SUCCESS])
    bridge = bridge or FakeBridge()

    bus = ObservationBus()
    store = TransactionStore()
    recorder = RecordingSink()
    bus.register(store)
    bus.register(recorder)

    machine = LifecycleStateMachine(bus)
    bridge.machine = machine
    poller = ConfirmationPoller(
        machine,
        status_query,
        poll_interval_ms=poll_interval_ms,
        max_duration_ms=max_duration_ms,
    )
    orchestrator = MintOrchestrator(
        machine,
        poller,
        bridge,
        contract_address=contract_address,
        stats_source=stats_source,
    )
    return Stack(
        bus=bus,
        machine=machine,
        store=store,
        recorder=recorder,
        poller=poller,
        orchestrator=orchestrator,
        bridge=bridge,
        status_query=status_query,
    )


async def wait_for_state(machine, state, timeout=1.0):
    """Yield to the loop until the machine reaches ``state``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while machine.state is not state:
        if loop.time() > deadline:
            raise AssertionError(f"machine stuck in {machine.state}, expected {state}")
        await asyncio.sleep(0.001)

