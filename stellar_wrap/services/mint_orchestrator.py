"""Mint orchestration: the mint_wrap use case.

Sequences the stats source, the wallet bridge and the ledger node, driving
the lifecycle machine and handing the submitted transaction to the
confirmation poller.
"""

import logging
import re
from typing import Protocol

from stellar_wrap.clients.soroban_rpc import RpcClientPool
from stellar_wrap.clients.wallet_bridge import WalletBridge
from stellar_wrap.errors import (
    ConfigurationError,
    InvalidAddressError,
    MintingError,
    MissingContractAddressError,
    TransactionCancelledError,
    UnknownNetworkError,
    ValidationError,
)
from stellar_wrap.models import (
    MintParams,
    Network,
    TransactionSnapshot,
    TransactionState,
    UsageStats,
)
from stellar_wrap.services.confirmation_poller import ConfirmationPoller, PollingSession
from stellar_wrap.services.lifecycle import LifecycleStateMachine
from stellar_wrap.services.observation_bus import CallbackSink

logger = logging.getLogger(__name__)

# Stellar account id: "G" followed by 55 base32 characters
STELLAR_ADDRESS_RE = re.compile(r"^G[A-Z2-7]{55}$")

INTERRUPTED_MESSAGE = "Interrupted by restart"


class StatsSource(Protocol):
    """Source of yearly usage statistics."""

    async def fetch(self, account_id: str, network: str, period: str) -> UsageStats:
        ...


class MintOrchestrator:
    """
    Coordinate a soulbound token mint from intent to finality.

    The machine is single-owner, last-writer-wins: a new mint_wrap call (or
    a reset) supersedes the one in flight. The superseded call raises
    MintingError at its next suspension point without touching the state
    now owned by the newer flow.
    """

    def __init__(
        self,
        machine: LifecycleStateMachine,
        poller: ConfirmationPoller,
        bridge: WalletBridge,
        contract_address: str,
        stats_source: StatsSource | None = None,
        rpc_pool: RpcClientPool | None = None,
        stats_period: str = "1y",
    ):
        """
        Args:
            machine: Lifecycle machine (shared with the poller)
            poller: Confirmation poller bound to ``machine``
            bridge: Wallet/contract bridge
            contract_address: Soulbound token contract address
            stats_source: Usage statistics source (defaults used if None)
            rpc_pool: Per-network ledger nodes for polling (poller's own if None)
            stats_period: Period requested from the stats source
        """
        self._machine = machine
        self._poller = poller
        self._bridge = bridge
        self._contract_address = contract_address
        self._stats_source = stats_source
        self._rpc_pool = rpc_pool
        self._stats_period = stats_period
        self._caller_sink: CallbackSink | None = None

    @property
    def snapshot(self) -> TransactionSnapshot:
        """Get the live transaction state."""
        return self._machine.snapshot

    async def mint_wrap(self, params: MintParams) -> str:
        """
        Mint the user's Stellar Wrapped as a soulbound token.

        Args:
            params: User address, network, optional stats and observer

        Returns:
            The confirmed transaction hash

        Raises:
            ConfigurationError: App is misconfigured (no transaction attempted)
            ValidationError: Bad input (no transaction attempted)
            MintingError: The transaction failed, timed out or was superseded
        """
        network = self._preflight(params)
        stats = await self._resolve_stats(params, network)

        sink = self._attach_observer(params)
        try:
            return await self._run(params, network, stats)
        finally:
            self._detach_observer(sink)

    def resume_if_pending(self) -> PollingSession | None:
        """Re-attach polling to a submitted transaction left pending.

        Restarts the confirmation budget from zero.

        Returns:
            The polling session, or None if nothing is pending
        """
        snapshot = self._machine.snapshot
        if not snapshot.can_resume:
            return None
        if self._poller.is_active:
            return self._poller.session

        if self._rpc_pool is not None and snapshot.network:
            self._poller.set_status_query(self._rpc_pool.get(snapshot.network))

        logger.info(f"Resuming confirmation of {snapshot.transaction_hash}")
        return self._poller.start(snapshot.transaction_hash)

    def recover(self, snapshot: TransactionSnapshot) -> PollingSession | None:
        """Adopt a snapshot persisted by a previous process.

        A submitted/confirming transaction is polled again. Any other
        non-terminal state was owned by a flow that died with the process,
        so it is failed rather than left hanging.

        Returns:
            The polling session, or None if nothing is pending
        """
        self._machine.restore(snapshot)
        if snapshot.can_resume:
            return self.resume_if_pending()

        state = snapshot.state
        if state is not TransactionState.IDLE and not state.is_terminal:
            logger.warning(f"Transaction left in {state.value} by a previous run")
            self._machine.mark_failed(INTERRUPTED_MESSAGE)
        return None

    def reset(self) -> None:
        """Abandon any in-flight transaction and return to idle."""
        self._detach_observer(self._caller_sink)
        self._machine.reset()

    # =========================================================================
    # Steps
    # =========================================================================

    def _preflight(self, params: MintParams) -> Network:
        """Validate inputs and configuration before any transaction exists."""
        try:
            if not params.user_address or not STELLAR_ADDRESS_RE.match(params.user_address):
                raise InvalidAddressError(params.user_address)
            try:
                network = Network(params.network)
            except ValueError:
                raise UnknownNetworkError(params.network) from None
            if not self._contract_address:
                raise MissingContractAddressError()
            self._bridge.ensure_ready(network)
        except (ConfigurationError, ValidationError) as e:
            logger.error(f"Mint pre-flight failed: {e}")
            raise
        return network

    async def _resolve_stats(self, params: MintParams, network: Network) -> UsageStats:
        """Caller stats win; otherwise fetch, falling back to zero-value defaults."""
        if params.stats is not None:
            return params.stats
        if self._stats_source is None:
            return UsageStats.default()

        try:
            return await self._stats_source.fetch(
                params.user_address, network.value, self._stats_period
            )
        except Exception as e:
            logger.warning(f"Stats fetch failed for {params.user_address}, using defaults: {e}")
            return UsageStats.default()

    def _attach_observer(self, params: MintParams) -> CallbackSink | None:
        """Register the caller's observer, dropping the one of a superseded call."""
        self._detach_observer(self._caller_sink)
        if params.observer is None:
            return None
        sink = CallbackSink(params.observer, name=f"caller:{params.user_address[:8]}")
        self._machine.bus.register(sink)
        self._caller_sink = sink
        return sink

    def _detach_observer(self, sink: CallbackSink | None) -> None:
        if sink is None:
            return
        self._machine.bus.unregister(sink)
        if self._caller_sink is sink:
            self._caller_sink = None

    async def _run(self, params: MintParams, network: Network, stats: UsageStats) -> str:
        machine = self._machine
        generation = machine.start(network.value)
        logger.info(f"Minting wrap for {params.user_address} on {network.value}")

        try:
            unsigned_xdr = await self._bridge.build(
                params.user_address, network, stats.to_contract_args()
            )
            self._ensure_owner(generation)

            machine.mark_simulating()
            prepared_xdr = await self._bridge.simulate(unsigned_xdr, network)
            self._ensure_owner(generation)
            machine.mark_simulated()

            machine.mark_signing()
            signed_xdr = await self._bridge.sign(prepared_xdr, params.user_address, network)
            self._ensure_owner(generation)
            machine.mark_signed()

            machine.mark_submitting()
            result = await self._bridge.submit(signed_xdr, network)
            self._ensure_owner(generation)
            machine.mark_submitted(result.transaction_hash)

            if self._rpc_pool is not None:
                self._poller.set_status_query(self._rpc_pool.get(network.value))
            session = self._poller.start(result.transaction_hash)
            transaction_hash = await session.wait()

            logger.info(f"Wrap minted: {transaction_hash}")
            return transaction_hash

        except TransactionCancelledError as e:
            # Superseded: the machine belongs to someone else now
            logger.warning(f"Mint for {params.user_address} superseded: {e}")
            raise MintingError(str(e)) from e
        except ConfigurationError as e:
            # Misconfiguration is not a failed transaction
            if machine.generation == generation:
                machine.reset()
            logger.error(f"Mint aborted by configuration error: {e}")
            raise
        except Exception as e:
            if machine.generation == generation and machine.state is not TransactionState.FAILED:
                machine.mark_failed(e)
            logger.error(f"Mint for {params.user_address} failed: {e}")
            raise MintingError(str(e) or "Unknown error occurred") from e

    def _ensure_owner(self, generation: int) -> None:
        if self._machine.generation != generation:
            raise TransactionCancelledError(
                "Transaction was superseded by a newer mint or reset"
            )
