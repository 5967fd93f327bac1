"""Bridge between the orchestrator and the wallet / contract tooling.

Building the contract invocation and signing it belong to the Stellar SDK
and the user's wallet. The bridge composes those with the Soroban RPC node,
which performs simulation and submission.
"""

import logging
from typing import Any, Protocol

from stellar_wrap.clients.soroban_rpc import RpcClientPool
from stellar_wrap.errors import (
    ConfigurationError,
    ContractNotFoundError,
    LedgerTransactionFailedError,
    SimulationError,
    UserRejectedError,
)
from stellar_wrap.models import Network, SubmitResult

logger = logging.getLogger(__name__)

# Substrings of wallet errors that mean the user declined to sign
REJECTION_MARKERS = ("reject", "declin", "denied", "cancel")

# Substrings of simulation errors that mean the contract is missing
CONTRACT_MISSING_MARKERS = ("missingvalue", "contract not found", "non-existent contract")


class TransactionBuilder(Protocol):
    """Builds and assembles the mint_wrap contract invocation (Stellar SDK)."""

    async def build(
        self,
        contract_address: str,
        account_address: str,
        network: Network,
        contract_args: dict[str, Any],
    ) -> str:
        """Return the unsigned transaction envelope (base64 XDR)."""
        ...

    async def assemble(self, transaction_xdr: str, simulation: dict[str, Any]) -> str:
        """Apply simulation resources/footprint; return the prepared envelope."""
        ...


class TransactionSigner(Protocol):
    """Signs a prepared envelope with the user's wallet."""

    async def sign(self, transaction_xdr: str, account_address: str, network: Network) -> str:
        """Return the signed envelope (base64 XDR)."""
        ...


class WalletBridge(Protocol):
    """Everything the orchestrator needs to get a mint onto the ledger."""

    def ensure_ready(self, network: Network) -> None:
        """Raise ConfigurationError if the bridge cannot serve ``network``."""
        ...

    async def build(
        self, account_address: str, network: Network, contract_args: dict[str, Any]
    ) -> str:
        ...

    async def simulate(self, transaction_xdr: str, network: Network) -> str:
        ...

    async def sign(self, transaction_xdr: str, account_address: str, network: Network) -> str:
        ...

    async def submit(self, signed_xdr: str, network: Network) -> SubmitResult:
        ...


class SorobanWalletBridge:
    """WalletBridge backed by a Soroban RPC node."""

    def __init__(
        self,
        contract_address: str,
        rpc_pool: RpcClientPool,
        builder: TransactionBuilder | None = None,
        signer: TransactionSigner | None = None,
    ):
        """
        Args:
            contract_address: Soulbound token contract (C...)
            rpc_pool: RPC clients per network
            builder: Contract invocation builder (None until integrated)
            signer: Wallet signer
        """
        self.contract_address = contract_address
        self._rpc_pool = rpc_pool
        self._builder = builder
        self._signer = signer

    def ensure_ready(self, network: Network) -> None:
        """Check the network has a ledger node (MissingRpcUrlError otherwise).

        A missing builder or signer is not checked here: without a builder the
        mint fails at ``build`` with ContractNotFoundError, like any other
        contract problem.
        """
        self._rpc_pool.get(network.value)

    async def build(
        self, account_address: str, network: Network, contract_args: dict[str, Any]
    ) -> str:
        if self._builder is None:
            raise ContractNotFoundError(
                "Contract integration pending. The mint_wrap function is not available. "
                f"Contract address: {self.contract_address}, User: {account_address}"
            )
        return await self._builder.build(
            self.contract_address, account_address, network, contract_args
        )

    async def simulate(self, transaction_xdr: str, network: Network) -> str:
        """Simulate on the ledger node and return the prepared envelope."""
        result = await self._rpc_pool.get(network.value).simulate_transaction(transaction_xdr)
        error = result.get("error")
        if error:
            if any(marker in error.lower() for marker in CONTRACT_MISSING_MARKERS):
                raise ContractNotFoundError(
                    f"Contract {self.contract_address} not found on {network.value}: {error}"
                )
            raise SimulationError(f"Simulation failed: {error}")

        logger.info(f"Simulation ok: min_resource_fee={result.get('minResourceFee')}")
        if self._builder is None:
            return transaction_xdr
        return await self._builder.assemble(transaction_xdr, result)

    async def sign(self, transaction_xdr: str, account_address: str, network: Network) -> str:
        if self._signer is None:
            raise ConfigurationError("No wallet signer configured")
        try:
            return await self._signer.sign(transaction_xdr, account_address, network)
        except UserRejectedError:
            raise
        except Exception as e:
            if any(marker in str(e).lower() for marker in REJECTION_MARKERS):
                raise UserRejectedError(f"User rejected the transaction: {e}") from e
            raise

    async def submit(self, signed_xdr: str, network: Network) -> SubmitResult:
        result = await self._rpc_pool.get(network.value).send_transaction(signed_xdr)
        if result.status == "ERROR":
            raise LedgerTransactionFailedError(
                f"Transaction {result.transaction_hash} was rejected by the ledger node"
            )
        if result.status == "TRY_AGAIN_LATER":
            raise SimulationError("Ledger node is busy, try again later")
        return result
