"""Error taxonomy for minting.

Configuration and validation errors are pre-flight: they are raised before a
transaction is attempted and never reach the lifecycle machine. Everything
else drives the machine to ``failed`` and reaches the caller wrapped in
:class:`MintingError`.
"""


class WrapError(Exception):
    """Base class for all minting errors."""


# =============================================================================
# Pre-flight errors
# =============================================================================

class ConfigurationError(WrapError):
    """The application is misconfigured."""


class MissingContractAddressError(ConfigurationError):
    """No soulbound token contract address is configured."""

    def __init__(self):
        super().__init__("Contract address is not configured (CONTRACT_ADDRESS)")


class MissingRpcUrlError(ConfigurationError):
    """No RPC endpoint is configured for the requested network."""

    def __init__(self, network: str):
        self.network = network
        super().__init__(f"No RPC URL configured for network {network!r}")


class ValidationError(WrapError):
    """Caller input is malformed."""


class InvalidAddressError(ValidationError):
    """The account address is not a valid Stellar public key."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Invalid Stellar address: {address!r}")


class UnknownNetworkError(ValidationError):
    """The requested network is not supported."""

    def __init__(self, network: str):
        self.network = network
        super().__init__(f"Unknown network: {network!r}")


# =============================================================================
# Transaction errors (drive the ``failed`` state)
# =============================================================================

class ContractNotFoundError(WrapError):
    """The contract could not be found or invoked on the ledger."""


class SimulationError(WrapError):
    """The ledger node rejected the transaction during simulation."""


class UserRejectedError(WrapError):
    """The user declined to sign the transaction."""

    def __init__(self, message: str = "User rejected the transaction"):
        super().__init__(message)


class LedgerTransactionFailedError(WrapError):
    """The ledger reported the transaction as failed."""

    def __init__(self, message: str = "Transaction failed on the ledger."):
        super().__init__(message)


class ConfirmationTimeoutError(WrapError):
    """Finality was not observed within the polling budget."""

    def __init__(self, max_duration_ms: int):
        self.max_duration_ms = max_duration_ms
        super().__init__(f"confirmation timed out after {max_duration_ms} ms")


class TransactionCancelledError(WrapError):
    """The flow lost ownership of the lifecycle (reset or superseded)."""


class MintingError(WrapError):
    """A mint attempt failed; wraps the underlying cause."""

    def __init__(self, message: str):
        super().__init__(f"Minting failed: {message}")
