"""Soroban JSON-RPC client for simulating, submitting and tracking transactions."""

import itertools
import logging
from typing import Any

import httpx

from stellar_wrap.errors import MissingRpcUrlError, WrapError
from stellar_wrap.models import LedgerStatus, SubmitResult

logger = logging.getLogger(__name__)


class RpcError(WrapError):
    """The RPC node returned a JSON-RPC error object."""

    def __init__(self, code: int, message: str):
        self.code = code
        super().__init__(f"RPC error {code}: {message}")


class SorobanRpcClient:
    """Stellar Soroban RPC client (JSON-RPC 2.0 over HTTP)."""

    def __init__(self, rpc_url: str, timeout: float = 30.0):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        client = await self._get_client()
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
        }
        if params is not None:
            payload["params"] = params

        response = await client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        data = response.json()

        if data.get("error"):
            error = data["error"]
            raise RpcError(error.get("code", -1), error.get("message", "unknown error"))
        return data.get("result")

    async def get_health(self) -> dict[str, Any]:
        """Get node health."""
        return await self._request("getHealth")

    async def get_transaction(self, transaction_hash: str) -> dict[str, Any]:
        """
        Fetch a transaction by hash.

        Args:
            transaction_hash: Hex-encoded transaction hash

        Returns:
            Raw ``getTransaction`` result
        """
        return await self._request("getTransaction", {"hash": transaction_hash})

    async def get_transaction_status(self, transaction_hash: str) -> LedgerStatus:
        """Get the finality status of a transaction."""
        result = await self.get_transaction(transaction_hash)
        status = (result or {}).get("status", LedgerStatus.NOT_FOUND.value)
        try:
            return LedgerStatus(status)
        except ValueError:
            logger.warning(f"Unknown transaction status {status!r} for {transaction_hash}")
            return LedgerStatus.NOT_FOUND

    async def simulate_transaction(self, transaction_xdr: str) -> dict[str, Any]:
        """
        Simulate a transaction.

        Args:
            transaction_xdr: Base64 transaction envelope

        Returns:
            Raw ``simulateTransaction`` result (may contain ``error``)
        """
        return await self._request("simulateTransaction", {"transaction": transaction_xdr})

    async def send_transaction(self, transaction_xdr: str) -> SubmitResult:
        """
        Submit a signed transaction.

        Args:
            transaction_xdr: Base64 signed transaction envelope

        Returns:
            SubmitResult with the ledger-assigned hash and submission status
        """
        result = await self._request("sendTransaction", {"transaction": transaction_xdr})
        logger.info(f"Transaction sent: {result.get('hash')} status={result.get('status')}")
        return SubmitResult(
            transaction_hash=result["hash"],
            status=result.get("status", "PENDING"),
        )


class RpcClientPool:
    """One SorobanRpcClient per network, created on first use."""

    def __init__(self, rpc_urls: dict[str, str], timeout: float = 30.0):
        """
        Args:
            rpc_urls: RPC endpoint per network name (empty string = not configured)
            timeout: HTTP timeout in seconds
        """
        self._rpc_urls = dict(rpc_urls)
        self._timeout = timeout
        self._clients: dict[str, SorobanRpcClient] = {}

    def is_configured(self, network: str) -> bool:
        """Whether an endpoint is configured for a network."""
        return bool(self._rpc_urls.get(network))

    def get(self, network: str) -> SorobanRpcClient:
        """Get the client for a network.

        Raises:
            MissingRpcUrlError: No endpoint configured for the network
        """
        if network not in self._clients:
            url = self._rpc_urls.get(network)
            if not url:
                raise MissingRpcUrlError(network)
            self._clients[network] = SorobanRpcClient(url, timeout=self._timeout)
        return self._clients[network]

    async def close(self) -> None:
        """Close all clients."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
