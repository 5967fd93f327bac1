"""Tests for the Soroban RPC client."""

import json

import httpx
import pytest

from stellar_wrap.clients import RpcClientPool, SorobanRpcClient
from stellar_wrap.clients.soroban_rpc import RpcError
from stellar_wrap.errors import MissingRpcUrlError
from stellar_wrap.models import LedgerStatus
from tests.helpers import TX_HASH

RPC_URL = "https://rpc.test"


def _client_with(handler) -> SorobanRpcClient:
    client = SorobanRpcClient(RPC_URL)
    client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client


def _result(result):
    def handler(request):
        body = json.loads(request.content)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})
    return handler


class TestSorobanRpcClient:
    """Tests for SorobanRpcClient."""

    @pytest.mark.asyncio
    async def test_request_payload(self):
        """Test calls are well-formed JSON-RPC 2.0 with increasing ids."""
        requests = []

        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": {"status": "healthy"}})

        client = _client_with(handler)
        await client.get_health()
        await client.get_transaction(TX_HASH)
        await client.close()

        assert requests[0] == {"jsonrpc": "2.0", "id": 1, "method": "getHealth"}
        assert requests[1]["id"] == 2
        assert requests[1]["method"] == "getTransaction"
        assert requests[1]["params"] == {"hash": TX_HASH}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,expected", [
        ("SUCCESS", LedgerStatus.SUCCESS),
        ("FAILED", LedgerStatus.FAILED),
        ("NOT_FOUND", LedgerStatus.NOT_FOUND),
        ("SOMETHING_NEW", LedgerStatus.NOT_FOUND),
    ])
    async def test_transaction_status(self, status, expected):
        """Test getTransaction statuses map to ledger statuses."""
        client = _client_with(_result({"status": status, "latestLedger": 100}))

        assert await client.get_transaction_status(TX_HASH) == expected

    @pytest.mark.asyncio
    async def test_rpc_error(self):
        """Test a JSON-RPC error object raises RpcError."""
        def handler(request):
            return httpx.Response(200, json={
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": -32602, "message": "invalid hash"},
            })

        client = _client_with(handler)

        with pytest.raises(RpcError) as exc_info:
            await client.get_transaction("zz")

        assert exc_info.value.code == -32602
        assert "invalid hash" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_http_error(self):
        """Test HTTP failures propagate as httpx errors."""
        client = _client_with(lambda request: httpx.Response(503))

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_transaction_status(TX_HASH)

    @pytest.mark.asyncio
    async def test_send_transaction(self):
        """Test submission returns the ledger-assigned hash."""
        client = _client_with(_result({"hash": TX_HASH, "status": "PENDING"}))

        result = await client.send_transaction("signed-xdr")

        assert result.transaction_hash == TX_HASH
        assert result.status == "PENDING"

    @pytest.mark.asyncio
    async def test_simulate_transaction(self):
        """Test simulation results are returned raw."""
        client = _client_with(_result({"minResourceFee": "100", "latestLedger": 5}))

        result = await client.simulate_transaction("unsigned-xdr")

        assert result["minResourceFee"] == "100"


class TestRpcClientPool:
    """Tests for RpcClientPool."""

    def test_get_reuses_clients(self):
        """Test one client per network."""
        pool = RpcClientPool({"testnet": RPC_URL, "mainnet": ""})

        assert pool.get("testnet") is pool.get("testnet")
        assert pool.get("testnet").rpc_url == RPC_URL

    @pytest.mark.parametrize("network", ["mainnet", "futurenet"])
    def test_missing_url(self, network):
        """Test unconfigured networks raise a configuration error."""
        pool = RpcClientPool({"testnet": RPC_URL, "mainnet": ""})

        assert not pool.is_configured(network)
        with pytest.raises(MissingRpcUrlError):
            pool.get(network)
