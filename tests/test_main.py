"""Tests for service wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from stellar_wrap.config import Settings
from stellar_wrap.errors import ContractNotFoundError, MintingError, MissingRpcUrlError
from stellar_wrap.main import build_services, create_app
from stellar_wrap.models import MintParams, TransactionState, UsageStats
from tests.helpers import CONTRACT_ADDRESS, VALID_ADDRESS


def _settings(**overrides) -> Settings:
    values = {
        "contract_address": CONTRACT_ADDRESS,
        "testnet_rpc_url": "https://rpc.test",
        "mainnet_rpc_url": "",
        "poll_interval_ms": 50,
        "max_poll_duration_ms": 500,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestBuildServices:
    """Tests for build_services."""

    @pytest.mark.asyncio
    async def test_wiring(self):
        """Test the store is a sink and polling settings reach the poller."""
        services = build_services(_settings())

        assert services.bus.sink_count == 1
        assert services.machine.bus is services.bus
        assert services.poller.poll_interval_ms == 50
        assert services.poller.max_duration_ms == 500
        assert services.store.storage_key == "stellar-wrap-transaction-storage"

        await services.rpc_pool.close()
        await services.stats_client.close()

    @pytest.mark.asyncio
    async def test_mint_without_builder_fails_at_building(self):
        """Test the default process reaches building and fails with the pending-integration error."""
        services = build_services(_settings())

        with pytest.raises(MintingError) as exc_info:
            await services.orchestrator.mint_wrap(MintParams(
                user_address=VALID_ADDRESS,
                network="testnet",
                stats=UsageStats(),
            ))

        assert isinstance(exc_info.value.__cause__, ContractNotFoundError)
        assert "Contract integration pending" in str(exc_info.value)
        assert services.machine.state is TransactionState.FAILED
        assert services.store.snapshot.state is TransactionState.FAILED
        assert CONTRACT_ADDRESS in services.store.snapshot.error_message
        await services.rpc_pool.close()

    @pytest.mark.asyncio
    async def test_injected_builder_is_used(self):
        """Test a builder passed to build_services reaches the bridge."""
        builder = MagicMock()
        builder.build = AsyncMock(side_effect=ContractNotFoundError("stop here"))
        services = build_services(_settings(), builder=builder, signer=MagicMock())

        with pytest.raises(MintingError, match="stop here"):
            await services.orchestrator.mint_wrap(MintParams(
                user_address=VALID_ADDRESS,
                network="testnet",
                stats=UsageStats(),
            ))

        builder.build.assert_awaited_once()
        assert builder.build.await_args.args[0] == CONTRACT_ADDRESS
        await services.rpc_pool.close()

    @pytest.mark.asyncio
    async def test_mint_on_unconfigured_network(self):
        """Test mainnet without an RPC URL is a configuration error."""
        services = build_services(_settings())

        with pytest.raises(MissingRpcUrlError):
            await services.orchestrator.mint_wrap(
                MintParams(user_address=VALID_ADDRESS, network="mainnet")
            )


class TestCreateApp:
    """Tests for the app factory."""

    def test_collaborators_on_state(self):
        """Test the builder and signer are kept for the lifespan to wire in."""
        builder, signer = MagicMock(), MagicMock()

        app = create_app(builder=builder, signer=signer)

        assert app.state.builder is builder
        assert app.state.signer is signer
        assert app.state.orchestrator is None

    def test_routes_mounted(self):
        """Test REST, stream and root routes are registered."""
        paths = {route.path for route in create_app().routes}

        assert {"/", "/ws", "/api/mint", "/api/transaction", "/api/transaction/resume"} <= paths
