"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from stellar_wrap.api import TransactionBroadcaster, manager, router, websocket_endpoint
from stellar_wrap.clients import (
    RpcClientPool,
    SorobanWalletBridge,
    StatsApiClient,
    TransactionBuilder,
    TransactionSigner,
)
from stellar_wrap.config import Settings, get_settings
from stellar_wrap.models import Network
from stellar_wrap.services import (
    ConfirmationPoller,
    LifecycleStateMachine,
    MintOrchestrator,
    ObservationBus,
)
from stellar_wrap.storage import TransactionStore, cache

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything wired together for one process."""

    bus: ObservationBus
    machine: LifecycleStateMachine
    store: TransactionStore
    poller: ConfirmationPoller
    orchestrator: MintOrchestrator
    rpc_pool: RpcClientPool
    stats_client: StatsApiClient


def build_services(
    settings: Settings,
    builder: TransactionBuilder | None = None,
    signer: TransactionSigner | None = None,
) -> Services:
    """Create the lifecycle machine, its sinks and the orchestrator."""
    if not settings.contract_address:
        logger.warning("CONTRACT_ADDRESS not set. Minting is disabled until configured.")

    rpc_pool = RpcClientPool(
        {network.value: settings.rpc_url_for(network.value) for network in Network},
        timeout=settings.rpc_timeout,
    )
    stats_client = StatsApiClient(settings.stats_api_url, timeout=settings.rpc_timeout)

    bus = ObservationBus()
    store = TransactionStore(settings.transaction_storage_key)
    bus.register(store)

    machine = LifecycleStateMachine(bus)
    # Default ledger node for polling; replaced per network by the orchestrator
    default_network = Network.TESTNET.value
    poller = ConfirmationPoller(
        machine,
        rpc_pool.get(default_network) if rpc_pool.is_configured(default_network) else None,
        poll_interval_ms=settings.poll_interval_ms,
        max_duration_ms=settings.max_poll_duration_ms,
    )
    bridge = SorobanWalletBridge(
        settings.contract_address, rpc_pool, builder=builder, signer=signer
    )
    orchestrator = MintOrchestrator(
        machine,
        poller,
        bridge,
        contract_address=settings.contract_address,
        stats_source=stats_client,
        rpc_pool=rpc_pool,
        stats_period=settings.stats_period,
    )
    return Services(
        bus=bus,
        machine=machine,
        store=store,
        poller=poller,
        orchestrator=orchestrator,
        rpc_pool=rpc_pool,
        stats_client=stats_client,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting Stellar Wrap minting service...")

    await cache.init_cache(settings.redis_url)

    services = build_services(
        settings,
        builder=getattr(app.state, "builder", None),
        signer=getattr(app.state, "signer", None),
    )
    broadcaster = TransactionBroadcaster(manager)
    services.bus.register(broadcaster)

    # Restore the last persisted state and pick up a pending confirmation
    snapshot = await services.store.load()
    if snapshot is not None:
        try:
            if services.orchestrator.recover(snapshot) is not None:
                logger.info(f"Resumed polling for {snapshot.transaction_hash}")
        except Exception as e:
            logger.warning(f"Could not resume pending transaction: {e}")

    app.state.orchestrator = services.orchestrator
    app.state.store = services.store

    yield

    # Shutdown
    logger.info("Shutting down...")
    app.state.orchestrator = None

    services.poller.cancel()
    await services.store.close()
    await broadcaster.close()
    await services.rpc_pool.close()
    await services.stats_client.close()
    await cache.close_cache()

    logger.info("Shutdown complete")


async def root():
    """Root endpoint."""
    return {
        "name": "Stellar Wrap",
        "version": "0.1.0",
        "docs": "/docs",
    }


def create_app(
    builder: TransactionBuilder | None = None,
    signer: TransactionSigner | None = None,
) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        builder: Contract invocation builder (Stellar SDK integration)
        signer: Wallet signer

    Without a builder, mints fail at the building step with
    ContractNotFoundError ("Contract integration pending").
    """
    # orjson for faster JSON serialization
    app = FastAPI(
        title="Stellar Wrap",
        description="Soulbound token minting with transaction lifecycle tracking",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.builder = builder
    app.state.signer = signer
    app.state.orchestrator = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, restrict this
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")
    app.websocket("/ws")(websocket_endpoint)
    app.get("/")(root)
    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "stellar_wrap.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
