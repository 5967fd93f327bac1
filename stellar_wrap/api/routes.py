"""REST API routes."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from stellar_wrap.errors import ConfigurationError, MintingError, ValidationError
from stellar_wrap.models import MintParams, TransactionSnapshot, UsageStats
from stellar_wrap.services import MintOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/response models
class StatsRequest(BaseModel):
    """Caller-supplied usage stats."""

    total_volume: Decimal = Decimal("0")
    most_active_asset: str = "XLM"
    contract_calls: int = 0


class MintRequest(BaseModel):
    """Mint request model."""

    user_address: str
    network: str = "testnet"
    stats: Optional[StatsRequest] = None


class MintResponse(BaseModel):
    """Mint response model."""

    transaction_hash: str


class TransactionResponse(BaseModel):
    """Transaction snapshot response model."""

    state: str
    transaction_hash: Optional[str] = None
    error_message: Optional[str] = None
    network: Optional[str] = None
    updated_at: datetime


class ResumeResponse(BaseModel):
    """Resume response model."""

    resumed: bool
    transaction: TransactionResponse


def get_orchestrator(request: Request) -> MintOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return orchestrator


def _to_response(snapshot: TransactionSnapshot) -> TransactionResponse:
    return TransactionResponse(
        state=snapshot.state.value,
        transaction_hash=snapshot.transaction_hash,
        error_message=snapshot.error_message,
        network=snapshot.network,
        updated_at=snapshot.updated_at,
    )


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@router.post("/mint", response_model=MintResponse)
async def mint(body: MintRequest, request: Request):
    """
    Mint the caller's Stellar Wrapped and wait for finality.

    Live progress is available on GET /transaction and the /ws stream.
    """
    orchestrator = get_orchestrator(request)

    stats = None
    if body.stats is not None:
        stats = UsageStats(
            total_volume=body.stats.total_volume,
            most_active_asset=body.stats.most_active_asset,
            contract_calls=body.stats.contract_calls,
        )

    try:
        transaction_hash = await orchestrator.mint_wrap(MintParams(
            user_address=body.user_address,
            network=body.network,
            stats=stats,
        ))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except MintingError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return MintResponse(transaction_hash=transaction_hash)


@router.get("/transaction", response_model=TransactionResponse)
async def get_transaction(request: Request):
    """Get the live transaction state."""
    return _to_response(get_orchestrator(request).snapshot)


@router.post("/transaction/reset", response_model=TransactionResponse)
async def reset_transaction(request: Request):
    """Abandon the current transaction and return to idle."""
    orchestrator = get_orchestrator(request)
    orchestrator.reset()
    return _to_response(orchestrator.snapshot)


@router.post("/transaction/resume", response_model=ResumeResponse)
async def resume_transaction(request: Request):
    """Re-attach confirmation polling to a pending transaction."""
    orchestrator = get_orchestrator(request)
    try:
        session = orchestrator.resume_if_pending()
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return ResumeResponse(
        resumed=session is not None,
        transaction=_to_response(orchestrator.snapshot),
    )
