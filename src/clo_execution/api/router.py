"""Pool hook endpoints: price updates, expiry sweeps and read-only book views."""
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_common.database import get_db_session
from src.clo_execution.application import service as svc
from src.clo_execution.application.schemas import (
    CandidatesResponse,
    PriceResponse,
    PriceUpdateRequest,
    PriceUpdateResponse,
    SweepRequest,
    SweepResponse,
)
from src.clo_gateway.auth.dependencies import require_hook_operator

router = APIRouter(prefix="/pools", tags=["pools"])


@router.post("/{pool}/price-updates", response_model=PriceUpdateResponse)
async def post_price_update(
    pool: str,
    req: PriceUpdateRequest,
    _hook: Annotated[str, Depends(require_hook_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> PriceUpdateResponse:
    return await svc.process_price_update(pool, req, db)


@router.post("/{pool}/sweep", response_model=SweepResponse)
async def sweep_expired(
    pool: str,
    req: SweepRequest,
    _hook: Annotated[str, Depends(require_hook_operator)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> SweepResponse:
    return await svc.sweep_pool(pool, req, db)


@router.get("/{pool}/candidates", response_model=CandidatesResponse)
async def list_candidates(
    pool: str,
    _hook: Annotated[str, Depends(require_hook_operator)],
) -> CandidatesResponse:
    return svc.list_candidates(pool)


@router.get("/{pool}/price", response_model=PriceResponse)
async def latest_price(
    pool: str,
    _hook: Annotated[str, Depends(require_hook_operator)],
) -> PriceResponse:
    return svc.latest_price(pool)
