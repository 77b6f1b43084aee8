from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_common.database import get_db_session
from src.clo_gateway.auth.dependencies import get_current_principal
from src.clo_order.application import service as svc
from src.clo_order.application.schemas import (
    CancelOrderResponse,
    DecryptionRequest,
    FillInfoResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    TicketResponse,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=201)
async def place_order(
    req: PlaceOrderRequest,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> OrderResponse:
    return await svc.place_order(req, principal, db)


@router.post("/{order_id}/cancel", response_model=CancelOrderResponse)
async def cancel_order(
    order_id: int,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> CancelOrderResponse:
    return await svc.cancel_order(order_id, principal, db)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    principal: Annotated[str, Depends(get_current_principal)],
    pool: str | None = Query(None, description="Filter by pool"),
    status: str | None = Query(None, description="Filter by public status"),
) -> OrderListResponse:
    return svc.list_orders(principal, pool, status)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    principal: Annotated[str, Depends(get_current_principal)],
) -> OrderResponse:
    return svc.get_order(order_id, principal)


@router.get("/{order_id}/fills", response_model=FillInfoResponse)
async def get_fill_info(
    order_id: int,
    principal: Annotated[str, Depends(get_current_principal)],
) -> FillInfoResponse:
    return svc.get_fill_info(order_id, principal)


@router.post("/{order_id}/decryptions", response_model=TicketResponse, status_code=201)
async def request_decryption(
    order_id: int,
    req: DecryptionRequest,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> TicketResponse:
    return await svc.request_decryption(order_id, req, principal, db)
