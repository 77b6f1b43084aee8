# src/clo_order/application/service.py
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_common.enums import TicketStatus
from src.clo_execution.application.service import (
    get_execution_engine,
    persist_events_since,
    pool_unit_of_work,
)
from src.clo_order.application.schemas import (
    CancelOrderResponse,
    CompleteDecryptionRequest,
    DecryptionRequest,
    FillInfoResponse,
    FillResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    TicketResponse,
)
from src.clo_order.domain.models import Order
from src.clo_order.infrastructure.persistence import OrderRepository

_repo = OrderRepository()


def _order_to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        id=order.id,
        owner=order.owner,
        pool=order.pool,
        status=order.status.value,
        fill_count=order.fill_count,
        created_at=order.created_at,
        updated_at=order.updated_at,
        ciphertexts={f.value: str(ct) for f, ct in order.encrypted_fields().items()},
    )


async def place_order(req: PlaceOrderRequest, principal: str, db: AsyncSession) -> OrderResponse:
    async with pool_unit_of_work(req.pool, db) as engine:
        mark = len(engine.book.events)
        order = engine.place_order(principal, req.pool, req.to_inputs())
        await _repo.save(order, db)
        await persist_events_since(engine, mark, _repo, db)
    return _order_to_response(order)


async def cancel_order(order_id: int, principal: str, db: AsyncSession) -> CancelOrderResponse:
    pool = get_execution_engine().book.get(order_id).pool
    async with pool_unit_of_work(pool, db) as engine:
        mark = len(engine.book.events)
        order = engine.cancel_order(order_id, principal)
        await _repo.update_state(order, db)
        await persist_events_since(engine, mark, _repo, db)
    return CancelOrderResponse(order_id=order.id, status=order.status.value)


def get_order(order_id: int, principal: str) -> OrderResponse:
    return _order_to_response(get_execution_engine().get_order(order_id, principal))


def list_orders(principal: str, pool: str | None, status: str | None) -> OrderListResponse:
    orders = get_execution_engine().orders_for(principal)
    if pool is not None:
        orders = [o for o in orders if o.pool == pool]
    if status is not None:
        orders = [o for o in orders if o.status.value == status]
    orders.sort(key=lambda o: o.id, reverse=True)
    return OrderListResponse(items=[_order_to_response(o) for o in orders])


def get_fill_info(order_id: int, principal: str) -> FillInfoResponse:
    engine = get_execution_engine()
    account = engine.fill_account(order_id, principal)
    return FillInfoResponse(
        order_id=order_id,
        fill_count=len(account.fills),
        filled_size=str(account.filled_size),
        vwap_numerator=str(account.vwap_numerator),
        vwap_denominator=str(account.vwap_denominator),
        fills=[
            FillResponse(sequence=f.sequence, size=str(f.size), price=str(f.price), timestamp=f.timestamp)
            for f in account.fills
        ],
    )


async def request_decryption(
    order_id: int, req: DecryptionRequest, principal: str, db: AsyncSession
) -> TicketResponse:
    pool = get_execution_engine().book.get(order_id).pool
    async with pool_unit_of_work(pool, db) as engine:
        ticket = engine.request_decryption(order_id, req.field, principal)
        await _repo.save_ticket(ticket, db)
    return TicketResponse.from_ticket(ticket)


async def get_ticket(ticket_id: str, principal: str, db: AsyncSession) -> TicketResponse:
    engine = get_execution_engine()
    previous = engine.oracle.status_of(ticket_id)
    ticket = engine.get_ticket(ticket_id, principal)
    if ticket.status is not previous:
        await _repo.update_ticket(ticket, db)
        await db.commit()
    plaintext = None
    if ticket.status is TicketStatus.FULFILLED:
        plaintext = engine.oracle.published_plaintext(ticket)
    elif ticket.status is TicketStatus.CONSUMED:
        plaintext = ticket.plaintext
    return TicketResponse.from_ticket(ticket, plaintext)


async def complete_decryption(
    ticket_id: str, req: CompleteDecryptionRequest, principal: str, db: AsyncSession
) -> TicketResponse:
    engine = get_execution_engine()
    previous = engine.oracle.status_of(ticket_id)
    ticket = engine.complete_decryption(ticket_id, principal, req.plaintext)
    try:
        await _repo.update_ticket(ticket, db)
        await db.commit()
    except Exception:
        await db.rollback()
        if previous is not None:
            engine.oracle.reopen(ticket_id, previous)
        raise
    return TicketResponse.from_ticket(ticket, ticket.plaintext)
