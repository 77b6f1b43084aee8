# src/clo_order/infrastructure/persistence.py
"""OrderRepository — raw SQL audit trail for the encrypted book.

The in-memory engine is the source of truth for ciphertext state; these
tables record what happened (order metadata, ciphertext references, fills,
events, ticket lifecycle) for audit and reporting.
"""
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_fhe.decryption import DecryptionTicket
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import FillRecord, Order, OrderEvent

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ORDER_SQL = text("""
    INSERT INTO encrypted_orders (id, owner, pool, status, fill_count,
        direction_ct, trigger_price_ct, order_size_ct, remaining_size_ct,
        min_fill_size_ct, partial_fill_allowed_ct, expiration_time_ct, is_active_ct,
        placed_at, changed_at)
    VALUES (:id, :owner, :pool, :status, :fill_count,
        :direction_ct, :trigger_price_ct, :order_size_ct, :remaining_size_ct,
        :min_fill_size_ct, :partial_fill_allowed_ct, :expiration_time_ct, :is_active_ct,
        :placed_at, :changed_at)
""")

_UPDATE_ORDER_SQL = text("""
    UPDATE encrypted_orders
    SET status = :status, fill_count = :fill_count,
        remaining_size_ct = :remaining_size_ct, is_active_ct = :is_active_ct,
        changed_at = :changed_at
    WHERE id = :id
""")

_INSERT_FILL_SQL = text("""
    INSERT INTO order_fills (order_id, sequence, size_ct, price_ct, filled_at)
    VALUES (:order_id, :sequence, :size_ct, :price_ct, :filled_at)
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO order_events (event_type, order_id, pool, owner, fill_amount, occurred_at)
    VALUES (:event_type, :order_id, :pool, :owner, :fill_amount, :occurred_at)
""")

_INSERT_TICKET_SQL = text("""
    INSERT INTO decryption_tickets (id, handle_ct, requester, order_id, field,
        status, requested_at)
    VALUES (:id, :handle_ct, :requester, :order_id, :field, :status, :requested_at)
""")

_UPDATE_TICKET_SQL = text("""
    UPDATE decryption_tickets
    SET status = :status, completed_at = :completed_at
    WHERE id = :id
""")


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _ct(value: Ciphertext) -> str:
    return str(value)


def _order_params(order: Order) -> dict[str, Any]:
    return {
        "id": order.id,
        "owner": order.owner,
        "pool": order.pool,
        "status": order.status.value,
        "fill_count": order.fill_count,
        "direction_ct": _ct(order.direction),
        "trigger_price_ct": _ct(order.trigger_price),
        "order_size_ct": _ct(order.order_size),
        "remaining_size_ct": _ct(order.remaining_size),
        "min_fill_size_ct": _ct(order.min_fill_size),
        "partial_fill_allowed_ct": _ct(order.partial_fill_allowed),
        "expiration_time_ct": _ct(order.expiration_time),
        "is_active_ct": _ct(order.is_active),
        "placed_at": order.created_at,
        "changed_at": order.updated_at,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def save(self, order: Order, db: AsyncSession) -> None:
        await db.execute(_INSERT_ORDER_SQL, _order_params(order))

    async def update_state(self, order: Order, db: AsyncSession) -> None:
        await db.execute(
            _UPDATE_ORDER_SQL,
            {
                "id": order.id,
                "status": order.status.value,
                "fill_count": order.fill_count,
                "remaining_size_ct": _ct(order.remaining_size),
                "is_active_ct": _ct(order.is_active),
                "changed_at": order.updated_at,
            },
        )

    async def write_fill(self, fill: FillRecord, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_FILL_SQL,
            {
                "order_id": fill.order_id,
                "sequence": fill.sequence,
                "size_ct": _ct(fill.size),
                "price_ct": _ct(fill.price),
                "filled_at": fill.timestamp,
            },
        )

    async def write_event(self, event: OrderEvent, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_EVENT_SQL,
            {
                "event_type": event.event_type.value,
                "order_id": event.order_id,
                "pool": event.pool,
                "owner": event.owner,
                "fill_amount": event.fill_amount,
                "occurred_at": event.timestamp,
            },
        )

    async def save_ticket(self, ticket: DecryptionTicket, db: AsyncSession) -> None:
        await db.execute(
            _INSERT_TICKET_SQL,
            {
                "id": ticket.id,
                "handle_ct": f"{ticket.handle:#x}",
                "requester": ticket.requester,
                "order_id": ticket.order_id,
                "field": ticket.field,
                "status": ticket.status.value,
                "requested_at": ticket.requested_at,
            },
        )

    async def update_ticket(self, ticket: DecryptionTicket, db: AsyncSession) -> None:
        await db.execute(
            _UPDATE_TICKET_SQL,
            {
                "id": ticket.id,
                "status": ticket.status.value,
                "completed_at": ticket.completed_at,
            },
        )

