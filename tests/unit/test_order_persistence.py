# tests/unit/test_order_persistence.py
"""Unit tests for OrderRepository using AsyncMock AsyncSession."""
from unittest.mock import AsyncMock

import pytest

from src.clo_common.enums import EventType, FheType, TicketStatus
from src.clo_fhe.decryption import DecryptionTicket
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import FillRecord, Order, OrderEvent
from src.clo_order.infrastructure.persistence import OrderRepository


def _ct(handle: int, fhe_type: FheType = FheType.EUINT128) -> Ciphertext:
    return Ciphertext(handle=handle, fhe_type=fhe_type)


def _make_order() -> Order:
    return Order(
        id=7,
        owner="0xabc",
        pool="ETH-USDC",
        created_at=1_700_000_000,
        direction=_ct(0x1001, FheType.EUINT8),
        trigger_price=_ct(0x1002),
        order_size=_ct(0x1003),
        remaining_size=_ct(0x1003),
        min_fill_size=_ct(0x1004),
        partial_fill_allowed=_ct(0x1005, FheType.EBOOL),
        expiration_time=_ct(0x1006, FheType.EUINT64),
        is_active=_ct(0x1007, FheType.EBOOL),
    )


def _params(db: AsyncMock) -> dict[str, object]:
    return db.execute.await_args.args[1]


class TestOrderRepository:
    @pytest.mark.asyncio
    async def test_save_stores_references_not_values(self) -> None:
        db = AsyncMock()
        await OrderRepository().save(_make_order(), db)
        db.execute.assert_awaited_once()
        params = _params(db)
        assert params["id"] == 7
        assert params["status"] == "PENDING"
        assert params["order_size_ct"] == "EUINT128:0x1003"
        assert params["direction_ct"] == "EUINT8:0x1001"
        assert params["placed_at"] == params["changed_at"] == 1_700_000_000

    @pytest.mark.asyncio
    async def test_update_state(self) -> None:
        db = AsyncMock()
        order = _make_order()
        order.remaining_size = _ct(0x2000)
        order.fill_count = 2
        await OrderRepository().update_state(order, db)
        params = _params(db)
        assert params["remaining_size_ct"] == "EUINT128:0x2000"
        assert params["fill_count"] == 2

    @pytest.mark.asyncio
    async def test_write_fill(self) -> None:
        db = AsyncMock()
        fill = FillRecord(order_id=7, sequence=3, size=_ct(0x3000), price=_ct(0x3001), timestamp=42)
        await OrderRepository().write_fill(fill, db)
        params = _params(db)
        assert (params["order_id"], params["sequence"], params["filled_at"]) == (7, 3, 42)
        assert params["size_ct"] == "EUINT128:0x3000"

    @pytest.mark.asyncio
    async def test_write_event_keeps_amount_optional(self) -> None:
        db = AsyncMock()
        await OrderRepository().write_event(OrderEvent(EventType.ORDER_FILLED, 7, "ETH-USDC", 42), db)
        params = _params(db)
        assert params["event_type"] == "ORDER_FILLED"
        assert params["fill_amount"] is None

    @pytest.mark.asyncio
    async def test_ticket_rows_never_carry_plaintext(self) -> None:
        db = AsyncMock()
        ticket = DecryptionTicket(
            id="dt_1",
            handle=0x1003,
            requester="0xabc",
            requested_at=10,
            order_id=7,
            field="remaining_size",
            status=TicketStatus.CONSUMED,
            plaintext=60,
            completed_at=11,
        )
        repo = OrderRepository()
        await repo.save_ticket(ticket, db)
        assert _params(db)["handle_ct"] == "0x1003"
        assert 60 not in _params(db).values()

        await repo.update_ticket(ticket, db)
        assert _params(db) == {"id": "dt_1", "status": "CONSUMED", "completed_at": 11}
