# src/clo_admin/application/service.py
"""Emergency admin service: incident-response cancellation and grant revocation."""
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_execution.application.service import (
    get_execution_engine,
    persist_events_since,
    pool_unit_of_work,
)
from src.clo_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self) -> None:
        self._repo = OrderRepository()

    async def emergency_cancel(
        self, order_id: int, admin: str, reason: str | None, db: AsyncSession
    ) -> dict[str, Any]:
        pool = get_execution_engine().book.get(order_id).pool
        async with pool_unit_of_work(pool, db) as engine:
            mark = len(engine.book.events)
            order = engine.cancel_order(order_id, admin)
            await self._repo.update_state(order, db)
            await persist_events_since(engine, mark, self._repo, db)
        logger.warning("Emergency cancel: order=%d admin=%s reason=%s", order_id, admin, reason)
        return {"order_id": order.id, "status": order.status.value}

    def revoke_grant(self, handle: int, principal: str, admin: str) -> dict[str, Any]:
        revoked = get_execution_engine().revoke_grant(handle, principal, admin)
        return {"handle": f"{handle:#x}", "principal": principal, "revoked": revoked}
