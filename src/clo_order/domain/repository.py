# src/clo_order/domain/repository.py
"""OrderRepository Protocol — interface contract for the audit-trail persistence layer."""
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_fhe.decryption import DecryptionTicket
from src.clo_order.domain.models import FillRecord, Order, OrderEvent


class OrderRepositoryProtocol(Protocol):
    async def save(self, order: Order, db: AsyncSession) -> None: ...

    async def update_state(self, order: Order, db: AsyncSession) -> None: ...

    async def write_fill(self, fill: FillRecord, db: AsyncSession) -> None: ...

    async def write_event(self, event: OrderEvent, db: AsyncSession) -> None: ...

    async def save_ticket(self, ticket: DecryptionTicket, db: AsyncSession) -> None: ...

    async def update_ticket(self, ticket: DecryptionTicket, db: AsyncSession) -> None: ...
