"""Collaborator ports: settlement provider and price source.

The engine only depends on the Protocols; the in-memory implementations
back local development and tests.
"""
import logging
from collections.abc import Sequence
from typing import Protocol

from src.clo_execution.domain.models import PriceUpdate, SettlementInstruction

logger = logging.getLogger(__name__)


class SettlementProvider(Protocol):
    def settle_batch(self, instructions: Sequence[SettlementInstruction]) -> None:
        """Move value for every fill of one price update, all or none.

        Raising means nothing in the batch was applied; the same batch may
        be handed over again later.
        """
        ...


class PriceSource(Protocol):
    def publish(self, update: PriceUpdate) -> None: ...

    def latest(self, pool: str) -> PriceUpdate | None: ...


class InMemorySettlement:
    """Records instructions instead of transferring anything."""

    def __init__(self) -> None:
        self.instructions: list[SettlementInstruction] = []

    def settle_batch(self, instructions: Sequence[SettlementInstruction]) -> None:
        self.instructions.extend(instructions)
        logger.debug("Settlement recorded: %d instructions", len(instructions))

    def settled_amount(self, order_id: int) -> int:
        return sum(i.amount for i in self.instructions if i.order_id == order_id)


class PoolPriceFeed:
    """Last price update seen per pool; steps only move forward."""

    def __init__(self) -> None:
        self._latest: dict[str, PriceUpdate] = {}

    def publish(self, update: PriceUpdate) -> None:
        current = self._latest.get(update.pool)
        if current is not None and update.step < current.step:
            logger.info(
                "Ignoring stale price update: pool=%s step=%d < %d",
                update.pool, update.step, current.step,
            )
            return
        self._latest[update.pool] = update

    def latest(self, pool: str) -> PriceUpdate | None:
        return self._latest.get(pool)
