# src/clo_execution/application/service.py
"""Async application layer around the synchronous ExecutionEngine.

One engine per process. Calls touching a pool are serialised on that pool's
lock; the audit trail is written inside the same unit of work, and if the
database write or commit fails the engine is restored to its pre-call state.
Fills are settled only after the commit, still under the pool lock.
"""
import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.clo_execution.application.schemas import (
    CandidatesResponse,
    EventResponse,
    FillSummary,
    PriceResponse,
    PriceUpdateRequest,
    PriceUpdateResponse,
    SweepRequest,
    SweepResponse,
)
from src.clo_execution.domain.models import EngineConfig, PriceUpdate, SideLiquidity
from src.clo_execution.engine.engine import ExecutionEngine
from src.clo_fhe.mock_backend import MockFheBackend
from src.clo_order.domain.repository import OrderRepositoryProtocol
from src.clo_order.infrastructure.persistence import OrderRepository

logger = logging.getLogger(__name__)

_engine: ExecutionEngine | None = None
_pool_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
_repo = OrderRepository()


def get_execution_engine() -> ExecutionEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = ExecutionEngine(
            MockFheBackend(resolve_immediately=settings.FHE_RESOLVE_IMMEDIATELY),
            EngineConfig.from_settings(settings),
        )
        logger.info("Execution engine started (paused=%s)", _engine.paused)
    return _engine


@asynccontextmanager
async def pool_unit_of_work(pool: str, db: AsyncSession) -> AsyncIterator[ExecutionEngine]:
    """Serialise on ``pool``, commit on success, undo engine and DB on failure.

    Settlement queued by the engine goes out once the commit has succeeded.
    """
    engine = get_execution_engine()
    async with _pool_locks[pool]:
        state = engine.capture_state()
        try:
            yield engine
            await db.commit()
        except Exception:
            engine.restore_state(state)
            await db.rollback()
            raise
        engine.flush_settlements(pool)


async def persist_events_since(
    engine: ExecutionEngine, mark: int, repo: OrderRepositoryProtocol, db: AsyncSession
) -> None:
    for event in engine.book.events_since(mark):
        await repo.write_event(event, db)


async def process_price_update(
    pool: str, req: PriceUpdateRequest, db: AsyncSession
) -> PriceUpdateResponse:
    update = PriceUpdate(
        pool=pool,
        step=req.step,
        price=req.price,
        liquidity=SideLiquidity(buy=req.buy_liquidity, sell=req.sell_liquidity),
    )
    async with pool_unit_of_work(pool, db) as engine:
        mark = len(engine.book.events)
        report = engine.on_price_update(update, defer_settlement=True)
        for order_id in report.changed:
            await _repo.update_state(engine.book.get(order_id), db)
        for fill in report.fills:
            await _repo.write_fill(fill.fill, db)
        await persist_events_since(engine, mark, _repo, db)

    disclose = engine.config.disclose_fill_amounts
    return PriceUpdateResponse(
        pool=report.pool,
        step=report.step,
        duplicate=report.duplicate,
        evaluated=report.evaluated,
        resolved=report.resolved,
        fills=[
            FillSummary(
                order_id=f.order_id,
                sequence=f.fill.sequence,
                status=engine.book.get(f.order_id).status.value,
                amount=f.amount if disclose else None,
            )
            for f in report.fills
        ],
        deferred=report.deferred,
        events=[EventResponse.from_event(e) for e in report.events],
    )


async def sweep_pool(pool: str, req: SweepRequest, db: AsyncSession) -> SweepResponse:
    async with pool_unit_of_work(pool, db) as engine:
        if req.order_ids is None:
            order_ids = engine.candidates(pool)
        else:
            # unknown ids raise here; other pools' orders are left to their own sweep
            order_ids = [i for i in req.order_ids if engine.book.get(i).pool == pool]
        mark = len(engine.book.events)
        expired = engine.sweep_expired(order_ids)
        for order_id in order_ids:
            await _repo.update_state(engine.book.get(order_id), db)
        await persist_events_since(engine, mark, _repo, db)
    return SweepResponse(pool=pool, expired=expired)


def list_candidates(pool: str) -> CandidatesResponse:
    return CandidatesResponse(pool=pool, order_ids=get_execution_engine().candidates(pool))


def latest_price(pool: str) -> PriceResponse:
    update = get_execution_engine().price_source.latest(pool)
    if update is None:
        return PriceResponse(pool=pool)
    return PriceResponse(
        pool=pool,
        step=update.step,
        price=update.price,
        buy_liquidity=update.liquidity.buy,
        sell_liquidity=update.liquidity.sell,
    )
