"""ExecutionEngine — synchronous orchestrator for encrypted limit orders.

Owns the book, the fill ledger, the expiration tracker, the grant table and
the decryption tickets, all wired to one coprocessor. Every mutating call
is atomic: on any exception that state is restored to where it was before
the call.

Settlement is the one effect a restore cannot undo, so fills are never
settled one order at a time. A price update collects its instructions and
hands them to the provider as one batch, either as the last step of the
call or, with ``defer_settlement``, from a per-pool outbox that the caller
flushes once its own transaction has committed.
"""
import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from src.clo_common.datetime_utils import unix_now
from src.clo_common.enums import BookSide, EventType, FheType, OrderField, OrderStatus
from src.clo_common.errors import SystemPausedError, UnauthorizedError
from src.clo_execution.domain.models import (
    EngineConfig,
    ExecutionReport,
    FillResult,
    PriceUpdate,
    SettlementInstruction,
)
from src.clo_execution.domain.ports import (
    InMemorySettlement,
    PoolPriceFeed,
    PriceSource,
    SettlementProvider,
)
from src.clo_execution.engine.expiration import ExpirationTracker
from src.clo_execution.engine.fill_ledger import FillAccount, PartialFillLedger
from src.clo_execution.engine.fill_sizing import compute_fill, consume_liquidity
from src.clo_execution.engine.lifecycle import cancel_order, create_order
from src.clo_execution.engine.order_book import BookSnapshot, EncryptedOrderBook
from src.clo_fhe.access_control import AccessControl
from src.clo_fhe.backend import FheBackend
from src.clo_fhe.decryption import DecryptionOracle, DecryptionTicket
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import EncryptedOrderInputs, Order, OrderEvent

logger = logging.getLogger(__name__)


@dataclass
class EngineState:
    book: BookSnapshot
    ledger: dict[int, FillAccount]
    grants: dict[int, set[str]]
    tickets: dict[str, DecryptionTicket]
    unsettled: dict[str, list[SettlementInstruction]]


class ExecutionEngine:
    def __init__(
        self,
        backend: FheBackend,
        config: EngineConfig | None = None,
        settlement: SettlementProvider | None = None,
        price_source: PriceSource | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.paused = self.config.paused
        self.backend = backend
        self.acl = AccessControl(self.config.emergency_admins)
        self.fhe = FheOps(backend, self.acl, self.config.engine_principal)
        self.oracle = DecryptionOracle(backend, self.acl, self.config.engine_principal)
        self.book = EncryptedOrderBook(self.fhe)
        self.ledger = PartialFillLedger(self.fhe, self.oracle, self.book)
        self.expiry = ExpirationTracker(self.fhe, self.oracle, self.book)
        self.settlement: SettlementProvider = settlement or InMemorySettlement()
        self.price_source: PriceSource = price_source or PoolPriceFeed()
        self._unsettled: dict[str, list[SettlementInstruction]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    def capture_state(self) -> EngineState:
        return EngineState(
            book=self.book.snapshot(),
            ledger=self.ledger.snapshot(),
            grants=self.acl.snapshot(),
            tickets=self.oracle.snapshot(),
            unsettled={pool: list(batch) for pool, batch in self._unsettled.items()},
        )

    def restore_state(self, state: EngineState) -> None:
        self.book.restore(state.book)
        self.ledger.restore(state.ledger)
        self.acl.restore(state.grants)
        self.oracle.restore(state.tickets)
        self._unsettled = defaultdict(list, state.unsettled)
        logger.warning("Engine state rolled back")

    @contextmanager
    def transaction(self) -> Iterator[None]:
        state = self.capture_state()
        try:
            yield
        except Exception:
            self.restore_state(state)
            raise

    def _check_not_paused(self) -> None:
        if self.paused:
            raise SystemPausedError()

    # ------------------------------------------------------------------
    # Order lifecycle
    # ------------------------------------------------------------------

    def place_order(
        self, owner: str, pool: str, inputs: EncryptedOrderInputs, now: int | None = None
    ) -> Order:
        self._check_not_paused()
        with self.transaction():
            order = create_order(
                self.fhe, self.book, self.ledger, owner, pool, inputs, _now(now)
            )
        logger.info("Order placed: id=%d owner=%s pool=%s", order.id, owner, pool)
        return order

    def cancel_order(self, order_id: int, caller: str, now: int | None = None) -> Order:
        with self.transaction():
            order = cancel_order(self.fhe, self.book, order_id, caller, _now(now))
        logger.info("Order cancelled: id=%d by=%s", order_id, caller)
        return order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: int, viewer: str) -> Order:
        order = self.book.get(order_id)
        if viewer != order.owner and not self.acl.is_admin(viewer):
            raise UnauthorizedError(viewer, f"view order {order_id}")
        return order

    def orders_for(self, owner: str) -> list[Order]:
        return self.book.list_by_owner(owner)

    def fill_account(self, order_id: int, viewer: str) -> FillAccount:
        self.get_order(order_id, viewer)
        return self.ledger.account(order_id)

    def candidates(self, pool: str) -> list[int]:
        return list(self.book.list_active_candidates(pool))

    def aggregate(self, pool: str, side: BookSide) -> Ciphertext:
        return self.book.aggregate(pool, side)

    # ------------------------------------------------------------------
    # Decryption
    # ------------------------------------------------------------------

    def request_decryption(
        self, order_id: int, field: OrderField, caller: str, now: int | None = None
    ) -> DecryptionTicket:
        """Open a ticket for one encrypted field of an order or its fill account."""
        order = self.book.get(order_id)
        if field is OrderField.AVERAGE_PRICE:
            self.acl.require(self.ledger.account(order_id).vwap_numerator.handle, caller)
            value = self.ledger.average_price(order_id)
        else:
            handles = {**order.encrypted_fields(), **self.ledger.account(order_id).encrypted_fields()}
            value = handles[field]
        return self.oracle.request(
            value.handle, caller, order_id=order_id, field=field.value, now=_now(now)
        )

    def get_ticket(self, ticket_id: str, viewer: str) -> DecryptionTicket:
        return self.oracle.get(ticket_id, viewer)

    def complete_decryption(
        self, ticket_id: str, caller: str, plaintext: int, now: int | None = None
    ) -> DecryptionTicket:
        return self.oracle.complete_with_result(ticket_id, caller, plaintext, _now(now))

    def revoke_grant(self, handle: int, principal: str, caller: str) -> bool:
        return self.acl.revoke(handle, principal, caller)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def on_price_update(
        self, update: PriceUpdate, now: int | None = None, defer_settlement: bool = False
    ) -> ExecutionReport:
        self._check_not_paused()
        self.price_source.publish(update)
        return self.evaluate_and_execute(
            self.book.list_active_candidates(update.pool), update, now, defer_settlement
        )

    def evaluate_and_execute(
        self,
        candidate_ids: Iterable[int],
        update: PriceUpdate,
        now: int | None = None,
        defer_settlement: bool = False,
    ) -> ExecutionReport:
        """Evaluate every candidate against one price update and execute fills.

        Only each order's final fill size is decrypted. An order whose fill
        decision is still decrypting is reported as deferred and left for the
        next update; nothing beyond expiry deactivation is committed for it.

        The fills are settled as one batch after every order has been
        evaluated; a settlement failure rolls the whole update back. With
        ``defer_settlement`` the batch is queued for ``flush_settlements``
        instead.
        """
        self._check_not_paused()
        if self.book.was_processed(update.key):
            logger.info(
                "Duplicate or stale price update ignored: pool=%s step=%d", update.pool, update.step
            )
            return ExecutionReport(pool=update.pool, step=update.step, duplicate=True)

        ts = _now(now)
        report = ExecutionReport(pool=update.pool, step=update.step)
        with self.transaction():
            event_mark = len(self.book.events)
            orders = sorted(
                (self.book.get(order_id) for order_id in candidate_ids),
                key=lambda o: (o.id, o.created_at),
            )
            fhe = self.fhe
            price = fhe.encrypt(update.price, FheType.EUINT128)
            buy_liquidity = fhe.min(
                fhe.encrypt(update.liquidity.buy, FheType.EUINT128),
                self.book.aggregate(update.pool, BookSide.BUY),
            )
            sell_liquidity = fhe.min(
                fhe.encrypt(update.liquidity.sell, FheType.EUINT128),
                self.book.aggregate(update.pool, BookSide.SELL),
            )

            for order in orders:
                if order.pool != update.pool:
                    logger.warning(
                        "Skipping order %d: pool %s is not %s", order.id, order.pool, update.pool
                    )
                    continue
                if self._resolve_exhaustion(order, ts):
                    report.resolved.append(order.id)
                if order.is_terminal:
                    continue
                report.evaluated.append(order.id)

                self.expiry.deactivate_if_expired(order, ts)
                decision = compute_fill(fhe, order, price, buy_liquidity, sell_liquidity)
                amount = self.oracle.reveal(decision.fill)
                if amount is None:
                    report.deferred.append(order.id)
                    continue
                if amount == 0:
                    continue

                buy_liquidity, sell_liquidity = consume_liquidity(
                    fhe, decision.is_sell, decision.fill, buy_liquidity, sell_liquidity
                )
                fill, instruction = self._execute_fill(
                    order, decision.fill, amount, price, update, ts
                )
                report.fills.append(fill)
                report.settlements.append(instruction)

            self.book.mark_processed(update.key)
            report.events = self.book.events_since(event_mark)
            if report.settlements:
                if defer_settlement:
                    self._unsettled[update.pool].extend(report.settlements)
                else:
                    self.settlement.settle_batch(report.settlements)

        logger.info(
            "Price update applied: pool=%s step=%d evaluated=%d fills=%d deferred=%d",
            update.pool, update.step, len(report.evaluated), len(report.fills), len(report.deferred),
        )
        return report

    def unsettled(self, pool: str) -> list[SettlementInstruction]:
        return list(self._unsettled.get(pool, []))

    def flush_settlements(self, pool: str) -> int:
        """Hand the pool's queued instructions to the provider as one batch.

        Called after the caller's transaction has committed, so a failure
        here cannot undo the fills: the batch stays queued and goes out
        with the next flush for the pool.
        """
        batch = self._unsettled.get(pool)
        if not batch:
            return 0
        try:
            self.settlement.settle_batch(batch)
        except Exception:
            logger.exception(
                "Settlement failed, %d instructions kept for retry: pool=%s", len(batch), pool
            )
            return 0
        del self._unsettled[pool]
        logger.info("Settled %d fills: pool=%s", len(batch), pool)
        return len(batch)

    def _execute_fill(
        self,
        order: Order,
        fill: Ciphertext,
        amount: int,
        price: Ciphertext,
        update: PriceUpdate,
        now: int,
    ) -> tuple[FillResult, SettlementInstruction]:
        record, exhausted = self.ledger.record_fill(order.id, fill, price, now)
        self.book.apply_order_delta(order, fill, subtract=True)
        order.fill_count += 1
        order.transition(OrderStatus.FILLED if exhausted else OrderStatus.PARTIALLY_FILLED, now)

        instruction = SettlementInstruction(
            order_id=order.id,
            owner=order.owner,
            pool=order.pool,
            amount=amount,
            price=update.price,
            direction=order.direction,
            timestamp=now,
        )
        self.book.record_event(
            OrderEvent(
                EventType.ORDER_FILLED,
                order.id,
                order.pool,
                now,
                fill_amount=amount if self.config.disclose_fill_amounts else None,
            )
        )
        result = FillResult(order_id=order.id, amount=amount, fill=record, exhausted=exhausted)
        return result, instruction

    def _resolve_exhaustion(self, order: Order, now: int) -> bool:
        """Close out an order whose last fill emptied it once that signal decrypts."""
        if order.status is not OrderStatus.PARTIALLY_FILLED:
            return False
        if self.ledger.check_exhausted(order.id):
            order.transition(OrderStatus.FILLED, now)
            return True
        return False

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def sweep_expired(self, order_ids: Iterable[int], now: int | None = None) -> list[int]:
        self._check_not_paused()
        with self.transaction():
            return self.expiry.sweep_expired(order_ids, _now(now))

    def sweep_pool(self, pool: str, now: int | None = None) -> list[int]:
        return self.sweep_expired(self.candidates(pool), now)


def _now(now: int | None) -> int:
    return now if now is not None else unix_now()
