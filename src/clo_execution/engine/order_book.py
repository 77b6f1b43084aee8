"""Encrypted order book.

Keyed storage of every order plus per-(pool, side) encrypted aggregates of
active size. Aggregates are engine operands only; they are never granted to
anyone else, and because they only move through homomorphic add/sub the
result does not depend on the order updates are applied in.
"""
import copy
import logging
from collections import defaultdict
from collections.abc import Iterator
from dataclasses import dataclass

from src.clo_common.enums import BookSide, FheType
from src.clo_common.errors import OrderNotFoundError
from src.clo_common.id_generator import OrderIdSequence
from src.clo_execution.engine.fill_sizing import is_sell_side
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import Order, OrderEvent

logger = logging.getLogger(__name__)

UpdateKey = tuple[str, int, int, int, int]


@dataclass
class BookSnapshot:
    orders: dict[int, Order]
    pool_index: dict[str, list[int]]
    aggregates: dict[tuple[str, BookSide], Ciphertext]
    events: list[OrderEvent]
    processed: dict[str, tuple[int, set[UpdateKey]]]
    next_id: int


class EncryptedOrderBook:
    def __init__(self, fhe: FheOps) -> None:
        self._fhe = fhe
        self._orders: dict[int, Order] = {}
        self._pool_index: dict[str, list[int]] = defaultdict(list)
        self._aggregates: dict[tuple[str, BookSide], Ciphertext] = {}
        self._events: list[OrderEvent] = []
        self._processed: dict[str, tuple[int, set[UpdateKey]]] = {}  # pool -> (latest step, keys)
        self._ids = OrderIdSequence()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def next_order_id(self) -> int:
        return self._ids.next_id()

    def add(self, order: Order) -> None:
        self._orders[order.id] = order
        self._pool_index[order.pool].append(order.id)

    def get(self, order_id: int) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def __len__(self) -> int:
        return len(self._orders)

    def list_active_candidates(self, pool: str) -> Iterator[int]:
        """Ids of the pool's orders that may still be active, ascending.

        A candidate set only: public status filters out terminal orders, but
        whether a candidate is really active is encrypted. Each call starts
        a fresh enumeration.
        """
        for order_id in tuple(self._pool_index.get(pool, ())):
            if not self._orders[order_id].is_terminal:
                yield order_id

    def list_by_owner(self, owner: str) -> list[Order]:
        return [o for o in self._orders.values() if o.owner == owner]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def aggregate(self, pool: str, side: BookSide) -> Ciphertext:
        key = (pool, side)
        if key not in self._aggregates:
            self._aggregates[key] = self._fhe.encrypt(0, FheType.EUINT128)
        return self._aggregates[key]

    def update_aggregate(
        self, pool: str, side: BookSide, delta: Ciphertext, subtract: bool = False
    ) -> Ciphertext:
        """Fold an encrypted delta into the (pool, side) aggregate.

        Subtraction is clamped at zero so a stale delta can never wrap.
        """
        current = self.aggregate(pool, side)
        if subtract:
            updated = self._fhe.sub_clamped(current, delta)
        else:
            updated = self._fhe.add(current, delta)
        self._aggregates[(pool, side)] = updated
        return updated

    def apply_order_delta(self, order: Order, amount: Ciphertext, subtract: bool = False) -> None:
        """Route ``amount`` to the order's side; the other side gets zero."""
        is_sell = is_sell_side(self._fhe, order.direction)
        zero = self._fhe.encrypt(0, FheType.EUINT128)
        self.update_aggregate(order.pool, BookSide.SELL, self._fhe.select(is_sell, amount, zero), subtract)
        self.update_aggregate(order.pool, BookSide.BUY, self._fhe.select(is_sell, zero, amount), subtract)

    # ------------------------------------------------------------------
    # Events & idempotence
    # ------------------------------------------------------------------

    def record_event(self, event: OrderEvent) -> None:
        self._events.append(event)
        logger.info(
            "%s order=%d pool=%s", event.event_type.value, event.order_id, event.pool
        )

    @property
    def events(self) -> tuple[OrderEvent, ...]:
        return tuple(self._events)

    def events_since(self, index: int) -> list[OrderEvent]:
        return self._events[index:]

    def was_processed(self, key: UpdateKey) -> bool:
        """True for an applied key, or any key from a step behind the pool's latest."""
        entry = self._processed.get(key[0])
        if entry is None:
            return False
        latest_step, keys = entry
        return key[1] < latest_step or key in keys

    def mark_processed(self, key: UpdateKey) -> None:
        pool, step = key[0], key[1]
        entry = self._processed.get(pool)
        if entry is None or step > entry[0]:
            # keys from earlier steps are covered by the step comparison
            self._processed[pool] = (step, {key})
        else:
            entry[1].add(key)

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    def snapshot(self) -> BookSnapshot:
        return BookSnapshot(
            orders={oid: copy.copy(o) for oid, o in self._orders.items()},
            pool_index={pool: list(ids) for pool, ids in self._pool_index.items()},
            aggregates=dict(self._aggregates),
            events=list(self._events),
            processed={pool: (step, set(keys)) for pool, (step, keys) in self._processed.items()},
            next_id=self._ids.peek,
        )

    def restore(self, snap: BookSnapshot) -> None:
        self._orders = snap.orders
        self._pool_index = defaultdict(list, snap.pool_index)
        self._aggregates = snap.aggregates
        self._events = snap.events
        self._processed = snap.processed
        self._ids = OrderIdSequence(start=snap.next_id)
