"""Time-based expiration over encrypted expiration times."""
import logging
from collections.abc import Iterable

from src.clo_common.enums import EventType, FheType, OrderStatus
from src.clo_execution.engine.order_book import EncryptedOrderBook
from src.clo_fhe.decryption import DecryptionOracle
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import Order, OrderEvent

logger = logging.getLogger(__name__)


class ExpirationTracker:
    def __init__(self, fhe: FheOps, oracle: DecryptionOracle, book: EncryptedOrderBook) -> None:
        self._fhe = fhe
        self._oracle = oracle
        self._book = book

    def is_expired(self, order: Order, now: int) -> Ciphertext:
        """EBOOL: now >= expiration_time."""
        now_ct = self._fhe.encrypt(now, FheType.EUINT64)
        return self._fhe.gte(now_ct, order.expiration_time)

    def deactivate_if_expired(self, order: Order, now: int) -> Ciphertext:
        """Force ``is_active`` false once expired; returns the expired flag.

        The remaining size leaves the aggregate only when the order was still
        active, so running this twice, or on a cancelled order, is a no-op.
        """
        expired = self.is_expired(order, now)
        newly_expired = self._fhe.and_(expired, order.is_active)
        order.is_active = self._fhe.select(expired, self._fhe.false(), order.is_active)
        self._fhe.acl.grant(order.is_active.handle, order.owner)

        leaving = self._fhe.select(
            newly_expired, order.remaining_size, self._fhe.encrypt(0, FheType.EUINT128)
        )
        self._book.apply_order_delta(order, leaving, subtract=True)
        return expired

    def sweep_expired(self, order_ids: Iterable[int], now: int) -> list[int]:
        """Deactivate expired orders and move their public status to EXPIRED.

        All ids are resolved before anything changes. Returns the ids whose
        status moved; an order whose expiry signal is still decrypting keeps
        its status until a later sweep.
        """
        orders = [self._book.get(order_id) for order_id in order_ids]
        moved: list[int] = []
        for order in orders:
            expired = self.deactivate_if_expired(order, now)
            if order.is_terminal:
                continue
            has_remaining = self._fhe.not_(
                self._fhe.eq(order.remaining_size, self._fhe.encrypt(0, FheType.EUINT128))
            )
            signal = self._fhe.and_(expired, has_remaining)
            if not self._oracle.reveal_flag(signal):
                continue
            order.transition(OrderStatus.EXPIRED, now)
            self._book.record_event(
                OrderEvent(EventType.ORDER_EXPIRED, order.id, order.pool, now)
            )
            moved.append(order.id)
        if moved:
            logger.info("Expired %d orders", len(moved))
        return moved
