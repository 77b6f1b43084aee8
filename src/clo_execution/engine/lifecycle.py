"""Order placement and cancellation against the encrypted book."""
import logging

from src.clo_common.enums import EventType, FheType, OrderStatus
from src.clo_common.errors import (
    MalformedOrderError,
    OrderNotCancellableError,
    UnauthorizedError,
)
from src.clo_execution.engine.fill_ledger import PartialFillLedger
from src.clo_execution.engine.order_book import EncryptedOrderBook
from src.clo_fhe.backend import InvalidCiphertextInput
from src.clo_fhe.ops import FheOps
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import EncryptedOrderInputs, Order, OrderEvent
from src.clo_order.domain.validation import check_order_shape

logger = logging.getLogger(__name__)


def _ingest_all(fhe: FheOps, inputs: EncryptedOrderInputs) -> dict[str, Ciphertext]:
    ingested: dict[str, Ciphertext] = {}
    for name, value in inputs.items():
        if value is None:
            raise MalformedOrderError(f"missing encrypted field '{name}'")
        try:
            ingested[name] = fhe.ingest(value)
        except InvalidCiphertextInput as exc:
            raise MalformedOrderError(f"{name}: {exc}") from exc
    return ingested


def create_order(
    fhe: FheOps,
    book: EncryptedOrderBook,
    ledger: PartialFillLedger,
    owner: str,
    pool: str,
    inputs: EncryptedOrderInputs,
    now: int,
) -> Order:
    check_order_shape(owner, pool, inputs)
    cts = _ingest_all(fhe, inputs)

    order = Order(
        id=book.next_order_id(),
        owner=owner,
        pool=pool,
        created_at=now,
        direction=cts["direction"],
        trigger_price=cts["trigger_price"],
        order_size=cts["order_size"],
        remaining_size=cts["order_size"],
        min_fill_size=cts["min_fill_size"],
        partial_fill_allowed=cts["partial_fill_allowed"],
        expiration_time=cts["expiration_time"],
        is_active=fhe.encrypt(1, FheType.EBOOL),
    )
    book.add(order)
    fhe.acl.grant_all(list(order.encrypted_fields().values()), owner)
    ledger.open_account(order)
    book.apply_order_delta(order, order.order_size)
    book.record_event(
        OrderEvent(EventType.ORDER_PLACED, order.id, pool, now, owner=owner)
    )
    return order


def cancel_order(fhe: FheOps, book: EncryptedOrderBook, order_id: int, caller: str, now: int) -> Order:
    """Owner (or emergency admin) cancel.

    Works without knowing whether the order is still active: ``is_active``
    is overwritten unconditionally and only a still-active order's
    remaining size leaves the aggregate.
    """
    order = book.get(order_id)
    if caller != order.owner and not fhe.acl.is_admin(caller):
        raise UnauthorizedError(caller, f"cancel order {order_id}")
    if order.is_terminal:
        raise OrderNotCancellableError(order_id, order.status.value)

    was_active = order.is_active
    leaving = fhe.select(was_active, order.remaining_size, fhe.encrypt(0, FheType.EUINT128))
    book.apply_order_delta(order, leaving, subtract=True)
    order.is_active = fhe.false()
    fhe.acl.grant(order.is_active.handle, order.owner)

    order.transition(OrderStatus.CANCELLED, now)
    book.record_event(OrderEvent(EventType.ORDER_CANCELLED, order.id, order.pool, now))
    if caller != order.owner:
        logger.warning("Order %d cancelled by emergency admin %s", order_id, caller)
    return order
