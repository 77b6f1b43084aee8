"""Order domain model — pure dataclasses, no SQLAlchemy dependency.

Plaintext attributes (owner, pool, timestamps, public status, fill count)
are safe to disclose. Everything order-private is a Ciphertext handle.
"""
from dataclasses import dataclass, field, fields

from src.clo_common.enums import EventType, FheType, OrderField, OrderStatus
from src.clo_common.errors import InternalError
from src.clo_fhe.types import Ciphertext, EncryptedInput

# Declared width of every client-supplied field
ENCRYPTED_FIELD_TYPES: dict[str, FheType] = {
    "direction": FheType.EUINT8,
    "trigger_price": FheType.EUINT128,
    "order_size": FheType.EUINT128,
    "min_fill_size": FheType.EUINT128,
    "partial_fill_allowed": FheType.EBOOL,
    "expiration_time": FheType.EUINT64,
}

TERMINAL_STATUSES = frozenset({OrderStatus.FILLED, OrderStatus.CANCELLED, OrderStatus.EXPIRED})

_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PARTIALLY_FILLED,
        OrderStatus.FILLED,
        OrderStatus.CANCELLED,
        OrderStatus.EXPIRED,
    }),
    OrderStatus.PARTIALLY_FILLED: frozenset({
        OrderStatus.PARTIALLY_FILLED,
        OrderStatus.FILLED,
        OrderStatus.CANCELLED,
        OrderStatus.EXPIRED,
    }),
}


@dataclass
class EncryptedOrderInputs:
    """Client-encrypted order parameters as submitted with placeOrder."""

    direction: EncryptedInput | None = None
    trigger_price: EncryptedInput | None = None
    order_size: EncryptedInput | None = None
    min_fill_size: EncryptedInput | None = None
    partial_fill_allowed: EncryptedInput | None = None
    expiration_time: EncryptedInput | None = None

    def items(self) -> list[tuple[str, EncryptedInput | None]]:
        return [(f.name, getattr(self, f.name)) for f in fields(self)]


@dataclass
class Order:
    id: int
    owner: str
    pool: str
    created_at: int  # unix seconds, public
    # Encrypted parameters
    direction: Ciphertext  # EUINT8: 0=buy, 1=sell
    trigger_price: Ciphertext
    order_size: Ciphertext
    remaining_size: Ciphertext
    min_fill_size: Ciphertext
    partial_fill_allowed: Ciphertext
    expiration_time: Ciphertext
    is_active: Ciphertext
    # Public lifecycle
    status: OrderStatus = OrderStatus.PENDING
    fill_count: int = 0
    updated_at: int = field(default=0)

    def __post_init__(self) -> None:
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, new_status: OrderStatus, at: int) -> None:
        allowed = _TRANSITIONS.get(self.status, frozenset())
        if new_status not in allowed:
            raise InternalError(
                f"Illegal transition for order {self.id}: {self.status.value} -> {new_status.value}"
            )
        self.status = new_status
        self.updated_at = at

    def encrypted_fields(self) -> dict[OrderField, Ciphertext]:
        return {
            OrderField.DIRECTION: self.direction,
            OrderField.TRIGGER_PRICE: self.trigger_price,
            OrderField.ORDER_SIZE: self.order_size,
            OrderField.REMAINING_SIZE: self.remaining_size,
            OrderField.MIN_FILL_SIZE: self.min_fill_size,
            OrderField.PARTIAL_FILL_ALLOWED: self.partial_fill_allowed,
            OrderField.EXPIRATION_TIME: self.expiration_time,
            OrderField.IS_ACTIVE: self.is_active,
        }


@dataclass(frozen=True)
class FillRecord:
    """One execution against an order. Immutable once appended."""

    order_id: int
    sequence: int
    size: Ciphertext
    price: Ciphertext
    timestamp: int


@dataclass(frozen=True)
class OrderEvent:
    """Plaintext-safe lifecycle event."""

    event_type: EventType
    order_id: int
    pool: str
    timestamp: int
    owner: str | None = None
    fill_amount: int | None = None  # only when fill disclosure is enabled

    def payload(self) -> dict[str, object]:
        data: dict[str, object] = {"order_id": self.order_id, "timestamp": self.timestamp}
        if self.owner is not None:
            data["owner"] = self.owner
        if self.fill_amount is not None:
            data["fill_amount"] = self.fill_amount
        return data
