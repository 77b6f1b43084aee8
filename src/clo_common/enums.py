"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class FheType(str, Enum):
    """Declared ciphertext width. Arithmetic wraps modulo 2**bits."""

    EBOOL = "EBOOL"
    EUINT8 = "EUINT8"
    EUINT64 = "EUINT64"
    EUINT128 = "EUINT128"

    @property
    def bits(self) -> int:
        return _FHE_BITS[self]


_FHE_BITS = {
    FheType.EBOOL: 1,
    FheType.EUINT8: 8,
    FheType.EUINT64: 64,
    FheType.EUINT128: 128,
}


class FheOp(str, Enum):
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    MIN = "MIN"
    MAX = "MAX"
    GTE = "GTE"
    LTE = "LTE"
    EQ = "EQ"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    SELECT = "SELECT"


class OrderDirection(str, Enum):
    """Plaintext names for the encrypted direction codes (EUINT8)."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def code(self) -> int:
        return 0 if self is OrderDirection.BUY else 1


class BookSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class OrderField(str, Enum):
    """Encrypted fields an owner may request decryption of."""

    DIRECTION = "direction"
    TRIGGER_PRICE = "trigger_price"
    ORDER_SIZE = "order_size"
    REMAINING_SIZE = "remaining_size"
    MIN_FILL_SIZE = "min_fill_size"
    PARTIAL_FILL_ALLOWED = "partial_fill_allowed"
    EXPIRATION_TIME = "expiration_time"
    IS_ACTIVE = "is_active"
    FILLED_SIZE = "filled_size"
    VWAP_NUMERATOR = "vwap_numerator"
    VWAP_DENOMINATOR = "vwap_denominator"
    AVERAGE_PRICE = "average_price"


class EventType(str, Enum):
    ORDER_PLACED = "ORDER_PLACED"
    ORDER_FILLED = "ORDER_FILLED"
    ORDER_CANCELLED = "ORDER_CANCELLED"
    ORDER_EXPIRED = "ORDER_EXPIRED"


class TicketStatus(str, Enum):
    REQUESTED = "REQUESTED"
    FULFILLED = "FULFILLED"
    CONSUMED = "CONSUMED"
