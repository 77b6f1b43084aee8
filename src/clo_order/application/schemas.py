from pydantic import BaseModel, Field, field_validator

from src.clo_common.enums import FheType, OrderField
from src.clo_fhe.decryption import DecryptionTicket
from src.clo_fhe.types import EncryptedInput
from src.clo_order.domain.models import EncryptedOrderInputs


class EncryptedValue(BaseModel):
    """Client-encrypted value: hex ciphertext plus its declared width."""

    ciphertext: str
    fhe_type: FheType

    @field_validator("ciphertext")
    @classmethod
    def must_be_hex(cls, v: str) -> str:
        bytes.fromhex(v.removeprefix("0x"))  # ValueError -> 422
        return v

    def to_input(self) -> EncryptedInput:
        return EncryptedInput(data=bytes.fromhex(self.ciphertext.removeprefix("0x")), fhe_type=self.fhe_type)


class PlaceOrderRequest(BaseModel):
    # Fields are optional here so a missing one surfaces as MalformedOrderError
    pool: str
    direction: EncryptedValue | None = None
    trigger_price: EncryptedValue | None = None
    order_size: EncryptedValue | None = None
    min_fill_size: EncryptedValue | None = None
    partial_fill_allowed: EncryptedValue | None = None
    expiration_time: EncryptedValue | None = None

    def to_inputs(self) -> EncryptedOrderInputs:
        def conv(v: EncryptedValue | None) -> EncryptedInput | None:
            return v.to_input() if v is not None else None

        return EncryptedOrderInputs(
            direction=conv(self.direction),
            trigger_price=conv(self.trigger_price),
            order_size=conv(self.order_size),
            min_fill_size=conv(self.min_fill_size),
            partial_fill_allowed=conv(self.partial_fill_allowed),
            expiration_time=conv(self.expiration_time),
        )


class OrderResponse(BaseModel):
    id: int
    owner: str
    pool: str
    status: str
    fill_count: int
    created_at: int
    updated_at: int
    ciphertexts: dict[str, str]  # field -> "EUINT128:0x1a2b"


class CancelOrderResponse(BaseModel):
    order_id: int
    status: str


class OrderListResponse(BaseModel):
    items: list[OrderResponse]


class FillResponse(BaseModel):
    sequence: int
    size: str
    price: str
    timestamp: int


class FillInfoResponse(BaseModel):
    order_id: int
    fill_count: int
    filled_size: str
    vwap_numerator: str
    vwap_denominator: str
    fills: list[FillResponse]


class DecryptionRequest(BaseModel):
    field: OrderField


class CompleteDecryptionRequest(BaseModel):
    plaintext: int = Field(ge=0)


class TicketResponse(BaseModel):
    id: str
    order_id: int | None
    field: str | None
    status: str
    requested_at: int
    completed_at: int | None = None
    plaintext: str | None = None  # decimal string; values may exceed 2**53

    @classmethod
    def from_ticket(cls, ticket: DecryptionTicket, plaintext: int | None = None) -> "TicketResponse":
        return cls(
            id=ticket.id,
            order_id=ticket.order_id,
            field=ticket.field,
            status=ticket.status.value,
            requested_at=ticket.requested_at,
            completed_at=ticket.completed_at,
            plaintext=str(plaintext) if plaintext is not None else None,
        )
