from pydantic import BaseModel, Field

from src.clo_order.domain.models import OrderEvent


class PriceUpdateRequest(BaseModel):
    step: int = Field(ge=0, description="Block number or hook sequence of the pool state change")
    price: int = Field(ge=0)
    buy_liquidity: int = Field(0, ge=0)
    sell_liquidity: int = Field(0, ge=0)


class EventResponse(BaseModel):
    event_type: str
    order_id: int
    pool: str
    timestamp: int
    owner: str | None = None
    fill_amount: int | None = None

    @classmethod
    def from_event(cls, event: OrderEvent) -> "EventResponse":
        return cls(
            event_type=event.event_type.value,
            order_id=event.order_id,
            pool=event.pool,
            timestamp=event.timestamp,
            owner=event.owner,
            fill_amount=event.fill_amount,
        )


class FillSummary(BaseModel):
    order_id: int
    sequence: int
    status: str
    amount: int | None = None  # only when fill disclosure is enabled


class PriceUpdateResponse(BaseModel):
    pool: str
    step: int
    duplicate: bool
    evaluated: list[int]
    resolved: list[int] = []  # moved to FILLED by a late exhausted signal
    fills: list[FillSummary]
    deferred: list[int]
    events: list[EventResponse]


class SweepRequest(BaseModel):
    order_ids: list[int] | None = None  # None sweeps every open order of the pool


class SweepResponse(BaseModel):
    pool: str
    expired: list[int]


class CandidatesResponse(BaseModel):
    pool: str
    order_ids: list[int]


class PriceResponse(BaseModel):
    pool: str
    step: int | None = None
    price: int | None = None
    buy_liquidity: int | None = None
    sell_liquidity: int | None = None
