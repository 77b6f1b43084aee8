from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.clo_common.enums import BookSide
from src.clo_fhe.types import Ciphertext
from src.clo_order.domain.models import FillRecord, OrderEvent

if TYPE_CHECKING:
    from config.settings import Settings


@dataclass(frozen=True)
class EngineConfig:
    """Owner/admin state the engine reads, passed in explicitly."""

    engine_principal: str = "clo-engine"
    emergency_admins: frozenset[str] = frozenset()
    paused: bool = False
    disclose_fill_amounts: bool = False

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineConfig":
        return cls(
            engine_principal=settings.ENGINE_PRINCIPAL,
            emergency_admins=frozenset(settings.EMERGENCY_ADMINS),
            paused=settings.SYSTEM_PAUSED,
            disclose_fill_amounts=settings.DISCLOSE_FILL_AMOUNTS,
        )


@dataclass(frozen=True)
class SideLiquidity:
    """Public pool liquidity available to absorb each side's orders."""

    buy: int = 0
    sell: int = 0

    def for_side(self, side: BookSide) -> int:
        return self.buy if side is BookSide.BUY else self.sell


@dataclass(frozen=True)
class PriceUpdate:
    """Price notification delivered by the pool hook.

    ``step`` identifies the pool state change (block number or hook
    sequence); an update with the same key is applied at most once.
    """

    pool: str
    step: int
    price: int
    liquidity: SideLiquidity

    @property
    def key(self) -> tuple[str, int, int, int, int]:
        return (self.pool, self.step, self.price, self.liquidity.buy, self.liquidity.sell)


@dataclass(frozen=True)
class SettlementInstruction:
    """What the settlement layer needs to move value for one fill.

    The amount and price are the only plaintexts; the side stays encrypted.
    """

    order_id: int
    owner: str
    pool: str
    amount: int
    price: int
    direction: Ciphertext
    timestamp: int


@dataclass
class FillResult:
    order_id: int
    amount: int
    fill: FillRecord
    exhausted: bool | None  # None while the "remaining == 0" signal is pending


@dataclass
class ExecutionReport:
    pool: str
    step: int
    duplicate: bool = False
    evaluated: list[int] = field(default_factory=list)
    resolved: list[int] = field(default_factory=list)  # closed out by a late exhausted signal
    fills: list[FillResult] = field(default_factory=list)
    deferred: list[int] = field(default_factory=list)  # fill decision still decrypting
    events: list[OrderEvent] = field(default_factory=list)
    settlements: list[SettlementInstruction] = field(default_factory=list)

    @property
    def changed(self) -> list[int]:
        """Orders whose stored state must be rewritten."""
        return self.resolved + self.evaluated
