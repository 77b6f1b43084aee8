"""Unit tests for homomorphic trigger and fill-size computation."""
from collections.abc import Callable

import pytest

from src.clo_common.enums import FheType, OrderDirection
from src.clo_execution.engine.engine import ExecutionEngine
from src.clo_execution.engine.fill_sizing import compute_fill, consume_liquidity
from src.clo_fhe.mock_backend import MockFheBackend
from src.clo_order.domain.models import Order


def _fill(engine: ExecutionEngine, order: Order, price: int, buy: int = 0, sell: int = 0) -> int:
    fhe = engine.fhe
    decision = compute_fill(
        fhe,
        order,
        fhe.encrypt(price, FheType.EUINT128),
        fhe.encrypt(buy, FheType.EUINT128),
        fhe.encrypt(sell, FheType.EUINT128),
    )
    assert isinstance(engine.backend, MockFheBackend)
    return engine.backend.plaintext_of(decision.fill)


class TestTrigger:
    @pytest.mark.parametrize(("price", "expected"), [(1999, 0), (2000, 40), (2100, 40)])
    def test_sell_triggers_at_or_above(
        self, engine: ExecutionEngine, place: Callable[..., Order], price: int, expected: int
    ) -> None:
        order = place(direction=OrderDirection.SELL, trigger=2000, size=100)
        assert _fill(engine, order, price, sell=40) == expected

    @pytest.mark.parametrize(("price", "expected"), [(2001, 0), (2000, 40), (1900, 40)])
    def test_buy_triggers_at_or_below(
        self, engine: ExecutionEngine, place: Callable[..., Order], price: int, expected: int
    ) -> None:
        order = place(direction=OrderDirection.BUY, trigger=2000, size=100)
        assert _fill(engine, order, price, buy=40) == expected


class TestSizing:
    def test_uses_own_side_liquidity(self, engine: ExecutionEngine, place: Callable[..., Order]) -> None:
        order = place(direction=OrderDirection.SELL, trigger=2000, size=100)
        assert _fill(engine, order, 2100, buy=80, sell=0) == 0
        assert _fill(engine, order, 2100, buy=0, sell=80) == 80

    def test_capped_at_remaining(self, engine: ExecutionEngine, place: Callable[..., Order]) -> None:
        order = place(trigger=2000, size=100)
        assert _fill(engine, order, 2100, sell=500) == 100

    def test_below_minimum_fills_nothing(self, engine: ExecutionEngine, place: Callable[..., Order]) -> None:
        order = place(trigger=2000, size=100, min_fill=20)
        assert _fill(engine, order, 2100, sell=19) == 0
        assert _fill(engine, order, 2100, sell=20) == 20

    def test_tail_below_minimum_still_fills(
        self, engine: ExecutionEngine, place: Callable[..., Order]
    ) -> None:
        order = place(trigger=2000, size=10, min_fill=20)
        assert _fill(engine, order, 2100, sell=10) == 10

    def test_all_or_nothing(self, engine: ExecutionEngine, place: Callable[..., Order]) -> None:
        order = place(trigger=2000, size=50, partial=False)
        assert _fill(engine, order, 2100, sell=30) == 0
        assert _fill(engine, order, 2100, sell=50) == 50

    def test_inactive_order_fills_nothing(self, engine: ExecutionEngine, place: Callable[..., Order]) -> None:
        order = place(trigger=2000, size=100)
        order.is_active = engine.fhe.false()
        assert _fill(engine, order, 2100, sell=100) == 0


class TestConsumeLiquidity:
    def test_only_used_side_shrinks(self, engine: ExecutionEngine, backend: MockFheBackend) -> None:
        fhe = engine.fhe
        is_sell = fhe.true()
        buy, sell = consume_liquidity(
            fhe,
            is_sell,
            fhe.encrypt(30, FheType.EUINT128),
            fhe.encrypt(100, FheType.EUINT128),
            fhe.encrypt(100, FheType.EUINT128),
        )
        assert backend.plaintext_of(buy) == 100
        assert backend.plaintext_of(sell) == 70


class TestOperationProfile:
    def test_same_ops_whatever_the_outcome(
        self, engine: ExecutionEngine, backend: MockFheBackend, place: Callable[..., Order]
    ) -> None:
        orders = [
            place(direction=OrderDirection.SELL, trigger=2000, size=100),
            place(direction=OrderDirection.BUY, trigger=2000, size=100),
            place(direction=OrderDirection.SELL, trigger=3000, size=50, partial=False),
        ]
        profiles = []
        for order in orders:
            before = backend.op_counts.copy()
            _fill(engine, order, 2100, buy=10, sell=10)
            profiles.append(backend.op_counts - before)
        assert profiles[0] == profiles[1] == profiles[2]
