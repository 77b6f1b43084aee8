"""Shared test fixtures."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-do-not-use-in-production")

from collections.abc import Callable  # noqa: E402

import pytest  # noqa: E402

from src.clo_common.enums import FheType, OrderDirection  # noqa: E402
from src.clo_execution.domain.models import EngineConfig  # noqa: E402
from src.clo_execution.domain.ports import InMemorySettlement  # noqa: E402
from src.clo_execution.engine.engine import ExecutionEngine  # noqa: E402
from src.clo_fhe.mock_backend import MockFheBackend  # noqa: E402
from src.clo_order.domain.models import EncryptedOrderInputs, Order  # noqa: E402

NOW = 1_700_000_000
ADMIN = "emergency-admin"


@pytest.fixture
def backend() -> MockFheBackend:
    return MockFheBackend()


@pytest.fixture
def settlement() -> InMemorySettlement:
    return InMemorySettlement()


@pytest.fixture
def engine(backend: MockFheBackend, settlement: InMemorySettlement) -> ExecutionEngine:
    config = EngineConfig(emergency_admins=frozenset({ADMIN}))
    return ExecutionEngine(backend, config, settlement=settlement)


@pytest.fixture
def make_inputs(backend: MockFheBackend) -> Callable[..., EncryptedOrderInputs]:
    """Client-side encryption of a full order."""

    def _make(
        direction: OrderDirection = OrderDirection.SELL,
        trigger: int = 100,
        size: int = 1000,
        min_fill: int = 0,
        partial: bool = True,
        expires_at: int = NOW + 3600,
    ) -> EncryptedOrderInputs:
        enc = backend.client_encrypt
        return EncryptedOrderInputs(
            direction=enc(direction.code, FheType.EUINT8),
            trigger_price=enc(trigger, FheType.EUINT128),
            order_size=enc(size, FheType.EUINT128),
            min_fill_size=enc(min_fill, FheType.EUINT128),
            partial_fill_allowed=enc(int(partial), FheType.EBOOL),
            expiration_time=enc(expires_at, FheType.EUINT64),
        )

    return _make


@pytest.fixture
def place(
    engine: ExecutionEngine, make_inputs: Callable[..., EncryptedOrderInputs]
) -> Callable[..., Order]:
    """Place an order through the engine; keyword args go to make_inputs."""

    def _place(owner: str = "alice", pool: str = "ETH-USDC", now: int = NOW, **kwargs: object) -> Order:
        return engine.place_order(owner, pool, make_inputs(**kwargs), now=now)

    return _place


@pytest.fixture
def service_engine(monkeypatch: pytest.MonkeyPatch) -> ExecutionEngine:
    """Fresh process-wide engine for the async service layer and the API."""
    from src.clo_execution.application import service

    fresh = ExecutionEngine(MockFheBackend(), EngineConfig(emergency_admins=frozenset({ADMIN})))
    monkeypatch.setattr(service, "_engine", fresh)
    return fresh


@pytest.fixture
def encrypted_order() -> Callable[..., dict[str, object]]:
    """JSON body for POST /orders, encrypted with a throwaway client."""

    def _make(
        pool: str = "ETH-USDC",
        direction: OrderDirection = OrderDirection.SELL,
        trigger: int = 2000,
        size: int = 100,
        min_fill: int = 0,
        partial: bool = True,
        expires_at: int = 4_000_000_000,
    ) -> dict[str, object]:
        client = MockFheBackend()

        def field(value: int, fhe_type: FheType) -> dict[str, str]:
            return {"ciphertext": client.client_encrypt(value, fhe_type).data.hex(), "fhe_type": fhe_type.value}

        return {
            "pool": pool,
            "direction": field(direction.code, FheType.EUINT8),
            "trigger_price": field(trigger, FheType.EUINT128),
            "order_size": field(size, FheType.EUINT128),
            "min_fill_size": field(min_fill, FheType.EUINT128),
            "partial_fill_allowed": field(int(partial), FheType.EBOOL),
            "expiration_time": field(expires_at, FheType.EUINT64),
        }

    return _make


class FlagLagBackend(MockFheBackend):
    """Publishes integer decryptions at once but holds boolean ones until resolve_pending()."""

    def request_decryption(self, handle: int) -> None:
        if self._types[handle] is FheType.EBOOL and handle not in self._published:
            self._pending.add(handle)
            return
        super().request_decryption(handle)


@pytest.fixture
def flag_lag_engine() -> ExecutionEngine:
    """Engine whose fill amounts reveal immediately while exhausted signals lag."""
    config = EngineConfig(emergency_admins=frozenset({ADMIN}))
    return ExecutionEngine(FlagLagBackend(), config, settlement=InMemorySettlement())
