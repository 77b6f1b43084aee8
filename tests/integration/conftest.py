"""Integration-test fixtures.

The app runs in-process behind httpx's ASGITransport. The database session
dependency is replaced with an AsyncMock, so the audit-trail writes are
recorded instead of sent to PostgreSQL; the lifespan (which pings the
database) is not started by the transport.
"""
from collections.abc import AsyncIterator, Callable
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config.settings import settings
from src.clo_common.database import get_db_session
from src.clo_execution.engine.engine import ExecutionEngine
from src.clo_gateway.auth.jwt_handler import create_access_token
from src.main import app


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture
async def client(service_engine: ExecutionEngine, db: AsyncMock) -> AsyncIterator[AsyncClient]:
    async def _session() -> AsyncIterator[AsyncMock]:
        yield db

    app.dependency_overrides[get_db_session] = _session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth() -> Callable[[str], dict[str, str]]:
    """Bearer header for a principal."""

    def _headers(principal: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(principal)}"}

    return _headers


@pytest.fixture
def hook_headers(auth: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth(settings.HOOK_OPERATOR)


@pytest.fixture
def admin_headers(auth: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth(settings.EMERGENCY_ADMINS[0])
