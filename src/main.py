"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.clo_admin.api.router import router as admin_router
from src.clo_common.database import engine
from src.clo_common.errors import AppError
from src.clo_common.response import error_response
from src.clo_execution.api.router import router as pools_router
from src.clo_execution.application.service import get_execution_engine
from src.clo_gateway.middleware.request_log import RequestLogMiddleware
from src.clo_order.api.decryptions_router import router as decryptions_router
from src.clo_order.api.router import router as order_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB connection, build the engine. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    get_execution_engine()
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("AppError %d on %s: %s", exc.code, request.url.path, exc.message)
    resp = error_response(exc.code, exc.message, getattr(request.state, "request_id", None))
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(order_router, prefix="/api/v1")
app.include_router(decryptions_router, prefix="/api/v1")
app.include_router(pools_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, object]:
    """Liveness plus the engine's public pause flag."""
    return {"status": "ok", "version": "0.1.0", "paused": get_execution_engine().paused}
