# src/clo_admin/api/router.py
"""Emergency admin REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_admin.application.service import AdminService
from src.clo_common.database import get_db_session
from src.clo_common.response import ApiResponse, success_response
from src.clo_gateway.auth.dependencies import require_emergency_admin

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


class EmergencyCancelRequest(BaseModel):
    reason: str | None = None


class RevokeGrantRequest(BaseModel):
    handle: str  # hex, as shown in ciphertext references
    principal: str

    @field_validator("handle")
    @classmethod
    def must_be_hex(cls, v: str) -> str:
        int(v, 16)
        return v


@router.post("/orders/{order_id}/cancel")
async def emergency_cancel(
    order_id: int,
    body: EmergencyCancelRequest,
    request: Request,
    admin: Annotated[str, Depends(require_emergency_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.emergency_cancel(order_id, admin, body.reason, db)
    return success_response(result, getattr(request.state, "request_id", None))


@router.post("/grants/revoke")
async def revoke_grant(
    body: RevokeGrantRequest,
    request: Request,
    admin: Annotated[str, Depends(require_emergency_admin)],
) -> ApiResponse:
    result = _service.revoke_grant(int(body.handle, 16), body.principal, admin)
    return success_response(result, getattr(request.state, "request_id", None))
