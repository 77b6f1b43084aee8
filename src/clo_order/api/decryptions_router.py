from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.clo_common.database import get_db_session
from src.clo_gateway.auth.dependencies import get_current_principal
from src.clo_order.application import service as svc
from src.clo_order.application.schemas import CompleteDecryptionRequest, TicketResponse

router = APIRouter(prefix="/decryptions", tags=["decryptions"])


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: str,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> TicketResponse:
    return await svc.get_ticket(ticket_id, principal, db)


@router.post("/{ticket_id}/complete", response_model=TicketResponse)
async def complete_decryption(
    ticket_id: str,
    req: CompleteDecryptionRequest,
    principal: Annotated[str, Depends(get_current_principal)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> TicketResponse:
    return await svc.complete_decryption(ticket_id, req, principal, db)
