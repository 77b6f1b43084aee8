"""Two-phase decryption.

Decryption is asynchronous relative to the coprocessor, so anything that
needs a fresh plaintext and then acts on it is split in two calls:

    request(handle, requester)            -> ticket   REQUESTED
    (coprocessor publishes the result)                FULFILLED
    complete_with_result(ticket, caller, plaintext)   CONSUMED

Completion is gated by the requester's grant on the handle and by the
backend confirming that the supplied plaintext matches the ciphertext. A
consumed ticket cannot be completed again, and neither can one the
coprocessor has not fulfilled yet.

The engine itself never waits: ``reveal`` returns a result only when the
coprocessor has one available synchronously, and None otherwise.
"""
import logging
from dataclasses import dataclass, replace

from src.clo_common.datetime_utils import unix_now
from src.clo_common.enums import TicketStatus
from src.clo_common.errors import (
    InvalidDecryptionResultError,
    TicketAlreadyConsumedError,
    TicketNotFoundError,
    TicketNotFulfilledError,
    UnauthorizedError,
)
from src.clo_common.id_generator import generate_ticket_id
from src.clo_fhe.access_control import AccessControl
from src.clo_fhe.backend import FheBackend
from src.clo_fhe.types import Ciphertext

logger = logging.getLogger(__name__)


@dataclass
class DecryptionTicket:
    id: str
    handle: int
    requester: str
    requested_at: int
    order_id: int | None = None
    field: str | None = None
    status: TicketStatus = TicketStatus.REQUESTED
    plaintext: int | None = None
    completed_at: int | None = None


class DecryptionOracle:
    def __init__(self, backend: FheBackend, acl: AccessControl, engine_principal: str) -> None:
        self._backend = backend
        self._acl = acl
        self._engine_principal = engine_principal
        self._tickets: dict[str, DecryptionTicket] = {}

    # ------------------------------------------------------------------
    # Owner / admin tickets
    # ------------------------------------------------------------------

    def request(
        self,
        handle: int,
        requester: str,
        *,
        order_id: int | None = None,
        field: str | None = None,
        now: int | None = None,
    ) -> DecryptionTicket:
        self._acl.require(handle, requester)
        self._backend.request_decryption(handle)
        ticket = DecryptionTicket(
            id=generate_ticket_id(),
            handle=handle,
            requester=requester,
            requested_at=now if now is not None else unix_now(),
            order_id=order_id,
            field=field,
        )
        self._tickets[ticket.id] = ticket
        self._refresh(ticket)
        logger.info(
            "Decryption requested: ticket=%s order=%s field=%s requester=%s",
            ticket.id, order_id, field, requester,
        )
        return ticket

    def get(self, ticket_id: str, viewer: str) -> DecryptionTicket:
        ticket = self._tickets.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(ticket_id)
        if viewer != ticket.requester:
            raise UnauthorizedError(viewer, f"view ticket {ticket_id}")
        self._refresh(ticket)
        return ticket

    def status_of(self, ticket_id: str) -> TicketStatus | None:
        """Stored status without refreshing; None for unknown ids."""
        ticket = self._tickets.get(ticket_id)
        return ticket.status if ticket is not None else None

    def published_plaintext(self, ticket: DecryptionTicket) -> int | None:
        """Result the coprocessor published for the ticket's handle, if any."""
        if ticket.status is TicketStatus.REQUESTED:
            return None
        return self._backend.decryption_result(ticket.handle)

    def complete_with_result(
        self, ticket_id: str, caller: str, plaintext: int, now: int | None = None
    ) -> DecryptionTicket:
        ticket = self.get(ticket_id, caller)
        if ticket.status is TicketStatus.CONSUMED:
            raise TicketAlreadyConsumedError(ticket_id)
        if ticket.status is not TicketStatus.FULFILLED:
            raise TicketNotFulfilledError(ticket_id)
        # grants can be revoked between request and completion
        self._acl.require(ticket.handle, caller)
        if not self._backend.verify_plaintext(ticket.handle, plaintext):
            logger.warning("Rejected decryption result for ticket=%s", ticket_id)
            raise InvalidDecryptionResultError(ticket_id)
        ticket.status = TicketStatus.CONSUMED
        ticket.plaintext = plaintext
        ticket.completed_at = now if now is not None else unix_now()
        return ticket

    def reopen(self, ticket_id: str, status: TicketStatus) -> None:
        """Undo a completion whose persistence failed."""
        ticket = self._tickets[ticket_id]
        ticket.status = status
        ticket.plaintext = None
        ticket.completed_at = None
        logger.warning("Ticket %s reopened as %s", ticket_id, status.value)

    def snapshot(self) -> dict[str, DecryptionTicket]:
        return {tid: replace(t) for tid, t in self._tickets.items()}

    def restore(self, state: dict[str, DecryptionTicket]) -> None:
        self._tickets = state

    def _refresh(self, ticket: DecryptionTicket) -> None:
        if ticket.status is TicketStatus.REQUESTED:
            if self._backend.decryption_result(ticket.handle) is not None:
                ticket.status = TicketStatus.FULFILLED

    # ------------------------------------------------------------------
    # Engine-side synchronous reveal
    # ------------------------------------------------------------------

    def reveal(self, value: Ciphertext) -> int | None:
        """Plaintext of an engine-owned decision handle, or None if pending."""
        self._acl.require(value.handle, self._engine_principal)
        self._backend.request_decryption(value.handle)
        return self._backend.decryption_result(value.handle)

    def reveal_flag(self, value: Ciphertext) -> bool | None:
        result = self.reveal(value)
        return None if result is None else bool(result)
