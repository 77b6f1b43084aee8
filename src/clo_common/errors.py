"""Unified error codes and custom exceptions.

Every error here depends on public metadata only (ids, principals, ticket
state, the pause flag). Conditions over encrypted values are never raised;
the engine resolves them with homomorphic clamping and selection instead.

Error code ranges:
  1xxx: Auth
  4xxx: Order
  6xxx: Ciphertext access / decryption
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid or expired token", 401)


# --- 4xxx: Order ---

class MalformedOrderError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4001, f"Malformed order: {detail}", 422)


class UnauthorizedError(AppError):
    def __init__(self, principal: str, action: str) -> None:
        super().__init__(4003, f"Principal {principal} is not authorized to {action}", 403)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: int) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class OrderNotCancellableError(AppError):
    def __init__(self, order_id: int, status: str) -> None:
        super().__init__(4006, f"Order {order_id} in status {status} cannot be cancelled", 422)


# --- 6xxx: Ciphertext access / decryption ---

class PermissionDeniedError(AppError):
    def __init__(self, principal: str, handle: int) -> None:
        super().__init__(6001, f"Principal {principal} holds no grant on ciphertext {handle}", 403)


class TicketNotFoundError(AppError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(6002, f"Decryption ticket not found: {ticket_id}", 404)


class TicketAlreadyConsumedError(AppError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(6003, f"Decryption ticket already consumed: {ticket_id}", 409)


class InvalidDecryptionResultError(AppError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            6004, f"Supplied plaintext does not match ciphertext for ticket {ticket_id}", 422
        )


class TicketNotFulfilledError(AppError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(6005, f"Decryption ticket not yet fulfilled: {ticket_id}", 409)


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class SystemPausedError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "System is paused", 503)
