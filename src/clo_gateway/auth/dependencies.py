"""FastAPI dependencies resolving the caller principal and its roles.

Usage in any protected router:
    from src.clo_gateway.auth.dependencies import get_current_principal

    @router.get("/protected")
    async def protected(principal: str = Depends(get_current_principal)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from config.settings import settings
from src.clo_common.errors import InvalidCredentialsError, UnauthorizedError
from src.clo_gateway.auth.jwt_handler import decode_token

# Tokens are issued by an external identity provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_principal(token: str = Depends(oauth2_scheme)) -> str:
    """Validate the Bearer token and return its ``sub``.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    """
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    principal: str | None = payload.get("sub")
    if not principal:
        raise _CREDENTIALS_EXCEPTION
    return principal


async def require_hook_operator(principal: str = Depends(get_current_principal)) -> str:
    """Only the pool hook may push price updates and run sweeps."""
    if principal != settings.HOOK_OPERATOR:
        raise UnauthorizedError(principal, "act as pool hook")
    return principal


async def require_emergency_admin(principal: str = Depends(get_current_principal)) -> str:
    if principal not in settings.EMERGENCY_ADMINS:
        raise UnauthorizedError(principal, "use emergency admin endpoints")
    return principal
