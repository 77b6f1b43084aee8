"""JWT token creation and verification.

Tokens carry the caller principal in ``sub``. The principal is whatever
identity owns orders and ciphertext grants: a wallet address for traders,
the hook operator name for the pool hook, an admin name for incident
response. There is no user table; issuing tokens is the identity
provider's job, ``create_access_token`` exists for local tooling and tests.

MVP NOTE: HS256 (symmetric HMAC) with one shared JWT_SECRET. No revocation;
a token stays valid until it expires.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.clo_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(principal: str) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": principal,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature, expiry or token type is wrong.
    """
    try:
        payload: dict[str, str] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    return payload
