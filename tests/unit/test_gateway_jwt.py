"""Unit tests for JWT handler and principal dependencies."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from jose import jwt

from config.settings import settings
from src.clo_common.errors import InvalidCredentialsError, UnauthorizedError
from src.clo_gateway.auth.dependencies import (
    get_current_principal,
    require_emergency_admin,
    require_hook_operator,
)
from src.clo_gateway.auth.jwt_handler import create_access_token, decode_token


def test_access_token_contains_correct_claims() -> None:
    payload = jwt.get_unverified_claims(create_access_token("0xabc"))
    assert payload["sub"] == "0xabc"
    assert payload["type"] == "access"


def test_decode_valid_access_token() -> None:
    assert decode_token(create_access_token("0xabc"))["sub"] == "0xabc"


def test_expired_token_raises_credentials_error() -> None:
    with patch("src.clo_gateway.auth.jwt_handler._ACCESS_EXPIRE", timedelta(seconds=-1)):
        token = create_access_token("0xabc")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_wrong_secret_rejected() -> None:
    token = jwt.encode({"sub": "0xabc", "type": "access"}, "other-secret", algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


def test_wrong_token_type_rejected() -> None:
    token = jwt.encode({"sub": "0xabc", "type": "refresh"}, settings.JWT_SECRET, algorithm="HS256")
    with pytest.raises(InvalidCredentialsError):
        decode_token(token)


@pytest.mark.asyncio
async def test_current_principal_from_token() -> None:
    assert await get_current_principal(create_access_token("0xabc")) == "0xabc"


@pytest.mark.asyncio
async def test_garbage_token_is_401() -> None:
    with pytest.raises(HTTPException) as exc_info:
        await get_current_principal("not-a-jwt")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_hook_operator_role() -> None:
    assert await require_hook_operator(settings.HOOK_OPERATOR) == settings.HOOK_OPERATOR
    with pytest.raises(UnauthorizedError):
        await require_hook_operator("0xabc")


@pytest.mark.asyncio
async def test_emergency_admin_role() -> None:
    admin = settings.EMERGENCY_ADMINS[0]
    assert await require_emergency_admin(admin) == admin
    with pytest.raises(UnauthorizedError):
        await require_emergency_admin("0xabc")
