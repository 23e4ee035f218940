import asyncio
import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest
from fastapi import HTTPException

from helpers.jwt_token import decode_user_token, generate_user_token, require_professional
from models.user import UserRole


def test_token_round_trip_carries_id_and_expiry():
    token = generate_user_token({"id": 12})
    claims = decode_user_token(token)

    assert claims["id"] == 12
    assert "exp" in claims


def test_token_signed_with_another_key_is_rejected():
    forged = jwt.encode({"id": 12}, "not-the-secret", algorithm="HS256")

    with pytest.raises(HTTPException) as exc:
        decode_user_token(forged)
    assert exc.value.status_code == 401


def test_expired_token_is_rejected():
    expired = jwt.encode(
        {"id": 12, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        os.environ["JWT_SECRET"],
        algorithm="HS256",
    )

    with pytest.raises(HTTPException) as exc:
        decode_user_token(expired)
    assert exc.value.status_code == 401


def test_garbage_token_is_rejected():
    with pytest.raises(HTTPException) as exc:
        decode_user_token("not-a-token")
    assert exc.value.status_code == 401


def test_missing_secret_is_a_configuration_error(monkeypatch):
    monkeypatch.delenv("JWT_SECRET")
    with pytest.raises(ValueError):
        generate_user_token({"id": 1})


def test_regular_users_cannot_manage_availability():
    user = SimpleNamespace(id=3, role=UserRole.USER, can_manage_availability=False)

    with pytest.raises(HTTPException) as exc:
        asyncio.run(require_professional(user))
    assert exc.value.status_code == 403
