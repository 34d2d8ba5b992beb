import asyncio
from datetime import timedelta

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from placement_tracker.core.auth import (
    create_access_token,
    decode_token,
    get_current_user,
    hash_password,
    verify_password,
)
from placement_tracker.core.exceptions import AuthenticationError


def _resolve(token):
    credentials = None
    if token is not None:
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)
    return asyncio.run(get_current_user(credentials))


class TestPasswords:
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed) is True
        assert verify_password("wrong", hashed) is False


class TestTokens:
    def test_round_trip_claims(self) -> None:
        token = create_access_token({"sub": "7", "email": "a@b.lk", "role": "admin"})
        payload = decode_token(token)
        assert payload["sub"] == "7"
        assert payload["role"] == "admin"
        assert "exp" in payload

    def test_expired_token_rejected(self) -> None:
        token = create_access_token({"sub": "7", "role": "admin"}, expires_delta=timedelta(seconds=-5))
        assert decode_token(token) is None

    def test_tampered_token_rejected(self) -> None:
        token = create_access_token({"sub": "7", "role": "teacher"})
        assert decode_token(token[:-2] + "xx") is None


class TestGetCurrentUser:
    def test_identity_from_token(self) -> None:
        user = _resolve(create_access_token({"sub": "3", "email": "t@school.lk", "role": "teacher"}))
        assert user.user_id == 3
        assert user.email == "t@school.lk"
        assert user.role == "teacher"

    def test_missing_token(self) -> None:
        with pytest.raises(AuthenticationError) as exc:
            _resolve(None)
        assert exc.value.message == "Unauthorized"
        assert exc.value.status_code == 401

    def test_garbage_token(self) -> None:
        with pytest.raises(AuthenticationError, match="Invalid token"):
            _resolve("not-a-jwt")

    def test_token_without_role(self) -> None:
        with pytest.raises(AuthenticationError, match="Invalid token"):
            _resolve(create_access_token({"sub": "3"}))

    def test_non_numeric_subject(self) -> None:
        with pytest.raises(AuthenticationError, match="Invalid token"):
            _resolve(create_access_token({"sub": "abc", "role": "owner"}))
