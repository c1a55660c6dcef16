"""
Tests for bearer token verification.
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from api.auth import AuthenticatedUser, decode_access_token, get_current_user
from api.errors import Unauthenticated
from utilities.config import config


def sign(payload, secret=None):
    return jwt.encode(payload, secret or config.secret_key, algorithm=config.algorithm)


class TestDecodeAccessToken:
    """Test cases for decode_access_token."""

    def test_subject_claim(self):
        assert decode_access_token(sign({"sub": "abc"})) == AuthenticatedUser(user_id="abc")

    def test_nested_user_claim(self):
        """Tokens shaped as {"user": {"id": ...}} are accepted."""
        assert decode_access_token(sign({"user": {"id": "abc"}})).user_id == "abc"

    def test_top_level_id_claim(self):
        assert decode_access_token(sign({"id": 42})).user_id == "42"

    def test_wrong_secret(self):
        with pytest.raises(Unauthenticated) as exc_info:
            decode_access_token(sign({"sub": "abc"}, secret="someone-else"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    def test_expired_token(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        with pytest.raises(Unauthenticated):
            decode_access_token(sign({"sub": "abc", "exp": expired}))

    def test_missing_subject(self):
        with pytest.raises(Unauthenticated):
            decode_access_token(sign({"role": "reader"}))


class TestGetCurrentUser:
    """Test cases for the route dependency."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(Unauthenticated) as exc_info:
            await get_current_user(None)

        assert exc_info.value.message == "No token, authorization denied"

    @pytest.mark.asyncio
    async def test_valid_credentials(self, token_factory):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token_factory("u1"))

        user = await get_current_user(credentials)

        assert user.user_id == "u1"
