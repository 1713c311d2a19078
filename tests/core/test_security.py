"""
Tests for bearer token verification.
"""

from datetime import UTC, datetime, timedelta

from jose import jwt

from lms.core.config import settings
from lms.core.security import decode_token


def _token(secret: str | None = None, **overrides) -> str:
    claims = {
        "sub": "abc-123",
        "email": "jane@example.com",
        "aud": "authenticated",
        "exp": datetime.now(UTC) + timedelta(minutes=5),
    }
    claims.update(overrides)
    return jwt.encode(
        claims, secret or settings.supabase_jwt_secret, algorithm=settings.jwt_algorithm
    )


def test_decode_valid_token():
    claims = decode_token(_token())

    assert claims is not None
    assert claims["sub"] == "abc-123"
    assert claims["email"] == "jane@example.com"


def test_decode_expired_token():
    assert decode_token(_token(exp=datetime.now(UTC) - timedelta(minutes=1))) is None


def test_decode_wrong_secret():
    assert decode_token(_token(secret="not-the-secret")) is None


def test_decode_wrong_audience():
    assert decode_token(_token(aud="someone-else")) is None


def test_decode_garbage():
    assert decode_token("not-a-jwt") is None
