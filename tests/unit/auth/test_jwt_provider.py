"""Unit tests for JWTAuthProvider.

Covers:
- create_token / validate_token agreement
- validate_token returning None for bad signatures, expiry and missing claims
- rejection of tokens signed with a different algorithm
"""

import time
from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from jose import jwt as jose_jwt

from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_hs256_token(payload: dict, secret: str = "test-secret") -> str:
    """Create an HS256-signed JWT with a given payload."""
    return jose_jwt.encode(payload, secret, algorithm="HS256")


def _future_exp() -> datetime:
    return datetime.utcnow() + timedelta(minutes=5)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hs256_provider() -> JWTAuthProvider:
    """JWTAuthProvider configured with a test secret."""
    return JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=30)


# ---------------------------------------------------------------------------
# Tests: round trip
# ---------------------------------------------------------------------------


class TestCreateAndValidate:
    async def test_should_recover_identity_from_own_token(self, hs256_provider: JWTAuthProvider):
        user = TokenUser(id=uuid4(), email="ana@example.com", full_name="Ana Ruiz")

        result = await hs256_provider.validate_token(hs256_provider.create_token(user))

        assert result == user

    async def test_should_carry_expiry_from_settings(self, hs256_provider: JWTAuthProvider):
        token = hs256_provider.create_token(TokenUser(id=uuid4(), email="a@example.com"))

        claims = jose_jwt.get_unverified_claims(token)

        remaining = claims["exp"] - time.time()
        assert 29 * 60 < remaining <= 30 * 60 + 5

    async def test_should_allow_missing_name(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {"sub": str(uuid4()), "email": "a@example.com", "exp": _future_exp()}
        )

        result = await hs256_provider.validate_token(token)

        assert result is not None
        assert result.full_name is None


# ---------------------------------------------------------------------------
# Tests: invalid tokens
# ---------------------------------------------------------------------------


class TestValidateTokenRejects:
    async def test_should_return_none_for_wrong_secret(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {"sub": str(uuid4()), "email": "a@example.com", "exp": _future_exp()},
            secret="other-secret",
        )

        assert await hs256_provider.validate_token(token) is None

    async def test_should_return_none_for_expired_token(self, hs256_provider: JWTAuthProvider):
        token = _make_hs256_token(
            {
                "sub": str(uuid4()),
                "email": "a@example.com",
                "exp": datetime.utcnow() - timedelta(minutes=1),
            }
        )

        assert await hs256_provider.validate_token(token) is None

    async def test_should_return_none_for_other_algorithm(self, hs256_provider: JWTAuthProvider):
        token = jose_jwt.encode(
            {"sub": str(uuid4()), "email": "a@example.com", "exp": _future_exp()},
            "test-secret",
            algorithm="HS512",
        )

        assert await hs256_provider.validate_token(token) is None

    async def test_should_return_none_for_garbage(self, hs256_provider: JWTAuthProvider):
        assert await hs256_provider.validate_token("not-a-jwt") is None


class TestValidateTokenMissingClaims:
    """validate_token should return None when the decoded payload is missing
    the required 'sub' or 'email' claims."""

    async def test_should_return_none_when_token_has_no_sub_claim(
        self, hs256_provider: JWTAuthProvider
    ):
        token = _make_hs256_token({"email": "user@example.com", "exp": _future_exp()})

        assert await hs256_provider.validate_token(token) is None

    async def test_should_return_none_when_token_has_no_email_claim(
        self, hs256_provider: JWTAuthProvider
    ):
        token = _make_hs256_token({"sub": str(uuid4()), "exp": _future_exp()})

        assert await hs256_provider.validate_token(token) is None

    async def test_should_return_none_when_sub_is_not_a_uuid(
        self, hs256_provider: JWTAuthProvider
    ):
        token = _make_hs256_token(
            {"sub": "user-42", "email": "user@example.com", "exp": _future_exp()}
        )

        assert await hs256_provider.validate_token(token) is None
