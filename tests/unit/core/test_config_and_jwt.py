"""Unit tests for settings normalization and token verification."""

import time

import jwt
import pytest

from specflow.core.config import DatabaseSettings, to_asyncpg_url
from specflow.core.jwt import JWTVerifier

SECRET = "unit-test-secret-that-is-long-enough-for-hs256"
SUPABASE_URL = "https://demo.supabase.co"


class TestDatabaseSettings:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
            ("postgresql://u:p@db/app?sslmode=require", "postgresql+asyncpg://u:p@db/app?ssl=require"),
            ("postgresql://u:p@db/app?supa=base-pooler.x", "postgresql+asyncpg://u:p@db/app"),
            ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ],
    )
    def test_url_uses_asyncpg(self, raw, expected):
        assert DatabaseSettings(DATABASE_URL=raw).url == expected

    def test_to_asyncpg_url_leaves_other_schemes(self):
        assert to_asyncpg_url("sqlite+aiosqlite:///:memory:") == "sqlite+aiosqlite:///:memory:"


def encode(**overrides) -> str:
    now = int(time.time())
    payload = {
        "sub": "user-1",
        "email": "builder@example.com",
        "aud": "authenticated",
        "iss": f"{SUPABASE_URL}/auth/v1",
        "iat": now,
        "exp": now + 600,
    }
    payload.update(overrides)
    return jwt.encode(payload, SECRET, algorithm="HS256")


class TestJWTVerifier:
    """Tests for JWTVerifier."""

    @pytest.fixture
    def verifier(self) -> JWTVerifier:
        return JWTVerifier(supabase_url=f"{SUPABASE_URL}/", jwt_secret=SECRET)

    def test_valid_token(self, verifier):
        claims = verifier.verify_token(encode())

        assert claims.sub == "user-1"
        assert claims.email == "builder@example.com"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"exp": int(time.time()) - 60},
            {"iss": "https://other.supabase.co/auth/v1"},
            {"aud": "anon"},
        ],
    )
    def test_rejects_bad_claims(self, verifier, overrides):
        with pytest.raises(jwt.InvalidTokenError):
            verifier.verify_token(encode(**overrides))

    def test_rejects_wrong_signature(self, verifier):
        token = jwt.encode({"sub": "user-1"}, "another-secret-that-is-also-long-enough", algorithm="HS256")

        with pytest.raises(jwt.InvalidTokenError):
            verifier.verify_token(token)

    def test_unconfigured_secret(self):
        with pytest.raises(jwt.InvalidTokenError):
            JWTVerifier(supabase_url=SUPABASE_URL).verify_token(encode())
