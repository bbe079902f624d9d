"""
Tests for access token verification and the request dependencies built on it.
"""

import time
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from jose import JWTError, jwt

from alleye.core.deps import get_current_active_profile, require_roles
from alleye.core.security import avatar_url_for, decode_access_token, get_token_subject

SECRET = "test-jwt-secret-for-testing-only-32chars"


def make_token(claims=None, secret=SECRET, **overrides):
    payload = {
        "sub": "6f1d3c1e-8b55-4c1b-9d57-2f1f7bb6f0a1",
        "email": "learner@example.com",
        "role": "authenticated",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "user_metadata": {"full_name": "Ada Lovelace"},
    }
    payload.update(claims or {})
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


class TestDecodeAccessToken:
    """Test provider-issued token verification."""

    def test_valid_token_returns_claims(self):
        claims = decode_access_token(make_token())
        assert claims.sub == "6f1d3c1e-8b55-4c1b-9d57-2f1f7bb6f0a1"
        assert claims.email == "learner@example.com"
        assert claims.user_metadata["full_name"] == "Ada Lovelace"

    def test_wrong_secret_rejected(self):
        with pytest.raises(JWTError):
            decode_access_token(make_token(secret="another-secret-another-secret-123"))

    def test_expired_token_rejected(self):
        with pytest.raises(JWTError):
            decode_access_token(make_token(exp=int(time.time()) - 10))

    def test_wrong_audience_rejected(self):
        with pytest.raises(JWTError):
            decode_access_token(make_token(aud="anon"))

    def test_missing_subject_rejected(self):
        with pytest.raises(JWTError):
            decode_access_token(make_token(sub=""))

    def test_get_token_subject_returns_none_for_garbage(self):
        assert get_token_subject("not-a-jwt") is None
        assert get_token_subject(make_token()) == "6f1d3c1e-8b55-4c1b-9d57-2f1f7bb6f0a1"


class TestAvatarUrl:
    def test_name_is_url_encoded(self):
        assert avatar_url_for("Ada Lovelace") == "https://api.dicebear.com/8.x/initials/svg?seed=Ada%20Lovelace"


class TestRoleDependencies:
    """Test role and active-flag checks."""

    @pytest.mark.asyncio
    async def test_inactive_profile_rejected(self):
        with pytest.raises(HTTPException) as exc:
            await get_current_active_profile(SimpleNamespace(is_active=False))
        assert exc.value.status_code == 403

    @pytest.mark.asyncio
    async def test_require_roles_accepts_listed_role(self):
        dep = require_roles("admin", "ciso")
        profile = SimpleNamespace(role="ciso", is_active=True)
        assert await dep(profile) is profile

    @pytest.mark.asyncio
    async def test_require_roles_rejects_other_roles(self):
        dep = require_roles("admin")
        with pytest.raises(HTTPException) as exc:
            await dep(SimpleNamespace(role="user", is_active=True))
        assert exc.value.status_code == 403
        assert exc.value.detail == "Insufficient role"
