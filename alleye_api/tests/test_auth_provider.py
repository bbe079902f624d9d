"""
Tests for the hosted auth provider facade with the supabase clients mocked.
"""

from types import SimpleNamespace
from unittest.mock import patch
from uuid import uuid4

import pytest

from alleye.core.errors import AuthenticationError, ExternalServiceError
from alleye.core.settings import get_app_settings
from alleye.services.auth_provider import AuthProviderService, default_user_metadata


@pytest.fixture
def mock_service_client():
    with patch("alleye.services.auth_provider.get_service_client") as factory:
        yield factory.return_value


@pytest.fixture
def mock_auth_client():
    with patch("alleye.services.auth_provider.get_auth_client") as factory:
        yield factory.return_value


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_password_set_through_admin_api(self, mock_service_client):
        user_id = str(uuid4())
        await AuthProviderService(get_app_settings()).change_password(user_id, "n3w-secret")
        mock_service_client.auth.admin.update_user_by_id.assert_called_once_with(
            user_id, {"password": "n3w-secret"}
        )

    @pytest.mark.asyncio
    async def test_provider_failure_maps_to_502(self, mock_service_client):
        mock_service_client.auth.admin.update_user_by_id.side_effect = RuntimeError("network down")
        with pytest.raises(ExternalServiceError) as exc:
            await AuthProviderService(get_app_settings()).change_password(str(uuid4()), "n3w-secret")
        assert exc.value.status_code == 502
        assert exc.value.message == "Password update failed"


class TestSignIn:
    @pytest.mark.asyncio
    async def test_session_tokens_returned(self, mock_auth_client):
        mock_auth_client.auth.sign_in_with_password.return_value = SimpleNamespace(
            session=SimpleNamespace(access_token="a", refresh_token="r", token_type="bearer", expires_in=3600)
        )
        tokens = await AuthProviderService(get_app_settings()).sign_in("Ada@Example.com", "secret1")
        assert tokens.access_token == "a"
        assert tokens.expires_in == 3600
        mock_auth_client.auth.sign_in_with_password.assert_called_once_with(
            {"email": "ada@example.com", "password": "secret1"}
        )

    @pytest.mark.asyncio
    async def test_missing_session_is_401(self, mock_auth_client):
        mock_auth_client.auth.sign_in_with_password.return_value = SimpleNamespace(session=None)
        with pytest.raises(AuthenticationError):
            await AuthProviderService(get_app_settings()).sign_in("ada@example.com", "secret1")


def test_default_user_metadata():
    meta = default_user_metadata("Ada Lovelace")
    assert meta["role"] == "user"
    assert meta["company"] == "Personal Account"
    assert meta["team"] == "General"
    assert meta["avatar_url"].endswith("seed=Ada%20Lovelace")
    assert meta["points"] == 0 and meta["badges"] == [] and meta["progress"] == {}
