"""
Hosted auth provider access (sign-up, sign-in, refresh, sign-out, OAuth URLs,
password changes).

The supabase client is synchronous, so every call runs in the threadpool.
Auth calls use a fresh anon-key client per request; a shared client would keep
the last signed-in user's session.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from starlette.concurrency import run_in_threadpool
from supabase import AuthApiError, Client, ClientOptions, create_client

from alleye.core.errors import AuthenticationError, ExternalServiceError, ValidationFailedError
from alleye.core.security import avatar_url_for
from alleye.core.settings import AppSettings, get_app_settings
from alleye.schemas.auth import SessionTokens, SignUpResponse

logger = logging.getLogger(__name__)

_service_client: Optional[Client] = None

PERSONAL_COMPANY = "Personal Account"
DEFAULT_TEAM = "General"


def _require_configured(settings: AppSettings, key: str) -> None:
    if not settings.SUPABASE_URL or not key:
        raise ExternalServiceError("auth", "Hosted backend is not configured")


# PUBLIC_INTERFACE
def get_auth_client(settings: Optional[AppSettings] = None) -> Client:
    """Return a new anon-key client that does not persist sessions."""
    settings = settings or get_app_settings()
    _require_configured(settings, settings.SUPABASE_ANON_KEY)
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_ANON_KEY,
        options=ClientOptions(persist_session=False, auto_refresh_token=False),
    )


# PUBLIC_INTERFACE
def get_service_client(settings: Optional[AppSettings] = None) -> Client:
    """Return the shared service-role client (storage and admin calls)."""
    global _service_client
    settings = settings or get_app_settings()
    _require_configured(settings, settings.SUPABASE_SERVICE_KEY)
    if _service_client is None:
        logger.info("Initializing hosted backend service client")
        _service_client = create_client(
            settings.SUPABASE_URL,
            settings.SUPABASE_SERVICE_KEY,
            options=ClientOptions(persist_session=False, auto_refresh_token=False),
        )
    return _service_client


def _tokens_from_session(session: Any) -> SessionTokens:
    return SessionTokens(
        access_token=session.access_token,
        refresh_token=getattr(session, "refresh_token", None),
        token_type=getattr(session, "token_type", None) or "bearer",
        expires_in=getattr(session, "expires_in", None),
    )


# PUBLIC_INTERFACE
def default_user_metadata(name: str) -> Dict[str, Any]:
    """Metadata attached to every self-registered account."""
    return {
        "name": name,
        "role": "user",
        "company": PERSONAL_COMPANY,
        "team": DEFAULT_TEAM,
        "avatar_url": avatar_url_for(name),
        "points": 0,
        "badges": [],
        "progress": {},
    }


class AuthProviderService:
    """Thin async facade over the provider's auth API."""

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    async def sign_up(self, email: str, password: str, name: str) -> SignUpResponse:
        client = get_auth_client(self.settings)
        payload = {
            "email": email.lower(),
            "password": password,
            "options": {"data": default_user_metadata(name)},
        }
        try:
            response = await run_in_threadpool(client.auth.sign_up, payload)
        except AuthApiError as exc:
            logger.warning("Sign-up rejected for %s: %s", email, exc.message)
            raise ValidationFailedError(exc.message)
        except Exception as exc:
            logger.exception("Sign-up call failed")
            raise ExternalServiceError("auth", "Registration failed", str(exc))

        user = response.user
        return SignUpResponse(
            user_id=str(user.id) if user else None,
            email=email.lower(),
            confirmation_required=response.session is None,
        )

    async def sign_in(self, email: str, password: str) -> SessionTokens:
        client = get_auth_client(self.settings)
        try:
            response = await run_in_threadpool(
                client.auth.sign_in_with_password, {"email": email.lower(), "password": password}
            )
        except AuthApiError as exc:
            logger.info("Sign-in rejected for %s: %s", email, exc.message)
            raise AuthenticationError("Invalid login credentials")
        except Exception as exc:
            logger.exception("Sign-in call failed")
            raise ExternalServiceError("auth", "Sign-in failed", str(exc))

        if not response.session:
            raise AuthenticationError("Invalid login credentials")
        return _tokens_from_session(response.session)

    async def refresh(self, refresh_token: str) -> SessionTokens:
        client = get_auth_client(self.settings)
        try:
            response = await run_in_threadpool(client.auth.refresh_session, refresh_token)
        except AuthApiError as exc:
            raise AuthenticationError(exc.message)
        except Exception as exc:
            logger.exception("Token refresh call failed")
            raise ExternalServiceError("auth", "Token refresh failed", str(exc))

        if not response.session:
            raise AuthenticationError("Session expired")
        return _tokens_from_session(response.session)

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session server-side; failures are logged, never raised."""
        try:
            client = get_service_client(self.settings)
            await run_in_threadpool(client.auth.admin.sign_out, access_token)
        except Exception:
            logger.warning("Provider sign-out failed; token will expire on its own", exc_info=True)

    async def oauth_url(self, provider: str, redirect_to: Optional[str] = None) -> str:
        client = get_auth_client(self.settings)
        credentials: Dict[str, Any] = {"provider": provider}
        if redirect_to:
            credentials["options"] = {"redirect_to": redirect_to}
        try:
            response = await run_in_threadpool(client.auth.sign_in_with_oauth, credentials)
        except Exception as exc:
            logger.exception("OAuth URL request failed for provider=%s", provider)
            raise ExternalServiceError("auth", "Could not start social sign-in", str(exc))
        return response.url

    async def change_password(self, user_id: str, password: str) -> None:
        """Set a new password for an existing account through the service-role client."""
        try:
            client = get_service_client(self.settings)
            await run_in_threadpool(client.auth.admin.update_user_by_id, str(user_id), {"password": password})
        except AuthApiError as exc:
            logger.info("Password change rejected for %s: %s", user_id, exc.message)
            raise ValidationFailedError(exc.message)
        except ExternalServiceError:
            raise
        except Exception as exc:
            logger.exception("Password change call failed")
            raise ExternalServiceError("auth", "Password update failed", str(exc))
        logger.info("Password changed for user %s", user_id)
