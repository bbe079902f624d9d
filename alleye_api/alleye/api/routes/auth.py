from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from alleye.core.deps import get_bearer_token, get_current_active_profile
from alleye.db.models import Profile
from alleye.schemas.auth import (
    OAuthProvider,
    OAuthUrlResponse,
    PasswordChangeRequest,
    RefreshRequest,
    SessionTokens,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from alleye.schemas.common import MessageResponse
from alleye.services.auth_provider import AuthProviderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_auth_service() -> AuthProviderService:
    return AuthProviderService()


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=201,
    summary="Register with email and password",
    description="Creates the account at the auth provider. The profile row is provisioned on first authenticated request.",
)
async def signup(
    payload: SignUpRequest,
    auth: AuthProviderService = Depends(get_auth_service),
) -> SignUpResponse:
    return await auth.sign_up(payload.email, payload.password, payload.name.strip())


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=SessionTokens,
    summary="Sign in with email and password",
)
async def login(
    payload: SignInRequest,
    auth: AuthProviderService = Depends(get_auth_service),
) -> SessionTokens:
    """
    Exchange credentials for provider session tokens.

    Returns:
        SessionTokens: access and refresh tokens. Rejected credentials yield 401.
    """
    return await auth.sign_in(payload.email, payload.password)


# PUBLIC_INTERFACE
@router.post("/refresh", response_model=SessionTokens, summary="Refresh session tokens")
async def refresh(
    payload: RefreshRequest,
    auth: AuthProviderService = Depends(get_auth_service),
) -> SessionTokens:
    return await auth.refresh(payload.refresh_token)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=MessageResponse, summary="Sign out")
async def logout(
    token: str = Depends(get_bearer_token),
    auth: AuthProviderService = Depends(get_auth_service),
) -> MessageResponse:
    """Revoke the session at the provider. Always acknowledged."""
    await auth.sign_out(token)
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/oauth/{provider}",
    response_model=OAuthUrlResponse,
    summary="Social sign-in URL",
    description="Returns the provider redirect URL without following it.",
)
async def oauth_url(
    provider: OAuthProvider,
    redirect_to: Optional[str] = Query(None, description="Where the provider sends the browser afterwards"),
    auth: AuthProviderService = Depends(get_auth_service),
) -> OAuthUrlResponse:
    url = await auth.oauth_url(provider, redirect_to)
    return OAuthUrlResponse(provider=provider, url=url)


# PUBLIC_INTERFACE
@router.post("/password", response_model=MessageResponse, summary="Change own password")
async def change_password(
    payload: PasswordChangeRequest,
    profile: Profile = Depends(get_current_active_profile),
    auth: AuthProviderService = Depends(get_auth_service),
) -> MessageResponse:
    """Set a new password for the signed-in account. Rejections by the provider yield 422."""
    await auth.change_password(str(profile.id), payload.password)
    return MessageResponse(message="Password updated")
