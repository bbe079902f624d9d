from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


OAuthProvider = Literal["google", "azure"]


class SignUpRequest(BaseModel):
    """Email/password registration payload."""
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, description="Password (min 6 chars)")
    name: str = Field(..., min_length=1, max_length=120, description="Display name")


class SignUpResponse(BaseModel):
    """Result of a registration request."""
    user_id: Optional[str] = Field(None, description="Auth provider user id")
    email: EmailStr
    confirmation_required: bool = Field(
        ..., description="True when the provider still expects the email to be confirmed"
    )


class SignInRequest(BaseModel):
    """Email/password sign-in payload."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(BaseModel):
    """Refresh token exchange payload."""
    refresh_token: str = Field(..., min_length=1)


class SessionTokens(BaseModel):
    """Provider-issued session tokens."""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None


class OAuthUrlResponse(BaseModel):
    """Redirect target for a social sign-in."""
    provider: OAuthProvider
    url: str


class PasswordChangeRequest(BaseModel):
    """New password for the signed-in user."""
    password: str = Field(..., min_length=6, description="New password (min 6 chars)")
