from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from alleye.core.settings import get_app_settings


class AuthClaims(BaseModel):
    """Identity extracted from a provider-issued access token."""
    sub: str = Field(..., description="Auth user id (profile id)")
    email: Optional[str] = Field(None)
    role: str = Field("authenticated", description="Provider role claim, not the app role")
    aud: Optional[str] = Field(None)
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a provider JWT; raises JWTError if invalid/expired."""
    settings = get_app_settings()
    return jwt.decode(
        token,
        settings.SUPABASE_JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        audience=settings.JWT_AUDIENCE,
    )


# PUBLIC_INTERFACE
def decode_access_token(token: str) -> AuthClaims:
    """Decode a token and return its claims; raises JWTError when the subject is missing."""
    payload = decode_token(token)
    if not payload.get("sub"):
        raise JWTError("Token has no subject")
    return AuthClaims(
        sub=str(payload["sub"]),
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
        aud=payload.get("aud"),
        user_metadata=payload.get("user_metadata") or {},
    )


# PUBLIC_INTERFACE
def get_token_subject(token: str) -> Optional[str]:
    """Return 'sub' from a token or None when token is invalid."""
    try:
        return decode_access_token(token).sub
    except JWTError:
        return None


def avatar_url_for(name: str) -> str:
    """Initials avatar used when the provider supplies none."""
    return f"https://api.dicebear.com/8.x/initials/svg?seed={quote(name, safe='')}"
