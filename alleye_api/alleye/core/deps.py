from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.logging import user_id_var
from alleye.core.security import decode_access_token
from alleye.db.models import Profile
from alleye.db.session import get_async_session
from alleye.services.profiles import ProfileService

logger = logging.getLogger(__name__)

# Bearer access tokens are issued by the hosted auth provider (see /auth/login)
bearer_scheme = HTTPBearer(auto_error=False, description="Provider-issued access token")


# PUBLIC_INTERFACE
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an AsyncSession for the duration of a request."""
    async for session in get_async_session():
        yield session


# PUBLIC_INTERFACE
async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Return the raw bearer token.

    Raises:
        HTTPException: 401 when the Authorization header is missing.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


# PUBLIC_INTERFACE
async def get_current_profile(
    token: str = Depends(get_bearer_token),
    session: AsyncSession = Depends(get_db_session),
) -> Profile:
    """
    Resolve the current profile from the bearer token.

    The profile is provisioned on first sight of a new auth user.
    """
    try:
        claims = decode_access_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id_var.set(claims.sub)
    return await ProfileService(session).get_or_provision(claims)


# PUBLIC_INTERFACE
async def get_current_active_profile(profile: Profile = Depends(get_current_profile)) -> Profile:
    """Ensure the profile is active."""
    if not profile.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return profile


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """Create a dependency that requires the current profile to hold one of the given roles."""

    async def _dep(profile: Profile = Depends(get_current_active_profile)) -> Profile:
        if profile.role not in required:
            logger.info("Role %s rejected; requires one of %s", profile.role, required)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return profile

    return _dep


require_admin = require_roles("admin")
require_org_viewer = require_roles("admin", "ciso", "lead")
