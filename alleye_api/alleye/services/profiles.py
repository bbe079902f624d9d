from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from alleye.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from alleye.core.security import AuthClaims, avatar_url_for
from alleye.db.models import Profile
from alleye.repositories.organizations import OrganizationRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.organization import OrganizationRead
from alleye.schemas.profile import MeResponse, ProfileAdminUpdate, ProfileRead, ProfileSelfUpdate
from alleye.services.auth_provider import DEFAULT_TEAM, PERSONAL_COMPANY
from alleye.services.base import BaseService
from alleye.services.realtime import publish_safely, serialize_row

logger = logging.getLogger(__name__)

ORG_SCOPED_ROLES = ("ciso", "lead")


# PUBLIC_INTERFACE
def resolve_org_scope(profile: Profile, requested: Optional[UUID] = None) -> Optional[UUID]:
    """
    Organization filter a caller may use for management views.

    Admins may request any organization (None = all). ciso/lead are pinned to
    their own organization; asking for another one is refused.
    """
    if profile.role == "admin":
        return requested
    if profile.role in ORG_SCOPED_ROLES:
        if profile.organization_id is None:
            raise PermissionDeniedError("No organization assigned to this account")
        if requested is not None and requested != profile.organization_id:
            raise PermissionDeniedError("Access limited to your own organization")
        return profile.organization_id
    raise PermissionDeniedError("Insufficient role")


def display_name_from_claims(claims: AuthClaims) -> str:
    meta = claims.user_metadata or {}
    name = meta.get("full_name") or meta.get("name")
    if not name and claims.email:
        name = claims.email.split("@", 1)[0]
    return name or "User"


class ProfileService(BaseService):
    """Profiles: provisioning on first sign-in, self service and administration."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.repo = ProfileRepository(session)
        self.org_repo = OrganizationRepository(session)

    def _company_for(self, email: Optional[str]) -> str:
        domain = self.settings.CORPORATE_EMAIL_DOMAIN.lower()
        if email and email.lower().endswith(f"@{domain}"):
            return self.settings.CORPORATE_COMPANY_NAME
        return PERSONAL_COMPANY

    # PUBLIC_INTERFACE
    async def get_or_provision(self, claims: AuthClaims) -> Profile:
        """Load the profile for the token subject, creating it on first sight."""
        try:
            profile_id = UUID(claims.sub)
        except ValueError:
            raise PermissionDeniedError("Token subject is not a valid user id")

        profile = await self.repo.get(profile_id)
        if profile is not None:
            return profile

        name = display_name_from_claims(claims)
        meta_avatar = (claims.user_metadata or {}).get("avatar_url")
        values = dict(
            id=profile_id,
            email=claims.email,
            name=name,
            role="user",
            company=self._company_for(claims.email),
            team=DEFAULT_TEAM,
            avatar_url=meta_avatar or avatar_url_for(name),
            points=0,
            badges=[],
            progress={},
            is_active=True,
        )
        try:
            profile = await self.repo.create(**values)
        except IntegrityError:
            # Concurrent first requests of the same user
            await self.session.rollback()
            profile = await self.repo.get(profile_id)
            if profile is None:
                raise
            return profile
        logger.info("Provisioned profile %s (%s)", profile.id, profile.company)
        await publish_safely("profiles", "INSERT", new=profile)
        return profile

    # PUBLIC_INTERFACE
    async def me(self, profile: Profile) -> MeResponse:
        org = None
        if profile.organization_id is not None:
            org = await self.org_repo.get(profile.organization_id)
        orgs: List[OrganizationRead] = []
        if profile.role == "admin":
            orgs = [OrganizationRead.model_validate(o) for o in await self.org_repo.list()]
        return MeResponse(
            profile=ProfileRead.model_validate(profile),
            organization=OrganizationRead.model_validate(org) if org else None,
            organizations=orgs,
        )

    # PUBLIC_INTERFACE
    async def update_self(self, profile: Profile, payload: ProfileSelfUpdate) -> Profile:
        values = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not values:
            return profile
        old = serialize_row(profile)
        profile = await self.repo.apply(profile, values)
        await publish_safely("profiles", "UPDATE", new=profile, old=old)
        return profile

    # PUBLIC_INTERFACE
    async def list_profiles(
        self,
        caller: Profile,
        *,
        organization_id: Optional[UUID] = None,
        role: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Profile]:
        scope = resolve_org_scope(caller, organization_id)
        return await self.repo.list(
            organization_id=scope, role=role, search=search, limit=limit, offset=offset
        )

    # PUBLIC_INTERFACE
    async def get_profile(self, caller: Profile, profile_id: UUID) -> Profile:
        profile = await self.repo.get(profile_id)
        if profile is None:
            raise NotFoundError("User not found")
        scope = resolve_org_scope(caller)
        if scope is not None and profile.organization_id != scope:
            raise NotFoundError("User not found")
        return profile

    # PUBLIC_INTERFACE
    async def admin_update(self, profile_id: UUID, payload: ProfileAdminUpdate) -> Profile:
        profile = await self.repo.get(profile_id)
        if profile is None:
            raise NotFoundError("User not found")
        values = payload.model_dump(exclude_unset=True)
        if "organization_id" in values and values["organization_id"] is not None:
            if await self.org_repo.get(values["organization_id"]) is None:
                raise ValidationFailedError("Organization does not exist")
        for key in ("role", "is_active"):
            if key in values and values[key] is None:
                values.pop(key)
        if not values:
            return profile
        old = serialize_row(profile)
        profile = await self.repo.apply(profile, values)
        logger.info("Profile %s updated by admin: %s", profile.id, sorted(values))
        await publish_safely("profiles", "UPDATE", new=profile, old=old)
        return profile

    # PUBLIC_INTERFACE
    async def delete_profile(self, caller: Profile, profile_id: UUID) -> None:
        if caller.id == profile_id:
            raise ValidationFailedError("Administrators cannot delete their own profile")
        profile = await self.repo.get(profile_id)
        if profile is None:
            raise NotFoundError("User not found")
        old = serialize_row(profile)
        await self.repo.remove(profile)
        await publish_safely("profiles", "DELETE", old=old)
