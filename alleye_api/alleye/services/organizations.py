from __future__ import annotations

import logging
from typing import List
from uuid import UUID

from alleye.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from alleye.db.models import Organization, Profile
from alleye.repositories.organizations import OrganizationRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.organization import OrganizationCreate, OrganizationUpdate
from alleye.services.base import BaseService
from alleye.services.realtime import publish_safely, serialize_row

logger = logging.getLogger(__name__)


class OrganizationService(BaseService):
    """Organization administration and membership."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.repo = OrganizationRepository(session)
        self.profiles = ProfileRepository(session)

    async def _require(self, org_id: UUID) -> Organization:
        org = await self.repo.get(org_id)
        if org is None:
            raise NotFoundError("Organization not found")
        return org

    async def _ensure_unique_name(self, name: str, exclude: UUID | None = None) -> None:
        existing = await self.repo.get_by_name(name)
        if existing is not None and existing.id != exclude:
            raise ValidationFailedError(f"Organization '{name}' already exists")

    # PUBLIC_INTERFACE
    async def list_for(self, caller: Profile) -> List[Organization]:
        """Admins see every organization; everyone else only their own."""
        if caller.role == "admin":
            return await self.repo.list()
        if caller.organization_id is None:
            return []
        org = await self.repo.get(caller.organization_id)
        return [org] if org else []

    # PUBLIC_INTERFACE
    async def get_for(self, caller: Profile, org_id: UUID) -> Organization:
        if caller.role != "admin" and caller.organization_id != org_id:
            raise NotFoundError("Organization not found")
        return await self._require(org_id)

    # PUBLIC_INTERFACE
    async def create(self, payload: OrganizationCreate) -> Organization:
        await self._ensure_unique_name(payload.name)
        org = await self.repo.create(**payload.model_dump())
        logger.info("Created organization %s", org.name)
        await publish_safely("organizations", "INSERT", new=org)
        return org

    # PUBLIC_INTERFACE
    async def update(self, org_id: UUID, payload: OrganizationUpdate) -> Organization:
        org = await self._require(org_id)
        values = payload.model_dump(exclude_unset=True)
        if values.get("name"):
            await self._ensure_unique_name(values["name"], exclude=org_id)
        elif "name" in values:
            values.pop("name")
        old = serialize_row(org)
        org = await self.repo.apply(org, values)
        await publish_safely("organizations", "UPDATE", new=org, old=old)
        return org

    # PUBLIC_INTERFACE
    async def delete(self, org_id: UUID) -> None:
        org = await self._require(org_id)
        old = serialize_row(org)
        await self.repo.remove(org)
        await publish_safely("organizations", "DELETE", old=old)

    # PUBLIC_INTERFACE
    async def members(self, caller: Profile, org_id: UUID) -> List[Profile]:
        if caller.role != "admin" and caller.organization_id != org_id:
            raise PermissionDeniedError("Access limited to your own organization")
        await self._require(org_id)
        return await self.profiles.list(organization_id=org_id, limit=1000)

    # PUBLIC_INTERFACE
    async def assign_member(self, org_id: UUID, user_id: UUID) -> Profile:
        org = await self._require(org_id)
        profile = await self.profiles.get(user_id)
        if profile is None:
            raise NotFoundError("User not found")
        old = serialize_row(profile)
        profile = await self.profiles.apply(profile, {"organization_id": org.id})
        logger.info("User %s moved to organization %s", profile.id, org.name)
        await publish_safely("profiles", "UPDATE", new=profile, old=old)
        return profile
