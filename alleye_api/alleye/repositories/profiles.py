from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select

from alleye.db.models import Profile
from .base import BaseRepository


class ProfileRepository(BaseRepository):
    """Repository for user profiles."""

    async def get(self, profile_id: UUID) -> Optional[Profile]:
        return await self.scalar_one_or_none(select(Profile).where(Profile.id == profile_id))

    async def get_many(self, ids: List[UUID]) -> List[Profile]:
        if not ids:
            return []
        result = await self.scalars(select(Profile).where(Profile.id.in_(ids)))
        return list(result)

    async def list(
        self,
        *,
        organization_id: Optional[UUID] = None,
        role: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Profile]:
        stmt = select(Profile)
        if organization_id is not None:
            stmt = stmt.where(Profile.organization_id == organization_id)
        if role:
            stmt = stmt.where(Profile.role == role)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(Profile.name.ilike(pattern), Profile.email.ilike(pattern)))
        stmt = stmt.order_by(Profile.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def count_all(self, organization_id: Optional[UUID] = None) -> int:
        stmt = select(func.count(Profile.id))
        if organization_id is not None:
            stmt = stmt.where(Profile.organization_id == organization_id)
        return await self.count(stmt)

    async def member_counts(self) -> dict:
        """Members per organization id (None key for unassigned)."""
        stmt = select(Profile.organization_id, func.count(Profile.id)).group_by(Profile.organization_id)
        result = await self.execute(stmt)
        return {org_id: int(n) for org_id, n in result.all()}

    async def create(self, **values) -> Profile:
        return await self.save(Profile(**values))
