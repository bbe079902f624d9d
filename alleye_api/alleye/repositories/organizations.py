from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from alleye.db.models import Organization
from .base import BaseRepository


class OrganizationRepository(BaseRepository):
    """Repository for organizations."""

    async def get(self, org_id: UUID) -> Optional[Organization]:
        return await self.scalar_one_or_none(select(Organization).where(Organization.id == org_id))

    async def get_by_name(self, name: str) -> Optional[Organization]:
        stmt = select(Organization).where(func.lower(Organization.name) == name.lower())
        return await self.scalar_one_or_none(stmt)

    async def list(self) -> List[Organization]:
        result = await self.scalars(select(Organization).order_by(Organization.name.asc()))
        return list(result)

    async def count_all(self) -> int:
        return await self.count(select(func.count(Organization.id)))

    async def create(self, **values) -> Organization:
        return await self.save(Organization(**values))
