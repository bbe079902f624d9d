from __future__ import annotations

from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, or_, select

from alleye.db.models import Content, Playlist, UserAssignment
from .base import BaseRepository, visible_to_org


class ContentRepository(BaseRepository):
    """Repository for content items."""

    async def get(self, content_id: UUID) -> Optional[Content]:
        return await self.scalar_one_or_none(select(Content).where(Content.id == content_id))

    async def get_visible(self, content_id: UUID, organization_id: Optional[UUID]) -> Optional[Content]:
        stmt = select(Content).where(
            Content.id == content_id,
            visible_to_org(Content.assigned_org_ids, organization_id),
        )
        return await self.scalar_one_or_none(stmt)

    async def list(
        self,
        *,
        content_type: Optional[str] = None,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Content]:
        stmt = select(Content)
        if content_type:
            stmt = stmt.where(Content.type == content_type)
        if category:
            stmt = stmt.where(Content.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(or_(Content.title.ilike(pattern), Content.description.ilike(pattern)))
        stmt = stmt.order_by(Content.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def list_visible(
        self,
        organization_id: Optional[UUID],
        *,
        content_type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[Content]:
        stmt = select(Content).where(visible_to_org(Content.assigned_org_ids, organization_id))
        if content_type:
            stmt = stmt.where(Content.type == content_type)
        if category:
            stmt = stmt.where(Content.category == category)
        result = await self.scalars(stmt.order_by(Content.created_at.desc()))
        return list(result)

    async def list_by_ids(self, ids: Sequence[UUID], organization_id: Optional[UUID] = None,
                          restrict: bool = False) -> List[Content]:
        if not ids:
            return []
        stmt = select(Content).where(Content.id.in_(list(ids)))
        if restrict:
            stmt = stmt.where(visible_to_org(Content.assigned_org_ids, organization_id))
        result = await self.scalars(stmt)
        return list(result)

    async def count_all(self) -> int:
        return await self.count(select(func.count(Content.id)))

    async def create(self, **values) -> Content:
        return await self.save(Content(**values))


class PlaylistRepository(BaseRepository):
    """Repository for playlists."""

    async def get(self, playlist_id: UUID) -> Optional[Playlist]:
        return await self.scalar_one_or_none(select(Playlist).where(Playlist.id == playlist_id))

    async def list(self) -> List[Playlist]:
        result = await self.scalars(select(Playlist).order_by(Playlist.created_at.desc()))
        return list(result)

    async def list_visible(self, organization_id: Optional[UUID]) -> List[Playlist]:
        stmt = (
            select(Playlist)
            .where(visible_to_org(Playlist.assigned_org_ids, organization_id))
            .order_by(Playlist.created_at.desc())
        )
        result = await self.scalars(stmt)
        return list(result)

    async def list_by_ids(self, ids: Sequence[UUID]) -> List[Playlist]:
        if not ids:
            return []
        result = await self.scalars(select(Playlist).where(Playlist.id.in_(list(ids))))
        return list(result)

    async def count_all(self) -> int:
        return await self.count(select(func.count(Playlist.id)))

    async def create(self, **values) -> Playlist:
        return await self.save(Playlist(**values))


class AssignmentRepository(BaseRepository):
    """Repository for per-user assignments."""

    async def get(self, assignment_id: UUID) -> Optional[UserAssignment]:
        return await self.scalar_one_or_none(select(UserAssignment).where(UserAssignment.id == assignment_id))

    async def list_for_user(self, user_id: UUID) -> List[UserAssignment]:
        stmt = (
            select(UserAssignment)
            .where(UserAssignment.user_id == user_id)
            .order_by(UserAssignment.created_at.desc())
        )
        result = await self.scalars(stmt)
        return list(result)

    async def create(self, **values) -> UserAssignment:
        return await self.save(UserAssignment(**values))
