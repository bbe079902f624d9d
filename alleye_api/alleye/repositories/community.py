from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from alleye.db.models import NewsItem, QAndAItem
from .base import BaseRepository


class NewsRepository(BaseRepository):
    """Repository for news / threat-intel items."""

    async def get(self, news_id: UUID) -> Optional[NewsItem]:
        return await self.scalar_one_or_none(select(NewsItem).where(NewsItem.id == news_id))

    async def list(self, *, limit: int = 50, offset: int = 0) -> List[NewsItem]:
        stmt = select(NewsItem).order_by(NewsItem.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def create(self, **values) -> NewsItem:
        return await self.save(NewsItem(**values))


class QAndARepository(BaseRepository):
    """Repository for learner questions and admin answers."""

    async def get(self, item_id: UUID) -> Optional[QAndAItem]:
        return await self.scalar_one_or_none(select(QAndAItem).where(QAndAItem.id == item_id))

    async def list(
        self,
        *,
        user_id: Optional[UUID] = None,
        content_id: Optional[UUID] = None,
        pending_only: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> List[QAndAItem]:
        stmt = select(QAndAItem)
        if user_id is not None:
            stmt = stmt.where(QAndAItem.user_id == user_id)
        if content_id is not None:
            stmt = stmt.where(QAndAItem.content_id == content_id)
        if pending_only:
            stmt = stmt.where(QAndAItem.answer.is_(None))
        stmt = stmt.order_by(QAndAItem.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def count_pending(self) -> int:
        return await self.count(select(func.count(QAndAItem.id)).where(QAndAItem.answer.is_(None)))

    async def create(self, **values) -> QAndAItem:
        return await self.save(QAndAItem(**values))
