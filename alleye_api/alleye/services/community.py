from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from alleye.core.errors import NotFoundError, PermissionDeniedError
from alleye.db.models import NewsItem, Profile, QAndAItem
from alleye.repositories.analytics import AnalyticsRepository
from alleye.repositories.community import NewsRepository, QAndARepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.community import (
    AnswerUpdate,
    NewsCreate,
    NewsRead,
    NewsUpdate,
    QAndARead,
    QuestionCreate,
)
from alleye.services.base import BaseService
from alleye.services.catalog import CatalogService
from alleye.services.realtime import publish_safely, serialize_row

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown"


async def _names_for(profiles: ProfileRepository, ids: Iterable[Optional[UUID]]) -> Dict[UUID, str]:
    wanted = list({i for i in ids if i is not None})
    return {p.id: p.name for p in await profiles.get_many(wanted)}


class NewsService(BaseService):
    """News and threat-intel posts."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.repo = NewsRepository(session)
        self.profiles = ProfileRepository(session)
        self.analytics = AnalyticsRepository(session)

    async def _to_read(self, items: List[NewsItem]) -> List[NewsRead]:
        names = await _names_for(self.profiles, (n.author_id for n in items))
        out = []
        for n in items:
            read = NewsRead.model_validate(n)
            read.author_name = names.get(n.author_id, UNKNOWN_AUTHOR)
            out.append(read)
        return out

    # PUBLIC_INTERFACE
    async def list(self, limit: int = 50, offset: int = 0) -> List[NewsRead]:
        """Newest first with author names attached."""
        return await self._to_read(await self.repo.list(limit=limit, offset=offset))

    # PUBLIC_INTERFACE
    async def get(self, news_id: UUID) -> NewsRead:
        item = await self.repo.get(news_id)
        if item is None:
            raise NotFoundError("News item not found")
        return (await self._to_read([item]))[0]

    # PUBLIC_INTERFACE
    async def create(self, payload: NewsCreate, author: Profile) -> NewsRead:
        item = await self.repo.create(**payload.model_dump(), author_id=author.id)
        await publish_safely("news", "INSERT", new=item)
        return (await self._to_read([item]))[0]

    # PUBLIC_INTERFACE
    async def update(self, news_id: UUID, payload: NewsUpdate) -> NewsRead:
        item = await self.repo.get(news_id)
        if item is None:
            raise NotFoundError("News item not found")
        values = payload.model_dump(exclude_unset=True)
        for key in ("title", "severity"):
            if key in values and values[key] is None:
                values.pop(key)
        old = serialize_row(item)
        item = await self.repo.apply(item, values)
        await publish_safely("news", "UPDATE", new=item, old=old)
        return (await self._to_read([item]))[0]

    # PUBLIC_INTERFACE
    async def delete(self, news_id: UUID) -> None:
        item = await self.repo.get(news_id)
        if item is None:
            raise NotFoundError("News item not found")
        old = serialize_row(item)
        await self.repo.remove(item)
        await publish_safely("news", "DELETE", old=old)

    # PUBLIC_INTERFACE
    async def mark_read(self, profile: Profile, news_id: UUID) -> None:
        """Record a 'read' statement for the profile."""
        if await self.repo.get(news_id) is None:
            raise NotFoundError("News item not found")
        record = await self.analytics.record(
            user_id=profile.id,
            organization_id=profile.organization_id,
            news_id=news_id,
            event="read",
        )
        await publish_safely("analytics", "INSERT", new=record)


class QAndAService(BaseService):
    """Learner questions and administrator answers."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.repo = QAndARepository(session)
        self.profiles = ProfileRepository(session)
        self.catalog = CatalogService(session, self.settings)

    async def _to_read(self, items: List[QAndAItem]) -> List[QAndARead]:
        names = await _names_for(
            self.profiles, [i.user_id for i in items] + [i.answered_by for i in items]
        )
        out = []
        for i in items:
            read = QAndARead.model_validate(i)
            read.user_name = names.get(i.user_id, UNKNOWN_AUTHOR)
            read.answered_by_name = names.get(i.answered_by) if i.answered_by else None
            out.append(read)
        return out

    async def _require(self, item_id: UUID) -> QAndAItem:
        item = await self.repo.get(item_id)
        if item is None:
            raise NotFoundError("Question not found")
        return item

    # PUBLIC_INTERFACE
    async def ask(self, profile: Profile, payload: QuestionCreate) -> QAndARead:
        """Content the asker cannot see is treated as missing."""
        if payload.content_id is not None:
            await self.catalog.get_content_for(profile, payload.content_id)
        item = await self.repo.create(
            user_id=profile.id, question=payload.question.strip(), content_id=payload.content_id
        )
        await publish_safely("qanda", "INSERT", new=item)
        return (await self._to_read([item]))[0]

    # PUBLIC_INTERFACE
    async def list_for(
        self,
        profile: Profile,
        *,
        mine: bool = False,
        content_id: Optional[UUID] = None,
        pending_only: bool = False,
    ) -> List[QAndARead]:
        """
        Learners read the shared Q&A board (or only their own questions);
        pending questions are listed for administrators only.
        """
        if pending_only and profile.role != "admin":
            raise PermissionDeniedError("Only administrators can list pending questions")
        items = await self.repo.list(
            user_id=profile.id if mine else None,
            content_id=content_id,
            pending_only=pending_only,
        )
        return await self._to_read(items)

    # PUBLIC_INTERFACE
    async def answer(self, item_id: UUID, payload: AnswerUpdate, admin: Profile) -> QAndARead:
        item = await self._require(item_id)
        old = serialize_row(item)
        item = await self.repo.apply(
            item,
            {
                "answer": payload.answer.strip(),
                "answered_by": admin.id,
                "answered_at": datetime.now(timezone.utc),
            },
        )
        await publish_safely("qanda", "UPDATE", new=item, old=old)
        return (await self._to_read([item]))[0]

    # PUBLIC_INTERFACE
    async def delete(self, item_id: UUID) -> None:
        item = await self._require(item_id)
        old = serialize_row(item)
        await self.repo.remove(item)
        await publish_safely("qanda", "DELETE", old=old)
