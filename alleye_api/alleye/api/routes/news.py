from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin
from alleye.db.models import Profile
from alleye.schemas.common import MessageResponse
from alleye.schemas.community import NewsCreate, NewsRead, NewsUpdate
from alleye.services.community import NewsService

router = APIRouter(prefix="/news", tags=["News"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[NewsRead],
    summary="Latest news and threat intel",
    dependencies=[Depends(get_current_active_profile)],
)
async def list_news(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
) -> List[NewsRead]:
    return await NewsService(session).list(limit=limit, offset=offset)


# PUBLIC_INTERFACE
@router.post("", response_model=NewsRead, status_code=status.HTTP_201_CREATED, summary="Publish news")
async def create_news(
    payload: NewsCreate,
    author: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> NewsRead:
    return await NewsService(session).create(payload, author)


# PUBLIC_INTERFACE
@router.get(
    "/{news_id}",
    response_model=NewsRead,
    summary="Get news item",
    dependencies=[Depends(get_current_active_profile)],
)
async def get_news(
    news_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> NewsRead:
    return await NewsService(session).get(news_id)


# PUBLIC_INTERFACE
@router.patch(
    "/{news_id}",
    response_model=NewsRead,
    summary="Update news item",
    dependencies=[Depends(require_admin)],
)
async def update_news(
    payload: NewsUpdate,
    news_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> NewsRead:
    return await NewsService(session).update(news_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/{news_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete news item",
    dependencies=[Depends(require_admin)],
)
async def delete_news(
    news_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await NewsService(session).delete(news_id)


# PUBLIC_INTERFACE
@router.post("/{news_id}/read", response_model=MessageResponse, summary="Mark news item read")
async def mark_news_read(
    news_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await NewsService(session).mark_read(profile, news_id)
    return MessageResponse(message="Marked as read")
