from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin
from alleye.db.models import Profile
from alleye.schemas.content import ContentCreate, ContentRead, ContentType, ContentUpdate, LearnerContentRead
from alleye.services.catalog import CatalogService

# Learner-facing catalog
router = APIRouter(prefix="/content", tags=["Content"])

# Administrator management
admin_router = APIRouter(
    prefix="/admin/content",
    tags=["Content"],
    dependencies=[Depends(require_admin)],
)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[LearnerContentRead],
    summary="Content catalog",
    description="Content visible to the caller's organization (unrestricted items plus those assigned to it).",
)
async def list_catalog(
    type: Optional[ContentType] = Query(None, description="Filter by content type"),
    category: Optional[str] = Query(None),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[LearnerContentRead]:
    items = await CatalogService(session).catalog_for(profile, content_type=type, category=category)
    return [LearnerContentRead.model_validate(c) for c in items]


# PUBLIC_INTERFACE
@router.get("/{content_id}", response_model=LearnerContentRead, summary="Get content item")
async def get_catalog_item(
    content_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> LearnerContentRead:
    item = await CatalogService(session).get_content_for(profile, content_id)
    return LearnerContentRead.model_validate(item)


# PUBLIC_INTERFACE
@admin_router.get("", response_model=List[ContentRead], summary="List all content")
async def admin_list_content(
    type: Optional[ContentType] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None, description="Matches title or description"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_db_session),
) -> List[ContentRead]:
    items = await CatalogService(session).list_content(
        content_type=type, category=category, search=search, limit=limit, offset=offset
    )
    return [ContentRead.model_validate(c) for c in items]


# PUBLIC_INTERFACE
@admin_router.post(
    "",
    response_model=ContentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create content",
)
async def admin_create_content(
    payload: ContentCreate,
    creator: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> ContentRead:
    return ContentRead.model_validate(await CatalogService(session).create_content(payload, creator))


# PUBLIC_INTERFACE
@admin_router.get("/{content_id}", response_model=ContentRead, summary="Get content with answer key")
async def admin_get_content(
    content_id: UUID = Path(...),
    admin: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> ContentRead:
    return ContentRead.model_validate(await CatalogService(session).get_content_for(admin, content_id))


# PUBLIC_INTERFACE
@admin_router.patch("/{content_id}", response_model=ContentRead, summary="Update content")
async def admin_update_content(
    payload: ContentUpdate,
    content_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> ContentRead:
    return ContentRead.model_validate(await CatalogService(session).update_content(content_id, payload))


# PUBLIC_INTERFACE
@admin_router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete content")
async def admin_delete_content(
    content_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await CatalogService(session).delete_content(content_id)
