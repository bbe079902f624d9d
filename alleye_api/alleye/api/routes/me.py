from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session
from alleye.db.models import Profile
from alleye.schemas.content import LearnerContentRead
from alleye.schemas.playlist import AssignmentRead
from alleye.schemas.profile import MeResponse, ProfileRead, ProfileSelfUpdate
from alleye.services.catalog import CatalogService
from alleye.services.profiles import ProfileService

router = APIRouter(prefix="/me", tags=["Me"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=MeResponse,
    summary="Current profile",
    description="Current profile with its organization. Administrators also receive every organization.",
)
async def get_me(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> MeResponse:
    return await ProfileService(session).me(profile)


# PUBLIC_INTERFACE
@router.patch("", response_model=ProfileRead, summary="Update own name and avatar")
async def update_me(
    payload: ProfileSelfUpdate,
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    updated = await ProfileService(session).update_self(profile, payload)
    return ProfileRead.model_validate(updated)


# PUBLIC_INTERFACE
@router.get("/assignments", response_model=List[AssignmentRead], summary="My assignments")
async def my_assignments(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[AssignmentRead]:
    items = await CatalogService(session).assignments_for_user(profile.id)
    return [AssignmentRead.model_validate(a) for a in items]


# PUBLIC_INTERFACE
@router.get(
    "/assigned-content",
    response_model=List[LearnerContentRead],
    summary="My assigned content",
    description="Directly assigned content plus the content of assigned playlists, deduplicated.",
)
async def my_assigned_content(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[LearnerContentRead]:
    items = await CatalogService(session).assigned_content_for(profile)
    return [LearnerContentRead.model_validate(c) for c in items]
