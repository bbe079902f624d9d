from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin
from alleye.db.models import Profile
from alleye.schemas.content import LearnerContentRead
from alleye.schemas.playlist import (
    AssignmentCreate,
    AssignmentRead,
    PlaylistCreate,
    PlaylistRead,
    PlaylistUpdate,
)
from alleye.services.catalog import CatalogService

router = APIRouter(prefix="/playlists", tags=["Playlists"])
assignments_router = APIRouter(
    prefix="/assignments",
    tags=["Assignments"],
    dependencies=[Depends(require_admin)],
)


# PUBLIC_INTERFACE
@router.get("", response_model=List[PlaylistRead], summary="List playlists visible to the caller")
async def list_playlists(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[PlaylistRead]:
    items = await CatalogService(session).playlists_for(profile)
    return [PlaylistRead.model_validate(p) for p in items]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=PlaylistRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create playlist",
)
async def create_playlist(
    payload: PlaylistCreate,
    creator: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> PlaylistRead:
    return PlaylistRead.model_validate(await CatalogService(session).create_playlist(payload, creator))


# PUBLIC_INTERFACE
@router.get("/{playlist_id}", response_model=PlaylistRead, summary="Get playlist")
async def get_playlist(
    playlist_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> PlaylistRead:
    return PlaylistRead.model_validate(await CatalogService(session).get_playlist_for(profile, playlist_id))


# PUBLIC_INTERFACE
@router.get(
    "/{playlist_id}/content",
    response_model=List[LearnerContentRead],
    summary="Playlist content in order",
)
async def get_playlist_content(
    playlist_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[LearnerContentRead]:
    svc = CatalogService(session)
    playlist = await svc.get_playlist_for(profile, playlist_id)
    return [LearnerContentRead.model_validate(c) for c in await svc.playlist_content_for(profile, playlist)]


# PUBLIC_INTERFACE
@router.patch(
    "/{playlist_id}",
    response_model=PlaylistRead,
    summary="Update playlist",
    dependencies=[Depends(require_admin)],
)
async def update_playlist(
    payload: PlaylistUpdate,
    playlist_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> PlaylistRead:
    return PlaylistRead.model_validate(await CatalogService(session).update_playlist(playlist_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{playlist_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete playlist",
    dependencies=[Depends(require_admin)],
)
async def delete_playlist(
    playlist_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await CatalogService(session).delete_playlist(playlist_id)


# PUBLIC_INTERFACE
@assignments_router.post(
    "",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Assign content or a playlist to a user",
)
async def create_assignment(
    payload: AssignmentCreate,
    admin: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> AssignmentRead:
    return AssignmentRead.model_validate(await CatalogService(session).create_assignment(payload, admin))


# PUBLIC_INTERFACE
@assignments_router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove an assignment",
)
async def delete_assignment(
    assignment_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await CatalogService(session).delete_assignment(assignment_id)
