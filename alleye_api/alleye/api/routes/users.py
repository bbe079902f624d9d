from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_db_session, require_admin, require_org_viewer
from alleye.db.models import Profile
from alleye.schemas.playlist import AssignmentRead
from alleye.schemas.profile import ProfileAdminUpdate, ProfileRead, Role
from alleye.services.catalog import CatalogService
from alleye.services.profiles import ProfileService

router = APIRouter(prefix="/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ProfileRead],
    summary="List users",
    description="Administrators list everyone; ciso/lead are limited to their own organization.",
)
async def list_users(
    organization_id: Optional[UUID] = Query(None),
    role: Optional[Role] = Query(None),
    search: Optional[str] = Query(None, description="Matches name or email"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[ProfileRead]:
    items = await ProfileService(session).list_profiles(
        caller, organization_id=organization_id, role=role, search=search, limit=limit, offset=offset
    )
    return [ProfileRead.model_validate(p) for p in items]


# PUBLIC_INTERFACE
@router.get("/{user_id}", response_model=ProfileRead, summary="Get user")
async def get_user(
    user_id: UUID = Path(...),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    return ProfileRead.model_validate(await ProfileService(session).get_profile(caller, user_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{user_id}",
    response_model=ProfileRead,
    summary="Update user",
    description="Change role, organization, team, company or active flag.",
    dependencies=[Depends(require_admin)],
)
async def update_user(
    payload: ProfileAdminUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    return ProfileRead.model_validate(await ProfileService(session).admin_update(user_id, payload))


# PUBLIC_INTERFACE
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user profile")
async def delete_user(
    user_id: UUID = Path(...),
    caller: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await ProfileService(session).delete_profile(caller, user_id)


# PUBLIC_INTERFACE
@router.get(
    "/{user_id}/assignments",
    response_model=List[AssignmentRead],
    summary="List a user's assignments",
    dependencies=[Depends(require_admin)],
)
async def list_user_assignments(
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> List[AssignmentRead]:
    items = await CatalogService(session).assignments_for_user(user_id)
    return [AssignmentRead.model_validate(a) for a in items]
