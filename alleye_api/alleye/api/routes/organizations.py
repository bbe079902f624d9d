from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin, require_org_viewer
from alleye.db.models import Profile
from alleye.schemas.organization import (
    MemberAssignment,
    OrganizationCreate,
    OrganizationRead,
    OrganizationUpdate,
)
from alleye.schemas.profile import ProfileRead
from alleye.services.organizations import OrganizationService

router = APIRouter(prefix="/organizations", tags=["Organizations"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[OrganizationRead],
    summary="List organizations",
    description="Administrators see all organizations; other roles only their own.",
)
async def list_organizations(
    caller: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[OrganizationRead]:
    items = await OrganizationService(session).list_for(caller)
    return [OrganizationRead.model_validate(o) for o in items]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=OrganizationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create organization",
    dependencies=[Depends(require_admin)],
)
async def create_organization(
    payload: OrganizationCreate,
    session: AsyncSession = Depends(get_db_session),
) -> OrganizationRead:
    return OrganizationRead.model_validate(await OrganizationService(session).create(payload))


# PUBLIC_INTERFACE
@router.get("/{org_id}", response_model=OrganizationRead, summary="Get organization")
async def get_organization(
    org_id: UUID = Path(...),
    caller: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> OrganizationRead:
    return OrganizationRead.model_validate(await OrganizationService(session).get_for(caller, org_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{org_id}",
    response_model=OrganizationRead,
    summary="Update organization",
    dependencies=[Depends(require_admin)],
)
async def update_organization(
    payload: OrganizationUpdate,
    org_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> OrganizationRead:
    return OrganizationRead.model_validate(await OrganizationService(session).update(org_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{org_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete organization",
    dependencies=[Depends(require_admin)],
)
async def delete_organization(
    org_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await OrganizationService(session).delete(org_id)


# PUBLIC_INTERFACE
@router.get("/{org_id}/members", response_model=List[ProfileRead], summary="List organization members")
async def list_members(
    org_id: UUID = Path(...),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[ProfileRead]:
    items = await OrganizationService(session).members(caller, org_id)
    return [ProfileRead.model_validate(p) for p in items]


# PUBLIC_INTERFACE
@router.post(
    "/{org_id}/members",
    response_model=ProfileRead,
    summary="Assign a user to the organization",
    dependencies=[Depends(require_admin)],
)
async def assign_member(
    payload: MemberAssignment,
    org_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileRead:
    profile = await OrganizationService(session).assign_member(org_id, payload.user_id)
    return ProfileRead.model_validate(profile)
