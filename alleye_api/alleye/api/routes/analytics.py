from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin, require_org_viewer
from alleye.db.models import Profile
from alleye.schemas.analytics import (
    AdminDashboard,
    AnalyticsRecordRead,
    ContentCompletionRate,
    LearnerAnalytics,
    OrganizationSummary,
    TrainingRecordRead,
)
from alleye.services.analytics import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=LearnerAnalytics,
    summary="My learning analytics",
    description="Overall stats, 30-day activity, category proficiency, learning focus and quiz results.",
)
async def my_analytics(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> LearnerAnalytics:
    return await AnalyticsService(session).learner_analytics(profile)


# PUBLIC_INTERFACE
@router.get(
    "/dashboard",
    response_model=AdminDashboard,
    summary="Administrator dashboard",
    dependencies=[Depends(require_admin)],
)
async def admin_dashboard(session: AsyncSession = Depends(get_db_session)) -> AdminDashboard:
    return await AnalyticsService(session).admin_dashboard()


# PUBLIC_INTERFACE
@router.get(
    "/organizations",
    response_model=List[OrganizationSummary],
    summary="Per-organization summary",
    description="ciso and lead roles only receive their own organization.",
)
async def organization_summary(
    organization_id: Optional[UUID] = Query(None),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[OrganizationSummary]:
    return await AnalyticsService(session).organization_summary(caller, organization_id)


# PUBLIC_INTERFACE
@router.get("/completion-rates", response_model=List[ContentCompletionRate], summary="Content completion rates")
async def completion_rates(
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[ContentCompletionRate]:
    return await AnalyticsService(session).completion_rates(caller)


# PUBLIC_INTERFACE
@router.get("/records", response_model=List[AnalyticsRecordRead], summary="Recent activity statements")
async def recent_records(
    limit: int = Query(50, ge=1, le=500),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[AnalyticsRecordRead]:
    items = await AnalyticsService(session).recent_records(caller, limit=limit)
    return [AnalyticsRecordRead.model_validate(r) for r in items]


# PUBLIC_INTERFACE
@router.get("/training", response_model=List[TrainingRecordRead], summary="Recent training results")
async def recent_training(
    limit: int = Query(50, ge=1, le=500),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
) -> List[TrainingRecordRead]:
    items = await AnalyticsService(session).recent_training(caller, limit=limit)
    return [TrainingRecordRead.model_validate(r) for r in items]
