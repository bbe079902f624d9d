from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session
from alleye.db.models import Profile
from alleye.schemas.recommendation import Recommendation
from alleye.services.recommendations import RecommendationService

router = APIRouter(prefix="/recommendations", tags=["Recommendations"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[Recommendation],
    summary="Personalized content suggestions",
    description="Suggests visible, not yet completed content based on what the caller has completed.",
)
async def get_recommendations(
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[Recommendation]:
    return await RecommendationService(session).recommend(profile)
