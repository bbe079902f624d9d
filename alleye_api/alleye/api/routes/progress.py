from __future__ import annotations

from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session
from alleye.db.models import Profile
from alleye.schemas.progress import (
    CompleteRequest,
    ProgressEntry,
    ProgressUpdateResult,
    QuizResult,
    QuizSubmission,
)
from alleye.services.progress import ProgressService

router = APIRouter(prefix="/progress", tags=["Progress"])


# PUBLIC_INTERFACE
@router.get("", response_model=Dict[str, ProgressEntry], summary="My progress map")
async def get_progress(profile: Profile = Depends(get_current_active_profile)) -> Dict[str, ProgressEntry]:
    return {k: ProgressEntry(**v) for k, v in (profile.progress or {}).items() if isinstance(v, dict)}


# PUBLIC_INTERFACE
@router.post("/{content_id}/start", response_model=ProgressUpdateResult, summary="Start content")
async def start_content(
    content_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> ProgressUpdateResult:
    """Mark content in-progress (completed items stay completed) and record a launch."""
    return await ProgressService(session).start(profile, content_id)


# PUBLIC_INTERFACE
@router.post("/{content_id}/complete", response_model=ProgressUpdateResult, summary="Complete content")
async def complete_content(
    content_id: UUID = Path(...),
    payload: Optional[CompleteRequest] = None,
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> ProgressUpdateResult:
    """
    Mark content completed.

    Points are awarded on the first completion only; the Course Conqueror
    badge is granted when the completed count reaches the configured threshold.
    """
    payload = payload or CompleteRequest()
    return await ProgressService(session).complete(
        profile, content_id, score=payload.score, duration_sec=payload.duration_sec
    )


# PUBLIC_INTERFACE
@router.post("/{content_id}/quiz", response_model=QuizResult, summary="Submit quiz answers")
async def submit_quiz(
    submission: QuizSubmission,
    content_id: UUID = Path(...),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> QuizResult:
    return await ProgressService(session).submit_quiz(profile, content_id, submission)
