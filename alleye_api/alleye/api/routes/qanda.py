from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_current_active_profile, get_db_session, require_admin
from alleye.db.models import Profile
from alleye.schemas.community import AnswerUpdate, QAndARead, QuestionCreate
from alleye.services.community import QAndAService

router = APIRouter(prefix="/qanda", tags=["Q&A"])


# PUBLIC_INTERFACE
@router.get("", response_model=List[QAndARead], summary="List questions")
async def list_questions(
    mine: bool = Query(False, description="Only questions asked by the caller"),
    content_id: Optional[UUID] = Query(None),
    pending: bool = Query(False, description="Unanswered questions only (administrators)"),
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> List[QAndARead]:
    return await QAndAService(session).list_for(
        profile, mine=mine, content_id=content_id, pending_only=pending
    )


# PUBLIC_INTERFACE
@router.post("", response_model=QAndARead, status_code=status.HTTP_201_CREATED, summary="Ask a question")
async def ask_question(
    payload: QuestionCreate,
    profile: Profile = Depends(get_current_active_profile),
    session: AsyncSession = Depends(get_db_session),
) -> QAndARead:
    return await QAndAService(session).ask(profile, payload)


# PUBLIC_INTERFACE
@router.put("/{item_id}/answer", response_model=QAndARead, summary="Answer or edit an answer")
async def answer_question(
    payload: AnswerUpdate,
    item_id: UUID = Path(...),
    admin: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
) -> QAndARead:
    return await QAndAService(session).answer(item_id, payload, admin)


# PUBLIC_INTERFACE
@router.delete(
    "/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete question",
    dependencies=[Depends(require_admin)],
)
async def delete_question(
    item_id: UUID = Path(...),
    session: AsyncSession = Depends(get_db_session),
) -> None:
    await QAndAService(session).delete(item_id)
