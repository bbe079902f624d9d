from __future__ import annotations

from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .profile import ProfileRead


ProgressStatus = Literal["in-progress", "completed"]


class ProgressEntry(BaseModel):
    """One value of the profile progress map."""
    status: ProgressStatus
    score: Optional[int] = Field(None, ge=0, le=100)
    updated_at: Optional[str] = None


class CompleteRequest(BaseModel):
    """Mark content completed, optionally with a score."""
    score: Optional[int] = Field(None, ge=0, le=100)
    duration_sec: Optional[int] = Field(None, ge=0)


class QuizSubmission(BaseModel):
    """Selected option index per question, in question order."""
    answers: List[int] = Field(..., min_length=1)
    time_spent_sec: Optional[int] = Field(None, ge=0)


class QuestionReview(BaseModel):
    """Per-question grading outcome."""
    question_id: Optional[str] = None
    question: str
    selected: int
    correct: int
    is_correct: bool


class QuizResult(BaseModel):
    """Graded quiz submission."""
    content_id: UUID
    score: int = Field(..., ge=0, le=100)
    correct_count: int
    total: int
    passing_score: int
    passed: bool
    attempt: int
    review: List[QuestionReview]
    points_awarded: int = 0
    profile: ProfileRead


class ProgressUpdateResult(BaseModel):
    """Result of a start/complete call."""
    content_id: UUID
    entry: ProgressEntry
    points_awarded: int = 0
    badges_granted: List[str] = Field(default_factory=list)
    profile: ProfileRead
