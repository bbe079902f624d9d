from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .community import NewsRead


class OverallStats(BaseModel):
    completed_count: int = 0
    average_score: int = 0
    total_learning_minutes: int = 0


class ActivityPoint(BaseModel):
    date: date
    launched: int = 0
    completed: int = 0


class CategoryProficiency(BaseModel):
    category: str
    average_score: int


class LearningFocusItem(BaseModel):
    content_id: UUID
    title: str
    status: str
    value: int


class QuizResultRow(BaseModel):
    content_id: UUID
    title: str
    score: int
    passing_score: int = 70
    passed: bool


class LearnerAnalytics(BaseModel):
    """Everything the learner analytics view renders."""
    overall: OverallStats
    activity: List[ActivityPoint] = Field(default_factory=list)
    category_proficiency: List[CategoryProficiency] = Field(default_factory=list)
    learning_focus: List[LearningFocusItem] = Field(default_factory=list)
    quiz_results: List[QuizResultRow] = Field(default_factory=list)


class DashboardCounts(BaseModel):
    users: int = 0
    content: int = 0
    playlists: int = 0
    organizations: int = 0


class AdminDashboard(BaseModel):
    """Landing data for the administrator dashboard."""
    counts: DashboardCounts
    latest_news: List[NewsRead] = Field(default_factory=list)
    pending_questions: int = 0


class OrganizationSummary(BaseModel):
    organization_id: Optional[UUID] = None
    organization_name: str
    members: int = 0
    completions: int = 0
    average_quiz_score: int = 0
    pass_rate: int = Field(0, description="Percentage of graded attempts that passed")


class ContentCompletionRate(BaseModel):
    content_id: UUID
    title: str
    started: int = Field(0, description="Distinct learners who launched or completed the item")
    completed: int = 0
    completion_rate: int = Field(0, description="Distinct completers over distinct engaged learners, in percent")


class AnalyticsRecordRead(BaseModel):
    id: UUID
    user_id: UUID
    organization_id: Optional[UUID] = None
    content_id: Optional[UUID] = None
    news_id: Optional[UUID] = None
    event: str
    duration_sec: Optional[int] = None
    score: Optional[int] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class TrainingRecordRead(BaseModel):
    id: UUID
    user_id: UUID
    organization_id: Optional[UUID] = None
    content_id: UUID
    score: int
    passed: bool
    time_spent_sec: Optional[int] = None
    attempts: int = 1
    completed_at: datetime

    class Config:
        from_attributes = True
