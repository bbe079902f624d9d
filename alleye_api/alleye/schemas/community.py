from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field


Severity = Literal["info", "low", "medium", "high", "critical"]


class NewsCreate(BaseModel):
    """Create news / threat-intel item."""
    title: str = Field(..., min_length=3, max_length=200)
    summary: Optional[str] = Field(None, max_length=1000)
    body: Optional[str] = Field(None)
    category: Optional[str] = Field(None, max_length=100)
    severity: Severity = Field("info")
    source_url: Optional[str] = Field(None, max_length=2048)
    image_url: Optional[str] = Field(None, max_length=2048)


class NewsUpdate(BaseModel):
    """Partial news update."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    summary: Optional[str] = Field(None, max_length=1000)
    body: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    severity: Optional[Severity] = None
    source_url: Optional[str] = Field(None, max_length=2048)
    image_url: Optional[str] = Field(None, max_length=2048)


class NewsRead(BaseModel):
    """News read model with the author's display name."""
    id: UUID
    title: str
    summary: Optional[str] = None
    body: Optional[str] = None
    category: Optional[str] = None
    severity: Severity = "info"
    source_url: Optional[str] = None
    image_url: Optional[str] = None
    author_id: Optional[UUID] = None
    author_name: str = "Unknown"
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class QuestionCreate(BaseModel):
    """Learner question."""
    question: str = Field(..., min_length=5, max_length=2000)
    content_id: Optional[UUID] = None


class AnswerUpdate(BaseModel):
    """Administrator answer (create or edit)."""
    answer: str = Field(..., min_length=1, max_length=5000)


class QAndARead(BaseModel):
    """Q&A read model with asker and answering admin names."""
    id: UUID
    user_id: UUID
    user_name: str = "Unknown"
    content_id: Optional[UUID] = None
    question: str
    answer: Optional[str] = None
    answered_by: Optional[UUID] = None
    answered_by_name: Optional[str] = None
    answered_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True
