from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator


def _dedupe_keep_order(ids: List[UUID]) -> List[UUID]:
    seen = set()
    out: List[UUID] = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


class PlaylistCreate(BaseModel):
    """Create playlist payload; content order is preserved."""
    title: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    content_ids: List[UUID] = Field(default_factory=list)
    assigned_org_ids: List[UUID] = Field(default_factory=list)

    @field_validator("content_ids")
    @classmethod
    def _dedupe_ids(cls, v: List[UUID]) -> List[UUID]:
        return _dedupe_keep_order(v)


class PlaylistUpdate(BaseModel):
    """Partial playlist update."""
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    content_ids: Optional[List[UUID]] = None
    assigned_org_ids: Optional[List[UUID]] = None

    @field_validator("content_ids")
    @classmethod
    def _dedupe_ids(cls, v: Optional[List[UUID]]) -> Optional[List[UUID]]:
        return None if v is None else _dedupe_keep_order(v)


class PlaylistRead(BaseModel):
    """Playlist read model."""
    id: UUID
    title: str
    description: Optional[str] = None
    content_ids: List[UUID] = Field(default_factory=list)
    assigned_org_ids: List[UUID] = Field(default_factory=list)
    creator_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssignmentCreate(BaseModel):
    """Assign a content item or a playlist (exactly one) to a user."""
    user_id: UUID
    content_id: Optional[UUID] = None
    playlist_id: Optional[UUID] = None
    due_date: Optional[date] = None

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "AssignmentCreate":
        if (self.content_id is None) == (self.playlist_id is None):
            raise ValueError("Provide exactly one of content_id or playlist_id")
        return self


class AssignmentRead(BaseModel):
    """Assignment read model."""
    id: UUID
    user_id: UUID
    content_id: Optional[UUID] = None
    playlist_id: Optional[UUID] = None
    due_date: Optional[date] = None
    assigned_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True
