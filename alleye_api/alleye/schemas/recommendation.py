from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Recommendation(BaseModel):
    """Suggested next content item."""
    id: UUID
    title: str
    category: Optional[str] = None
    difficulty: Optional[str] = None
    thumbnail_url: Optional[str] = None
    reason: str = Field("", description="Why the model suggested this item")
