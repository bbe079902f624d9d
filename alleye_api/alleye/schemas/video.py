from __future__ import annotations

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .content import LearnerContentRead


class VideoUrlRequest(BaseModel):
    """Request a playable URL for a content item."""
    content_id: UUID


class VideoUrlResponse(BaseModel):
    """Content plus a time-limited URL when the video lives in object storage."""
    content: LearnerContentRead
    signed_url: Optional[str] = Field(None, description="Signed storage URL, or null for direct links")
    expires_in: Optional[int] = Field(None, description="Seconds until signed_url expires")
