from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class OrganizationCreate(BaseModel):
    """Create organization payload."""
    name: str = Field(..., min_length=2, max_length=200)
    domain: Optional[str] = Field(None, max_length=255)
    theme_color: Optional[str] = Field(None, pattern=_HEX_COLOR, description="#RRGGBB")
    logo_url: Optional[str] = Field(None, max_length=2048)
    powerbi_report_url: Optional[str] = Field(None, max_length=2048)


class OrganizationUpdate(BaseModel):
    """Partial organization update."""
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    domain: Optional[str] = Field(None, max_length=255)
    theme_color: Optional[str] = Field(None, pattern=_HEX_COLOR)
    logo_url: Optional[str] = Field(None, max_length=2048)
    powerbi_report_url: Optional[str] = Field(None, max_length=2048)


class OrganizationRead(BaseModel):
    """Organization read model."""
    id: UUID
    name: str
    domain: Optional[str] = None
    theme_color: Optional[str] = None
    logo_url: Optional[str] = None
    powerbi_report_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MemberAssignment(BaseModel):
    """Move a user into an organization."""
    user_id: UUID
