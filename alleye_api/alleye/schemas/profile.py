from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .organization import OrganizationRead


Role = Literal["admin", "ciso", "lead", "user"]


class ProfileRead(BaseModel):
    """Profile read model."""
    id: UUID
    email: Optional[str] = None
    name: str
    role: Role
    company: Optional[str] = None
    team: Optional[str] = None
    avatar_url: Optional[str] = None
    organization_id: Optional[UUID] = None
    points: int = 0
    badges: List[str] = Field(default_factory=list)
    progress: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MeResponse(BaseModel):
    """Current profile with organization context."""
    profile: ProfileRead
    organization: Optional[OrganizationRead] = None
    organizations: List[OrganizationRead] = Field(
        default_factory=list, description="Every organization (admins only)"
    )


class ProfileSelfUpdate(BaseModel):
    """Fields a user may change on their own profile."""
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    avatar_url: Optional[str] = Field(None, max_length=2048)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name must not be blank")
        return v


class ProfileAdminUpdate(BaseModel):
    """Administrative profile update."""
    role: Optional[Role] = None
    organization_id: Optional[UUID] = None
    team: Optional[str] = Field(None, max_length=120)
    company: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None
