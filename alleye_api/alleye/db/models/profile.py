from __future__ import annotations

from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from alleye.db.base import Base, TimestampMixin


ROLES = ("admin", "ciso", "lead", "user")


class Profile(TimestampMixin, Base):
    """
    Application profile of an authenticated user.

    The primary key is the auth provider's user id, so it is never generated here.
    """
    __tablename__ = "profiles"
    __table_args__ = (
        CheckConstraint("role IN ('admin', 'ciso', 'lead', 'user')", name="role_valid"),
        CheckConstraint("points >= 0", name="points_non_negative"),
    )

    id: Mapped[PyUUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(Text, nullable=False, default="user", server_default="user")
    company: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    team: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    organization_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    badges: Mapped[list] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
    # {content_id: {"status": "in-progress"|"completed", "score": int, "updated_at": iso}}
    progress: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict, server_default="{}")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
