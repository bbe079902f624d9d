from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID as PyUUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import ARRAY, UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from alleye.db.base import Base, UUIDPkMixin, TimestampMixin


CONTENT_TYPES = ("video", "video_quiz", "quiz", "article", "embed", "cyber_security_training")
QUIZ_CONTENT_TYPES = ("quiz", "video_quiz", "cyber_security_training")
DIFFICULTIES = ("Intro", "Beginner", "Intermediate", "Advanced")


class Content(UUIDPkMixin, TimestampMixin, Base):
    """Learning content item: video, quiz, article, embed or training module."""
    __tablename__ = "content"
    __table_args__ = (
        CheckConstraint(
            "type IN ('video', 'video_quiz', 'quiz', 'article', 'embed', 'cyber_security_training')",
            name="type_valid",
        ),
        CheckConstraint("passing_score BETWEEN 0 AND 100", name="passing_score_range"),
        CheckConstraint("duration_sec >= 0", name="duration_non_negative"),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    content_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    embed_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    html_content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hls_path: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # storage object path
    thumbnail_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    difficulty: Mapped[str] = mapped_column(Text, nullable=False, default="Intro", server_default="Intro")
    duration_sec: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    passing_score: Mapped[int] = mapped_column(Integer, nullable=False, default=70, server_default="70")
    tags: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    risk_tags: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    compliance: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    visibility: Mapped[str] = mapped_column(Text, nullable=False, default="org-wide", server_default="org-wide")
    # Empty array means visible to every organization
    assigned_org_ids: Mapped[list] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=list, server_default="{}"
    )
    # [{"id", "question", "options": [4], "correct_answer": int}]
    questions: Mapped[list] = mapped_column(JSONB, nullable=False, default=list, server_default="[]")
    creator_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )


class Playlist(UUIDPkMixin, TimestampMixin, Base):
    """Ordered collection of content items."""
    __tablename__ = "playlists"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_ids: Mapped[list] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=list, server_default="{}"
    )
    assigned_org_ids: Mapped[list] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=list, server_default="{}"
    )
    creator_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )


class UserAssignment(UUIDPkMixin, TimestampMixin, Base):
    """Direct assignment of a content item or a playlist to a user."""
    __tablename__ = "user_assignments"
    __table_args__ = (
        CheckConstraint(
            "(content_id IS NULL) <> (playlist_id IS NULL)", name="exactly_one_target"
        ),
    )

    user_id: Mapped[PyUUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("content.id", ondelete="CASCADE"), nullable=True
    )
    playlist_id: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("playlists.id", ondelete="CASCADE"), nullable=True
    )
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    assigned_by: Mapped[Optional[PyUUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
