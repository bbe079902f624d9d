"""Learning platform schema.

- organizations
- profiles
- content
- playlists
- user_assignments
- news
- qanda
- analytics
- cyber_training_analytics
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "4c1d2e8f0a17"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _uuid_pk() -> sa.Column:
    return sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _uuid_array(name: str) -> sa.Column:
    return sa.Column(name, postgresql.ARRAY(sa.UUID()), server_default=sa.text("'{}'"), nullable=False)


def _text_array(name: str) -> sa.Column:
    return sa.Column(name, postgresql.ARRAY(sa.Text()), server_default=sa.text("'{}'"), nullable=False)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    op.create_table(
        "organizations",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("domain", sa.Text(), nullable=True),
        sa.Column("theme_color", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("powerbi_report_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_organizations_name"),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.UUID(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), server_default="user", nullable=False),
        sa.Column("company", sa.Text(), nullable=True),
        sa.Column("team", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("points", sa.Integer(), server_default="0", nullable=False),
        sa.Column("badges", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("progress", postgresql.JSONB(), server_default=sa.text("'{}'::jsonb"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.CheckConstraint("role IN ('admin', 'ciso', 'lead', 'user')", name="ck_profiles_role_valid"),
        sa.CheckConstraint("points >= 0", name="ck_profiles_points_non_negative"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])
    op.create_index("ix_profiles_organization_id", "profiles", ["organization_id"])

    op.create_table(
        "content",
        _uuid_pk(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("content_url", sa.Text(), nullable=True),
        sa.Column("embed_url", sa.Text(), nullable=True),
        sa.Column("html_content", sa.Text(), nullable=True),
        sa.Column("hls_path", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("difficulty", sa.Text(), server_default="Intro", nullable=False),
        sa.Column("duration_sec", sa.Integer(), server_default="0", nullable=False),
        sa.Column("passing_score", sa.Integer(), server_default="70", nullable=False),
        _text_array("tags"),
        _text_array("risk_tags"),
        _text_array("compliance"),
        sa.Column("visibility", sa.Text(), server_default="org-wide", nullable=False),
        _uuid_array("assigned_org_ids"),
        sa.Column("questions", postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("creator_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["creator_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "type IN ('video', 'video_quiz', 'quiz', 'article', 'embed', 'cyber_security_training')",
            name="ck_content_type_valid",
        ),
        sa.CheckConstraint("passing_score BETWEEN 0 AND 100", name="ck_content_passing_score_range"),
        sa.CheckConstraint("duration_sec >= 0", name="ck_content_duration_non_negative"),
    )
    op.create_index("ix_content_type", "content", ["type"])
    op.create_index("ix_content_category", "content", ["category"])

    op.create_table(
        "playlists",
        _uuid_pk(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _uuid_array("content_ids"),
        _uuid_array("assigned_org_ids"),
        sa.Column("creator_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["creator_id"], ["profiles.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "user_assignments",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("content_id", sa.UUID(), nullable=True),
        sa.Column("playlist_id", sa.UUID(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("assigned_by", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["content_id"], ["content.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["playlist_id"], ["playlists.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["assigned_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "(content_id IS NULL) <> (playlist_id IS NULL)",
            name="ck_user_assignments_exactly_one_target",
        ),
    )
    op.create_index("ix_user_assignments_user_id", "user_assignments", ["user_id"])

    op.create_table(
        "news",
        _uuid_pk(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column("severity", sa.Text(), server_default="info", nullable=False),
        sa.Column("source_url", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("author_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["author_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "severity IN ('info', 'low', 'medium', 'high', 'critical')",
            name="ck_news_severity_valid",
        ),
    )

    op.create_table(
        "qanda",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("content_id", sa.UUID(), nullable=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("answer", sa.Text(), nullable=True),
        sa.Column("answered_by", sa.UUID(), nullable=True),
        sa.Column("answered_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["content_id"], ["content.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["answered_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_qanda_user_id", "qanda", ["user_id"])

    op.create_table(
        "analytics",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("content_id", sa.UUID(), nullable=True),
        sa.Column("news_id", sa.UUID(), nullable=True),
        sa.Column("event", sa.Text(), nullable=False),
        sa.Column("duration_sec", sa.Integer(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["content_id"], ["content.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["news_id"], ["news.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "event IN ('launched', 'completed', 'read', 'quiz_submitted')",
            name="ck_analytics_event_valid",
        ),
    )
    op.create_index("ix_analytics_user_id", "analytics", ["user_id"])
    op.create_index("ix_analytics_organization_id", "analytics", ["organization_id"])
    op.create_index("ix_analytics_timestamp", "analytics", ["timestamp"])

    op.create_table(
        "cyber_training_analytics",
        _uuid_pk(),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("organization_id", sa.UUID(), nullable=True),
        sa.Column("content_id", sa.UUID(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column("time_spent_sec", sa.Integer(), nullable=True),
        sa.Column("attempts", sa.Integer(), server_default="1", nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["content_id"], ["content.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_cyber_training_analytics_user_id", "cyber_training_analytics", ["user_id"])
    op.create_index(
        "ix_cyber_training_analytics_organization_id", "cyber_training_analytics", ["organization_id"]
    )


def downgrade() -> None:
    # Drop tables in reverse dependency order
    op.drop_table("cyber_training_analytics")
    op.drop_table("analytics")
    op.drop_table("qanda")
    op.drop_table("news")
    op.drop_table("user_assignments")
    op.drop_table("playlists")
    op.drop_table("content")
    op.drop_table("profiles")
    op.drop_table("organizations")
