from __future__ import annotations

from typing import Optional

from sqlalchemy import Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from alleye.db.base import Base, UUIDPkMixin, TimestampMixin


class Organization(UUIDPkMixin, TimestampMixin, Base):
    """Customer organization that learners belong to and content is assigned to."""
    __tablename__ = "organizations"
    __table_args__ = (
        UniqueConstraint("name", name="uq_organizations_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    domain: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    theme_color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # #RRGGBB
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    powerbi_report_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
