from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select

from alleye.db.models import AnalyticsRecord, CyberTrainingAnalyticsRecord
from .base import BaseRepository


class AnalyticsRepository(BaseRepository):
    """Repository for activity statements and training results."""

    async def record(self, *, commit: bool = True, **values) -> AnalyticsRecord:
        entity = AnalyticsRecord(**values)
        return await (self.save(entity) if commit else self.stage(entity))

    async def record_training(self, *, commit: bool = True, **values) -> CyberTrainingAnalyticsRecord:
        entity = CyberTrainingAnalyticsRecord(**values)
        return await (self.save(entity) if commit else self.stage(entity))

    async def list_records(
        self,
        *,
        user_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        since: Optional[datetime] = None,
        limit: int = 500,
    ) -> List[AnalyticsRecord]:
        stmt = select(AnalyticsRecord)
        if user_id is not None:
            stmt = stmt.where(AnalyticsRecord.user_id == user_id)
        if organization_id is not None:
            stmt = stmt.where(AnalyticsRecord.organization_id == organization_id)
        if since is not None:
            stmt = stmt.where(AnalyticsRecord.timestamp >= since)
        stmt = stmt.order_by(AnalyticsRecord.timestamp.desc()).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def list_training(
        self,
        *,
        user_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        limit: int = 1000,
    ) -> List[CyberTrainingAnalyticsRecord]:
        stmt = select(CyberTrainingAnalyticsRecord)
        if user_id is not None:
            stmt = stmt.where(CyberTrainingAnalyticsRecord.user_id == user_id)
        if organization_id is not None:
            stmt = stmt.where(CyberTrainingAnalyticsRecord.organization_id == organization_id)
        stmt = stmt.order_by(CyberTrainingAnalyticsRecord.completed_at.desc()).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def count_attempts(self, user_id: UUID, content_id: UUID) -> int:
        stmt = select(func.count(CyberTrainingAnalyticsRecord.id)).where(
            CyberTrainingAnalyticsRecord.user_id == user_id,
            CyberTrainingAnalyticsRecord.content_id == content_id,
        )
        return await self.count(stmt)
