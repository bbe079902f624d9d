from __future__ import annotations

import logging
from typing import Dict, List, Optional
from uuid import UUID

import pandas as pd

from alleye.db.models import Profile
from alleye.repositories.analytics import AnalyticsRepository
from alleye.repositories.content import ContentRepository
from alleye.repositories.organizations import OrganizationRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.services.analytics import AnalyticsService
from alleye.services.base import BaseService
from alleye.services.profiles import resolve_org_scope
from alleye.services.progress import progress_content_ids

logger = logging.getLogger(__name__)

LEARNER_PROGRESS_COLUMNS = [
    "user_name", "email", "organization", "team", "content_title", "content_type",
    "category", "status", "score", "updated_at",
]
TRAINING_RESULT_COLUMNS = [
    "user_name", "email", "organization", "content_title", "score", "passed",
    "time_spent_sec", "attempts", "completed_at",
]
ORGANIZATION_SUMMARY_COLUMNS = [
    "organization", "members", "completions", "average_quiz_score", "pass_rate",
]


class ReportService(BaseService):
    """Builds tabular report data as pandas DataFrames."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.profiles = ProfileRepository(session)
        self.content = ContentRepository(session)
        self.organizations = OrganizationRepository(session)
        self.records = AnalyticsRepository(session)

    async def _org_names(self) -> Dict[UUID, str]:
        return {o.id: o.name for o in await self.organizations.list()}

    # PUBLIC_INTERFACE
    async def learner_progress(self, caller: Profile, organization_id: Optional[UUID] = None) -> pd.DataFrame:
        """One row per user x content item present in the user's progress map."""
        scope = resolve_org_scope(caller, organization_id)
        profiles = await self.profiles.list(organization_id=scope, limit=100_000)
        content_ids = {cid for p in profiles for cid in progress_content_ids(p.progress)}
        catalog = {str(c.id): c for c in await self.content.list_by_ids(list(content_ids))}
        org_names = await self._org_names()

        rows: List[dict] = []
        for p in profiles:
            for key, entry in (p.progress or {}).items():
                item = catalog.get(key)
                if item is None or not isinstance(entry, dict):
                    continue
                rows.append(
                    {
                        "user_name": p.name,
                        "email": p.email,
                        "organization": org_names.get(p.organization_id, ""),
                        "team": p.team,
                        "content_title": item.title,
                        "content_type": item.type,
                        "category": item.category,
                        "status": entry.get("status"),
                        "score": entry.get("score"),
                        "updated_at": entry.get("updated_at"),
                    }
                )
        df = pd.DataFrame(rows, columns=LEARNER_PROGRESS_COLUMNS)
        if not df.empty:
            df = df.sort_values(["user_name", "content_title"], kind="stable").reset_index(drop=True)
        return df

    # PUBLIC_INTERFACE
    async def training_results(self, caller: Profile, organization_id: Optional[UUID] = None) -> pd.DataFrame:
        scope = resolve_org_scope(caller, organization_id)
        training = await self.records.list_training(organization_id=scope, limit=100_000)
        profiles = {p.id: p for p in await self.profiles.get_many(list({t.user_id for t in training}))}
        titles = {c.id: c.title for c in await self.content.list_by_ids(list({t.content_id for t in training}))}
        org_names = await self._org_names()

        rows = []
        for t in training:
            p = profiles.get(t.user_id)
            rows.append(
                {
                    "user_name": p.name if p else "Unknown",
                    "email": p.email if p else None,
                    "organization": org_names.get(t.organization_id, ""),
                    "content_title": titles.get(t.content_id, ""),
                    "score": t.score,
                    "passed": t.passed,
                    "time_spent_sec": t.time_spent_sec,
                    "attempts": t.attempts,
                    "completed_at": t.completed_at.isoformat() if t.completed_at else None,
                }
            )
        return pd.DataFrame(rows, columns=TRAINING_RESULT_COLUMNS)

    # PUBLIC_INTERFACE
    async def organization_summary(self, caller: Profile, organization_id: Optional[UUID] = None) -> pd.DataFrame:
        summaries = await AnalyticsService(self.session, self.settings).organization_summary(caller, organization_id)
        rows = [
            {
                "organization": s.organization_name,
                "members": s.members,
                "completions": s.completions,
                "average_quiz_score": s.average_quiz_score,
                "pass_rate": s.pass_rate,
            }
            for s in summaries
        ]
        return pd.DataFrame(rows, columns=ORGANIZATION_SUMMARY_COLUMNS)
