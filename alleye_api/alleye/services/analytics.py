"""
Learner and administrator analytics.

The module-level functions are pure: they take the progress map, catalog rows
and analytics records already loaded and return schema objects.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from uuid import UUID

from alleye.db.models import AnalyticsRecord, Content, CyberTrainingAnalyticsRecord, Organization, Profile
from alleye.repositories.analytics import AnalyticsRepository
from alleye.repositories.community import NewsRepository, QAndARepository
from alleye.repositories.content import ContentRepository, PlaylistRepository
from alleye.repositories.organizations import OrganizationRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.analytics import (
    ActivityPoint,
    AdminDashboard,
    CategoryProficiency,
    ContentCompletionRate,
    DashboardCounts,
    LearnerAnalytics,
    LearningFocusItem,
    OrganizationSummary,
    OverallStats,
    QuizResultRow,
)
from alleye.schemas.content import QUIZ_TYPES
from alleye.services.base import BaseService, round_half_up
from alleye.services.community import NewsService
from alleye.services.profiles import resolve_org_scope
from alleye.services.progress import progress_content_ids

logger = logging.getLogger(__name__)

ACTIVITY_WINDOW_DAYS = 30
MAX_CATEGORIES = 6
MAX_FOCUS_ITEMS = 10
DEFAULT_PASSING_SCORE = 70
UNCATEGORIZED = "Uncategorized"


def _completed(progress: Mapping[str, Any]):
    for key, entry in (progress or {}).items():
        if isinstance(entry, dict) and entry.get("status") == "completed":
            yield key, entry


def _percent(part: int, whole: int) -> int:
    return round_half_up(part * 100, whole) if whole else 0


# PUBLIC_INTERFACE
def overall_stats(progress: Mapping[str, Any], catalog: Mapping[str, Content]) -> OverallStats:
    """Completed count, average score (0 when none) and whole minutes of completed content."""
    completed = list(_completed(progress))
    scores = [int(e["score"]) for _, e in completed if e.get("score") is not None]
    seconds = sum(int(catalog[k].duration_sec or 0) for k, _ in completed if k in catalog)
    return OverallStats(
        completed_count=len(completed),
        average_score=round_half_up(sum(scores), len(scores)) if scores else 0,
        total_learning_minutes=seconds // 60,
    )


# PUBLIC_INTERFACE
def activity_series(
    records: Iterable[AnalyticsRecord],
    today: Optional[date] = None,
    days: int = ACTIVITY_WINDOW_DAYS,
) -> List[ActivityPoint]:
    """Launched/completed counts per UTC calendar day, ascending, every day of the window present."""
    today = today or datetime.now(timezone.utc).date()
    start = today - timedelta(days=days - 1)
    buckets: Dict[date, Dict[str, int]] = {
        start + timedelta(days=i): {"launched": 0, "completed": 0} for i in range(days)
    }
    for r in records:
        if r.event not in ("launched", "completed") or r.timestamp is None:
            continue
        ts = r.timestamp
        if ts.tzinfo is not None:
            ts = ts.astimezone(timezone.utc)
        day = ts.date()
        if day in buckets:
            buckets[day][r.event] += 1
    return [ActivityPoint(date=d, **counts) for d, counts in sorted(buckets.items())]


# PUBLIC_INTERFACE
def category_proficiency(progress: Mapping[str, Any], catalog: Mapping[str, Content]) -> List[CategoryProficiency]:
    """
    Average score per category over completed, scored quiz-type content.

    Highest averages first (ties by name); at most six categories.
    """
    scores: Dict[str, List[int]] = defaultdict(list)
    for key, entry in _completed(progress):
        item = catalog.get(key)
        if item is None or item.type not in QUIZ_TYPES or entry.get("score") is None:
            continue
        scores[item.category or UNCATEGORIZED].append(int(entry["score"]))
    rows = [
        CategoryProficiency(category=cat, average_score=round_half_up(sum(vals), len(vals)))
        for cat, vals in scores.items()
    ]
    rows.sort(key=lambda r: (-r.average_score, r.category))
    return rows[:MAX_CATEGORIES]


# PUBLIC_INTERFACE
def learning_focus(progress: Mapping[str, Any], catalog: Mapping[str, Content]) -> List[LearningFocusItem]:
    """
    In-progress items first, then completed ones, newest first within each group.

    value = score for scored completions, 100 for unscored completions, 0 in progress.
    """
    in_progress: List[tuple] = []
    done: List[tuple] = []
    for key, entry in (progress or {}).items():
        item = catalog.get(key)
        if item is None or not isinstance(entry, dict):
            continue
        status = entry.get("status")
        stamp = entry.get("updated_at") or ""
        if status == "in-progress":
            in_progress.append((stamp, LearningFocusItem(content_id=item.id, title=item.title, status=status, value=0)))
        elif status == "completed":
            score = entry.get("score")
            value = int(score) if score is not None else 100
            done.append((stamp, LearningFocusItem(content_id=item.id, title=item.title, status=status, value=value)))
    in_progress.sort(key=lambda t: t[0], reverse=True)
    done.sort(key=lambda t: t[0], reverse=True)
    return [row for _, row in in_progress + done][:MAX_FOCUS_ITEMS]


# PUBLIC_INTERFACE
def quiz_results(progress: Mapping[str, Any], catalog: Mapping[str, Content]) -> List[QuizResultRow]:
    rows: List[QuizResultRow] = []
    for key, entry in _completed(progress):
        item = catalog.get(key)
        if item is None or item.type not in QUIZ_TYPES or entry.get("score") is None:
            continue
        passing = item.passing_score if item.passing_score is not None else DEFAULT_PASSING_SCORE
        score = int(entry["score"])
        rows.append(
            QuizResultRow(content_id=item.id, title=item.title, score=score,
                          passing_score=passing, passed=score >= passing)
        )
    return rows


# PUBLIC_INTERFACE
def organization_summaries(
    organizations: Sequence[Organization],
    member_counts: Mapping[Optional[UUID], int],
    records: Iterable[AnalyticsRecord],
    training: Iterable[CyberTrainingAnalyticsRecord],
) -> List[OrganizationSummary]:
    """Members, completion statements, average quiz score and pass rate per organization."""
    completions: Dict[Optional[UUID], int] = defaultdict(int)
    for r in records:
        if r.event == "completed":
            completions[r.organization_id] += 1
    scores: Dict[Optional[UUID], List[int]] = defaultdict(list)
    passes: Dict[Optional[UUID], int] = defaultdict(int)
    for t in training:
        scores[t.organization_id].append(int(t.score))
        passes[t.organization_id] += int(bool(t.passed))

    out: List[OrganizationSummary] = []
    for org in organizations:
        vals = scores.get(org.id, [])
        out.append(
            OrganizationSummary(
                organization_id=org.id,
                organization_name=org.name,
                members=int(member_counts.get(org.id, 0)),
                completions=completions.get(org.id, 0),
                average_quiz_score=round_half_up(sum(vals), len(vals)) if vals else 0,
                pass_rate=_percent(passes.get(org.id, 0), len(vals)),
            )
        )
    return out


# PUBLIC_INTERFACE
def content_completion_rates(
    contents: Sequence[Content], records: Iterable[AnalyticsRecord]
) -> List[ContentCompletionRate]:
    """Distinct learners who completed an item over distinct learners who engaged with it."""
    launched: Dict[UUID, set] = defaultdict(set)
    completed: Dict[UUID, set] = defaultdict(set)
    for r in records:
        if r.content_id is None:
            continue
        if r.event == "launched":
            launched[r.content_id].add(r.user_id)
        elif r.event == "completed":
            completed[r.content_id].add(r.user_id)
    rows = []
    for c in contents:
        engaged = launched[c.id] | completed[c.id]
        rows.append(
            ContentCompletionRate(
                content_id=c.id,
                title=c.title,
                started=len(engaged),
                completed=len(completed[c.id]),
                completion_rate=_percent(len(completed[c.id]), len(engaged)),
            )
        )
    rows.sort(key=lambda r: (-r.completion_rate, r.title))
    return rows


class AnalyticsService(BaseService):
    """Loads the rows the pure computations need."""

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.records = AnalyticsRepository(session)
        self.content = ContentRepository(session)
        self.playlists = PlaylistRepository(session)
        self.organizations = OrganizationRepository(session)
        self.profiles = ProfileRepository(session)
        self.qanda = QAndARepository(session)
        self.news = NewsRepository(session)

    async def _catalog_for(self, profile: Profile) -> Dict[str, Content]:
        # Completed items stay countable even if they were later unassigned
        items = await self.content.list_by_ids(progress_content_ids(profile.progress))
        return {str(c.id): c for c in items}

    # PUBLIC_INTERFACE
    async def learner_analytics(self, profile: Profile, today: Optional[date] = None) -> LearnerAnalytics:
        catalog = await self._catalog_for(profile)
        today = today or datetime.now(timezone.utc).date()
        since = datetime.combine(today - timedelta(days=ACTIVITY_WINDOW_DAYS - 1), datetime.min.time(), timezone.utc)
        records = await self.records.list_records(user_id=profile.id, since=since, limit=5000)
        progress = profile.progress or {}
        return LearnerAnalytics(
            overall=overall_stats(progress, catalog),
            activity=activity_series(records, today=today),
            category_proficiency=category_proficiency(progress, catalog),
            learning_focus=learning_focus(progress, catalog),
            quiz_results=quiz_results(progress, catalog),
        )

    # PUBLIC_INTERFACE
    async def admin_dashboard(self) -> AdminDashboard:
        counts = DashboardCounts(
            users=await self.profiles.count_all(),
            content=await self.content.count_all(),
            playlists=await self.playlists.count_all(),
            organizations=await self.organizations.count_all(),
        )
        latest = await NewsService(self.session, self.settings).list(limit=3)
        return AdminDashboard(
            counts=counts,
            latest_news=latest,
            pending_questions=await self.qanda.count_pending(),
        )

    # PUBLIC_INTERFACE
    async def organization_summary(self, caller: Profile, organization_id: Optional[UUID] = None) -> List[OrganizationSummary]:
        """All organizations for admins; ciso/lead get their own organization only."""
        scope = resolve_org_scope(caller, organization_id)
        if scope is None:
            orgs = await self.organizations.list()
        else:
            org = await self.organizations.get(scope)
            orgs = [org] if org else []
        member_counts = await self.profiles.member_counts()
        records = await self.records.list_records(organization_id=scope, limit=100_000)
        training = await self.records.list_training(organization_id=scope, limit=100_000)
        return organization_summaries(orgs, member_counts, records, training)

    # PUBLIC_INTERFACE
    async def completion_rates(self, caller: Profile) -> List[ContentCompletionRate]:
        scope = resolve_org_scope(caller)
        contents = await self.content.list(limit=1000)
        records = await self.records.list_records(organization_id=scope, limit=100_000)
        return content_completion_rates(contents, records)

    # PUBLIC_INTERFACE
    async def recent_records(self, caller: Profile, limit: int = 50) -> List[AnalyticsRecord]:
        scope = resolve_org_scope(caller)
        return await self.records.list_records(organization_id=scope, limit=limit)

    # PUBLIC_INTERFACE
    async def recent_training(self, caller: Profile, limit: int = 50) -> List[CyberTrainingAnalyticsRecord]:
        scope = resolve_org_scope(caller)
        return await self.records.list_training(organization_id=scope, limit=limit)
