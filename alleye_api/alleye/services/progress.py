"""
Learner progress, quiz grading and gamification.

The pure helpers at the top operate on plain dicts so they can be reused by
analytics and exercised without a database.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

from alleye.core.errors import ValidationFailedError
from alleye.db.models import AnalyticsRecord, Content, Profile
from alleye.repositories.analytics import AnalyticsRepository
from alleye.repositories.profiles import ProfileRepository
from alleye.schemas.content import QUIZ_TYPES
from alleye.schemas.profile import ProfileRead
from alleye.schemas.progress import (
    ProgressEntry,
    ProgressUpdateResult,
    QuestionReview,
    QuizResult,
    QuizSubmission,
)
from alleye.services.base import BaseService, round_half_up
from alleye.services.catalog import CatalogService
from alleye.services.realtime import publish_safely, serialize_row

logger = logging.getLogger(__name__)

COURSE_CONQUEROR = "Course Conqueror"
STATUS_IN_PROGRESS = "in-progress"
STATUS_COMPLETED = "completed"


@dataclass
class CompletionOutcome:
    progress: Dict[str, Any]
    entry: Dict[str, Any]
    first_completion: bool
    points: int
    badges: List[str]
    points_awarded: int = 0
    badges_granted: List[str] = field(default_factory=list)


@dataclass
class QuizGrade:
    score: int
    correct_count: int
    total: int
    passed: bool
    review: List[QuestionReview]


def _now() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def progress_content_ids(progress: Dict[str, Any]) -> List[UUID]:
    """Content ids referenced by a progress map; malformed keys are skipped."""
    ids: List[UUID] = []
    for key in progress or {}:
        try:
            ids.append(UUID(str(key)))
        except ValueError:
            continue
    return ids


def completed_count(progress: Dict[str, Any]) -> int:
    return sum(
        1 for e in (progress or {}).values()
        if isinstance(e, dict) and e.get("status") == STATUS_COMPLETED
    )


# PUBLIC_INTERFACE
def mark_started(progress: Dict[str, Any], content_id: UUID | str, now: Optional[datetime] = None):
    """
    Return (new_progress, entry). Completed entries are never downgraded.
    """
    key = str(content_id)
    updated = dict(progress or {})
    current = updated.get(key)
    if isinstance(current, dict) and current.get("status") == STATUS_COMPLETED:
        return updated, current
    entry = {"status": STATUS_IN_PROGRESS, "updated_at": (now or _now()).isoformat()}
    updated[key] = entry
    return updated, entry


# PUBLIC_INTERFACE
def apply_completion(
    progress: Dict[str, Any],
    points: int,
    badges: Sequence[str],
    content_id: UUID | str,
    score: Optional[int] = None,
    *,
    points_per_completion: int = 10,
    badge_threshold: int = 5,
    now: Optional[datetime] = None,
) -> CompletionOutcome:
    """
    Mark an item completed and award points/badges.

    Points are granted only the first time an item is completed. A new score
    replaces the stored one; without a score the previous score is kept.
    The Course Conqueror badge is granted once the completed count reaches
    the threshold.
    """
    key = str(content_id)
    updated = dict(progress or {})
    previous = updated.get(key) if isinstance(updated.get(key), dict) else {}
    first = previous.get("status") != STATUS_COMPLETED

    entry: Dict[str, Any] = {"status": STATUS_COMPLETED, "updated_at": (now or _now()).isoformat()}
    if score is not None:
        entry["score"] = int(score)
    elif previous.get("score") is not None:
        entry["score"] = previous["score"]
    updated[key] = entry

    new_badges = list(badges or [])
    outcome = CompletionOutcome(
        progress=updated,
        entry=entry,
        first_completion=first,
        points=int(points or 0),
        badges=new_badges,
    )
    if first:
        outcome.points_awarded = points_per_completion
        outcome.points += points_per_completion
        if completed_count(updated) >= badge_threshold and COURSE_CONQUEROR not in new_badges:
            new_badges.append(COURSE_CONQUEROR)
            outcome.badges_granted.append(COURSE_CONQUEROR)
    return outcome


# PUBLIC_INTERFACE
def score_quiz(questions: Sequence[Dict[str, Any]], answers: Sequence[int], passing_score: int) -> QuizGrade:
    """
    Grade answers against the stored answer key.

    score = correct / total * 100 rounded half up; passed = score >= passing_score.
    Raises ValidationFailedError when the answer count does not match.
    """
    total = len(questions)
    if total == 0:
        raise ValidationFailedError("This content has no quiz questions")
    if len(answers) != total:
        raise ValidationFailedError(
            f"Expected {total} answers, got {len(answers)}",
            {"expected": total, "received": len(answers)},
        )
    review: List[QuestionReview] = []
    correct = 0
    for q, selected in zip(questions, answers):
        expected = int(q.get("correct_answer", -1))
        ok = int(selected) == expected
        correct += int(ok)
        review.append(
            QuestionReview(
                question_id=q.get("id"),
                question=q.get("question", ""),
                selected=int(selected),
                correct=expected,
                is_correct=ok,
            )
        )
    score = round_half_up(correct * 100, total)
    return QuizGrade(
        score=score,
        correct_count=correct,
        total=total,
        passed=score >= passing_score,
        review=review,
    )


class ProgressService(BaseService):
    """
    Start/complete content and grade quizzes for the current profile.

    Each operation writes its rows in one transaction and publishes the
    changes only after that commit.
    """

    def __init__(self, session, settings=None) -> None:
        super().__init__(session, settings)
        self.catalog = CatalogService(session, self.settings)
        self.profiles = ProfileRepository(session)
        self.analytics = AnalyticsRepository(session)

    async def _stage_record(self, profile: Profile, event: str, **values) -> AnalyticsRecord:
        return await self.analytics.record(
            user_id=profile.id,
            organization_id=profile.organization_id,
            event=event,
            commit=False,
            **values,
        )

    async def _stage_completion(
        self,
        profile: Profile,
        content: Content,
        score: Optional[int],
        duration_sec: Optional[int],
    ):
        outcome = apply_completion(
            profile.progress,
            profile.points,
            profile.badges,
            content.id,
            score,
            points_per_completion=self.settings.POINTS_PER_COMPLETION,
            badge_threshold=self.settings.COURSE_CONQUEROR_THRESHOLD,
        )
        profile = await self.profiles.assign(
            profile,
            {"progress": outcome.progress, "points": outcome.points, "badges": outcome.badges},
        )
        record = await self._stage_record(
            profile,
            "completed",
            content_id=content.id,
            score=outcome.entry.get("score"),
            duration_sec=duration_sec if duration_sec is not None else content.duration_sec,
        )
        return profile, outcome, record

    async def _publish_completion(
        self, profile: Profile, old: Dict[str, Any], outcome: CompletionOutcome, record: AnalyticsRecord
    ) -> None:
        await publish_safely("profiles", "UPDATE", new=profile, old=old)
        await publish_safely("analytics", "INSERT", new=record)
        if outcome.badges_granted:
            logger.info("Profile %s earned badges %s", profile.id, outcome.badges_granted)

    # PUBLIC_INTERFACE
    async def start(self, profile: Profile, content_id: UUID) -> ProgressUpdateResult:
        """Mark content in-progress (never downgrading) and record a launched statement."""
        content = await self.catalog.get_content_for(profile, content_id)
        old = serialize_row(profile)
        progress, entry = mark_started(profile.progress, content.id)
        changed = progress != (profile.progress or {})
        async with self.transaction():
            if changed:
                profile = await self.profiles.assign(profile, {"progress": progress})
            record = await self._stage_record(profile, "launched", content_id=content.id)
        if changed:
            await publish_safely("profiles", "UPDATE", new=profile, old=old)
        await publish_safely("analytics", "INSERT", new=record)
        return ProgressUpdateResult(
            content_id=content.id,
            entry=ProgressEntry(**entry),
            profile=ProfileRead.model_validate(profile),
        )

    # PUBLIC_INTERFACE
    async def complete(
        self,
        profile: Profile,
        content_id: UUID,
        score: Optional[int] = None,
        duration_sec: Optional[int] = None,
    ) -> ProgressUpdateResult:
        content = await self.catalog.get_content_for(profile, content_id)
        old = serialize_row(profile)
        async with self.transaction():
            profile, outcome, record = await self._stage_completion(profile, content, score, duration_sec)
        await self._publish_completion(profile, old, outcome, record)
        return ProgressUpdateResult(
            content_id=content.id,
            entry=ProgressEntry(**outcome.entry),
            points_awarded=outcome.points_awarded,
            badges_granted=outcome.badges_granted,
            profile=ProfileRead.model_validate(profile),
        )

    # PUBLIC_INTERFACE
    async def submit_quiz(self, profile: Profile, content_id: UUID, submission: QuizSubmission) -> QuizResult:
        """
        Grade a quiz, then store the training result, the quiz_submitted
        statement and the completion together.
        """
        content = await self.catalog.get_content_for(profile, content_id)
        if content.type not in QUIZ_TYPES:
            raise ValidationFailedError("This content has no quiz")
        passing = content.passing_score if content.passing_score is not None else 70
        grade = score_quiz(content.questions or [], submission.answers, passing)

        attempt = await self.analytics.count_attempts(profile.id, content.id) + 1
        old = serialize_row(profile)
        async with self.transaction():
            training = await self.analytics.record_training(
                user_id=profile.id,
                organization_id=profile.organization_id,
                content_id=content.id,
                score=grade.score,
                passed=grade.passed,
                time_spent_sec=submission.time_spent_sec,
                attempts=attempt,
                commit=False,
            )
            submitted = await self._stage_record(
                profile, "quiz_submitted", content_id=content.id, score=grade.score,
                duration_sec=submission.time_spent_sec,
            )
            profile, outcome, completed = await self._stage_completion(
                profile, content, grade.score, submission.time_spent_sec
            )

        await publish_safely("cyber_training_analytics", "INSERT", new=training)
        await publish_safely("analytics", "INSERT", new=submitted)
        await self._publish_completion(profile, old, outcome, completed)
        logger.info(
            "Quiz %s graded for %s: score=%d passed=%s attempt=%d",
            content.id, profile.id, grade.score, grade.passed, attempt,
        )
        return QuizResult(
            content_id=content.id,
            score=grade.score,
            correct_count=grade.correct_count,
            total=grade.total,
            passing_score=passing,
            passed=grade.passed,
            attempt=attempt,
            review=grade.review,
            points_awarded=outcome.points_awarded,
            profile=ProfileRead.model_validate(profile),
        )
