"""
Tests for progress bookkeeping, quiz grading and gamification.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from alleye.core.errors import ValidationFailedError
from alleye.core.settings import get_app_settings
from alleye.schemas.progress import QuizSubmission
from alleye.services.progress import (
    COURSE_CONQUEROR,
    ProgressService,
    apply_completion,
    mark_started,
    progress_content_ids,
    score_quiz,
)

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def completed(n):
    return {str(uuid4()): {"status": "completed", "updated_at": T0.isoformat()} for _ in range(n)}


class TestMarkStarted:
    def test_new_item_becomes_in_progress(self):
        cid = uuid4()
        progress, entry = mark_started({}, cid, now=T0)
        assert progress[str(cid)] == {"status": "in-progress", "updated_at": T0.isoformat()}
        assert entry["status"] == "in-progress"

    def test_completed_item_is_not_downgraded(self):
        cid = uuid4()
        original = {str(cid): {"status": "completed", "score": 90, "updated_at": "x"}}
        progress, entry = mark_started(original, cid, now=T0)
        assert entry == {"status": "completed", "score": 90, "updated_at": "x"}
        assert progress == original

    def test_input_map_is_not_mutated(self):
        original = {}
        mark_started(original, uuid4())
        assert original == {}


class TestApplyCompletion:
    def test_first_completion_awards_points(self):
        cid = uuid4()
        outcome = apply_completion({}, 0, [], cid, 80, points_per_completion=10, now=T0)
        assert outcome.first_completion is True
        assert outcome.points == 10
        assert outcome.points_awarded == 10
        assert outcome.progress[str(cid)] == {"status": "completed", "score": 80, "updated_at": T0.isoformat()}

    def test_repeat_completion_awards_nothing_and_keeps_score(self):
        cid = uuid4()
        start = {str(cid): {"status": "completed", "score": 60, "updated_at": "x"}}
        outcome = apply_completion(start, 10, [], cid, None, now=T0)
        assert outcome.first_completion is False
        assert outcome.points == 10
        assert outcome.points_awarded == 0
        assert outcome.entry["score"] == 60

    def test_new_score_replaces_previous(self):
        cid = uuid4()
        start = {str(cid): {"status": "completed", "score": 60}}
        outcome = apply_completion(start, 10, [], cid, 95)
        assert outcome.entry["score"] == 95

    def test_badge_granted_at_threshold(self):
        outcome = apply_completion(completed(4), 40, [], uuid4(), badge_threshold=5)
        assert outcome.badges == [COURSE_CONQUEROR]
        assert outcome.badges_granted == [COURSE_CONQUEROR]

    def test_badge_not_granted_below_threshold(self):
        outcome = apply_completion(completed(2), 20, [], uuid4(), badge_threshold=5)
        assert outcome.badges == []

    def test_badge_granted_once(self):
        outcome = apply_completion(completed(7), 70, [COURSE_CONQUEROR], uuid4(), badge_threshold=5)
        assert outcome.badges == [COURSE_CONQUEROR]
        assert outcome.badges_granted == []


class TestScoreQuiz:
    def test_score_rounds_percentage(self, quiz_questions):
        grade = score_quiz(quiz_questions, [0, 1, 3], passing_score=70)
        assert grade.correct_count == 2
        assert grade.score == 67
        assert grade.passed is False
        assert [r.is_correct for r in grade.review] == [True, True, False]
        assert grade.review[2].correct == 2

    def test_perfect_score_passes(self, quiz_questions):
        grade = score_quiz(quiz_questions, [0, 1, 2], passing_score=70)
        assert grade.score == 100
        assert grade.passed is True

    def test_pass_at_exact_threshold(self):
        questions = [{"question": str(i), "correct_answer": 0} for i in range(10)]
        grade = score_quiz(questions, [0] * 7 + [1] * 3, passing_score=70)
        assert grade.score == 70
        assert grade.passed is True

    def test_half_point_rounds_up(self):
        questions = [{"question": str(i), "correct_answer": 0} for i in range(8)]
        grade = score_quiz(questions, [0] + [1] * 7, passing_score=13)
        assert grade.score == 13
        assert grade.passed is True

    def test_answer_count_must_match(self, quiz_questions):
        with pytest.raises(ValidationFailedError) as exc:
            score_quiz(quiz_questions, [0, 1], passing_score=70)
        assert exc.value.details == {"expected": 3, "received": 2}


def test_progress_content_ids_skips_malformed_keys():
    cid = uuid4()
    assert progress_content_ids({str(cid): {}, "legacy-key": {}}) == [cid]


class TestProgressService:
    """ProgressService with repositories mocked out."""

    @pytest.fixture
    def service(self):
        session = MagicMock()
        session.commit = AsyncMock()
        session.rollback = AsyncMock()
        svc = ProgressService(session, get_app_settings())
        svc.catalog = MagicMock()
        svc.analytics = MagicMock()
        svc.analytics.record = AsyncMock(return_value=SimpleNamespace())
        svc.analytics.record_training = AsyncMock(return_value=SimpleNamespace())
        svc.analytics.count_attempts = AsyncMock(return_value=1)

        async def _assign(entity, values):
            for key, value in values.items():
                setattr(entity, key, value)
            return entity

        svc.profiles = MagicMock()
        svc.profiles.assign = AsyncMock(side_effect=_assign)
        return svc

    @pytest.mark.asyncio
    async def test_submit_quiz_grades_records_and_completes(self, service, make_profile, make_content, quiz_questions):
        profile = make_profile()
        content = make_content(type="quiz", questions=quiz_questions, passing_score=60)
        service.catalog.get_content_for = AsyncMock(return_value=content)

        with patch("alleye.services.progress.publish_safely", new=AsyncMock()) as publish, \
                patch("alleye.services.progress.serialize_row", return_value={}):
            result = await service.submit_quiz(profile, content.id, QuizSubmission(answers=[0, 1, 3], time_spent_sec=45))

        assert result.score == 67
        assert result.passed is True
        assert result.attempt == 2
        assert result.points_awarded == 10
        assert result.profile.points == 10
        assert profile.progress[str(content.id)]["score"] == 67

        training_kwargs = service.analytics.record_training.call_args.kwargs
        assert training_kwargs["attempts"] == 2
        assert training_kwargs["time_spent_sec"] == 45
        recorded = [c.kwargs["event"] for c in service.analytics.record.call_args_list]
        assert recorded == ["quiz_submitted", "completed"]
        assert all(c.kwargs["commit"] is False for c in service.analytics.record.call_args_list)
        assert service.analytics.record_training.call_args.kwargs["commit"] is False
        service.session.commit.assert_awaited_once()
        published_tables = [c.args[0] for c in publish.call_args_list]
        assert "cyber_training_analytics" in published_tables
        assert "profiles" in published_tables

    @pytest.mark.asyncio
    async def test_submit_quiz_on_video_rejected(self, service, make_profile, make_content):
        service.catalog.get_content_for = AsyncMock(return_value=make_content(type="video"))
        with pytest.raises(ValidationFailedError):
            await service.submit_quiz(make_profile(), uuid4(), QuizSubmission(answers=[0]))
        service.analytics.record_training.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_records_launch(self, service, make_profile, make_content):
        profile = make_profile()
        content = make_content()
        service.catalog.get_content_for = AsyncMock(return_value=content)
        with patch("alleye.services.progress.publish_safely", new=AsyncMock()), \
                patch("alleye.services.progress.serialize_row", return_value={}):
            result = await service.start(profile, content.id)
        assert result.entry.status == "in-progress"
        assert service.analytics.record.call_args.kwargs["event"] == "launched"

    @pytest.mark.asyncio
    async def test_submit_quiz_failure_rolls_back_and_publishes_nothing(
        self, service, make_profile, make_content, quiz_questions
    ):
        profile = make_profile()
        content = make_content(type="quiz", questions=quiz_questions)
        service.catalog.get_content_for = AsyncMock(return_value=content)
        service.analytics.record = AsyncMock(side_effect=RuntimeError("connection lost"))

        with patch("alleye.services.progress.publish_safely", new=AsyncMock()) as publish, \
                patch("alleye.services.progress.serialize_row", return_value={}):
            with pytest.raises(RuntimeError):
                await service.submit_quiz(profile, content.id, QuizSubmission(answers=[0, 1, 2]))

        service.session.rollback.assert_awaited_once()
        service.session.commit.assert_not_called()
        publish.assert_not_called()
        service.profiles.assign.assert_not_called()
        assert profile.points == 0
        assert profile.progress == {}

    @pytest.mark.asyncio
    async def test_complete_awards_points_and_records_completion(self, service, make_profile, make_content):
        profile = make_profile()
        content = make_content(duration_sec=240)
        service.catalog.get_content_for = AsyncMock(return_value=content)

        with patch("alleye.services.progress.publish_safely", new=AsyncMock()) as publish, \
                patch("alleye.services.progress.serialize_row", return_value={}):
            result = await service.complete(profile, content.id, score=85)

        assert result.points_awarded == 10
        assert result.entry.status == "completed"
        assert result.entry.score == 85
        assert result.profile.points == 10
        record_kwargs = service.analytics.record.call_args.kwargs
        assert record_kwargs["event"] == "completed"
        assert record_kwargs["score"] == 85
        assert record_kwargs["duration_sec"] == 240
        service.session.commit.assert_awaited_once()
        assert [c.args[:2] for c in publish.call_args_list] == [("profiles", "UPDATE"), ("analytics", "INSERT")]

    @pytest.mark.asyncio
    async def test_second_completion_awards_nothing(self, service, make_profile, make_content):
        content = make_content()
        profile = make_profile(points=10, progress={str(content.id): {"status": "completed", "score": 70}})
        service.catalog.get_content_for = AsyncMock(return_value=content)

        with patch("alleye.services.progress.publish_safely", new=AsyncMock()), \
                patch("alleye.services.progress.serialize_row", return_value={}):
            result = await service.complete(profile, content.id)

        assert result.points_awarded == 0
        assert result.profile.points == 10
        assert result.entry.score == 70
