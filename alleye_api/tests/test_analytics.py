"""
Tests for the pure learner/admin analytics computations.
"""

from datetime import date, datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

from alleye.services.analytics import (
    activity_series,
    category_proficiency,
    content_completion_rates,
    learning_focus,
    organization_summaries,
    overall_stats,
    quiz_results,
)
from alleye.services.base import round_half_up

TODAY = date(2025, 3, 14)


def content(**kw):
    values = dict(id=uuid4(), title="Item", type="video", category="General", duration_sec=0, passing_score=70)
    values.update(kw)
    return SimpleNamespace(**values)


def record(event, when, user_id=None, content_id=None, organization_id=None):
    return SimpleNamespace(
        event=event, timestamp=when, user_id=user_id, content_id=content_id, organization_id=organization_id
    )


class TestOverallStats:
    def test_counts_scores_and_minutes(self):
        a = content(duration_sec=600)
        b = content(duration_sec=150)
        c = content(duration_sec=900)
        catalog = {str(x.id): x for x in (a, b, c)}
        progress = {
            str(a.id): {"status": "completed", "score": 80},
            str(b.id): {"status": "completed", "score": 91},
            str(c.id): {"status": "in-progress"},
        }
        stats = overall_stats(progress, catalog)
        assert stats.completed_count == 2
        assert stats.average_score == 86
        assert stats.total_learning_minutes == 12

    def test_no_scores_averages_zero(self):
        assert overall_stats({}, {}).average_score == 0


class TestActivitySeries:
    def test_thirty_days_zero_filled_ascending(self):
        series = activity_series([], today=TODAY)
        assert len(series) == 30
        assert series[0].date == date(2025, 2, 13)
        assert series[-1].date == TODAY
        assert all(p.launched == 0 and p.completed == 0 for p in series)

    def test_counts_by_utc_day(self):
        records = [
            record("launched", datetime(2025, 3, 14, 8, tzinfo=timezone.utc)),
            record("launched", datetime(2025, 3, 14, 9, tzinfo=timezone.utc)),
            record("completed", datetime(2025, 3, 13, 23, 30, tzinfo=timezone.utc)),
            record("read", datetime(2025, 3, 14, 10, tzinfo=timezone.utc)),
            record("launched", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ]
        series = {p.date: p for p in activity_series(records, today=TODAY)}
        assert series[TODAY].launched == 2
        assert series[TODAY].completed == 0
        assert series[date(2025, 3, 13)].completed == 1


class TestCategoryProficiency:
    def test_quiz_types_only_sorted_and_capped(self):
        items = [content(type="quiz", category=f"Cat{i}") for i in range(8)]
        video = content(type="video", category="Video")
        catalog = {str(x.id): x for x in items + [video]}
        progress = {str(x.id): {"status": "completed", "score": 50 + i} for i, x in enumerate(items)}
        progress[str(video.id)] = {"status": "completed", "score": 100}
        rows = category_proficiency(progress, catalog)
        assert len(rows) == 6
        assert rows[0].category == "Cat7"
        assert rows[0].average_score == 57
        assert "Video" not in [r.category for r in rows]

    def test_unscored_completions_ignored(self):
        q = content(type="video_quiz", category="Passwords")
        assert category_proficiency({str(q.id): {"status": "completed"}}, {str(q.id): q}) == []


class TestLearningFocus:
    def test_in_progress_first_and_values(self):
        done_scored = content(title="Scored")
        done_plain = content(title="Plain")
        doing = content(title="Doing")
        catalog = {str(x.id): x for x in (done_scored, done_plain, doing)}
        progress = {
            str(done_scored.id): {"status": "completed", "score": 75, "updated_at": "2025-03-10T00:00:00+00:00"},
            str(done_plain.id): {"status": "completed", "updated_at": "2025-03-12T00:00:00+00:00"},
            str(doing.id): {"status": "in-progress", "updated_at": "2025-03-01T00:00:00+00:00"},
        }
        rows = learning_focus(progress, catalog)
        assert [r.title for r in rows] == ["Doing", "Plain", "Scored"]
        assert [r.value for r in rows] == [0, 100, 75]

    def test_capped_at_ten(self):
        items = [content() for _ in range(12)]
        catalog = {str(x.id): x for x in items}
        progress = {str(x.id): {"status": "in-progress"} for x in items}
        assert len(learning_focus(progress, catalog)) == 10


class TestQuizResults:
    def test_passing_score_defaults_to_seventy(self):
        q = content(type="quiz", passing_score=None, title="Quiz")
        rows = quiz_results({str(q.id): {"status": "completed", "score": 70}}, {str(q.id): q})
        assert rows[0].passing_score == 70
        assert rows[0].passed is True


class TestAdminAggregates:
    def test_organization_summary(self):
        org = SimpleNamespace(id=uuid4(), name="Acme")
        records = [record("completed", None, organization_id=org.id)] * 3 + [record("launched", None, organization_id=org.id)]
        training = [
            SimpleNamespace(organization_id=org.id, score=90, passed=True),
            SimpleNamespace(organization_id=org.id, score=40, passed=False),
        ]
        [summary] = organization_summaries([org], {org.id: 7}, records, training)
        assert summary.members == 7
        assert summary.completions == 3
        assert summary.average_quiz_score == 65
        assert summary.pass_rate == 50

    def test_completion_rate_uses_distinct_learners(self):
        c = content(title="Course")
        u1, u2, u3 = uuid4(), uuid4(), uuid4()
        records = [
            record("launched", None, user_id=u1, content_id=c.id),
            record("launched", None, user_id=u1, content_id=c.id),
            record("completed", None, user_id=u1, content_id=c.id),
            record("launched", None, user_id=u2, content_id=c.id),
            record("completed", None, user_id=u3, content_id=c.id),
        ]
        [row] = content_completion_rates([c], records)
        assert row.started == 3
        assert row.completed == 2
        assert row.completion_rate == 67

    def test_untouched_content_has_zero_rate(self):
        [row] = content_completion_rates([content()], [])
        assert row.started == 0
        assert row.completion_rate == 0


class TestRoundHalfUp:
    def test_ties_round_up(self):
        assert round_half_up(25, 2) == 13
        assert round_half_up(5, 2) == 3
        assert round_half_up(100, 8) == 13

    def test_non_ties_round_to_nearest(self):
        assert round_half_up(200, 3) == 67
        assert round_half_up(100, 3) == 33
        assert round_half_up(7) == 7

    def test_averages_use_half_up(self):
        a, b = content(), content()
        catalog = {str(a.id): a, str(b.id): b}
        progress = {
            str(a.id): {"status": "completed", "score": 12},
            str(b.id): {"status": "completed", "score": 13},
        }
        assert overall_stats(progress, catalog).average_score == 13

    def test_pass_rate_half_up(self):
        org = SimpleNamespace(id=uuid4(), name="Acme")
        training = [SimpleNamespace(organization_id=org.id, score=s, passed=p)
                    for s, p in ((90, True), (10, False), (20, False), (30, False),
                                 (40, False), (50, False), (60, False), (65, False))]
        [summary] = organization_summaries([org], {}, [], training)
        assert summary.pass_rate == 13
        assert summary.average_quiz_score == 46
