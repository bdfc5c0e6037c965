from datetime import datetime, timedelta, timezone

import pytest

from harmony_engine.core.errors import ProgressIntegrityError
from harmony_engine.features.progress.service import ProgressService
from harmony_engine.features.progress.store import CompletionStore
from harmony_engine.features.milestones.catalog import DEFAULT_CATALOG
from harmony_engine.features.milestones.engine import evaluate
from harmony_engine.features.stats.builder import build_user_stats
from harmony_engine.models.progress import Category, CompletionEvent, DailyProgressRecord, PainCheckIn, UserContext


def _event(category, at, routine_id="r1", user_id="u1"):
    return CompletionEvent(
        user_id=user_id,
        category=category,
        occurred_at=at,
        routine_id=routine_id,
        utc_offset_minutes=0,
    )


def _harmony_day(service, at):
    for category in Category:
        service.record_completion(_event(category, at, routine_id=f"{category.value}-{at.date()}"))


class TestCompletionStore:
    def test_idempotency_key(self, now):
        store = CompletionStore()
        event = _event(Category.MIND, now)
        assert store.append(event) is True
        assert store.append(event) is False
        assert store.append(_event(Category.BODY, now), idempotency_key="k1") is True
        assert store.append(_event(Category.SOUL, now), idempotency_key="k1") is False
        assert store.count("u1") == 2

    def test_partitioned_by_user(self, now):
        store = CompletionStore()
        store.extend([_event(Category.MIND, now, user_id="a"), _event(Category.MIND, now, user_id="b")])
        assert store.clear_user("a") == 1
        assert store.events_for("a") == []
        assert store.count() == 1


class TestProgressService:
    def test_first_achievement_stamp_is_stable(self, now):
        service = ProgressService()
        _harmony_day(service, now)
        first = service.recompute("u1", 0, now=now)
        streak_1 = next(m for m in first.milestones if m.milestone_id == "streak_1")
        assert streak_1.achieved_at == now
        assert "streak_1" in {m.milestone_id for m in first.newly_achieved}

        later = now + timedelta(days=1)
        _harmony_day(service, later)
        second = service.recompute("u1", 0, now=later)
        streak_1 = next(m for m in second.milestones if m.milestone_id == "streak_1")
        assert streak_1.achieved_at == now
        assert "streak_1" not in {m.milestone_id for m in second.newly_achieved}

    def test_achievement_outlives_a_broken_streak(self, now):
        service = ProgressService()
        _harmony_day(service, now)
        service.recompute("u1", 0, now=now)
        report = service.recompute("u1", 0, now=now + timedelta(days=5))
        streak_1 = next(m for m in report.milestones if m.milestone_id == "streak_1")
        assert report.stats.harmony_streak.current_streak == 0
        assert streak_1.status == "achieved"
        assert streak_1.achieved_at == now

    def test_persisted_regression_raises(self, now):
        service = ProgressService()
        service.record_completion(_event(Category.MIND, now))
        persisted = [DailyProgressRecord(user_id="u1", local_date="2024-03-10", soul_complete=True)]
        with pytest.raises(ProgressIntegrityError):
            service.recompute("u1", 0, now=now, persisted=persisted)

    def test_reset_matches_a_user_with_no_history(self, now):
        service = ProgressService()
        service.set_context("u1", UserContext(journey_started_at=now - timedelta(days=10), friend_count=3))
        service.record_pain_checkin(PainCheckIn(user_id="u1", check_in_date="2024-03-10", pain_level=0))
        _harmony_day(service, now)
        service.recompute("u1", 0, now=now)
        service.ledger.mark_celebrated("u1", "streak_1")

        removed = service.reset_user("u1")
        assert removed["completions_removed"] == 3
        assert removed["pain_checkins_removed"] == 1
        assert removed["milestones_removed"] > 0

        report = service.recompute("u1", 0, now=now)
        empty = evaluate(DEFAULT_CATALOG, build_user_stats("u1", [], None, 0, now=now), now=now)
        assert report.records == []
        assert report.milestones == empty
        assert all(m.status == "upcoming" for m in report.milestones)
        assert report.newly_achieved == []
        assert service.ledger.uncelebrated("u1") == []

    def test_report_serializes(self, now):
        service = ProgressService()
        service.record_completion(_event(Category.BODY, now))
        data = service.recompute("u1", 0, now=now).to_dict()
        assert data["records"][0]["body_complete"] is True
        assert data["stats"]["as_of_date"] == "2024-03-10"
        assert "routine_1" in data["newly_achieved"]

    def test_invalid_offset_surfaces_issue(self):
        service = ProgressService()
        event = CompletionEvent(
            user_id="u1",
            category=Category.MIND,
            occurred_at=datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc),
            routine_id="r1",
            utc_offset_minutes=5000,
        )
        service.record_completion(event)
        report = service.recompute("u1", 0, now=datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc))
        assert [i.code for i in report.issues] == ["invalid_offset"]
        assert report.records[0].local_date == "2024-03-10"

    def test_batch_ingress_skips_bad_rows_and_reports_them(self, now):
        service = ProgressService()
        rows = [
            {"user_id": "u1", "category": "Mind", "routine_id": "m1", "occurred_at": now.isoformat(), "utc_offset_minutes": 0},
            {"user_id": "u1", "category": {"name": "Body"}, "routine_id": "b1", "occurred_at": now.isoformat()},
            {"user_id": "u2", "category": "Spirit", "routine_id": "x1", "occurred_at": now.isoformat()},
            _event(Category.SOUL, now, routine_id="s1"),
        ]
        appended, issues = service.record_completions(rows)
        assert appended == 2
        assert [(i.code, i.user_id) for i in issues] == [("unknown_category", "u1"), ("unknown_category", "u2")]

        report = service.recompute("u1", 0, now=now)
        (record,) = report.records
        assert record.mind_complete and record.soul_complete and not record.body_complete
        assert [i.code for i in report.issues] == ["unknown_category"]
        assert [i.user_id for i in service.recompute("u2", 0, now=now).issues] == ["u2"]
