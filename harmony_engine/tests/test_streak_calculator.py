"""Guardrails for day-level streaks (now = 2024-03-10 12:00 UTC)."""

from datetime import datetime, timezone

from harmony_engine.features.streaks.calculator import (
    compute_activity_streak,
    compute_category_streaks,
    compute_harmony_streak,
    compute_streak,
)
from harmony_engine.models.progress import Category, DailyProgressRecord


def _record(day, mind=False, body=False, soul=False, user_id="u1"):
    return DailyProgressRecord(
        user_id=user_id,
        local_date=day,
        mind_complete=mind,
        body_complete=body,
        soul_complete=soul,
    )


class TestCurrentStreak:
    def test_no_dates(self, now):
        streak = compute_streak(Category.MIND, [], 0, now)
        assert (streak.current_streak, streak.longest_streak) == (0, 0)
        assert streak.category == "Mind"
        assert not streak.is_active

    def test_gap_before_today_resets_to_one(self, now):
        streak = compute_streak(Category.MIND, ["2024-03-08", "2024-03-10"], 0, now)
        assert streak.current_streak == 1
        assert streak.longest_streak == 1

    def test_yesterday_keeps_streak_alive(self, now):
        streak = compute_streak(Category.BODY, ["2024-03-08", "2024-03-09"], 0, now)
        assert streak.current_streak == 2

    def test_missing_today_and_yesterday_breaks_streak(self, now):
        streak = compute_streak(Category.SOUL, ["2024-03-07", "2024-03-08"], 0, now)
        assert streak.current_streak == 0
        assert streak.longest_streak == 2

    def test_longest_survives_a_break(self, now):
        dates = ["2024-03-05", "2024-03-06", "2024-03-07", "2024-03-10"]
        streak = compute_streak(Category.MIND, dates, 0, now)
        assert streak.longest_streak == 3
        assert streak.current_streak == 1

    def test_duplicates_order_and_garbage_are_ignored(self, now):
        dates = ["2024-03-10", "not-a-date", "2024-03-09", "2024-03-10", "2024-13-01"]
        streak = compute_streak(Category.MIND, dates, 0, now)
        assert (streak.current_streak, streak.longest_streak) == (2, 2)

    def test_today_follows_the_client_offset(self):
        early_utc = datetime(2024, 3, 10, 2, 0, tzinfo=timezone.utc)
        # at UTC-05:00 it is still 2024-03-09
        streak = compute_streak(Category.MIND, ["2024-03-08", "2024-03-09"], -300, early_utc)
        assert streak.current_streak == 2
        streak_utc = compute_streak(Category.MIND, ["2024-03-07", "2024-03-08"], 0, early_utc)
        assert streak_utc.current_streak == 0

    def test_lookback_window_is_opt_in(self, now):
        january = [f"2024-01-{day:02d}" for day in range(1, 11)]
        unbounded = compute_streak(Category.MIND, january + ["2024-03-10"], 0, now)
        assert unbounded.longest_streak == 10
        bounded = compute_streak(Category.MIND, january + ["2024-03-10"], 0, now, lookback_days=30)
        assert (bounded.current_streak, bounded.longest_streak) == (1, 1)


class TestRecordStreaks:
    def test_harmony_needs_all_three(self, now):
        records = [
            _record("2024-03-08", mind=True, body=True, soul=True),
            _record("2024-03-09", mind=True, body=True),
            _record("2024-03-10", mind=True, body=True, soul=True),
        ]
        harmony = compute_harmony_streak(records, 0, now)
        assert harmony.category == "Harmony"
        assert harmony.current_streak == 1
        assert harmony.longest_streak == 1

    def test_three_full_days_make_three(self, now):
        records = [
            _record(day, mind=True, body=True, soul=True)
            for day in ("2024-03-08", "2024-03-09", "2024-03-10")
        ]
        harmony = compute_harmony_streak(records, 0, now)
        assert (harmony.current_streak, harmony.longest_streak) == (3, 3)

    def test_per_category_streaks(self, now):
        records = [
            _record("2024-03-08", mind=True, soul=True),
            _record("2024-03-09", mind=True),
            _record("2024-03-10", mind=True, body=True),
        ]
        streaks = compute_category_streaks(records, 0, now)
        assert streaks[Category.MIND].current_streak == 3
        assert streaks[Category.BODY].current_streak == 1
        assert streaks[Category.SOUL].current_streak == 0
        assert streaks[Category.SOUL].longest_streak == 1

    def test_activity_streak_counts_any_category(self, now):
        records = [
            _record("2024-03-08", soul=True),
            _record("2024-03-09", body=True),
            _record("2024-03-10", mind=True),
        ]
        activity = compute_activity_streak(records, 0, now)
        assert activity.category == "Activity"
        assert activity.current_streak == 3
