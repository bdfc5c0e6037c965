from datetime import datetime, timezone

from harmony_engine.features.harmony.score import compute_harmony_score
from harmony_engine.features.stats.avatar import avatar_light_state, avatar_states
from harmony_engine.features.stats.builder import build_user_stats
from harmony_engine.models.progress import (
    Category,
    CompletionEvent,
    DailyProgressRecord,
    PainCheckIn,
    UserContext,
)


def _event(category, day, hour, routine_id, user_id="u1"):
    return CompletionEvent(
        user_id=user_id,
        category=category,
        occurred_at=datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc),
        routine_id=routine_id,
        utc_offset_minutes=0,
    )


EVENTS = [
    _event(Category.MIND, 9, 10, "r1"),
    _event(Category.BODY, 9, 11, "r2"),
    _event(Category.SOUL, 9, 12, "r3"),
    _event(Category.MIND, 10, 8, "r1"),
    _event(Category.MIND, 10, 9, "r4"),
    _event(Category.MIND, 9, 10, "r1"),  # replay
    _event(Category.BODY, 10, 9, "x", user_id="someone-else"),
]


class TestBuildUserStats:
    def test_counts_and_dates(self, now):
        stats = build_user_stats("u1", EVENTS, None, 0, now=now)
        assert stats.as_of_date == "2024-03-10"
        assert stats.total_routines == 5
        assert stats.total_for(Category.MIND) == 3
        assert stats.unique_for(Category.MIND) == 2
        assert stats.unique_for(Category.BODY) == 1
        assert stats.activity_dates == ("2024-03-09", "2024-03-10")
        assert stats.last_activity_date == "2024-03-10"
        assert stats.last_activity_per_category[Category.BODY] == "2024-03-09"

    def test_streaks_and_score(self, now):
        stats = build_user_stats("u1", EVENTS, None, 0, now=now)
        assert stats.streak_for(Category.MIND).current_streak == 2
        assert stats.streak_for(Category.BODY).current_streak == 1
        assert stats.harmony_streak.current_streak == 1  # yesterday was a harmony day
        assert stats.activity_streak.current_streak == 2
        assert stats.harmony_score == compute_harmony_score(stats.category_streaks)
        assert stats.harmony_score > 0

    def test_explicit_records_are_used(self, now):
        records = [DailyProgressRecord(user_id="u1", local_date="2024-03-10", soul_complete=True)]
        stats = build_user_stats("u1", [], records, 0, now=now)
        assert stats.total_routines == 0
        assert stats.streak_for(Category.SOUL).current_streak == 1

    def test_context_and_pain(self, now):
        context = UserContext(
            journey_started_at=datetime(2024, 3, 1, 15, 0),
            friend_count=2,
            custom_routines_created=1,
        )
        pain = [
            PainCheckIn(user_id="u1", check_in_date="2024-03-10", pain_level=0),
            PainCheckIn(user_id="other", check_in_date="2024-03-10", pain_level=9),
        ]
        stats = build_user_stats("u1", [], [], 0, now=now, context=context, pain_checkins=pain)
        assert stats.journey_days == 9
        assert stats.friend_count == 2
        assert stats.custom_routines_created == 1
        assert stats.pain.checkin_count == 1
        assert stats.pain.pain_free_days == 1

    def test_no_journey_start(self, now):
        assert build_user_stats("u1", [], [], 0, now=now).journey_days is None


class TestAvatarStates:
    def test_light_hierarchy(self):
        assert avatar_light_state(True, True, True) == "Radiant"
        assert avatar_light_state(True, False, True) == "Glowing"
        assert avatar_light_state(False, False, True) == "Awakening"
        assert avatar_light_state(False, False) == "Dormant"

    def test_states_from_today(self, now):
        records = [DailyProgressRecord(user_id="u1", local_date="2024-03-10", mind_complete=True)]
        states = {s.category: s.light_state for s in avatar_states(records, 0, now, executing=Category.BODY)}
        assert states == {Category.MIND: "Glowing", Category.BODY: "Awakening", Category.SOUL: "Dormant"}

    def test_radiant_day(self, now):
        records = [
            DailyProgressRecord(
                user_id="u1", local_date="2024-03-10",
                mind_complete=True, body_complete=True, soul_complete=True,
            )
        ]
        assert {s.light_state for s in avatar_states(records, 0, now)} == {"Radiant"}

    def test_sleepy_after_harmony_yesterday(self, now):
        records = [
            DailyProgressRecord(
                user_id="u1", local_date="2024-03-09",
                mind_complete=True, body_complete=True, soul_complete=True,
            )
        ]
        states = avatar_states(records, 0, now)
        assert {s.light_state for s in states} == {"Sleepy"}
        assert all(s.current_streak == 1 for s in states)

    def test_dormant_without_harmony_yesterday(self, now):
        records = [DailyProgressRecord(user_id="u1", local_date="2024-03-09", mind_complete=True)]
        assert {s.light_state for s in avatar_states(records, 0, now)} == {"Dormant"}
