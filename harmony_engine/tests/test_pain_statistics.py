import pytest

from harmony_engine.features.pain.statistics import (
    compute_pain_statistics,
    improvement_pct,
    pain_levels_by_date,
    pain_trend,
)
from harmony_engine.models.progress import PainCheckIn


def _checkin(day, level, user_id="u1"):
    return PainCheckIn(user_id=user_id, check_in_date=day, pain_level=level)


class TestPainTrend:
    def test_needs_two_checkins(self):
        assert pain_trend([]) == "insufficient_data"
        assert pain_trend([5]) == "insufficient_data"

    def test_direction_beyond_one_point(self):
        assert pain_trend([6, 3]) == "decreasing"
        assert pain_trend([3, 6]) == "increasing"
        assert pain_trend([3, 4]) == "stable"
        assert pain_trend([4, 3]) == "stable"

    def test_only_last_two_matter(self):
        assert pain_trend([10, 2, 2]) == "stable"


class TestPainStatistics:
    def test_no_checkins(self):
        stats = compute_pain_statistics([], "2024-03-10")
        assert stats.checkin_count == 0
        assert stats.current_pain == 0
        assert stats.trend == "insufficient_data"

    def test_window_averages_and_counts(self):
        checkins = [
            _checkin("2024-02-20", 10),
            _checkin("2024-03-08", 4),
            _checkin("2024-03-10", 2),
            _checkin("2024-01-01", 9),  # outside the 30-day window
        ]
        stats = compute_pain_statistics(checkins, "2024-03-10", days_back=30)
        assert stats.checkin_count == 4
        assert stats.current_pain == 2
        assert stats.avg_7_days == 3.0
        assert stats.avg_30_days == 5.3
        assert stats.improvement_pct == 70  # 10 in the older half, 3 in the newer
        assert stats.trend == "decreasing"

    def test_streaks_end_at_as_of_date(self):
        checkins = [
            _checkin("2024-03-06", 0),
            _checkin("2024-03-08", 5),
            _checkin("2024-03-09", 0),
            _checkin("2024-03-10", 0),
        ]
        stats = compute_pain_statistics(checkins, "2024-03-10")
        assert stats.checkin_streak == 3
        assert stats.pain_free_streak == 2
        assert stats.pain_free_days == 3

    def test_future_checkins_ignored(self):
        checkins = [_checkin("2024-03-09", 6), _checkin("2024-03-12", 1)]
        stats = compute_pain_statistics(checkins, "2024-03-10")
        assert stats.checkin_count == 1
        assert stats.current_pain == 6

    def test_same_day_checkin_replaced_by_later_one(self):
        checkins = [_checkin("2024-03-10", 8), _checkin("2024-03-10", 3)]
        stats = compute_pain_statistics(checkins, "2024-03-10")
        assert stats.checkin_count == 1
        assert stats.current_pain == 3

    def test_worsening_pain_reports_no_improvement(self):
        checkins = [_checkin("2024-02-20", 2), _checkin("2024-03-09", 7)]
        stats = compute_pain_statistics(checkins, "2024-03-10")
        assert stats.improvement_pct == 0
        assert stats.trend == "increasing"


class TestWindowedImprovement:
    def test_levels_by_date_drops_future_and_keeps_last(self):
        checkins = [
            _checkin("2024-03-11", 1),
            _checkin("2024-01-20", 8),
            _checkin("2024-03-09", 6),
            _checkin("2024-03-09", 4),
        ]
        assert pain_levels_by_date(checkins, "2024-03-10") == {"2024-01-20": 8, "2024-03-09": 4}

    def test_longer_window_reaches_older_baseline(self):
        levels = {"2024-01-20": 8, "2024-03-09": 4}
        assert improvement_pct(levels, "2024-03-10", 60) == 50
        assert improvement_pct(levels, "2024-03-10", 30) == 0

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            improvement_pct({}, "2024-03-10", 0)
