from datetime import datetime, timedelta, timezone

import pytest

from harmony_engine.features.calendar.resolver import (
    check_offset,
    days_between,
    local_date,
    parse_local_date,
    resolve_local_date,
    shift_local_date,
    today,
    yesterday,
)


class TestLocalDate:
    """Local calendar date under an explicit client offset."""

    def test_negative_offset_rolls_back_a_day(self):
        ts = datetime(2024, 3, 10, 3, 30, tzinfo=timezone.utc)
        assert local_date(ts, -300) == "2024-03-09"

    def test_positive_offset_rolls_forward_a_day(self):
        ts = datetime(2024, 3, 9, 16, 0, tzinfo=timezone.utc)
        assert local_date(ts, 540) == "2024-03-10"

    def test_two_minutes_across_local_midnight_are_different_days(self):
        # 23:59 and 00:01 local at UTC-05:00
        before = datetime(2024, 3, 10, 4, 59, tzinfo=timezone.utc)
        after = datetime(2024, 3, 10, 5, 1, tzinfo=timezone.utc)
        assert local_date(before, -300) == "2024-03-09"
        assert local_date(after, -300) == "2024-03-10"

    def test_non_utc_aware_timestamp_is_converted_first(self):
        tokyo = timezone(timedelta(hours=9))
        ts = datetime(2024, 3, 10, 8, 0, tzinfo=tokyo)  # 2024-03-09 23:00 UTC
        assert local_date(ts, 0) == "2024-03-09"

    def test_naive_timestamp_is_taken_as_utc(self):
        assert local_date(datetime(2024, 3, 10, 23, 30), 0) == "2024-03-10"


class TestOffsetFallback:
    """Bad offsets fall back to UTC and are reported, never guessed."""

    def test_missing_offset_uses_utc_and_reports(self):
        ts = datetime(2024, 3, 10, 3, 30, tzinfo=timezone.utc)
        result = resolve_local_date(ts, None, user_id="u1")
        assert result.local_date == "2024-03-10"
        assert result.offset_valid is False
        assert result.offset_minutes == 0
        assert result.issue.code == "missing_offset"
        assert result.issue.user_id == "u1"

    @pytest.mark.parametrize("offset", [900, -721, True, 60.0, "60"])
    def test_invalid_offsets(self, offset):
        assert check_offset(offset) == "invalid_offset"
        result = resolve_local_date(datetime(2024, 3, 10, tzinfo=timezone.utc), offset)
        assert result.offset_valid is False
        assert result.issue.code == "invalid_offset"

    @pytest.mark.parametrize("offset", [-720, 0, 330, 840])
    def test_valid_offsets(self, offset):
        assert check_offset(offset) is None
        result = resolve_local_date(datetime(2024, 3, 10, tzinfo=timezone.utc), offset)
        assert result.offset_valid is True
        assert result.issue is None


class TestDateHelpers:
    def test_today_and_yesterday(self, now):
        assert today(0, now) == "2024-03-10"
        assert yesterday(0, now) == "2024-03-09"
        # 12:00 UTC is already the next day at UTC+14:00
        assert today(840, now) == "2024-03-11"

    def test_shift_crosses_month_and_leap_day(self):
        assert shift_local_date("2024-03-01", -1) == "2024-02-29"
        assert shift_local_date("2023-12-31", 1) == "2024-01-01"

    def test_days_between(self):
        assert days_between("2024-03-01", "2024-03-10") == 9
        assert days_between("2024-03-10", "2024-03-01") == -9

    @pytest.mark.parametrize("value", ["2024-3-1", "2024-02-30", "", None, "20240310xx"])
    def test_parse_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            parse_local_date(value)
