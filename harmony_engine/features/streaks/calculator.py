from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

from harmony_engine.core.config import settings
from harmony_engine.core.logging import log_event
from harmony_engine.features.calendar.resolver import parse_local_date, today
from harmony_engine.models.progress import CATEGORIES, Category, DailyProgressRecord
from harmony_engine.models.streak import CategoryStreak, StreakLabel


def compute_streak(
    category: StreakLabel | Category,
    dates_with_completion: Iterable[str],
    utc_offset_minutes,
    now: Optional[datetime] = None,
    lookback_days: Optional[int] = None,
) -> CategoryStreak:
    """
    Current and longest run of consecutive local dates.

    `current` is only alive when today or yesterday is in the set (grace
    day); it is counted backward from whichever of the two is present,
    today first. Malformed date strings are skipped.
    """
    label = category.value if isinstance(category, Category) else category
    anchor = parse_local_date(today(utc_offset_minutes, now))
    window = settings.STREAK_LOOKBACK_DAYS if lookback_days is None else lookback_days

    days = sorted(_parse_dates(dates_with_completion, label))
    if window:
        earliest = anchor - timedelta(days=window)
        days = [d for d in days if d >= earliest]
    if not days:
        return CategoryStreak(category=label, current_streak=0, longest_streak=0)

    longest = longest_run(days)
    current = current_run(set(days), anchor)
    return CategoryStreak(
        category=label,
        current_streak=current,
        longest_streak=max(longest, current),
    )


def compute_category_streaks(
    records: Iterable[DailyProgressRecord],
    utc_offset_minutes,
    now: Optional[datetime] = None,
) -> dict[Category, CategoryStreak]:
    rows = list(records)
    return {
        category: compute_streak(
            category,
            [r.local_date for r in rows if r.is_complete(category)],
            utc_offset_minutes,
            now,
        )
        for category in CATEGORIES
    }


def compute_harmony_streak(
    records: Iterable[DailyProgressRecord],
    utc_offset_minutes,
    now: Optional[datetime] = None,
) -> CategoryStreak:
    """Streak over days where Mind, Body and Soul were all complete."""
    return compute_streak(
        "Harmony",
        [r.local_date for r in records if r.is_harmony],
        utc_offset_minutes,
        now,
    )


def compute_activity_streak(
    records: Iterable[DailyProgressRecord],
    utc_offset_minutes,
    now: Optional[datetime] = None,
) -> CategoryStreak:
    """Streak over days with at least one completion in any category."""
    return compute_streak(
        "Activity",
        [r.local_date for r in records if r.has_activity],
        utc_offset_minutes,
        now,
    )


def _parse_dates(values: Iterable[str], label: str) -> set[date]:
    parsed: set[date] = set()
    for value in values:
        try:
            parsed.add(parse_local_date(value))
        except (TypeError, ValueError):
            log_event(
                "warning",
                "streak.invalid_date",
                error_code="invalid_date",
                extra={"category": label, "value": value},
            )
    return parsed


def longest_run(days: List[date]) -> int:
    """Longest run of consecutive days in an ascending, distinct list."""
    longest = 0
    run = 0
    previous: Optional[date] = None
    for day in days:
        if previous is not None and (day - previous).days == 1:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        previous = day
    return longest


def current_run(days: set[date], anchor: date) -> int:
    """Run ending at `anchor`, or at the day before it (grace day)."""
    if anchor in days:
        cursor = anchor
    elif anchor - timedelta(days=1) in days:
        cursor = anchor - timedelta(days=1)
    else:
        return 0

    run = 0
    while cursor in days:
        run += 1
        cursor -= timedelta(days=1)
    return run
