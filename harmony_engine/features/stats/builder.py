"""
Stats Builder

Rebuilds a UserStatsSnapshot from source data only: completion events,
daily records, pain check-ins and the user context. Nothing here is
cached, so a snapshot can always be thrown away and rebuilt.
"""

from datetime import datetime
from typing import Dict, Iterable, Optional, Set

from harmony_engine.features.calendar.resolver import days_between, local_date, today
from harmony_engine.features.harmony.score import compute_harmony_score
from harmony_engine.features.pain.statistics import compute_pain_statistics, pain_levels_by_date
from harmony_engine.features.progress.aggregator import fold_completions
from harmony_engine.features.streaks.calculator import (
    compute_activity_streak,
    compute_category_streaks,
    compute_harmony_streak,
)
from harmony_engine.models.progress import (
    CATEGORIES,
    Category,
    CompletionEvent,
    DailyProgressRecord,
    PainCheckIn,
    UserContext,
)
from harmony_engine.models.stats import UserStatsSnapshot


def build_user_stats(
    user_id: str,
    events: Iterable[CompletionEvent],
    records: Optional[Iterable[DailyProgressRecord]],
    utc_offset_minutes,
    now: Optional[datetime] = None,
    context: Optional[UserContext] = None,
    pain_checkins: Iterable[PainCheckIn] = (),
) -> UserStatsSnapshot:
    """
    Args:
        user_id: Rows belonging to other users are ignored
        events: Completion events (duplicates collapse by event key)
        records: Daily records; folded from `events` when None
        utc_offset_minutes: Client offset used to find "today"
        now: Evaluation instant (defaults to current UTC time)
        context: Journey start and social counters
        pain_checkins: The user's pain check-ins
    """
    ctx = context or UserContext()
    unique_events: Dict[str, CompletionEvent] = {}
    for event in events:
        if event.user_id == user_id:
            unique_events.setdefault(event.key, event)

    if records is None:
        records = fold_completions(unique_events.values(), utc_offset_minutes).records
    rows = sorted((r for r in records if r.user_id == user_id), key=lambda r: r.local_date)

    as_of = today(utc_offset_minutes, now)
    category_streaks = compute_category_streaks(rows, utc_offset_minutes, now)

    per_category: Dict[Category, int] = {c: 0 for c in CATEGORIES}
    unique_routines: Dict[Category, Set[str]] = {c: set() for c in CATEGORIES}
    for event in unique_events.values():
        per_category[event.category] += 1
        unique_routines[event.category].add(event.routine_id)

    activity_dates = tuple(r.local_date for r in rows if r.has_activity)
    own_checkins = [p for p in pain_checkins if p.user_id == user_id]

    return UserStatsSnapshot(
        user_id=user_id,
        as_of_date=as_of,
        category_streaks=category_streaks,
        harmony_streak=compute_harmony_streak(rows, utc_offset_minutes, now),
        activity_streak=compute_activity_streak(rows, utc_offset_minutes, now),
        harmony_score=compute_harmony_score(category_streaks),
        total_routines=len(unique_events),
        routines_per_category=per_category,
        unique_routines_per_category={c: len(ids) for c, ids in unique_routines.items()},
        last_activity_date=activity_dates[-1] if activity_dates else None,
        last_activity_per_category={
            c: max((r.local_date for r in rows if r.is_complete(c)), default=None)
            for c in CATEGORIES
        },
        activity_dates=activity_dates,
        pain=compute_pain_statistics(own_checkins, as_of),
        pain_levels=pain_levels_by_date(own_checkins, as_of),
        journey_days=_journey_days(ctx, utc_offset_minutes, as_of),
        friend_count=ctx.friend_count,
        circles_created=ctx.circles_created,
        routines_shared=ctx.routines_shared,
        top_routine_saves=ctx.top_routine_saves,
        custom_routines_created=ctx.custom_routines_created,
    )


def _journey_days(ctx: UserContext, utc_offset_minutes, as_of: str) -> Optional[int]:
    if ctx.journey_started_at is None:
        return None
    started = local_date(ctx.journey_started_at, utc_offset_minutes)
    return max(0, days_between(started, as_of))
