"""
Pain Statistics

Summarises a user's daily pain check-ins as of a local date. Check-ins
after `as_of_date` are ignored; when a date was checked in twice the
last one seen wins.
"""

from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional

from harmony_engine.core.config import settings
from harmony_engine.core.logging import log_event
from harmony_engine.features.calendar.resolver import parse_local_date
from harmony_engine.features.streaks.calculator import current_run
from harmony_engine.models.progress import PainCheckIn
from harmony_engine.models.stats import PainStatistics, PainTrend

SHORT_WINDOW_DAYS = 7


def compute_pain_statistics(
    checkins: Iterable[PainCheckIn],
    as_of_date: str,
    days_back: Optional[int] = None,
) -> PainStatistics:
    """
    Args:
        checkins: One user's check-ins, any order
        as_of_date: Local date (YYYY-MM-DD) the statistics are evaluated on
        days_back: Window for the long average, pain-free count and
            improvement; defaults to PAIN_WINDOW_DAYS

    Returns:
        PainStatistics (all zero / insufficient_data without check-ins)
    """
    window = settings.PAIN_WINDOW_DAYS if days_back is None else days_back
    anchor = parse_local_date(as_of_date)
    levels = _levels_by_date(checkins, anchor)
    if not levels:
        return PainStatistics()

    ordered = sorted(levels)
    window_start = anchor - timedelta(days=window)
    in_window = [d for d in ordered if d >= window_start]
    pain_free = {d for d, level in levels.items() if level == 0}

    return PainStatistics(
        checkin_count=len(ordered),
        current_pain=levels[ordered[-1]],
        avg_7_days=_average(levels, anchor - timedelta(days=SHORT_WINDOW_DAYS)),
        avg_30_days=_average(levels, window_start),
        pain_free_days=sum(1 for d in in_window if d in pain_free),
        checkin_streak=current_run(set(ordered), anchor),
        pain_free_streak=current_run(pain_free, anchor),
        improvement_pct=_improvement_pct(levels, anchor, window),
        trend=pain_trend([levels[d] for d in ordered]),
    )


def pain_levels_by_date(checkins: Iterable[PainCheckIn], as_of_date: str) -> Dict[str, int]:
    """Pain level per local date up to `as_of_date`, as stored on the stats snapshot."""
    levels = _levels_by_date(checkins, parse_local_date(as_of_date))
    return {day.isoformat(): levels[day] for day in sorted(levels)}


def improvement_pct(levels: Mapping[str, int], as_of_date: str, window_days: int) -> int:
    """
    Pain reduction (0..100) from the older half to the newer half of the
    last `window_days` days, for milestones that track a window other than
    PAIN_WINDOW_DAYS.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    by_date = {parse_local_date(day): level for day, level in levels.items()}
    return _improvement_pct(by_date, parse_local_date(as_of_date), window_days)


def pain_trend(levels_oldest_first: List[int], delta: Optional[int] = None) -> PainTrend:
    """
    Direction of the two most recent check-ins.

    Pain falling by more than `delta` is "decreasing" (improving), rising
    by more than `delta` is "increasing".
    """
    threshold = settings.PAIN_TREND_DELTA if delta is None else delta
    if len(levels_oldest_first) < 2:
        return "insufficient_data"
    previous, latest = levels_oldest_first[-2], levels_oldest_first[-1]
    if latest < previous - threshold:
        return "decreasing"
    if latest > previous + threshold:
        return "increasing"
    return "stable"


def _levels_by_date(checkins: Iterable[PainCheckIn], anchor: date) -> Dict[date, int]:
    levels: Dict[date, int] = {}
    for checkin in checkins:
        try:
            day = parse_local_date(checkin.check_in_date)
        except ValueError:
            log_event(
                "warning",
                "pain.invalid_date",
                user_id=checkin.user_id,
                error_code="invalid_date",
                extra={"value": checkin.check_in_date},
            )
            continue
        if day <= anchor:
            levels[day] = checkin.pain_level
    return levels


def _average(levels: Dict[date, int], since: date) -> float:
    values = [level for day, level in levels.items() if day >= since]
    if not values:
        return 0.0
    return round(sum(values) / len(values), 1)


def _improvement_pct(levels: Dict[date, int], anchor: date, window: int) -> int:
    # older half vs newer half of the window; no baseline pain means nothing to improve
    start = anchor - timedelta(days=window)
    midpoint = anchor - timedelta(days=window // 2)
    older = [level for day, level in levels.items() if start <= day < midpoint]
    newer = [level for day, level in levels.items() if midpoint <= day <= anchor]
    if not older or not newer:
        return 0
    baseline = sum(older) / len(older)
    if baseline == 0:
        return 0
    recent = sum(newer) / len(newer)
    pct = round((baseline - recent) / baseline * 100)
    return max(0, min(100, pct))
