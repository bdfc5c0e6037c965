from datetime import datetime
from typing import Dict, Iterable, List, Optional

from harmony_engine.features.calendar.resolver import today, yesterday
from harmony_engine.features.streaks.calculator import compute_category_streaks
from harmony_engine.models.progress import CATEGORIES, Category, DailyProgressRecord
from harmony_engine.models.stats import AvatarLightState, AvatarState


def avatar_light_state(
    category_completed: bool,
    all_categories_completed: bool,
    executing_this_category: bool = False,
) -> AvatarLightState:
    """
    Highest state wins: Radiant > Glowing > Awakening > Dormant.

    Sleepy is a start-of-day state decided by `avatar_states`.
    """
    if all_categories_completed:
        return "Radiant"
    if category_completed:
        return "Glowing"
    if executing_this_category:
        return "Awakening"
    return "Dormant"


def avatar_states(
    records: Iterable[DailyProgressRecord],
    utc_offset_minutes,
    now: Optional[datetime] = None,
    executing: Optional[Category] = None,
) -> List[AvatarState]:
    """One AvatarState per category, in Mind/Body/Soul order."""
    rows = list(records)
    by_date: Dict[str, DailyProgressRecord] = {r.local_date: r for r in rows}
    today_record = by_date.get(today(utc_offset_minutes, now))
    streaks = compute_category_streaks(rows, utc_offset_minutes, now)

    if today_record is None:
        previous = by_date.get(yesterday(utc_offset_minutes, now))
        resting: AvatarLightState = "Sleepy" if previous is not None and previous.is_harmony else "Dormant"

    states = []
    for category in CATEGORIES:
        if today_record is None:
            light = "Awakening" if executing == category else resting
        else:
            light = avatar_light_state(
                today_record.is_complete(category),
                today_record.is_harmony,
                executing == category,
            )
        last = max((r.local_date for r in rows if r.is_complete(category)), default=None)
        states.append(AvatarState(
            category=category,
            light_state=light,
            current_streak=streaks[category].current_streak,
            last_activity_date=last,
        ))
    return states
