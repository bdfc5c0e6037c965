"""
Milestone Engine

Evaluates a catalog of MilestoneDefinitions against one UserStatsSnapshot.

Rules:
1. Each tag has one rule; the definition's `metric` picks the field(s)
2. achieved iff current >= target, in-progress iff 0 < current < target,
   upcoming iff current == 0
3. achieved_at is stamped once, at first crossing, and never moved
4. Definitions are independent: an unknown tag or a failing rule is
   logged and skipped, the rest of the batch still evaluates
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from harmony_engine.core.config import settings
from harmony_engine.core.errors import MilestoneEvaluationError, NotFoundError
from harmony_engine.core.logging import log_event
from harmony_engine.features.calendar.resolver import parse_local_date
from harmony_engine.features.pain.statistics import improvement_pct
from harmony_engine.models.milestone import MilestoneDefinition, MilestoneSummary
from harmony_engine.models.progress import CATEGORIES, Category
from harmony_engine.models.stats import UserStatsSnapshot

Rule = Callable[[MilestoneDefinition, UserStatsSnapshot], int]
PreviousStamps = Union[Mapping[str, Optional[datetime]], Iterable[MilestoneSummary], None]

# Share of unique routines each category must hold for an even distribution
EVEN_SHARE_MIN = 30.0
EVEN_SHARE_MAX = 36.0


def _metric(definition: MilestoneDefinition, table: Mapping[str, Callable[[UserStatsSnapshot], int]], default: str) -> Callable[[UserStatsSnapshot], int]:
    name = definition.metric or default
    reader = table.get(name)
    if reader is None:
        raise MilestoneEvaluationError(
            f"Unknown metric '{name}' for tag '{definition.tag}'",
            milestone_id=definition.id,
        )
    return reader


def _by_category(prefix: str) -> Category:
    return next(c for c in CATEGORIES if c.value.lower() == prefix)


STREAK_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "harmony_current": lambda s: s.harmony_streak.current_streak,
    "harmony_longest": lambda s: s.harmony_streak.longest_streak,
}
for _cat in CATEGORIES:
    STREAK_METRICS[f"{_cat.value.lower()}_current"] = lambda s, c=_cat: s.streak_for(c).current_streak
    STREAK_METRICS[f"{_cat.value.lower()}_longest"] = lambda s, c=_cat: s.streak_for(c).longest_streak

COMPLETION_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "total": lambda s: s.total_routines,
}
for _cat in CATEGORIES:
    COMPLETION_METRICS[_cat.value.lower()] = lambda s, c=_cat: s.total_for(c)

SPECIALIZATION_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "any": lambda s: max(s.unique_for(c) for c in CATEGORIES),
}
for _cat in CATEGORIES:
    SPECIALIZATION_METRICS[_cat.value.lower()] = lambda s, c=_cat: s.unique_for(c)

PAIN_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "checkin_count": lambda s: s.pain.checkin_count,
    "checkin_streak": lambda s: s.pain.checkin_streak,
    "pain_free_days": lambda s: s.pain.pain_free_days,
    "pain_free_streak": lambda s: s.pain.pain_free_streak,
    "improvement_pct": lambda s: s.pain.improvement_pct,
}

JOURNEY_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "days": lambda s: s.journey_days or 0,
    "started": lambda s: 1 if s.journey_days is not None else 0,
}

SOCIAL_METRICS: Dict[str, Callable[[UserStatsSnapshot], int]] = {
    "friends": lambda s: s.friend_count,
    "circles_created": lambda s: s.circles_created,
    "routines_shared": lambda s: s.routines_shared,
    "top_routine_saves": lambda s: s.top_routine_saves,
}


def streak_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    return _metric(definition, STREAK_METRICS, "harmony_current")(stats)


def completion_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    return _metric(definition, COMPLETION_METRICS, "total")(stats)


def balance_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    metric = definition.metric or "harmony_score"
    if metric == "harmony_score":
        return stats.harmony_score
    if metric == "categories_active":
        return sum(1 for c in CATEGORIES if stats.unique_for(c) > 0)
    if metric == "even_distribution":
        return _even_distribution(definition, stats)
    if metric.endswith("_unique"):
        prefix = metric[: -len("_unique")]
        if prefix in {c.value.lower() for c in CATEGORIES}:
            return stats.unique_for(_by_category(prefix))
    raise MilestoneEvaluationError(
        f"Unknown metric '{metric}' for tag 'balance'",
        milestone_id=definition.id,
    )


def _even_distribution(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    """
    Routines completed, credited in full only while each category holds
    30-36% of the unique routines; otherwise capped just below target.
    """
    unique_total = sum(stats.unique_for(c) for c in CATEGORIES)
    if unique_total == 0:
        return 0
    shares = [stats.unique_for(c) * 100.0 / unique_total for c in CATEGORIES]
    balanced = all(EVEN_SHARE_MIN <= share <= EVEN_SHARE_MAX for share in shares)
    if balanced:
        return stats.total_routines
    return min(stats.total_routines, definition.threshold - 1)


def specialization_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    return _metric(definition, SPECIALIZATION_METRICS, "any")(stats)


def pain_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    if definition.metric == "improvement_pct" and definition.window_days:
        return improvement_pct(stats.pain_levels, stats.as_of_date, definition.window_days)
    return _metric(definition, PAIN_METRICS, "checkin_count")(stats)


def journey_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    return _metric(definition, JOURNEY_METRICS, "days")(stats)


def social_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    return _metric(definition, SOCIAL_METRICS, "friends")(stats)


def consistency_rule(definition: MilestoneDefinition, stats: UserStatsSnapshot) -> int:
    metric = definition.metric or "completion_ratio"
    if metric == "completion_ratio":
        window = definition.window_days or settings.CONSISTENCY_WINDOW_DAYS
        return rolling_completion_ratio(stats.activity_dates, stats.as_of_date, window)
    if metric == "activity_streak":
        return stats.activity_streak.current_streak
    if metric == "custom_routines":
        return stats.custom_routines_created
    raise MilestoneEvaluationError(
        f"Unknown metric '{metric}' for tag 'consistency'",
        milestone_id=definition.id,
    )


def rolling_completion_ratio(activity_dates: Iterable[str], as_of_date: str, window_days: int) -> int:
    """Percentage (floored) of the last `window_days` local days, today included, with any completion."""
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    end = parse_local_date(as_of_date)
    start = end - timedelta(days=window_days - 1)
    active = {d for d in activity_dates if start <= parse_local_date(d) <= end}
    return len(active) * 100 // window_days


RULES: Dict[str, Rule] = {
    "streak": streak_rule,
    "completion": completion_rule,
    "balance": balance_rule,
    "specialization": specialization_rule,
    "pain": pain_rule,
    "journey": journey_rule,
    "social": social_rule,
    "consistency": consistency_rule,
}


def evaluate(
    catalog: Iterable[MilestoneDefinition],
    stats: UserStatsSnapshot,
    previous: PreviousStamps = None,
    now: Optional[datetime] = None,
) -> List[MilestoneSummary]:
    """
    Evaluate every definition in `catalog` against `stats`.

    Args:
        catalog: Milestone definitions (order is preserved in the output)
        stats: Snapshot for one user
        previous: Earlier achieved_at stamps, either {milestone_id: achieved_at}
            or the summaries of a previous evaluation
        now: Stamp used for milestones crossing their threshold in this run

    Returns:
        One MilestoneSummary per definition that evaluated cleanly
    """
    stamped_at = now or datetime.now(timezone.utc)
    stamps = _previous_stamps(previous)
    summaries: List[MilestoneSummary] = []
    seen: set = set()

    for definition in catalog:
        if definition.id in seen:
            log_event(
                "warning",
                "milestone.duplicate_id",
                user_id=stats.user_id,
                error_code="duplicate_milestone",
                extra={"milestone_id": definition.id},
            )
            continue
        seen.add(definition.id)

        rule = RULES.get(definition.tag)
        if rule is None:
            log_event(
                "warning",
                "milestone.unknown_tag",
                user_id=stats.user_id,
                error_code="unknown_tag",
                extra={"milestone_id": definition.id, "tag": definition.tag},
            )
            continue

        try:
            current = max(0, int(rule(definition, stats)))
        except Exception as exc:
            code = exc.code if isinstance(exc, MilestoneEvaluationError) else MilestoneEvaluationError.code
            log_event(
                "error",
                "milestone.rule_failed",
                user_id=stats.user_id,
                error_code=code,
                extra={"milestone_id": definition.id, "tag": definition.tag, "error": str(exc)},
            )
            continue

        summaries.append(_summarize(definition, current, stamps.get(definition.id), stamped_at))

    return summaries


def _summarize(
    definition: MilestoneDefinition,
    current: int,
    prior_stamp: Optional[datetime],
    now: datetime,
) -> MilestoneSummary:
    target = definition.threshold
    crossed = current >= target
    achieved_at = prior_stamp or (now if crossed else None)

    if achieved_at is not None:
        status = "achieved"
        percentage = 100
    elif current > 0:
        status = "in-progress"
        percentage = current * 100 // target
    else:
        status = "upcoming"
        percentage = 0

    return MilestoneSummary(
        milestone_id=definition.id,
        tag=definition.tag,
        name=definition.name,
        rarity=definition.rarity,
        threshold_type=definition.threshold_type,
        status=status,
        current_value=current,
        target_value=target,
        percentage_complete=percentage,
        achieved_at=achieved_at,
        order_index=definition.order_index,
    )


def _previous_stamps(previous: PreviousStamps) -> Dict[str, datetime]:
    if previous is None:
        return {}
    if isinstance(previous, Mapping):
        return {mid: at for mid, at in previous.items() if at is not None}
    return {s.milestone_id: s.achieved_at for s in previous if s.achieved_at is not None}


class MilestoneLedger:
    """
    Per-user first-achievement stamps and celebration flags.

    The only milestone state that outlives an evaluation; everything else
    is recomputed from the stats snapshot.
    """

    def __init__(self) -> None:
        self._achieved: Dict[str, Dict[str, datetime]] = {}
        self._celebrated: Dict[str, set] = {}
        self._lock = threading.Lock()

    def stamps(self, user_id: str) -> Dict[str, datetime]:
        with self._lock:
            return dict(self._achieved.get(user_id, {}))

    def record(self, user_id: str, summaries: Iterable[MilestoneSummary]) -> List[MilestoneSummary]:
        """Keep first stamps from `summaries`; return the ones new to the ledger."""
        fresh: List[MilestoneSummary] = []
        with self._lock:
            stamps = self._achieved.setdefault(user_id, {})
            for summary in summaries:
                if summary.achieved_at is None or summary.milestone_id in stamps:
                    continue
                stamps[summary.milestone_id] = summary.achieved_at
                fresh.append(summary)
        for summary in fresh:
            log_event(
                "info",
                "milestone.achieved",
                user_id=user_id,
                event_type="milestone",
                extra={"milestone_id": summary.milestone_id},
            )
        return fresh

    def uncelebrated(self, user_id: str) -> List[str]:
        """Achieved milestone ids not yet shown to the user, oldest first."""
        with self._lock:
            stamps = self._achieved.get(user_id, {})
            done = self._celebrated.get(user_id, set())
            pending = [(at, mid) for mid, at in stamps.items() if mid not in done]
        return [mid for _, mid in sorted(pending)]

    def mark_celebrated(self, user_id: str, milestone_id: str) -> None:
        with self._lock:
            if milestone_id not in self._achieved.get(user_id, {}):
                raise NotFoundError(f"Milestone '{milestone_id}' is not achieved for this user")
            self._celebrated.setdefault(user_id, set()).add(milestone_id)

    def clear_user(self, user_id: str) -> int:
        """Forget a user's stamps and celebrations; returns how many stamps were dropped."""
        with self._lock:
            self._celebrated.pop(user_id, None)
            return len(self._achieved.pop(user_id, {}))
