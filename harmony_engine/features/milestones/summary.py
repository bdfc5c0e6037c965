"""Presentation helpers over evaluated milestone summaries."""

from typing import Dict, Iterable, List, Optional

from harmony_engine.models.milestone import MilestoneStats, MilestoneStatus, MilestoneSummary

RARITY_WEIGHT = {"legendary": 4, "epic": 3, "rare": 2, "common": 1}


def filter_milestones(
    summaries: Iterable[MilestoneSummary],
    tag: Optional[str] = None,
    status: Optional[MilestoneStatus] = None,
) -> List[MilestoneSummary]:
    return [
        s for s in summaries
        if (tag is None or s.tag == tag) and (status is None or s.status == status)
    ]


def milestone_stats(summaries: Iterable[MilestoneSummary]) -> MilestoneStats:
    rows = list(summaries)
    total = len(rows)
    achieved = sum(1 for s in rows if s.status == "achieved")
    return MilestoneStats(
        total=total,
        achieved=achieved,
        in_progress=sum(1 for s in rows if s.status == "in-progress"),
        upcoming=sum(1 for s in rows if s.status == "upcoming"),
        completion_percentage=round(achieved / total * 100) if total else 0,
    )


def progress_text(summary: MilestoneSummary) -> str:
    """e.g. "3/7 days", "40/50%", "Complete"."""
    current, target = summary.current_value, summary.target_value
    if summary.threshold_type == "days":
        return f"{current}/{target} days"
    if summary.threshold_type == "percentage":
        return f"{current}/{target}%"
    if summary.threshold_type == "boolean":
        return "Complete" if summary.is_achieved else "Incomplete"
    return f"{current}/{target}"


def sort_for_display(summaries: Iterable[MilestoneSummary]) -> List[MilestoneSummary]:
    """Achieved first, then closest to completion, then rarest."""
    return sorted(
        summaries,
        key=lambda s: (
            not s.is_achieved,
            -s.percentage_complete,
            -RARITY_WEIGHT.get(s.rarity, 0),
        ),
    )


def group_by_tag(summaries: Iterable[MilestoneSummary]) -> Dict[str, List[MilestoneSummary]]:
    groups: Dict[str, List[MilestoneSummary]] = {}
    for summary in summaries:
        groups.setdefault(summary.tag, []).append(summary)
    for rows in groups.values():
        rows.sort(key=lambda s: s.order_index)
    return groups


def next_milestone(summaries: Iterable[MilestoneSummary]) -> Optional[MilestoneSummary]:
    """The unachieved milestone closest to completion (first one wins ties)."""
    best: Optional[MilestoneSummary] = None
    for summary in summaries:
        if summary.is_achieved:
            continue
        if best is None or summary.percentage_complete > best.percentage_complete:
            best = summary
    return best
