"""
Progress Service

Runs the full pipeline for one user:
events -> daily records -> stats snapshot -> milestone summaries.

Everything derived is recomputed on every call; the only state kept is
source data (completions, pain check-ins, user context) and the
milestone ledger.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from harmony_engine.core.logging import bound_user, log_event
from harmony_engine.features.milestones.catalog import CATALOG_VERSION, DEFAULT_CATALOG
from harmony_engine.features.milestones.engine import MilestoneLedger, evaluate
from harmony_engine.features.progress.aggregator import check_monotonic, fold_completions, parse_events
from harmony_engine.features.progress.store import CompletionStore
from harmony_engine.features.stats.builder import build_user_stats
from harmony_engine.models.milestone import MilestoneDefinition, MilestoneSummary
from harmony_engine.models.progress import (
    CompletionEvent,
    DailyProgressRecord,
    DataQualityIssue,
    PainCheckIn,
    UserContext,
)
from harmony_engine.models.stats import UserStatsSnapshot


@dataclass
class ProgressReport:
    """Result of one recompute."""

    user_id: str
    records: List[DailyProgressRecord] = field(default_factory=list)
    stats: Optional[UserStatsSnapshot] = None
    milestones: List[MilestoneSummary] = field(default_factory=list)
    newly_achieved: List[MilestoneSummary] = field(default_factory=list)
    issues: List[DataQualityIssue] = field(default_factory=list)
    catalog_version: str = CATALOG_VERSION

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "records": [r.model_dump() for r in self.records],
            "stats": self.stats.model_dump(mode="json") if self.stats else None,
            "milestones": [m.model_dump(mode="json") for m in self.milestones],
            "newly_achieved": [m.milestone_id for m in self.newly_achieved],
            "issues": [i.model_dump() for i in self.issues],
            "catalog_version": self.catalog_version,
        }


class ProgressService:
    def __init__(
        self,
        store: Optional[CompletionStore] = None,
        catalog: Optional[List[MilestoneDefinition]] = None,
        ledger: Optional[MilestoneLedger] = None,
    ):
        self.store = store or CompletionStore()
        self.catalog = list(catalog if catalog is not None else DEFAULT_CATALOG)
        self.ledger = ledger or MilestoneLedger()
        self._pain: Dict[str, Dict[str, PainCheckIn]] = {}
        self._contexts: Dict[str, UserContext] = {}
        self._ingress_issues: Dict[str, List[DataQualityIssue]] = {}
        self._lock = threading.Lock()

    def record_completion(self, event: CompletionEvent, idempotency_key: Optional[str] = None) -> bool:
        appended = self.store.append(event, idempotency_key)
        log_event(
            "info",
            "progress.completion_recorded" if appended else "progress.completion_duplicate",
            user_id=event.user_id,
            event_type="completion",
            extra={"category": event.category.value, "routine_id": event.routine_id},
        )
        return appended

    def record_completions(self, rows: Iterable[Any]) -> Tuple[int, List[DataQualityIssue]]:
        """
        Batch ingress of raw rows. Malformed rows are skipped, never fatal;
        their issues are returned and kept for the owning user's next report.
        """
        issues: List[DataQualityIssue] = []
        appended = sum(1 for event in parse_events(rows, issues) if self.record_completion(event))
        with self._lock:
            for issue in issues:
                if issue.user_id:
                    self._ingress_issues.setdefault(issue.user_id, []).append(issue)
        return appended, issues

    def record_pain_checkin(self, checkin: PainCheckIn) -> None:
        """One check-in per local date; a later one replaces the earlier."""
        with self._lock:
            self._pain.setdefault(checkin.user_id, {})[checkin.check_in_date] = checkin

    def pain_checkins(self, user_id: str) -> List[PainCheckIn]:
        with self._lock:
            rows = self._pain.get(user_id, {})
            return [rows[d] for d in sorted(rows)]

    def set_context(self, user_id: str, context: UserContext) -> None:
        with self._lock:
            self._contexts[user_id] = context

    def context(self, user_id: str) -> UserContext:
        with self._lock:
            return self._contexts.get(user_id) or UserContext()

    def daily_records(self, user_id: str, utc_offset_minutes=None) -> List[DailyProgressRecord]:
        return fold_completions(self.store.events_for(user_id), utc_offset_minutes).records

    def stats(
        self,
        user_id: str,
        utc_offset_minutes=None,
        now: Optional[datetime] = None,
    ) -> UserStatsSnapshot:
        folded = fold_completions(self.store.events_for(user_id), utc_offset_minutes)
        return build_user_stats(
            user_id,
            folded.completions,
            folded.records,
            utc_offset_minutes,
            now=now,
            context=self.context(user_id),
            pain_checkins=self.pain_checkins(user_id),
        )

    def recompute(
        self,
        user_id: str,
        utc_offset_minutes=None,
        now: Optional[datetime] = None,
        persisted: Optional[Iterable[DailyProgressRecord]] = None,
    ) -> ProgressReport:
        """
        Rebuild records, stats and milestones for one user.

        Args:
            user_id: User to recompute
            utc_offset_minutes: Client offset for events that carry none
            now: Evaluation instant (stamps first achievements)
            persisted: Records a collaborator already stored; a flag that
                was true there but false after the rebuild raises
                ProgressIntegrityError

        Returns:
            ProgressReport
        """
        with bound_user(user_id):
            folded = fold_completions(self.store.events_for(user_id), utc_offset_minutes)
            if persisted is not None:
                check_monotonic([r for r in persisted if r.user_id == user_id], folded.records)

            stats = build_user_stats(
                user_id,
                folded.completions,
                folded.records,
                utc_offset_minutes,
                now=now,
                context=self.context(user_id),
                pain_checkins=self.pain_checkins(user_id),
            )
            milestones = evaluate(self.catalog, stats, previous=self.ledger.stamps(user_id), now=now)
            fresh = self.ledger.record(user_id, milestones)
            with self._lock:
                issues = list(self._ingress_issues.get(user_id, [])) + folded.issues

        log_event(
            "info",
            "progress.recomputed",
            user_id=user_id,
            event_type="recompute",
            extra={
                "records": len(folded.records),
                "harmony_score": stats.harmony_score,
                "newly_achieved": len(fresh),
                "issues": len(issues),
            },
        )
        return ProgressReport(
            user_id=user_id,
            records=folded.records,
            stats=stats,
            milestones=milestones,
            newly_achieved=fresh,
            issues=issues,
        )

    def reset_user(self, user_id: str) -> Dict[str, int]:
        """
        Full reset: drop completions, pain check-ins, user context, ingress
        issues and earned milestones, so the next recompute matches a user
        with no history at all.
        """
        completions = self.store.clear_user(user_id)
        milestones = self.ledger.clear_user(user_id)
        with self._lock:
            pain = len(self._pain.pop(user_id, {}))
            self._contexts.pop(user_id, None)
            self._ingress_issues.pop(user_id, None)
        removed = {
            "completions_removed": completions,
            "pain_checkins_removed": pain,
            "milestones_removed": milestones,
        }
        log_event("info", "progress.reset", user_id=user_id, extra=removed)
        return removed

    def clear(self) -> None:
        """FOR TESTING ONLY."""
        self.store.clear()
        self.ledger = MilestoneLedger()
        with self._lock:
            self._pain.clear()
            self._contexts.clear()
            self._ingress_issues.clear()


progress_service = ProgressService()
