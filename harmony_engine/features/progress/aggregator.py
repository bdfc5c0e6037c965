"""
Daily Progress Aggregator

Folds completion events into one DailyProgressRecord per (user, local date).

Guarantees:
- A category flag only ever moves false -> true (monotonic OR merge).
- Replaying an event is a no-op; event order never changes the result.
- Completion counts are tracked beside the flags, deduplicated by event key.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError as PydanticValidationError

from harmony_engine.core.errors import ProgressIntegrityError
from harmony_engine.core.logging import log_event
from harmony_engine.features.calendar.resolver import resolve_local_date
from harmony_engine.models.progress import (
    Category,
    CompletionEvent,
    DailyProgressRecord,
    DataQualityIssue,
)

RecordKey = Tuple[str, str]


class DailyProgressAggregator:
    """In-memory, lock-guarded progress table partitioned by user."""

    def __init__(self) -> None:
        self._records: Dict[RecordKey, DailyProgressRecord] = {}
        self._completions: Dict[str, Dict[str, CompletionEvent]] = {}
        self._issues: List[DataQualityIssue] = []
        self._lock = threading.Lock()

    def record_completion(
        self,
        event: CompletionEvent,
        utc_offset_minutes: Optional[int] = None,
    ) -> DailyProgressRecord:
        """
        Upsert the record for the event's local date, setting its category flag.

        The offset captured on the event wins over `utc_offset_minutes`.
        """
        offset = event.utc_offset_minutes if event.utc_offset_minutes is not None else utc_offset_minutes
        resolution = resolve_local_date(event.occurred_at, offset, user_id=event.user_id)
        key = (event.user_id, resolution.local_date)

        with self._lock:
            if resolution.issue is not None:
                self._issues.append(resolution.issue)

            self._completions.setdefault(event.user_id, {}).setdefault(event.key, event)

            marked = DailyProgressRecord(user_id=event.user_id, local_date=resolution.local_date).with_category(event.category)
            existing = self._records.get(key)
            updated = marked if existing is None else existing.merge(marked)
            self._records[key] = updated
            return updated

    def records_for(self, user_id: str) -> List[DailyProgressRecord]:
        with self._lock:
            rows = [r for (uid, _), r in self._records.items() if uid == user_id]
        return sorted(rows, key=lambda r: r.local_date)

    def completions_for(self, user_id: str) -> List[CompletionEvent]:
        with self._lock:
            events = list(self._completions.get(user_id, {}).values())
        return sorted(events, key=lambda e: (e.occurred_at, e.key))

    def completion_count(self, user_id: str) -> int:
        return len(self._completions.get(user_id, {}))

    def issues(self, user_id: Optional[str] = None) -> List[DataQualityIssue]:
        with self._lock:
            if user_id is None:
                return list(self._issues)
            return [i for i in self._issues if i.user_id == user_id]


@dataclass
class FoldResult:
    records: List[DailyProgressRecord] = field(default_factory=list)
    completions: List[CompletionEvent] = field(default_factory=list)
    issues: List[DataQualityIssue] = field(default_factory=list)


def fold_completions(
    events: Iterable[CompletionEvent],
    utc_offset_minutes: Optional[int] = None,
) -> FoldResult:
    """
    Pure fold of events into daily records.

    Same events in any order (with any duplicates) => identical result.
    """
    aggregator = DailyProgressAggregator()
    users: Set[str] = set()
    for event in events:
        aggregator.record_completion(event, utc_offset_minutes)
        users.add(event.user_id)

    result = FoldResult(issues=aggregator.issues())
    for user_id in sorted(users):
        result.records.extend(aggregator.records_for(user_id))
        result.completions.extend(aggregator.completions_for(user_id))
    return result


def parse_events(
    items: Iterable[Any],
    issues: Optional[List[DataQualityIssue]] = None,
) -> List[CompletionEvent]:
    """
    Coerce raw ingress rows into events, skipping the malformed ones.

    Skipped rows are reported through `issues` (when given) and the log.
    """
    parsed: List[CompletionEvent] = []
    valid_categories = {c.value for c in Category}
    for item in items:
        if isinstance(item, CompletionEvent):
            parsed.append(item)
            continue
        raw = item if isinstance(item, dict) else {}
        user_id = raw.get("user_id") if isinstance(raw.get("user_id"), str) else None
        try:
            parsed.append(CompletionEvent.model_validate(item))
        except PydanticValidationError as exc:
            category = raw.get("category")
            known = isinstance(category, str) and category in valid_categories
            code = "invalid_event" if known else "unknown_category"
            issue = DataQualityIssue(code=code, user_id=user_id, detail=str(exc.errors()[0].get("msg", "")))
            if issues is not None:
                issues.append(issue)
            log_event("warning", "progress.event_skipped", user_id=user_id, error_code=code)
    return parsed


def check_monotonic(
    before: Iterable[DailyProgressRecord],
    after: Iterable[DailyProgressRecord],
) -> None:
    """
    Verify no flag regressed between two versions of a user's records.

    Raises ProgressIntegrityError on the first regression found; a record
    that disappeared entirely counts as all of its true flags regressing.
    """
    later = {r.key: r for r in after}
    for old in before:
        new = later.get(old.key)
        if new is None:
            new = DailyProgressRecord(user_id=old.user_id, local_date=old.local_date)
        _raise_on_regression(old, new)


def _raise_on_regression(old: DailyProgressRecord, new: DailyProgressRecord) -> None:
    regressed = old.regressed_fields(new)
    if not regressed:
        return
    log_event(
        "error",
        "progress.integrity_violation",
        user_id=old.user_id,
        local_date=old.local_date,
        error_code=ProgressIntegrityError.code,
        extra={"fields": ",".join(regressed)},
    )
    raise ProgressIntegrityError(
        f"Daily progress for {old.local_date} regressed: {', '.join(regressed)}",
        user_id=old.user_id,
        local_date=old.local_date,
        fields=regressed,
    )
