from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from harmony_engine.core.errors import ValidationError
from harmony_engine.features.calendar.resolver import resolve_local_date
from harmony_engine.features.harmony.score import HarmonyScoreCalculator
from harmony_engine.features.progress.service import progress_service
from harmony_engine.features.stats.avatar import avatar_states
from harmony_engine.models.progress import (
    Category,
    CompletionEvent,
    DailyProgressRecord,
    PainCheckIn,
    UserContext,
)

router = APIRouter()


class CompletionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    category: Category
    routine_id: str = Field(..., min_length=1)
    occurred_at: Optional[datetime] = None
    event_id: Optional[str] = None
    utc_offset_minutes: Optional[int] = None


class RecomputeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    utc_offset_minutes: Optional[int] = None
    persisted: Optional[List[DailyProgressRecord]] = None


class CompletionBatchRequest(BaseModel):
    events: List[Any] = Field(default_factory=list)


class ContextRequest(UserContext):
    user_id: str = Field(..., min_length=1)


class ResetRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


@router.post("/v1/progress/completions")
def record_completion(request: CompletionRequest):
    """Record one routine completion and return the day it landed on."""
    event = CompletionEvent(
        user_id=request.user_id,
        category=request.category,
        routine_id=request.routine_id,
        occurred_at=_normalize(request.occurred_at),
        event_id=request.event_id,
        utc_offset_minutes=request.utc_offset_minutes,
    )
    appended = progress_service.record_completion(event)
    resolution = resolve_local_date(event.occurred_at, event.utc_offset_minutes, user_id=event.user_id)
    records = progress_service.daily_records(request.user_id, request.utc_offset_minutes)
    record = next((r for r in records if r.local_date == resolution.local_date), None)
    return {
        "appended": appended,
        "local_date": resolution.local_date,
        "record": record.model_dump() if record else None,
        "issues": [resolution.issue.model_dump()] if resolution.issue else [],
    }


@router.post("/v1/progress/completions/batch")
def record_completion_batch(request: CompletionBatchRequest):
    """Bulk ingress: malformed rows are skipped and reported, the rest recorded."""
    appended, issues = progress_service.record_completions(request.events)
    return {
        "received": len(request.events),
        "appended": appended,
        "issues": [i.model_dump() for i in issues],
    }


@router.post("/v1/progress/pain-checkins")
def record_pain_checkin(checkin: PainCheckIn):
    progress_service.record_pain_checkin(checkin)
    return {"ack": True}


@router.put("/v1/progress/context")
def set_context(request: ContextRequest):
    context = UserContext(**request.model_dump(exclude={"user_id"}))
    progress_service.set_context(request.user_id, context)
    return {"ack": True}


@router.get("/v1/progress/daily")
def get_daily_progress(
    user_id: str = Query(..., min_length=1),
    utc_offset_minutes: Optional[int] = Query(None),
):
    records = progress_service.daily_records(user_id, utc_offset_minutes)
    return {"records": [r.model_dump() for r in records]}


@router.get("/v1/progress/stats")
def get_stats(
    user_id: str = Query(..., min_length=1),
    utc_offset_minutes: Optional[int] = Query(None),
):
    """Stats snapshot, harmony score breakdown and avatar lights."""
    stats = progress_service.stats(user_id, utc_offset_minutes)
    components = HarmonyScoreCalculator.compute_components(
        stats.streak_for(Category.MIND).current_streak,
        stats.streak_for(Category.BODY).current_streak,
        stats.streak_for(Category.SOUL).current_streak,
    )
    records = progress_service.daily_records(user_id, utc_offset_minutes)
    return {
        "stats": stats.model_dump(mode="json"),
        "harmony": components.to_dict(),
        "avatars": [a.model_dump(mode="json") for a in avatar_states(records, utc_offset_minutes)],
    }


@router.post("/v1/progress/recompute")
def recompute(request: RecomputeRequest):
    """Rebuild everything for one user; `persisted` rows are checked for regressions."""
    foreign = {r.user_id for r in request.persisted or []} - {request.user_id}
    if foreign:
        raise ValidationError(f"Persisted records belong to other users: {', '.join(sorted(foreign))}")
    report = progress_service.recompute(
        request.user_id,
        request.utc_offset_minutes,
        persisted=request.persisted,
    )
    return report.to_dict()


@router.post("/v1/progress/reset")
def reset_progress(request: ResetRequest):
    return progress_service.reset_user(request.user_id)


def _normalize(moment: Optional[datetime]) -> datetime:
    if moment is None:
        return datetime.now(timezone.utc)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
