from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from harmony_engine.features.milestones.summary import (
    filter_milestones,
    group_by_tag,
    milestone_stats,
    next_milestone,
    progress_text,
    sort_for_display,
)
from harmony_engine.features.progress.service import progress_service
from harmony_engine.models.milestone import MilestoneStatus

router = APIRouter()


class CelebrateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


@router.get("/v1/milestones")
def list_milestones(
    user_id: str = Query(..., min_length=1),
    utc_offset_minutes: Optional[int] = Query(None),
    tag: Optional[str] = Query(None),
    status: Optional[MilestoneStatus] = Query(None),
):
    """
    Evaluate the catalog for a user; optionally filter by tag and status.

    `milestones` is in display order (achieved, then nearest to done, then
    rarest); `by_tag` lists ids per tag in catalog order.
    """
    report = progress_service.recompute(user_id, utc_offset_minutes)
    rows = sort_for_display(filter_milestones(report.milestones, tag=tag, status=status))
    upcoming = next_milestone(report.milestones)
    return {
        "milestones": [
            {**m.model_dump(mode="json"), "progress_text": progress_text(m)}
            for m in rows
        ],
        "by_tag": {t: [m.milestone_id for m in ms] for t, ms in group_by_tag(rows).items()},
        "stats": milestone_stats(report.milestones).model_dump(),
        "next": upcoming.milestone_id if upcoming else None,
        "newly_achieved": [m.milestone_id for m in report.newly_achieved],
        "catalog_version": report.catalog_version,
    }


@router.get("/v1/milestones/uncelebrated")
def list_uncelebrated(user_id: str = Query(..., min_length=1)):
    stamps = progress_service.ledger.stamps(user_id)
    return {
        "milestones": [
            {"milestone_id": mid, "achieved_at": stamps[mid].isoformat()}
            for mid in progress_service.ledger.uncelebrated(user_id)
        ]
    }


@router.post("/v1/milestones/{milestone_id}/celebrate")
def celebrate(milestone_id: str, request: CelebrateRequest):
    progress_service.ledger.mark_celebrated(request.user_id, milestone_id)
    return {"ack": True}
