"""
Milestone Models

Catalog-driven achievements. Every definition carries a tag naming which
aggregate it reads:
- streak: harmony / category streaks
- completion: total routines
- balance: harmony score and cross-category coverage
- specialization: unique routines in one category
- pain: pain check-in metrics
- journey: days since the wellness journey started
- social: friends, circles, shared routines
- consistency: rolling-window completion ratio, activity streak
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MilestoneStatus = Literal["achieved", "in-progress", "upcoming"]
ThresholdType = Literal["count", "days", "percentage", "boolean"]
MilestoneRarity = Literal["common", "rare", "epic", "legendary"]

MILESTONE_TAGS = (
    "streak",
    "completion",
    "balance",
    "specialization",
    "pain",
    "journey",
    "social",
    "consistency",
)


class MilestoneDefinition(BaseModel):
    """
    Static catalog entry. Versioned with the app, never mutated at runtime.

    `tag` is kept as a free string so a catalog with an unknown tag still
    loads; the engine skips such entries instead of failing the batch.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    tag: str = Field(..., min_length=1)
    name: str = ""
    description: str = ""
    threshold: int = Field(..., ge=1)
    threshold_type: ThresholdType = "count"
    metric: Optional[str] = Field(default=None, description="Field selector within the tag")
    window_days: Optional[int] = Field(default=None, ge=1)
    rarity: MilestoneRarity = "common"
    order_index: int = 0


class MilestoneSummary(BaseModel):
    """Per-user status of one milestone, recomputed on every evaluation."""
    model_config = ConfigDict(frozen=True)

    milestone_id: str
    tag: str
    name: str = ""
    rarity: MilestoneRarity = "common"
    threshold_type: ThresholdType = "count"
    status: MilestoneStatus
    current_value: int = Field(..., ge=0)
    target_value: int = Field(..., ge=1)
    percentage_complete: int = Field(default=0, ge=0, le=100)
    achieved_at: Optional[datetime] = None
    order_index: int = 0

    @property
    def is_achieved(self) -> bool:
        return self.status == "achieved"


class MilestoneStats(BaseModel):
    """Counts over one evaluation, for the progress screen header."""
    model_config = ConfigDict(frozen=True)

    total: int = 0
    achieved: int = 0
    in_progress: int = 0
    upcoming: int = 0
    completion_percentage: int = Field(default=0, ge=0, le=100)
