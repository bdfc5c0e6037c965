"""
Aggregate models: PainStatistics, UserStatsSnapshot.
All derived, all safe to discard and rebuild from source events.
"""

from typing import Dict, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from harmony_engine.models.progress import Category
from harmony_engine.models.streak import CategoryStreak

PainTrend = Literal["decreasing", "stable", "increasing", "insufficient_data"]


class PainStatistics(BaseModel):
    """Pain check-in summary over a trailing window."""

    model_config = ConfigDict(frozen=True)

    checkin_count: int = Field(default=0, ge=0, description="All check-ins ever recorded")
    current_pain: int = Field(default=0, ge=0, le=10, description="Most recent pain level")
    avg_7_days: float = Field(default=0.0, ge=0, le=10)
    avg_30_days: float = Field(default=0.0, ge=0, le=10)
    pain_free_days: int = Field(default=0, ge=0, description="Pain-free check-ins inside the window")
    checkin_streak: int = Field(default=0, ge=0, description="Consecutive days with a check-in")
    pain_free_streak: int = Field(default=0, ge=0, description="Consecutive pain-free check-in days")
    improvement_pct: int = Field(default=0, ge=0, le=100, description="Pain reduction across the window")
    trend: PainTrend = "insufficient_data"


class UserStatsSnapshot(BaseModel):
    """Everything milestones and dashboards read about one user."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    as_of_date: str = Field(..., description="Local date the snapshot was evaluated on")
    category_streaks: Dict[Category, CategoryStreak] = Field(default_factory=dict)
    harmony_streak: CategoryStreak = Field(default_factory=lambda: CategoryStreak(category="Harmony"))
    activity_streak: CategoryStreak = Field(default_factory=lambda: CategoryStreak(category="Activity"))
    harmony_score: int = Field(default=0, ge=0, le=100)
    total_routines: int = Field(default=0, ge=0)
    routines_per_category: Dict[Category, int] = Field(default_factory=dict)
    unique_routines_per_category: Dict[Category, int] = Field(default_factory=dict)
    last_activity_date: Optional[str] = None
    last_activity_per_category: Dict[Category, Optional[str]] = Field(default_factory=dict)
    activity_dates: Tuple[str, ...] = Field(default=(), description="Sorted local dates with any completion")
    pain: PainStatistics = Field(default_factory=PainStatistics)
    pain_levels: Dict[str, int] = Field(default_factory=dict, description="Pain level per local date up to as_of_date")
    journey_days: Optional[int] = Field(default=None, description="None until the journey starts")
    friend_count: int = Field(default=0, ge=0)
    circles_created: int = Field(default=0, ge=0)
    routines_shared: int = Field(default=0, ge=0)
    top_routine_saves: int = Field(default=0, ge=0)
    custom_routines_created: int = Field(default=0, ge=0)

    def streak_for(self, category: Category) -> CategoryStreak:
        return self.category_streaks.get(category) or CategoryStreak(category=category.value)

    def unique_for(self, category: Category) -> int:
        return self.unique_routines_per_category.get(category, 0)

    def total_for(self, category: Category) -> int:
        return self.routines_per_category.get(category, 0)


AvatarLightState = Literal["Dormant", "Sleepy", "Awakening", "Glowing", "Radiant"]


class AvatarState(BaseModel):
    """Dashboard light for one category, driven by today's progress."""

    model_config = ConfigDict(frozen=True)

    category: Category
    light_state: AvatarLightState = "Dormant"
    current_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[str] = None
