from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

StreakLabel = Literal["Mind", "Body", "Soul", "Harmony", "Activity"]


class CategoryStreak(BaseModel):
    """
    Derived streak for one condition. Day-level, recomputed on demand from
    the set of local dates where the condition held; never authoritative.
    """
    model_config = ConfigDict(frozen=True)

    category: StreakLabel
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)

    @property
    def is_active(self) -> bool:
        return self.current_streak > 0
