"""
Progress domain models.

A CompletionEvent is the raw, immutable ingress record: one per routine a
user finished. A DailyProgressRecord is the per-(user, local date) fold of
those events into three category flags.
"""

import hashlib
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """The three routine categories."""
    MIND = "Mind"
    BODY = "Body"
    SOUL = "Soul"


CATEGORIES = (Category.MIND, Category.BODY, Category.SOUL)

LOCAL_DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class CompletionEvent(BaseModel):
    """A routine completion as reported by the client."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    category: Category
    occurred_at: datetime
    routine_id: str = Field(..., min_length=1)
    event_id: Optional[str] = None
    utc_offset_minutes: Optional[int] = None  # offset the client reported when acting

    @field_validator("occurred_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def key(self) -> str:
        """Stable identity used to deduplicate replays."""
        if self.event_id:
            return self.event_id
        raw = "|".join([
            self.user_id,
            self.category.value,
            self.occurred_at.astimezone(timezone.utc).isoformat(),
            self.routine_id,
        ])
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


class DailyProgressRecord(BaseModel):
    """Which categories a user satisfied on one local calendar date."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    local_date: str = Field(..., pattern=LOCAL_DATE_PATTERN)
    mind_complete: bool = False
    body_complete: bool = False
    soul_complete: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.user_id, self.local_date)

    @property
    def is_harmony(self) -> bool:
        """All three categories done that day."""
        return self.mind_complete and self.body_complete and self.soul_complete

    @property
    def has_activity(self) -> bool:
        return self.mind_complete or self.body_complete or self.soul_complete

    def is_complete(self, category: Category) -> bool:
        return getattr(self, _FLAG_FIELDS[category])

    def with_category(self, category: Category) -> "DailyProgressRecord":
        if self.is_complete(category):
            return self
        return self.model_copy(update={_FLAG_FIELDS[category]: True})

    def merge(self, other: "DailyProgressRecord") -> "DailyProgressRecord":
        """Monotonic OR of both records; order of arguments does not matter."""
        if self.key != other.key:
            raise ValueError(f"cannot merge records for different keys: {self.key} vs {other.key}")
        return DailyProgressRecord(
            user_id=self.user_id,
            local_date=self.local_date,
            mind_complete=self.mind_complete or other.mind_complete,
            body_complete=self.body_complete or other.body_complete,
            soul_complete=self.soul_complete or other.soul_complete,
        )

    def regressed_fields(self, newer: "DailyProgressRecord") -> list[str]:
        """Flags that are true here but false in `newer`."""
        return [
            name for name in _FLAG_FIELDS.values()
            if getattr(self, name) and not getattr(newer, name)
        ]


_FLAG_FIELDS = {
    Category.MIND: "mind_complete",
    Category.BODY: "body_complete",
    Category.SOUL: "soul_complete",
}


class DataQualityIssue(BaseModel):
    """
    Diagnostic signal for malformed input that was recovered locally.

    Codes:
    - "missing_offset" / "invalid_offset": UTC was used instead
    - "unknown_category": event skipped
    - "invalid_event": event skipped
    - "invalid_date": date string skipped
    """
    model_config = ConfigDict(frozen=True)

    code: str
    user_id: Optional[str] = None
    detail: str = ""


class PainCheckIn(BaseModel):
    """One daily pain check-in (0 = pain free, 10 = worst)."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    check_in_date: str = Field(..., pattern=LOCAL_DATE_PATTERN)
    pain_level: int = Field(..., ge=0, le=10)


class UserContext(BaseModel):
    """Facts owned by other subsystems that milestones read."""
    model_config = ConfigDict(frozen=True)

    journey_started_at: Optional[datetime] = None
    friend_count: int = Field(default=0, ge=0)
    circles_created: int = Field(default=0, ge=0)
    routines_shared: int = Field(default=0, ge=0)
    top_routine_saves: int = Field(default=0, ge=0)
    custom_routines_created: int = Field(default=0, ge=0)

    @field_validator("journey_started_at")
    @classmethod
    def _aware_journey(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
