"""
Calendar Resolver

Maps absolute instants to local calendar dates under the UTC offset the
client declared when it acted. There is no server-side default timezone:
every caller passes the offset explicitly.

A missing or malformed offset falls back to UTC and is reported as a
data-quality issue rather than guessed.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from harmony_engine.core.logging import log_event
from harmony_engine.models.progress import DataQualityIssue

# Real-world offsets span UTC-12:00 .. UTC+14:00
MIN_OFFSET_MINUTES = -12 * 60
MAX_OFFSET_MINUTES = 14 * 60

DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class LocalDateResolution:
    local_date: str
    offset_minutes: int  # offset actually applied
    offset_valid: bool
    issue: Optional[DataQualityIssue] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def check_offset(utc_offset_minutes) -> Optional[str]:
    """Return an issue code for a bad offset, or None when it is usable."""
    if utc_offset_minutes is None:
        return "missing_offset"
    if isinstance(utc_offset_minutes, bool) or not isinstance(utc_offset_minutes, int):
        return "invalid_offset"
    if not MIN_OFFSET_MINUTES <= utc_offset_minutes <= MAX_OFFSET_MINUTES:
        return "invalid_offset"
    return None


def resolve_local_date(
    timestamp: datetime,
    utc_offset_minutes,
    *,
    user_id: Optional[str] = None,
) -> LocalDateResolution:
    """
    Resolve the local calendar date of `timestamp`.

    Args:
        timestamp: Absolute instant (naive values are taken as UTC)
        utc_offset_minutes: Client offset, e.g. -300 for UTC-05:00
        user_id: Only used to tag the data-quality issue

    Returns:
        LocalDateResolution; offset_valid is False when UTC was substituted
    """
    issue_code = check_offset(utc_offset_minutes)
    offset = 0 if issue_code else utc_offset_minutes
    shifted = _aware(timestamp).astimezone(timezone.utc) + timedelta(minutes=offset)
    local = shifted.date().isoformat()

    if issue_code is None:
        return LocalDateResolution(local_date=local, offset_minutes=offset, offset_valid=True)

    issue = DataQualityIssue(
        code=issue_code,
        user_id=user_id,
        detail=f"offset={utc_offset_minutes!r}; resolved {local} in UTC",
    )
    log_event(
        "warning",
        "calendar.offset_fallback",
        user_id=user_id,
        local_date=local,
        error_code=issue_code,
        extra={"offset": repr(utc_offset_minutes)},
    )
    return LocalDateResolution(local_date=local, offset_minutes=0, offset_valid=False, issue=issue)


def local_date(timestamp: datetime, utc_offset_minutes) -> str:
    """Calendar date (YYYY-MM-DD) of `timestamp` under the given offset."""
    return resolve_local_date(timestamp, utc_offset_minutes).local_date


def today(utc_offset_minutes, now: Optional[datetime] = None) -> str:
    return local_date(now or _utc_now(), utc_offset_minutes)


def yesterday(utc_offset_minutes, now: Optional[datetime] = None) -> str:
    return shift_local_date(today(utc_offset_minutes, now), -1)


def parse_local_date(value: str) -> date:
    """Parse YYYY-MM-DD; raises ValueError on anything else."""
    if not isinstance(value, str) or len(value) != 10:
        raise ValueError(f"not a local date: {value!r}")
    return datetime.strptime(value, DATE_FORMAT).date()


def shift_local_date(value: str, days: int) -> str:
    return (parse_local_date(value) + timedelta(days=days)).isoformat()


def days_between(start: str, end: str) -> int:
    """Whole calendar days from start to end (positive when end is later)."""
    return (parse_local_date(end) - parse_local_date(start)).days
