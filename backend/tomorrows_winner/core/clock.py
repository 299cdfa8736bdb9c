"""Wall-clock helpers for the contest reference timezone.

Every scheduling decision is taken in America/New_York regardless of where the
process runs. Instants are timezone-aware ``datetime`` values; naive values are
treated as UTC because that is how SQLite hands back ``DateTime(timezone=True)``
columns.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

REFERENCE_TZ_NAME = "America/New_York"
ET = ZoneInfo(REFERENCE_TZ_NAME)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_et(value: datetime) -> datetime:
    return as_utc(value).astimezone(ET)


def et_hour(value: datetime) -> int:
    return to_et(value).hour


def et_minute(value: datetime) -> int:
    return to_et(value).minute


def et_date(value: datetime) -> date:
    return to_et(value).date()


def et_date_iso(value: datetime) -> str:
    return et_date(value).isoformat()


def et_day_of_week(value: datetime) -> int:
    """Day of week in ET with 0=Sunday .. 6=Saturday."""
    return (to_et(value).weekday() + 1) % 7


def is_weekday(value: datetime) -> bool:
    return 1 <= et_day_of_week(value) <= 5


def is_time_match(value: datetime, hour: int, minute: int) -> bool:
    local = to_et(value)
    return local.hour == hour and local.minute == minute


def local_midnight(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=ET)
