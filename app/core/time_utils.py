from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treats naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def business_local_date(now_utc: datetime, tz_name: str) -> date:
    """Converts UTC datetime to the calendar date of the business timezone."""
    return as_utc(now_utc).astimezone(ZoneInfo(tz_name)).date()


def previous_day(day: date) -> date:
    return day - timedelta(days=1)


def business_day_start_utc(day: date, tz_name: str) -> datetime:
    local_start = datetime.combine(day, time.min, tzinfo=ZoneInfo(tz_name))
    return local_start.astimezone(timezone.utc)
