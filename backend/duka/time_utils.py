from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def local_midnight_utc(now: datetime, tz_name: str = "UTC") -> datetime:
    """
    Midnight of `now`'s local calendar day in `tz_name`, returned as UTC-naive.

    `now` is UTC-naive like everything else stored by the app.
    """
    tz = ZoneInfo(tz_name)
    local = now.replace(tzinfo=timezone.utc).astimezone(tz)
    midnight = local.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(timezone.utc).replace(tzinfo=None)


def local_month_bounds_utc(now: datetime, tz_name: str = "UTC") -> tuple[datetime, datetime]:
    """[start, end) of the calendar month containing `now` in `tz_name`, as UTC-naive."""
    tz = ZoneInfo(tz_name)
    local = now.replace(tzinfo=timezone.utc).astimezone(tz)
    start = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    # Day 28 + 4 days always lands in the next month
    next_month = (start.replace(day=28) + timedelta(days=4)).replace(day=1)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        next_month.astimezone(timezone.utc).replace(tzinfo=None),
    )


def to_local_date(dt: datetime, tz_name: str = "UTC") -> date:
    """Calendar date of a UTC-naive `dt` as seen in `tz_name`."""
    return dt.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name)).date()
