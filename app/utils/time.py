from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc_aware(ts: Any) -> datetime:
    """
    Convert a timestamp (string/datetime/None) to timezone-aware UTC datetime.
    - naive datetime -> assume UTC (SQLite drops tzinfo on the way back)
    - iso string without tz -> assume UTC
    - iso string with tz -> convert to UTC
    """
    if ts is None:
        return datetime.min.replace(tzinfo=timezone.utc)

    if isinstance(ts, datetime):
        return ts.astimezone(timezone.utc) if ts.tzinfo else ts.replace(tzinfo=timezone.utc)

    s = str(ts).strip().replace("Z", "+00:00")
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    return dt


def days_ago(days: int) -> datetime:
    return now_utc() - timedelta(days=days)
