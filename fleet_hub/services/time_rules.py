"""
Time helpers.

All timestamps are stored as naive UTC so SQLite round-trips compare cleanly
with values computed in Python.
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today() -> date:
    return utcnow().date()


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Normalize an incoming datetime to naive UTC (naive values are assumed UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def days_open(start: datetime, end: Optional[datetime] = None) -> int:
    """Whole days a work order has been open, rounded up, never less than 1."""
    end = end or utcnow()
    seconds = (to_naive_utc(end) - to_naive_utc(start)).total_seconds()
    return max(1, math.ceil(seconds / 86400))


def whole_days_between(start: datetime, end: Optional[datetime] = None) -> int:
    """Truncated day count used for downtime totals."""
    end = end or utcnow()
    return int((to_naive_utc(end) - to_naive_utc(start)).total_seconds() // 86400)


def period_window(period: str, ref: Optional[date] = None) -> Tuple[date, date]:
    """Window for a reporting period ending today.

    daily   -> (today, today)
    weekly  -> (Monday of this week, today)
    monthly -> (1st of this month, today)
    """
    ref = ref or today()
    if period == "weekly":
        return ref - timedelta(days=ref.weekday()), ref
    if period == "monthly":
        return ref.replace(day=1), ref
    return ref, ref
