"""Candidate visibility window.

Candidates are listed for a fixed number of days after submission. The
remaining time is always derived from ``end_date`` at read time.
"""
from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Optional, Tuple, Union

from lodge_access.config import candidate_window_days

DateLike = Union[date, datetime]

SECONDS_PER_DAY = 60 * 60 * 24


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None) if value.tzinfo else value
    return datetime(value.year, value.month, value.day)


def candidate_window(
    start: Optional[DateLike] = None, days: Optional[int] = None
) -> Tuple[date, date]:
    """Return (start_date, end_date) for a new candidate."""
    start_day = _as_datetime(start or datetime.utcnow()).date()
    return start_day, start_day + timedelta(days=days or candidate_window_days())


def days_left(end_date: Optional[DateLike], now: Optional[DateLike] = None) -> int:
    if end_date is None:
        return 0
    remaining = _as_datetime(end_date) - _as_datetime(now or datetime.utcnow())
    return max(0, math.ceil(remaining.total_seconds() / SECONDS_PER_DAY))


def is_active(end_date: Optional[DateLike], now: Optional[DateLike] = None) -> bool:
    if end_date is None:
        return False
    return _as_datetime(end_date) > _as_datetime(now or datetime.utcnow())
