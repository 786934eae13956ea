# Overview: UTC timestamp helpers shared by models and routes.

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC 'now'; every stored timestamp uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _parse_bound(value: str, *, end_of_day: bool) -> datetime:
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    # A bare date as the upper bound covers that whole day
    if end_of_day and len(s) == 10:
        dt = datetime.combine(dt.date(), time.max)
    return dt


def parse_date_range(
    start: Optional[str], end: Optional[str]
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Parse an inclusive ISO-8601 range from query parameters.

    Returns (None, None) unless both bounds are given. Offsets are converted
    to naive UTC. Raises ValueError for unparseable bounds or end < start.
    """
    if not start or not end or not start.strip() or not end.strip():
        return None, None
    lower = _parse_bound(start, end_of_day=False)
    upper = _parse_bound(end, end_of_day=True)
    if upper < lower:
        raise ValueError("endDate must not be before startDate")
    return lower, upper


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a naive-UTC (or aware) datetime as '...Z', second precision."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.replace(microsecond=0).isoformat() + "Z"
