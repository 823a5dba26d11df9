"""
Time Utilities

Cached responses are stamped with the moment they were stored so that the
gateway can report entry ages. All timestamps are timezone-aware UTC
datetime objects.
"""

from datetime import datetime, timezone
from typing import Optional


def current_utc_datetime() -> datetime:
    """
    Get current UTC datetime.

    Returns:
        datetime: Current time as timezone-aware datetime in UTC

    Example:
        >>> current_utc_datetime()
        datetime.datetime(2024, 1, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)
    """
    return datetime.now(timezone.utc)


def seconds_since(dt: datetime, now: Optional[datetime] = None) -> float:
    """
    Number of seconds elapsed between dt and now.

    Args:
        dt: Datetime object (can be naive or timezone-aware)
        now: Reference time (defaults to the current UTC time)

    Returns:
        float: Elapsed seconds, never negative

    Examples:
        >>> start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        >>> seconds_since(start, now=datetime(2024, 1, 1, 12, 1, 30, tzinfo=timezone.utc))
        90.0

    Notes:
        - If datetime is naive (no timezone), UTC is assumed
        - Clock skew producing a future dt yields 0.0
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    if now is None:
        now = current_utc_datetime()

    return max(0.0, (now - dt).total_seconds())
