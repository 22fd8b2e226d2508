"""
Time utilities.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
columns, so every comparison against "now" goes through ``ensure_utc``.
"""

import math
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Attach UTC to a naive datetime.

    Args:
        dt: Datetime read from the database or None

    Returns:
        Timezone-aware datetime, or None if dt is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def is_in_future(dt: datetime | None, now: datetime | None = None) -> bool:
    """True if dt is set and later than now."""
    if dt is None:
        return False
    return ensure_utc(dt) > (now or utc_now())  # type: ignore[operator]


def minutes_until(dt: datetime, now: datetime | None = None) -> int:
    """
    Whole minutes remaining until dt, rounded up.

    Returns 0 once dt has passed.
    """
    remaining: timedelta = ensure_utc(dt) - (now or utc_now())  # type: ignore[operator]
    seconds = remaining.total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)


def format_iso8601(dt: datetime) -> str:
    """
    Format a datetime as ISO 8601 string.

    Args:
        dt: The datetime to format

    Returns:
        ISO 8601 formatted string (e.g., "2024-01-15T10:30:00Z")
    """
    dt = ensure_utc(dt)  # type: ignore[assignment]
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")
