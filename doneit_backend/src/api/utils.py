from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional, Union

# Largest value a 64-bit signed INTEGER column can hold
MAX_TODO_ID = 2**63 - 1


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Normalize a stored timestamp into an aware datetime.

    SQLite hands back ISO8601 text, PostgreSQL hands back datetimes. Naive
    values are assumed to be UTC.
    """
    if value is None:
        return None
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# PUBLIC_INTERFACE
def parse_todo_id(raw: Any) -> Optional[int]:
    """
    Parse a todo identifier taken from a URL path.

    Returns None unless the value is a positive integer written with digits only
    and small enough to be a stored row id.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if 0 < raw <= MAX_TODO_ID else None
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    if not (s.isascii() and s.isdigit()):
        return None
    value = int(s)
    return value if 0 < value <= MAX_TODO_ID else None


def round_half_up_percent(part: int, whole: int) -> int:
    """Percentage of part in whole, rounded half up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)
