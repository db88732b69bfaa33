"""
Time helpers for feed timestamps.

Planned-feed schedules arrive as ISO-8601 strings, sometimes naive, sometimes with
a `Z` suffix. Everything is normalized to aware datetimes so active-window checks
never compare naive and aware values.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Attach `timezone` to a naive datetime; aware values pass through."""
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=ZoneInfo(timezone))


def parse_datetime(value: str, timezone: str) -> datetime:
    """Parse a feed timestamp; naive values are interpreted in `timezone`."""
    text = value.strip()
    if text[-1:] in {"Z", "z"}:
        text = f"{text[:-1]}+00:00"
    return ensure_tz(datetime.fromisoformat(text), timezone)


def now_in(timezone: str) -> datetime:
    """Current time in the configured app timezone (live incidents are stamped with it)."""
    return datetime.now(ZoneInfo(timezone))
