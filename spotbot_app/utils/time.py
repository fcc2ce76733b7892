"""
Time helpers shared by the governor session files and the sell engine.

Session timestamps are written as RFC3339 UTC strings with millisecond
precision so that sibling processes (and operators reading the files)
agree on one textual format.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

SESSION_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def from_timestamp(ts: float) -> datetime:
    """Epoch seconds to aware UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def format_session_time(ts: datetime) -> str:
    """
    Format a datetime for a session file.

    Args:
        ts: Aware or naive (assumed UTC) datetime

    Returns:
        RFC3339 string with exactly three fractional digits, e.g.
        ``2024-05-01T12:00:00.250Z``
    """
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.strftime(SESSION_TIME_FORMAT)[:-4] + "Z"


def parse_session_time(raw: str) -> Optional[datetime]:
    """
    Parse a session-file timestamp written by :func:`format_session_time`.

    Returns None for empty or unreadable content; a torn or foreign file
    is treated as "no previous request".
    """
    raw = raw.strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def from_millis(ms: Optional[int]) -> Optional[datetime]:
    """Venue millisecond timestamp to aware UTC datetime."""
    if ms is None:
        return None
    return datetime.fromtimestamp(ms / 1000.0, tz=timezone.utc)


def since(window: timedelta, now: Optional[datetime] = None) -> datetime:
    """Start of a look-back window ending at ``now``."""
    return (now or utc_now()) - window
