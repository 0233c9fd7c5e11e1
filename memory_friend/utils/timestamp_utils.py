"""
Timestamp utilities for consistent time handling across the system.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo


def to_local(moment: datetime, tz_name: Optional[str] = None) -> datetime:
    """Convert an aware datetime to the named timezone, or to host local time.

    Host local time uses the host's rules for that moment, DST included.
    """
    if tz_name:
        return moment.astimezone(ZoneInfo(tz_name))
    return moment.astimezone()


def parse_day(day: str) -> date:
    """Parse a YYYY-MM-DD calendar day.

    Raises:
        ValueError: If the string is not a valid calendar day
    """
    return date.fromisoformat(day.strip())


def day_bounds(day: str, tz_name: Optional[str] = None) -> Tuple[datetime, datetime]:
    """Compute the first and last millisecond of a local calendar day.

    Args:
        day: Calendar day as YYYY-MM-DD
        tz_name: IANA timezone name (host local time if None)

    Returns:
        Tuple of timezone-aware (start, end) datetimes, 00:00:00.000 and 23:59:59.999
    """
    calendar_day = parse_day(day)
    start = datetime.combine(calendar_day, time.min)
    end = datetime.combine(calendar_day, time(23, 59, 59, 999000))
    if tz_name:
        tz = ZoneInfo(tz_name)
        return start.replace(tzinfo=tz), end.replace(tzinfo=tz)
    # Naive astimezone() applies the host rules in force on that day
    return start.astimezone(), end.astimezone()


def to_iso(moment: datetime) -> str:
    """Format a datetime for backend range filters, keeping millisecond precision."""
    return moment.isoformat(timespec='milliseconds')


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a backend timestamp string into an aware datetime.

    Naive values are treated as UTC. Returns None for empty values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
