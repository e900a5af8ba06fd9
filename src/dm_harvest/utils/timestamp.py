from datetime import date, datetime, time, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def _ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(raw_timestamp: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (as found in `time[datetime]`) into a UTC datetime.

    Falls back to dateutil for the odd non-ISO value. Returns None for anything
    that cannot be parsed, never raises.
    """
    if isinstance(raw_timestamp, datetime):
        return _ensure_utc(raw_timestamp)

    if not isinstance(raw_timestamp, str):
        return None

    value = raw_timestamp.strip()
    if not value:
        return None

    try:
        return _ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        pass

    try:
        return _ensure_utc(date_parser.parse(value))
    except (ValueError, OverflowError):
        return None


def calendar_day(raw_timestamp: Any) -> Optional[str]:
    """Return the UTC calendar day (YYYY-MM-DD) of a timestamp, or None."""
    dt = parse_timestamp(raw_timestamp)
    if dt is None:
        return None
    return dt.date().isoformat()


def start_of_day_utc(day: date) -> datetime:
    """Midnight UTC at the start of the given date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)
