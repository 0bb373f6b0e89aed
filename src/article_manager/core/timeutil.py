"""Time helpers shared by the domain and the API layer.

All instants are stored as timezone-aware UTC datetimes. Responses render
them in the configured display timezone using ``DATETIME_FORMAT``.
"""

from datetime import UTC, datetime, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_TIMEZONE = "Asia/Tokyo"


def utcnow() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC.

    SQLite drops tzinfo on round trips, so values read back from it are naive.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@lru_cache
def get_timezone(name: str = DEFAULT_TIMEZONE) -> tzinfo:
    """Load (once) the named IANA timezone."""
    return ZoneInfo(name)


def format_datetime(value: datetime, tz_name: str = DEFAULT_TIMEZONE) -> str:
    """Format an instant as ``YYYY-MM-DD HH:MM:SS`` in the given timezone.

    Args:
        value: Instant to format (naive values are treated as UTC)
        tz_name: IANA timezone name

    Returns:
        Formatted local time
    """
    return ensure_utc(value).astimezone(get_timezone(tz_name)).strftime(DATETIME_FORMAT)
