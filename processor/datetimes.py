"""Date and time helpers for upstream records and store values."""
import re
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from processor.errors import DateError

REFERENCE_TIMEZONE = 'UTC'
STORAGE_FORMAT = '%Y-%m-%dT%H:%M:%SZ'
DEFAULT_HOUR = 12

DATE_FORMATS = [
    '%Y-%m-%d',      # ISO 8601
    '%m/%d/%Y',      # US format
    '%m-%d-%Y',      # US format with dashes
    '%B %d, %Y',     # Full month name
    '%b %d, %Y',     # Abbreviated month name
    '%A, %B %d, %Y', # Weekday and full month name
    '%Y/%m/%d',      # Alternative ISO format
]

TIME_PATTERN = re.compile(r'(\d{1,2}):(\d{2})\s*(AM|PM)', re.IGNORECASE)
ISO_DATETIME = re.compile(r'^(\d{4}-\d{2}-\d{2})T')


def parse_event_datetime(date_str: Optional[str], time_str: Optional[str] = '') -> datetime:
    """
    Combine an upstream date string and time string into a UTC-tagged instant.

    ISO datetimes keep only their date part. When no separate time is
    given, a 12-hour time embedded in the date string is used instead. A time
    that is absent or not in 'H:MM AM/PM' form falls back to noon.

    Args:
        date_str: Upstream date (e.g. "2024-01-15T00:00:00", "1/15/2024")
        time_str: Upstream time (e.g. "6:30 PM"), may be empty

    Returns:
        Timezone-aware datetime tagged UTC

    Raises:
        DateError: If the date is missing or matches no known format
    """
    if not date_str or not str(date_str).strip():
        raise DateError('missing date')

    date_part = str(date_str).strip()
    iso = ISO_DATETIME.match(date_part)
    if iso:
        date_part = iso.group(1)
    time_part = (time_str or '').strip()

    if not time_part:
        embedded = TIME_PATTERN.search(date_part)
        if embedded:
            time_part = embedded.group(0)
            date_part = date_part[:embedded.start()].strip()

    day = _parse_date(date_part)
    if day is None:
        raise DateError(f'unparseable date: {date_str!r}')

    hour, minute = _parse_time(time_part)
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def _parse_date(date_part: str) -> Optional[datetime]:
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_part, fmt)
        except ValueError:
            continue
    return None


def _parse_time(time_part: str) -> tuple[int, int]:
    match = TIME_PATTERN.search(time_part) if time_part else None
    if not match:
        return DEFAULT_HOUR, 0

    hour = int(match.group(1))
    minute = int(match.group(2))
    meridian = match.group(3).upper()

    if hour > 12 or minute > 59:
        return DEFAULT_HOUR, 0
    if meridian == 'PM' and hour != 12:
        hour += 12
    if meridian == 'AM' and hour == 12:
        hour = 0
    return hour, minute


def to_timezone(instant: datetime, tz_name: str,
                reference: str = REFERENCE_TIMEZONE) -> datetime:
    """
    Re-express an instant in another timezone.

    Naive datetimes are first interpreted in the reference zone.

    Args:
        instant: Datetime to convert
        tz_name: IANA name of the target zone
        reference: IANA name used for naive input

    Returns:
        Aware datetime in the target zone
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=ZoneInfo(reference))
    return instant.astimezone(ZoneInfo(tz_name))


def to_storage_string(instant: datetime) -> str:
    """Format an aware datetime as a sortable UTC string."""
    return instant.astimezone(timezone.utc).strftime(STORAGE_FORMAT)


def from_storage_string(value: str) -> datetime:
    """Parse a value written by to_storage_string."""
    return datetime.strptime(value, STORAGE_FORMAT).replace(tzinfo=timezone.utc)
