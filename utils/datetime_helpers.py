"""Timezone-aware date/time helpers for the parking garage.

The engine works with naive datetimes expressed in the garage's configured
timezone; these helpers convert at the edges (request input, storage).
"""

from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app

DB_TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_timezone() -> ZoneInfo:
    """Get the configured timezone."""
    tz_name = current_app.config.get('TIMEZONE', 'Europe/Madrid')
    return ZoneInfo(tz_name)


def get_now() -> datetime:
    """Get current datetime in the configured timezone."""
    return datetime.now(get_timezone())


def get_local_now() -> datetime:
    """Get current garage wall-clock time as a naive datetime (second precision)."""
    return get_now().replace(tzinfo=None, microsecond=0)


def to_local_naive(value: datetime) -> datetime:
    """
    Normalize a datetime to naive garage-local time.

    Aware values are converted to the configured timezone; naive values are
    assumed to already be local.
    """
    if value.tzinfo is not None:
        value = value.astimezone(get_timezone()).replace(tzinfo=None)
    return value


def parse_datetime(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (or pass through a datetime) into naive local time.

    Args:
        value: ISO string, datetime, or None

    Returns:
        datetime or None

    Raises:
        ValueError: If the string is not a valid ISO timestamp
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return to_local_naive(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_local_naive(datetime.fromisoformat(text))


def to_db_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage (second precision, local time)."""
    if value is None:
        return None
    return to_local_naive(value).strftime(DB_TIMESTAMP_FORMAT)


def from_db_timestamp(value) -> Optional[datetime]:
    """Parse a stored timestamp back into a naive datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)
