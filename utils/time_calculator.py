"""
Time calculation utilities for parking duration.

Pure functions for calculating parking duration, converting between time
units, and billing-related rounding (partial hours are billed as whole hours).
"""

import math
from datetime import datetime
from typing import Optional


def duration_minutes(start: datetime, end: datetime) -> float:
    """Exact minutes between two instants (may be fractional or negative)."""
    return (end - start).total_seconds() / 60


def duration_hours(start: datetime, end: datetime) -> float:
    """Exact hours between two instants (may be fractional or negative)."""
    return (end - start).total_seconds() / 3600


def calculate_duration(start: datetime, end: Optional[datetime] = None, now: Optional[datetime] = None) -> dict:
    """
    Calculate parking duration between two instants.

    Args:
        start: Start instant (check-in or reservation start)
        end: End instant; defaults to now
        now: Reference clock used when end is omitted

    Returns:
        dict: {
            'total_minutes': int (floored),
            'total_hours': float (2 decimals),
            'billable_hours': int (rounded up, minimum 1),
            'hours': int, 'minutes': int
        }

    Raises:
        ValueError: If start is missing or end is before start
    """
    if start is None:
        raise ValueError('Start time is required')

    if end is None:
        end = now or datetime.now()

    if end < start:
        raise ValueError('End time cannot be before start time')

    total_minutes = math.floor(duration_minutes(start, end))
    breakdown = minutes_to_hours_and_minutes(total_minutes)

    return {
        'total_minutes': total_minutes,
        'total_hours': round(total_minutes / 60, 2),
        'billable_hours': calculate_billable_hours(total_minutes),
        'hours': breakdown['hours'],
        'minutes': breakdown['minutes'],
    }


def calculate_billable_hours(total_minutes: float, minimum_hours: int = 1) -> int:
    """
    Round a duration up to whole hours with a minimum charge.

    Raises:
        ValueError: If total_minutes is negative
    """
    if total_minutes < 0:
        raise ValueError('Total minutes cannot be negative')

    return max(minimum_hours, math.ceil(total_minutes / 60))


def minutes_to_hours_and_minutes(total_minutes: int) -> dict:
    """Split minutes into {'hours', 'minutes'}."""
    if total_minutes < 0:
        raise ValueError('Total minutes cannot be negative')

    return {'hours': int(total_minutes // 60), 'minutes': int(total_minutes % 60)}


def format_duration(total_minutes: int) -> str:
    """Format a duration as e.g. '2 hours and 5 minutes'."""
    parts = minutes_to_hours_and_minutes(total_minutes)
    hours, minutes = parts['hours'], parts['minutes']

    def plural(value, unit):
        return f"{value} {unit}{'' if value == 1 else 's'}"

    if hours == 0:
        return plural(minutes, 'minute')
    if minutes == 0:
        return plural(hours, 'hour')
    return f"{plural(hours, 'hour')} and {plural(minutes, 'minute')}"


def is_within_grace_period(total_minutes: float, grace_period_minutes: int = 5) -> bool:
    """True if the stay is short enough to be free."""
    return total_minutes <= grace_period_minutes


def apply_grace_period(total_minutes: float, grace_period_minutes: int = 5, minimum_hours: int = 1) -> int:
    """Billable hours after applying the free grace period (0 inside it)."""
    if is_within_grace_period(total_minutes, grace_period_minutes):
        return 0

    return calculate_billable_hours(total_minutes, minimum_hours)
