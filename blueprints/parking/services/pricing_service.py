"""
Pricing Service - Cost and refund calculations for reservations.

Handles:
- Hourly base rates per spot type
- Estimated cost at booking time
- Actual cost at completion (billed per started hour)
- Tiered cancellation refunds relative to the cancellation deadline
"""

from datetime import datetime, timedelta
from typing import Dict, Any

from flask import current_app, has_app_context

from config import Config
from utils.time_calculator import calculate_billable_hours, duration_hours, duration_minutes


def _setting(name: str):
    """Read a pricing setting from the app config, falling back to the defaults."""
    if has_app_context():
        return current_app.config.get(name, getattr(Config, name))
    return getattr(Config, name)


def get_base_rate(spot_type: str) -> float:
    """
    Hourly rate for a spot type.

    Args:
        spot_type: compact, standard or oversized

    Returns:
        float: Rate per hour (default rate for unknown types)
    """
    rates = _setting('HOURLY_RATES')
    return float(rates.get(spot_type, _setting('DEFAULT_HOURLY_RATE')))


def estimate_cost(spot_type: str, start_time: datetime, end_time: datetime) -> float:
    """
    Estimated cost of a reservation window.

    Args:
        spot_type: Spot type
        start_time: Window start
        end_time: Window end

    Returns:
        float: duration hours x hourly rate, rounded to 2 decimals
    """
    return round(duration_hours(start_time, end_time) * get_base_rate(spot_type), 2)


def calculate_actual_cost(spot_type: str, start_time: datetime, end_time: datetime) -> float:
    """
    Cost of a completed stay, billed per started hour (minimum one hour).

    Args:
        spot_type: Spot type
        start_time: Check-in (or reservation start)
        end_time: Completion time

    Returns:
        float: billable hours x hourly rate
    """
    minutes = max(0.0, duration_minutes(start_time, end_time))
    return round(calculate_billable_hours(minutes) * get_base_rate(spot_type), 2)


def get_cancellation_deadline(start_time: datetime) -> datetime:
    """Last moment a cancellation still earns a full refund."""
    return start_time - timedelta(hours=_setting('CANCELLATION_DEADLINE_HOURS'))


def calculate_refund(estimated_cost: float, start_time: datetime, now: datetime) -> Dict[str, Any]:
    """
    Tiered refund for cancelling at `now`.

    - now <= start - deadline hours: full refund
    - deadline < now <= start: partial refund
    - now > start: no refund

    Args:
        estimated_cost: Amount charged at booking
        start_time: Reservation start
        now: Cancellation time

    Returns:
        dict: {'refund_amount': float, 'refund_ratio': float, 'tier': 'full'|'partial'|'none'}
    """
    if now <= get_cancellation_deadline(start_time):
        ratio, tier = 1.0, 'full'
    elif now <= start_time:
        ratio, tier = float(_setting('PARTIAL_REFUND_RATIO')), 'partial'
    else:
        ratio, tier = 0.0, 'none'

    return {
        'refund_amount': round((estimated_cost or 0) * ratio, 2),
        'refund_ratio': ratio,
        'tier': tier,
    }
