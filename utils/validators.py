"""
Input validation helper functions.
Provides validation for common input types.
"""

import re
from datetime import datetime

SPOT_TYPES = ('compact', 'standard', 'oversized')

SPOT_FEATURES = {
    'ev_charging': 'EV charging',
    'accessible': 'Accessible',
    'covered': 'Covered',
    'wide': 'Wide bay',
}


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Args:
        email: Email address to validate

    Returns:
        True if valid email format
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_license_plate(plate: str) -> bool:
    """
    Validate a license plate.
    Accepts letters, digits, spaces and dashes; at least one alphanumeric.

    Args:
        plate: License plate to validate

    Returns:
        True if usable as a plate
    """
    if not plate or not plate.strip():
        return False

    return bool(re.match(r'^[A-Z0-9][A-Z0-9 \-]{0,14}$', plate.strip().upper()))


def validate_spot_type(spot_type: str) -> bool:
    """True if spot_type is one of the garage's spot types."""
    return spot_type in SPOT_TYPES


def invalid_features(features) -> list:
    """Return the entries of features that are not known spot features."""
    return [f for f in (features or []) if f not in SPOT_FEATURES]


def parse_features(features_csv: str) -> list:
    """Split a stored CSV of feature codes into a list."""
    if not features_csv:
        return []
    return [f.strip() for f in features_csv.split(',') if f.strip()]


def serialize_features(features) -> str:
    """Join feature codes into the stored CSV form (sorted, de-duplicated)."""
    return ','.join(sorted(set(features or [])))


def validate_time_range(start: datetime, end: datetime) -> bool:
    """
    Validate that end is strictly after start.

    Args:
        start: Start instant
        end: End instant

    Returns:
        True if valid range
    """
    if start is None or end is None:
        return False
    return end > start


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    # Strip whitespace
    sanitized = text.strip()

    # Limit length if specified
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
