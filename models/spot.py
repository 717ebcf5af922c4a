"""
Parking spot data access functions.
The garage inventory owns spots; the engine reads attributes and writes status.
"""

from database import get_db
from utils.datetime_helpers import get_local_now, to_db_timestamp
from utils.validators import (
    SPOT_TYPES,
    invalid_features,
    parse_features,
    serialize_features,
)

SPOT_STATUSES = ('AVAILABLE', 'RESERVED', 'OCCUPIED')


def _spot_from_row(row) -> dict:
    """Convert a row to a spot dict with decoded features and a display label."""
    spot = dict(row)
    spot['features'] = parse_features(spot.get('features'))
    spot['label'] = format_spot_label(spot)
    return spot


def format_spot_label(spot: dict) -> str:
    """Human-readable position, e.g. 'F1-A05'."""
    return f"F{spot['floor']}-{spot.get('bay') or ''}{spot['spot_number']:02d}"


def get_spot_by_id(spot_id: int, conn=None) -> dict:
    """
    Get spot by ID.

    Args:
        spot_id: Spot ID
        conn: Open connection to reuse (inside a transaction)

    Returns:
        Spot dict or None if not found
    """
    db = conn or get_db()
    row = db.execute('SELECT * FROM parking_spots WHERE id = ?', (spot_id,)).fetchone()
    return _spot_from_row(row) if row else None


def get_all_spots(spot_type: str = None, floor: int = None, active_only: bool = True) -> list:
    """
    Get spots, optionally filtered.

    Args:
        spot_type: Filter by type (optional)
        floor: Filter by floor (optional)
        active_only: If True, only return active spots

    Returns:
        List of spot dicts ordered by floor, then spot number
    """
    db = get_db()

    query = 'SELECT * FROM parking_spots WHERE 1=1'
    params = []

    if spot_type:
        query += ' AND spot_type = ?'
        params.append(spot_type)

    if floor is not None:
        query += ' AND floor = ?'
        params.append(floor)

    if active_only:
        query += ' AND is_active = 1'

    query += ' ORDER BY floor ASC, spot_number ASC'

    rows = db.execute(query, params).fetchall()
    return [_spot_from_row(row) for row in rows]


def find_active_by_type(spot_type: str, status: str = 'AVAILABLE') -> list:
    """
    Get active spots of a type in the matcher's deterministic order.

    Args:
        spot_type: Spot type
        status: Required spot status (None for any)

    Returns:
        List of spot dicts ordered by floor ASC, spot number ASC
    """
    db = get_db()

    query = 'SELECT * FROM parking_spots WHERE spot_type = ? AND is_active = 1'
    params = [spot_type]

    if status:
        query += ' AND status = ?'
        params.append(status)

    query += ' ORDER BY floor ASC, spot_number ASC, id ASC'

    rows = db.execute(query, params).fetchall()
    return [_spot_from_row(row) for row in rows]


def create_spot(
    spot_number: int,
    spot_type: str,
    floor: int = 1,
    bay: str = None,
    features: list = None,
    is_active: bool = True
) -> int:
    """
    Create a parking spot.

    Returns:
        New spot ID

    Raises:
        ValueError: If the type or a feature is unknown
    """
    if spot_type not in SPOT_TYPES:
        raise ValueError(f'Unknown spot type: {spot_type}')
    unknown = invalid_features(features)
    if unknown:
        raise ValueError(f"Unknown spot features: {', '.join(unknown)}")

    db = get_db()
    cursor = db.execute('''
        INSERT INTO parking_spots (spot_number, floor, bay, spot_type, features, is_active)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (spot_number, floor, bay, spot_type, serialize_features(features), 1 if is_active else 0))
    db.commit()
    return cursor.lastrowid


def set_spot_status(spot_id: int, status: str, conn=None) -> bool:
    """
    Set a spot's status.

    Args:
        spot_id: Spot ID
        status: AVAILABLE, RESERVED or OCCUPIED
        conn: Open connection to reuse (inside a transaction)

    Returns:
        True if a spot was updated

    Raises:
        ValueError: If status is unknown
    """
    if status not in SPOT_STATUSES:
        raise ValueError(f'Unknown spot status: {status}')

    db = conn or get_db()
    cursor = db.execute('''
        UPDATE parking_spots
        SET status = ?, updated_at = ?
        WHERE id = ?
    ''', (status, to_db_timestamp(get_local_now()), spot_id))
    if conn is None:
        db.commit()
    return cursor.rowcount > 0


def set_spot_active(spot_id: int, is_active: bool) -> bool:
    """Take a spot in or out of service."""
    db = get_db()
    cursor = db.execute('UPDATE parking_spots SET is_active = ? WHERE id = ?',
                        (1 if is_active else 0, spot_id))
    db.commit()
    return cursor.rowcount > 0


def count_spots(active_only: bool = True, status: str = None) -> int:
    """Count spots, optionally by status."""
    db = get_db()
    query = 'SELECT COUNT(*) FROM parking_spots WHERE 1=1'
    params = []
    if active_only:
        query += ' AND is_active = 1'
    if status:
        query += ' AND status = ?'
        params.append(status)
    return db.execute(query, params).fetchone()[0]
