"""
Reservation query functions.
Overlap lookups, sweep candidate selection, listings, and statistics.
"""

from database import get_db
from utils.datetime_helpers import to_db_timestamp
from .reservation_crud import reservation_from_row
from .reservation_state import OCCUPYING_STATUSES


def _status_placeholders(statuses) -> str:
    return ','.join('?' * len(statuses))


# =============================================================================
# OVERLAP
# =============================================================================

def find_overlapping(spot_id: int, start_time, end_time, exclude_reservation_id: int = None, conn=None) -> list:
    """
    Find occupying reservations on a spot that overlap [start_time, end_time).

    Uses the half-open test: other.start < end AND other.end > start.

    Args:
        spot_id: Spot ID
        start_time: Window start (datetime)
        end_time: Window end (datetime)
        exclude_reservation_id: Reservation to ignore (for re-checks of itself)
        conn: Open connection to reuse (inside a transaction)

    Returns:
        List of reservation dicts ordered by start time
    """
    db = conn or get_db()

    query = f'''
        SELECT * FROM reservations
        WHERE spot_id = ?
          AND status IN ({_status_placeholders(OCCUPYING_STATUSES)})
          AND start_time < ?
          AND end_time > ?
    '''
    params = [spot_id, *OCCUPYING_STATUSES, to_db_timestamp(end_time), to_db_timestamp(start_time)]

    if exclude_reservation_id:
        query += ' AND id != ?'
        params.append(exclude_reservation_id)

    query += ' ORDER BY start_time, id'

    rows = db.execute(query, params).fetchall()
    return [reservation_from_row(row) for row in rows]


def find_overlapping_pairs() -> list:
    """
    Find every pair of occupying reservations that overlap on the same spot.
    Should always be empty; used by the integrity check.

    Returns:
        List of dicts: {spot_id, first_id, second_id}
    """
    db = get_db()
    placeholders = _status_placeholders(OCCUPYING_STATUSES)
    rows = db.execute(f'''
        SELECT a.spot_id, a.id AS first_id, b.id AS second_id
        FROM reservations a
        JOIN reservations b
          ON a.spot_id = b.spot_id
         AND a.id < b.id
         AND a.start_time < b.end_time
         AND a.end_time > b.start_time
        WHERE a.status IN ({placeholders})
          AND b.status IN ({placeholders})
        ORDER BY a.spot_id, a.id
    ''', (*OCCUPYING_STATUSES, *OCCUPYING_STATUSES)).fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# SWEEP CANDIDATES
# =============================================================================

def find_ended(now, statuses=OCCUPYING_STATUSES) -> list:
    """Reservations in the given statuses whose end_time is before now."""
    db = get_db()
    rows = db.execute(f'''
        SELECT * FROM reservations
        WHERE status IN ({_status_placeholders(statuses)})
          AND end_time < ?
        ORDER BY end_time, id
    ''', (*statuses, to_db_timestamp(now))).fetchall()
    return [reservation_from_row(row) for row in rows]


def find_started_confirmed(now) -> list:
    """CONFIRMED reservations whose window has opened but not closed."""
    db = get_db()
    stamp = to_db_timestamp(now)
    rows = db.execute('''
        SELECT * FROM reservations
        WHERE status = 'CONFIRMED'
          AND start_time <= ?
          AND end_time > ?
        ORDER BY start_time, id
    ''', (stamp, stamp)).fetchall()
    return [reservation_from_row(row) for row in rows]


def find_active_older_than(cutoff, without_check_in: bool = True) -> list:
    """
    ACTIVE reservations whose start_time is before cutoff.

    Args:
        cutoff: Start-time cutoff (datetime)
        without_check_in: Only those with no recorded check-in

    Returns:
        List of reservation dicts
    """
    db = get_db()
    query = '''
        SELECT * FROM reservations
        WHERE status = 'ACTIVE'
          AND start_time < ?
    '''
    if without_check_in:
        query += ' AND checked_in_at IS NULL'
    query += ' ORDER BY start_time, id'

    rows = db.execute(query, (to_db_timestamp(cutoff),)).fetchall()
    return [reservation_from_row(row) for row in rows]


# =============================================================================
# LISTINGS
# =============================================================================

def get_user_reservations(user_id: int, status: str = None) -> list:
    """
    Get a user's reservations, newest start first.

    Args:
        user_id: Owner user ID
        status: Filter by status (optional)

    Returns:
        List of reservation dicts with spot_number, floor, bay
    """
    db = get_db()
    query = '''
        SELECT r.*, s.spot_number, s.floor, s.bay
        FROM reservations r
        LEFT JOIN parking_spots s ON r.spot_id = s.id
        WHERE r.user_id = ?
    '''
    params = [user_id]

    if status:
        query += ' AND r.status = ?'
        params.append(status)

    query += ' ORDER BY r.start_time DESC, r.id DESC'

    rows = db.execute(query, params).fetchall()
    return [reservation_from_row(row) for row in rows]


# =============================================================================
# STATISTICS
# =============================================================================

def get_reservation_counts(since) -> dict:
    """
    Count reservations created since a timestamp, grouped by status.

    Returns:
        dict: {status: count}
    """
    db = get_db()
    rows = db.execute('''
        SELECT status, COUNT(*) AS count
        FROM reservations
        WHERE created_at >= ?
        GROUP BY status
    ''', (to_db_timestamp(since),)).fetchall()
    return {row['status']: row['count'] for row in rows}


def get_completed_totals(since) -> dict:
    """
    Revenue and average duration of reservations completed since a timestamp.

    Duration runs from check-in (or start) to completion, in minutes.

    Returns:
        dict: {'revenue': float, 'average_duration_minutes': float}
    """
    db = get_db()
    row = db.execute('''
        SELECT
            COALESCE(SUM(actual_cost), 0) AS revenue,
            AVG((julianday(completed_at) - julianday(COALESCE(checked_in_at, start_time))) * 1440)
                AS average_duration
        FROM reservations
        WHERE status = 'COMPLETED'
          AND created_at >= ?
    ''', (to_db_timestamp(since),)).fetchone()
    return {
        'revenue': round(row['revenue'] or 0, 2),
        'average_duration_minutes': round(row['average_duration'] or 0, 1),
    }


def get_spot_hold_status(conn, spot_id: int, exclude_reservation_id: int) -> str:
    """
    Spot status implied by the occupying reservations left on it.

    Returns:
        str: OCCUPIED if another reservation is checked in, RESERVED if any
             other occupying reservation remains, else AVAILABLE
    """
    row = conn.execute(f'''
        SELECT
            COUNT(*) AS holding,
            SUM(CASE WHEN status = 'ACTIVE' AND checked_in_at IS NOT NULL THEN 1 ELSE 0 END) AS parked
        FROM reservations
        WHERE spot_id = ?
          AND id != ?
          AND status IN ({_status_placeholders(OCCUPYING_STATUSES)})
    ''', (spot_id, exclude_reservation_id, *OCCUPYING_STATUSES)).fetchone()

    if row['parked']:
        return 'OCCUPIED'
    if row['holding']:
        return 'RESERVED'
    return 'AVAILABLE'
