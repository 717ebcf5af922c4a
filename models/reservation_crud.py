"""
Reservation CRUD operations.
Handles create and read for reservations; status changes live in reservation_state.
"""

from database import get_db
from utils.datetime_helpers import from_db_timestamp, get_local_now, to_db_timestamp
from .reservation_state import record_initial_status

TIMESTAMP_FIELDS = (
    'start_time',
    'end_time',
    'cancellation_deadline',
    'cancelled_at',
    'checked_in_at',
    'completed_at',
    'created_at',
    'updated_at',
)


def reservation_from_row(row) -> dict:
    """Convert a reservations row to a dict with datetime fields decoded."""
    reservation = dict(row)
    for field in TIMESTAMP_FIELDS:
        if field in reservation:
            reservation[field] = from_db_timestamp(reservation[field])
    return reservation


# =============================================================================
# CREATE
# =============================================================================

def insert_reservation(conn, data: dict, now=None) -> int:
    """
    Insert a reservation row inside an open transaction.

    Args:
        conn: Connection with an open transaction
        data: Reservation fields with keys:
            - user_id, spot_id, spot_type (required)
            - license_plate (required)
            - vehicle_make, vehicle_model, vehicle_color (optional)
            - start_time, end_time, cancellation_deadline (datetimes, required)
            - estimated_cost (required)
            - status (default 'CONFIRMED')
            - notes (optional)
        now: Creation timestamp

    Returns:
        int: New reservation ID
    """
    created_at = to_db_timestamp(now or get_local_now())
    status = data.get('status', 'CONFIRMED')

    cursor = conn.execute('''
        INSERT INTO reservations (
            user_id, spot_id, spot_type,
            license_plate, vehicle_make, vehicle_model, vehicle_color,
            start_time, end_time, cancellation_deadline,
            status, estimated_cost, notes,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    ''', (
        data['user_id'],
        data['spot_id'],
        data['spot_type'],
        data['license_plate'],
        data.get('vehicle_make'),
        data.get('vehicle_model'),
        data.get('vehicle_color'),
        to_db_timestamp(data['start_time']),
        to_db_timestamp(data['end_time']),
        to_db_timestamp(data['cancellation_deadline']),
        status,
        data['estimated_cost'],
        data.get('notes'),
        created_at,
        created_at
    ))

    reservation_id = cursor.lastrowid
    record_initial_status(conn, reservation_id, status, f"user:{data['user_id']}", now)
    return reservation_id


# =============================================================================
# READ
# =============================================================================

def get_reservation_by_id(reservation_id: int, conn=None) -> dict:
    """
    Get reservation by ID.

    Args:
        reservation_id: Reservation ID
        conn: Open connection to reuse (inside a transaction)

    Returns:
        dict or None: Reservation with decoded timestamps
    """
    db = conn or get_db()
    row = db.execute('SELECT * FROM reservations WHERE id = ?', (reservation_id,)).fetchone()
    return reservation_from_row(row) if row else None


def get_reservation_with_details(reservation_id: int) -> dict:
    """
    Get reservation joined with its spot and owner.

    Returns:
        dict or None: Reservation plus spot_number, floor, bay, username
    """
    db = get_db()
    row = db.execute('''
        SELECT r.*, s.spot_number, s.floor, s.bay, u.username
        FROM reservations r
        LEFT JOIN parking_spots s ON r.spot_id = s.id
        LEFT JOIN users u ON r.user_id = u.id
        WHERE r.id = ?
    ''', (reservation_id,)).fetchone()
    return reservation_from_row(row) if row else None


# =============================================================================
# UPDATE
# =============================================================================

def update_reservation_fields(conn, reservation_id: int, fields: dict, now=None) -> bool:
    """
    Set non-status columns on a reservation inside an open transaction.

    Status changes go through reservation_state.change_reservation_status.

    Args:
        conn: Connection with an open transaction
        reservation_id: Reservation ID
        fields: Columns to set (column -> value)
        now: Timestamp for updated_at

    Returns:
        bool: True if a row was updated

    Raises:
        ValueError: If fields includes status
    """
    if 'status' in fields:
        raise ValueError('Use change_reservation_status to change status')

    updates = dict(fields)
    updates['updated_at'] = to_db_timestamp(now or get_local_now())
    assignments = ', '.join(f'{column} = ?' for column in updates)
    cursor = conn.execute(
        f'UPDATE reservations SET {assignments} WHERE id = ?',
        list(updates.values()) + [reservation_id]
    )
    return cursor.rowcount > 0
