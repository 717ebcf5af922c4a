"""
Waitlist model.
Persistence for unmet parking demand, one FIFO queue per queue key.
"""

from datetime import datetime, timedelta
from typing import Optional, List

from database import get_db, transaction
from utils.datetime_helpers import from_db_timestamp, to_db_timestamp
from utils.validators import parse_features, serialize_features


# =============================================================================
# STATUS CONSTANTS
# =============================================================================

WAITLIST_STATUSES = {
    'waiting': 'Waiting in queue',
    'offered': 'Spot offered, awaiting confirmation',
    'converted': 'Converted to reservation',
    'declined': 'Offer declined',
    'expired': 'Expired',
}

# Entries that still count against expiry
LIVE_STATUSES = ('waiting', 'offered')

_TIMESTAMP_FIELDS = ('start_time', 'end_time', 'expires_at', 'created_at', 'updated_at', 'last_notified_at')


def _entry_from_row(row) -> dict:
    entry = dict(row)
    for field in _TIMESTAMP_FIELDS:
        if field in entry:
            entry[field] = from_db_timestamp(entry[field])
    entry['preferred_features'] = parse_features(entry.get('preferred_features'))
    return entry


# =============================================================================
# QUEUE KEY
# =============================================================================

def round_window(start: datetime, end: datetime) -> tuple:
    """
    Round a window outward to whole hours.

    Returns:
        tuple: (start floored to the hour, end ceiled to the hour)
    """
    floored = start.replace(minute=0, second=0, microsecond=0)
    hour_start = end.replace(minute=0, second=0, microsecond=0)
    ceiled = hour_start if hour_start == end else hour_start + timedelta(hours=1)
    return floored, ceiled


def build_queue_key(spot_type: str, start: datetime, end: datetime) -> str:
    """
    Build the queue key for a spot type and requested window.

    Example: 'compact|2025-06-01T10|2025-06-01T12'
    """
    rounded_start, rounded_end = round_window(start, end)
    return f"{spot_type}|{rounded_start:%Y-%m-%dT%H}|{rounded_end:%Y-%m-%dT%H}"


# =============================================================================
# EXPIRY
# =============================================================================

def expire_old_entries(now: datetime) -> int:
    """
    Mark live entries whose expires_at has passed as expired.

    Args:
        now: Reference time

    Returns:
        int: Number of entries expired
    """
    with get_db() as conn:
        cursor = conn.execute(f'''
            UPDATE waitlist_entries
            SET status = 'expired', updated_at = ?
            WHERE status IN ({','.join('?' * len(LIVE_STATUSES))})
              AND expires_at <= ?
        ''', (to_db_timestamp(now), *LIVE_STATUSES, to_db_timestamp(now)))
        return cursor.rowcount


# =============================================================================
# COUNT & QUERIES
# =============================================================================

def get_waitlist_count(spot_type: str = None) -> int:
    """
    Count entries waiting in any queue.

    Args:
        spot_type: Filter by spot type (optional)

    Returns:
        int: Number of entries with status='waiting'
    """
    db = get_db()
    query = "SELECT COUNT(*) FROM waitlist_entries WHERE status = 'waiting'"
    params = []
    if spot_type:
        query += ' AND spot_type = ?'
        params.append(spot_type)
    return db.execute(query, params).fetchone()[0]


def count_waiting_in_queue(queue_key: str, conn=None) -> int:
    """Count entries currently waiting under a queue key."""
    db = conn or get_db()
    return db.execute('''
        SELECT COUNT(*) FROM waitlist_entries
        WHERE queue_key = ? AND status = 'waiting'
    ''', (queue_key,)).fetchone()[0]


def get_queue(queue_key: str) -> List[dict]:
    """
    Get the waiting entries of one queue in FIFO order.

    Args:
        queue_key: Queue key

    Returns:
        list: Entry dicts, head first
    """
    db = get_db()
    rows = db.execute('''
        SELECT * FROM waitlist_entries
        WHERE queue_key = ? AND status = 'waiting'
        ORDER BY id ASC
    ''', (queue_key,)).fetchall()
    return [_entry_from_row(row) for row in rows]


def get_waitlist_entry(entry_id: int) -> Optional[dict]:
    """
    Get a single waitlist entry by ID.

    Args:
        entry_id: Entry ID

    Returns:
        dict or None: Entry
    """
    db = get_db()
    row = db.execute('SELECT * FROM waitlist_entries WHERE id = ?', (entry_id,)).fetchone()
    return _entry_from_row(row) if row else None


def get_current_position(entry_id: int) -> Optional[int]:
    """
    Current 1-based rank of a waiting entry within its queue.

    Returns:
        int or None: None if the entry is not waiting
    """
    entry = get_waitlist_entry(entry_id)
    if not entry or entry['status'] != 'waiting':
        return None

    db = get_db()
    ahead = db.execute('''
        SELECT COUNT(*) FROM waitlist_entries
        WHERE queue_key = ? AND status = 'waiting' AND id < ?
    ''', (entry['queue_key'], entry_id)).fetchone()[0]
    return ahead + 1


def find_release_candidate(spot_type: str, start: datetime, end: datetime) -> Optional[dict]:
    """
    Oldest waiting entry whose requested window fits inside a freed window.

    Entries that already used up their notifications are skipped.

    Args:
        spot_type: Spot type that was freed
        start: Freed window start
        end: Freed window end

    Returns:
        dict or None: Head candidate
    """
    db = get_db()
    row = db.execute('''
        SELECT * FROM waitlist_entries
        WHERE spot_type = ?
          AND status = 'waiting'
          AND start_time >= ?
          AND end_time <= ?
          AND notifications_sent < max_notifications
        ORDER BY id ASC
        LIMIT 1
    ''', (spot_type, to_db_timestamp(start), to_db_timestamp(end))).fetchone()
    return _entry_from_row(row) if row else None


def get_user_waitlist(user_id: int, include_all: bool = False) -> List[dict]:
    """Get a user's waitlist entries, newest first."""
    db = get_db()
    query = 'SELECT * FROM waitlist_entries WHERE user_id = ?'
    if not include_all:
        query += " AND status IN ('waiting', 'offered')"
    query += ' ORDER BY id DESC'
    rows = db.execute(query, (user_id,)).fetchall()
    return [_entry_from_row(row) for row in rows]


# =============================================================================
# CREATE
# =============================================================================

def create_waitlist_entry(data: dict, now: datetime, expiry_hours: int = 24,
                          max_notifications: int = 3) -> dict:
    """
    Append an entry to the tail of its queue.

    The position is assigned inside one write transaction from the number of
    entries already waiting under the same key, so concurrent inserts get
    distinct consecutive positions.

    Args:
        data: Entry data with keys:
            - user_id, spot_type, start_time, end_time (required)
            - preferred_features (optional list)
            - license_plate, vehicle_make, vehicle_model, vehicle_color (optional)
            - notes (optional)
        now: Creation time
        expiry_hours: Lifetime of the entry
        max_notifications: Offers allowed before the entry is skipped

    Returns:
        dict: {'entry_id', 'position', 'queue_key', 'expires_at'}

    Raises:
        ValueError: If required fields are missing
    """
    for field in ('user_id', 'spot_type', 'start_time', 'end_time'):
        if not data.get(field):
            raise ValueError(f'{field} is required')

    queue_key = build_queue_key(data['spot_type'], data['start_time'], data['end_time'])
    expires_at = now + timedelta(hours=expiry_hours)

    with transaction() as conn:
        position = count_waiting_in_queue(queue_key, conn) + 1
        cursor = conn.execute('''
            INSERT INTO waitlist_entries (
                user_id, spot_type, preferred_features,
                start_time, end_time, queue_key, position, status,
                license_plate, vehicle_make, vehicle_model, vehicle_color,
                notes, notifications_sent, max_notifications,
                expires_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, 'waiting', ?, ?, ?, ?, ?, 0, ?, ?, ?, ?)
        ''', (
            data['user_id'],
            data['spot_type'],
            serialize_features(data.get('preferred_features')),
            to_db_timestamp(data['start_time']),
            to_db_timestamp(data['end_time']),
            queue_key,
            position,
            data.get('license_plate'),
            data.get('vehicle_make'),
            data.get('vehicle_model'),
            data.get('vehicle_color'),
            data.get('notes'),
            max_notifications,
            to_db_timestamp(expires_at),
            to_db_timestamp(now),
            to_db_timestamp(now)
        ))

    return {
        'entry_id': cursor.lastrowid,
        'position': position,
        'queue_key': queue_key,
        'expires_at': expires_at,
    }


# =============================================================================
# UPDATE
# =============================================================================

def mark_offered(entry_id: int, now: datetime, spot_id: int = None) -> bool:
    """
    Take an entry off its queue as offered and count the notification.
    spot_id records the freed spot the offer is for.

    Returns:
        bool: True if a waiting entry was updated
    """
    with get_db() as conn:
        cursor = conn.execute('''
            UPDATE waitlist_entries
            SET status = 'offered',
                notifications_sent = notifications_sent + 1,
                last_notified_at = ?,
                offered_spot_id = ?,
                updated_at = ?
            WHERE id = ? AND status = 'waiting'
        ''', (to_db_timestamp(now), spot_id, to_db_timestamp(now), entry_id))
        return cursor.rowcount > 0


def update_waitlist_status(entry_id: int, status: str, now: datetime = None) -> bool:
    """
    Update entry status.

    Args:
        entry_id: Entry ID
        status: New status
        now: Update time

    Returns:
        bool: Success

    Raises:
        ValueError: If status is invalid
    """
    if status not in WAITLIST_STATUSES:
        raise ValueError(f'Invalid waitlist status: {status}')

    with get_db() as conn:
        cursor = conn.execute('''
            UPDATE waitlist_entries
            SET status = ?, updated_at = COALESCE(?, updated_at)
            WHERE id = ?
        ''', (status, to_db_timestamp(now), entry_id))
        return cursor.rowcount > 0


def convert_to_reservation(entry_id: int, reservation_id: int, now: datetime = None) -> bool:
    """
    Mark an offered entry as converted and link the reservation.

    Raises:
        ValueError: If entry not found or not in an offered state
    """
    entry = get_waitlist_entry(entry_id)
    if not entry:
        raise ValueError('Waitlist entry not found')
    if entry['status'] != 'offered':
        raise ValueError(f"Cannot convert entry in status '{entry['status']}'")

    with get_db() as conn:
        conn.execute('''
            UPDATE waitlist_entries
            SET status = 'converted',
                converted_reservation_id = ?,
                updated_at = COALESCE(?, updated_at)
            WHERE id = ?
        ''', (reservation_id, to_db_timestamp(now), entry_id))
    return True
