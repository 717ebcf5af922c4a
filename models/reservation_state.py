"""
Reservation state management functions.
Handles the status state machine, transitions, and status history.
"""

from database import get_db
from utils.datetime_helpers import get_local_now, to_db_timestamp


# =============================================================================
# CONSTANTS
# =============================================================================

RESERVATION_STATUSES = (
    'CONFIRMED',
    'WAITLISTED',
    'PENDING_PAYMENT',
    'ACTIVE',
    'CANCELLED',
    'EXPIRED',
    'NO_SHOW',
    'COMPLETED',
)

# Statuses that hold a physical spot for [start_time, end_time)
OCCUPYING_STATUSES = ('CONFIRMED', 'ACTIVE')

# Immutable once reached
TERMINAL_STATUSES = ('CANCELLED', 'EXPIRED', 'COMPLETED', 'NO_SHOW')

VALID_TRANSITIONS = {
    'PENDING_PAYMENT': {'CONFIRMED', 'CANCELLED', 'EXPIRED'},
    'CONFIRMED': {'ACTIVE', 'CANCELLED', 'EXPIRED'},
    'ACTIVE': {'COMPLETED', 'CANCELLED', 'NO_SHOW', 'EXPIRED'},
    'WAITLISTED': {'CONFIRMED', 'CANCELLED', 'EXPIRED'},
    'CANCELLED': set(),
    'EXPIRED': set(),
    'COMPLETED': set(),
    'NO_SHOW': set(),
}


class InvalidStateTransitionError(ValueError):
    """Raised when a reservation status change is not allowed."""

    def __init__(self, current_state, new_state):
        self.current_state = current_state
        self.new_state = new_state
        super().__init__(f"Cannot change reservation from {current_state} to {new_state}")


# =============================================================================
# STATE QUERIES
# =============================================================================

def is_terminal(status: str) -> bool:
    """True if no further transitions are possible from status."""
    return status in TERMINAL_STATUSES


def is_occupying(status: str) -> bool:
    """True if status holds the reservation's spot."""
    return status in OCCUPYING_STATUSES


def validate_state_transition(current_state: str, new_state: str) -> None:
    """
    Check a status change against VALID_TRANSITIONS.

    Args:
        current_state: Current status
        new_state: Requested status

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if new_state not in RESERVATION_STATUSES:
        raise InvalidStateTransitionError(current_state, new_state)

    allowed = VALID_TRANSITIONS.get(current_state, set())
    if new_state not in allowed:
        raise InvalidStateTransitionError(current_state, new_state)


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def change_reservation_status(
    conn,
    reservation_id: int,
    new_status: str,
    changed_by: str = 'system',
    notes: str = '',
    fields: dict = None,
    now=None
) -> dict:
    """
    Change reservation status inside an open transaction.

    Re-reads the row, validates the transition, applies the status plus any
    extra columns, and records the change in history. The caller owns the
    transaction (commit/rollback).

    Args:
        conn: Connection with an open transaction
        reservation_id: Reservation ID
        new_status: Target status
        changed_by: Actor label ('user:<id>', 'scheduler', ...)
        notes: History note
        fields: Extra columns to set (column -> value)
        now: Timestamp of the change

    Returns:
        dict: The reservation row before the change

    Raises:
        LookupError: If the reservation does not exist
        InvalidStateTransitionError: If the transition is not allowed
    """
    row = conn.execute('SELECT * FROM reservations WHERE id = ?', (reservation_id,)).fetchone()
    if not row:
        raise LookupError(f'Reservation {reservation_id} not found')

    before = dict(row)
    validate_state_transition(before['status'], new_status)

    stamp = to_db_timestamp(now or get_local_now())
    updates = {'status': new_status, 'updated_at': stamp}
    updates.update(fields or {})

    assignments = ', '.join(f'{column} = ?' for column in updates)
    conn.execute(
        f'UPDATE reservations SET {assignments} WHERE id = ?',
        list(updates.values()) + [reservation_id]
    )

    conn.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, old_status, new_status, changed_by, notes, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (reservation_id, before['status'], new_status, changed_by, notes, stamp))

    return before


def record_initial_status(conn, reservation_id: int, status: str, changed_by: str, now=None) -> None:
    """Record the creation status of a reservation in history."""
    conn.execute('''
        INSERT INTO reservation_status_history
        (reservation_id, old_status, new_status, changed_by, notes, created_at)
        VALUES (?, NULL, ?, ?, 'created', ?)
    ''', (reservation_id, status, changed_by, to_db_timestamp(now or get_local_now())))


def get_status_history(reservation_id: int) -> list:
    """
    Get status change history for reservation.

    Args:
        reservation_id: Reservation ID

    Returns:
        list: History entries in the order they happened
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM reservation_status_history
        WHERE reservation_id = ?
        ORDER BY id ASC
    ''', (reservation_id,))
    return [dict(r) for r in cursor.fetchall()]
