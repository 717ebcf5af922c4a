"""
Reservation data access functions.

This module re-exports the functions of the split modules:
- reservation_state.py: Status constants, state machine, and history
- reservation_crud.py: Create and read operations
- reservation_queries.py: Overlap lookups, sweep candidates, listings, statistics
"""

# State management
from .reservation_state import (
    # Constants
    RESERVATION_STATUSES,
    OCCUPYING_STATUSES,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    InvalidStateTransitionError,
    # State queries
    is_terminal,
    is_occupying,
    validate_state_transition,
    # Transitions
    change_reservation_status,
    record_initial_status,
    # History
    get_status_history,
)

# CRUD operations
from .reservation_crud import (
    reservation_from_row,
    insert_reservation,
    get_reservation_by_id,
    get_reservation_with_details,
    update_reservation_fields,
)

# Query operations
from .reservation_queries import (
    find_overlapping,
    get_spot_hold_status,
    find_overlapping_pairs,
    find_ended,
    find_started_confirmed,
    find_active_older_than,
    get_user_reservations,
    get_reservation_counts,
    get_completed_totals,
)
