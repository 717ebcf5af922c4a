"""
Parking engine services.
Business logic for reservations, spot allocation, waitlist, and reclamation.
"""

from .pricing_service import (  # noqa: F401
    get_base_rate,
    estimate_cost,
    calculate_actual_cost,
    get_cancellation_deadline,
    calculate_refund,
)
from .conflict_service import (  # noqa: F401
    classify_severity,
    resolve_conflicts,
    find_conflicts,
    find_overlapping_bookings,
)
from .spot_matcher import find_available_spot  # noqa: F401
from .waitlist_service import (  # noqa: F401
    add_to_waitlist,
    notify_on_release,
    get_waitlist_position,
    get_waitlist_entry_details,
    get_queue,
    get_waitlist_size,
    expire_waitlist_entries,
)
from .reservation_service import (  # noqa: F401
    validate_reservation_request,
    create_reservation,
    cancel_reservation,
    check_in_reservation,
    complete_reservation,
    expire_reservation,
    activate_reservation,
    mark_no_show,
    get_user_reservations,
    get_reservation,
    check_availability,
    get_reservation_stats,
    accept_waitlist_offer,
    decline_waitlist_offer,
)
from .reclamation_service import (  # noqa: F401
    run_expiry_sweep,
    run_activation_sweep,
    run_no_show_sweep,
    run_reclamation,
    ReclamationScheduler,
)
