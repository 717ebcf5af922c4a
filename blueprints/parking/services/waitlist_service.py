"""
Waitlist Service - Unmet demand queues.

One FIFO queue per (spot type, rounded window) key. Entries expire lazily:
every read or write first drops entries past their expires_at. A freed spot
only surfaces the head candidate as an offer; booking it is a separate,
caller-driven step (see reservation_service.accept_waitlist_offer).
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional, List

from flask import current_app

from models.waitlist import (
    create_waitlist_entry,
    expire_old_entries,
    find_release_candidate,
    get_current_position,
    get_waitlist_count,
    get_waitlist_entry,
    mark_offered,
)
from models.waitlist import get_queue as get_queue_entries
from utils.audit import log_audit
from utils.datetime_helpers import get_local_now

logger = logging.getLogger(__name__)


def expire_waitlist_entries(now: datetime = None) -> int:
    """
    Expire entries past their lifetime.

    Returns:
        int: Number of entries expired
    """
    expired = expire_old_entries(now or get_local_now())
    if expired:
        logger.info(f"[Waitlist] Expired {expired} entr{'y' if expired == 1 else 'ies'}")
    return expired


def add_to_waitlist(request: Dict[str, Any], now: datetime = None) -> Dict[str, Any]:
    """
    Append a request to the tail of its queue.

    Args:
        request: dict with user_id, spot_type, start_time, end_time and
                 optional preferred_features, vehicle fields, notes
        now: Reference time

    Returns:
        dict: {'entry_id', 'position', 'queue_key', 'expires_at'}

    Raises:
        ValueError: If a required field is missing
    """
    now = now or get_local_now()
    expire_waitlist_entries(now)

    result = create_waitlist_entry(
        request,
        now,
        expiry_hours=current_app.config.get('WAITLIST_EXPIRY_HOURS', 24),
        max_notifications=current_app.config.get('WAITLIST_MAX_NOTIFICATIONS', 3),
    )

    logger.info(f"[Waitlist] User {request['user_id']} queued on {result['queue_key']} "
                f"at position {result['position']}")
    log_audit(
        action='WAITLIST_ADDED',
        entity_type='waitlist_entry',
        entity_id=result['entry_id'],
        metadata={'queue_key': result['queue_key'], 'position': result['position']},
        user_id=request['user_id']
    )
    return result


def notify_on_release(
    spot_type: str,
    start_time: datetime,
    end_time: datetime,
    now: datetime = None,
    spot_id: int = None
) -> Optional[Dict[str, Any]]:
    """
    Surface the head candidate for a freed spot window.

    The oldest waiting entry of the same spot type whose requested window fits
    inside the freed one is marked offered and its notification counter is
    incremented, and the freed spot is recorded on it so that accepting
    books that spot. No reservation is created.

    Args:
        spot_type: Type of the freed spot
        start_time: Freed window start
        end_time: Freed window end
        now: Reference time
        spot_id: Freed spot (optional)

    Returns:
        dict or None: The offered entry
    """
    now = now or get_local_now()
    expire_waitlist_entries(now)

    candidate = find_release_candidate(spot_type, start_time, end_time)
    if not candidate:
        return None

    if not mark_offered(candidate['id'], now, spot_id):
        return None

    logger.info(f"[Waitlist] Offered freed {spot_type} window to entry {candidate['id']} "
                f"(user {candidate['user_id']})")
    log_audit(
        action='WAITLIST_OFFERED',
        entity_type='waitlist_entry',
        entity_id=candidate['id'],
        metadata={'spot_type': spot_type, 'spot_id': spot_id, 'queue_key': candidate['queue_key']},
        user_id=candidate['user_id']
    )
    return get_waitlist_entry(candidate['id'])


def get_waitlist_position(entry_id: int, now: datetime = None) -> Optional[int]:
    """Current 1-based rank of an entry, or None if it is no longer waiting."""
    expire_waitlist_entries(now)
    return get_current_position(entry_id)


def get_waitlist_entry_details(entry_id: int, now: datetime = None) -> Optional[Dict[str, Any]]:
    """Entry with its current position (None when not waiting)."""
    expire_waitlist_entries(now)
    entry = get_waitlist_entry(entry_id)
    if entry:
        entry['current_position'] = get_current_position(entry_id)
    return entry


def get_queue(queue_key: str, now: datetime = None) -> List[Dict[str, Any]]:
    """Waiting entries of one queue, head first."""
    expire_waitlist_entries(now)
    return get_queue_entries(queue_key)


def get_waitlist_size(now: datetime = None, spot_type: str = None) -> int:
    """Number of entries waiting across all queues."""
    expire_waitlist_entries(now)
    return get_waitlist_count(spot_type)
