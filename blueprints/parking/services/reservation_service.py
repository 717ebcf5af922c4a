"""
Reservation Service - Reservation lifecycle orchestration.

Handles:
- Request validation (all violations reported at once)
- Booking: matcher, waitlist fallback, conflict re-check and write in one transaction
- Cancellation with tiered refunds and waitlist notification
- Check-in, completion, expiry, activation and no-show transitions
- Listings, availability and statistics

Every public function returns a result dict:
    {'success': bool, 'message': str, 'error_type': str | None, ...payload}
Expected business outcomes never raise; only unexpected faults propagate.
"""

import logging
import sqlite3
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional, Tuple

from flask import current_app

from database import transaction
from models.reservation import (
    OCCUPYING_STATUSES,
    InvalidStateTransitionError,
    change_reservation_status,
    get_reservation_by_id,
    get_reservation_counts,
    get_completed_totals,
    get_reservation_with_details,
    get_spot_hold_status,
    get_status_history,
    insert_reservation,
    is_terminal,
    update_reservation_fields,
)
from models.reservation import get_user_reservations as list_user_reservations
from models.spot import count_spots, format_spot_label, get_spot_by_id, set_spot_status
from models.user import is_active_user
from models.waitlist import (
    convert_to_reservation,
    get_user_waitlist,
    get_waitlist_entry,
    update_waitlist_status,
)
from utils.audit import log_audit
from utils.datetime_helpers import get_local_now, parse_datetime, to_db_timestamp
from utils.messages import get_message
from utils.validators import (
    invalid_features,
    sanitize_input,
    validate_license_plate,
    validate_spot_type,
    validate_time_range,
)
from utils.time_calculator import duration_minutes
from .conflict_service import RESOLUTION_AUTO, RESOLUTION_REJECT, find_conflicts
from .pricing_service import (
    calculate_actual_cost,
    calculate_refund,
    estimate_cost,
    get_cancellation_deadline,
)
from .spot_matcher import check_availability as match_availability
from .spot_matcher import find_available_spot
from .waitlist_service import (
    add_to_waitlist,
    expire_waitlist_entries,
    get_waitlist_size,
    notify_on_release,
)

logger = logging.getLogger(__name__)

STATS_TIMEFRAMES = {'day': 1, 'week': 7, 'month': 30}

# Error types
VALIDATION = 'validation'
CONFLICT = 'conflict'
UNAVAILABLE = 'unavailable'
NOT_FOUND = 'not_found'
FORBIDDEN = 'forbidden'
INVALID_STATE = 'invalid_state'
OPERATIONAL = 'operational'


# =============================================================================
# RESULT HELPERS
# =============================================================================

def _success(message: str, **payload) -> Dict[str, Any]:
    return {'success': True, 'message': message, 'error_type': None, **payload}


def _failure(error_type: str, message: str, **payload) -> Dict[str, Any]:
    return {'success': False, 'message': message, 'error_type': error_type, **payload}


def _same_user(owner_id, user_id) -> bool:
    try:
        return int(owner_id) == int(user_id)
    except (TypeError, ValueError):
        return False


# =============================================================================
# VALIDATION
# =============================================================================

def _parse_time_field(request: dict, field: str, errors: list) -> Optional[datetime]:
    raw = request.get(field)
    if raw is None or raw == '':
        errors.append(get_message(f'{field}_required'))
        return None
    try:
        return parse_datetime(raw)
    except (TypeError, ValueError):
        errors.append(get_message('invalid_timestamp', field=field))
        return None


def _text_field(request: dict, field: str, errors: list) -> Optional[str]:
    """Stripped text of an optional string field; None (with an error) for non-strings."""
    raw = request.get(field)
    if raw is None:
        return ''
    if not isinstance(raw, str):
        errors.append(get_message('invalid_text_field', field=field))
        return None
    return raw.strip()


def _features_field(request: dict, errors: list) -> List[str]:
    """Feature codes from a list or a comma-separated string."""
    raw = request.get('preferred_features') or []
    if isinstance(raw, str):
        return [f.strip() for f in raw.split(',') if f.strip()]
    if not isinstance(raw, (list, tuple)) or not all(isinstance(f, str) for f in raw):
        errors.append(get_message('invalid_features'))
        return []
    return list(raw)


def _flag(value) -> bool:
    """Booleans from JSON or form values ('true', '1', 'yes', 'on')."""
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return value is True or value == 1


def validate_reservation_request(request: Dict[str, Any], now: datetime) -> Tuple[List[str], Dict[str, Any]]:
    """
    Validate a reservation request, collecting every violation.

    Args:
        request: Raw request (times may be ISO strings or datetimes)
        now: Reference time

    Returns:
        tuple: (errors, normalized request). errors is empty when valid.
    """
    config = current_app.config
    errors: List[str] = []

    start_time = _parse_time_field(request, 'start_time', errors)
    end_time = _parse_time_field(request, 'end_time', errors)

    if start_time and start_time <= now:
        errors.append(get_message('start_in_past'))

    if start_time and end_time:
        if not validate_time_range(start_time, end_time):
            errors.append(get_message('end_before_start'))
        else:
            minutes = duration_minutes(start_time, end_time)
            if minutes < config['MIN_RESERVATION_MINUTES']:
                errors.append(get_message('duration_too_short', minutes=config['MIN_RESERVATION_MINUTES']))
            if minutes > config['MAX_RESERVATION_HOURS'] * 60:
                errors.append(get_message('duration_too_long', hours=config['MAX_RESERVATION_HOURS']))

    license_plate = _text_field(request, 'license_plate', errors)
    if license_plate is None:
        license_plate = ''
    elif not license_plate:
        errors.append(get_message('license_plate_required'))
    elif not validate_license_plate(license_plate):
        errors.append(get_message('invalid_license_plate'))

    if not is_active_user(request.get('user_id')):
        errors.append(get_message('invalid_user'))

    spot_type = request.get('spot_type') or 'standard'
    if not isinstance(spot_type, str) or not validate_spot_type(spot_type):
        errors.append(get_message('invalid_spot_type', spot_type=spot_type))

    spot_id = request.get('spot_id')
    if spot_id is not None and (isinstance(spot_id, bool) or not isinstance(spot_id, int)):
        errors.append(get_message('invalid_spot_id'))
        spot_id = None

    preferred_features = _features_field(request, errors)
    for feature in invalid_features(preferred_features):
        errors.append(get_message('invalid_feature', feature=feature))

    notes = _text_field(request, 'notes', errors) or ''
    if len(notes) > config['NOTES_MAX_LENGTH']:
        errors.append(get_message('notes_too_long', max_length=config['NOTES_MAX_LENGTH']))

    vehicle = {field: sanitize_input(_text_field(request, field, errors), limit) or None
               for field, limit in (('vehicle_make', 50), ('vehicle_model', 50), ('vehicle_color', 30))}

    normalized = {
        'user_id': request.get('user_id'),
        'spot_id': spot_id,
        'spot_type': spot_type,
        'start_time': start_time,
        'end_time': end_time,
        'license_plate': license_plate.upper(),
        **vehicle,
        'preferred_features': preferred_features,
        'notes': notes or None,
        'allow_waitlist': _flag(request.get('allow_waitlist')),
    }
    return errors, normalized


# =============================================================================
# SPOT RELEASE
# =============================================================================

def _release_spot(conn, reservation: dict) -> Optional[str]:
    """
    Recompute a spot's status after a reservation stops holding it.

    Returns:
        str or None: New spot status
    """
    spot_id = reservation.get('spot_id')
    if not spot_id:
        return None
    status = get_spot_hold_status(conn, spot_id, reservation['id'])
    set_spot_status(spot_id, status, conn)
    return status


def _offer_freed_window(reservation: dict, start_time: datetime, now: datetime) -> Optional[dict]:
    """Best-effort waitlist notification; a failure never undoes the committed transition."""
    end_time = reservation['end_time']
    if not reservation.get('spot_id') or start_time >= end_time:
        return None
    try:
        return notify_on_release(reservation['spot_type'], start_time, end_time, now,
                                 spot_id=reservation['spot_id'])
    except sqlite3.Error as e:
        logger.warning(f"[Reservations] Waitlist notification failed for reservation "
                       f"{reservation['id']}: {e}")
        return None


# =============================================================================
# CREATE
# =============================================================================

def _book(data: Dict[str, Any], spot: dict, now: datetime) -> Dict[str, Any]:
    """Re-check the chosen spot and write the booking in one transaction."""
    estimated = estimate_cost(spot['spot_type'], data['start_time'], data['end_time'])
    deadline = get_cancellation_deadline(data['start_time'])

    try:
        with transaction() as conn:
            check = find_conflicts(spot['id'], data['start_time'], data['end_time'], conn=conn)
            if check['resolution'] != RESOLUTION_AUTO:
                rejection = check
            else:
                rejection = None
                reservation_id = insert_reservation(conn, {
                    **data,
                    'spot_id': spot['id'],
                    'spot_type': spot['spot_type'],
                    'cancellation_deadline': deadline,
                    'estimated_cost': estimated,
                    'status': 'CONFIRMED',
                }, now)
                current = get_spot_by_id(spot['id'], conn)
                if current['status'] == 'AVAILABLE':
                    set_spot_status(spot['id'], 'RESERVED', conn)
    except sqlite3.IntegrityError as e:
        logger.warning(f"[Reservations] Overlap guard refused booking on spot {spot['id']}: {e}")
        return _failure(CONFLICT, get_message('conflict_rejected'), conflicts=[], resolution=RESOLUTION_REJECT)
    except sqlite3.Error as e:
        logger.error(f"[Reservations] Booking transaction failed: {e}", exc_info=True)
        return _failure(OPERATIONAL, get_message('create_failed'))

    if rejection:
        key = 'conflict_rejected' if rejection['resolution'] == RESOLUTION_REJECT else 'conflict_review'
        logger.info(f"[Reservations] Booking on spot {spot['id']} refused at commit: {rejection['resolution']}")
        return _failure(CONFLICT, get_message(key),
                        conflicts=rejection['conflicts'], resolution=rejection['resolution'])

    logger.info(f"[Reservations] Reservation {reservation_id} confirmed on spot {spot['id']} "
                f"for user {data['user_id']} ({data['start_time']} - {data['end_time']})")
    log_audit(
        action='RESERVATION_CREATED',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'spot_id': spot['id'], 'estimated_cost': estimated},
        user_id=data['user_id']
    )

    return _success(
        get_message('reservation_confirmed', spot_label=spot.get('label') or format_spot_label(spot)),
        status='CONFIRMED',
        reservation_id=reservation_id,
        spot_id=spot['id'],
        spot_label=spot.get('label') or format_spot_label(spot),
        estimated_cost=estimated,
        cancellation_deadline=deadline,
    )


def create_reservation(request: Dict[str, Any], now: datetime = None) -> Dict[str, Any]:
    """
    Turn a reservation request into a confirmed booking, a waitlist entry,
    or a structured failure.

    Args:
        request: dict with keys:
            - user_id, start_time, end_time, license_plate (required)
            - spot_type (default 'standard'), spot_id (optional)
            - vehicle_make, vehicle_model, vehicle_color, notes (optional)
            - preferred_features (optional list of feature codes)
            - allow_waitlist (optional bool)
        now: Reference time (defaults to garage local now)

    Returns:
        dict: On success status='CONFIRMED' with reservation_id, spot_id,
              estimated_cost; or status='WAITLISTED' with position. On
              failure error_type plus errors (validation) or alternatives
              (unavailable) or conflicts (conflict).
    """
    now = now or get_local_now()

    errors, data = validate_reservation_request(request, now)
    if errors:
        return _failure(VALIDATION, get_message('validation_failed'), errors=errors)

    match = find_available_spot(data)

    if not match['available']:
        if data['allow_waitlist']:
            entry = add_to_waitlist(data, now)
            return _success(
                get_message('reservation_waitlisted'),
                status='WAITLISTED',
                waitlist_entry_id=entry['entry_id'],
                position=entry['position'],
                queue_key=entry['queue_key'],
                expires_at=entry['expires_at'],
            )
        return _failure(UNAVAILABLE, get_message('no_spots_available'), alternatives=match['alternatives'])

    return _book(data, match['spot'], now)


# =============================================================================
# TRANSITIONS
# =============================================================================

def _transition(
    reservation: dict,
    new_status: str,
    changed_by: str,
    now: datetime,
    fields: dict = None,
    notes: str = '',
    release: bool = True,
    failure_key: str = 'transition_failed'
) -> Optional[Dict[str, Any]]:
    """
    Apply a status change (and optional spot release) atomically.

    Returns:
        dict or None: A failure result, or None when committed
    """
    try:
        with transaction() as conn:
            change_reservation_status(conn, reservation['id'], new_status,
                                      changed_by=changed_by, notes=notes,
                                      fields=fields, now=now)
            if release:
                _release_spot(conn, reservation)
    except InvalidStateTransitionError as e:
        return _failure(INVALID_STATE, str(e))
    except LookupError:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    except sqlite3.Error as e:
        logger.error(f"[Reservations] {new_status} transition of reservation "
                     f"{reservation['id']} failed: {e}", exc_info=True)
        return _failure(OPERATIONAL, get_message(failure_key))
    return None


def cancel_reservation(reservation_id: int, user_id: int, reason: str = None,
                       now: datetime = None) -> Dict[str, Any]:
    """
    Cancel a reservation on behalf of its owner.

    Refund tiers: full up to the cancellation deadline, partial up to the
    start, none afterwards. After commit the freed window is offered to the
    head of the matching waitlist queue.

    Returns:
        dict: refund_amount, refund_ratio, refund_tier and waitlist_offer on success
    """
    now = now or get_local_now()

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if not _same_user(reservation['user_id'], user_id):
        return _failure(FORBIDDEN, get_message('unauthorized_cancel'))
    if is_terminal(reservation['status']):
        return _failure(INVALID_STATE, get_message('cannot_cancel'))

    refund = calculate_refund(reservation['estimated_cost'], reservation['start_time'], now)
    reason = sanitize_input(reason, current_app.config['NOTES_MAX_LENGTH']) or None

    failure = _transition(
        reservation, 'CANCELLED', f'user:{user_id}', now,
        fields={
            'refund_amount': refund['refund_amount'],
            'cancellation_reason': reason,
            'cancelled_at': to_db_timestamp(now),
        },
        notes=reason or '',
        failure_key='cancel_failed'
    )
    if failure:
        return failure

    offer = None
    if reservation['status'] in OCCUPYING_STATUSES:
        offer = _offer_freed_window(reservation, max(now, reservation['start_time']), now)

    logger.info(f"[Reservations] Reservation {reservation_id} cancelled by user {user_id}, "
                f"refund {refund['refund_amount']:.2f} ({refund['tier']})")
    log_audit(
        action='RESERVATION_CANCELLED',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'refund_amount': refund['refund_amount'], 'tier': refund['tier'], 'reason': reason},
        user_id=reservation['user_id']
    )

    message = (get_message('reservation_cancelled_refund', refund=refund['refund_amount'])
               if refund['refund_amount'] > 0 else get_message('reservation_cancelled'))
    return _success(
        message,
        reservation_id=reservation_id,
        status='CANCELLED',
        refund_amount=refund['refund_amount'],
        refund_ratio=refund['refund_ratio'],
        refund_tier=refund['tier'],
        waitlist_offer=offer['id'] if offer else None,
    )


def check_in_reservation(reservation_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Record the arrival of the vehicle.

    CONFIRMED or ACTIVE reservations become ACTIVE with checked_in_at set,
    and the spot becomes OCCUPIED. Arrival is accepted from the grace period
    before the start until the end of the window.
    """
    now = now or get_local_now()

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if reservation['checked_in_at']:
        return _failure(INVALID_STATE, get_message('already_checked_in'))
    if reservation['status'] not in OCCUPYING_STATUSES:
        return _failure(INVALID_STATE, get_message('cannot_check_in'))

    grace = current_app.config['GRACE_PERIOD_MINUTES']
    if now < reservation['start_time'] - timedelta(minutes=grace):
        return _failure(INVALID_STATE, get_message('check_in_too_early', minutes=grace))
    if now >= reservation['end_time']:
        return _failure(INVALID_STATE, get_message('check_in_closed'))

    try:
        with transaction() as conn:
            stamp = {'checked_in_at': to_db_timestamp(now)}
            if reservation['status'] == 'CONFIRMED':
                change_reservation_status(conn, reservation_id, 'ACTIVE', changed_by='check-in',
                                          notes='vehicle arrived', fields=stamp, now=now)
            else:
                update_reservation_fields(conn, reservation_id, stamp, now)
            set_spot_status(reservation['spot_id'], 'OCCUPIED', conn)
    except InvalidStateTransitionError as e:
        return _failure(INVALID_STATE, str(e))
    except sqlite3.Error as e:
        logger.error(f"[Reservations] Check-in of reservation {reservation_id} failed: {e}", exc_info=True)
        return _failure(OPERATIONAL, get_message('transition_failed'))

    logger.info(f"[Reservations] Reservation {reservation_id} checked in at {now}")
    log_audit(
        action='RESERVATION_CHECKED_IN',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'checked_in_at': to_db_timestamp(now)},
        user_id=reservation['user_id']
    )
    return _success(get_message('reservation_checked_in'), reservation_id=reservation_id,
                    status='ACTIVE', checked_in_at=now)


def complete_reservation(reservation_id: int, completed_at: datetime = None,
                         now: datetime = None) -> Dict[str, Any]:
    """
    End a stay normally (ACTIVE -> COMPLETED) and bill it.

    actual_cost is billed per started hour from check-in (or the reservation
    start) to completed_at. A stay that ends early frees the remainder of the
    window for the waitlist.
    """
    now = now or get_local_now()
    completed_at = parse_datetime(completed_at) or now

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if reservation['status'] != 'ACTIVE':
        return _failure(INVALID_STATE, get_message('cannot_complete'))

    billed_from = reservation['checked_in_at'] or reservation['start_time']
    actual_cost = calculate_actual_cost(reservation['spot_type'], billed_from, completed_at)

    failure = _transition(
        reservation, 'COMPLETED', 'checkout', now,
        fields={'actual_cost': actual_cost, 'completed_at': to_db_timestamp(completed_at)},
        failure_key='complete_failed'
    )
    if failure:
        return failure

    offer = _offer_freed_window(reservation, max(completed_at, reservation['start_time']), now)

    logger.info(f"[Reservations] Reservation {reservation_id} completed, actual cost {actual_cost:.2f}")
    log_audit(
        action='RESERVATION_COMPLETED',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'actual_cost': actual_cost},
        user_id=reservation['user_id']
    )
    return _success(get_message('reservation_completed'), reservation_id=reservation_id,
                    status='COMPLETED', actual_cost=actual_cost,
                    waitlist_offer=offer['id'] if offer else None)


def expire_reservation(reservation_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Close a reservation whose window has passed without explicit completion.

    ACTIVE becomes COMPLETED and CONFIRMED becomes EXPIRED; both are billed
    at the estimate and release the spot.
    """
    now = now or get_local_now()

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if reservation['status'] not in OCCUPYING_STATUSES:
        return _failure(INVALID_STATE, get_message('cannot_expire'))
    if reservation['end_time'] >= now:
        return _failure(INVALID_STATE, get_message('reservation_not_ended'))

    fields = {'actual_cost': reservation['estimated_cost']}
    if reservation['status'] == 'ACTIVE':
        new_status = 'COMPLETED'
        fields['completed_at'] = to_db_timestamp(reservation['end_time'])
    else:
        new_status = 'EXPIRED'

    failure = _transition(reservation, new_status, 'scheduler', now, fields=fields,
                          notes='window ended')
    if failure:
        return failure

    logger.info(f"[Reservations] Reservation {reservation_id} {reservation['status']} -> {new_status} (window ended)")
    log_audit(
        action=f'RESERVATION_{new_status}',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'actual_cost': reservation['estimated_cost'], 'reason': 'window ended'},
        user_id=reservation['user_id']
    )
    return _success(get_message('reservation_expired'), reservation_id=reservation_id, status=new_status)


def activate_reservation(reservation_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Open a CONFIRMED reservation once its window has started (CONFIRMED -> ACTIVE).

    The spot stays RESERVED until the vehicle checks in.
    """
    now = now or get_local_now()

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if reservation['status'] != 'CONFIRMED':
        return _failure(INVALID_STATE, get_message('cannot_activate'))
    if not (reservation['start_time'] <= now < reservation['end_time']):
        return _failure(INVALID_STATE, get_message('reservation_not_started'))

    failure = _transition(reservation, 'ACTIVE', 'scheduler', now, notes='window opened', release=False)
    if failure:
        return failure

    logger.debug(f"[Reservations] Reservation {reservation_id} activated")
    return _success(get_message('reservation_activated'), reservation_id=reservation_id, status='ACTIVE')


def mark_no_show(reservation_id: int, now: datetime = None, grace_minutes: int = None) -> Dict[str, Any]:
    """
    Mark an ACTIVE reservation with no check-in as NO_SHOW once the grace
    period after its start has elapsed. Only the reclamation sweep calls this.
    """
    now = now or get_local_now()
    if grace_minutes is None:
        grace_minutes = current_app.config['NO_SHOW_GRACE_MINUTES']

    reservation = get_reservation_by_id(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    if reservation['status'] != 'ACTIVE' or reservation['checked_in_at']:
        return _failure(INVALID_STATE, get_message('cannot_mark_no_show'))
    if reservation['start_time'] >= now - timedelta(minutes=grace_minutes):
        return _failure(INVALID_STATE, get_message('no_show_not_due'))

    failure = _transition(reservation, 'NO_SHOW', 'scheduler', now,
                          notes=f'no check-in within {grace_minutes} minutes')
    if failure:
        return failure

    offer = _offer_freed_window(reservation, now, now)

    logger.info(f"[Reservations] Reservation {reservation_id} marked as no-show")
    log_audit(
        action='RESERVATION_NO_SHOW',
        entity_type='reservation',
        entity_id=reservation_id,
        metadata={'grace_minutes': grace_minutes},
        user_id=reservation['user_id']
    )
    return _success(get_message('reservation_no_show'), reservation_id=reservation_id,
                    status='NO_SHOW', waitlist_offer=offer['id'] if offer else None)


# =============================================================================
# READ
# =============================================================================

def _decorate(reservation: dict) -> dict:
    config = current_app.config
    reservation['cancellation_deadline'] = (reservation.get('cancellation_deadline')
                                            or get_cancellation_deadline(reservation['start_time']))
    reservation['grace_period_minutes'] = config['GRACE_PERIOD_MINUTES']
    reservation['no_show_grace_minutes'] = config['NO_SHOW_GRACE_MINUTES']
    if reservation.get('spot_number') is not None:
        reservation['spot_label'] = format_spot_label(reservation)
    return reservation


def get_user_reservations(user_id: int, status: str = None, now: datetime = None) -> Dict[str, Any]:
    """
    A user's reservations (newest start first) and live waitlist entries.
    """
    reservations = [_decorate(r) for r in list_user_reservations(user_id, status)]
    expire_waitlist_entries(now)
    return _success(
        get_message('reservations_retrieved', count=len(reservations)),
        reservations=reservations,
        count=len(reservations),
        waitlist=get_user_waitlist(user_id),
    )


def get_reservation(reservation_id: int) -> Dict[str, Any]:
    """Single reservation with spot, owner and status history."""
    reservation = get_reservation_with_details(reservation_id)
    if not reservation:
        return _failure(NOT_FOUND, get_message('reservation_not_found'))
    reservation = _decorate(reservation)
    reservation['history'] = get_status_history(reservation_id)
    return _success(get_message('reservation_retrieved'), reservation=reservation)


def check_availability(start_time, end_time, spot_type: str = None, floor: int = None) -> Dict[str, Any]:
    """
    Spots free for a window.

    Args:
        start_time, end_time: ISO strings or datetimes
        spot_type: Filter by type (optional)
        floor: Filter by floor (optional)
    """
    errors: List[str] = []
    request = {'start_time': start_time, 'end_time': end_time}
    start = _parse_time_field(request, 'start_time', errors)
    end = _parse_time_field(request, 'end_time', errors)
    if start and end and not validate_time_range(start, end):
        errors.append(get_message('end_before_start'))
    if spot_type and not validate_spot_type(spot_type):
        errors.append(get_message('invalid_spot_type', spot_type=spot_type))
    if errors:
        return _failure(VALIDATION, get_message('validation_failed'), errors=errors)

    result = match_availability(start, end, spot_type=spot_type, floor=floor)
    logger.debug(f"[Reservations] Availability {start} - {end}: {result['available_count']}/{result['total_spots']}")
    return _success(get_message('availability_checked'), **result)


def get_reservation_stats(timeframe: str = 'day', now: datetime = None) -> Dict[str, Any]:
    """
    Reservation statistics for the last day, week or month.

    Returns:
        dict: total/active/completed/cancelled/no-show counts, waitlist_size,
              average_reservation_duration (minutes), occupancy_rate (%), revenue
    """
    if timeframe not in STATS_TIMEFRAMES:
        message = get_message('invalid_timeframe', options=', '.join(STATS_TIMEFRAMES))
        return _failure(VALIDATION, message, errors=[message])

    now = now or get_local_now()
    since = now - timedelta(days=STATS_TIMEFRAMES[timeframe])

    counts = get_reservation_counts(since)
    totals = get_completed_totals(since)

    active_spots = count_spots(active_only=True)
    occupied_spots = count_spots(active_only=True, status='OCCUPIED')
    occupancy_rate = round(occupied_spots / active_spots * 100, 1) if active_spots else 0.0

    stats = {
        'timeframe': timeframe,
        'since': since,
        'total_reservations': sum(counts.values()),
        'confirmed_reservations': counts.get('CONFIRMED', 0),
        'active_reservations': counts.get('ACTIVE', 0),
        'completed_reservations': counts.get('COMPLETED', 0),
        'cancelled_reservations': counts.get('CANCELLED', 0),
        'expired_reservations': counts.get('EXPIRED', 0),
        'no_show_reservations': counts.get('NO_SHOW', 0),
        'waitlist_size': get_waitlist_size(now),
        'average_reservation_duration': totals['average_duration_minutes'],
        'occupancy_rate': occupancy_rate,
        'revenue': totals['revenue'],
    }

    return _success(get_message('stats_retrieved'), stats=stats)


# =============================================================================
# WAITLIST OFFERS
# =============================================================================

def _load_offer(entry_id: int, user_id: int, now: datetime):
    expire_waitlist_entries(now)
    entry = get_waitlist_entry(entry_id)
    if not entry:
        return None, _failure(NOT_FOUND, get_message('waitlist_entry_not_found'))
    if not _same_user(entry['user_id'], user_id):
        return None, _failure(FORBIDDEN, get_message('unauthorized_waitlist'))
    if entry['status'] != 'offered':
        return None, _failure(INVALID_STATE, get_message('waitlist_not_offered'))
    return entry, None


def accept_waitlist_offer(entry_id: int, user_id: int, now: datetime = None) -> Dict[str, Any]:
    """
    Book the window of an offered waitlist entry.

    The booking goes through the normal path without waitlist fallback,
    asking for the freed spot the offer was made for. On success the entry
    becomes converted; if the window was taken again in the meantime the
    entry returns to its queue.
    """
    now = now or get_local_now()
    entry, failure = _load_offer(entry_id, user_id, now)
    if failure:
        return failure

    result = create_reservation({
        'user_id': entry['user_id'],
        'spot_id': entry['offered_spot_id'],
        'spot_type': entry['spot_type'],
        'start_time': entry['start_time'],
        'end_time': entry['end_time'],
        'license_plate': entry['license_plate'],
        'vehicle_make': entry['vehicle_make'],
        'vehicle_model': entry['vehicle_model'],
        'vehicle_color': entry['vehicle_color'],
        'preferred_features': entry['preferred_features'],
        'notes': entry['notes'],
        'allow_waitlist': False,
    }, now)

    if not result['success']:
        if result['error_type'] in (UNAVAILABLE, CONFLICT):
            update_waitlist_status(entry_id, 'waiting', now)
        return result

    convert_to_reservation(entry_id, result['reservation_id'], now)
    logger.info(f"[Waitlist] Entry {entry_id} converted to reservation {result['reservation_id']}")
    log_audit(
        action='WAITLIST_CONVERTED',
        entity_type='waitlist_entry',
        entity_id=entry_id,
        metadata={'reservation_id': result['reservation_id']},
        user_id=entry['user_id']
    )
    result['message'] = get_message('waitlist_converted')
    result['waitlist_entry_id'] = entry_id
    return result


def decline_waitlist_offer(entry_id: int, user_id: int, now: datetime = None) -> Dict[str, Any]:
    """Decline an offer; the window is offered to the next matching entry."""
    now = now or get_local_now()
    entry, failure = _load_offer(entry_id, user_id, now)
    if failure:
        return failure

    update_waitlist_status(entry_id, 'declined', now)
    log_audit(
        action='WAITLIST_DECLINED',
        entity_type='waitlist_entry',
        entity_id=entry_id,
        user_id=entry['user_id']
    )

    offer = None
    try:
        offer = notify_on_release(entry['spot_type'], entry['start_time'], entry['end_time'], now,
                                  spot_id=entry['offered_spot_id'])
    except sqlite3.Error as e:
        logger.warning(f"[Waitlist] Re-offer after decline of entry {entry_id} failed: {e}")

    return _success(get_message('waitlist_declined'), waitlist_entry_id=entry_id,
                    waitlist_offer=offer['id'] if offer else None)
