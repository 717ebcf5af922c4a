"""
Centralized user-facing messages.
All engine result messages live here for consistency.
"""

MESSAGES = {
    # Success messages
    'reservation_confirmed': 'Reservation confirmed for spot {spot_label}',
    'reservation_waitlisted': 'Added to waitlist - you will be notified when a spot becomes available',
    'reservation_cancelled': 'Reservation cancelled successfully',
    'reservation_cancelled_refund': 'Reservation cancelled successfully - Refund: {refund:.2f}',
    'reservation_checked_in': 'Check-in recorded',
    'reservation_completed': 'Reservation completed successfully',
    'reservation_expired': 'Reservation expired',
    'reservation_activated': 'Reservation window opened',
    'reservation_no_show': 'Reservation marked as no-show',
    'availability_checked': 'Availability checked successfully',
    'stats_retrieved': 'Reservation statistics retrieved',
    'reservations_retrieved': '{count} reservation(s) found',
    'reservation_retrieved': 'Reservation retrieved',
    'waitlist_converted': 'Waitlist offer accepted',
    'waitlist_declined': 'Waitlist offer declined',

    # Validation messages
    'start_in_past': 'Start time must be in the future',
    'end_before_start': 'End time must be after start time',
    'duration_too_long': 'Maximum reservation duration is {hours} hours',
    'duration_too_short': 'Minimum reservation duration is {minutes} minutes',
    'license_plate_required': 'License plate is required',
    'invalid_user': 'Invalid or inactive user',
    'start_time_required': 'Start time is required',
    'end_time_required': 'End time is required',
    'invalid_timestamp': 'Invalid {field} format',
    'invalid_spot_type': 'Unknown spot type: {spot_type}',
    'invalid_feature': 'Unknown spot feature: {feature}',
    'notes_too_long': 'Notes cannot exceed {max_length} characters',
    'validation_failed': 'Reservation request is invalid',

    # Business rejections
    'no_spots_available': 'No available spots for the requested time',
    'conflict_rejected': 'Time conflict detected with existing reservations',
    'conflict_review': 'Overlapping reservation requires review before booking',
    'reservation_not_found': 'Reservation not found',
    'waitlist_entry_not_found': 'Waitlist entry not found',
    'unauthorized_cancel': 'Unauthorized to cancel this reservation',
    'unauthorized_waitlist': 'Unauthorized to manage this waitlist entry',
    'cannot_cancel': 'Reservation cannot be cancelled',
    'cannot_complete': 'Only active reservations can be completed',
    'cannot_check_in': 'Reservation cannot be checked in',
    'already_checked_in': 'Reservation is already checked in',
    'waitlist_not_offered': 'Waitlist entry has no pending offer',
    'reservation_not_ended': 'Reservation window has not ended yet',
    'reservation_not_started': 'Reservation window is not open',
    'no_show_not_due': 'No-show grace period has not elapsed',
    'check_in_closed': 'Reservation window has closed',
    'check_in_too_early': 'Check-in opens {minutes} minutes before the reservation starts',
    'invalid_timeframe': 'Timeframe must be one of: {options}',
    'invalid_license_plate': 'License plate format is invalid',
    'invalid_text_field': '{field} must be text',
    'invalid_features': 'Preferred features must be a list of feature codes',
    'invalid_spot_id': 'Spot id must be an integer',
    'cannot_expire': 'Only confirmed or active reservations can expire',
    'cannot_activate': 'Only confirmed reservations can be activated',
    'cannot_mark_no_show': 'Only active reservations without a check-in can be marked as no-show',

    # Operational failures
    'create_failed': 'Failed to create reservation',
    'cancel_failed': 'Failed to cancel reservation',
    'complete_failed': 'Failed to complete reservation',
    'transition_failed': 'Failed to update reservation',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
