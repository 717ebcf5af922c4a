"""
Reservation API routes.
Endpoints for booking, cancelling, checking in and completing reservations,
plus availability and statistics.

Authentication is handled upstream; the acting user is passed as user_id.
"""

from flask import request

from blueprints.parking.services import (
    cancel_reservation,
    check_availability,
    check_in_reservation,
    complete_reservation,
    create_reservation,
    get_reservation,
    get_reservation_stats,
    get_user_reservations,
)
from utils.api_response import api_error, api_result


def register_routes(bp):
    """Register reservation routes on the blueprint."""

    @bp.route('/reservations', methods=['POST'])
    def create():
        """
        Create a reservation.

        Request body:
            user_id, start_time, end_time (ISO 8601), license_plate (required)
            spot_type, spot_id, vehicle_make, vehicle_model, vehicle_color,
            preferred_features, notes, allow_waitlist (optional)

        Returns:
            201 with the booking or waitlist position, or an error by type
        """
        data = request.get_json(silent=True)
        if not data or not isinstance(data, dict):
            return api_error('Request body is required', status=400, error_type='validation')

        result = create_reservation(data)
        return api_result(result, success_status=201)

    @bp.route('/reservations', methods=['GET'])
    def list_reservations():
        """
        List a user's reservations.

        Query params:
            user_id: Owner (required)
            status: Filter by status (optional)
        """
        user_id = request.args.get('user_id', type=int)
        if not user_id:
            return api_error('user_id is required', status=400, error_type='validation')

        return api_result(get_user_reservations(user_id, status=request.args.get('status')))

    @bp.route('/reservations/<int:reservation_id>', methods=['GET'])
    def detail(reservation_id):
        """Get a reservation with its status history."""
        return api_result(get_reservation(reservation_id))

    @bp.route('/reservations/<int:reservation_id>/cancel', methods=['POST'])
    def cancel(reservation_id):
        """
        Cancel a reservation.

        Request body:
            user_id: Acting user (must own the reservation)
            reason: Cancellation reason (optional)
        """
        data = request.get_json(silent=True) or {}
        if not data.get('user_id'):
            return api_error('user_id is required', status=400, error_type='validation')

        result = cancel_reservation(reservation_id, data['user_id'], reason=data.get('reason'))
        return api_result(result)

    @bp.route('/reservations/<int:reservation_id>/check-in', methods=['POST'])
    def check_in(reservation_id):
        """Record vehicle arrival."""
        return api_result(check_in_reservation(reservation_id))

    @bp.route('/reservations/<int:reservation_id>/complete', methods=['POST'])
    def complete(reservation_id):
        """
        Complete an active reservation.

        Request body:
            completed_at: Checkout time, ISO 8601 (optional, defaults to now)
        """
        data = request.get_json(silent=True) or {}
        try:
            result = complete_reservation(reservation_id, completed_at=data.get('completed_at'))
        except ValueError:
            return api_error('Invalid completed_at format', status=400, error_type='validation')
        return api_result(result)

    @bp.route('/availability', methods=['GET'])
    def availability():
        """
        Spots free for a window.

        Query params:
            start_time, end_time: ISO 8601 (required)
            spot_type: Filter by type (optional)
            floor: Filter by floor (optional)
        """
        result = check_availability(
            request.args.get('start_time'),
            request.args.get('end_time'),
            spot_type=request.args.get('spot_type'),
            floor=request.args.get('floor', type=int)
        )
        return api_result(result)

    @bp.route('/stats', methods=['GET'])
    def stats():
        """
        Reservation statistics.

        Query params:
            timeframe: day, week or month (default day)
        """
        return api_result(get_reservation_stats(request.args.get('timeframe', 'day')))
