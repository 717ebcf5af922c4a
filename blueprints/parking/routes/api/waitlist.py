"""
Waitlist API routes.
Endpoints for inspecting entries and answering spot offers.
"""

from flask import request

from blueprints.parking.services import (
    accept_waitlist_offer,
    decline_waitlist_offer,
    get_waitlist_entry_details,
    get_waitlist_size,
)
from utils.api_response import api_error, api_result, api_success


def _acting_user():
    data = request.get_json(silent=True) or {}
    return data.get('user_id')


def register_routes(bp):
    """Register waitlist routes on the blueprint."""

    @bp.route('/waitlist/count', methods=['GET'])
    def waitlist_count():
        """
        Number of waiting entries.

        Query params:
            spot_type: Filter by spot type (optional)
        """
        return api_success(data={'count': get_waitlist_size(spot_type=request.args.get('spot_type'))})

    @bp.route('/waitlist/<int:entry_id>', methods=['GET'])
    def get_entry(entry_id):
        """Get single waitlist entry with its current position."""
        entry = get_waitlist_entry_details(entry_id)
        if not entry:
            return api_error('Waitlist entry not found', status=404, error_type='not_found')
        return api_success(data={'entry': entry})

    @bp.route('/waitlist/<int:entry_id>/accept', methods=['POST'])
    def accept(entry_id):
        """
        Accept a spot offer and book it.

        Request body:
            user_id: Entry owner
        """
        user_id = _acting_user()
        if not user_id:
            return api_error('user_id is required', status=400, error_type='validation')
        return api_result(accept_waitlist_offer(entry_id, user_id), success_status=201)

    @bp.route('/waitlist/<int:entry_id>/decline', methods=['POST'])
    def decline(entry_id):
        """
        Decline a spot offer.

        Request body:
            user_id: Entry owner
        """
        user_id = _acting_user()
        if not user_id:
            return api_error('user_id is required', status=400, error_type='validation')
        return api_result(decline_waitlist_offer(entry_id, user_id))
