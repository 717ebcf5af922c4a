"""
Spot API routes.
Read-only view of the garage inventory.
"""

from flask import request

from models.spot import get_all_spots, get_spot_by_id
from utils.api_response import api_error, api_success
from utils.validators import validate_spot_type


def register_routes(bp):
    """Register spot routes on the blueprint."""

    @bp.route('/spots', methods=['GET'])
    def list_spots():
        """
        List active spots.

        Query params:
            spot_type: Filter by type (optional)
            floor: Filter by floor (optional)
        """
        spot_type = request.args.get('spot_type')
        if spot_type and not validate_spot_type(spot_type):
            return api_error(f'Unknown spot type: {spot_type}', status=400, error_type='validation')

        spots = get_all_spots(spot_type=spot_type, floor=request.args.get('floor', type=int))
        return api_success(data={'spots': spots, 'count': len(spots)})

    @bp.route('/spots/<int:spot_id>', methods=['GET'])
    def get_spot(spot_id):
        """Get a single spot."""
        spot = get_spot_by_id(spot_id)
        if not spot:
            return api_error('Spot not found', status=404, error_type='not_found')
        return api_success(data={'spot': spot})
