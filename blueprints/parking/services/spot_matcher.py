"""
Spot Matcher - Picks a conflict-free spot for a requested window.

Handles:
- Specific-spot requests (checked first, then general search as fallback)
- Greedy deterministic search: lowest floor, then lowest spot number
- Ranked alternatives when nothing is free
- Availability listings for a window
"""

import logging
from datetime import datetime
from typing import Dict, List, Any

from flask import current_app

from models.spot import find_active_by_type, get_all_spots, get_spot_by_id
from .conflict_service import RESOLUTION_AUTO, find_conflicts

logger = logging.getLogger(__name__)


def _alternative(spot: dict) -> Dict[str, Any]:
    return {
        'spot_id': spot['id'],
        'spot_number': spot['spot_number'],
        'floor': spot['floor'],
        'bay': spot.get('bay'),
        'label': spot['label'],
        'features': spot['features'],
    }


def find_available_spot(request: Dict[str, Any]) -> Dict[str, Any]:
    """
    Find a spot free for the requested window.

    Args:
        request: dict with keys:
            - spot_type (required)
            - start_time, end_time (datetimes, required)
            - spot_id (optional specific spot)

    Returns:
        dict: {
            'available': bool,
            'spot_id': int or None,
            'spot': dict or None,
            'alternatives': list (only when not available)
        }
    """
    spot_type = request['spot_type']
    start_time = request['start_time']
    end_time = request['end_time']

    requested_id = request.get('spot_id')
    if requested_id:
        spot = get_spot_by_id(requested_id)
        if spot and spot['is_active']:
            check = find_conflicts(spot['id'], start_time, end_time)
            if check['resolution'] == RESOLUTION_AUTO:
                return {'available': True, 'spot_id': spot['id'], 'spot': spot, 'alternatives': []}
            logger.info(f"[Matcher] Requested spot {requested_id} not free "
                        f"({check['resolution']}), searching by type")

    alternatives = []
    for spot in find_active_by_type(spot_type):
        check = find_conflicts(spot['id'], start_time, end_time)
        if not check['has_conflict']:
            return {'available': True, 'spot_id': spot['id'], 'spot': spot, 'alternatives': []}
        alternatives.append(_alternative(spot))

    max_alternatives = current_app.config.get('MAX_ALTERNATIVES', 5)
    return {
        'available': False,
        'spot_id': None,
        'spot': None,
        'alternatives': alternatives[:max_alternatives],
    }


def check_availability(
    start_time: datetime,
    end_time: datetime,
    spot_type: str = None,
    floor: int = None
) -> Dict[str, Any]:
    """
    List active spots with no occupying reservation in the window.

    Args:
        start_time: Window start
        end_time: Window end
        spot_type: Filter by type (optional)
        floor: Filter by floor (optional)

    Returns:
        dict: {'available_spots': list, 'available_count': int, 'total_spots': int}
    """
    spots = get_all_spots(spot_type=spot_type, floor=floor, active_only=True)

    available: List[Dict[str, Any]] = []
    for spot in spots:
        if not find_conflicts(spot['id'], start_time, end_time)['has_conflict']:
            available.append({**_alternative(spot), 'spot_type': spot['spot_type'], 'status': spot['status']})

    return {
        'available_spots': available,
        'available_count': len(available),
        'total_spots': len(spots),
    }
