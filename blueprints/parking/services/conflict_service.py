"""
Conflict Service - Overlap detection between reservations on a spot.

Handles:
- Overlap lookup for a candidate (spot, window)
- Per-conflict severity by overlap duration
- Aggregate resolution decision (AUTO_RESOLVE / MANUAL_REVIEW / REJECT)
- Garage-wide overlap audit for the integrity check
"""

import logging
from datetime import datetime
from typing import Dict, List, Any

from models.reservation import find_overlapping, find_overlapping_pairs
from utils.time_calculator import duration_minutes

logger = logging.getLogger(__name__)

SEVERITY_LOW = 'LOW'
SEVERITY_MEDIUM = 'MEDIUM'
SEVERITY_HIGH = 'HIGH'

RESOLUTION_AUTO = 'AUTO_RESOLVE'
RESOLUTION_REVIEW = 'MANUAL_REVIEW'
RESOLUTION_REJECT = 'REJECT'

# Overlap minutes above which a conflict is MEDIUM / HIGH
MEDIUM_THRESHOLD_MINUTES = 60
HIGH_THRESHOLD_MINUTES = 120


def classify_severity(overlap_minutes: float) -> str:
    """
    Severity of an overlap.

    Args:
        overlap_minutes: Overlap duration in minutes

    Returns:
        str: HIGH (> 120), MEDIUM (> 60) or LOW
    """
    if overlap_minutes > HIGH_THRESHOLD_MINUTES:
        return SEVERITY_HIGH
    if overlap_minutes > MEDIUM_THRESHOLD_MINUTES:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


def resolve_conflicts(conflicts: List[Dict[str, Any]]) -> str:
    """Aggregate resolution for a list of classified conflicts."""
    if any(c['severity'] == SEVERITY_HIGH for c in conflicts):
        return RESOLUTION_REJECT
    if conflicts:
        return RESOLUTION_REVIEW
    return RESOLUTION_AUTO


def find_conflicts(
    spot_id: int,
    start_time: datetime,
    end_time: datetime,
    exclude_reservation_id: int = None,
    conn=None
) -> Dict[str, Any]:
    """
    Find occupying reservations overlapping [start_time, end_time) on a spot.

    Pure read. When called with conn inside an open transaction the lookup
    sees the transaction's own snapshot, which is how the booking path
    re-checks right before it writes.

    Args:
        spot_id: Spot ID
        start_time: Window start
        end_time: Window end (caller guarantees end_time > start_time)
        exclude_reservation_id: Reservation to ignore
        conn: Open connection to reuse

    Returns:
        dict: {
            'has_conflict': bool,
            'conflicts': [{reservation_id, spot_id, overlap_start, overlap_end,
                           duration_minutes, severity}],
            'resolution': str
        }
    """
    overlapping = find_overlapping(spot_id, start_time, end_time, exclude_reservation_id, conn=conn)

    conflicts = []
    for other in overlapping:
        overlap_start = max(start_time, other['start_time'])
        overlap_end = min(end_time, other['end_time'])
        minutes = duration_minutes(overlap_start, overlap_end)
        conflicts.append({
            'reservation_id': other['id'],
            'spot_id': spot_id,
            'overlap_start': overlap_start,
            'overlap_end': overlap_end,
            'duration_minutes': minutes,
            'severity': classify_severity(minutes),
        })

    resolution = resolve_conflicts(conflicts)
    if conflicts:
        logger.debug(f"[Conflicts] spot={spot_id} {start_time}-{end_time}: "
                     f"{len(conflicts)} conflict(s), resolution={resolution}")

    return {
        'has_conflict': bool(conflicts),
        'conflicts': conflicts,
        'resolution': resolution,
    }


def find_overlapping_bookings() -> List[Dict[str, Any]]:
    """
    Audit every spot for pairs of occupying reservations that overlap.

    Returns:
        list: {spot_id, first_id, second_id} per offending pair (empty when healthy)
    """
    pairs = find_overlapping_pairs()
    if pairs:
        logger.error(f"[Conflicts] Integrity check found {len(pairs)} overlapping pair(s)")
    return pairs
