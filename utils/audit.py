"""
Audit logging utility functions.
Records reservation engine events for later review.
"""

import logging
from flask import request

# Configure logger for audit operations
logger = logging.getLogger(__name__)


def log_audit(
    action: str,
    entity_type: str,
    entity_id: int = None,
    metadata: dict = None,
    user_id: int = None
) -> int:
    """
    Log an audit entry.

    Captures the client IP address and user agent from the Flask request
    context when one exists; background jobs log without them. Must be
    called after the business transaction has committed, never inside it.

    Args:
        action: Event name (RESERVATION_CREATED, WAITLIST_ADDED, ...)
        entity_type: Entity type (reservation, waitlist_entry)
        entity_id: ID of the affected entity
        metadata: Event details (stored as JSON)
        user_id: User the event belongs to (None for system actions)

    Returns:
        New audit log ID, or None if logging failed

    Example:
        log_audit(
            action='RESERVATION_CANCELLED',
            entity_type='reservation',
            entity_id=123,
            metadata={'refund_amount': 10.0, 'reason': 'plans changed'},
            user_id=7
        )
    """
    try:
        from models.audit_log import create_audit_log

        ip_address = None
        user_agent = None

        try:
            if request:
                # Get client IP, considering proxies
                ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
                if ip_address and ',' in ip_address:
                    ip_address = ip_address.split(',')[0].strip()
                user_agent = request.headers.get('User-Agent', '')[:255]
        except RuntimeError:
            # Outside request context (e.g., background jobs)
            pass

        audit_log_id = create_audit_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            changes=metadata,
            ip_address=ip_address,
            user_agent=user_agent
        )

        logger.info(f"[Audit] {action} {entity_type}={entity_id} user={user_id}")
        return audit_log_id

    except Exception as e:
        # Audit logging should never fail the main operation
        logger.error(f"Failed to log audit entry: {e}", exc_info=True)
        return None
