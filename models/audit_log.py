"""
Audit Log model and data access functions.
Handles audit log creation and retrieval for reservation engine events.
"""

import json
from database import get_db


# =============================================================================
# READ OPERATIONS
# =============================================================================

def get_audit_logs_for_entity(entity_type: str, entity_id: int, limit: int = 50) -> list:
    """
    Get audit history for a specific entity.

    Args:
        entity_type: Entity type (reservation, waitlist_entry, ...)
        entity_id: Entity ID
        limit: Maximum number of records

    Returns:
        List of audit log dicts, newest first, with 'changes' decoded
    """
    db = get_db()
    cursor = db.execute('''
        SELECT al.*, u.username
        FROM audit_log al
        LEFT JOIN users u ON al.user_id = u.id
        WHERE al.entity_type = ? AND al.entity_id = ?
        ORDER BY al.id DESC
        LIMIT ?
    ''', (entity_type, entity_id, limit))

    logs = []
    for row in cursor.fetchall():
        entry = dict(row)
        if entry.get('changes'):
            entry['changes'] = json.loads(entry['changes'])
        logs.append(entry)
    return logs


def get_audit_logs_by_action(action: str, limit: int = 100) -> list:
    """Get the most recent audit entries for an action type."""
    db = get_db()
    cursor = db.execute('''
        SELECT * FROM audit_log
        WHERE action = ?
        ORDER BY id DESC
        LIMIT ?
    ''', (action, limit))
    return [dict(row) for row in cursor.fetchall()]


# =============================================================================
# CREATE
# =============================================================================

def create_audit_log(
    action: str,
    entity_type: str,
    entity_id: int = None,
    user_id: int = None,
    changes: dict = None,
    ip_address: str = None,
    user_agent: str = None
) -> int:
    """
    Create a new audit log entry.

    Args:
        action: Action type (RESERVATION_CREATED, RESERVATION_CANCELLED, ...)
        entity_type: Entity type (reservation, waitlist_entry)
        entity_id: ID of the affected entity
        user_id: ID of the user the event belongs to (None for system actions)
        changes: Dictionary with event metadata or before/after state
        ip_address: Client IP address
        user_agent: Client user agent string

    Returns:
        New audit log ID
    """
    # Serialize changes dict to JSON string
    changes_json = None
    if changes is not None:
        changes_json = json.dumps(changes, default=str, ensure_ascii=False)

    with get_db() as conn:
        cursor = conn.execute('''
            INSERT INTO audit_log (
                user_id, action, entity_type, entity_id,
                changes, ip_address, user_agent
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (user_id, action, entity_type, entity_id,
              changes_json, ip_address, user_agent))
        return cursor.lastrowid
