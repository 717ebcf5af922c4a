"""
User data access functions.
The account system owns users; the reservation engine only looks them up.
"""

from database import get_db
from utils.validators import validate_email


def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def is_active_user(user_id) -> bool:
    """True if the user exists and is active."""
    if isinstance(user_id, bool) or not isinstance(user_id, (int, str)):
        return False
    user = get_user_by_id(user_id)
    return bool(user) and user['active'] == 1


def create_user(username: str, email: str, full_name: str = None, active: bool = True) -> int:
    """
    Create new user.

    Args:
        username: Unique username
        email: Unique email
        full_name: Full name (optional)
        active: Whether the account can book

    Returns:
        New user ID

    Raises:
        ValueError: If username/email are missing, malformed, or taken
    """
    if not username:
        raise ValueError('Username is required')
    if not validate_email(email):
        raise ValueError('Invalid email format')

    db = get_db()
    cursor = db.cursor()

    cursor.execute('SELECT id FROM users WHERE username = ? OR email = ?', (username, email))
    if cursor.fetchone():
        raise ValueError('Username or email already exists')

    cursor.execute('''
        INSERT INTO users (username, email, full_name, active)
        VALUES (?, ?, ?, ?)
    ''', (username, email, full_name, 1 if active else 0))

    db.commit()
    return cursor.lastrowid


def set_user_active(user_id: int, active: bool) -> bool:
    """
    Activate or deactivate a user.

    Returns:
        True if a user row was updated
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('UPDATE users SET active = ? WHERE id = ?', (1 if active else 0, user_id))
    db.commit()
    return cursor.rowcount > 0
