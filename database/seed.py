"""
Database seed data.
Initial data population for fresh database installations.
"""


def seed_database(db, demo: bool = True):
    """
    Insert initial seed data.

    Args:
        db: Open connection
        demo: If True, also create the demo garage layout and operator accounts
    """
    if not demo:
        return

    # 1. Operator / demo accounts
    users_data = [
        ('admin', 'admin@parkgarage.local', 'Garage Administrator'),
        ('demo', 'demo@parkgarage.local', 'Demo Driver'),
    ]

    for username, email, full_name in users_data:
        db.execute('''
            INSERT INTO users (username, email, full_name, active)
            VALUES (?, ?, ?, 1)
        ''', (username, email, full_name))

    # 2. Garage layout: (floor, bay, first number, count, type, features)
    layout = [
        (1, 'A', 1, 4, 'compact', ''),
        (1, 'A', 5, 6, 'standard', ''),
        (1, 'B', 11, 2, 'standard', 'ev_charging'),
        (1, 'B', 13, 2, 'standard', 'accessible'),
        (1, 'C', 15, 2, 'oversized', ''),
        (2, 'A', 1, 4, 'compact', 'covered'),
        (2, 'A', 5, 6, 'standard', 'covered'),
        (2, 'B', 11, 2, 'oversized', 'covered,ev_charging'),
    ]

    for floor, bay, first_number, count, spot_type, features in layout:
        for number in range(first_number, first_number + count):
            db.execute('''
                INSERT INTO parking_spots (spot_number, floor, bay, spot_type, features)
                VALUES (?, ?, ?, ?, ?)
            ''', (number, floor, bay, spot_type, features))
