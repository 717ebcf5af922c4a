"""
Database schema definitions.
Table creation, indexes, triggers, and structure management.

Timestamps are stored as TEXT 'YYYY-MM-DD HH:MM:SS' in the garage's local
time so that string comparison in SQL is chronological.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'audit_log',
        'waitlist_entries',
        'reservation_status_history',
        'reservations',
        'parking_spots',
        'users'
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Users (owned by the account system, read-only here)
    db.execute('''
        CREATE TABLE users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT UNIQUE NOT NULL,
            email TEXT UNIQUE NOT NULL,
            full_name TEXT,
            active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Garage inventory
    db.execute('''
        CREATE TABLE parking_spots (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            spot_number INTEGER NOT NULL,
            floor INTEGER NOT NULL DEFAULT 1,
            bay TEXT,
            spot_type TEXT NOT NULL
                CHECK(spot_type IN ('compact', 'standard', 'oversized')),
            features TEXT DEFAULT '',
            status TEXT NOT NULL DEFAULT 'AVAILABLE'
                CHECK(status IN ('AVAILABLE', 'RESERVED', 'OCCUPIED')),
            is_active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(floor, spot_number)
        )
    ''')

    # 3. Reservations
    db.execute('''
        CREATE TABLE reservations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id),
            spot_id INTEGER REFERENCES parking_spots(id),
            spot_type TEXT NOT NULL,
            license_plate TEXT NOT NULL,
            vehicle_make TEXT,
            vehicle_model TEXT,
            vehicle_color TEXT,
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            cancellation_deadline TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'CONFIRMED'
                CHECK(status IN ('CONFIRMED', 'WAITLISTED', 'PENDING_PAYMENT', 'ACTIVE',
                                 'CANCELLED', 'EXPIRED', 'NO_SHOW', 'COMPLETED')),
            estimated_cost REAL NOT NULL DEFAULT 0,
            actual_cost REAL,
            refund_amount REAL,
            cancellation_reason TEXT,
            cancelled_at TEXT,
            checked_in_at TEXT,
            completed_at TEXT,
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT,
            CHECK(end_time > start_time)
        )
    ''')

    db.execute('''
        CREATE TABLE reservation_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            reservation_id INTEGER NOT NULL REFERENCES reservations(id) ON DELETE CASCADE,
            old_status TEXT,
            new_status TEXT NOT NULL,
            changed_by TEXT,
            notes TEXT,
            created_at TEXT NOT NULL
        )
    ''')

    # 4. Waitlist (one FIFO queue per queue_key)
    db.execute('''
        CREATE TABLE waitlist_entries (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL REFERENCES users(id),
            spot_type TEXT NOT NULL,
            preferred_features TEXT DEFAULT '',
            start_time TEXT NOT NULL,
            end_time TEXT NOT NULL,
            queue_key TEXT NOT NULL,
            position INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'waiting'
                CHECK(status IN ('waiting', 'offered', 'converted', 'declined', 'expired')),
            license_plate TEXT,
            vehicle_make TEXT,
            vehicle_model TEXT,
            vehicle_color TEXT,
            notes TEXT,
            notifications_sent INTEGER DEFAULT 0,
            max_notifications INTEGER DEFAULT 3,
            last_notified_at TEXT,
            offered_spot_id INTEGER REFERENCES parking_spots(id),
            converted_reservation_id INTEGER REFERENCES reservations(id),
            expires_at TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT
        )
    ''')

    # 5. Audit log
    db.execute('''
        CREATE TABLE audit_log (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            entity_type TEXT NOT NULL,
            entity_id INTEGER,
            changes TEXT,
            ip_address TEXT,
            user_agent TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create indexes for the hot query paths."""
    indexes = [
        'CREATE INDEX IF NOT EXISTS idx_spots_type_status ON parking_spots(spot_type, status, is_active)',
        'CREATE INDEX IF NOT EXISTS idx_reservations_spot_window ON reservations(spot_id, status, start_time, end_time)',
        'CREATE INDEX IF NOT EXISTS idx_reservations_user ON reservations(user_id, start_time)',
        'CREATE INDEX IF NOT EXISTS idx_reservations_status_end ON reservations(status, end_time)',
        'CREATE INDEX IF NOT EXISTS idx_status_history_reservation ON reservation_status_history(reservation_id)',
        'CREATE INDEX IF NOT EXISTS idx_waitlist_queue ON waitlist_entries(queue_key, status, id)',
        'CREATE INDEX IF NOT EXISTS idx_waitlist_expiry ON waitlist_entries(status, expires_at)',
        'CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log(entity_type, entity_id)',
    ]

    for statement in indexes:
        db.execute(statement)


def create_triggers(db):
    """
    Refuse any write that would leave two occupying reservations
    (CONFIRMED/ACTIVE) overlapping on the same spot.
    """
    db.execute('''
        CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_insert
        BEFORE INSERT ON reservations
        WHEN NEW.spot_id IS NOT NULL AND NEW.status IN ('CONFIRMED', 'ACTIVE')
        BEGIN
            SELECT RAISE(ABORT, 'overlapping occupying reservation on spot')
            WHERE EXISTS (
                SELECT 1 FROM reservations r
                WHERE r.spot_id = NEW.spot_id
                  AND r.status IN ('CONFIRMED', 'ACTIVE')
                  AND r.start_time < NEW.end_time
                  AND r.end_time > NEW.start_time
            );
        END
    ''')

    db.execute('''
        CREATE TRIGGER IF NOT EXISTS trg_reservations_no_overlap_update
        BEFORE UPDATE OF status, spot_id, start_time, end_time ON reservations
        WHEN NEW.spot_id IS NOT NULL AND NEW.status IN ('CONFIRMED', 'ACTIVE')
        BEGIN
            SELECT RAISE(ABORT, 'overlapping occupying reservation on spot')
            WHERE EXISTS (
                SELECT 1 FROM reservations r
                WHERE r.spot_id = NEW.spot_id
                  AND r.id != NEW.id
                  AND r.status IN ('CONFIRMED', 'ACTIVE')
                  AND r.start_time < NEW.end_time
                  AND r.end_time > NEW.start_time
            );
        END
    ''')
