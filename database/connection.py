"""
Database connection management.
Handles per-context connections, atomic units of work, initialization, and teardown.
"""

import logging
import sqlite3
import os
from contextlib import contextmanager
from flask import g, current_app

logger = logging.getLogger(__name__)


def get_db():
    """
    Get thread-safe database connection with row factory.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/parking_garage.db')
        db_dir = os.path.dirname(db_path)
        if db_dir and db_path != ':memory:' and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)
        g.db = sqlite3.connect(db_path)
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # Enable WAL mode for better concurrency
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


@contextmanager
def transaction():
    """
    Run a block as one atomic unit of work.

    Opens BEGIN IMMEDIATE so the write lock is held from the first read,
    which serializes concurrent writers for the whole block. Commits on
    success and rolls back everything on any exception. When a transaction
    is already open the block runs inside a SAVEPOINT instead, so only the
    inner writes are undone on failure.

    Yields:
        sqlite3.Connection: The connection bound to the current context
    """
    db = get_db()

    if db.in_transaction:
        db.execute('SAVEPOINT atomic_unit')
        try:
            yield db
        except Exception:
            db.execute('ROLLBACK TO SAVEPOINT atomic_unit')
            db.execute('RELEASE SAVEPOINT atomic_unit')
            raise
        db.execute('RELEASE SAVEPOINT atomic_unit')
        return

    db.execute('BEGIN IMMEDIATE')
    try:
        yield db
    except Exception:
        db.rollback()
        logger.debug("Transaction rolled back")
        raise
    db.commit()


def init_db():
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!
    """
    from database.schema import drop_tables, create_tables, create_indexes, create_triggers
    from database.seed import seed_database

    db = get_db()

    # Drop existing tables (in reverse order of dependencies)
    drop_tables(db)

    # Create all tables
    create_tables(db)

    # Create indexes and integrity triggers
    create_indexes(db)
    create_triggers(db)

    # Insert seed data
    seed_database(db, demo=current_app.config.get('SEED_DEMO_DATA', True))

    db.commit()
    logger.info("Database initialized successfully")
