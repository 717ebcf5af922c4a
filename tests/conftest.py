"""
Pytest configuration and fixtures.
Ensures tests use an isolated test database, not the production database.
"""

import os
import pytest
import tempfile
from datetime import datetime

# Set test database path BEFORE importing app
# This ensures all tests use an isolated database
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f'parkgarage_test_{os.getpid()}.db')
os.environ['DATABASE_PATH'] = TEST_DB_PATH

# Fixed garage clock for engine tests
NOW = datetime(2030, 6, 1, 8, 0, 0)


@pytest.fixture(scope='session', autouse=True)
def setup_test_environment():
    """Set up test environment before any tests run."""
    os.environ['DATABASE_PATH'] = TEST_DB_PATH
    os.environ['FLASK_ENV'] = 'test'

    yield

    # Cleanup: remove test database (and WAL files) after all tests
    for path in (TEST_DB_PATH, TEST_DB_PATH + '-wal', TEST_DB_PATH + '-shm'):
        if os.path.exists(path):
            try:
                os.remove(path)
            except PermissionError:
                pass  # Windows may have file locked


@pytest.fixture
def app():
    """Create test application with a fresh, empty database."""
    from app import create_app
    from database import init_db

    os.environ['DATABASE_PATH'] = TEST_DB_PATH

    app = create_app('test')
    app.config['TESTING'] = True
    app.config['DATABASE_PATH'] = TEST_DB_PATH

    with app.app_context():
        init_db()
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def user_id(app):
    """An active user."""
    from models.user import create_user
    return create_user('driver', 'driver@example.com', full_name='Test Driver')


@pytest.fixture
def other_user_id(app):
    """A second active user."""
    from models.user import create_user
    return create_user('other', 'other@example.com', full_name='Other Driver')


@pytest.fixture
def spots(app):
    """
    Small garage:
        floor 1: compact #1, #2; standard #3
        floor 2: compact #1 (covered); oversized #5 (ev_charging)
    """
    from models.spot import create_spot

    return {
        'f1_compact_1': create_spot(1, 'compact', floor=1, bay='A'),
        'f1_compact_2': create_spot(2, 'compact', floor=1, bay='A'),
        'f1_standard_3': create_spot(3, 'standard', floor=1, bay='B'),
        'f2_compact_1': create_spot(1, 'compact', floor=2, bay='A', features=['covered']),
        'f2_oversized_5': create_spot(5, 'oversized', floor=2, bay='C', features=['ev_charging']),
    }


@pytest.fixture
def make_request(user_id):
    """Build a reservation request relative to a start datetime."""
    from datetime import timedelta

    def _make(start, hours=2.0, **overrides):
        request = {
            'user_id': user_id,
            'spot_type': 'compact',
            'start_time': start,
            'end_time': start + timedelta(hours=hours),
            'license_plate': 'ABC-1234',
            'vehicle_make': 'Seat',
            'vehicle_model': 'Ibiza',
            'vehicle_color': 'red',
        }
        request.update(overrides)
        return request

    return _make


@pytest.fixture
def insert_booking(app):
    """Insert a reservation row directly, bypassing the matcher and spot status."""
    from datetime import timedelta
    from database import transaction
    from models.reservation import insert_reservation

    def _insert(user_id, spot_id, start, end, status='CONFIRMED', spot_type='compact', estimated_cost=4.0):
        with transaction() as conn:
            return insert_reservation(conn, {
                'user_id': user_id,
                'spot_id': spot_id,
                'spot_type': spot_type,
                'license_plate': 'XYZ-9',
                'start_time': start,
                'end_time': end,
                'cancellation_deadline': start - timedelta(hours=2),
                'estimated_cost': estimated_cost,
                'status': status,
            }, now=NOW)

    return _insert
