"""
Flask application configuration classes.
Provides configuration for development, production, and testing environments.
"""

import os


class Config:
    """Base configuration class with common settings."""

    # Secret key for session signing
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database configuration
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or 'instance/parking_garage.db'
    SEED_DEMO_DATA = True

    # Timezone of the garage clock (all stored timestamps are local to it)
    TIMEZONE = os.environ.get('GARAGE_TIMEZONE', 'Europe/Madrid')

    # Pricing (currency units per hour)
    HOURLY_RATES = {
        'compact': 4.0,
        'standard': 5.0,
        'oversized': 7.0,
    }
    DEFAULT_HOURLY_RATE = 5.0

    # Cancellation policy
    CANCELLATION_DEADLINE_HOURS = 2
    PARTIAL_REFUND_RATIO = 0.5

    # Reservation window limits
    MIN_RESERVATION_MINUTES = 30
    MAX_RESERVATION_HOURS = 24
    GRACE_PERIOD_MINUTES = 15
    NO_SHOW_GRACE_MINUTES = int(os.environ.get('NO_SHOW_GRACE_MINUTES', 30))

    # Waitlist
    WAITLIST_EXPIRY_HOURS = 24
    WAITLIST_MAX_NOTIFICATIONS = 3

    # Background reclamation
    RECLAMATION_INTERVAL_MINUTES = float(os.environ.get('RECLAMATION_INTERVAL_MINUTES', 10))

    # Spot matching
    MAX_ALTERNATIVES = 5

    # Free-text limits
    NOTES_MAX_LENGTH = 500

    # Application settings
    APP_NAME = 'ParkGarage'
    APP_VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production environment configuration."""

    DEBUG = False
    TESTING = False

    SECRET_KEY = os.environ.get('SECRET_KEY') or Config.SECRET_KEY
    DATABASE_PATH = os.environ.get('DATABASE_PATH') or Config.DATABASE_PATH

    @classmethod
    def validate(cls) -> None:
        """Validate that required production environment variables are set."""
        secret_key = os.environ.get('SECRET_KEY')
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set in production")
        if len(secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        if not os.environ.get('DATABASE_PATH'):
            raise ValueError("DATABASE_PATH environment variable must be set in production")


class TestConfig(Config):
    """Testing environment configuration."""

    TESTING = True
    DEBUG = True
    DATABASE_PATH = os.environ.get('DATABASE_PATH', ':memory:')
    SECRET_KEY = 'test-secret-key'
    TIMEZONE = 'UTC'
    SEED_DEMO_DATA = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'test': TestConfig,
    'default': DevelopmentConfig
}
