"""
ParkGarage - Parking Garage Reservation Engine
Flask application factory and initialization
"""

import os
import click
import logging
from datetime import date, datetime
from flask import Flask, g, jsonify
from flask.json.provider import DefaultJSONProvider
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Import configuration
from config import config  # noqa: E402

# Import extensions
from extensions import reclamation_scheduler  # noqa: E402

# Import database functions
from database import close_db, init_db  # noqa: E402


class GarageJSONProvider(DefaultJSONProvider):
    """JSON provider that renders datetimes as ISO 8601."""

    @staticmethod
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def create_app(config_name=None):
    """
    Application factory for Flask app.

    Args:
        config_name: Configuration name ('development', 'production', 'test')

    Returns:
        Flask application instance
    """
    # Determine config
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')

    # Create Flask app
    app = Flask(__name__)
    app.json = GarageJSONProvider(app)

    # Load configuration
    app.config.from_object(config[config_name])

    # Initialize extensions
    initialize_extensions(app)

    # Register blueprints
    register_blueprints(app)

    # Register error handlers
    register_error_handlers(app)

    # Register CLI commands
    register_cli_commands(app)

    # Register teardown handlers
    register_teardown_handlers(app)

    # Configure logging
    configure_logging(app)

    return app


def initialize_extensions(app):
    """Initialize extensions."""
    # Bind the reclamation scheduler (it is started explicitly, never here)
    reclamation_scheduler.init_app(app)


def register_blueprints(app):
    """Register Flask blueprints."""
    # Import blueprints
    from blueprints.parking import parking_bp
    from blueprints.api.routes import api_bp

    # Register blueprints
    app.register_blueprint(parking_bp, url_prefix='/parking')
    app.register_blueprint(api_bp, url_prefix='/api')


def register_error_handlers(app):
    """Register error handlers."""

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors."""
        return jsonify({'success': False, 'error': 'Not found', 'error_type': 'not_found'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        """Handle 405 errors."""
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        # Rollback database on error
        db = g.get('db')
        if db:
            db.rollback()
        return jsonify({'success': False, 'error': 'Internal server error', 'error_type': 'operational'}), 500


def register_cli_commands(app):
    """Register Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db_command():
        """Initialize database with schema and seed data."""
        click.echo('Initializing database...')
        with app.app_context():
            init_db()
        click.echo('Database initialized successfully!')

    @app.cli.command('create-user')
    @click.argument('username')
    @click.argument('email')
    @click.option('--full-name', default=None, help='Display name')
    def create_user_command(username, email, full_name):
        """Create a new user."""
        from models.user import create_user

        with app.app_context():
            try:
                user_id = create_user(username=username, email=email, full_name=full_name)
                click.echo(f'User created successfully! ID: {user_id}')
            except ValueError as e:
                click.echo(f'Error creating user: {str(e)}', err=True)

    @app.cli.command('reclaim')
    def reclaim_command():
        """Run one reclamation sweep (expiry, activation, no-show, waitlist)."""
        counts = reclamation_scheduler.run_once()
        click.echo(
            f"Expired: {counts['expired']}, activated: {counts['activated']}, "
            f"no-shows: {counts['no_shows']}, waitlist expired: {counts['waitlist_expired']}"
        )

    @app.cli.command('run-scheduler')
    @click.option('--interval', type=float, default=None,
                  help='Minutes between sweeps (defaults to RECLAMATION_INTERVAL_MINUTES)')
    def run_scheduler_command(interval):
        """Run the reclamation scheduler until interrupted."""
        if interval is not None:
            reclamation_scheduler.interval_minutes = interval
        click.echo(f'Reclamation scheduler running every {reclamation_scheduler.interval_minutes} minutes '
                   f'(Ctrl+C to stop)')
        reclamation_scheduler.start()
        try:
            reclamation_scheduler.wait()
        except KeyboardInterrupt:
            pass
        finally:
            reclamation_scheduler.stop()
        click.echo('Scheduler stopped')

    @app.cli.command('check-integrity')
    def check_integrity_command():
        """Report overlapping occupying reservations (should be none)."""
        from blueprints.parking.services import find_overlapping_bookings

        with app.app_context():
            pairs = find_overlapping_bookings()
        if not pairs:
            click.echo('No overlapping reservations found')
            return
        for pair in pairs:
            click.echo(f"Spot {pair['spot_id']}: reservations {pair['first_id']} and {pair['second_id']} overlap",
                       err=True)
        raise SystemExit(1)


def register_teardown_handlers(app):
    """Register teardown handlers."""

    @app.teardown_appcontext
    def teardown_db(error):
        """Close database connection at end of request."""
        close_db(error)


def configure_logging(app):
    """Configure application logging."""
    if not app.debug and not app.testing:
        # Production logging
        if not os.path.exists('logs'):
            os.mkdir('logs')

        file_handler = logging.FileHandler('logs/parking.log')
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        # Engine modules log through their own module loggers
        logging.getLogger().addHandler(file_handler)
        logging.getLogger().setLevel(logging.INFO)

        app.logger.setLevel(logging.INFO)
        app.logger.info('ParkGarage startup')
    else:
        # Development logging
        app.logger.setLevel(logging.DEBUG)


# Create application instance for development server
if __name__ == '__main__':
    app = create_app()
    # host='0.0.0.0' allows access from other devices on the network
    app.run(host='0.0.0.0', debug=True)
