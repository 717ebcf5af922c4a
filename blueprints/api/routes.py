"""
API routes for service-level JSON endpoints.
"""

import sqlite3

from flask import jsonify, Blueprint, current_app

from database import get_db
from extensions import reclamation_scheduler

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint.

    Returns:
        JSON with status, version, database reachability and scheduler state
    """
    database_ok = True
    try:
        get_db().execute('SELECT 1').fetchone()
    except sqlite3.Error:
        database_ok = False

    return jsonify({
        'status': 'ok' if database_ok else 'degraded',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': current_app.config.get('APP_NAME', 'ParkGarage'),
        'database': database_ok,
        'scheduler_running': reclamation_scheduler.is_running,
    }), 200 if database_ok else 503
