"""
Parking blueprint initialization.
Assembles the engine's JSON routes under one blueprint.

Route logic lives in:
- routes/api/reservations.py - Reservation lifecycle, availability, stats
- routes/api/waitlist.py - Waitlist offers
- routes/api/spots.py - Spot inventory listing
"""

from flask import Blueprint

# Create main parking blueprint
parking_bp = Blueprint('parking', __name__)

# =============================================================================
# REGISTER SUB-BLUEPRINTS
# =============================================================================

# API routes (all REST endpoints)
from blueprints.parking.routes.api import api_bp  # noqa: E402
parking_bp.register_blueprint(api_bp, url_prefix='/api')
