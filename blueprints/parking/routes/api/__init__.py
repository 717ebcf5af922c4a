"""
Parking API routes package.
Split into smaller modules by entity for maintainability.
"""

from flask import Blueprint

# Create the API blueprint
api_bp = Blueprint('parking_api', __name__)

# Import and register routes from submodules
from blueprints.parking.routes.api import reservations  # noqa: E402
from blueprints.parking.routes.api import waitlist  # noqa: E402
from blueprints.parking.routes.api import spots  # noqa: E402

# Register all route functions on the blueprint
reservations.register_routes(api_bp)
waitlist.register_routes(api_bp)
spots.register_routes(api_bp)
