"""
Process-level extensions.
Extensions are created here and then initialized with the app in app.py.
"""

from blueprints.parking.services.reclamation_service import ReclamationScheduler

# Background reclamation sweeps (started explicitly by the owning process)
reclamation_scheduler = ReclamationScheduler()
