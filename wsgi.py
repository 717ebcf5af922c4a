"""WSGI entry point for production deployment.

The reclamation scheduler runs as its own process (`flask run-scheduler`),
not inside the web workers.
"""
import os
from app import create_app

application = create_app(os.environ.get('FLASK_ENV', 'production'))
