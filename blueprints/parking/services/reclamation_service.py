"""
Reclamation Service - Periodic sweeps that move reservations out of lapsed states.

Handles:
- Expiry sweep: occupying reservations whose window has ended
- Activation sweep: CONFIRMED reservations whose window has opened
- No-show sweep: ACTIVE reservations without check-in past the grace period
- Waitlist expiry

Sweeps call the same lifecycle operations as the request path and are
idempotent. ReclamationScheduler runs them on an interval in a daemon
thread; constructing it has no side effects.
"""

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict

from flask import current_app

from models.reservation import find_active_older_than, find_ended, find_started_confirmed
from utils.datetime_helpers import get_local_now
from .reservation_service import activate_reservation, expire_reservation, mark_no_show
from .waitlist_service import expire_waitlist_entries

logger = logging.getLogger(__name__)


# =============================================================================
# SWEEPS
# =============================================================================

def _apply(candidates, operation, now: datetime, label: str, **kwargs) -> int:
    applied = 0
    for reservation in candidates:
        result = operation(reservation['id'], now=now, **kwargs)
        if result['success']:
            applied += 1
        else:
            # Another writer got there first
            logger.debug(f"[Reclamation] {label} skipped reservation {reservation['id']}: {result['message']}")
    return applied


def run_expiry_sweep(now: datetime = None) -> int:
    """
    Close ACTIVE/CONFIRMED reservations whose end_time is before now.

    Returns:
        int: Reservations transitioned
    """
    now = now or get_local_now()
    return _apply(find_ended(now), expire_reservation, now, 'expiry')


def run_activation_sweep(now: datetime = None) -> int:
    """Move CONFIRMED reservations whose window is open to ACTIVE."""
    now = now or get_local_now()
    return _apply(find_started_confirmed(now), activate_reservation, now, 'activation')


def run_no_show_sweep(now: datetime = None, grace_minutes: int = None) -> int:
    """
    Mark ACTIVE reservations with no check-in as NO_SHOW once
    start_time < now - grace.

    Returns:
        int: Reservations marked
    """
    now = now or get_local_now()
    if grace_minutes is None:
        grace_minutes = current_app.config['NO_SHOW_GRACE_MINUTES']
    cutoff = now - timedelta(minutes=grace_minutes)
    return _apply(find_active_older_than(cutoff), mark_no_show, now, 'no-show',
                  grace_minutes=grace_minutes)


def run_reclamation(now: datetime = None) -> Dict[str, int]:
    """
    Run every sweep once: expiry, activation, no-show, waitlist expiry.

    Expiry goes first so a window that has already ended is completed rather
    than reported as a no-show.

    Returns:
        dict: Count per sweep
    """
    now = now or get_local_now()
    counts = {
        'expired': run_expiry_sweep(now),
        'activated': run_activation_sweep(now),
        'no_shows': run_no_show_sweep(now),
        'waitlist_expired': expire_waitlist_entries(now),
    }
    if any(counts.values()):
        logger.info(f"[Reclamation] Sweep at {now}: {counts}")
    return counts


# =============================================================================
# SCHEDULER
# =============================================================================

class ReclamationScheduler:
    """
    Runs run_reclamation every RECLAMATION_INTERVAL_MINUTES.

    Usage:
        scheduler = ReclamationScheduler()
        scheduler.init_app(app)
        scheduler.start()
        ...
        scheduler.stop()
    """

    def __init__(self, app=None, interval_minutes: float = None):
        self.app = None
        self.interval_minutes = interval_minutes
        self._thread = None
        self._stop_event = threading.Event()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Bind to an application; reads the interval from its config."""
        self.app = app
        if self.interval_minutes is None:
            self.interval_minutes = app.config.get('RECLAMATION_INTERVAL_MINUTES', 10)
        app.extensions['reclamation_scheduler'] = self

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self, now: datetime = None) -> Dict[str, int]:
        """Run one reclamation pass inside an application context."""
        if self.app is None:
            raise RuntimeError('ReclamationScheduler is not bound to an application')
        with self.app.app_context():
            return run_reclamation(now)

    def start(self):
        """Start the background loop. No-op if already running."""
        if self.app is None:
            raise RuntimeError('ReclamationScheduler is not bound to an application')
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name='reclamation-scheduler', daemon=True)
        self._thread.start()
        logger.info(f"[Reclamation] Scheduler started (every {self.interval_minutes} min)")

    def stop(self, timeout: float = 5.0):
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("[Reclamation] Scheduler stopped")

    def wait(self):
        """Block until stop() is called (used by the CLI runner)."""
        while self.is_running:
            self._stop_event.wait(1.0)

    def _loop(self):
        interval = max(float(self.interval_minutes) * 60, 0.01)
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("[Reclamation] Sweep failed")
            self._stop_event.wait(interval)
