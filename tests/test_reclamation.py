"""
Tests for reclamation sweeps and the background scheduler.
"""

import time
import pytest
from datetime import datetime, timedelta

from blueprints.parking.services import reclamation_service
from blueprints.parking.services.reclamation_service import (
    ReclamationScheduler,
    run_activation_sweep,
    run_expiry_sweep,
    run_no_show_sweep,
    run_reclamation,
)
from blueprints.parking.services.reservation_service import check_in_reservation, create_reservation
from blueprints.parking.services.waitlist_service import add_to_waitlist
from models.audit_log import get_audit_logs_by_action
from models.reservation import get_reservation_by_id
from models.spot import get_spot_by_id

NOW = datetime(2030, 6, 1, 8, 0)
START = datetime(2030, 6, 1, 10, 0)
END = START + timedelta(hours=2)

NOTHING = {'expired': 0, 'activated': 0, 'no_shows': 0, 'waitlist_expired': 0}


def book(make_request, **overrides):
    result = create_reservation(make_request(START, **overrides), now=NOW)
    assert result['success'] is True
    return result


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


class TestExpirySweep:
    """Reservations whose window has ended are closed."""

    def test_checked_in_reservation_completed(self, app, spots, make_request):
        booked = book(make_request)
        check_in_reservation(booked['reservation_id'], now=START)

        counts = run_reclamation(now=END + timedelta(hours=1))

        assert counts['expired'] == 1
        reservation = get_reservation_by_id(booked['reservation_id'])
        assert reservation['status'] == 'COMPLETED'
        assert reservation['actual_cost'] == reservation['estimated_cost'] == 8.0
        assert reservation['completed_at'] == END
        assert get_spot_by_id(booked['spot_id'])['status'] == 'AVAILABLE'
        assert get_audit_logs_by_action('RESERVATION_COMPLETED')[0]['entity_id'] == booked['reservation_id']

    def test_second_run_changes_nothing(self, app, spots, make_request):
        booked = book(make_request)
        check_in_reservation(booked['reservation_id'], now=START)
        later = END + timedelta(hours=1)

        run_reclamation(now=later)

        assert run_reclamation(now=later) == NOTHING
        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'COMPLETED'

    def test_unused_confirmed_reservation_expired(self, app, spots, user_id, insert_booking):
        reservation_id = insert_booking(user_id, spots['f1_compact_1'], START, END)

        assert run_expiry_sweep(now=END + timedelta(minutes=1)) == 1
        assert get_reservation_by_id(reservation_id)['status'] == 'EXPIRED'

    def test_window_ending_now_untouched(self, app, spots, make_request):
        booked = book(make_request)
        check_in_reservation(booked['reservation_id'], now=START)

        assert run_expiry_sweep(now=END) == 0
        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'ACTIVE'

    def test_spot_kept_for_next_booking(self, app, spots, make_request):
        first = book(make_request, spot_id=spots['f2_compact_1'])
        check_in_reservation(first['reservation_id'], now=START)
        create_reservation(make_request(END + timedelta(hours=2), spot_id=spots['f2_compact_1']), now=NOW)

        run_expiry_sweep(now=END + timedelta(minutes=5))

        assert get_spot_by_id(spots['f2_compact_1'])['status'] == 'RESERVED'


class TestNoShowSweep:
    """Reservations never checked into are reclaimed after the grace period."""

    def test_missed_check_in_becomes_no_show(self, app, spots, make_request):
        booked = book(make_request)

        counts = run_reclamation(now=START + timedelta(minutes=40))

        assert counts['activated'] == 1
        assert counts['no_shows'] == 1
        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'NO_SHOW'
        assert get_spot_by_id(booked['spot_id'])['status'] == 'AVAILABLE'

    def test_within_grace_left_active(self, app, spots, make_request):
        booked = book(make_request)

        counts = run_reclamation(now=START + timedelta(minutes=20))

        assert counts['no_shows'] == 0
        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'ACTIVE'

    def test_checked_in_never_no_show(self, app, spots, make_request):
        booked = book(make_request)
        check_in_reservation(booked['reservation_id'], now=START + timedelta(minutes=5))

        assert run_no_show_sweep(now=START + timedelta(minutes=90)) == 0

    def test_grace_override(self, app, spots, make_request):
        booked = book(make_request)
        run_activation_sweep(now=START + timedelta(minutes=1))

        assert run_no_show_sweep(now=START + timedelta(minutes=11), grace_minutes=10) == 1
        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'NO_SHOW'

    def test_freed_window_offered_to_waitlist(self, app, spots, make_request, other_user_id):
        booked = book(make_request, spot_id=spots['f2_compact_1'])
        entry = add_to_waitlist({
            'user_id': other_user_id,
            'spot_type': 'compact',
            'start_time': START + timedelta(hours=1),
            'end_time': END,
        }, now=NOW)

        run_reclamation(now=START + timedelta(minutes=40))

        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'NO_SHOW'
        from models.waitlist import get_waitlist_entry
        assert get_waitlist_entry(entry['entry_id'])['status'] == 'offered'


class TestActivationSweep:
    """CONFIRMED reservations move to ACTIVE once their window opens."""

    def test_activation(self, app, spots, make_request):
        booked = book(make_request)

        assert run_activation_sweep(now=START - timedelta(minutes=1)) == 0
        assert run_activation_sweep(now=START) == 1

        assert get_reservation_by_id(booked['reservation_id'])['status'] == 'ACTIVE'
        assert get_spot_by_id(booked['spot_id'])['status'] == 'RESERVED'

    def test_waitlist_entries_expired(self, app, user_id):
        add_to_waitlist({'user_id': user_id, 'spot_type': 'compact', 'start_time': START, 'end_time': END}, now=NOW)

        counts = run_reclamation(now=NOW + timedelta(hours=25))
        assert counts['waitlist_expired'] == 1


class TestScheduler:
    """Tests for ReclamationScheduler."""

    def test_unbound_scheduler_refuses_to_run(self):
        scheduler = ReclamationScheduler()

        with pytest.raises(RuntimeError):
            scheduler.run_once()
        with pytest.raises(RuntimeError):
            scheduler.start()

    def test_init_app_registers_extension(self, app):
        scheduler = ReclamationScheduler(app)

        assert app.extensions['reclamation_scheduler'] is scheduler
        assert scheduler.interval_minutes == app.config['RECLAMATION_INTERVAL_MINUTES']
        assert scheduler.is_running is False

    def test_explicit_interval_kept(self, app):
        assert ReclamationScheduler(app, interval_minutes=2).interval_minutes == 2

    def test_run_once(self, app, spots, user_id, insert_booking):
        reservation_id = insert_booking(user_id, spots['f1_compact_1'], START, END)
        scheduler = ReclamationScheduler(app)

        counts = scheduler.run_once(now=END + timedelta(hours=1))

        assert counts['expired'] == 1
        assert get_reservation_by_id(reservation_id)['status'] == 'EXPIRED'

    def test_start_and_stop(self, app, spots, user_id, insert_booking):
        # Window already over on the real clock
        reservation_id = insert_booking(user_id, spots['f1_compact_1'],
                                        datetime(2000, 1, 1, 10, 0), datetime(2000, 1, 1, 12, 0))
        scheduler = ReclamationScheduler(app, interval_minutes=0.001)

        scheduler.start()
        scheduler.start()
        try:
            assert scheduler.is_running is True
            assert wait_until(lambda: get_reservation_by_id(reservation_id)['status'] == 'EXPIRED')
        finally:
            scheduler.stop()

        assert scheduler.is_running is False

    def test_failed_sweep_keeps_loop_alive(self, app, monkeypatch):
        calls = []

        def failing_sweep(now=None):
            calls.append(now)
            raise RuntimeError('database is locked')

        monkeypatch.setattr(reclamation_service, 'run_reclamation', failing_sweep)
        scheduler = ReclamationScheduler(app, interval_minutes=0.001)

        scheduler.start()
        try:
            assert wait_until(lambda: len(calls) >= 2)
            assert scheduler.is_running is True
        finally:
            scheduler.stop()
