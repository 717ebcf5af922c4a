"""
Tests for waitlist queues, lazy expiry and offers.
"""

from datetime import datetime, timedelta

from blueprints.parking.services.reservation_service import (
    accept_waitlist_offer,
    cancel_reservation,
    create_reservation,
    decline_waitlist_offer,
)
from blueprints.parking.services.waitlist_service import (
    add_to_waitlist,
    get_queue,
    get_waitlist_position,
    get_waitlist_size,
    notify_on_release,
)
from models.waitlist import build_queue_key, get_waitlist_entry

NOW = datetime(2030, 6, 1, 8, 0)
START = datetime(2030, 6, 2, 10, 0)
END = START + timedelta(hours=2)


def entry_request(user_id, start=START, end=END, spot_type='compact', **extra):
    return {
        'user_id': user_id,
        'spot_type': spot_type,
        'start_time': start,
        'end_time': end,
        'license_plate': 'WAIT-1',
        **extra,
    }


class TestQueueKey:
    """Tests for build_queue_key."""

    def test_rounds_window_outward(self):
        key = build_queue_key('compact', datetime(2030, 6, 2, 10, 40), datetime(2030, 6, 2, 11, 15))
        assert key == 'compact|2030-06-02T10|2030-06-02T12'

    def test_whole_hours_unchanged(self):
        assert build_queue_key('standard', START, END) == 'standard|2030-06-02T10|2030-06-02T12'

    def test_nearby_windows_share_a_queue(self):
        a = build_queue_key('compact', datetime(2030, 6, 2, 10, 5), datetime(2030, 6, 2, 11, 50))
        b = build_queue_key('compact', datetime(2030, 6, 2, 10, 30), datetime(2030, 6, 2, 12, 0))
        assert a == b


class TestAddToWaitlist:
    """Tests for add_to_waitlist."""

    def test_fifo_positions_per_key(self, app, user_id, other_user_id):
        first = add_to_waitlist(entry_request(user_id), now=NOW)
        second = add_to_waitlist(entry_request(other_user_id), now=NOW)
        other_key = add_to_waitlist(entry_request(user_id, spot_type='standard'), now=NOW)

        assert (first['position'], second['position']) == (1, 2)
        assert other_key['position'] == 1
        assert first['expires_at'] == NOW + timedelta(hours=24)

    def test_queue_order(self, app, user_id, other_user_id):
        first = add_to_waitlist(entry_request(user_id), now=NOW)
        second = add_to_waitlist(entry_request(other_user_id), now=NOW)

        queue = get_queue(first['queue_key'], now=NOW)
        assert [e['id'] for e in queue] == [first['entry_id'], second['entry_id']]

    def test_features_stored(self, app, user_id):
        created = add_to_waitlist(entry_request(user_id, preferred_features=['covered', 'ev_charging']), now=NOW)
        assert get_waitlist_entry(created['entry_id'])['preferred_features'] == ['covered', 'ev_charging']


class TestLazyExpiry:
    """Entries past expires_at are dropped on the next access."""

    def test_expired_entries_not_counted(self, app, user_id):
        created = add_to_waitlist(entry_request(user_id), now=NOW)

        assert get_waitlist_size(now=NOW + timedelta(hours=23)) == 1
        assert get_waitlist_size(now=NOW + timedelta(hours=24)) == 0
        assert get_waitlist_entry(created['entry_id'])['status'] == 'expired'

    def test_positions_close_up_after_expiry(self, app, user_id, other_user_id):
        add_to_waitlist(entry_request(user_id), now=NOW)
        later = add_to_waitlist(entry_request(other_user_id), now=NOW + timedelta(hours=12))

        assert get_waitlist_position(later['entry_id'], now=NOW + timedelta(hours=13)) == 2
        assert get_waitlist_position(later['entry_id'], now=NOW + timedelta(hours=25)) == 1

    def test_expired_entry_never_offered(self, app, user_id):
        add_to_waitlist(entry_request(user_id), now=NOW)

        assert notify_on_release('compact', START, END, now=NOW + timedelta(days=2)) is None


class TestNotifyOnRelease:
    """Tests for notify_on_release."""

    def test_offers_oldest_fitting_entry(self, app, user_id, other_user_id):
        first = add_to_waitlist(entry_request(user_id), now=NOW)
        add_to_waitlist(entry_request(other_user_id), now=NOW)

        offered = notify_on_release('compact', START, END, now=NOW)

        assert offered['id'] == first['entry_id']
        assert offered['status'] == 'offered'
        assert offered['notifications_sent'] == 1
        assert get_waitlist_size(now=NOW) == 1

    def test_window_must_fit(self, app, user_id):
        add_to_waitlist(entry_request(user_id, end=END + timedelta(hours=1)), now=NOW)

        assert notify_on_release('compact', START, END, now=NOW) is None

    def test_type_must_match(self, app, user_id):
        add_to_waitlist(entry_request(user_id, spot_type='oversized'), now=NOW)

        assert notify_on_release('compact', START, END, now=NOW) is None

    def test_entries_out_of_notifications_skipped(self, app, user_id):
        from models.waitlist import update_waitlist_status

        created = add_to_waitlist(entry_request(user_id), now=NOW)
        for _ in range(3):
            notify_on_release('compact', START, END, now=NOW)
            update_waitlist_status(created['entry_id'], 'waiting', NOW)

        assert get_waitlist_entry(created['entry_id'])['notifications_sent'] == 3
        assert notify_on_release('compact', START, END, now=NOW) is None

    def test_no_reservation_created(self, app, user_id):
        from database import get_db

        add_to_waitlist(entry_request(user_id), now=NOW)
        notify_on_release('compact', START, END, now=NOW)

        assert get_db().execute('SELECT COUNT(*) FROM reservations').fetchone()[0] == 0


class TestOffers:
    """Tests for accepting and declining offers."""

    def test_accept_books_and_converts(self, app, spots, user_id):
        created = add_to_waitlist(entry_request(user_id), now=NOW)
        notify_on_release('compact', START, END, now=NOW)

        result = accept_waitlist_offer(created['entry_id'], user_id, now=NOW)

        assert result['success'] is True
        assert result['status'] == 'CONFIRMED'
        entry = get_waitlist_entry(created['entry_id'])
        assert entry['status'] == 'converted'
        assert entry['converted_reservation_id'] == result['reservation_id']

    def test_accept_requires_offer(self, app, spots, user_id):
        created = add_to_waitlist(entry_request(user_id), now=NOW)

        result = accept_waitlist_offer(created['entry_id'], user_id, now=NOW)
        assert result['error_type'] == 'invalid_state'

    def test_accept_by_other_user_forbidden(self, app, spots, user_id, other_user_id):
        created = add_to_waitlist(entry_request(user_id), now=NOW)
        notify_on_release('compact', START, END, now=NOW)

        assert accept_waitlist_offer(created['entry_id'], other_user_id, now=NOW)['error_type'] == 'forbidden'

    def test_accept_when_taken_again_requeues(self, app, spots, user_id, other_user_id):
        created = add_to_waitlist(entry_request(user_id), now=NOW)
        notify_on_release('compact', START, END, now=NOW)
        for key in ('f1_compact_1', 'f1_compact_2', 'f2_compact_1'):
            create_reservation({**entry_request(other_user_id), 'spot_id': spots[key]}, now=NOW)

        result = accept_waitlist_offer(created['entry_id'], user_id, now=NOW)

        assert result['error_type'] == 'unavailable'
        assert get_waitlist_entry(created['entry_id'])['status'] == 'waiting'

    def test_decline_passes_offer_on(self, app, user_id, other_user_id):
        first = add_to_waitlist(entry_request(user_id), now=NOW)
        second = add_to_waitlist(entry_request(other_user_id), now=NOW)
        notify_on_release('compact', START, END, now=NOW)

        result = decline_waitlist_offer(first['entry_id'], user_id, now=NOW)

        assert result['success'] is True
        assert result['waitlist_offer'] == second['entry_id']
        assert get_waitlist_entry(first['entry_id'])['status'] == 'declined'

    def test_unknown_entry(self, app, user_id):
        assert decline_waitlist_offer(999, user_id, now=NOW)['error_type'] == 'not_found'

    def test_accept_books_freed_spot_still_held_by_a_later_booking(self, app, user_id, other_user_id):
        from models.spot import create_spot, get_spot_by_id

        spot_id = create_spot(1, 'compact', floor=1, bay='A')
        first = create_reservation({**entry_request(other_user_id), 'spot_id': spot_id}, now=NOW)
        create_reservation({
            **entry_request(other_user_id, start=START + timedelta(hours=4), end=END + timedelta(hours=4)),
            'spot_id': spot_id,
        }, now=NOW)
        waiting = create_reservation({**entry_request(user_id), 'allow_waitlist': True}, now=NOW)
        assert waiting['status'] == 'WAITLISTED'

        cancelled = cancel_reservation(first['reservation_id'], other_user_id, now=NOW)

        assert cancelled['waitlist_offer'] == waiting['waitlist_entry_id']
        assert get_spot_by_id(spot_id)['status'] == 'RESERVED'
        assert get_waitlist_entry(waiting['waitlist_entry_id'])['offered_spot_id'] == spot_id

        result = accept_waitlist_offer(waiting['waitlist_entry_id'], user_id, now=NOW)

        assert result['success'] is True
        assert result['spot_id'] == spot_id
        assert get_waitlist_entry(waiting['waitlist_entry_id'])['status'] == 'converted'
