"""
Tests for the JSON API: status codes per outcome and response shape.
Routes run on the real clock (UTC in the test config), so windows are
placed a couple of days ahead.
"""

from datetime import datetime, timedelta, timezone


def ahead(days=2, hour=10):
    base = datetime.now(timezone.utc).replace(tzinfo=None, minute=0, second=0, microsecond=0)
    return (base + timedelta(days=days)).replace(hour=hour)


def payload(user_id, start=None, hours=2, **overrides):
    start = start or ahead()
    body = {
        'user_id': user_id,
        'spot_type': 'compact',
        'start_time': start.isoformat(),
        'end_time': (start + timedelta(hours=hours)).isoformat(),
        'license_plate': 'abc-1234',
    }
    body.update(overrides)
    return body


class TestCreateEndpoint:
    """POST /parking/api/reservations"""

    def test_created(self, client, spots, user_id):
        response = client.post('/parking/api/reservations', json=payload(user_id))

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        assert body['data']['status'] == 'CONFIRMED'
        assert body['data']['spot_id'] == spots['f1_compact_1']
        assert body['data']['estimated_cost'] == 8.0

    def test_datetimes_rendered_as_iso(self, client, spots, user_id):
        start = ahead()
        response = client.post('/parking/api/reservations', json=payload(user_id, start=start))

        deadline = response.get_json()['data']['cancellation_deadline']
        assert deadline == (start - timedelta(hours=2)).isoformat()

    def test_missing_body(self, client):
        response = client.post('/parking/api/reservations', json={})

        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'validation'

    def test_validation_errors_listed(self, client, spots, user_id):
        response = client.post('/parking/api/reservations', json=payload(user_id, license_plate='', hours=48))

        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['error_type'] == 'validation'
        assert len(body['errors']) >= 2

    def test_wrongly_typed_fields_are_validation_errors(self, client, spots, user_id):
        response = client.post('/parking/api/reservations',
                               json=payload(user_id, license_plate=1234, preferred_features={'covered': True}))

        assert response.status_code == 400
        body = response.get_json()
        assert body['error_type'] == 'validation'
        assert 'license_plate must be text' in body['errors']

    def test_string_false_does_not_waitlist(self, client, spots, user_id):
        for _ in range(3):
            client.post('/parking/api/reservations', json=payload(user_id))

        response = client.post('/parking/api/reservations', json=payload(user_id, allow_waitlist='false'))

        assert response.status_code == 409
        assert response.get_json()['error_type'] == 'unavailable'

    def test_unavailable_with_alternatives(self, client, spots, user_id):
        for _ in range(3):
            client.post('/parking/api/reservations', json=payload(user_id))

        response = client.post('/parking/api/reservations', json=payload(user_id))

        assert response.status_code == 409
        body = response.get_json()
        assert body['error_type'] == 'unavailable'
        assert body['alternatives'] == []

    def test_waitlisted(self, client, user_id):
        response = client.post('/parking/api/reservations', json=payload(user_id, allow_waitlist=True))

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['status'] == 'WAITLISTED'
        assert data['position'] == 1

        entry = client.get(f"/parking/api/waitlist/{data['waitlist_entry_id']}").get_json()['data']['entry']
        assert entry['current_position'] == 1
        assert client.get('/parking/api/waitlist/count').get_json()['data']['count'] == 1


class TestReservationEndpoints:
    """Reads and transitions by reservation id."""

    def create(self, client, user_id):
        return client.post('/parking/api/reservations', json=payload(user_id)).get_json()['data']['reservation_id']

    def test_detail_with_history(self, client, spots, user_id):
        reservation_id = self.create(client, user_id)

        response = client.get(f'/parking/api/reservations/{reservation_id}')

        assert response.status_code == 200
        reservation = response.get_json()['data']['reservation']
        assert reservation['license_plate'] == 'ABC-1234'
        assert reservation['history'][0]['new_status'] == 'CONFIRMED'

    def test_detail_not_found(self, client):
        response = client.get('/parking/api/reservations/999')

        assert response.status_code == 404
        assert response.get_json()['error_type'] == 'not_found'

    def test_list_requires_user(self, client):
        assert client.get('/parking/api/reservations').status_code == 400

    def test_list(self, client, spots, user_id):
        self.create(client, user_id)

        data = client.get(f'/parking/api/reservations?user_id={user_id}').get_json()['data']
        assert data['count'] == 1

    def test_cancel_by_owner_full_refund(self, client, spots, user_id):
        reservation_id = self.create(client, user_id)

        response = client.post(f'/parking/api/reservations/{reservation_id}/cancel',
                               json={'user_id': user_id, 'reason': 'plans changed'})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['refund_tier'] == 'full'
        assert data['refund_amount'] == 8.0

    def test_cancel_by_other_user_forbidden(self, client, spots, user_id, other_user_id):
        reservation_id = self.create(client, user_id)

        response = client.post(f'/parking/api/reservations/{reservation_id}/cancel', json={'user_id': other_user_id})

        assert response.status_code == 403
        assert response.get_json()['error_type'] == 'forbidden'

    def test_cancel_twice_invalid_state(self, client, spots, user_id):
        reservation_id = self.create(client, user_id)
        client.post(f'/parking/api/reservations/{reservation_id}/cancel', json={'user_id': user_id})

        response = client.post(f'/parking/api/reservations/{reservation_id}/cancel', json={'user_id': user_id})
        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'invalid_state'

    def test_check_in_too_early(self, client, spots, user_id):
        reservation_id = self.create(client, user_id)

        response = client.post(f'/parking/api/reservations/{reservation_id}/check-in')
        assert response.status_code == 400

    def test_complete_with_bad_timestamp(self, client, spots, user_id):
        reservation_id = self.create(client, user_id)

        response = client.post(f'/parking/api/reservations/{reservation_id}/complete',
                               json={'completed_at': 'yesterday-ish'})
        assert response.status_code == 400


class TestQueryEndpoints:
    """Availability, statistics, spots and health."""

    def test_availability(self, client, spots):
        start = ahead()
        response = client.get('/parking/api/availability', query_string={
            'start_time': start.isoformat(),
            'end_time': (start + timedelta(hours=1)).isoformat(),
            'spot_type': 'compact',
        })

        assert response.status_code == 200
        assert response.get_json()['data']['available_count'] == 3

    def test_availability_requires_window(self, client):
        response = client.get('/parking/api/availability')

        assert response.status_code == 400
        assert response.get_json()['error_type'] == 'validation'

    def test_stats(self, client, spots, user_id):
        client.post('/parking/api/reservations', json=payload(user_id))

        stats = client.get('/parking/api/stats?timeframe=week').get_json()['data']['stats']

        assert stats['timeframe'] == 'week'
        assert stats['total_reservations'] == 1
        assert stats['confirmed_reservations'] == 1
        assert stats['occupancy_rate'] == 0.0

    def test_stats_bad_timeframe(self, client):
        assert client.get('/parking/api/stats?timeframe=year').status_code == 400

    def test_spots(self, client, spots):
        data = client.get('/parking/api/spots?floor=2').get_json()['data']
        assert data['count'] == 2

        assert client.get('/parking/api/spots?spot_type=bus').status_code == 400
        assert client.get('/parking/api/spots/999').status_code == 404
        spot = client.get(f"/parking/api/spots/{spots['f2_compact_1']}").get_json()['data']['spot']
        assert spot['features'] == ['covered']

    def test_waitlist_routes(self, client, user_id):
        assert client.get('/parking/api/waitlist/999').status_code == 404
        assert client.post('/parking/api/waitlist/999/accept', json={}).status_code == 400
        assert client.post('/parking/api/waitlist/999/decline', json={'user_id': user_id}).status_code == 404

    def test_health(self, client):
        response = client.get('/api/health')

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'ok'
        assert body['database'] is True
        assert body['scheduler_running'] is False

    def test_unknown_route_json_404(self, client):
        response = client.get('/parking/api/nothing-here')

        assert response.status_code == 404
        assert response.get_json()['success'] is False
