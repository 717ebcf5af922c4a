"""
Tests for cost estimation and refund tiers.
"""

from datetime import datetime, timedelta

from blueprints.parking.services.pricing_service import (
    calculate_actual_cost,
    calculate_refund,
    estimate_cost,
    get_base_rate,
    get_cancellation_deadline,
)

START = datetime(2030, 6, 1, 10, 0)


class TestRates:
    """Tests for the hourly rate table."""

    def test_known_types(self, app):
        assert get_base_rate('compact') == 4.0
        assert get_base_rate('standard') == 5.0
        assert get_base_rate('oversized') == 7.0

    def test_unknown_type_uses_default(self, app):
        assert get_base_rate('motorbike') == 5.0

    def test_rates_follow_app_config(self, app):
        app.config['HOURLY_RATES'] = {'compact': 10.0}
        assert get_base_rate('compact') == 10.0

    def test_works_without_app_context(self):
        assert get_base_rate('oversized') == 7.0


class TestEstimate:
    """Tests for estimate_cost."""

    def test_one_hour(self, app):
        assert estimate_cost('compact', START, START + timedelta(hours=1)) == 4.0

    def test_fractional_hours_not_rounded_up(self, app):
        assert estimate_cost('standard', START, START + timedelta(minutes=90)) == 7.5

    def test_rounded_to_cents(self, app):
        assert estimate_cost('oversized', START, START + timedelta(minutes=40)) == 4.67


class TestActualCost:
    """Tests for calculate_actual_cost."""

    def test_started_hours_billed(self, app):
        assert calculate_actual_cost('compact', START, START + timedelta(minutes=61)) == 8.0

    def test_minimum_one_hour(self, app):
        assert calculate_actual_cost('standard', START, START + timedelta(minutes=5)) == 5.0


class TestRefunds:
    """Tests for the tiered cancellation refund."""

    def test_deadline_is_two_hours_before_start(self, app):
        assert get_cancellation_deadline(START) == START - timedelta(hours=2)

    def test_full_refund_three_hours_before(self, app):
        refund = calculate_refund(20.0, START, START - timedelta(hours=3))
        assert refund == {'refund_amount': 20.0, 'refund_ratio': 1.0, 'tier': 'full'}

    def test_full_refund_exactly_at_deadline(self, app):
        assert calculate_refund(20.0, START, START - timedelta(hours=2))['tier'] == 'full'

    def test_partial_refund_one_hour_before(self, app):
        refund = calculate_refund(20.0, START, START - timedelta(hours=1))
        assert refund['refund_amount'] == 10.0
        assert refund['tier'] == 'partial'

    def test_partial_refund_at_start(self, app):
        assert calculate_refund(20.0, START, START)['tier'] == 'partial'

    def test_no_refund_after_start(self, app):
        refund = calculate_refund(20.0, START, START + timedelta(hours=1))
        assert refund['refund_amount'] == 0.0
        assert refund['tier'] == 'none'

    def test_refund_is_monotonic(self, app):
        """Refund never increases as the cancellation moves later."""
        times = [START - timedelta(minutes=m) for m in range(240, -120, -5)]
        amounts = [calculate_refund(12.5, START, t)['refund_amount'] for t in times]
        assert all(later <= earlier for earlier, later in zip(amounts, amounts[1:]))
        assert amounts[0] == 12.5
        assert amounts[-1] == 0.0
