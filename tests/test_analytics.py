# tests/test_analytics.py
"""
Tests for the revenue/analytics aggregator (pure, no database)
"""
import pytest
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch
from zoneinfo import ZoneInfo

from goalete.services.analytics import (
    aggregate, classify_plan, is_valid_payment, to_dashboard_json,
)

NOW = datetime(2024, 1, 15, 12, 0)


def sub(plan_type='daily', price=299, payment_status='completed', start=datetime(2024, 1, 5),
        days=1, status='active', order_id=None):
    return SimpleNamespace(
        order_id=order_id,
        plan_type=plan_type,
        price=price,
        payment_status=payment_status,
        start_date=start,
        end_date=start + timedelta(days=days),
        duration=days,
        status=status,
    )


class TestValidPayment:

    @pytest.mark.parametrize('status', ['failed', 'cancelled', 'canceled', 'pending', 'initiated', 'FAILED'])
    def test_invalid_statuses(self, status):
        assert is_valid_payment(status) is False

    @pytest.mark.parametrize('status', ['completed', 'success', 'paid', 'admin-added', 'admin-created'])
    def test_valid_statuses(self, status):
        assert is_valid_payment(status) is True


class TestClassifyPlan:

    def test_family_variants_count_as_two_monthly(self):
        for tag in ['family-monthly', 'monthlyFamily', 'MONTHLYFAMILY', 'comboPlan']:
            assert classify_plan(tag) == ('monthly', 2)

    def test_basic_plans(self):
        assert classify_plan('Daily') == ('daily', 1)
        assert classify_plan('monthly') == ('monthly', 1)
        assert classify_plan('unlimited') == ('unlimited', 1)

    def test_unknown_plan(self):
        assert classify_plan('quarterly') is None
        assert classify_plan(None) is None


class TestAggregate:
    """Fold of subscriptions into dashboard totals"""

    def test_family_and_pending_daily_scenario(self):
        subs = [
            sub('family-monthly', 4499, 'completed', datetime(2024, 1, 5), days=30),
            sub('daily', 299, 'pending', datetime(2024, 1, 5)),
        ]
        result = aggregate(subs, date(2024, 1, 1), date(2024, 1, 31), now=NOW)

        assert result['subscriptions_by_plan']['monthly'] == 2
        assert result['revenue_by_plan']['monthly'] == 4499
        assert result['subscriptions_by_plan']['daily'] == 1
        assert result['revenue_by_plan']['daily'] == 0
        assert result['revenue_by_day']['2024-01-05'] == 4499
        assert result['subscriptions_by_day']['2024-01-05'] == 2
        assert result['revenue'] == 4499
        assert to_dashboard_json(result)['planStats'] == {'family-monthly': 1, 'daily': 1}

    def test_family_order_stored_per_member(self):
        subs = [
            sub('family-monthly', 2250, start=datetime(2024, 1, 5), days=30, order_id='pi_family'),
            sub('family-monthly', 2249, start=datetime(2024, 1, 5), days=30, order_id='pi_family'),
            sub('monthlyFamily', 4499, start=datetime(2024, 1, 6), days=30, order_id='pi_legacy'),
        ]
        result = aggregate(subs, date(2024, 1, 1), date(2024, 1, 31), now=NOW)

        assert result['subscriptions_by_plan']['monthly'] == 4
        assert result['revenue_by_plan']['monthly'] == 8998

    def test_default_now_is_club_time(self):
        # 01:00 in Kolkata is still the previous day in UTC
        club_now = datetime(2025, 6, 1, 1, 0, tzinfo=ZoneInfo('Asia/Kolkata'))
        with patch('goalete.services.analytics.local_now', return_value=club_now):
            stats = aggregate([sub(start=datetime(2025, 6, 1))], date(2025, 6, 1), date(2025, 6, 1))['stats']
        assert stats['active'] == 1
        assert stats['upcoming'] == 0

    def test_revenue_excludes_invalid_and_includes_admin(self):
        subs = [
            sub(price=299, payment_status='completed'),
            sub(price=299, payment_status='failed'),
            sub(price=299, payment_status='cancelled'),
            sub(price=299, payment_status='canceled'),
            sub(price=299, payment_status='initiated'),
            sub(plan_type='admin-added', price=0, payment_status='admin-added'),
        ]
        result = aggregate(subs, date(2024, 1, 1), date(2024, 1, 31), now=NOW)
        assert result['revenue'] == 299
        assert result['stats']['total'] == 6

    def test_one_entry_per_day_without_gaps(self):
        start, end = date(2024, 2, 25), date(2024, 3, 5)
        result = aggregate([], start, end, now=NOW)

        keys = list(result['revenue_by_day'])
        assert len(keys) == (end - start).days + 1
        assert keys[0] == '2024-02-25'
        assert '2024-02-29' in keys
        assert keys[-1] == '2024-03-05'
        assert list(result['subscriptions_by_day']) == keys
        assert all(count >= 0 for count in result['subscriptions_by_day'].values())

    def test_subscriptions_outside_series_not_counted_per_day(self):
        result = aggregate([sub(start=datetime(2023, 12, 1))], date(2024, 1, 1), date(2024, 1, 3), now=NOW)
        assert sum(result['subscriptions_by_day'].values()) == 0
        assert result['revenue'] == 299

    def test_payment_status_breakdown(self):
        subs = [
            sub(price=299, payment_status='completed', days=1),
            sub('monthly', 2999, 'completed', days=30),
            sub(price=299, payment_status='pending', days=1),
        ]
        result = aggregate(subs, date(2024, 1, 1), date(2024, 1, 31), now=NOW)
        assert result['payment_stats']['completed'] == {'count': 2, 'total_price': 3298, 'total_duration': 31}
        assert result['payment_stats']['pending'] == {'count': 1, 'total_price': 299, 'total_duration': 1}

    def test_active_expired_upcoming(self):
        subs = [
            sub(start=datetime(2024, 1, 10), days=30),                       # active
            sub(start=datetime(2024, 1, 1), days=2),                         # expired by date
            sub(start=datetime(2024, 1, 10), days=30, status='expired'),     # expired by status
            sub(start=datetime(2024, 2, 1), days=1),                         # upcoming
        ]
        stats = aggregate(subs, date(2024, 1, 1), date(2024, 1, 31), now=NOW)['stats']
        assert stats == {'total': 4, 'active': 1, 'expired': 2, 'upcoming': 1}

    def test_dashboard_json_shape(self):
        result = aggregate([sub()], date(2024, 1, 4), date(2024, 1, 6), now=NOW)
        data = to_dashboard_json(result)
        assert data['totalRevenue'] == 299
        assert data['revenueByDay'] == [
            {'date': '2024-01-04', 'revenue': 0},
            {'date': '2024-01-05', 'revenue': 299},
            {'date': '2024-01-06', 'revenue': 0},
        ]
        assert data['subscriptionsByDay'][1] == {'date': '2024-01-05', 'count': 1}
        assert data['paymentStats']['completed']['totalPrice'] == 299
