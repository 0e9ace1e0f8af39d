# tests/test_subscription_filter.py
"""
Tests for the subscription window filter and booking eligibility
"""
import pytest
from datetime import date
from unittest.mock import patch

from goalete.errors import ValidationError
from goalete.services.subscriptions import (
    active_subscriptions_on, can_user_subscribe, intervals_overlap,
    select_subscriptions, validate_dates,
)
from tests.conftest import make_subscription


class TestSelectSubscriptions:
    """Date-window selection"""

    def test_start_inside_range(self, app_context, db, user):
        sub = make_subscription(db, user, date(2024, 1, 10))
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == [sub]

    def test_end_inside_range(self, app_context, db, user):
        sub = make_subscription(db, user, date(2023, 12, 20), days=30, plan_type='monthly')
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == [sub]

    def test_interval_containing_range(self, app_context, db, user):
        sub = make_subscription(db, user, date(2023, 12, 1), days=90, plan_type='monthly')
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == [sub]

    def test_outside_range_excluded(self, app_context, db, user):
        make_subscription(db, user, date(2023, 6, 1))
        make_subscription(db, user, date(2024, 3, 1))
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == []

    def test_single_day_range(self, app_context, db, user):
        sub = make_subscription(db, user, date(2024, 1, 5))
        assert select_subscriptions(date(2024, 1, 5)) == [sub]

    @pytest.mark.parametrize('payment_status', ['admin-added', 'admin-created'])
    def test_admin_granted_included_regardless_of_dates(self, app_context, db, user, payment_status):
        sub = make_subscription(db, user, date(2019, 5, 1), price=0, payment_status=payment_status,
                                plan_type='admin-added')
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == [sub]
        assert select_subscriptions(date(2030, 1, 1), date(2030, 1, 2), 'paid') == [sub]

    def test_paid_filter(self, app_context, db, user):
        paid = make_subscription(db, user, date(2024, 1, 3), payment_status='completed')
        success = make_subscription(db, user, date(2024, 1, 4), payment_status='success')
        make_subscription(db, user, date(2024, 1, 5), payment_status='pending')
        make_subscription(db, user, date(2024, 1, 6), payment_status='failed')

        result = select_subscriptions(date(2024, 1, 1), date(2024, 1, 31), 'paid')
        assert result == [success, paid]

    def test_pending_filter(self, app_context, db, user):
        make_subscription(db, user, date(2024, 1, 3), payment_status='completed')
        pending = make_subscription(db, user, date(2024, 1, 5), payment_status='pending')
        initiated = make_subscription(db, user, date(2024, 1, 6), payment_status='initiated')
        failed = make_subscription(db, user, date(2024, 1, 7), payment_status='failed')
        make_subscription(db, user, date(2024, 1, 8), payment_status='admin-added', price=0)

        result = select_subscriptions(date(2024, 1, 1), date(2024, 1, 31), 'pending')
        assert result == [failed, initiated, pending]

    def test_ordered_most_recent_first(self, app_context, db, user):
        first = make_subscription(db, user, date(2024, 1, 2))
        last = make_subscription(db, user, date(2024, 1, 20))
        middle = make_subscription(db, user, date(2024, 1, 10))
        assert select_subscriptions(date(2024, 1, 1), date(2024, 1, 31)) == [last, middle, first]

    def test_unknown_filter_rejected(self, app_context, db):
        with pytest.raises(ValidationError) as exc:
            select_subscriptions(date(2024, 1, 1), date(2024, 1, 31), 'refunded')
        assert 'paymentFilter' in exc.value.details


class TestActiveSubscriptionsOn:
    """Who has access on a given day"""

    def test_active_daily_covers_only_its_day(self, app_context, db, user):
        sub = make_subscription(db, user, date(2024, 1, 5))
        assert active_subscriptions_on(date(2024, 1, 5)) == [sub]
        assert active_subscriptions_on(date(2024, 1, 6)) == []
        assert active_subscriptions_on(date(2024, 1, 4)) == []

    def test_inactive_excluded(self, app_context, db, user):
        make_subscription(db, user, date(2024, 1, 5), status='inactive', payment_status='pending')
        assert active_subscriptions_on(date(2024, 1, 5)) == []

    def test_plan_type_filter(self, app_context, db, user, second_user):
        make_subscription(db, user, date(2024, 1, 5))
        monthly = make_subscription(db, second_user, date(2024, 1, 1), days=30, plan_type='monthly', price=2999)
        assert active_subscriptions_on(date(2024, 1, 5), 'monthly') == [monthly]
        assert len(active_subscriptions_on(date(2024, 1, 5), 'all')) == 2


class TestOverlap:
    """Half-open overlap on calendar days"""

    def test_adjacent_bookings_do_not_overlap(self):
        assert not intervals_overlap(date(2025, 6, 3), date(2025, 6, 4), date(2025, 6, 1), date(2025, 6, 2))

    def test_touching_end_does_not_overlap(self):
        assert not intervals_overlap(date(2025, 6, 2), date(2025, 6, 3), date(2025, 6, 1), date(2025, 6, 2))

    def test_same_day_overlaps(self):
        assert intervals_overlap(date(2025, 6, 1), date(2025, 6, 2), date(2025, 6, 1), date(2025, 6, 2))

    def test_contained_booking_overlaps(self):
        assert intervals_overlap(date(2025, 6, 10), date(2025, 6, 11), date(2025, 6, 1), date(2025, 7, 1))


class TestValidateDates:

    def test_valid_window(self):
        today = date(2025, 6, 1)
        assert validate_dates(date(2025, 6, 1), date(2025, 6, 2), today) is None

    def test_start_must_precede_end(self):
        today = date(2025, 6, 1)
        assert validate_dates(date(2025, 6, 2), date(2025, 6, 2), today) == 'Start date must be before end date.'

    def test_past_dates_rejected(self):
        today = date(2025, 6, 10)
        assert validate_dates(date(2025, 6, 1), date(2025, 6, 2), today) == 'Cannot book dates in the past.'

    def test_max_duration(self):
        today = date(2025, 1, 1)
        reason = validate_dates(date(2025, 1, 1), date(2026, 1, 3), today)
        assert reason == 'Subscription duration cannot exceed 365 days.'


@patch('goalete.services.subscriptions.local_today', return_value=date(2025, 5, 20))
class TestCanUserSubscribe:
    """Eligibility checks used by the signup form"""

    def test_unknown_user_can_subscribe(self, mock_today, app_context, db):
        result = can_user_subscribe('new@example.com', 'daily', date(2025, 6, 3), date(2025, 6, 4))
        assert result['canSubscribe'] is True

    def test_non_overlapping_daily_allowed(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 1))
        result = can_user_subscribe(user.email, 'daily', date(2025, 6, 3), date(2025, 6, 4))
        assert result['canSubscribe'] is True

    def test_next_day_booking_allowed(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 1), days=1)
        result = can_user_subscribe(user.email, 'daily', date(2025, 6, 2), date(2025, 6, 3))
        assert result['canSubscribe'] is True

    def test_daily_on_same_day_rejected(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 1))
        result = can_user_subscribe(user.email, 'daily', date(2025, 6, 1), date(2025, 6, 2))
        assert result['canSubscribe'] is False
        assert result['reason'].startswith('Cannot book daily plan for 01/06/25')
        assert result['conflictingDates']['start'].startswith('2025-06-01')

    def test_monthly_over_daily_rejected(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 10))
        result = can_user_subscribe(user.email, 'monthly', date(2025, 6, 1), date(2025, 7, 1))
        assert result['canSubscribe'] is False
        assert 'monthly plan that overlaps with your existing daily plan' in result['reason']

    def test_daily_inside_monthly_rejected(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 1), days=30, plan_type='monthly', price=2999)
        result = can_user_subscribe(user.email, 'daily', date(2025, 6, 10), date(2025, 6, 11))
        assert result['canSubscribe'] is False
        assert 'daily plan that overlaps with your existing monthly plan' in result['reason']

    def test_inactive_subscriptions_ignored(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 6, 1), status='inactive', payment_status='pending')
        result = can_user_subscribe(user.email, 'daily', date(2025, 6, 1), date(2025, 6, 2))
        assert result['canSubscribe'] is True

    def test_invalid_dates_reported(self, mock_today, app_context, db, user):
        result = can_user_subscribe(user.email, 'daily', date(2025, 5, 1), date(2025, 5, 2))
        assert result == {'canSubscribe': False, 'reason': 'Cannot book dates in the past.',
                          'subscriptionDetails': None}

    def test_without_dates_active_subscription_blocks(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 5, 10), days=30, plan_type='monthly', price=2999)
        result = can_user_subscribe(user.email)
        assert result['canSubscribe'] is False
        assert result['reason'].startswith('You already have an active monthly subscription until 09/06/25')

    def test_without_dates_expired_subscription_allows(self, mock_today, app_context, db, user):
        make_subscription(db, user, date(2025, 4, 1), days=30, plan_type='monthly', price=2999)
        assert can_user_subscribe(user.email)['canSubscribe'] is True
