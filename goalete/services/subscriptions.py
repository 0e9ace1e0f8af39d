# goalete/services/subscriptions.py
"""
Subscription queries: the reporting window filter, "who has access today",
and booking eligibility checks.
"""
import logging
from datetime import timedelta

from sqlalchemy import and_, or_

from goalete.errors import ValidationError
from goalete.models import Subscription, User
from goalete.models.subscription import ADMIN_PAYMENT_STATUSES
from goalete.utils.dates import day_bounds, format_ddmmyy, local_today

logger = logging.getLogger(__name__)

PAID_STATUSES = ('completed', 'paid', 'success')
PENDING_STATUSES = ('pending', 'initiated', 'failed')
PAYMENT_FILTERS = ('all', 'paid', 'pending')

MAX_BOOKING_DAYS = 365


def select_subscriptions(start, end=None, payment_filter='all'):
    """
    Select subscriptions whose interval overlaps the inclusive day range.

    Administrator-granted subscriptions match regardless of the range.

    Args:
        start (date): first day of the range
        end (date): last day of the range, defaults to ``start``
        payment_filter (str): one of 'all', 'paid', 'pending'

    Returns:
        list: matching Subscription rows, most recent start first
    """
    if payment_filter not in PAYMENT_FILTERS:
        raise ValidationError(details={'paymentFilter': [f'Must be one of {", ".join(PAYMENT_FILTERS)}']})

    range_start, range_end = day_bounds(start, end)

    overlaps = or_(
        Subscription.start_date.between(range_start, range_end),
        Subscription.end_date.between(range_start, range_end),
        and_(Subscription.start_date <= range_start, Subscription.end_date >= range_end),
    )
    query = Subscription.query.filter(or_(
        and_(Subscription.payment_status.notin_(ADMIN_PAYMENT_STATUSES), overlaps),
        Subscription.payment_status.in_(ADMIN_PAYMENT_STATUSES),
    ))

    if payment_filter == 'paid':
        query = query.filter(Subscription.payment_status.in_(PAID_STATUSES + ADMIN_PAYMENT_STATUSES))
    elif payment_filter == 'pending':
        query = query.filter(Subscription.payment_status.in_(PENDING_STATUSES))

    return query.order_by(Subscription.start_date.desc()).all()


def active_subscriptions_on(day, plan_type=None):
    """Active subscriptions that grant access on ``day`` (end dates are exclusive)."""
    day_start, day_end = day_bounds(day)
    query = Subscription.query.filter(
        Subscription.status == 'active',
        Subscription.start_date <= day_end,
        Subscription.end_date > day_start,
    )
    if plan_type and plan_type != 'all':
        query = query.filter(Subscription.plan_type == plan_type)
    return query.order_by(Subscription.created_at.desc()).all()


def active_users_on(day):
    """Distinct users with access on ``day``, in subscription order."""
    users = []
    seen = set()
    for subscription in active_subscriptions_on(day):
        if subscription.user_id not in seen:
            seen.add(subscription.user_id)
            users.append(subscription.user)
    return users


def intervals_overlap(new_start, new_end, existing_start, existing_end):
    """Half-open overlap test on calendar days."""
    return new_start < existing_end and new_end > existing_start


def validate_dates(start, end, today=None):
    """
    Returns:
        str or None: the reason the booking window is invalid, or None
    """
    today = today or local_today()
    if start >= end:
        return 'Start date must be before end date.'
    if start < today:
        return 'Cannot book dates in the past.'
    if (end - start).days > MAX_BOOKING_DAYS:
        return f'Subscription duration cannot exceed {MAX_BOOKING_DAYS} days.'
    return None


def check_active_subscription(email):
    """Latest active subscription for ``email`` that still runs after today starts."""
    user = User.query.filter_by(email=email).first()
    if not user:
        return None, None
    today_start, _ = day_bounds(local_today())
    subscription = user.subscriptions.filter(
        Subscription.status == 'active',
        Subscription.end_date > today_start,
    ).order_by(Subscription.end_date.desc()).first()
    return user, subscription


def _eligibility(can_subscribe, reason=None, subscription=None):
    result = {
        'canSubscribe': can_subscribe,
        'reason': reason,
        'subscriptionDetails': subscription.to_dict() if subscription else None,
    }
    if subscription:
        result['conflictingDates'] = {
            'start': subscription.start_date.isoformat(),
            'end': subscription.end_date.isoformat(),
        }
    return result


def _span(start, end):
    first, last = format_ddmmyy(start), format_ddmmyy(end)
    return first if first == last else f'{first} to {last}'


def can_user_subscribe_for_dates(email, start, end, plan_type=None):
    reason = validate_dates(start, end)
    if reason:
        return _eligibility(False, reason)

    user = User.query.filter_by(email=email).first()
    if not user:
        return _eligibility(True, 'User not found in database, can create new subscription')

    active = user.subscriptions.filter(Subscription.status == 'active').all()
    if not active:
        return _eligibility(True, 'No active subscriptions found, can create new subscription')

    overlapping = [
        s for s in active
        if intervals_overlap(start, end, s.start_date.date(), s.end_date.date())
    ]
    if not overlapping:
        return _eligibility(True)

    daily = next((s for s in overlapping if s.plan_type == 'daily'), None)
    monthly = next((s for s in overlapping if s.plan_type == 'monthly'), None)

    if daily and plan_type == 'monthly':
        return _eligibility(False, (
            'Cannot purchase a monthly plan that overlaps with your existing daily plan from '
            f'{_span(daily.start_date, daily.end_date)}. Please select non-overlapping dates.'
        ), daily)

    if monthly and plan_type == 'daily':
        return _eligibility(False, (
            'Cannot purchase a daily plan that overlaps with your existing monthly plan from '
            f'{_span(monthly.start_date, monthly.end_date)}. Please select a date outside your monthly plan.'
        ), monthly)

    if daily and plan_type == 'daily':
        return _eligibility(False, (
            f'Cannot book daily plan for {format_ddmmyy(start)} because you already have a booking for '
            f'{_span(daily.start_date, daily.end_date)}. Please select a different date.'
        ), daily)

    first = overlapping[0]
    return _eligibility(False, (
        f'Cannot book for {_span(start, end)} because you already have a subscription from '
        f'{format_ddmmyy(first.start_date)} to {format_ddmmyy(first.end_date)}. '
        'Please select non-overlapping dates.'
    ), first)


def can_user_subscribe(email, plan_type=None, start=None, end=None):
    """
    Decide whether ``email`` may book a new subscription.

    With a date window the check is an overlap test against the user's
    active subscriptions; without one any current subscription blocks.
    """
    if start and end:
        return can_user_subscribe_for_dates(email, start, end, plan_type)

    _, current = check_active_subscription(email)
    if not current:
        return _eligibility(True)

    until = format_ddmmyy(current.end_date)
    if current.plan_type in ('monthly', 'daily'):
        return _eligibility(False, (
            f'You already have an active {current.plan_type} subscription until {until}. '
            'Please wait for it to expire or check non-overlapping dates.'
        ), current)
    return _eligibility(False, f'You already have an active subscription until {until}', current)


def subscription_window(plan, start_day):
    """Start and end datetimes for a plan booked from ``start_day``."""
    start, _ = day_bounds(start_day)
    return start, start + timedelta(days=plan['duration'])
