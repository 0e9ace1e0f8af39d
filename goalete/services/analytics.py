# goalete/services/analytics.py
"""
Revenue and subscription analytics for the dashboard.

``aggregate`` is a pure fold over subscription rows (or anything exposing the
same attributes): no queries, no writes.
"""
from collections import Counter, OrderedDict

from goalete.utils.dates import date_range, local_now

INVALID_PAYMENT_STATUSES = frozenset(['failed', 'cancelled', 'canceled', 'pending', 'initiated'])

PLAN_BUCKETS = ('daily', 'monthly', 'unlimited')

# plan tag (lowercase) -> (bucket, seats)
PLAN_TAGS = {
    'daily': ('daily', 1),
    'admin-added': ('daily', 1),
    'monthly': ('monthly', 1),
    'family-monthly': ('monthly', 2),
    'monthly-family': ('monthly', 2),
    'monthlyfamily': ('monthly', 2),
    'comboplan': ('monthly', 2),
    'unlimited': ('unlimited', 1),
    'superuser': ('unlimited', 1),
}


def is_valid_payment(payment_status):
    """A subscription counts toward revenue unless its payment failed or never completed."""
    return (payment_status or '').lower() not in INVALID_PAYMENT_STATUSES


def classify_plan(plan_type):
    """Return (bucket, seats) for a plan tag, or None for tags outside the buckets."""
    return PLAN_TAGS.get((plan_type or '').strip().lower())


def subscription_state(subscription, now):
    """Which of active/expired/upcoming a subscription counts toward."""
    states = set()
    if subscription.status == 'active' and subscription.start_date <= now <= subscription.end_date:
        states.add('active')
    if subscription.end_date < now or subscription.status == 'expired':
        states.add('expired')
    if subscription.status == 'active' and subscription.start_date > now:
        states.add('upcoming')
    return states


def shared_orders(subscriptions):
    """
    Orders that stored one row per member of a shared plan.

    Each such row counts as one seat; a single row for a whole family plan
    counts every seat of the plan.
    """
    rows_per_order = Counter(
        sub.order_id for sub in subscriptions
        if getattr(sub, 'order_id', None) and (classify_plan(sub.plan_type) or (None, 1))[1] > 1
    )
    return {order_id for order_id, rows in rows_per_order.items() if rows > 1}


def aggregate(subscriptions, start_day, end_day, now=None):
    """
    Fold subscriptions into revenue, plan, status and per-day totals.

    Args:
        subscriptions: iterable of Subscription-like rows
        start_day (date): first day of the per-day series
        end_day (date): last day of the per-day series, inclusive
        now (datetime): reference time for active/expired/upcoming, naive club-local
            time like the stored subscription dates (default: current club time)

    Returns:
        dict: stats, payment_stats, revenue, subscriptions_by_plan,
        revenue_by_plan, revenue_by_day, subscriptions_by_day, plan_counts
    """
    now = now or local_now().replace(tzinfo=None)
    subscriptions = list(subscriptions)
    per_member_orders = shared_orders(subscriptions)

    stats = {'total': len(subscriptions), 'active': 0, 'expired': 0, 'upcoming': 0}
    payment_stats = {}
    subscriptions_by_plan = {bucket: 0 for bucket in PLAN_BUCKETS}
    revenue_by_plan = {bucket: 0 for bucket in PLAN_BUCKETS}
    revenue_by_day = OrderedDict((day.isoformat(), 0) for day in date_range(start_day, end_day))
    subscriptions_by_day = OrderedDict((day, 0) for day in revenue_by_day)
    plan_counts = Counter()
    revenue = 0

    for sub in subscriptions:
        price = sub.price or 0
        valid = is_valid_payment(sub.payment_status)

        for state in subscription_state(sub, now):
            stats[state] += 1

        bucket = payment_stats.setdefault(
            sub.payment_status, {'count': 0, 'total_price': 0, 'total_duration': 0}
        )
        bucket['count'] += 1
        bucket['total_price'] += price
        bucket['total_duration'] += sub.duration or 0

        plan_counts[sub.plan_type] += 1
        plan = classify_plan(sub.plan_type)
        if plan:
            name, seats = plan
            if getattr(sub, 'order_id', None) in per_member_orders:
                seats = 1
            subscriptions_by_plan[name] += seats
            if valid:
                revenue_by_plan[name] += price

        day_key = sub.start_date.date().isoformat()
        if day_key in subscriptions_by_day:
            subscriptions_by_day[day_key] += 1
            if valid:
                revenue_by_day[day_key] += price

        if valid:
            revenue += price

    return {
        'stats': stats,
        'payment_stats': payment_stats,
        'revenue': revenue,
        'subscriptions_by_plan': subscriptions_by_plan,
        'revenue_by_plan': revenue_by_plan,
        'revenue_by_day': revenue_by_day,
        'subscriptions_by_day': subscriptions_by_day,
        'plan_counts': dict(plan_counts),
    }


def to_dashboard_json(summary):
    """camelCase payload consumed by the earnings dashboard."""
    stats = summary['stats']
    return {
        'stats': stats,
        'paymentStats': {
            status: {
                'count': bucket['count'],
                'totalPrice': bucket['total_price'],
                'totalDuration': bucket['total_duration'],
            }
            for status, bucket in summary['payment_stats'].items()
        },
        'revenue': summary['revenue'],
        'totalRevenue': summary['revenue'],
        'planStats': summary['plan_counts'],
        'totalSubscriptions': stats['total'],
        'activeSubscriptions': stats['active'],
        'expiredSubscriptions': stats['expired'],
        'upcomingSubscriptions': stats['upcoming'],
        'subscriptionsByPlan': summary['subscriptions_by_plan'],
        'revenueByPlan': summary['revenue_by_plan'],
        'revenueByDay': [
            {'date': day, 'revenue': amount} for day, amount in summary['revenue_by_day'].items()
        ],
        'subscriptionsByDay': [
            {'date': day, 'count': count} for day, count in summary['subscriptions_by_day'].items()
        ],
    }
