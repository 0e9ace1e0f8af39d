import csv
import io


CSV_HEADERS = [
    'ID', 'Name', 'Email', 'Phone', 'Source', 'Reference', 'Plan',
    'Start Date', 'End Date', 'Status', 'Created At', 'Price (INR)',
]


def _iso(value):
    return value.isoformat() if value else None


def format_user_for_admin(user, subscription=None):
    """Flatten a user and their current subscription for the admin tables."""
    if subscription is None:
        subscription = user.latest_subscription()
    return {
        'id': user.id,
        'name': user.full_name,
        'firstName': user.first_name,
        'lastName': user.last_name,
        'email': user.email,
        'phone': user.phone,
        'source': user.source,
        'referenceName': user.reference_name,
        'role': user.role,
        'createdAt': _iso(user.created_at),
        'plan': subscription.plan_type if subscription else None,
        'start': _iso(subscription.start_date) if subscription else None,
        'end': _iso(subscription.end_date) if subscription else None,
        'status': subscription.status if subscription else None,
        'price': subscription.price if subscription else None,
        'paymentStatus': subscription.payment_status if subscription else None,
    }


def format_user_with_subscriptions(user):
    from goalete.models import Subscription
    subscriptions = user.subscriptions.order_by(Subscription.start_date.desc()).all()
    data = format_user_for_admin(user, subscriptions[0] if subscriptions else None)
    data['subscriptions'] = [s.to_dict() for s in subscriptions]
    return data


def generate_csv(rows):
    """CSV text for formatted admin rows, every cell quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow([
            row['id'],
            row['name'],
            row['email'],
            row['phone'],
            row['source'],
            row['referenceName'] or '',
            row['plan'] or '',
            (row['start'] or '')[:10],
            (row['end'] or '')[:10],
            row['status'] or '',
            (row['createdAt'] or '')[:10],
            '' if row['price'] is None else row['price'],
        ])
    return buffer.getvalue()
