# goalete/routes/admin.py
from datetime import datetime, timedelta

from flask import Blueprint, Response, current_app, jsonify, request
from sqlalchemy import or_

from goalete import db
from goalete.errors import NotFound, Unauthorized, ValidationError
from goalete.models import Meeting, Subscription, User
from goalete.schemas import AuthRequest, UserUpdateRequest
from goalete.services.analytics import aggregate, to_dashboard_json
from goalete.services.subscriptions import active_subscriptions_on, select_subscriptions
from goalete.signals import subscription_changed, user_changed
from goalete.utils.admin_helpers import (
    format_user_for_admin, format_user_with_subscriptions, generate_csv,
)
from goalete.utils.dates import day_bounds, local_today
from goalete.utils.decorators import admin_required
from goalete.utils.validation import parse_body, query_date, query_int

bp = Blueprint('admin', __name__, url_prefix='/admin')

USER_SORT_FIELDS = {
    'createdAt': User.created_at,
    'firstName': User.first_name,
    'lastName': User.last_name,
    'email': User.email,
}

STATISTICS_DEFAULT_DAYS = 30


@bp.route('/auth', methods=['POST'])
def auth():
    """Exchange the admin passcode for a confirmation the dashboard can store"""
    body = parse_body(AuthRequest)
    if not current_app.extensions['credential_checker'].check(body.passcode):
        raise Unauthorized('Invalid passcode')
    return jsonify({'success': True})


def _subscription_filters():
    filters = []
    for param, column in (('planType', Subscription.plan_type),
                          ('status', Subscription.status),
                          ('paymentStatus', Subscription.payment_status)):
        value = request.args.get(param)
        if value and value != 'all':
            filters.append(column == value)

    start, end = query_date('startDate'), query_date('endDate')
    if start and end:
        range_start, range_end = day_bounds(start, end)
        filters.append(Subscription.start_date.between(range_start, range_end))
    return filters


def _user_query():
    query = User.query
    source = request.args.get('source')
    if source and source != 'all':
        query = query.filter(User.source == source)

    search = request.args.get('search', '').strip()
    if search:
        pattern = f'%{search}%'
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
            User.phone.ilike(pattern),
        ))
    return query


def _latest_subscription(user, filters):
    return user.subscriptions.filter(*filters).order_by(Subscription.created_at.desc()).first()


@bp.route('/users')
@admin_required
def users():
    """Users with their most recent (filtered) subscription, paginated"""
    page = query_int('page', 1)
    page_size = query_int('pageSize', 20, maximum=200)
    sort_by = request.args.get('sortBy', 'createdAt')
    if sort_by not in USER_SORT_FIELDS:
        raise ValidationError(details={'sortBy': [f'Must be one of {", ".join(USER_SORT_FIELDS)}']})
    column = USER_SORT_FIELDS[sort_by]
    order = column.asc() if request.args.get('sortOrder', 'desc') == 'asc' else column.desc()

    query = _user_query()
    total = query.count()
    page_users = query.order_by(order).offset((page - 1) * page_size).limit(page_size).all()

    filters = _subscription_filters()
    rows = [format_user_for_admin(u, _latest_subscription(u, filters)) for u in page_users]
    return jsonify({'users': rows, 'total': total, 'page': page, 'pageSize': page_size})


@bp.route('/users/export')
@admin_required
def export_users():
    """CSV download of every user matching the list filters"""
    filters = _subscription_filters()
    rows = [
        format_user_for_admin(u, _latest_subscription(u, filters))
        for u in _user_query().order_by(User.created_at.desc()).all()
    ]
    return Response(
        generate_csv(rows),
        mimetype='text/csv',
        headers={'Content-Disposition': 'attachment; filename="goalete-users-export.csv"'},
    )


def _get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    return user


@bp.route('/users/<int:user_id>')
@admin_required
def user_detail(user_id):
    return jsonify(format_user_with_subscriptions(_get_user(user_id)))


@bp.route('/users/<int:user_id>', methods=['PATCH'])
@admin_required
def update_user(user_id):
    """Edit profile fields, grant superuser, or add an unlimited subscription"""
    user = _get_user(user_id)
    body = parse_body(UserUpdateRequest)

    for field in ('first_name', 'last_name', 'phone', 'source', 'reference_name'):
        value = getattr(body, field)
        if value is not None:
            setattr(user, field, value)

    if body.grant_super_user:
        user.role = 'superuser'

    subscription = None
    if body.create_infinite_subscription:
        start = datetime.combine(local_today(), datetime.min.time())
        subscription = Subscription(
            user_id=user.id,
            plan_type='unlimited',
            start_date=start,
            end_date=start + timedelta(days=36500),
            status='active',
            payment_status='admin-created',
            order_id=f'admin-unlimited-{int(datetime.utcnow().timestamp())}-{str(user.id)[-6:]}',
            duration=36500,
            price=0,
        )
        db.session.add(subscription)

    db.session.commit()
    user_changed.send(user, action='updated')
    if subscription is not None:
        subscription_changed.send(subscription, action='created')

    return jsonify({'success': True, 'user': format_user_with_subscriptions(user)})


@bp.route('/users/<int:user_id>/meetings')
@admin_required
def user_meetings(user_id):
    user = _get_user(user_id)
    meetings = user.meetings.order_by(Meeting.meeting_date.desc()).all()
    return jsonify({'meetings': [m.to_dict() for m in meetings]})


@bp.route('/subscriptions')
@admin_required
def subscriptions():
    query = Subscription.query
    status = request.args.get('status')
    if status and status != 'all':
        query = query.filter(Subscription.status == status)

    start, end = query_date('startDate'), query_date('endDate')
    if start and end:
        range_start, range_end = day_bounds(start, end)
        query = query.filter(Subscription.start_date.between(range_start, range_end))

    rows = []
    for sub in query.order_by(Subscription.start_date.desc()).all():
        data = sub.to_dict()
        data['user'] = {'id': sub.user.id, 'name': sub.user.full_name, 'email': sub.user.email}
        rows.append(data)
    return jsonify({'subscriptions': rows, 'total': len(rows)})


@bp.route('/statistics')
@admin_required
def statistics():
    """Revenue and subscription analytics for a date range (default: last 30 days)"""
    today = local_today()
    end = query_date('endDate', today)
    start = query_date('startDate', end - timedelta(days=STATISTICS_DEFAULT_DAYS))
    if end < start:
        raise ValidationError(details={'endDate': ['endDate must not be before startDate']})

    payment_filter = request.args.get('paymentFilter', 'all')
    rows = select_subscriptions(start, end, payment_filter)
    summary = aggregate(rows, start, end)

    data = to_dashboard_json(summary)
    data['dateRange'] = {'startDate': start.isoformat(), 'endDate': end.isoformat()}
    data['paymentFilter'] = payment_filter
    return jsonify(data)


@bp.route('/today-active')
@admin_required
def today_active():
    today = local_today()
    rows = []
    for sub in active_subscriptions_on(today):
        data = sub.to_dict()
        data['user'] = format_user_for_admin(sub.user, sub)
        rows.append(data)
    return jsonify({'date': today.isoformat(), 'subscriptions': rows, 'count': len(rows)})


@bp.route('/today-active/meeting')
@admin_required
def today_meeting():
    meeting = Meeting.query.filter_by(meeting_date=local_today()).first()
    if meeting is None:
        raise NotFound('No meeting scheduled for today')
    return jsonify({'meeting': meeting.to_dict(include_users=True)})


@bp.route('/count-users')
@admin_required
def count_users():
    day = query_date('date', local_today())
    plan_type = request.args.get('planType')
    count = len({s.user_id for s in active_subscriptions_on(day, plan_type)})
    return jsonify({'date': day.isoformat(), 'planType': plan_type or 'all', 'count': count})


@bp.route('/events')
@admin_required
def events():
    """Latest mutation per topic so the dashboard knows what to reload"""
    event_log = current_app.extensions['event_log']
    topic = request.args.get('topic')
    if topic:
        return jsonify({'topic': topic, 'events': event_log.recent(topic)})
    return jsonify({'latest': event_log.latest()})
