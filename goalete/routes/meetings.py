# goalete/routes/meetings.py
import logging
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, request

from goalete import db
from goalete.errors import NotFound, ValidationError
from goalete.models import Meeting, Subscription, User
from goalete.models.meeting import PLATFORMS
from goalete.schemas import AddUserToMeetingRequest, CalendarSyncRequest, MeetingRequest
from goalete.services import meetings as meeting_service
from goalete.services.subscriptions import active_subscriptions_on, active_users_on
from goalete.signals import subscription_changed
from goalete.utils.admin_helpers import format_user_for_admin
from goalete.utils.dates import date_range, day_bounds
from goalete.utils.decorators import admin_required
from goalete.utils.email import invite_to_meeting
from goalete.utils.validation import parse_body, query_date, query_int

bp = Blueprint('meetings', __name__, url_prefix='/admin')
logger = logging.getLogger(__name__)


@bp.route('/meetings')
@admin_required
def list_meetings():
    query = Meeting.query
    start, end = query_date('startDate'), query_date('endDate')
    if start:
        query = query.filter(Meeting.meeting_date >= start)
    if end:
        query = query.filter(Meeting.meeting_date <= end)

    platform = request.args.get('platform')
    if platform and platform != 'all':
        if platform not in PLATFORMS:
            raise ValidationError(details={'platform': [f'Must be one of {", ".join(PLATFORMS)}']})
        query = query.filter(Meeting.platform == platform)

    meetings = query.order_by(Meeting.meeting_date.asc()).all()
    return jsonify({'meetings': [m.to_dict() for m in meetings]})


@bp.route('/meetings', methods=['POST'])
@admin_required
def create_meetings():
    """Get or create the meeting for each requested date"""
    body = parse_body(MeetingRequest)

    days = set(body.dates)
    if body.date_range:
        days.update(date_range(body.date_range.start_date, body.date_range.end_date))
    if len(days) > meeting_service.MAX_SYNC_DAYS:
        raise ValidationError(details={'dates': [f'At most {meeting_service.MAX_SYNC_DAYS} dates per request']})

    meetings = []
    for day in sorted(days):
        user_ids = [u.id for u in active_users_on(day)] if body.add_active_users else None
        meeting = meeting_service.get_or_create_meeting(
            day,
            platform=body.platform,
            start_time=body.start_time,
            duration=body.duration,
            title=body.title,
            description=body.description,
            user_ids=user_ids,
            sync_from_calendar=body.sync_with_calendar,
        )
        meetings.append(meeting.to_dict())

    return jsonify({'success': True, 'meetings': meetings, 'count': len(meetings)}), 201


@bp.route('/meeting-attendees')
@admin_required
def meeting_attendees():
    meeting_id = query_int('meetingId', None)
    if meeting_id is None:
        raise ValidationError(details={'meetingId': ['This parameter is required']})
    meeting = db.session.get(Meeting, meeting_id)
    if meeting is None:
        raise NotFound('Meeting not found')
    return jsonify({
        'meeting': meeting.to_dict(),
        'attendees': [format_user_for_admin(u) for u in meeting.users],
    })


@bp.route('/session-users')
@admin_required
def session_users():
    """Meeting for a date plus everyone with access that day"""
    day = query_date('date', required=True)
    meeting = Meeting.query.filter_by(meeting_date=day).first()
    attached = {u.id for u in meeting.users} if meeting else set()

    users = []
    for sub in active_subscriptions_on(day):
        data = format_user_for_admin(sub.user, sub)
        data['inMeeting'] = sub.user_id in attached
        users.append(data)

    return jsonify({
        'date': day.isoformat(),
        'meeting': meeting.to_dict() if meeting else None,
        'users': users,
        'count': len(users),
    })


@bp.route('/add-user-to-meeting', methods=['POST'])
@admin_required
def add_user_to_meeting():
    body = parse_body(AddUserToMeetingRequest)

    if body.action == 'checkMeeting':
        meeting = Meeting.query.filter_by(meeting_date=body.day).first()
        return jsonify({
            'exists': meeting is not None,
            'meeting': meeting.to_dict(include_users=True) if meeting else None,
        })

    user = db.session.get(User, body.user_id)
    if user is None:
        raise NotFound('User not found')
    meeting = db.session.get(Meeting, body.meeting_id)
    if meeting is None:
        raise NotFound('Meeting not found')

    day = meeting.meeting_date
    existing = next((s for s in active_subscriptions_on(day) if s.user_id == user.id), None)

    subscription = None
    if existing is None:
        start, _ = day_bounds(day)
        subscription = Subscription(
            user_id=user.id,
            plan_type='admin-added',
            start_date=start,
            end_date=start + timedelta(days=1),
            status='active',
            payment_status='admin-added',
            order_id=f'admin-{int(datetime.utcnow().timestamp() * 1000)}-{str(user.id)[-6:]}',
            duration=1,
            price=0,
        )
        db.session.add(subscription)
        db.session.commit()
        subscription_changed.send(subscription, action='created')

    added = meeting_service.attach_user(meeting.id, user.id)

    invite_sent = False
    if body.send_invite and added:
        invite_sent = invite_to_meeting(user, meeting)
        if not invite_sent:
            logger.warning(f"Invite to {user.email} for meeting {meeting.id} was not sent")

    if existing is not None:
        message = f'{user.full_name} already has an active subscription for {day.isoformat()}'
    else:
        message = f'{user.full_name} was added to the meeting on {day.isoformat()}'

    return jsonify({
        'success': True,
        'message': message,
        'alreadyAttached': not added,
        'inviteSent': invite_sent,
        'subscription': subscription.to_dict() if subscription else existing.to_dict(),
        'meeting': meeting.to_dict(),
    })


@bp.route('/calendar-sync', methods=['POST'])
@admin_required
def calendar_sync():
    body = parse_body(CalendarSyncRequest)
    summary = meeting_service.sync_calendar(body.days)
    return jsonify({'success': True, **summary})
