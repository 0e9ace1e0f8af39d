# goalete/services/meetings.py
"""
Meeting reconciliation: one meeting row per club day, kept in step with the
calendar provider and with the users invited to it.
"""
import logging
from datetime import timedelta

from flask import current_app
from google.auth.exceptions import GoogleAuthError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from goalete import db
from goalete.errors import ApiError, NotFound, UpstreamFailure
from goalete.models import Meeting, User
from goalete.models.meeting import (
    CREATED_BY_ADMIN, CREATED_BY_CALENDAR_SYNC, CREATED_BY_CRON,
    DEFAULT_DESCRIPTION, DEFAULT_TITLE,
)
from goalete.services.calendar_service import GoogleCalendarService
from goalete.services.subscriptions import active_users_on
from goalete.services.zoom_service import ZoomService
from goalete.signals import meeting_changed
from goalete.utils.dates import local_to_utc, local_today, parse_hhmm

logger = logging.getLogger(__name__)

DAILY_TITLE = 'GOALETE Club Daily Session'
MAX_SYNC_DAYS = 90

# meeting attribute -> normalised event key
SYNCED_FIELDS = {
    'meeting_link': 'link',
    'meeting_title': 'title',
    'meeting_desc': 'description',
    'google_event_id': 'id',
    'start_time': 'start',
    'end_time': 'end',
}


def get_provider(platform):
    if platform == 'zoom':
        return ZoomService()
    return GoogleCalendarService()


def fallback_link(day):
    return current_app.config['MEETING_FALLBACK_URL'].format(date=day.strftime('%Y%m%d'))


def meeting_for_day(day):
    return Meeting.query.filter_by(meeting_date=day).first()


def needs_update(meeting, event):
    """Fields of ``meeting`` that differ from the provider event."""
    changes = {}
    for attr, key in SYNCED_FIELDS.items():
        value = event.get(key)
        if value is not None and getattr(meeting, attr) != value:
            changes[attr] = value
    return changes


def _apply(meeting, changes):
    for attr, value in changes.items():
        setattr(meeting, attr, value)


def _matching_event(meeting, events):
    for event in events:
        if meeting.google_event_id and event['id'] == meeting.google_event_id:
            return event
    for event in events:
        if event['start'] == meeting.start_time and event['end'] == meeting.end_time:
            return event
    return None


def refresh_from_provider(meeting, provider):
    """
    Pull link/time/title changes for an existing meeting.

    Provider errors leave the stored row untouched.
    """
    try:
        events = provider.list_events(meeting.meeting_date)
    except UpstreamFailure as e:
        logger.warning(f"Calendar refresh skipped for {meeting.meeting_date}: {e.message}")
        return False

    event = _matching_event(meeting, events)
    if not event and meeting.created_by == CREATED_BY_CALENDAR_SYNC and events:
        event = events[0]
    if not event:
        return False

    changes = needs_update(meeting, event)
    if not changes:
        return False
    _apply(meeting, changes)
    db.session.commit()
    meeting_changed.send(meeting, action='updated')
    logger.info(f"Meeting {meeting.id} refreshed from calendar: {', '.join(sorted(changes))}")
    return True


def get_or_create_meeting(day, platform=None, start_time=None, duration=None,
                          title=None, description=None, user_ids=None,
                          created_by=CREATED_BY_ADMIN, is_default=False,
                          sync_from_calendar=False, provider=None):
    """
    Return the meeting for ``day``, creating it on first need.

    Args:
        day (date): club day
        platform (str): 'google-meet' or 'zoom', defaults to config
        start_time (str): local 'HH:MM', defaults to config
        duration (int): minutes, defaults to config
        user_ids (list): users to attach (idempotent)
        sync_from_calendar (bool): consult the provider before creating, and
            refresh an existing row from it

    Returns:
        Meeting
    """
    config = current_app.config
    platform = platform or config['DEFAULT_MEETING_PLATFORM']
    if sync_from_calendar and provider is None:
        provider = get_provider(platform)

    meeting = meeting_for_day(day)
    if meeting:
        if sync_from_calendar:
            refresh_from_provider(meeting, provider)
        if user_ids:
            attach_users(meeting, user_ids, provider)
        return meeting

    start = local_to_utc(day, parse_hhmm(start_time or config['DEFAULT_MEETING_TIME']))
    end = start + timedelta(minutes=duration or config['DEFAULT_MEETING_DURATION'])
    fields = {
        'meeting_date': day,
        'platform': platform,
        'meeting_link': fallback_link(day),
        'start_time': start,
        'end_time': end,
        'meeting_title': title or DEFAULT_TITLE,
        'meeting_desc': description or DEFAULT_DESCRIPTION,
        'created_by': created_by,
        'is_default': is_default,
    }

    if sync_from_calendar:
        event = provider.find_event(day)
        if event:
            fields.update({
                'meeting_link': event['link'],
                'google_event_id': event['id'],
                'start_time': event['start'],
                'end_time': event['end'],
                'meeting_title': event.get('title') or fields['meeting_title'],
                'meeting_desc': event.get('description') or fields['meeting_desc'],
            })
        else:
            created = provider.create_meeting(
                day, start, end, fields['meeting_title'], fields['meeting_desc']
            )
            fields['meeting_link'] = created.pop('link')
            fields.update(created)

    meeting = Meeting(**fields)
    db.session.add(meeting)
    try:
        db.session.commit()
    except IntegrityError:
        # another request created the day's meeting first
        db.session.rollback()
        meeting = meeting_for_day(day)
        if meeting is None:
            raise
        logger.warning(f"Meeting for {day} already existed, using meeting {meeting.id}")
    else:
        meeting_changed.send(meeting, action='created')
        logger.info(f"Created {platform} meeting {meeting.id} for {day} ({created_by})")

    if user_ids:
        attach_users(meeting, user_ids, provider)
    return meeting


def attach_users(meeting, user_ids, provider=None):
    """
    Attach users to ``meeting`` without duplicating or dropping attachments.

    Newly attached users are also invited on the provider side when a
    provider is given; provider failures are logged only.

    Returns:
        list: the users that were newly attached
    """
    wanted = set(user_ids)
    users = User.query.filter(User.id.in_(wanted)).all() if wanted else []
    missing = wanted - {u.id for u in users}
    if missing:
        logger.warning(f"Skipping unknown users for meeting {meeting.id}: {sorted(missing)}")

    attached = {u.id for u in meeting.users}
    new_users = [u for u in users if u.id not in attached]
    if not new_users:
        return []

    meeting.users.extend(new_users)
    db.session.commit()
    meeting_changed.send(meeting, action='attached')

    if provider is not None:
        try:
            provider.add_attendees(meeting, new_users)
        except UpstreamFailure as e:
            logger.warning(f"Could not add attendees to {meeting.platform} meeting {meeting.id}: {e.message}")
    return new_users


def attach_user(meeting_id, user_id):
    """
    Attach one user to one meeting.

    Returns:
        bool: False when the user was already attached

    Raises:
        NotFound: meeting or user does not exist
    """
    meeting = db.session.get(Meeting, meeting_id)
    if meeting is None:
        raise NotFound('Meeting not found')
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')

    if user in meeting.users:
        return False
    meeting.users.append(user)
    db.session.commit()
    meeting_changed.send(meeting, action='attached')
    return True


def get_or_create_daily_meeting(day=None):
    """Today's default meeting with every user who has access today attached."""
    day = day or local_today()
    return get_or_create_meeting(
        day,
        title=DAILY_TITLE,
        user_ids=[u.id for u in active_users_on(day)],
        created_by=CREATED_BY_CRON,
        is_default=True,
        sync_from_calendar=True,
    )


def delete_orphaned_meetings(day, provider):
    """
    Delete calendar-sync meetings for ``day`` whose event is gone.

    Meetings created by an admin or by cron are never touched.

    Returns:
        int: number of meetings deleted
    """
    events = provider.list_events(day)
    orphans = [
        m for m in Meeting.query.filter_by(meeting_date=day, created_by=CREATED_BY_CALENDAR_SYNC).all()
        if _matching_event(m, events) is None
    ]
    deleted_ids = [m.id for m in orphans]
    for meeting in orphans:
        logger.info(f"Deleting meeting {meeting.id} for {day}: calendar event no longer exists")
        db.session.delete(meeting)
    if orphans:
        db.session.commit()
        for meeting_id in deleted_ids:
            meeting_changed.send(Meeting, action='deleted', object_id=meeting_id)
    return len(orphans)


def sync_calendar_day(day, provider):
    counts = {'created': 0, 'updated': 0, 'deleted': 0, 'skipped': 0}

    for event in provider.list_events(day):
        meeting = Meeting.query.filter_by(google_event_id=event['id']).first()
        if meeting is None:
            meeting = Meeting.query.filter_by(start_time=event['start'], end_time=event['end']).first()

        if meeting is not None:
            changes = needs_update(meeting, event)
            if changes:
                _apply(meeting, changes)
                db.session.commit()
                meeting_changed.send(meeting, action='updated')
                counts['updated'] += 1
            else:
                counts['skipped'] += 1
            continue

        if meeting_for_day(day):
            logger.info(f"Skipping event {event['id']}: {day} already has a meeting")
            counts['skipped'] += 1
            continue

        meeting = Meeting(
            meeting_date=day,
            platform='google-meet',
            meeting_link=event['link'],
            start_time=event['start'],
            end_time=event['end'],
            meeting_title=event.get('title') or DEFAULT_TITLE,
            meeting_desc=event.get('description') or DEFAULT_DESCRIPTION,
            google_event_id=event['id'],
            created_by=CREATED_BY_CALENDAR_SYNC,
        )
        db.session.add(meeting)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            counts['skipped'] += 1
            continue
        meeting_changed.send(meeting, action='created')
        counts['created'] += 1

    counts['deleted'] = delete_orphaned_meetings(day, provider)
    return counts


def sync_calendar(days=30, start=None, provider=None):
    """
    Reconcile meetings with the calendar for ``days`` days from ``start``.

    A failing day is recorded and the loop moves on.

    Returns:
        dict: processed, created, updated, deleted, skipped, errors, errorDetails
    """
    start = start or local_today()
    provider = provider or GoogleCalendarService()
    summary = {'processed': 0, 'created': 0, 'updated': 0, 'deleted': 0,
               'skipped': 0, 'errors': 0, 'errorDetails': []}

    for offset in range(days):
        day = start + timedelta(days=offset)
        try:
            counts = sync_calendar_day(day, provider)
        except (ApiError, SQLAlchemyError, GoogleAuthError, ValueError) as e:
            db.session.rollback()
            message = e.message if isinstance(e, ApiError) else str(e)
            logger.error(f"Calendar sync failed for {day}: {message}")
            summary['errors'] += 1
            summary['errorDetails'].append({'date': day.isoformat(), 'error': message})
            continue
        summary['processed'] += 1
        for key, value in counts.items():
            summary[key] += value

    logger.info(
        f"Calendar sync finished: {summary['created']} created, {summary['updated']} updated, "
        f"{summary['deleted']} deleted, {summary['errors']} errors"
    )
    return summary
