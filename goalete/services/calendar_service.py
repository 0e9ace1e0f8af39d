# goalete/services/calendar_service.py
"""
Google Calendar / Meet integration.

Events come back normalised to::

    {'id', 'link', 'title', 'description', 'start', 'end'}

with ``start``/``end`` as naive UTC datetimes.
"""
import logging
import uuid
from datetime import time, timedelta

from flask import current_app
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from goalete.errors import UpstreamFailure
from goalete.utils.dates import local_to_utc, parse_provider_time

logger = logging.getLogger(__name__)

SCOPES = ['https://www.googleapis.com/auth/calendar']
EVENT_KEYWORD = 'goalete'
PENDING_LINK = 'pending-meet-link-creation'


def video_link(event):
    """Join link of an event: the video entry point, then hangoutLink."""
    for entry in (event.get('conferenceData') or {}).get('entryPoints', []):
        if entry.get('entryPointType') == 'video' and entry.get('uri'):
            return entry['uri']
    return event.get('hangoutLink')


def is_club_event(event):
    text = f"{event.get('summary', '')} {event.get('description', '')}".lower()
    has_video = any(
        entry.get('entryPointType') == 'video'
        for entry in (event.get('conferenceData') or {}).get('entryPoints', [])
    )
    return EVENT_KEYWORD in text and has_video


def normalize_event(event):
    return {
        'id': event['id'],
        'link': video_link(event) or PENDING_LINK,
        'title': event.get('summary'),
        'description': event.get('description'),
        'start': parse_provider_time(event['start']),
        'end': parse_provider_time(event['end']),
    }


class GoogleCalendarService:
    """Calendar access through a service account impersonating the admin"""

    platform = 'google-meet'

    def __init__(self, service=None, calendar_id=None):
        self._service = service
        self.calendar_id = calendar_id or current_app.config.get('GOOGLE_CALENDAR_ID', 'primary')

    @property
    def service(self):
        if self._service is None:
            self._service = self._build_service()
        return self._service

    @staticmethod
    def _build_service():
        config = current_app.config
        if not config.get('GOOGLE_CLIENT_EMAIL') or not config.get('GOOGLE_PRIVATE_KEY'):
            raise UpstreamFailure('Google Calendar credentials are not configured')

        try:
            credentials = service_account.Credentials.from_service_account_info(
                {
                    'type': 'service_account',
                    'client_email': config['GOOGLE_CLIENT_EMAIL'],
                    'private_key': config['GOOGLE_PRIVATE_KEY'],
                    'token_uri': 'https://oauth2.googleapis.com/token',
                },
                scopes=SCOPES,
            )
        except (GoogleAuthError, ValueError) as e:
            logger.error(f"Google Calendar credentials are invalid: {e}")
            raise UpstreamFailure('Google Calendar credentials are invalid', details={'calendar': str(e)})
        if config.get('ADMIN_EMAIL'):
            credentials = credentials.with_subject(config['ADMIN_EMAIL'])
        logger.info("Google Calendar authenticated")
        return build('calendar', 'v3', credentials=credentials, cache_discovery=False)

    def _execute(self, request, action):
        try:
            return request.execute()
        except (HttpError, GoogleAuthError) as e:
            logger.error(f"Google Calendar {action} failed: {e}")
            raise UpstreamFailure(f'Google Calendar {action} failed', details={'calendar': str(e)})

    def list_events(self, day):
        """Club events with a video link on ``day``."""
        time_min = local_to_utc(day, time.min)
        time_max = local_to_utc(day + timedelta(days=1), time.min)
        result = self._execute(self.service.events().list(
            calendarId=self.calendar_id,
            timeMin=time_min.isoformat() + 'Z',
            timeMax=time_max.isoformat() + 'Z',
            q=EVENT_KEYWORD,
            singleEvents=True,
            orderBy='startTime',
            maxResults=50,
        ), 'event search')
        return [normalize_event(e) for e in result.get('items', []) if is_club_event(e)]

    def find_event(self, day):
        events = self.list_events(day)
        return events[0] if events else None

    def create_meeting(self, day, start, end, title, description, attendees=()):
        """
        Insert a calendar event with a Meet conference

        Returns:
            dict: link, google_event_id
        """
        body = {
            'summary': title,
            'description': description,
            'start': {'dateTime': start.isoformat() + 'Z', 'timeZone': 'UTC'},
            'end': {'dateTime': end.isoformat() + 'Z', 'timeZone': 'UTC'},
            'attendees': [{'email': email} for email in attendees],
            'conferenceData': {
                'createRequest': {
                    'requestId': f'goalete-{day.isoformat()}-{uuid.uuid4().hex[:8]}',
                    'conferenceSolutionKey': {'type': 'hangoutsMeet'},
                },
            },
        }
        event = self._execute(self.service.events().insert(
            calendarId=self.calendar_id,
            body=body,
            conferenceDataVersion=1,
            sendUpdates='none',
        ), 'event creation')
        logger.info(f"Created calendar event {event.get('id')} for {day}")
        return {
            'link': video_link(event) or PENDING_LINK,
            'google_event_id': event.get('id'),
        }

    def add_attendees(self, meeting, users):
        """Add users to the event guest list, skipping those already invited."""
        if not meeting.google_event_id:
            return 0
        event = self._execute(self.service.events().get(
            calendarId=self.calendar_id, eventId=meeting.google_event_id
        ), 'event lookup')
        attendees = event.get('attendees', [])
        known = {a.get('email', '').lower() for a in attendees}
        new = [
            {'email': u.email, 'displayName': u.full_name}
            for u in users if u.email.lower() not in known
        ]
        if not new:
            return 0
        self._execute(self.service.events().patch(
            calendarId=self.calendar_id,
            eventId=meeting.google_event_id,
            body={'attendees': attendees + new},
            sendUpdates='externalOnly',
        ), 'attendee update')
        return len(new)

