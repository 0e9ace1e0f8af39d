# goalete/services/zoom_service.py
"""Zoom scheduled meetings over the REST API (server-to-server OAuth)."""
import logging

import requests
from flask import current_app

from goalete.errors import UpstreamFailure

logger = logging.getLogger(__name__)

ZOOM_API = 'https://api.zoom.us/v2'
ZOOM_TOKEN_URL = 'https://zoom.us/oauth/token'


class ZoomService:
    """Creates meetings and registrants for the configured Zoom user"""

    platform = 'zoom'

    def __init__(self, session=None, timeout=15):
        self.session = session or requests.Session()
        self.timeout = timeout
        self._token = None

    def _access_token(self):
        if self._token:
            return self._token
        config = current_app.config
        if not all(config.get(k) for k in ('ZOOM_ACCOUNT_ID', 'ZOOM_CLIENT_ID', 'ZOOM_CLIENT_SECRET')):
            raise UpstreamFailure('Zoom credentials are not configured')

        response = self._request(
            'post', ZOOM_TOKEN_URL,
            params={'grant_type': 'account_credentials', 'account_id': config['ZOOM_ACCOUNT_ID']},
            auth=(config['ZOOM_CLIENT_ID'], config['ZOOM_CLIENT_SECRET']),
        )
        self._token = response['access_token']
        return self._token

    def _request(self, method, url, **kwargs):
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Zoom API {method.upper()} {url} failed: {e}")
            raise UpstreamFailure('Zoom API request failed', details={'zoom': str(e)})
        return response.json() if response.content else {}

    def _api(self, method, path, **kwargs):
        headers = {'Authorization': f'Bearer {self._access_token()}'}
        return self._request(method, f'{ZOOM_API}{path}', headers=headers, **kwargs)

    def list_events(self, day):
        # Zoom meetings are not discoverable by calendar keyword search
        return []

    def find_event(self, day):
        return None

    def create_meeting(self, day, start, end, title, description, attendees=()):
        """
        Schedule a Zoom meeting

        Returns:
            dict: link, zoom_meeting_id, zoom_start_url
        """
        duration = int((end - start).total_seconds() // 60)
        data = self._api('post', f"/users/{current_app.config.get('ZOOM_USER_ID', 'me')}/meetings", json={
            'topic': title,
            'agenda': description,
            'type': 2,
            'start_time': start.strftime('%Y-%m-%dT%H:%M:%SZ'),
            'duration': duration,
            'timezone': 'UTC',
            'settings': {
                'join_before_host': False,
                'waiting_room': True,
                'approval_type': 0,
                'registration_type': 1,
            },
        })
        logger.info(f"Created Zoom meeting {data.get('id')} for {day}")
        return {
            'link': data['join_url'],
            'zoom_meeting_id': str(data['id']),
            'zoom_start_url': data.get('start_url'),
        }

    def add_attendees(self, meeting, users):
        if not meeting.zoom_meeting_id:
            return 0
        added = 0
        for user in users:
            self._api('post', f'/meetings/{meeting.zoom_meeting_id}/registrants', json={
                'email': user.email,
                'first_name': user.first_name,
                'last_name': user.last_name,
            })
            added += 1
        return added

