# tests/conftest.py
"""
Shared fixtures for the GOALETE admin tests
"""
import os
import pytest
from datetime import datetime, timedelta

# Force environment variables BEFORE importing the app
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing'
os.environ['ADMIN_PASSCODE'] = 'test-passcode'
os.environ['ADMIN_EMAIL'] = 'admin@goalete.test'
os.environ['SMTP_PASSWORD'] = ''
os.environ['STRIPE_SECRET_KEY'] = 'sk_test_dummy'
os.environ['STRIPE_WEBHOOK_SECRET'] = ''
os.environ['ENABLE_CRON_JOBS'] = 'true'
os.environ['CRON_SECRET'] = ''

from goalete import create_app, db as _db
from goalete.models import Meeting, Subscription, User

PASSCODE = 'test-passcode'


@pytest.fixture(scope='function')
def app():
    """Flask application for tests"""
    app = create_app()
    app.config.update({
        'TESTING': True,
        'SERVER_NAME': 'localhost',
        'SECRET_KEY': 'test-secret-key-for-testing',
        'SMTP_PASSWORD': '',
        'STRIPE_WEBHOOK_SECRET': None,
        'CRON_SECRET': None,
        'ENABLE_CRON_JOBS': True,
        'DEFAULT_MEETING_PLATFORM': 'google-meet',
        'DEFAULT_MEETING_TIME': '21:00',
        'DEFAULT_MEETING_DURATION': 60,
    })
    return app


@pytest.fixture(scope='function')
def db(app):
    """Create and drop the schema for every test"""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app, db):
    """HTTP test client"""
    with app.test_client() as client:
        with app.app_context():
            yield client


@pytest.fixture
def app_context(app, db):
    """Application context"""
    with app.app_context():
        yield app


@pytest.fixture
def auth_headers():
    return {'Authorization': f'Bearer {PASSCODE}'}


def make_user(db, email='asha@example.com', first_name='Asha', last_name='Rao', **kwargs):
    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone=kwargs.pop('phone', '+919800000001'),
        source=kwargs.pop('source', 'instagram'),
        **kwargs
    )
    db.session.add(user)
    db.session.commit()
    return user


def make_subscription(db, user, start, days=1, plan_type='daily', price=299,
                      status='active', payment_status='completed', **kwargs):
    """``start`` may be a date or datetime; the end is ``days`` later."""
    if not isinstance(start, datetime):
        start = datetime.combine(start, datetime.min.time())
    sub = Subscription(
        user_id=user.id,
        plan_type=plan_type,
        start_date=start,
        end_date=start + timedelta(days=days),
        status=status,
        payment_status=payment_status,
        duration=days,
        price=price,
        order_id=kwargs.pop('order_id', f'order_{user.id}_{start:%Y%m%d}'),
        **kwargs
    )
    db.session.add(sub)
    db.session.commit()
    return sub


def make_meeting(db, day, created_by='admin', **kwargs):
    start = datetime.combine(day, datetime.min.time()) + timedelta(hours=15, minutes=30)
    meeting = Meeting(
        meeting_date=day,
        platform=kwargs.pop('platform', 'google-meet'),
        meeting_link=kwargs.pop('meeting_link', f'https://meet.google.com/abc-{day:%m%d}'),
        start_time=kwargs.pop('start_time', start),
        end_time=kwargs.pop('end_time', start + timedelta(hours=1)),
        created_by=created_by,
        **kwargs
    )
    db.session.add(meeting)
    db.session.commit()
    return meeting


@pytest.fixture
def user(db):
    """Test subscriber"""
    return make_user(db)


@pytest.fixture
def second_user(db):
    """Second subscriber (family plan partner)"""
    return make_user(db, email='ravi@example.com', first_name='Ravi', last_name='Kumar',
                     phone='+919800000002')


@pytest.fixture
def malformed_google_key(app):
    """Calendar credentials whose private key cannot be parsed"""
    app.config.update(GOOGLE_CLIENT_EMAIL='club-calendar@goalete.iam.gserviceaccount.com',
                      GOOGLE_PRIVATE_KEY='not-a-pem-key')
    return app


class FakeCalendar:
    """In-memory stand-in for the calendar provider"""

    platform = 'google-meet'

    def __init__(self, events=None, fail_days=(), fail_all=False):
        self.events = events or {}
        self.fail_days = set(fail_days)
        self.fail_all = fail_all
        self.created = []
        self.attendees = []

    def _check(self, day):
        from goalete.errors import UpstreamFailure
        if self.fail_all or day in self.fail_days:
            raise UpstreamFailure('Calendar unavailable')

    def list_events(self, day):
        self._check(day)
        return list(self.events.get(day, []))

    def find_event(self, day):
        events = self.list_events(day)
        return events[0] if events else None

    def create_meeting(self, day, start, end, title, description, attendees=()):
        self._check(day)
        self.created.append(day)
        return {'link': f'https://meet.google.com/new-{day:%m%d}', 'google_event_id': f'evt-new-{day:%m%d}'}

    def add_attendees(self, meeting, users):
        self.attendees.extend(u.email for u in users)
        return len(users)


def calendar_event(event_id, day, hour=15, minutes=30, link=None, title='GOALETE Club Session',
                   description='goalete daily session'):
    start = datetime.combine(day, datetime.min.time()) + timedelta(hours=hour, minutes=minutes)
    return {
        'id': event_id,
        'link': link or f'https://meet.google.com/{event_id}',
        'title': title,
        'description': description,
        'start': start,
        'end': start + timedelta(hours=1),
    }
