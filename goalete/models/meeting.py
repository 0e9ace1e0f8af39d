from goalete import db
from datetime import datetime

PLATFORMS = ('google-meet', 'zoom')

# Provenance tags
CREATED_BY_ADMIN = 'admin'
CREATED_BY_CRON = 'cron'
CREATED_BY_CALENDAR_SYNC = 'calendar-sync'

DEFAULT_TITLE = 'GOALETE Club Session'
DEFAULT_DESCRIPTION = 'Join us for a GOALETE Club session to learn how to achieve any goal in life.'

meeting_users = db.Table(
    'meeting_users',
    db.Column('meeting_id', db.Integer, db.ForeignKey('meetings.id', ondelete='CASCADE'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
)


class Meeting(db.Model):
    __tablename__ = 'meetings'

    id = db.Column(db.Integer, primary_key=True)
    meeting_date = db.Column(db.Date, unique=True, nullable=False)
    platform = db.Column(db.String(20), nullable=False, default='google-meet')
    meeting_link = db.Column(db.String(500), nullable=False)
    start_time = db.Column(db.DateTime, nullable=False)  # UTC
    end_time = db.Column(db.DateTime, nullable=False)  # UTC
    meeting_title = db.Column(db.String(200), default=DEFAULT_TITLE)
    meeting_desc = db.Column(db.Text, default=DEFAULT_DESCRIPTION)
    created_by = db.Column(db.String(30), default=CREATED_BY_ADMIN)
    is_default = db.Column(db.Boolean, default=False)
    google_event_id = db.Column(db.String(200), index=True)
    zoom_meeting_id = db.Column(db.String(50))
    zoom_start_url = db.Column(db.String(1000))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = db.relationship('User', secondary=meeting_users, lazy='subquery',
                            backref=db.backref('meetings', lazy='dynamic'))

    def to_dict(self, include_users=False):
        data = {
            'id': self.id,
            'meetingDate': self.meeting_date.isoformat(),
            'platform': self.platform,
            'meetingLink': self.meeting_link,
            'startTime': self.start_time.isoformat() + 'Z',
            'endTime': self.end_time.isoformat() + 'Z',
            'meetingTitle': self.meeting_title,
            'meetingDesc': self.meeting_desc,
            'createdBy': self.created_by,
            'isDefault': self.is_default,
            'googleEventId': self.google_event_id,
            'zoomMeetingId': self.zoom_meeting_id,
            'userCount': len(self.users),
        }
        if include_users:
            data['users'] = [
                {'id': u.id, 'name': u.full_name, 'email': u.email, 'phone': u.phone}
                for u in self.users
            ]
        return data

    def __repr__(self):
        return f'<Meeting {self.meeting_date} - {self.platform}>'
