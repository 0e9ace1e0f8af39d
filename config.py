import os
from dotenv import load_dotenv

load_dotenv()

# Project base directory
basedir = os.path.abspath(os.path.dirname(__file__))


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ['true', '1', 'on', 'yes']


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-change-in-production'

    # Database - absolute path for the sqlite fallback
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        'sqlite:///' + os.path.join(basedir, 'instance', 'goalete.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Admin access
    ADMIN_PASSCODE = os.environ.get('ADMIN_PASSCODE')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    SPECIAL_EMAILS = [e.strip() for e in os.environ.get('SPECIAL_EMAILS', '').split(',') if e.strip()]

    # Stripe
    STRIPE_PUBLIC_KEY = os.environ.get('STRIPE_PUBLIC_KEY')
    STRIPE_SECRET_KEY = os.environ.get('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.environ.get('STRIPE_WEBHOOK_SECRET')
    PAYMENT_CURRENCY = 'inr'

    # Google Calendar (service account with domain-wide delegation)
    GOOGLE_CLIENT_EMAIL = os.environ.get('GOOGLE_CLIENT_EMAIL')
    GOOGLE_PRIVATE_KEY = (os.environ.get('GOOGLE_PRIVATE_KEY') or '').replace('\\n', '\n')
    GOOGLE_CALENDAR_ID = os.environ.get('GOOGLE_CALENDAR_ID', 'primary')

    # Zoom (server-to-server OAuth)
    ZOOM_ACCOUNT_ID = os.environ.get('ZOOM_ACCOUNT_ID')
    ZOOM_CLIENT_ID = os.environ.get('ZOOM_CLIENT_ID')
    ZOOM_CLIENT_SECRET = os.environ.get('ZOOM_CLIENT_SECRET')
    ZOOM_USER_ID = os.environ.get('ZOOM_USER_ID', 'me')

    # Meetings
    DEFAULT_MEETING_PLATFORM = os.environ.get('DEFAULT_MEETING_PLATFORM', 'google-meet')
    DEFAULT_MEETING_TIME = os.environ.get('DEFAULT_MEETING_TIME', '21:00')
    DEFAULT_MEETING_DURATION = int(os.environ.get('DEFAULT_MEETING_DURATION', '60'))
    MEETING_TIMEZONE = os.environ.get('MEETING_TIMEZONE', 'Asia/Kolkata')
    MEETING_FALLBACK_URL = os.environ.get(
        'MEETING_FALLBACK_URL', 'https://meet.google.com/lookup/goalete-{date}'
    )

    # Email
    SMTP_SERVER = os.environ.get('SMTP_SERVER', 'smtp.gmail.com')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', '465'))
    SMTP_USERNAME = os.environ.get('SMTP_USERNAME') or os.environ.get('EMAIL_USER')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD') or os.environ.get('EMAIL_PASSWORD')
    MAIL_FROM = os.environ.get('MAIL_FROM', 'GOALETE Club <no-reply@goalete.com>')

    # Cron
    ENABLE_CRON_JOBS = _env_flag('ENABLE_CRON_JOBS', True)
    CRON_SECRET = os.environ.get('CRON_SECRET')
