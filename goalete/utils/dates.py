"""Date helpers for the club's local timezone."""
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from flask import current_app


def club_timezone():
    return ZoneInfo(current_app.config.get('MEETING_TIMEZONE', 'Asia/Kolkata'))


def local_now():
    return datetime.now(club_timezone())


def local_today():
    return local_now().date()


def parse_hhmm(value):
    """'21:00' -> time(21, 0). Raises ValueError on anything else."""
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))


def local_to_utc(day, time_of_day):
    """Combine a local day and time-of-day into a naive UTC datetime."""
    local = datetime.combine(day, time_of_day, tzinfo=club_timezone())
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def utc_to_local(value):
    return value.replace(tzinfo=timezone.utc).astimezone(club_timezone())


def parse_provider_time(value):
    """Parse a provider timestamp ({'dateTime': ...} or {'date': ...}) to naive UTC."""
    if value.get('dateTime'):
        parsed = datetime.fromisoformat(value['dateTime'].replace('Z', '+00:00'))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=club_timezone())
        return parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return local_to_utc(date.fromisoformat(value['date']), time.min)


def parse_date(value):
    """Accept 'YYYY-MM-DD' or a full ISO timestamp and return the calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value.replace('Z', '+00:00')).date()


def day_bounds(start, end=None):
    """Inclusive datetime bounds [start 00:00, end 23:59:59.999999]."""
    end = end or start
    return datetime.combine(start, time.min), datetime.combine(end, time.max)


def date_range(start, end):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def format_ddmmyy(value):
    return value.strftime('%d/%m/%y')
