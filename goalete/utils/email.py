import logging
import smtplib
import uuid
from datetime import datetime
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email import encoders
from typing import Optional

from flask import current_app
from icalendar import Calendar, Event, vCalAddress, vText

from goalete.utils.dates import utc_to_local

logger = logging.getLogger(__name__)

PLATFORM_NAMES = {'google-meet': 'Google Meet', 'zoom': 'Zoom'}


def send_email(to_email: str, subject: str, html_body: str, text_body: Optional[str] = None,
               attachments=None):
    """Send an email over SMTP. Returns True/False and never raises."""
    config = current_app.config
    smtp_server = config.get('SMTP_SERVER')
    smtp_port = int(config.get('SMTP_PORT') or 465)
    smtp_username = config.get('SMTP_USERNAME')
    smtp_password = config.get('SMTP_PASSWORD')
    from_email = config.get('MAIL_FROM')

    if not smtp_password:
        logger.warning(f"SMTP_PASSWORD not configured. Email to {to_email} not sent.")
        return False

    try:
        msg = MIMEMultipart('mixed')
        msg['Subject'] = subject
        msg['From'] = from_email
        msg['To'] = to_email

        body = MIMEMultipart('alternative')
        if text_body:
            body.attach(MIMEText(text_body, 'plain'))
        body.attach(MIMEText(html_body, 'html'))
        msg.attach(body)

        for part in attachments or ():
            msg.attach(part)

        # Port 465 = implicit SSL, 587 = STARTTLS
        if smtp_port == 465:
            with smtplib.SMTP_SSL(smtp_server, smtp_port) as server:
                server.login(smtp_username, smtp_password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(smtp_server, smtp_port) as server:
                server.starttls()
                server.login(smtp_username, smtp_password)
                server.send_message(msg)

        logger.info(f"Email sent to {to_email}")
        return True

    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Error sending email to {to_email}: {e}")
        return False


def build_invite(title, description, link, start, end, organizer=None, attendee=None):
    """iCalendar REQUEST for a meeting; ``start``/``end`` are naive UTC."""
    cal = Calendar()
    cal.add('prodid', '-//GOALETE Club//Meetings//EN')
    cal.add('version', '2.0')
    cal.add('method', 'REQUEST')

    event = Event()
    event.add('uid', f'{uuid.uuid4()}@goalete.com')
    event.add('summary', title)
    event.add('description', f'{description}\n\nJoin: {link}')
    event.add('location', link)
    event.add('dtstart', utc_to_local(start))
    event.add('dtend', utc_to_local(end))
    event.add('dtstamp', datetime.utcnow())
    if organizer:
        event['organizer'] = vCalAddress(f'MAILTO:{organizer}')
    if attendee:
        guest = vCalAddress(f'MAILTO:{attendee}')
        guest.params['role'] = vText('REQ-PARTICIPANT')
        guest.params['rsvp'] = vText('TRUE')
        event.add('attendee', guest, encode=0)
    cal.add_component(event)
    return cal.to_ical()


def _ics_attachment(ics):
    part = MIMEBase('text', 'calendar', method='REQUEST', name='invite.ics')
    part.set_payload(ics)
    encoders.encode_base64(part)
    part.add_header('Content-Disposition', 'attachment; filename="invite.ics"')
    return part


def send_meeting_invite(to_email, name, title, description, link, start, end,
                        platform='google-meet', host_link=None):
    """Email a meeting invite with a calendar attachment."""
    local_start = utc_to_local(start)
    when = local_start.strftime('%A, %d %B %Y at %I:%M %p')
    platform_name = PLATFORM_NAMES.get(platform, platform)

    subject = f"Your invite: {title} on {local_start.strftime('%d %b %Y')}"

    host_block = ''
    if host_link:
        host_block = f'<p><strong>Host link:</strong> <a href="{host_link}">{host_link}</a></p>'

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>{title}</h2>
            <p>Hi <strong>{name}</strong>,</p>
            <p>{description}</p>
            <p><strong>When:</strong> {when} (IST)</p>
            <p><strong>Where:</strong> {platform_name}</p>
            <p style="text-align: center;">
                <a href="{link}" style="display: inline-block; padding: 12px 28px; background: #1a73e8; color: white; text-decoration: none; border-radius: 24px;">Join the session</a>
            </p>
            {host_block}
            <p style="color: #666; font-size: 12px;">If the button does not work, open this link: {link}</p>
        </div>
    </body>
    </html>
    """

    text_body = f"""
    {title}

    Hi {name},

    {description}

    When: {when} (IST)
    Where: {platform_name}
    Join: {link}
    """

    ics = build_invite(title, description, link, start, end,
                       organizer=current_app.config.get('ADMIN_EMAIL'), attendee=to_email)
    return send_email(to_email, subject, html_body, text_body, attachments=[_ics_attachment(ics)])


def invite_to_meeting(user, meeting):
    return send_meeting_invite(
        user.email,
        user.full_name,
        meeting.meeting_title,
        meeting.meeting_desc,
        meeting.meeting_link,
        meeting.start_time,
        meeting.end_time,
        platform=meeting.platform,
        host_link=None,
    )


def send_welcome_email(user, subscription):
    """Payment confirmation sent to the subscriber"""
    subject = "Welcome to GOALETE Club!"
    start = subscription.start_date.strftime('%d %b %Y')
    end = subscription.end_date.strftime('%d %b %Y')

    html_body = f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
        <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
            <h2>Welcome to GOALETE Club, {user.first_name}!</h2>
            <p>Your <strong>{subscription.plan_type}</strong> plan is confirmed.</p>
            <p><strong>Valid:</strong> {start} to {end}</p>
            <p><strong>Amount paid:</strong> INR {subscription.price}</p>
            <p>You will receive the session link by email on each session day.</p>
        </div>
    </body>
    </html>
    """

    text_body = f"""
    Welcome to GOALETE Club, {user.first_name}!

    Your {subscription.plan_type} plan is confirmed.
    Valid: {start} to {end}
    Amount paid: INR {subscription.price}
    """

    return send_email(user.email, subject, html_body, text_body)


def send_admin_notification(user, subscription):
    """Tell the admin (and SPECIAL_EMAILS) about a new paid subscription"""
    config = current_app.config
    recipients = [e for e in [config.get('ADMIN_EMAIL')] + list(config.get('SPECIAL_EMAILS') or []) if e]
    if not recipients:
        return False

    subject = f"New subscription: {user.full_name} ({subscription.plan_type})"
    html_body = f"""
    <p><strong>{user.full_name}</strong> ({user.email}, {user.phone}) purchased a
    <strong>{subscription.plan_type}</strong> plan.</p>
    <p>Start: {subscription.start_date:%d %b %Y} | End: {subscription.end_date:%d %b %Y}
    | Price: INR {subscription.price} | Order: {subscription.order_id}</p>
    <p>Source: {user.source}{f" (ref. {user.reference_name})" if user.reference_name else ''}</p>
    """

    sent = [send_email(recipient, subject, html_body) for recipient in dict.fromkeys(recipients)]
    return all(sent)
