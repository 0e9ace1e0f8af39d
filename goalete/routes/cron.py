# goalete/routes/cron.py
"""Daily invite job, callable by the external scheduler or an admin."""
import logging

from flask import Blueprint, current_app, jsonify

from goalete.models import Meeting
from goalete.services.meetings import get_or_create_daily_meeting
from goalete.services.subscriptions import active_subscriptions_on
from goalete.utils.dates import local_today
from goalete.utils.decorators import admin_required, cron_secret_required
from goalete.utils.email import invite_to_meeting

bp = Blueprint('cron', __name__)
logger = logging.getLogger(__name__)


def run_daily_invites(day=None):
    """
    Make sure today's meeting exists and invite every active subscriber.

    Returns:
        dict: meeting, per-recipient results, sent/failed counts
    """
    day = day or local_today()
    meeting = get_or_create_daily_meeting(day)

    results = []
    seen = set()
    for sub in active_subscriptions_on(day):
        user = sub.user
        if user.id in seen:
            continue
        seen.add(user.id)
        sent = invite_to_meeting(user, meeting)
        results.append({'userId': user.id, 'email': user.email, 'status': 'sent' if sent else 'failed'})

    sent_count = sum(1 for r in results if r['status'] == 'sent')
    logger.info(f"Daily invites for {day}: {sent_count} sent, {len(results) - sent_count} failed")
    return {
        'success': True,
        'date': day.isoformat(),
        'meeting': meeting.to_dict(),
        'results': results,
        'sent': sent_count,
        'failed': len(results) - sent_count,
    }


def _skipped():
    logger.info("Daily invites skipped: cron jobs are disabled")
    return jsonify({'success': True, 'skipped': True, 'message': 'Cron jobs are disabled'})


@bp.route('/api/cron/daily-invites')
@cron_secret_required
def daily_invites():
    if not current_app.config.get('ENABLE_CRON_JOBS'):
        return _skipped()
    return jsonify(run_daily_invites())


@bp.route('/admin/trigger-cron', methods=['POST'])
@admin_required
def trigger_cron():
    if not current_app.config.get('ENABLE_CRON_JOBS'):
        return _skipped()
    return jsonify(run_daily_invites())


@bp.route('/admin/cron-status')
@admin_required
def cron_status():
    today = local_today()
    meeting = Meeting.query.filter_by(meeting_date=today).first()
    return jsonify({
        'enabled': bool(current_app.config.get('ENABLE_CRON_JOBS')),
        'date': today.isoformat(),
        'meeting': meeting.to_dict() if meeting else None,
        'activeSubscriptions': len(active_subscriptions_on(today)),
    })
