# goalete/routes/webhooks.py
from flask import Blueprint, current_app, request, jsonify
import stripe
import logging

bp = Blueprint('webhooks', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)


@bp.route('/payment-webhook', methods=['POST'])
def payment_webhook():
    """Acknowledge gateway callbacks; payment state is confirmed through PATCH /api/orders"""
    payload = request.get_data()
    sig_header = request.headers.get('Stripe-Signature')
    webhook_secret = current_app.config.get('STRIPE_WEBHOOK_SECRET')

    if webhook_secret:
        try:
            event = stripe.Webhook.construct_event(payload, sig_header, webhook_secret)
        except ValueError as e:
            logger.error(f"Invalid payload: {e}")
            return jsonify({'error': 'Invalid payload'}), 400
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid signature: {e}")
            return jsonify({'error': 'Invalid signature'}), 400
        event_type = event['type']
    else:
        event = request.get_json(silent=True) or {}
        event_type = event.get('type') or event.get('event')

    logger.info(f"Payment webhook received: {event_type}")
    return jsonify({'received': True}), 200
