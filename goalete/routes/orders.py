# goalete/routes/orders.py
"""Public registration and checkout API used by the signup form."""
import logging

from flask import Blueprint, jsonify, request

from goalete import db
from goalete.errors import Conflict, NotFound, UpstreamFailure, ValidationError
from goalete.models import Subscription, User
from goalete.schemas import CheckSubscriptionRequest, OrderConfirmation, OrderRequest, UserRequest
from goalete.services import meetings as meeting_service
from goalete.services.payment_service import PaymentService
from goalete.services.subscriptions import can_user_subscribe, subscription_window
from goalete.signals import subscription_changed, user_changed
from goalete.utils.dates import local_today
from goalete.utils.email import invite_to_meeting, send_admin_notification, send_welcome_email
from goalete.utils.validation import parse_body

bp = Blueprint('orders', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)


@bp.route('/users', methods=['POST'])
def create_user():
    """Create a user, or update the profile of an existing email"""
    body = parse_body(UserRequest)
    user = User.query.filter_by(email=body.email).first()
    created = user is None
    if created:
        user = User(email=body.email)
        db.session.add(user)

    user.first_name = body.first_name
    user.last_name = body.last_name
    user.phone = body.phone
    user.source = body.source
    user.reference_name = body.reference_name
    db.session.commit()
    user_changed.send(user, action='created' if created else 'updated')

    return jsonify({'success': True, 'userId': user.id, 'created': created}), 201 if created else 200


@bp.route('/check-subscription', methods=['POST'])
def check_subscription():
    body = parse_body(CheckSubscriptionRequest)
    if body.start_date and body.end_date and body.start_date >= body.end_date:
        raise ValidationError('Start date must be before end date.',
                              details={'endDate': ['Must be after startDate']})

    logger.info(f"Checking subscription for {body.email} ({body.plan_type or 'any plan'})")
    result = can_user_subscribe(body.email, body.plan_type, body.start_date, body.end_date)
    return jsonify({'success': True, **result})


@bp.route('/orders', methods=['POST'])
def create_order():
    """
    Start a checkout: create the gateway order and the pending subscription(s).

    The family plan creates one subscription per seat at half price each,
    sharing the same order id.
    """
    body = parse_body(OrderRequest)
    plan = PaymentService.get_plan(body.plan_type)

    user = db.session.get(User, body.user_id)
    if user is None:
        raise NotFound('User not found')
    users = [user]
    if body.second_user_id is not None:
        second = db.session.get(User, body.second_user_id)
        if second is None:
            raise NotFound('Second user not found')
        users.append(second)

    start_day = body.start_date or local_today()
    start, end = subscription_window(plan, start_day)

    for member in users:
        eligibility = can_user_subscribe(member.email, plan['plan_type'], start.date(), end.date())
        if not eligibility['canSubscribe']:
            raise Conflict(eligibility['reason'], details={'email': member.email, **eligibility})

    order = PaymentService.create_order(plan['amount'], {
        'plan_type': plan['plan_type'],
        'user_id': user.id,
        'second_user_id': body.second_user_id,
        'start_date': start.isoformat(),
        'end_date': end.isoformat(),
    })

    prices = PaymentService.split_price(plan['amount'], len(users))
    subscriptions = []
    for member, price in zip(users, prices):
        sub = Subscription(
            user_id=member.id,
            plan_type=plan['plan_type'],
            start_date=start,
            end_date=end,
            status='inactive',
            payment_status='pending',
            order_id=order['order_id'],
            duration=plan['duration'],
            price=price,
        )
        db.session.add(sub)
        subscriptions.append(sub)
    db.session.commit()
    for sub in subscriptions:
        subscription_changed.send(sub, action='created')

    return jsonify({
        'orderId': order['order_id'],
        'clientSecret': order['client_secret'],
        'amount': PaymentService.to_paise(plan['amount']),
        'currency': 'INR',
        'subscriptionIds': [s.id for s in subscriptions],
    }), 201


def _notify_confirmed(sub):
    """Post-payment emails and today's meeting; failures are logged only."""
    user = sub.user
    if not send_welcome_email(user, sub):
        logger.warning(f"Welcome email to {user.email} was not sent")
    if not send_admin_notification(user, sub):
        logger.warning(f"Admin notification for order {sub.order_id} was not sent")

    today = local_today()
    if sub.start_date.date() != today:
        return
    try:
        meeting = meeting_service.get_or_create_daily_meeting(today)
    except UpstreamFailure as e:
        logger.error(f"Could not prepare today's meeting for {user.email}: {e.message}")
        return
    if not invite_to_meeting(user, meeting):
        logger.warning(f"Meeting invite to {user.email} was not sent")


@bp.route('/orders', methods=['PATCH'])
def confirm_order():
    """Mark the subscriptions of a paid order as active"""
    body = parse_body(OrderConfirmation)
    subscriptions = Subscription.query.filter_by(order_id=body.order_id).all()
    if not subscriptions:
        raise NotFound('Subscription(s) not found')

    for sub in subscriptions:
        sub.status = body.status
        sub.payment_status = body.payment_status
        sub.payment_ref = body.payment_id
    db.session.commit()
    for sub in subscriptions:
        subscription_changed.send(sub, action='updated')

    if body.status == 'active':
        for sub in subscriptions:
            _notify_confirmed(sub)

    return jsonify({'success': True, 'subscriptions': [s.to_dict() for s in subscriptions]})


@bp.route('/orders', methods=['DELETE'])
def delete_order():
    """Remove the pending subscriptions of a failed or abandoned order"""
    order_id = request.args.get('orderId')
    if not order_id:
        raise ValidationError(details={'orderId': ['This parameter is required']})

    subscriptions = Subscription.query.filter_by(order_id=order_id).all()
    if not subscriptions:
        raise NotFound('Subscription(s) not found')

    deleted_ids = [s.id for s in subscriptions]
    for sub in subscriptions:
        db.session.delete(sub)
    db.session.commit()
    for sub_id in deleted_ids:
        subscription_changed.send(Subscription, action='deleted', object_id=sub_id)

    return jsonify({'success': True, 'deleted': len(deleted_ids)})
