# goalete/services/payment_service.py
"""
Plan pricing and payment-gateway orders.

Prices are whole rupees; the gateway works in paise.
"""
import logging
from typing import Dict, List, Optional

import stripe
from flask import current_app

from goalete.errors import UpstreamFailure, ValidationError

logger = logging.getLogger(__name__)

FAMILY_PLAN_TYPE = 'family-monthly'


class PaymentService:
    """Pricing table and order creation through Stripe PaymentIntents"""

    PLANS = {
        'daily': {'plan_type': 'daily', 'amount': 299, 'duration': 1, 'seats': 1},
        'monthly': {'plan_type': 'monthly', 'amount': 2999, 'duration': 30, 'seats': 1},
        'monthlyFamily': {'plan_type': FAMILY_PLAN_TYPE, 'amount': 4499, 'duration': 30, 'seats': 2},
        'unlimited': {'plan_type': 'unlimited', 'amount': 0, 'duration': 36500, 'seats': 1},
    }

    # Plans a customer can buy; unlimited is granted by an administrator only
    PURCHASABLE = ('daily', 'monthly', 'monthlyFamily')

    @staticmethod
    def to_paise(amount) -> int:
        return int(round(amount * 100))

    @staticmethod
    def from_paise(amount) -> int:
        return int(round(amount / 100))

    @staticmethod
    def get_plan(plan_type: str) -> Dict:
        """
        Look up a plan by key or stored plan type

        Args:
            plan_type (str): 'daily', 'monthly', 'monthlyFamily' or 'family-monthly'

        Returns:
            dict: plan_type, amount (INR), duration (days), seats
        """
        if plan_type in PaymentService.PLANS:
            return PaymentService.PLANS[plan_type]
        for plan in PaymentService.PLANS.values():
            if plan['plan_type'] == plan_type:
                return plan
        raise ValidationError(details={'planType': [f'Unknown plan type: {plan_type}']})

    @staticmethod
    def split_price(amount: int, seats: int) -> List[int]:
        """Per-seat prices of a shared plan in whole rupees, summing to ``amount``"""
        base, rest = divmod(amount, seats)
        return [base + 1 if seat < rest else base for seat in range(seats)]

    @staticmethod
    def create_order(amount: int, metadata: dict, currency: Optional[str] = None) -> Dict:
        """
        Create a gateway order for ``amount`` rupees

        Args:
            amount (int): order total in INR
            metadata (dict): values echoed back by the gateway webhook

        Returns:
            dict: order_id and client_secret for the checkout widget
        """
        api_key = current_app.config.get('STRIPE_SECRET_KEY')
        if not api_key:
            raise UpstreamFailure('Payment gateway is not configured')

        try:
            intent = stripe.PaymentIntent.create(
                api_key=api_key,
                amount=PaymentService.to_paise(amount),
                currency=currency or current_app.config.get('PAYMENT_CURRENCY', 'inr'),
                metadata={k: str(v) for k, v in metadata.items() if v is not None},
                automatic_payment_methods={'enabled': True},
            )
        except stripe.StripeError as e:
            logger.error(f"Order creation failed: {e}")
            raise UpstreamFailure('Payment order creation failed', details={'gateway': str(e)})

        logger.info(f"Order {intent.id} created for INR {amount}")
        return {
            'order_id': intent.id,
            'client_secret': intent.client_secret,
        }
