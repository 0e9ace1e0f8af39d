# tests/test_payment_service.py
import pytest
import stripe
from unittest.mock import MagicMock, patch

from goalete.errors import UpstreamFailure, ValidationError
from goalete.services.payment_service import PaymentService


class TestPaymentService:
    """Plan pricing and rupee/paise conversion"""

    def test_plan_prices(self):
        assert PaymentService.get_plan('daily')['amount'] == 299
        assert PaymentService.get_plan('monthly')['amount'] == 2999
        assert PaymentService.get_plan('monthlyFamily')['amount'] == 4499

    def test_family_plan_by_stored_type(self):
        plan = PaymentService.get_plan('family-monthly')
        assert plan['seats'] == 2
        assert plan['duration'] == 30

    def test_unknown_plan(self):
        with pytest.raises(ValidationError) as exc:
            PaymentService.get_plan('weekly')
        assert 'planType' in exc.value.details

    def test_paise_conversion(self):
        assert PaymentService.to_paise(299) == 29900
        assert PaymentService.to_paise(4499) == 449900
        assert PaymentService.from_paise(449900) == 4499

    def test_split_price(self):
        assert PaymentService.split_price(4499, 2) == [2250, 2249]
        assert PaymentService.split_price(4498, 2) == [2249, 2249]
        assert PaymentService.split_price(2999, 1) == [2999]

    def test_unlimited_not_purchasable(self):
        assert 'unlimited' not in PaymentService.PURCHASABLE


class TestCreateOrder:

    @patch('goalete.services.payment_service.stripe.PaymentIntent.create')
    def test_order_in_paise(self, mock_create, app_context):
        mock_create.return_value = MagicMock(id='pi_1', client_secret='pi_1_secret')

        order = PaymentService.create_order(299, {'plan_type': 'daily', 'second_user_id': None})

        assert order == {'order_id': 'pi_1', 'client_secret': 'pi_1_secret'}
        kwargs = mock_create.call_args[1]
        assert kwargs['amount'] == 29900
        assert kwargs['currency'] == 'inr'
        assert kwargs['metadata'] == {'plan_type': 'daily'}
        assert kwargs['api_key'] == 'sk_test_dummy'

    def test_missing_key(self, app_context):
        app_context.config['STRIPE_SECRET_KEY'] = None
        with pytest.raises(UpstreamFailure):
            PaymentService.create_order(299, {})

    @patch('goalete.services.payment_service.stripe.PaymentIntent.create',
           side_effect=stripe.StripeError('Card network unavailable'))
    def test_gateway_error(self, mock_create, app_context):
        with pytest.raises(UpstreamFailure) as exc:
            PaymentService.create_order(299, {})
        assert exc.value.status_code == 502
