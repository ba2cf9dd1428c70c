import hashlib
import hmac
import json
from decimal import Decimal
from unittest import mock

import pytest
import requests
from django.db import DatabaseError
from django.urls import reverse

from apps.contracts import services as contract_services
from apps.contracts.models import Contract
from apps.payments import services
from apps.payments.gateway import verify_signature
from apps.payments.models import PaymentOrder
from apps.users.models import User
from core.exceptions import (
    AuthorizationError, GatewayTimeoutError, GatewayUnavailableError,
    InvalidTransitionError, ValidationError,
)
from tests.conftest import EmployerFactory

pytestmark = pytest.mark.django_db

WEBHOOK_SECRET = 'whsec_test'


@pytest.fixture
def gateway_settings(settings):
    settings.PAYMENT_GATEWAY_BASE_URL = 'https://gateway.test/api'
    settings.PAYMENT_GATEWAY_SECRET_KEY = 'sk_test_123'
    settings.PAYMENT_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.GATEWAY_TIMEOUT_SECONDS = 5
    return settings


@pytest.fixture
def gateway():
    with mock.patch('apps.payments.gateway.requests.request') as request:
        yield request


def gateway_response(payload, status_code=200):
    response = mock.Mock(status_code=status_code, text=json.dumps(payload))
    response.json.return_value = payload
    return response


def verified(status, payment_id='pay_123'):
    return gateway_response({'status': 'success', 'data': {'status': status, 'payment_id': payment_id}})


@pytest.fixture
def order(contract, employer):
    return PaymentOrder.objects.create(
        contract=contract, payer=employer, amount=Decimal('150.00'), tx_ref='contract-test-0001',
    )


class TestCreateOrder:

    def test_creates_pending_order_at_gateway(self, gateway_settings, gateway, contract, employer):
        gateway.return_value = gateway_response({
            'status': 'success',
            'data': {'order_id': 'ord_1', 'checkout_url': 'https://gateway.test/pay/ord_1'},
        })
        result = services.create_order(contract.pk, employer, Decimal('150'), 'milestone', 'First half')

        assert result.success
        order = result.data['order']
        assert order.status == 'pending'
        assert order.external_order_id == 'ord_1'
        assert result.data['checkout']['checkout_url'] == 'https://gateway.test/pay/ord_1'
        method, url = gateway.call_args.args
        assert (method, url) == ('POST', 'https://gateway.test/api/orders')
        assert gateway.call_args.kwargs['timeout'] == 5
        assert gateway.call_args.kwargs['json']['reference'] == order.tx_ref
        assert gateway.call_args.kwargs['headers']['Authorization'] == 'Bearer sk_test_123'

    def test_only_contract_employer_may_pay(self, gateway_settings, gateway, contract):
        result = services.create_order(contract.pk, EmployerFactory(), Decimal('150'))
        assert isinstance(result.error, AuthorizationError)
        assert not PaymentOrder.objects.exists()
        gateway.assert_not_called()

    def test_unconfigured_gateway_is_unavailable(self, settings, gateway, contract, employer):
        settings.PAYMENT_GATEWAY_BASE_URL = ''
        result = services.create_order(contract.pk, employer, Decimal('150'))
        assert isinstance(result.error, GatewayUnavailableError)
        assert result.error.status_code == 503
        assert not PaymentOrder.objects.exists()

    def test_timeout_leaves_order_pending(self, gateway_settings, gateway, contract, employer):
        gateway.side_effect = requests.exceptions.Timeout()
        result = services.create_order(contract.pk, employer, Decimal('150'))
        assert isinstance(result.error, GatewayTimeoutError)
        assert result.error.retryable
        assert PaymentOrder.objects.get().status == 'pending'

    def test_milestone_must_be_completed_first(self, gateway_settings, gateway, contract, employer):
        contract_services.add_milestone(contract.pk, employer, 'Design', '', Decimal('120'))
        result = services.create_milestone_order(contract.pk, employer, 0)
        assert isinstance(result.error, InvalidTransitionError)
        gateway.assert_not_called()

    def test_completed_milestone_amount_is_used(self, gateway_settings, gateway, contract, employer, worker):
        contract_services.add_milestone(contract.pk, employer, 'Design', '', Decimal('120'))
        contract_services.set_milestone_status(contract.pk, worker, 0, 'completed')
        gateway.return_value = gateway_response({'status': 'success', 'data': {'order_id': 'ord_2'}})

        result = services.create_milestone_order(contract.pk, employer, 0)
        order = result.data['order']
        assert order.amount == Decimal('120')
        assert order.milestone_index == 0
        assert order.payment_type == 'milestone'


class TestConfirm:

    def test_completed_payment_is_recorded_and_credited(self, gateway_settings, gateway, order, worker):
        gateway.return_value = verified('completed')
        result = services.confirm(order.tx_ref)

        assert result.success
        order.refresh_from_db()
        assert order.status == 'completed'
        assert order.external_tx_id == 'pay_123'
        contract = Contract.objects.get(pk=order.contract_id)
        assert contract.payments[0]['transaction_id'] == 'pay_123'
        assert contract.total_paid == Decimal('150.00')
        assert User.objects.get(pk=worker.pk).wallet_balance == Decimal('150.00')

    def test_confirming_twice_records_once(self, gateway_settings, gateway, order, worker):
        gateway.return_value = verified('completed')
        services.confirm(order.tx_ref)
        gateway.reset_mock()

        result = services.confirm(order.tx_ref)
        assert result.success
        gateway.assert_not_called()
        assert User.objects.get(pk=worker.pk).wallet_balance == Decimal('150.00')

    def test_timeout_never_fails_the_order(self, gateway_settings, gateway, order):
        gateway.side_effect = requests.exceptions.Timeout()
        result = services.confirm(order.tx_ref)
        assert isinstance(result.error, GatewayTimeoutError)
        order.refresh_from_db()
        assert order.status == 'pending'
        assert Contract.objects.get(pk=order.contract_id).payments == []

    def test_gateway_server_error_is_an_unknown_outcome(self, gateway_settings, gateway, order):
        gateway.return_value = gateway_response({'message': 'oops'}, status_code=502)
        result = services.confirm(order.tx_ref)
        assert isinstance(result.error, GatewayTimeoutError)
        order.refresh_from_db()
        assert order.status == 'pending'

    def test_pending_outcome_changes_nothing(self, gateway_settings, gateway, order):
        gateway.return_value = verified('pending', payment_id=None)
        result = services.confirm(order.tx_ref)
        assert result.success
        order.refresh_from_db()
        assert order.status == 'pending'

    def test_failed_outcome_fails_the_order(self, gateway_settings, gateway, order, worker):
        gateway.return_value = verified('failed')
        result = services.confirm(order.tx_ref)
        assert isinstance(result.error, ValidationError)
        order.refresh_from_db()
        assert order.status == 'failed'
        assert User.objects.get(pk=worker.pk).wallet_balance == Decimal('0')

    def test_only_payer_may_verify(self, gateway_settings, gateway, order, worker):
        result = services.confirm(order.tx_ref, actor=worker)
        assert isinstance(result.error, AuthorizationError)
        gateway.assert_not_called()

    def test_rejected_recording_releases_the_order(self, gateway_settings, gateway, order):
        contract_services.record_payment(order.contract_id, Decimal('150'), 'milestone', 'pay_123')
        gateway.return_value = verified('completed')

        result = services.confirm(order.tx_ref)
        assert isinstance(result.error, InvalidTransitionError)
        order.refresh_from_db()
        assert order.status == 'pending'

    def test_database_error_while_recording_releases_the_order(self, gateway_settings, gateway, order, worker):
        gateway.return_value = verified('completed')
        with mock.patch('core.store.commit_aggregate', side_effect=DatabaseError('deadlock')):
            with pytest.raises(DatabaseError):
                services.confirm(order.tx_ref)

        order.refresh_from_db()
        assert order.status == 'pending'
        assert order.external_tx_id is None
        assert Contract.objects.get(pk=order.contract_id).payments == []

        result = services.confirm(order.tx_ref)
        assert result.message == 'Payment verified and processed successfully'
        assert Contract.objects.get(pk=order.contract_id).total_paid == Decimal('150.00')
        assert User.objects.get(pk=worker.pk).wallet_balance == Decimal('150.00')


class TestWebhook:

    def sign(self, body):
        return hmac.new(WEBHOOK_SECRET.encode(), body, hashlib.sha256).hexdigest()

    def test_valid_signature(self, gateway_settings):
        body = b'{"tx_ref": "abc"}'
        assert verify_signature(body, self.sign(body))
        assert not verify_signature(body, self.sign(b'{"tx_ref": "xyz"}'))
        assert not verify_signature(body, None)

    def test_missing_secret_is_unavailable(self, settings):
        settings.PAYMENT_WEBHOOK_SECRET = ''
        with pytest.raises(GatewayUnavailableError):
            verify_signature(b'{}', 'sig')

    def test_callback_rejects_bad_signature(self, gateway_settings, gateway, api_client, order):
        body = json.dumps({'tx_ref': order.tx_ref, 'status': 'success'}).encode()
        response = api_client.post(
            reverse('payment_callback'), data=body, content_type='application/json',
            HTTP_X_PAYMENT_SIGNATURE='forged',
        )
        assert response.status_code == 401
        gateway.assert_not_called()

    def test_callback_confirms_order(self, gateway_settings, gateway, api_client, order):
        gateway.return_value = verified('completed')
        body = json.dumps({'tx_ref': order.tx_ref, 'status': 'success'}).encode()
        response = api_client.post(
            reverse('payment_callback'), data=body, content_type='application/json',
            HTTP_X_PAYMENT_SIGNATURE=self.sign(body),
        )
        assert response.status_code == 200
        assert response.data['status'] == 'completed'
        order.refresh_from_db()
        assert order.status == 'completed'


class TestPaymentViews:

    def test_withdraw_debits_wallet(self, client_for, worker):
        User.objects.filter(pk=worker.pk).update(wallet_balance=Decimal('300'))
        response = client_for(worker).post(reverse('payment_withdraw'), {'amount': '120.00'}, format='json')
        assert response.status_code == 200
        assert Decimal(response.data['new_balance']) == Decimal('180')

    def test_withdraw_beyond_balance(self, client_for, worker):
        response = client_for(worker).post(reverse('payment_withdraw'), {'amount': '10.00'}, format='json')
        assert response.status_code == 400
        assert response.data['error'] == 'validation_error'

    def test_contract_payments_for_parties_only(self, client_for, contract, worker):
        contract_services.record_payment(contract.pk, Decimal('100'), 'milestone', 'pay_001')
        response = client_for(worker).get(reverse('contract_payments', args=[contract.pk]))
        assert response.status_code == 200
        assert response.data['payment_status'] == 'partial'
        assert len(response.data['payments']) == 1

        response = client_for(EmployerFactory()).get(reverse('contract_payments', args=[contract.pk]))
        assert response.status_code == 403

    def test_history_lists_wallet_entries(self, client_for, contract, worker):
        contract_services.record_payment(contract.pk, Decimal('100'), 'milestone', 'pay_001')
        response = client_for(worker).get(reverse('payment_history'))
        assert response.status_code == 200
        assert len(response.data['transactions']) == 1
        assert response.data['total_credited'] == Decimal('100')
