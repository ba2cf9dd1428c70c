"""
HTTP client for the external payment gateway.

The gateway answers ``completed``, ``failed`` or ``pending`` for an order.
Anything else (timeouts, connection drops, 5xx) means the outcome is unknown:
callers get ``GatewayTimeoutError`` and must leave the order pending.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Optional

import requests
from django.conf import settings

from core.exceptions import GatewayTimeoutError, GatewayUnavailableError

logger = logging.getLogger(__name__)

OUTCOME_STATUSES = ('completed', 'failed', 'pending')


@dataclass
class GatewayOutcome:
    status: str
    external_tx_id: Optional[str] = None


class PaymentGateway:

    def __init__(self, base_url, secret_key, timeout, callback_url=''):
        self.base_url = base_url.rstrip('/')
        self.secret_key = secret_key
        self.timeout = timeout
        self.callback_url = callback_url

    @property
    def headers(self):
        return {
            'Authorization': f'Bearer {self.secret_key.strip()}',
            'Content-Type': 'application/json'
        }

    def _call(self, method, path, **kwargs):
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout:
            logger.error(f"Payment gateway timed out after {self.timeout}s: {method} {path}")
            raise GatewayTimeoutError('Payment gateway did not answer in time; the payment stays pending.')
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment gateway request failed: {method} {path}: {str(e)}")
            raise GatewayTimeoutError('Payment gateway could not be reached; the payment stays pending.')
        if response.status_code >= 500:
            logger.error(f"Payment gateway error {response.status_code}: {response.text}")
            raise GatewayTimeoutError('Payment gateway failed to answer; the payment stays pending.')
        try:
            response.raise_for_status()
            return response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Payment gateway rejected {method} {path}: {str(e)}, Response: {response.text}")
            raise GatewayUnavailableError(f"Payment gateway rejected the request: {response.text}")
        except ValueError:
            logger.error(f"Payment gateway returned non-JSON body for {method} {path}")
            raise GatewayTimeoutError('Payment gateway answered unreadably; the payment stays pending.')

    def create_order(self, amount, currency, reference, notes=None):
        payload = {
            'amount': str(amount),
            'currency': currency,
            'reference': reference,
            'callback_url': self.callback_url,
            'notes': notes or {},
        }
        logger.info(f"Creating gateway order {reference} for {amount} {currency}")
        data = self._call('POST', '/orders', json=payload)
        if data.get('status') != 'success':
            logger.error(f"Gateway order creation failed: {data}")
            raise GatewayUnavailableError(f"Payment gateway refused the order: {data.get('message', 'Unknown error')}")
        return data['data']

    def verify(self, reference):
        data = self._call('GET', f'/orders/{reference}/verify')
        payment = data.get('data') or {}
        status = payment.get('status')
        if status not in OUTCOME_STATUSES:
            logger.warning(f"Unrecognised gateway status '{status}' for {reference}; treating as pending")
            status = 'pending'
        return GatewayOutcome(status=status, external_tx_id=payment.get('payment_id'))


def get_payment_gateway():
    if not settings.PAYMENT_GATEWAY_BASE_URL or not settings.PAYMENT_GATEWAY_SECRET_KEY:
        raise GatewayUnavailableError('Payment service not configured')
    return PaymentGateway(
        settings.PAYMENT_GATEWAY_BASE_URL,
        settings.PAYMENT_GATEWAY_SECRET_KEY,
        settings.GATEWAY_TIMEOUT_SECONDS,
        settings.PAYMENT_CALLBACK_URL,
    )


def verify_signature(body, signature):
    """Check the HMAC-SHA256 hex digest of a webhook's raw body."""
    if not settings.PAYMENT_WEBHOOK_SECRET:
        raise GatewayUnavailableError('Payment webhook secret not configured')
    if not signature:
        return False
    secret = settings.PAYMENT_WEBHOOK_SECRET.encode('utf-8')
    computed_signature = hmac.new(secret, body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed_signature, signature)
