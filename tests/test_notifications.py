from unittest import mock

import pytest
import requests
from django.core import mail
from django.core.mail import get_connection

from core.notifications import send_notification
from tests.conftest import WorkerFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def twilio_settings(settings):
    settings.TWILIO_ACCOUNT_SID = 'AC00000000000000000000000000000000'
    settings.TWILIO_AUTH_TOKEN = 'auth-token'
    settings.TWILIO_PHONE_NUMBER = '+15550000000'
    settings.GATEWAY_TIMEOUT_SECONDS = 4
    return settings


@pytest.fixture
def reachable_worker():
    return WorkerFactory(phone_number='+15551234567')


def test_smtp_connections_are_bounded(settings):
    assert settings.EMAIL_TIMEOUT == settings.GATEWAY_TIMEOUT_SECONDS
    connection = get_connection('django.core.mail.backends.smtp.EmailBackend')
    assert connection.timeout == settings.EMAIL_TIMEOUT


def test_sms_client_carries_the_gateway_timeout(twilio_settings, reachable_worker):
    with mock.patch('core.notifications.TwilioClient') as client:
        send_notification(reachable_worker, 'Contract awarded', 'Body', 'SMS body')

    http_client = client.call_args.kwargs['http_client']
    assert http_client.timeout == 4
    client.return_value.messages.create.assert_called_once_with(
        body='SMS body', from_='+15550000000', to='+15551234567'
    )
    assert mail.outbox[0].subject == 'Contract awarded'


def test_stalled_sms_provider_is_logged_not_raised(twilio_settings, reachable_worker):
    with mock.patch('core.notifications.TwilioClient') as client:
        client.return_value.messages.create.side_effect = requests.exceptions.ReadTimeout()
        send_notification(reachable_worker, 'Payment received', 'Body', 'SMS body')

    assert len(mail.outbox) == 1
