import logging
import re

import requests
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client as TwilioClient

from core.constants import EFFECT_NOTIFY

logger = logging.getLogger(__name__)


def send_notification(user, subject, email_message, sms_message):
    """
    Send notifications to users via email and SMS.

    Delivery problems are logged and swallowed: a notification never decides
    the outcome of the business operation that triggered it.
    """
    if user.email:
        try:
            send_mail(
                subject=subject,
                message=email_message,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
                fail_silently=False,
            )
            logger.info(f"Email notification sent to {user.email}")
        except Exception as e:
            logger.error(f"Failed to send email to {user.email}: {str(e)}")

    if not user.phone_number or not settings.TWILIO_ACCOUNT_SID:
        return
    if not re.match(r'^\+\d{9,15}$', user.phone_number):
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")
        return
    try:
        twilio_client = TwilioClient(
            settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN,
            http_client=TwilioHttpClient(timeout=settings.GATEWAY_TIMEOUT_SECONDS),
        )
        twilio_client.messages.create(
            body=sms_message,
            from_=settings.TWILIO_PHONE_NUMBER,
            to=user.phone_number
        )
        logger.info(f"SMS notification sent to {user.phone_number}")
    except (TwilioRestException, requests.exceptions.RequestException) as e:
        logger.error(f"Failed to send SMS to {user.phone_number}: {str(e)}")


def dispatch_notifications(effects):
    """Deliver the ``notify`` effects of a committed transition."""
    User = get_user_model()
    for effect in effects:
        if effect.kind != EFFECT_NOTIFY:
            continue
        payload = effect.payload
        user = User.objects.filter(pk=payload['user_id']).first()
        if user is None:
            logger.warning(f"Notification target {payload['user_id']} no longer exists")
            continue
        message = payload['message']
        send_notification(
            user,
            payload['subject'],
            f"Dear {user.first_name or user.username},\n\n{message}\n\nBest regards,\nSkillChain Team",
            message,
        )
