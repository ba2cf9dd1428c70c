"""
Domain error taxonomy shared by the lifecycle engines, services and views.

Every kind carries a stable ``code`` that clients can switch on, the HTTP
status it maps to, and whether the caller may retry the same request.
Partial-failure kinds answer 5xx so that "nothing happened" (4xx) stays
distinguishable from "something happened, state may be inconsistent".
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class DomainError(Exception):
    code = 'domain_error'
    status_code = status.HTTP_400_BAD_REQUEST
    retryable = False
    default_message = 'Request could not be processed.'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        body = {'error': self.code, 'message': self.message, 'retryable': self.retryable}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(DomainError):
    code = 'validation_error'
    default_message = 'Invalid input.'


class NotFoundError(DomainError):
    code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found.'


class MilestoneIndexError(NotFoundError, IndexError):
    default_message = 'Milestone not found.'


class AuthorizationError(DomainError):
    code = 'not_authorized'
    status_code = status.HTTP_403_FORBIDDEN
    default_message = 'Not authorized.'


class InvalidTransitionError(DomainError):
    code = 'invalid_transition'
    default_message = 'Transition not allowed from the current status.'


class NotOpenError(InvalidTransitionError):
    code = 'job_not_open'
    default_message = 'Job is not open for applications.'


class AlreadyDecidedError(InvalidTransitionError):
    code = 'already_decided'
    default_message = 'A worker has already been selected for this job.'


class DuplicateApplicationError(DomainError):
    code = 'duplicate_application'
    default_message = 'You have already applied to this job.'


class ConcurrentUpdateError(DomainError):
    code = 'concurrent_update'
    status_code = status.HTTP_409_CONFLICT
    retryable = True
    default_message = 'The record was modified concurrently. Please retry.'


class PartialFailureError(DomainError):
    """The first write of a cross-aggregate operation committed, the second did not."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Operation partially applied; flagged for reconciliation.'


class PartialAwardError(PartialFailureError):
    code = 'partial_award'
    default_message = 'Job was awarded but the contract could not be created.'


class PartialPaymentError(PartialFailureError):
    code = 'partial_payment'
    default_message = "Payment was recorded but the worker's wallet was not credited."


class GatewayUnavailableError(DomainError):
    code = 'gateway_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'External service not configured.'


class GatewayTimeoutError(DomainError):
    code = 'gateway_timeout'
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    retryable = True
    default_message = 'External service did not answer in time; outcome unknown.'


class InvariantViolation(AssertionError):
    """Programming error: an aggregate was found in a state the engines never produce."""


def error_response(error):
    return Response(error.as_dict(), status=error.status_code)


def domain_exception_handler(exc, context):
    if isinstance(exc, DomainError):
        view = context.get('view')
        logger.info(f"{view.__class__.__name__ if view else 'view'} answered {exc.code}: {exc.message}")
        return error_response(exc)
    return exception_handler(exc, context)
