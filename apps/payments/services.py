"""
Gateway orders for contract payments.

An order is created ``pending`` before the gateway is called and only a
``completed`` verification reaches ``record_payment``. Timeouts and other
unknown outcomes leave the order pending so it can be verified again later.
"""
import logging
import uuid
from decimal import Decimal, InvalidOperation

from django.db import transaction

from apps.contracts import services as contract_services
from apps.contracts.models import Contract
from core.exceptions import (
    AuthorizationError, DomainError, GatewayTimeoutError, InvalidTransitionError,
    MilestoneIndexError, NotFoundError, PartialPaymentError, ValidationError,
)
from core.results import ServiceResult
from core.store import load_aggregate
from .gateway import get_payment_gateway
from .models import PaymentOrder

logger = logging.getLogger(__name__)

PAYABLE_MILESTONE_STATUSES = ('completed', 'approved')


def _positive(amount):
    try:
        amount = Decimal(str(amount))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError('Amount must be a number.')
    if amount <= 0:
        raise ValidationError('Amount must be positive.')
    return amount


def _payable_contract(contract_id, payer):
    contract = load_aggregate(Contract, contract_id, 'Contract')
    if contract.employer_id != payer.pk:
        raise AuthorizationError('Only the employer of this contract can pay for it.')
    if contract.status == 'cancelled':
        raise InvalidTransitionError('Cannot pay for a cancelled contract.')
    return contract


def _open_order(contract, payer, amount, payment_type, description, milestone_index=None):
    gateway = get_payment_gateway()
    order = PaymentOrder.objects.create(
        contract=contract,
        payer=payer,
        amount=amount,
        currency=contract.currency,
        payment_type=payment_type,
        milestone_index=milestone_index,
        description=description,
        tx_ref=f"contract-{contract.id.hex[:12]}-{uuid.uuid4().hex[:8]}",
    )
    try:
        checkout = gateway.create_order(amount, contract.currency, order.tx_ref, notes={
            'contract_id': str(contract.id),
            'payment_type': payment_type,
        })
    except GatewayTimeoutError:
        logger.warning(f"Order {order.tx_ref} left pending: gateway outcome unknown")
        raise
    except DomainError:
        order.status = 'failed'
        order.save(update_fields=['status', 'updated_at'])
        raise
    order.external_order_id = checkout.get('order_id')
    order.save(update_fields=['external_order_id', 'updated_at'])
    logger.info(f"Payment order {order.tx_ref} created for contract {contract.id}: {amount} {contract.currency}")
    return {'order': order, 'checkout': checkout}


def create_order(contract_id, payer, amount, payment_type='milestone', description=''):
    try:
        contract = _payable_contract(contract_id, payer)
        return ServiceResult.ok(
            _open_order(contract, payer, _positive(amount), payment_type, description),
            'Payment order created'
        )
    except DomainError as e:
        return ServiceResult.fail(e)


def create_milestone_order(contract_id, payer, milestone_index, amount=None):
    """Order for one milestone; the worker must have completed it first."""
    try:
        contract = _payable_contract(contract_id, payer)
        state = contract.to_state()
        if not 0 <= milestone_index < len(state.milestones):
            raise MilestoneIndexError()
        milestone = state.milestones[milestone_index]
        if milestone.status not in PAYABLE_MILESTONE_STATUSES:
            raise InvalidTransitionError('Milestone must be completed before payment.', status=milestone.status)
        amount = _positive(amount if amount is not None else milestone.amount)
        return ServiceResult.ok(
            _open_order(contract, payer, amount, 'milestone', f"Payment for milestone: {milestone.title}", milestone_index),
            'Milestone payment order created'
        )
    except DomainError as e:
        return ServiceResult.fail(e)


def _release(order):
    PaymentOrder.objects.filter(pk=order.pk, status='completed').update(status='pending', external_tx_id=None)


def confirm(tx_ref, actor=None):
    """
    Ask the gateway how an order ended and apply the answer.

    Safe to call repeatedly: an order is claimed with a conditional update
    before the payment is recorded, so only one caller records it.
    """
    try:
        order = PaymentOrder.objects.select_related('contract').get(tx_ref=tx_ref)
    except PaymentOrder.DoesNotExist:
        return ServiceResult.fail(NotFoundError('Payment order not found'))
    if actor is not None and order.payer_id != actor.pk:
        return ServiceResult.fail(AuthorizationError('Not authorized to verify this payment.'))
    if order.status == 'completed':
        return ServiceResult.ok(order, 'Payment already verified')
    if order.status == 'failed':
        return ServiceResult.fail(InvalidTransitionError('Payment order has failed.', tx_ref=tx_ref))

    try:
        outcome = get_payment_gateway().verify(tx_ref)
    except DomainError as e:
        return ServiceResult.fail(e)

    if outcome.status == 'pending':
        logger.info(f"Payment order {tx_ref} still pending at the gateway")
        return ServiceResult.ok(order, 'Payment pending')
    if outcome.status == 'failed':
        PaymentOrder.objects.filter(pk=order.pk, status='pending').update(status='failed')
        order.refresh_from_db()
        logger.warning(f"Payment order {tx_ref} failed at the gateway")
        return ServiceResult.fail(ValidationError('Payment verification failed', tx_ref=tx_ref))

    external_tx_id = outcome.external_tx_id or tx_ref
    with transaction.atomic():
        claimed = PaymentOrder.objects.filter(pk=order.pk, status='pending').update(
            status='completed', external_tx_id=external_tx_id
        )
    order.refresh_from_db()
    if not claimed:
        return ServiceResult.ok(order, 'Payment already verified')

    try:
        result = contract_services.record_payment(
            order.contract_id, order.amount, order.payment_type, external_tx_id,
            order.description or f"Payment via gateway ({tx_ref})",
        )
    except Exception:
        # Hand the order back so a later confirm can retry the recording
        _release(order)
        logger.exception(f"Recording payment order {tx_ref} failed; order returned to pending")
        raise
    if not result.success and not isinstance(result.error, PartialPaymentError):
        _release(order)
        order.refresh_from_db()
    if not result.success:
        return ServiceResult.fail(result.error)
    logger.info(f"Payment order {tx_ref} verified and recorded on contract {order.contract_id}")
    return ServiceResult.ok(order, 'Payment verified and processed successfully')


def contract_payments(user, contract_id):
    try:
        contract = contract_services.get_contract_for(user, contract_id)
    except DomainError as e:
        return ServiceResult.fail(e)
    return ServiceResult.ok(contract)
