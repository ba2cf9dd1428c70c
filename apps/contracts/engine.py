"""
Contract lifecycle.

Normal status moves follow ``STATUS_TRANSITIONS``. ``disputed`` sits outside
that table: ``raise_dispute`` forces it from any status and only
``resolve_dispute`` leaves it, to an explicit target status.

All functions are pure: ``(state, command) -> Transition``. Payment recording
asks for the worker's wallet to be credited through a ``credit_wallet``
effect; the service performs it after the contract write has committed.
"""
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from core.constants import (
    EFFECT_CREDIT_WALLET, MESSAGE_TYPE_CHOICES,
    MILESTONE_STATUS_CHOICES, PAYMENT_TYPE_CHOICES, choice_values, is_valid_rating,
)
from core.exceptions import (
    AuthorizationError, InvalidTransitionError, InvariantViolation, MilestoneIndexError,
    NotFoundError, ValidationError,
)
from core.results import Effect, Transition, notify
from .domain import ContractState, Deliverable, Dispute, Message, Milestone, Payment, Rating

MILESTONE_STATUSES = choice_values(MILESTONE_STATUS_CHOICES)
PAYMENT_TYPES = choice_values(PAYMENT_TYPE_CHOICES)
MESSAGE_TYPES = choice_values(MESSAGE_TYPE_CHOICES)

STATUS_TRANSITIONS = {
    'draft': {'active', 'cancelled'},
    'active': {'paused', 'completed', 'cancelled'},
    'paused': {'active', 'cancelled'},
    'completed': set(),
    'cancelled': set(),
}
RESOLUTION_TARGETS = ('active', 'paused', 'completed', 'cancelled')


def derive_payment_status(total_paid, amount):
    if total_paid >= amount:
        return 'completed'
    if total_paid > 0:
        return 'partial'
    return 'pending'


def _amount(value, field_name='amount'):
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number.", field=field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be positive.", field=field_name)
    return amount


def _require_party(contract, actor_id):
    party = contract.party_of(actor_id)
    if party is None:
        raise AuthorizationError('Only the parties of this contract can do that.')
    return party


def _require_employer(contract, actor_id):
    if actor_id != contract.employer_id:
        raise AuthorizationError('Only the employer of this contract can do that.')


def _require_worker(contract, actor_id):
    if actor_id != contract.worker_id:
        raise AuthorizationError('Only the worker of this contract can do that.')


def _milestone(title, description, amount, due_date):
    if not (title or '').strip():
        raise ValidationError('Milestone title is required.', field='title')
    return Milestone(
        title=title.strip(),
        description=description or '',
        amount=_amount(amount),
        due_date=due_date,
    )


def _at(items, index, error):
    if not isinstance(index, int) or index < 0 or index >= len(items):
        raise error
    return items[index]


def _replaced(items, index, item):
    return items[:index] + [item] + items[index + 1:]


def award_contract(job, worker_id, contract_id, amount=None, duration=None, milestones=None, now=None):
    """
    Draft the contract for an accepted application.

    ``job`` is the committed JobState; it must already be in-progress with
    ``worker_id`` accepted and ``contract_id`` reserved.
    """
    application = job.accepted_application()
    if job.status != 'in-progress' or application is None or application.worker_id != worker_id:
        raise InvalidTransitionError('Contracts can only be awarded from an accepted application.')
    if job.contract_id != contract_id:
        raise InvalidTransitionError('Contract id does not match the one reserved on the job.')
    if amount is None:
        amount = application.bid_amount
    if amount is None:
        raise ValidationError('Contract amount is required when the application carries no bid.', field='amount')
    now = now or timezone.now()
    state = ContractState(
        id=contract_id,
        job_id=job.id,
        employer_id=job.employer_id,
        worker_id=worker_id,
        amount=_amount(amount),
        currency=job.currency,
        duration=duration or application.estimated_duration or job.duration,
        milestones=[
            _milestone(m.get('title'), m.get('description'), m.get('amount'), m.get('due_date'))
            for m in milestones or []
        ],
        start_date=now,
    )
    return Transition(state, [
        notify(worker_id, f"Contract drafted: {job.title}",
               f"A contract for '{job.title}' has been drafted for {state.amount} {state.currency}."),
    ])


def change_status(contract, actor_id, status, now=None):
    _require_party(contract, actor_id)
    if status == 'disputed':
        raise InvalidTransitionError('Raise a dispute to move a contract into dispute.')
    if status not in STATUS_TRANSITIONS.get(contract.status, set()):
        raise InvalidTransitionError(f"Cannot move contract from {contract.status} to {status}.")
    changes = {'status': status}
    if status == 'completed':
        changes['actual_end_date'] = now or timezone.now()
    return Transition(replace(contract, **changes), [
        notify(contract.other_party(actor_id), 'Contract status updated',
               f"Contract {contract.id} is now {status}."),
    ])


def add_milestone(contract, actor_id, title, description, amount, due_date=None):
    """Append a pending milestone. Milestone amounts are not checked against the contract amount."""
    _require_employer(contract, actor_id)
    milestone = _milestone(title, description, amount, due_date)
    return Transition(replace(contract, milestones=contract.milestones + [milestone]), [
        notify(contract.worker_id, 'New milestone added',
               f"Milestone '{milestone.title}' ({milestone.amount} {contract.currency}) was added to your contract."),
    ])


def set_milestone_status(contract, actor_id, index, status):
    _require_party(contract, actor_id)
    if status not in MILESTONE_STATUSES:
        raise ValidationError(f"Invalid milestone status '{status}'.", field='status')
    milestone = _at(contract.milestones, index, MilestoneIndexError(f"Milestone {index} does not exist.", index=index))
    updated = replace(milestone, status=status)
    return Transition(replace(contract, milestones=_replaced(contract.milestones, index, updated)), [
        notify(contract.other_party(actor_id), 'Milestone updated',
               f"Milestone '{milestone.title}' is now {status}."),
    ])


def _check_payment_ledger(contract):
    paid = sum((payment.amount for payment in contract.payments), Decimal('0'))
    if paid != contract.total_paid:
        raise InvariantViolation(f"Contract {contract.id}: total_paid {contract.total_paid} != sum of payments {paid}")
    expected = derive_payment_status(contract.total_paid, contract.amount)
    if contract.payment_status != expected:
        raise InvariantViolation(
            f"Contract {contract.id}: payment_status {contract.payment_status!r}, expected {expected!r}"
        )


def record_payment(contract, amount, type, transaction_id, description='', now=None):
    """
    Append a verified payment and recompute ``payment_status``.

    Emits a ``credit_wallet`` effect for the worker carrying the same
    transaction id so the ledger entry can be matched to the payment.
    """
    _check_payment_ledger(contract)
    amount = _amount(amount)
    if type not in PAYMENT_TYPES:
        raise ValidationError(f"Invalid payment type '{type}'.", field='type')
    if not transaction_id:
        raise ValidationError('A transaction id is required to record a payment.', field='transaction_id')
    if any(payment.transaction_id == transaction_id for payment in contract.payments):
        raise InvalidTransitionError(f"Payment {transaction_id} is already recorded on this contract.")
    payment = Payment(
        amount=amount,
        type=type,
        transaction_id=transaction_id,
        description=description or f"{type.capitalize()} payment",
        date=now or timezone.now(),
    )
    total_paid = contract.total_paid + amount
    state = replace(
        contract,
        payments=contract.payments + [payment],
        total_paid=total_paid,
        payment_status=derive_payment_status(total_paid, contract.amount),
    )
    return Transition(state, [
        Effect(EFFECT_CREDIT_WALLET, {
            'user_id': contract.worker_id,
            'amount': amount,
            'description': f"Payment for contract {contract.id}",
            'transaction_id': transaction_id,
        }),
        notify(contract.worker_id, 'Payment received',
               f"A payment of {amount} {contract.currency} was recorded on your contract."),
    ])


def add_deliverable(contract, actor_id, title, description='', file_url='', now=None):
    _require_worker(contract, actor_id)
    if not (title or '').strip():
        raise ValidationError('Deliverable title is required.', field='title')
    deliverable = Deliverable(
        title=title.strip(),
        description=description or '',
        file_url=file_url or '',
        submitted_at=now or timezone.now(),
    )
    return Transition(replace(contract, deliverables=contract.deliverables + [deliverable]), [
        notify(contract.employer_id, 'Deliverable submitted',
               f"The worker submitted '{deliverable.title}' for review."),
    ])


def review_deliverable(contract, actor_id, index, approved, feedback='', now=None):
    _require_employer(contract, actor_id)
    deliverable = _at(contract.deliverables, index, NotFoundError(f"Deliverable {index} does not exist.", index=index))
    if deliverable.status != 'submitted':
        raise InvalidTransitionError(f"Deliverable is already {deliverable.status}.")
    verdict = 'approved' if approved else 'rejected'
    updated = replace(deliverable, status=verdict, feedback=feedback or '', reviewed_at=now or timezone.now())
    return Transition(replace(contract, deliverables=_replaced(contract.deliverables, index, updated)), [
        notify(contract.worker_id, f"Deliverable {verdict}",
               f"Your deliverable '{deliverable.title}' was {verdict}."),
    ])


def add_message(contract, actor_id, message, type='text', now=None):
    _require_party(contract, actor_id)
    if not (message or '').strip():
        raise ValidationError('Message cannot be empty.', field='message')
    if type not in MESSAGE_TYPES:
        raise ValidationError(f"Invalid message type '{type}'.", field='type')
    entry = Message(sender_id=actor_id, message=message.strip(), type=type, timestamp=now or timezone.now())
    return Transition(replace(contract, messages=contract.messages + [entry]))


def rate(contract, actor_id, rating, review='', now=None):
    """
    Store the caller's rating of the contract, replacing any earlier one by
    the same party. The rated user's aggregate rating is not touched.
    """
    party = _require_party(contract, actor_id)
    if not is_valid_rating(rating):
        raise ValidationError('Rating must be between 1 and 5', field='rating')
    ratings = dict(contract.ratings)
    ratings[party] = Rating(rating=rating, review=review or '', date=now or timezone.now())
    return Transition(replace(contract, ratings=ratings))


def raise_dispute(contract, actor_id, reason, description='', now=None):
    """Append an open dispute and force the contract into ``disputed``, whatever its status."""
    _require_party(contract, actor_id)
    if not (reason or '').strip():
        raise ValidationError('Dispute reason is required.', field='reason')
    dispute = Dispute(
        raised_by=actor_id,
        reason=reason.strip(),
        description=description or '',
        created_at=now or timezone.now(),
    )
    return Transition(replace(contract, disputes=contract.disputes + [dispute], status='disputed'), [
        notify(contract.other_party(actor_id), 'Dispute raised',
               f"A dispute was raised on your contract: {dispute.reason}"),
    ])


def resolve_dispute(contract, index, resolution, target_status, now=None):
    """
    Close one open dispute. Once no open dispute remains, the contract leaves
    ``disputed`` for ``target_status``.
    """
    if target_status not in RESOLUTION_TARGETS:
        raise ValidationError(
            f"Target status must be one of {', '.join(RESOLUTION_TARGETS)}.", field='target_status'
        )
    if not (resolution or '').strip():
        raise ValidationError('A resolution is required.', field='resolution')
    dispute = _at(contract.disputes, index, NotFoundError(f"Dispute {index} does not exist.", index=index))
    if not dispute.is_open:
        raise InvalidTransitionError(f"Dispute is already {dispute.status}.")
    now = now or timezone.now()
    resolved = replace(dispute, status='resolved', resolution=resolution.strip(), resolved_at=now)
    state = replace(contract, disputes=_replaced(contract.disputes, index, resolved))
    if state.status == 'disputed' and not state.has_open_disputes():
        state = replace(state, status=target_status)
        if target_status == 'completed':
            state = replace(state, actual_end_date=now)
    effects = [
        notify(user_id, 'Dispute resolved', f"A dispute on your contract was resolved: {resolved.resolution}")
        for user_id in (contract.employer_id, contract.worker_id)
    ]
    return Transition(state, effects)
