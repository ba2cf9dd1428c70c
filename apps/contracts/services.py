"""
Persistence and cross-aggregate sequencing for contracts.

Awarding writes the Job first and inserts the Contract second; recording a
payment writes the Contract first and credits the worker's wallet second.
When the second write fails the first is left in place, the failure is
queued for reconciliation and reported as a partial-failure error.
"""
import logging
import uuid

from django.db import DatabaseError, transaction
from django.db.models import Q

from apps.jobs import engine as job_engine
from apps.jobs.models import Job
from apps.management.services import flag_partial_failure, log_admin_action
from apps.users.services import credit_wallet
from core.constants import EFFECT_CREDIT_WALLET
from core.exceptions import (
    AlreadyDecidedError, AuthorizationError, DomainError, NotFoundError,
    PartialAwardError, PartialPaymentError,
)
from core.notifications import dispatch_notifications
from core.results import ServiceResult, Transition
from core.store import load_aggregate, mutate_aggregate
from . import engine
from .models import Contract

logger = logging.getLogger(__name__)


def contracts_for(user):
    return Contract.objects.filter(Q(employer=user) | Q(worker=user)).select_related('job', 'employer', 'worker')


def get_contract_for(user, contract_id):
    """Load a contract the user may see: either party, or a superuser."""
    contract = load_aggregate(Contract, contract_id, 'Contract')
    if not (user.is_superuser or contract.is_party(user)):
        raise AuthorizationError('Not authorized to view this contract.')
    return contract


def _reserve(job_state, employer_id, worker_id, contract_id):
    """Job transition for an award: accept the application, or finish an award whose insert failed."""
    if job_state.status == 'open':
        return job_engine.decide_application(job_state, employer_id, worker_id, 'accepted', contract_id)
    if job_state.employer_id != employer_id:
        raise AuthorizationError('Only the employer who posted this job can do that.')
    accepted = job_state.accepted_application()
    if (job_state.status == 'in-progress' and job_state.contract_id and accepted
            and accepted.worker_id == worker_id
            and not Contract.objects.filter(pk=job_state.contract_id).exists()):
        return Transition(job_state)
    raise AlreadyDecidedError()


def award(job_id, employer, worker_id, amount=None, duration=None, milestones=None):
    """
    Accept ``worker_id`` on the job and draft its contract.

    The terms are checked against a preview of the accepted job before
    anything is written, so input errors never leave a half-awarded job.
    """
    try:
        job = load_aggregate(Job, job_id, 'Job')
        contract_id = job.contract_id or uuid.uuid4()
        preview = _reserve(job.to_state(), employer.pk, worker_id, contract_id)
        engine.award_contract(preview.state, worker_id, contract_id, amount, duration, milestones)

        if job.status == 'open':
            job, job_transition = mutate_aggregate(
                Job, job_id,
                lambda state: job_engine.decide_application(state, employer.pk, worker_id, 'accepted', contract_id),
                'Job',
            )
            dispatch_notifications(job_transition.effects)
            logger.info(f"Job {job_id} accepted worker {worker_id}; contract {contract_id} reserved")
        contract_transition = engine.award_contract(job.to_state(), worker_id, contract_id, amount, duration, milestones)
    except DomainError as e:
        return ServiceResult.fail(e)

    try:
        with transaction.atomic():
            contract = Contract.create_from_state(contract_transition.state)
    except DatabaseError as e:
        error = PartialAwardError(cause=str(e), job_id=str(job_id), contract_id=str(contract_id))
        flag_partial_failure(
            error, job_id=job_id, contract_id=contract_id, user_id=worker_id,
            payload={'amount': contract_transition.state.amount, 'duration': contract_transition.state.duration},
        )
        return ServiceResult.fail(error)

    dispatch_notifications(contract_transition.effects)
    logger.info(f"Contract {contract.id} drafted for job {job_id} (worker {worker_id})")
    return ServiceResult.ok({'job': job, 'contract': contract}, 'Contract created successfully')


def _mutate(contract_id, command):
    try:
        contract, transition = mutate_aggregate(Contract, contract_id, command, 'Contract')
    except DomainError as e:
        return ServiceResult.fail(e)
    dispatch_notifications(transition.effects)
    return ServiceResult.ok(contract)


def _credit_effects(transition):
    return [effect for effect in transition.effects if effect.kind == EFFECT_CREDIT_WALLET]


def change_status(contract_id, actor, status):
    result = _mutate(contract_id, lambda state: engine.change_status(state, actor.pk, status))
    if result.success:
        logger.info(f"Contract {contract_id} moved to {status} by user {actor.pk}")
    return result


def add_milestone(contract_id, actor, title, description, amount, due_date=None):
    return _mutate(contract_id, lambda state: engine.add_milestone(state, actor.pk, title, description, amount, due_date))


def set_milestone_status(contract_id, actor, index, status):
    return _mutate(contract_id, lambda state: engine.set_milestone_status(state, actor.pk, index, status))


def add_deliverable(contract_id, actor, title, description='', file_url=''):
    return _mutate(contract_id, lambda state: engine.add_deliverable(state, actor.pk, title, description, file_url))


def review_deliverable(contract_id, actor, index, approved, feedback=''):
    return _mutate(contract_id, lambda state: engine.review_deliverable(state, actor.pk, index, approved, feedback))


def add_message(contract_id, actor, message, type='text'):
    return _mutate(contract_id, lambda state: engine.add_message(state, actor.pk, message, type))


def rate(contract_id, actor, rating, review=''):
    return _mutate(contract_id, lambda state: engine.rate(state, actor.pk, rating, review))


def raise_dispute(contract_id, actor, reason, description=''):
    result = _mutate(contract_id, lambda state: engine.raise_dispute(state, actor.pk, reason, description))
    if result.success:
        logger.warning(f"Dispute raised on contract {contract_id} by user {actor.pk}: {reason}")
    return result


def resolve_dispute(contract_id, admin, index, resolution, target_status):
    result = _mutate(contract_id, lambda state: engine.resolve_dispute(state, index, resolution, target_status))
    if result.success:
        log_admin_action(
            admin, 'resolve_dispute',
            f"Resolved dispute {index} on contract {contract_id}; contract now {result.data.status}"
        )
    return result


def record_payment(contract_id, amount, type, transaction_id, description=''):
    """
    Append a verified payment, then credit the worker's wallet.

    A failed credit does not undo the payment: it is flagged for
    reconciliation and reported as ``PartialPaymentError``.
    """
    try:
        contract, transition = mutate_aggregate(
            Contract, contract_id,
            lambda state: engine.record_payment(state, amount, type, transaction_id, description),
            'Contract',
        )
    except DomainError as e:
        return ServiceResult.fail(e)
    logger.info(f"Recorded payment {transaction_id} of {amount} on contract {contract_id}")

    for credit in _credit_effects(transition):
        try:
            credit_wallet(**credit.payload)
        except (DomainError, DatabaseError) as e:
            error = PartialPaymentError(cause=str(e), contract_id=str(contract_id), transaction_id=transaction_id)
            flag_partial_failure(
                error, contract_id=contract_id, user_id=credit.payload['user_id'],
                payload={'amount': credit.payload['amount'], 'transaction_id': transaction_id},
            )
            return ServiceResult.fail(error)
    dispatch_notifications(transition.effects)
    return ServiceResult.ok(contract, 'Payment recorded')
