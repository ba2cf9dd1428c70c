import logging

from django.db.models import F

from apps.contracts.services import award
from core.exceptions import DomainError, InvalidTransitionError
from core.notifications import dispatch_notifications
from core.results import ServiceResult
from core.store import load_aggregate, mutate_aggregate
from . import engine
from .models import Job

logger = logging.getLogger(__name__)


def _mutate(job_id, command):
    try:
        job, transition = mutate_aggregate(Job, job_id, command, 'Job')
    except DomainError as e:
        return ServiceResult.fail(e)
    dispatch_notifications(transition.effects)
    return ServiceResult.ok(job)


def create_job(employer, data):
    try:
        transition = engine.create_job(employer.pk, data)
    except DomainError as e:
        return ServiceResult.fail(e)
    job = Job.create_from_state(transition.state)
    logger.info(f"Employer {employer.pk} posted job {job.id}")
    return ServiceResult.ok(job, 'Job posted successfully')


def update_job(job_id, actor, changes):
    return _mutate(job_id, lambda state: engine.update_job(state, actor.pk, changes))


def view_job(job_id):
    """
    Count a detail view and return the job. The counter is bumped in place,
    outside the versioned document, so views never race aggregate writes.
    """
    try:
        job = load_aggregate(Job, job_id, 'Job')
    except DomainError as e:
        return ServiceResult.fail(e)
    Job.objects.filter(pk=job.pk).update(views=F('views') + 1)
    job.refresh_from_db(fields=['views'])
    return ServiceResult.ok(job)


def delete_job(job_id, actor):
    try:
        job = load_aggregate(Job, job_id, 'Job')
        engine.delete_job(job.to_state(), actor.pk)
        # Conditional on the version we checked, so a job accepted meanwhile survives
        deleted, _ = Job.objects.filter(pk=job.pk, version=job.version, status='open').delete()
        if not deleted:
            raise InvalidTransitionError('Cannot delete a job that is not open.')
    except DomainError as e:
        return ServiceResult.fail(e)
    logger.info(f"Employer {actor.pk} deleted job {job_id}")
    return ServiceResult.ok(message='Job deleted successfully')


def apply(job_id, worker, proposal, bid_amount, estimated_duration):
    result = _mutate(
        job_id,
        lambda state: engine.apply_to_job(state, worker.pk, proposal, bid_amount, estimated_duration),
    )
    if result.success:
        logger.info(f"Worker {worker.pk} applied to job {job_id}")
    else:
        logger.warning(f"Worker {worker.pk} could not apply to job {job_id}: {result.error.code}")
    return result


def withdraw(job_id, worker):
    result = _mutate(job_id, lambda state: engine.withdraw_application(state, worker.pk))
    if result.success:
        logger.info(f"Worker {worker.pk} withdrew application to job {job_id}")
    return result


def decide(job_id, employer, worker_id, decision, **terms):
    """
    Accept or reject an application. Accepting awards the contract, so it is
    delegated to the contract service which sequences both writes.
    """
    if decision == 'accepted':
        return award(job_id, employer, worker_id, **terms)
    result = _mutate(
        job_id,
        lambda state: engine.decide_application(state, employer.pk, worker_id, decision),
    )
    if result.success:
        return ServiceResult.ok({'job': result.data, 'contract': None}, 'Application status updated successfully')
    return result


def close(job_id, actor, outcome):
    result = _mutate(job_id, lambda state: engine.close_job(state, actor.pk, outcome))
    if result.success:
        logger.info(f"Job {job_id} closed as {outcome}")
    return result
