"""
Job lifecycle: open -> in-progress -> completed | cancelled, open -> cancelled.

Every operation is a pure function of the current JobState returning a
Transition. Nothing here touches the database; the service layer loads,
commits and runs the effects.
"""
import uuid
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from core.constants import JOB_CATEGORY_CHOICES, JOB_DURATION_CHOICES, SKILL_LEVEL_CHOICES, choice_values
from core.exceptions import (
    AlreadyDecidedError, AuthorizationError, DuplicateApplicationError,
    InvalidTransitionError, NotFoundError, NotOpenError, ValidationError,
)
from core.results import Transition, notify
from .domain import Application, JobState

CATEGORIES = choice_values(JOB_CATEGORY_CHOICES)
DURATIONS = choice_values(JOB_DURATION_CHOICES)
SKILL_LEVELS = choice_values(SKILL_LEVEL_CHOICES)

EDITABLE_FIELDS = (
    'title', 'description', 'category', 'required_skills', 'budget_min', 'budget_max',
    'currency', 'duration', 'location', 'requirements', 'tags',
)

# Allowed close outcomes per current status
CLOSE_TRANSITIONS = {
    'open': {'cancelled'},
    'in-progress': {'completed', 'cancelled'},
}


def _decimal(value, field_name):
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number.", field=field_name)


def _clean_skills(skills):
    if not skills:
        raise ValidationError('At least one required skill is needed.', field='required_skills')
    cleaned, seen = [], set()
    for skill in skills:
        name = ' '.join((skill.get('name') or '').split())
        if not name:
            raise ValidationError('Skill name is required.', field='required_skills')
        if name.lower() in seen:
            raise ValidationError(f"Duplicate required skill '{name}'.", field='required_skills')
        level = skill.get('level')
        if level is not None and level not in SKILL_LEVELS:
            raise ValidationError(f"Invalid level '{level}' for skill '{name}'.", field='required_skills')
        seen.add(name.lower())
        cleaned.append({'name': name, 'level': level})
    return cleaned


def _validated(state):
    if not (state.title or '').strip():
        raise ValidationError('Title is required.', field='title')
    if not (state.description or '').strip():
        raise ValidationError('Description is required.', field='description')
    if state.category not in CATEGORIES:
        raise ValidationError(f"Invalid category '{state.category}'.", field='category')
    if state.duration not in DURATIONS:
        raise ValidationError(f"Invalid duration '{state.duration}'.", field='duration')
    budget_min = _decimal(state.budget_min, 'budget_min')
    budget_max = _decimal(state.budget_max, 'budget_max')
    if budget_min < 0:
        raise ValidationError('Budget cannot be negative.', field='budget_min')
    if budget_min > budget_max:
        raise ValidationError('Minimum budget cannot exceed maximum budget.', field='budget')
    return replace(
        state,
        title=state.title.strip(),
        required_skills=_clean_skills(state.required_skills),
        budget_min=budget_min,
        budget_max=budget_max,
        tags=[tag.strip() for tag in state.tags if tag and tag.strip()],
    )


def _require_owner(job, actor_id):
    if job.employer_id != actor_id:
        raise AuthorizationError('Only the employer who posted this job can do that.')


def create_job(employer_id, data, now=None):
    """Build a new open job from ``data`` (a dict of the editable fields)."""
    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown job fields: {', '.join(sorted(unknown))}")
    state = JobState(
        id=uuid.uuid4(),
        employer_id=employer_id,
        title=data.get('title', ''),
        description=data.get('description', ''),
        category=data.get('category'),
        required_skills=list(data.get('required_skills') or []),
        budget_min=data.get('budget_min'),
        budget_max=data.get('budget_max'),
        duration=data.get('duration'),
        currency=data.get('currency') or 'INR',
        location=data.get('location') or 'remote',
        requirements=dict(data.get('requirements') or {}),
        tags=list(data.get('tags') or []),
        created_at=now or timezone.now(),
    )
    return Transition(_validated(state))


def update_job(job, actor_id, changes):
    _require_owner(job, actor_id)
    if job.status != 'open':
        raise InvalidTransitionError('Cannot update a job that is not open.')
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown job fields: {', '.join(sorted(unknown))}")
    return Transition(_validated(replace(job, **changes)))


def apply_to_job(job, worker_id, proposal, bid_amount, estimated_duration, now=None):
    if job.status != 'open' or not job.is_active:
        raise NotOpenError()
    if job.employer_id == worker_id:
        raise AuthorizationError('You cannot apply to your own job.')
    if job.find_application(worker_id) is not None:
        raise DuplicateApplicationError()
    bid = _decimal(bid_amount, 'bid_amount') if bid_amount is not None else None
    if bid is not None and bid <= 0:
        raise ValidationError('Bid amount must be positive.', field='bid_amount')
    application = Application(
        worker_id=worker_id,
        proposal=proposal or '',
        bid_amount=bid,
        estimated_duration=estimated_duration or '',
        applied_at=now or timezone.now(),
    )
    state = replace(job, applications=job.applications + [application])
    return Transition(state, [
        notify(job.employer_id, f"New application for: {job.title}",
               f"A worker has applied to your job '{job.title}'. Review the proposal on SkillChain."),
    ])


def withdraw_application(job, worker_id, now=None):
    application = job.find_application(worker_id)
    if application is None:
        raise NotFoundError('No application found for this job.')
    if application.status != 'pending':
        raise InvalidTransitionError(f"Cannot withdraw an application that is {application.status}.")
    withdrawn = replace(application, status='withdrawn', decided_at=now or timezone.now())
    state = replace(job, applications=[withdrawn if a is application else a for a in job.applications])
    return Transition(state, [
        notify(job.employer_id, f"Application withdrawn: {job.title}",
               f"A worker has withdrawn their application for '{job.title}'."),
    ])


def decide_application(job, actor_id, worker_id, decision, contract_id=None, now=None):
    """
    Accept or reject one worker's application.

    Accepting fixes ``selected_worker_id`` and ``contract_id`` together and moves
    the job to in-progress. Other pending applications are left as they are.
    """
    _require_owner(job, actor_id)
    if decision not in ('accepted', 'rejected'):
        raise ValidationError("Decision must be 'accepted' or 'rejected'.", field='status')
    if decision == 'accepted' and job.status != 'open':
        raise AlreadyDecidedError()
    application = job.find_application(worker_id)
    if application is None:
        raise NotFoundError('Application not found.')
    if application.status != 'pending':
        raise InvalidTransitionError(f"Application is already {application.status}.")

    decided = replace(application, status=decision, decided_at=now or timezone.now())
    applications = [decided if a is application else a for a in job.applications]

    if decision == 'rejected':
        return Transition(replace(job, applications=applications), [
            notify(worker_id, f"Application update: {job.title}",
                   f"Your application for '{job.title}' was not selected."),
        ])

    if contract_id is None:
        raise ValidationError('A contract id is required to accept an application.')
    state = replace(
        job,
        applications=applications,
        status='in-progress',
        selected_worker_id=worker_id,
        contract_id=contract_id,
    )
    return Transition(state, [
        notify(worker_id, f"Application accepted: {job.title}",
               f"Congratulations! Your application for '{job.title}' was accepted and a contract has been drafted."),
    ])


def close_job(job, actor_id, outcome):
    _require_owner(job, actor_id)
    if outcome not in CLOSE_TRANSITIONS.get(job.status, set()):
        raise InvalidTransitionError(f"Cannot move job from {job.status} to {outcome}.")
    effects = []
    if job.selected_worker_id is not None:
        effects.append(notify(job.selected_worker_id, f"Job {outcome}: {job.title}",
                              f"The job '{job.title}' has been marked {outcome}."))
    return Transition(replace(job, status=outcome), effects)


def delete_job(job, actor_id):
    """Deletion is allowed to the owner while the job is still open."""
    _require_owner(job, actor_id)
    if job.status != 'open':
        raise InvalidTransitionError('Cannot delete a job that is not open.')
    return Transition(job)
