import uuid
from dataclasses import replace
from decimal import Decimal

import pytest

from apps.jobs import engine
from core.constants import EFFECT_NOTIFY
from core.exceptions import (
    AlreadyDecidedError, AuthorizationError, DuplicateApplicationError,
    InvalidTransitionError, NotOpenError, ValidationError,
)

EMPLOYER = 1
WORKER = 2
OTHER_WORKER = 3


def job_data(**overrides):
    data = {
        'title': 'Data pipeline',
        'description': 'Move CSV exports into the warehouse.',
        'category': 'technology',
        'required_skills': [{'name': 'Python', 'level': 'advanced'}, {'name': 'SQL', 'level': None}],
        'budget_min': Decimal('100'),
        'budget_max': Decimal('300'),
        'duration': 'weekly',
    }
    data.update(overrides)
    return data


@pytest.fixture
def job():
    return engine.create_job(EMPLOYER, job_data()).state


def applied(job, worker_id=WORKER, bid='250'):
    return engine.apply_to_job(job, worker_id, 'proposal', Decimal(bid), '1 week').state


class TestCreateJob:

    def test_new_job_is_open_and_empty(self, job):
        assert job.status == 'open'
        assert job.applications == []
        assert job.applications_count == 0
        assert job.selected_worker_id is None
        assert job.currency == 'INR'

    def test_budget_min_above_max_is_rejected(self):
        with pytest.raises(ValidationError):
            engine.create_job(EMPLOYER, job_data(budget_min=Decimal('500'), budget_max=Decimal('100')))

    def test_negative_budget_is_rejected(self):
        with pytest.raises(ValidationError):
            engine.create_job(EMPLOYER, job_data(budget_min=Decimal('-1')))

    def test_requires_at_least_one_skill(self):
        with pytest.raises(ValidationError):
            engine.create_job(EMPLOYER, job_data(required_skills=[]))

    def test_duplicate_skill_names_are_rejected(self):
        skills = [{'name': 'Python', 'level': None}, {'name': ' python ', 'level': None}]
        with pytest.raises(ValidationError):
            engine.create_job(EMPLOYER, job_data(required_skills=skills))

    def test_unknown_fields_are_rejected(self):
        with pytest.raises(ValidationError):
            engine.create_job(EMPLOYER, job_data(status='completed'))


class TestApply:

    def test_apply_appends_pending_application_and_notifies_employer(self, job):
        transition = engine.apply_to_job(job, WORKER, 'I can do this', Decimal('250'), '1 week')
        state = transition.state
        assert state.applications_count == 1
        assert state.applications[0].status == 'pending'
        assert state.applications[0].bid_amount == Decimal('250')
        assert [(e.kind, e.payload['user_id']) for e in transition.effects] == [(EFFECT_NOTIFY, EMPLOYER)]

    def test_second_application_by_same_worker_is_rejected(self, job):
        with pytest.raises(DuplicateApplicationError):
            applied(applied(job))

    def test_employer_cannot_apply_to_own_job(self, job):
        with pytest.raises(AuthorizationError):
            applied(job, worker_id=EMPLOYER)

    def test_closed_job_rejects_applications(self, job):
        with pytest.raises(NotOpenError):
            applied(replace(job, status='cancelled'))

    def test_inactive_job_rejects_applications(self, job):
        with pytest.raises(NotOpenError):
            applied(replace(job, is_active=False))

    def test_bid_must_be_positive(self, job):
        with pytest.raises(ValidationError):
            applied(job, bid='0')

    def test_worker_may_reapply_after_withdrawing(self, job):
        state = engine.withdraw_application(applied(job), WORKER).state
        state = applied(state, bid='275')
        assert [a.status for a in state.applications] == ['withdrawn', 'pending']
        assert state.find_application(WORKER).bid_amount == Decimal('275')


class TestDecide:

    def test_accept_moves_job_in_progress_with_worker_and_contract(self, job):
        contract_id = uuid.uuid4()
        state = engine.decide_application(applied(job), EMPLOYER, WORKER, 'accepted', contract_id).state
        assert state.status == 'in-progress'
        assert state.selected_worker_id == WORKER
        assert state.contract_id == contract_id
        assert state.accepted_application().worker_id == WORKER

    def test_accept_leaves_other_applications_pending(self, job):
        state = applied(applied(job), worker_id=OTHER_WORKER)
        state = engine.decide_application(state, EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state
        assert state.find_application(OTHER_WORKER).status == 'pending'

    def test_second_accept_is_already_decided(self, job):
        state = applied(applied(job), worker_id=OTHER_WORKER)
        state = engine.decide_application(state, EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state
        with pytest.raises(AlreadyDecidedError):
            engine.decide_application(state, EMPLOYER, OTHER_WORKER, 'accepted', uuid.uuid4())

    def test_only_owner_may_decide(self, job):
        with pytest.raises(AuthorizationError):
            engine.decide_application(applied(job), OTHER_WORKER, WORKER, 'accepted', uuid.uuid4())

    def test_reject_keeps_job_open(self, job):
        transition = engine.decide_application(applied(job), EMPLOYER, WORKER, 'rejected')
        assert transition.state.status == 'open'
        assert transition.state.applications[0].status == 'rejected'
        assert transition.effects[0].payload['user_id'] == WORKER

    def test_rejected_application_cannot_be_accepted(self, job):
        state = engine.decide_application(applied(job), EMPLOYER, WORKER, 'rejected').state
        with pytest.raises(InvalidTransitionError):
            engine.decide_application(state, EMPLOYER, WORKER, 'accepted', uuid.uuid4())


class TestClose:

    def test_open_job_cannot_complete(self, job):
        with pytest.raises(InvalidTransitionError):
            engine.close_job(job, EMPLOYER, 'completed')

    def test_open_job_can_be_cancelled(self, job):
        assert engine.close_job(job, EMPLOYER, 'cancelled').state.status == 'cancelled'

    def test_in_progress_job_completes_and_notifies_worker(self, job):
        state = engine.decide_application(applied(job), EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state
        transition = engine.close_job(state, EMPLOYER, 'completed')
        assert transition.state.status == 'completed'
        assert transition.effects[0].payload['user_id'] == WORKER

    def test_completed_job_is_terminal(self, job):
        state = engine.decide_application(applied(job), EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state
        state = engine.close_job(state, EMPLOYER, 'completed').state
        with pytest.raises(InvalidTransitionError):
            engine.close_job(state, EMPLOYER, 'cancelled')


def test_update_is_limited_to_open_jobs(job):
    state = engine.decide_application(applied(job), EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state
    with pytest.raises(InvalidTransitionError):
        engine.update_job(state, EMPLOYER, {'title': 'New title'})


def test_update_revalidates_budget(job):
    with pytest.raises(ValidationError):
        engine.update_job(job, EMPLOYER, {'budget_max': Decimal('50')})
