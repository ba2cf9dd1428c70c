import uuid
from dataclasses import replace
from decimal import Decimal

import pytest

from apps.contracts import engine
from apps.contracts.domain import ContractState, Milestone
from apps.jobs import engine as job_engine
from core.constants import EFFECT_CREDIT_WALLET
from core.exceptions import (
    AuthorizationError, InvalidTransitionError, InvariantViolation, MilestoneIndexError,
    NotFoundError, ValidationError,
)

EMPLOYER = 10
WORKER = 20
STRANGER = 30


@pytest.fixture
def contract():
    return ContractState(
        id=uuid.uuid4(),
        job_id=uuid.uuid4(),
        employer_id=EMPLOYER,
        worker_id=WORKER,
        amount=Decimal('1000'),
    )


def pay(contract, amount, tx_id):
    return engine.record_payment(contract, Decimal(amount), 'milestone', tx_id).state


class TestAward:

    def accepted_job(self, bid='400'):
        job = job_engine.create_job(EMPLOYER, {
            'title': 'Landing page',
            'description': 'One page site.',
            'category': 'design',
            'required_skills': [{'name': 'Figma', 'level': None}],
            'budget_min': Decimal('100'),
            'budget_max': Decimal('600'),
            'duration': 'project',
        }).state
        job = job_engine.apply_to_job(job, WORKER, 'portfolio attached', Decimal(bid), '10 days').state
        return job_engine.decide_application(job, EMPLOYER, WORKER, 'accepted', uuid.uuid4()).state

    def test_amount_defaults_to_bid(self):
        job = self.accepted_job()
        state = engine.award_contract(job, WORKER, job.contract_id).state
        assert state.id == job.contract_id
        assert state.status == 'draft'
        assert state.amount == Decimal('400')
        assert state.duration == '10 days'

    def test_explicit_terms_override_bid(self):
        job = self.accepted_job()
        state = engine.award_contract(
            job, WORKER, job.contract_id, amount=Decimal('450'),
            milestones=[{'title': 'Wireframes', 'amount': Decimal('150')}],
        ).state
        assert state.amount == Decimal('450')
        assert state.milestones[0].status == 'pending'

    def test_requires_accepted_application(self):
        job = self.accepted_job()
        with pytest.raises(InvalidTransitionError):
            engine.award_contract(job, STRANGER, job.contract_id)

    def test_zero_milestone_amount_is_rejected(self):
        job = self.accepted_job()
        with pytest.raises(ValidationError):
            engine.award_contract(job, WORKER, job.contract_id, milestones=[{'title': 'Free', 'amount': 0}])


class TestStatus:

    def test_draft_cannot_jump_to_completed(self, contract):
        with pytest.raises(InvalidTransitionError):
            engine.change_status(contract, EMPLOYER, 'completed')

    def test_completion_sets_actual_end_date(self, contract):
        state = engine.change_status(contract, EMPLOYER, 'active').state
        state = engine.change_status(state, WORKER, 'completed').state
        assert state.status == 'completed'
        assert state.actual_end_date is not None

    def test_disputed_is_not_a_plain_status_change(self, contract):
        with pytest.raises(InvalidTransitionError):
            engine.change_status(contract, EMPLOYER, 'disputed')

    def test_strangers_cannot_change_status(self, contract):
        with pytest.raises(AuthorizationError):
            engine.change_status(contract, STRANGER, 'active')


class TestPayments:

    def test_payment_status_follows_total_paid(self, contract):
        state = pay(contract, '400', 'tx-1')
        assert state.payment_status == 'partial'
        assert state.total_paid == Decimal('400')
        state = pay(state, '600', 'tx-2')
        assert state.payment_status == 'completed'
        assert state.total_paid == sum(p.amount for p in state.payments)

    def test_overpayment_stays_completed(self, contract):
        state = pay(pay(contract, '1000', 'tx-1'), '50', 'tx-2')
        assert state.payment_status == 'completed'
        assert state.total_paid == Decimal('1050')

    def test_payment_requests_wallet_credit_for_worker(self, contract):
        transition = engine.record_payment(contract, Decimal('250'), 'bonus', 'tx-9')
        credits = [e for e in transition.effects if e.kind == EFFECT_CREDIT_WALLET]
        assert len(credits) == 1
        assert credits[0].payload['user_id'] == WORKER
        assert credits[0].payload['amount'] == Decimal('250')
        assert credits[0].payload['transaction_id'] == 'tx-9'

    def test_duplicate_transaction_id_is_rejected(self, contract):
        with pytest.raises(InvalidTransitionError):
            pay(pay(contract, '100', 'tx-1'), '100', 'tx-1')

    @pytest.mark.parametrize('amount', ['0', '-5'])
    def test_non_positive_amount_is_rejected(self, contract, amount):
        with pytest.raises(ValidationError):
            pay(contract, amount, 'tx-1')

    def test_total_paid_out_of_step_with_payments_is_refused(self, contract):
        with pytest.raises(InvariantViolation):
            pay(replace(contract, total_paid=Decimal('50'), payment_status='partial'), '100', 'tx-1')

    def test_stale_payment_status_is_refused(self, contract):
        state = pay(contract, '400', 'tx-1')
        with pytest.raises(InvariantViolation):
            pay(replace(state, payment_status='completed'), '100', 'tx-2')


class TestMilestonesAndDeliverables:

    def test_only_employer_adds_milestones(self, contract):
        with pytest.raises(AuthorizationError):
            engine.add_milestone(contract, WORKER, 'Design', '', Decimal('100'))

    def test_milestone_sum_may_exceed_amount(self, contract):
        state = engine.add_milestone(contract, EMPLOYER, 'Everything', '', Decimal('5000')).state
        assert state.milestones[0].amount == Decimal('5000')

    def test_unknown_milestone_index(self, contract):
        with pytest.raises(MilestoneIndexError):
            engine.set_milestone_status(contract, WORKER, 0, 'completed')

    def test_worker_completes_milestone(self, contract):
        contract = replace(contract, milestones=[Milestone(title='API', amount=Decimal('300'))])
        state = engine.set_milestone_status(contract, WORKER, 0, 'completed').state
        assert state.milestones[0].status == 'completed'
        assert contract.milestones[0].status == 'pending'

    def test_deliverable_review_cycle(self, contract):
        state = engine.add_deliverable(contract, WORKER, 'Source code', file_url='https://example.com/src.zip').state
        state = engine.review_deliverable(state, EMPLOYER, 0, approved=False, feedback='Missing tests').state
        assert state.deliverables[0].status == 'rejected'
        assert state.deliverables[0].feedback == 'Missing tests'
        with pytest.raises(InvalidTransitionError):
            engine.review_deliverable(state, EMPLOYER, 0, approved=True)

    def test_employer_cannot_submit_deliverables(self, contract):
        with pytest.raises(AuthorizationError):
            engine.add_deliverable(contract, EMPLOYER, 'Source code')


class TestRating:

    @pytest.mark.parametrize('rating', [0, 6, 2.5, True, '5'])
    def test_rating_outside_one_to_five_is_rejected(self, contract, rating):
        with pytest.raises(ValidationError):
            engine.rate(contract, EMPLOYER, rating)

    def test_rating_is_keyed_by_party_and_overwritten(self, contract):
        state = engine.rate(contract, EMPLOYER, 3, 'ok').state
        state = engine.rate(state, EMPLOYER, 5, 'great after fixes').state
        state = engine.rate(state, WORKER, 4).state
        assert state.ratings['employer'].rating == 5
        assert state.ratings['worker'].rating == 4


class TestDisputes:

    def test_dispute_overrides_completed_status(self, contract):
        state = engine.change_status(contract, EMPLOYER, 'active').state
        state = engine.change_status(state, EMPLOYER, 'completed').state
        state = engine.raise_dispute(state, WORKER, 'Unpaid work').state
        assert state.status == 'disputed'
        assert state.disputes[0].status == 'open'

    def test_resolution_moves_to_target_once_all_disputes_closed(self, contract):
        state = engine.raise_dispute(contract, WORKER, 'Late payment').state
        state = engine.raise_dispute(state, EMPLOYER, 'Late delivery').state
        state = engine.resolve_dispute(state, 0, 'Paid in full', 'active').state
        assert state.status == 'disputed'
        state = engine.resolve_dispute(state, 1, 'Delivered', 'completed').state
        assert state.status == 'completed'
        assert state.actual_end_date is not None
        assert all(d.status == 'resolved' for d in state.disputes)

    def test_resolved_dispute_cannot_be_resolved_again(self, contract):
        state = engine.raise_dispute(contract, WORKER, 'Late payment').state
        state = engine.resolve_dispute(state, 0, 'Paid', 'active').state
        with pytest.raises(InvalidTransitionError):
            engine.resolve_dispute(state, 0, 'Paid again', 'active')

    def test_unknown_dispute_index(self, contract):
        with pytest.raises(NotFoundError):
            engine.resolve_dispute(contract, 0, 'n/a', 'active')

    def test_target_status_must_be_a_normal_status(self, contract):
        state = engine.raise_dispute(contract, WORKER, 'Late payment').state
        with pytest.raises(ValidationError):
            engine.resolve_dispute(state, 0, 'n/a', 'disputed')
