from decimal import Decimal
from unittest import mock

import pytest
from django.db import DatabaseError

from apps.contracts import services
from apps.contracts.models import Contract
from apps.management.models import ManagementLog, ReconciliationRecord
from apps.users import services as user_services
from apps.users.models import User
from core.exceptions import (
    AuthorizationError, InvalidTransitionError, MilestoneIndexError, PartialPaymentError, ValidationError,
)
from tests.conftest import WorkerFactory

pytestmark = pytest.mark.django_db


def balance(user):
    return User.objects.get(pk=user.pk).wallet_balance


class TestRecordPayment:

    def test_payment_credits_worker_wallet(self, contract, worker):
        result = services.record_payment(contract.pk, Decimal('150'), 'milestone', 'pay_001')
        assert result.success
        stored = Contract.objects.get(pk=contract.pk)
        assert stored.total_paid == Decimal('150')
        assert stored.payment_status == 'partial'
        assert balance(worker) == Decimal('150')
        entry = worker.wallet_transactions.get()
        assert entry.type == 'credit'
        assert entry.transaction_id == 'pay_001'

    def test_full_payment_completes_payment_status(self, contract, worker):
        services.record_payment(contract.pk, Decimal('150'), 'milestone', 'pay_001')
        services.record_payment(contract.pk, Decimal('250'), 'final', 'pay_002')
        stored = Contract.objects.get(pk=contract.pk)
        assert stored.payment_status == 'completed'
        assert len(stored.payments) == 2
        assert balance(worker) == Decimal('400')

    def test_same_transaction_is_recorded_once(self, contract, worker):
        services.record_payment(contract.pk, Decimal('150'), 'milestone', 'pay_001')
        result = services.record_payment(contract.pk, Decimal('150'), 'milestone', 'pay_001')
        assert isinstance(result.error, InvalidTransitionError)
        assert balance(worker) == Decimal('150')

    def test_failed_wallet_credit_is_flagged_not_rolled_back(self, contract, worker):
        with mock.patch('apps.contracts.services.credit_wallet', side_effect=DatabaseError('lock timeout')):
            result = services.record_payment(contract.pk, Decimal('150'), 'milestone', 'pay_001')

        assert isinstance(result.error, PartialPaymentError)
        stored = Contract.objects.get(pk=contract.pk)
        assert stored.total_paid == Decimal('150')
        assert balance(worker) == Decimal('0')
        record = ReconciliationRecord.objects.get()
        assert record.kind == 'partial_payment'
        assert record.contract_id == contract.pk
        assert record.user_id == worker.pk
        assert record.payload['transaction_id'] == 'pay_001'


class TestAccess:

    def test_parties_can_load_contract(self, contract, employer, worker):
        assert services.get_contract_for(employer, contract.pk) == contract
        assert services.get_contract_for(worker, contract.pk) == contract

    def test_strangers_cannot_load_contract(self, contract):
        with pytest.raises(AuthorizationError):
            services.get_contract_for(WorkerFactory(), contract.pk)

    def test_contracts_for_lists_both_sides(self, contract, employer, worker):
        assert list(services.contracts_for(employer)) == [contract]
        assert list(services.contracts_for(worker)) == [contract]


class TestLifecycle:

    def test_milestone_flow(self, contract, employer, worker):
        assert services.add_milestone(contract.pk, employer, 'API', 'Endpoints', Decimal('200')).success
        result = services.set_milestone_status(contract.pk, worker, 0, 'completed')
        assert result.data.milestones[0]['status'] == 'completed'

    def test_missing_milestone(self, contract, worker):
        result = services.set_milestone_status(contract.pk, worker, 3, 'completed')
        assert isinstance(result.error, MilestoneIndexError)
        assert result.error.status_code == 404

    def test_contract_rating_leaves_user_rating_alone(self, contract, employer, worker):
        result = services.rate(contract.pk, employer, 5, 'Excellent')
        assert result.data.ratings['employer']['rating'] == 5
        assert User.objects.get(pk=worker.pk).rating_count == 0

    @pytest.mark.parametrize('rating', [True, 0, 6])
    def test_user_rating_takes_the_same_star_values(self, employer, worker, rating):
        result = user_services.rate_user(worker.pk, employer, rating)
        assert isinstance(result.error, ValidationError)
        assert User.objects.get(pk=worker.pk).rating_count == 0

    def test_dispute_resolution_is_logged(self, contract, worker, superuser):
        services.raise_dispute(contract.pk, worker, 'Scope creep')
        assert Contract.objects.get(pk=contract.pk).status == 'disputed'
        result = services.resolve_dispute(contract.pk, superuser, 0, 'Scope agreed', 'active')
        assert result.data.status == 'active'
        log = ManagementLog.objects.get()
        assert log.action == 'resolve_dispute'
        assert log.admin == superuser
