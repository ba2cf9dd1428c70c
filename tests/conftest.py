"""
Shared fixtures and factory_boy factories.

Engine tests build states directly and need no database; everything else
uses the ``db`` fixture through the factories.
"""
from decimal import Decimal

import factory
import pytest
from factory.django import DjangoModelFactory
from rest_framework.test import APIClient

from apps.contracts import services as contract_services
from apps.jobs import services as job_services
from apps.jobs.models import Job
from apps.users.models import User


class UserFactory(DjangoModelFactory):
    class Meta:
        model = User

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    first_name = factory.Faker('first_name')
    password = factory.django.Password('testpass123')
    role = 'worker'
    is_verified = True


class WorkerFactory(UserFactory):
    role = 'worker'
    skills = factory.LazyFunction(lambda: [
        {'name': 'Python', 'level': 'advanced', 'certified': False, 'certificate_hash': None, 'tx_id': None},
        {'name': 'AWS', 'level': 'intermediate', 'certified': False, 'certificate_hash': None, 'tx_id': None},
    ])


class EmployerFactory(UserFactory):
    role = 'employer'


class JobFactory(DjangoModelFactory):
    class Meta:
        model = Job

    employer = factory.SubFactory(EmployerFactory)
    title = factory.Sequence(lambda n: f"Backend task {n}")
    description = 'Build and deploy a small API.'
    category = 'technology'
    required_skills = factory.LazyFunction(lambda: [{'name': 'Python', 'level': 'advanced'}])
    budget_min = Decimal('100.00')
    budget_max = Decimal('500.00')
    duration = 'project'


@pytest.fixture
def worker(db):
    return WorkerFactory()


@pytest.fixture
def other_worker(db):
    return WorkerFactory()


@pytest.fixture
def employer(db):
    return EmployerFactory()


@pytest.fixture
def superuser(db):
    return UserFactory(role='employer', is_superuser=True, is_staff=True)


@pytest.fixture
def open_job(employer):
    return JobFactory(employer=employer)


@pytest.fixture
def applied_job(open_job, worker):
    result = job_services.apply(open_job.pk, worker, 'I have shipped this before.', Decimal('400.00'), '2 weeks')
    assert result.success
    return result.data


@pytest.fixture
def contract(applied_job, employer, worker):
    result = contract_services.award(applied_job.pk, employer, worker.pk)
    assert result.success
    return result.data['contract']


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """Factory fixture: an APIClient authenticated as the given user."""
    def _client_for(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client_for
