import uuid
from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from core.constants import JOB_CATEGORY_CHOICES, JOB_DURATION_CHOICES, JOB_STATUS_CHOICES
from core.store import VersionedDocument
from .domain import Application, JobState


class Job(VersionedDocument):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    employer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='jobs')
    title = models.CharField(max_length=200)
    description = models.TextField()
    category = models.CharField(max_length=20, choices=JOB_CATEGORY_CHOICES)
    # [{name, level}], names unique case-insensitively
    required_skills = models.JSONField(default=list)
    budget_min = models.DecimalField(max_digits=12, decimal_places=2)
    budget_max = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')
    duration = models.CharField(max_length=10, choices=JOB_DURATION_CHOICES)
    location = models.CharField(max_length=200, default='remote')
    # {experience, education, certifications[]}
    requirements = models.JSONField(default=dict, blank=True)
    tags = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, choices=JOB_STATUS_CHOICES, default='open')
    applications = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    applications_count = models.PositiveIntegerField(default=0)
    selected_worker = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='selected_jobs'
    )
    contract_id = models.UUIDField(null=True, blank=True)
    views = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [models.Index(fields=['status', 'is_active'])]

    def __str__(self):
        return f"{self.title} - {self.employer.username}"

    def to_state(self):
        return JobState(
            id=self.id,
            employer_id=self.employer_id,
            title=self.title,
            description=self.description,
            category=self.category,
            required_skills=list(self.required_skills),
            budget_min=Decimal(self.budget_min),
            budget_max=Decimal(self.budget_max),
            currency=self.currency,
            duration=self.duration,
            location=self.location,
            requirements=dict(self.requirements or {}),
            tags=list(self.tags),
            status=self.status,
            applications=[Application.from_dict(a) for a in self.applications],
            selected_worker_id=self.selected_worker_id,
            contract_id=self.contract_id,
            views=self.views,
            is_active=self.is_active,
            created_at=self.created_at,
        )

    @classmethod
    def fields_from_state(cls, state):
        return {
            'title': state.title,
            'description': state.description,
            'category': state.category,
            'required_skills': state.required_skills,
            'budget_min': state.budget_min,
            'budget_max': state.budget_max,
            'currency': state.currency,
            'duration': state.duration,
            'location': state.location,
            'requirements': state.requirements,
            'tags': state.tags,
            'status': state.status,
            'applications': [a.to_dict() for a in state.applications],
            'applications_count': state.applications_count,
            'selected_worker_id': state.selected_worker_id,
            'contract_id': state.contract_id,
            'is_active': state.is_active,
        }

    @classmethod
    def create_from_state(cls, state):
        return cls.objects.create(id=state.id, employer_id=state.employer_id, **cls.fields_from_state(state))

    def application_for(self, worker_id):
        """The worker's most recent application as stored, for display."""
        for data in reversed(self.applications):
            if data['worker_id'] == worker_id:
                return data
        return None
