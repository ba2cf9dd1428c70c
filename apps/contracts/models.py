from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from core.constants import CONTRACT_PAYMENT_STATUS_CHOICES, CONTRACT_STATUS_CHOICES
from core.store import VersionedDocument
from .domain import ContractState, Deliverable, Dispute, Message, Milestone, Payment, Rating


class Contract(VersionedDocument):
    # Reserved on the job before the contract row exists, so there is no default
    id = models.UUIDField(primary_key=True, editable=False)
    job = models.ForeignKey('jobs.Job', on_delete=models.PROTECT, related_name='contracts')
    employer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='employer_contracts')
    worker = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='worker_contracts')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')
    duration = models.CharField(max_length=100, blank=True, default='')
    milestones = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    status = models.CharField(max_length=20, choices=CONTRACT_STATUS_CHOICES, default='draft')
    payment_status = models.CharField(max_length=20, choices=CONTRACT_PAYMENT_STATUS_CHOICES, default='pending')
    total_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    payments = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    deliverables = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    messages = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    disputes = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)
    ratings = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    actual_end_date = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Contract {self.id} ({self.status})"

    def is_party(self, user):
        return user.pk in (self.employer_id, self.worker_id)

    def to_state(self):
        return ContractState(
            id=self.id,
            job_id=self.job_id,
            employer_id=self.employer_id,
            worker_id=self.worker_id,
            amount=Decimal(self.amount),
            currency=self.currency,
            duration=self.duration,
            milestones=[Milestone.from_dict(m) for m in self.milestones],
            status=self.status,
            payment_status=self.payment_status,
            total_paid=Decimal(self.total_paid),
            payments=[Payment.from_dict(p) for p in self.payments],
            deliverables=[Deliverable.from_dict(d) for d in self.deliverables],
            messages=[Message.from_dict(m) for m in self.messages],
            disputes=[Dispute.from_dict(d) for d in self.disputes],
            ratings={party: Rating.from_dict(r) for party, r in self.ratings.items()},
            start_date=self.start_date,
            end_date=self.end_date,
            actual_end_date=self.actual_end_date,
        )

    @classmethod
    def fields_from_state(cls, state):
        return {
            'amount': state.amount,
            'currency': state.currency,
            'duration': state.duration,
            'milestones': [m.to_dict() for m in state.milestones],
            'status': state.status,
            'payment_status': state.payment_status,
            'total_paid': state.total_paid,
            'payments': [p.to_dict() for p in state.payments],
            'deliverables': [d.to_dict() for d in state.deliverables],
            'messages': [m.to_dict() for m in state.messages],
            'disputes': [d.to_dict() for d in state.disputes],
            'ratings': {party: r.to_dict() for party, r in state.ratings.items()},
            'start_date': state.start_date,
            'end_date': state.end_date,
            'actual_end_date': state.actual_end_date,
        }

    @classmethod
    def create_from_state(cls, state):
        """Insert a freshly awarded contract. Job and parties are fixed from here on."""
        return cls.objects.create(
            id=state.id,
            job_id=state.job_id,
            employer_id=state.employer_id,
            worker_id=state.worker_id,
            **cls.fields_from_state(state)
        )
