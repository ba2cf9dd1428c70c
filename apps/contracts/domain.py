"""In-memory shape of the Contract aggregate and its embedded records."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from core.store import EmbeddedRecord


@dataclass
class Milestone(EmbeddedRecord):
    title: str
    description: str = ''
    amount: Decimal = Decimal('0')
    due_date: Optional[date] = None
    status: str = 'pending'

    decimal_fields = ('amount',)
    date_fields = ('due_date',)


@dataclass
class Payment(EmbeddedRecord):
    amount: Decimal
    type: str
    transaction_id: str
    status: str = 'completed'
    description: str = ''
    date: Optional[datetime] = None

    decimal_fields = ('amount',)
    datetime_fields = ('date',)


@dataclass
class Deliverable(EmbeddedRecord):
    title: str
    description: str = ''
    file_url: str = ''
    status: str = 'submitted'
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    feedback: str = ''

    datetime_fields = ('submitted_at', 'reviewed_at')


@dataclass
class Message(EmbeddedRecord):
    sender_id: int
    message: str
    type: str = 'text'
    timestamp: Optional[datetime] = None

    datetime_fields = ('timestamp',)


@dataclass
class Dispute(EmbeddedRecord):
    raised_by: int
    reason: str
    description: str = ''
    status: str = 'open'
    resolution: str = ''
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    datetime_fields = ('created_at', 'resolved_at')

    @property
    def is_open(self):
        return self.status in ('open', 'under_review')


@dataclass
class Rating(EmbeddedRecord):
    rating: int
    review: str = ''
    date: Optional[datetime] = None

    datetime_fields = ('date',)


@dataclass
class ContractState:
    id: UUID
    job_id: UUID
    employer_id: int
    worker_id: int
    amount: Decimal
    currency: str = 'INR'
    duration: str = ''
    milestones: List[Milestone] = field(default_factory=list)
    status: str = 'draft'
    payment_status: str = 'pending'
    total_paid: Decimal = Decimal('0')
    payments: List[Payment] = field(default_factory=list)
    deliverables: List[Deliverable] = field(default_factory=list)
    messages: List[Message] = field(default_factory=list)
    disputes: List[Dispute] = field(default_factory=list)
    # Keyed by the party who gave the rating: 'employer' or 'worker'
    ratings: Dict[str, Rating] = field(default_factory=dict)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None

    def party_of(self, user_id):
        if user_id == self.employer_id:
            return 'employer'
        if user_id == self.worker_id:
            return 'worker'
        return None

    def other_party(self, user_id):
        return self.worker_id if user_id == self.employer_id else self.employer_id

    def has_open_disputes(self):
        return any(dispute.is_open for dispute in self.disputes)
