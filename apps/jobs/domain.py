"""
In-memory shape of the Job aggregate as the lifecycle engine sees it.

Applications are embedded in the job: they are only ever read or changed
through the job they belong to.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from core.store import EmbeddedRecord


@dataclass
class Application(EmbeddedRecord):
    worker_id: int
    proposal: str = ''
    bid_amount: Optional[Decimal] = None
    estimated_duration: str = ''
    status: str = 'pending'
    applied_at: Optional[datetime] = None
    decided_at: Optional[datetime] = None

    decimal_fields = ('bid_amount',)
    datetime_fields = ('applied_at', 'decided_at')

    @property
    def is_withdrawn(self):
        return self.status == 'withdrawn'


@dataclass
class JobState:
    id: UUID
    employer_id: int
    title: str
    description: str
    category: str
    required_skills: List[dict]
    budget_min: Decimal
    budget_max: Decimal
    duration: str
    currency: str = 'INR'
    location: str = 'remote'
    requirements: dict = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    status: str = 'open'
    applications: List[Application] = field(default_factory=list)
    selected_worker_id: Optional[int] = None
    contract_id: Optional[UUID] = None
    views: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def applications_count(self):
        return len(self.applications)

    def find_application(self, worker_id):
        """The worker's live (non-withdrawn) application, or None."""
        for application in reversed(self.applications):
            if application.worker_id == worker_id and not application.is_withdrawn:
                return application
        return None

    def accepted_application(self):
        for application in self.applications:
            if application.status == 'accepted':
                return application
        return None
