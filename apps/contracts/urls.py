from django.urls import path
from .views import (
    ContractAwardView, ContractDetailView, ContractMessageView, ContractRateView,
    ContractStatusView, DeliverableCreateView, DeliverableReviewView,
    DisputeCreateView, DisputeResolveView, MilestoneCreateView,
    MilestoneStatusView, MyContractsView,
)

urlpatterns = [
    path('', ContractAwardView.as_view(), name='contract_award'),
    path('mine/', MyContractsView.as_view(), name='my_contracts'),
    path('<uuid:contract_id>/', ContractDetailView.as_view(), name='contract_detail'),
    path('<uuid:contract_id>/status/', ContractStatusView.as_view(), name='contract_status'),
    path('<uuid:contract_id>/milestones/', MilestoneCreateView.as_view(), name='contract_milestones'),
    path('<uuid:contract_id>/milestones/<int:index>/', MilestoneStatusView.as_view(), name='contract_milestone_status'),
    path('<uuid:contract_id>/deliverables/', DeliverableCreateView.as_view(), name='contract_deliverables'),
    path('<uuid:contract_id>/deliverables/<int:index>/', DeliverableReviewView.as_view(), name='contract_deliverable_review'),
    path('<uuid:contract_id>/messages/', ContractMessageView.as_view(), name='contract_messages'),
    path('<uuid:contract_id>/rate/', ContractRateView.as_view(), name='contract_rate'),
    path('<uuid:contract_id>/disputes/', DisputeCreateView.as_view(), name='contract_disputes'),
    path('<uuid:contract_id>/disputes/<int:index>/resolve/', DisputeResolveView.as_view(), name='contract_dispute_resolve'),
]
