from django.urls import path
from .views import (
    ContractPaymentsView, CreateOrderView, MilestoneOrderView, PaymentCallbackView,
    PaymentHistoryView, VerifyPaymentView, WithdrawView,
)

urlpatterns = [
    path('orders/', CreateOrderView.as_view(), name='payment_order_create'),
    path('milestones/<uuid:contract_id>/', MilestoneOrderView.as_view(), name='payment_milestone_order'),
    path('verify/', VerifyPaymentView.as_view(), name='payment_verify'),
    path('callback/', PaymentCallbackView.as_view(), name='payment_callback'),
    path('contracts/<uuid:contract_id>/', ContractPaymentsView.as_view(), name='contract_payments'),
    path('history/', PaymentHistoryView.as_view(), name='payment_history'),
    path('withdraw/', WithdrawView.as_view(), name='payment_withdraw'),
]
