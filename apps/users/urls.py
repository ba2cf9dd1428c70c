from django.urls import path
from .views import (
    AuthLoginView, AuthRegisterView, AuthVerifyView, CertifySkillView,
    EducationUpdateView, ExperienceUpdateView, MeView, RateUserView,
    SkillsUpdateView, WalletTransactionsView, WalletView, WorkerDetailView,
    WorkerListView,
)

urlpatterns = [
    # Authentication
    path('auth/register/', AuthRegisterView.as_view(), name='auth_register'),
    path('auth/verify/', AuthVerifyView.as_view(), name='auth_verify'),
    path('auth/login/', AuthLoginView.as_view(), name='auth_login'),

    # Profile Management
    path('me/', MeView.as_view(), name='user_me'),
    path('skills/', SkillsUpdateView.as_view(), name='user_skills'),
    path('experience/', ExperienceUpdateView.as_view(), name='user_experience'),
    path('education/', EducationUpdateView.as_view(), name='user_education'),
    path('certify/', CertifySkillView.as_view(), name='user_certify'),

    # Browsing
    path('workers/', WorkerListView.as_view(), name='worker_list'),
    path('workers/<int:user_id>/', WorkerDetailView.as_view(), name='worker_detail'),

    # Wallet
    path('wallet/', WalletView.as_view(), name='wallet'),
    path('wallet/transactions/', WalletTransactionsView.as_view(), name='wallet_transactions'),

    # Rating
    path('<int:user_id>/rate/', RateUserView.as_view(), name='user_rate'),
]
