from django.urls import path
from .views import (
    BatchCertifyView, CertifyView, GenerateHashView, UserCertificationsView, VerifyCertificationView,
)

urlpatterns = [
    path('hash/', GenerateHashView.as_view(), name='certification_hash'),
    path('certify/', CertifyView.as_view(), name='certification_certify'),
    path('batch-certify/', BatchCertifyView.as_view(), name='certification_batch'),
    path('verify/<int:user_id>/<str:skill>/', VerifyCertificationView.as_view(), name='certification_verify'),
    path('users/<int:user_id>/', UserCertificationsView.as_view(), name='user_certifications'),
]
