from django.urls import path

from apps.recommendations.views import JobWorkerRecommendationView, WorkerJobRecommendationView
from .views import (
    ApplicationDecisionView, EmployerJobsView, JobApplyView, JobCloseView,
    JobDetailView, JobListCreateView, JobWithdrawView, WorkerApplicationsView,
)

urlpatterns = [
    path('', JobListCreateView.as_view(), name='job_list_create'),
    path('mine/', EmployerJobsView.as_view(), name='employer_jobs'),
    path('applications/mine/', WorkerApplicationsView.as_view(), name='worker_applications'),
    path('recommendations/', WorkerJobRecommendationView.as_view(), name='worker_job_recommendations'),
    path('<uuid:job_id>/', JobDetailView.as_view(), name='job_detail'),
    path('<uuid:job_id>/apply/', JobApplyView.as_view(), name='job_apply'),
    path('<uuid:job_id>/withdraw/', JobWithdrawView.as_view(), name='job_withdraw'),
    path('<uuid:job_id>/applications/<int:worker_id>/', ApplicationDecisionView.as_view(), name='job_application_decision'),
    path('<uuid:job_id>/close/', JobCloseView.as_view(), name='job_close'),
    path('<uuid:job_id>/recommended-workers/', JobWorkerRecommendationView.as_view(), name='job_recommended_workers'),
]
