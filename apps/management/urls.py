from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'reconciliation', views.ReconciliationRecordViewSet, basename='reconciliation')
router.register(r'management-logs', views.ManagementLogViewSet, basename='management-logs')

urlpatterns = [
    path('', include(router.urls)),
]
