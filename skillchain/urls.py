from django.contrib import admin
from django.urls import path, include
from drf_yasg.views import get_schema_view
from drf_yasg import openapi
from rest_framework import permissions

schema_view = get_schema_view(
    openapi.Info(
        title="SkillChain API",
        default_version='v1',
        description="API for the SkillChain freelance marketplace",
    ),
    public=True,
    permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path('', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('admin/', admin.site.urls),
    path('users/', include('apps.users.urls')),
    path('jobs/', include('apps.jobs.urls')),
    path('contracts/', include('apps.contracts.urls')),
    path('payments/', include('apps.payments.urls')),
    path('certifications/', include('apps.certifications.urls')),
    path('management/', include('apps.management.urls')),
]
