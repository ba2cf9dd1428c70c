import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.utils import IsSuperuser
from .models import ManagementLog, ReconciliationRecord
from .serializers import (
    ManagementLogSerializer, ReconciliationRecordSerializer, ResolveReconciliationSerializer,
)
from .services import log_admin_action

logger = logging.getLogger(__name__)


class ReconciliationRecordViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Queue of partially applied awards and payments.
    Only accessible to superusers.
    """
    queryset = ReconciliationRecord.objects.select_related('resolved_by')
    serializer_class = ReconciliationRecordSerializer
    permission_classes = [IsAuthenticated, IsSuperuser]

    def get_queryset(self):
        queryset = super().get_queryset()
        resolved = self.request.query_params.get('resolved')
        if resolved is not None:
            queryset = queryset.filter(resolved=resolved.lower() in ('1', 'true', 'yes'))
        kind = self.request.query_params.get('kind')
        if kind:
            queryset = queryset.filter(kind=kind)
        return queryset

    @swagger_auto_schema(manual_parameters=[
        openapi.Parameter('resolved', openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN),
        openapi.Parameter('kind', openapi.IN_QUERY, type=openapi.TYPE_STRING),
    ])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @swagger_auto_schema(request_body=ResolveReconciliationSerializer, responses={200: ReconciliationRecordSerializer})
    @action(detail=True, methods=['post'])
    def resolve(self, request, pk=None):
        record = self.get_object()
        if record.resolved:
            return Response({'error': 'Record already resolved'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = ResolveReconciliationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        note = serializer.validated_data['resolution_note']
        record.mark_resolved(request.user, note)
        log_admin_action(request.user, 'resolve_reconciliation', f"Resolved {record.kind} record {record.pk}: {note}")
        logger.info(f"Reconciliation record {record.pk} resolved by {request.user.pk}")
        return Response(ReconciliationRecordSerializer(record).data)


class ManagementLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Audit trail of administrative actions."""
    queryset = ManagementLog.objects.select_related('admin')
    serializer_class = ManagementLogSerializer
    permission_classes = [IsAuthenticated, IsSuperuser]
