from rest_framework import serializers

from apps.users.serializers import UserSerializer
from .models import ManagementLog, ReconciliationRecord


class ManagementLogSerializer(serializers.ModelSerializer):
    admin = UserSerializer(read_only=True)

    class Meta:
        model = ManagementLog
        fields = ['id', 'admin', 'action', 'details', 'timestamp']
        read_only_fields = fields


class ReconciliationRecordSerializer(serializers.ModelSerializer):
    resolved_by = UserSerializer(read_only=True)

    class Meta:
        model = ReconciliationRecord
        fields = [
            'id', 'kind', 'job_id', 'contract_id', 'user', 'payload', 'error_message',
            'resolved', 'resolved_by', 'resolution_note', 'resolved_at', 'created_at',
        ]
        read_only_fields = fields


class ResolveReconciliationSerializer(serializers.Serializer):
    resolution_note = serializers.CharField()
