from rest_framework import serializers

from apps.users.serializers import UserSerializer
from core.constants import (
    CONTRACT_STATUS_CHOICES, MESSAGE_TYPE_CHOICES, MILESTONE_STATUS_CHOICES,
)
from .models import Contract


class MilestoneInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    due_date = serializers.DateField(required=False, allow_null=True, default=None)


class AwardContractSerializer(serializers.Serializer):
    job_id = serializers.UUIDField()
    worker_id = serializers.IntegerField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    milestones = MilestoneInputSerializer(many=True, required=False, default=list)


class ContractStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=CONTRACT_STATUS_CHOICES)


class MilestoneStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MILESTONE_STATUS_CHOICES)


class DeliverableSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    file_url = serializers.URLField(required=False, allow_blank=True, default='')


class DeliverableReviewSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
    feedback = serializers.CharField(required=False, allow_blank=True, default='')


class MessageSerializer(serializers.Serializer):
    message = serializers.CharField()
    type = serializers.ChoiceField(choices=MESSAGE_TYPE_CHOICES, default='text')


class ContractRatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField()
    review = serializers.CharField(required=False, allow_blank=True, default='')


class DisputeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class DisputeResolutionSerializer(serializers.Serializer):
    resolution = serializers.CharField()
    target_status = serializers.ChoiceField(choices=['active', 'paused', 'completed', 'cancelled'])


class ContractSerializer(serializers.ModelSerializer):
    employer = UserSerializer(read_only=True)
    worker = UserSerializer(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True)

    class Meta:
        model = Contract
        fields = [
            'id', 'job', 'job_title', 'employer', 'worker', 'amount', 'currency', 'duration',
            'milestones', 'status', 'payment_status', 'total_paid', 'payments', 'deliverables',
            'messages', 'disputes', 'ratings', 'start_date', 'end_date', 'actual_end_date',
            'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ContractListSerializer(serializers.ModelSerializer):
    employer = UserSerializer(read_only=True)
    worker = UserSerializer(read_only=True)
    job_title = serializers.CharField(source='job.title', read_only=True)

    class Meta:
        model = Contract
        fields = [
            'id', 'job', 'job_title', 'employer', 'worker', 'amount', 'currency',
            'status', 'payment_status', 'total_paid', 'created_at',
        ]
        read_only_fields = fields
