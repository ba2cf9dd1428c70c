from rest_framework import serializers

from apps.contracts.serializers import MilestoneInputSerializer
from apps.users.serializers import UserSerializer
from core.constants import JOB_CATEGORY_CHOICES, JOB_DURATION_CHOICES, SKILL_LEVEL_CHOICES
from .models import Job


class RequiredSkillSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    level = serializers.ChoiceField(choices=SKILL_LEVEL_CHOICES, required=False, allow_null=True, default=None)


class JobWriteSerializer(serializers.Serializer):
    """Shape check only; business rules (budget order, skill uniqueness) live in the job engine."""
    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    category = serializers.ChoiceField(choices=JOB_CATEGORY_CHOICES)
    required_skills = RequiredSkillSerializer(many=True, allow_empty=True)
    budget_min = serializers.DecimalField(max_digits=12, decimal_places=2)
    budget_max = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField(max_length=3, required=False, default='INR')
    duration = serializers.ChoiceField(choices=JOB_DURATION_CHOICES)
    location = serializers.CharField(max_length=200, required=False, default='remote')
    requirements = serializers.DictField(required=False, default=dict)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False, default=list)


class JobSerializer(serializers.ModelSerializer):
    employer = UserSerializer(read_only=True)
    applications = serializers.SerializerMethodField()

    class Meta:
        model = Job
        fields = [
            'id', 'employer', 'title', 'description', 'category', 'required_skills',
            'budget_min', 'budget_max', 'currency', 'duration', 'location', 'requirements',
            'tags', 'status', 'applications', 'applications_count', 'selected_worker',
            'contract_id', 'views', 'is_active', 'version', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_applications(self, obj):
        """The owner sees every application; anyone else sees only their own."""
        request = self.context.get('request')
        if request is None:
            return []
        if request.user.pk == obj.employer_id:
            return obj.applications
        return [a for a in obj.applications if a['worker_id'] == request.user.pk]


class ApplySerializer(serializers.Serializer):
    proposal = serializers.CharField(required=False, allow_blank=True, default='')
    bid_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    estimated_duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')


class ApplicationDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['accepted', 'rejected'])
    # Contract terms, used only when accepting
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    milestones = MilestoneInputSerializer(many=True, required=False, default=list)


class CloseJobSerializer(serializers.Serializer):
    outcome = serializers.ChoiceField(choices=['completed', 'cancelled'])
