from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils import timezone


class ManagementLog(models.Model):
    """Log administrative actions (dispute resolution, reconciliation)."""
    admin = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE)
    action = models.CharField(max_length=100)
    details = models.TextField()
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.admin.username} - {self.action} at {self.timestamp}"


class ReconciliationRecord(models.Model):
    """
    A cross-aggregate operation whose first write committed and whose second
    did not. Nothing retries these automatically; an operator resolves them.
    """
    KIND_CHOICES = [
        ('partial_award', 'Partial Award'),
        ('partial_payment', 'Partial Payment'),
    ]

    kind = models.CharField(max_length=30, choices=KIND_CHOICES)
    job_id = models.UUIDField(null=True, blank=True)
    contract_id = models.UUIDField(null=True, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    payload = models.JSONField(default=dict, encoder=DjangoJSONEncoder)
    error_message = models.TextField()
    resolved = models.BooleanField(default=False)
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='resolved_reconciliations'
    )
    resolution_note = models.TextField(blank=True, default='')
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.kind} ({'resolved' if self.resolved else 'open'}) at {self.created_at}"

    def mark_resolved(self, admin, note=''):
        self.resolved = True
        self.resolved_by = admin
        self.resolution_note = note
        self.resolved_at = timezone.now()
        self.save()
