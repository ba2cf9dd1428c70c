from django.contrib import admin
from .models import ManagementLog, ReconciliationRecord


@admin.register(ReconciliationRecord)
class ReconciliationRecordAdmin(admin.ModelAdmin):
    list_display = ('kind', 'job_id', 'contract_id', 'user', 'resolved', 'created_at')
    list_filter = ('kind', 'resolved')
    search_fields = ('error_message', 'resolution_note')
    readonly_fields = ('kind', 'job_id', 'contract_id', 'user', 'payload', 'error_message', 'created_at')


@admin.register(ManagementLog)
class ManagementLogAdmin(admin.ModelAdmin):
    list_display = ('admin', 'action', 'timestamp')
    list_filter = ('action',)
    search_fields = ('details',)
