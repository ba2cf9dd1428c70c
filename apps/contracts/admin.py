from django.contrib import admin
from .models import Contract


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('id', 'job', 'employer', 'worker', 'amount', 'status', 'payment_status', 'total_paid', 'version')
    list_filter = ('status', 'payment_status')
    search_fields = ('job__title', 'employer__email', 'worker__email')
    readonly_fields = ('version', 'created_at', 'updated_at')
