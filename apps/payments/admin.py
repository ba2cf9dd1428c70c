from django.contrib import admin
from .models import PaymentOrder


@admin.register(PaymentOrder)
class PaymentOrderAdmin(admin.ModelAdmin):
    list_display = ('tx_ref', 'contract', 'payer', 'amount', 'currency', 'payment_type', 'status', 'created_at')
    list_filter = ('status', 'payment_type')
    search_fields = ('tx_ref', 'external_order_id', 'external_tx_id', 'payer__email')
    readonly_fields = ('tx_ref', 'external_order_id', 'external_tx_id', 'created_at', 'updated_at')
