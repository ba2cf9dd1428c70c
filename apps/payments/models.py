from django.conf import settings
from django.db import models

from core.constants import PAYMENT_ORDER_STATUS_CHOICES, PAYMENT_TYPE_CHOICES


class PaymentOrder(models.Model):
    """
    One attempt to collect money for a contract through the payment gateway.

    Stays ``pending`` until the gateway gives a definitive answer; a timeout
    never moves it to ``failed``.
    """
    contract = models.ForeignKey('contracts.Contract', on_delete=models.CASCADE, related_name='payment_orders')
    payer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='payment_orders')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default='INR')
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES, default='milestone')
    milestone_index = models.PositiveIntegerField(null=True, blank=True)
    description = models.CharField(max_length=255, blank=True, default='')
    tx_ref = models.CharField(max_length=100, unique=True)
    external_order_id = models.CharField(max_length=100, null=True, blank=True)
    external_tx_id = models.CharField(max_length=100, null=True, blank=True)
    status = models.CharField(max_length=20, choices=PAYMENT_ORDER_STATUS_CHOICES, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Order {self.tx_ref} - {self.amount} {self.currency} ({self.status})"
