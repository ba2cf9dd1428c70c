from django.contrib import admin
from .models import User, VerificationToken, WalletTransaction


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'email', 'role', 'is_verified', 'is_active', 'wallet_balance', 'rating_average')
    list_filter = ('role', 'is_verified', 'is_active')
    search_fields = ('username', 'email', 'phone_number')


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ('user', 'type', 'amount', 'transaction_id', 'timestamp')
    list_filter = ('type',)
    search_fields = ('user__email', 'transaction_id')


@admin.register(VerificationToken)
class VerificationTokenAdmin(admin.ModelAdmin):
    list_display = ('user', 'code', 'created_at', 'expires_at', 'is_used')
    search_fields = ('user__username', 'code')
    list_filter = ('is_used', 'expires_at')
