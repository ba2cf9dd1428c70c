from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone

from core.constants import ROLE_CHOICES, WALLET_TRANSACTION_TYPE_CHOICES


class User(AbstractUser):
    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=15, blank=True, null=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    is_verified = models.BooleanField(default=False)
    blockchain_address = models.CharField(max_length=42, unique=True, blank=True, null=True)

    avatar = models.URLField(blank=True, default='')
    bio = models.TextField(blank=True, default='')
    location = models.CharField(max_length=200, blank=True, default='')
    # [{name, level, certified, certificate_hash, tx_id}], unique by name
    skills = models.JSONField(default=list, blank=True)
    # [{title, company, duration, description}]
    experience = models.JSONField(default=list, blank=True)
    # [{degree, institution, year}]
    education = models.JSONField(default=list, blank=True)

    wallet_balance = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    rating_average = models.FloatField(default=0)
    rating_count = models.PositiveIntegerField(default=0)

    @property
    def is_worker(self):
        return self.role == 'worker'

    @property
    def is_employer(self):
        return self.role == 'employer'

    @property
    def rating(self):
        return {'average': round(self.rating_average, 2), 'count': self.rating_count}

    @staticmethod
    def get_by_identifier(identifier):
        return User.objects.filter(
            models.Q(email__iexact=identifier) | models.Q(username__iexact=identifier)
        ).first()

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.get_full_name() or self.username} ({self.role})"


class WalletTransaction(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='wallet_transactions')
    type = models.CharField(max_length=10, choices=WALLET_TRANSACTION_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255, blank=True, default='')
    transaction_id = models.CharField(max_length=100, blank=True, default='')
    timestamp = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self):
        return f"{self.type} {self.amount} for {self.user.username}"


class VerificationToken(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE)
    code = models.CharField(max_length=6)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    is_used = models.BooleanField(default=False)

    def save(self, *args, **kwargs):
        if not self.expires_at:
            self.expires_at = timezone.now() + timezone.timedelta(minutes=10)
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return timezone.now() > self.expires_at

    def __str__(self):
        return f"Verification token for {self.user.username}"
