import logging
import random
import re

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.cache import cache
from django.db.models import Q
from django.utils import timezone
from rest_framework import serializers

from core.constants import ROLE_CHOICES, SKILL_LEVEL_CHOICES
from core.notifications import send_notification
from .models import VerificationToken, WalletTransaction

User = get_user_model()
logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r'^0x[0-9a-fA-F]{40}$')


def is_blockchain_address(value):
    return bool(value) and bool(ADDRESS_RE.match(value))


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(max_length=128, write_only=True)
    role = serializers.ChoiceField(choices=ROLE_CHOICES)

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'first_name', 'last_name', 'role', 'phone_number']
        read_only_fields = ['id']

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already in use.")
        return value

    def validate_phone_number(self, value):
        if value and not re.match(r'^\+\d{9,15}$', value):
            raise serializers.ValidationError("Invalid phone number format.")
        return value

    def validate(self, data):
        validate_password(data['password'], User(email=data.get('email'), first_name=data.get('first_name', '')))
        return data

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(username=validated_data['email'], **validated_data)
        user.set_password(password)
        user.save()
        code = str(random.randint(100000, 999999))
        VerificationToken.objects.create(user=user, code=code)
        send_notification(
            user,
            "SkillChain Verification Code",
            f"Your verification code is: {code}\nThis code expires in 10 minutes.",
            f"Your SkillChain verification code is: {code}",
        )
        logger.info(f"Registered {user.role} {user.email}")
        return user


class VerifyAccountSerializer(serializers.Serializer):
    email = serializers.EmailField()
    code = serializers.CharField(max_length=6)

    def validate(self, data):
        user = User.objects.filter(email__iexact=data['email']).first()
        if not user:
            raise serializers.ValidationError({"email": "User not found."})
        token = VerificationToken.objects.filter(user=user, code=data['code'], is_used=False).order_by('-created_at').first()
        if not token or token.is_expired:
            raise serializers.ValidationError({"code": "Invalid or expired verification code."})
        data['user'] = user
        data['token'] = token
        return data

    def save(self):
        user = self.validated_data['user']
        token = self.validated_data['token']
        token.is_used = True
        token.save(update_fields=['is_used'])
        user.is_verified = True
        user.save(update_fields=['is_verified'])
        return user


class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(max_length=255, trim_whitespace=True)
    password = serializers.CharField(max_length=128, write_only=True)

    def validate(self, data):
        identifier = data.get('identifier').strip().lower()
        password = data.get('password')
        cache_key = f'login_attempts_{identifier}'
        attempts = cache.get(cache_key, 0)
        if attempts >= 5:
            logger.warning(f"Too many login attempts for {identifier}")
            raise serializers.ValidationError("Too many login attempts. Please try again in 15 minutes.")
        user = User.objects.filter(
            Q(email__iexact=identifier) | Q(username__iexact=identifier)
        ).first()
        if not user or not user.check_password(password):
            logger.warning(f"Failed login for identifier: {identifier}")
            cache.set(cache_key, attempts + 1, 900)
            raise serializers.ValidationError("Invalid credentials.")
        if not user.is_active:
            logger.warning(f"Login attempt on deactivated account: {user.email}")
            raise serializers.ValidationError("Account is deactivated.")
        cache.delete(cache_key)
        data['user'] = user
        return data

    def save(self):
        user = self.validated_data['user']
        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        return user


class SkillSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    level = serializers.ChoiceField(choices=SKILL_LEVEL_CHOICES, required=False, allow_null=True)
    certified = serializers.BooleanField(read_only=True)
    certificate_hash = serializers.CharField(read_only=True, allow_null=True)
    tx_id = serializers.CharField(read_only=True, allow_null=True)


class SkillsUpdateSerializer(serializers.Serializer):
    skills = SkillSerializer(many=True)


class ExperienceSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    company = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')
    duration = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True, default='')


class EducationSerializer(serializers.Serializer):
    degree = serializers.CharField(max_length=200)
    institution = serializers.CharField(max_length=200)
    year = serializers.IntegerField(min_value=1900, max_value=2100, required=False, allow_null=True)


class ExperienceUpdateSerializer(serializers.Serializer):
    experience = ExperienceSerializer(many=True)


class EducationUpdateSerializer(serializers.Serializer):
    education = EducationSerializer(many=True)


class UserSerializer(serializers.ModelSerializer):
    """Public view of a user; what other parties may see."""
    name = serializers.SerializerMethodField()
    rating = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'name', 'first_name', 'last_name', 'role', 'avatar', 'bio', 'location',
            'skills', 'experience', 'education', 'rating', 'is_verified', 'blockchain_address',
        ]
        read_only_fields = fields

    def get_name(self, obj):
        return obj.get_full_name() or obj.username

    def get_rating(self, obj):
        return obj.rating


class ProfileSerializer(UserSerializer):
    """The authenticated user's own profile, including wallet balance."""

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['email', 'phone_number', 'wallet_balance', 'date_joined']
        read_only_fields = [
            'id', 'name', 'role', 'skills', 'experience', 'education', 'rating',
            'is_verified', 'email', 'wallet_balance', 'date_joined',
        ]

    def validate_blockchain_address(self, value):
        if value in (None, ''):
            return None
        if not is_blockchain_address(value):
            raise serializers.ValidationError("Valid blockchain address is required.")
        if User.objects.filter(blockchain_address__iexact=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("Address already linked to another account.")
        return value


class CertifySkillSerializer(serializers.Serializer):
    skill_name = serializers.CharField(max_length=100)
    certificate_hash = serializers.CharField(max_length=128)
    tx_id = serializers.CharField(max_length=128)


class WalletTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WalletTransaction
        fields = ['id', 'type', 'amount', 'description', 'transaction_id', 'timestamp']
        read_only_fields = fields


class RatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField()
    review = serializers.CharField(required=False, allow_blank=True, default='')
