"""
Identity store operations. Wallet and rating changes take a row lock on the
user so that concurrent credits, debits and ratings serialize.
"""
import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.db.models import F

from core.constants import is_valid_rating
from core.exceptions import DomainError, NotFoundError, ValidationError
from core.results import ServiceResult
from . import skills as skill_ops
from .models import User, WalletTransaction

logger = logging.getLogger(__name__)


def _locked_user(user_id):
    try:
        return User.objects.select_for_update().get(pk=user_id, is_active=True)
    except User.DoesNotExist:
        raise NotFoundError('User not found')


def credit_wallet(user_id, amount, description, transaction_id=''):
    """Add ``amount`` to the wallet. Raises on failure; callers decide what that means."""
    amount = Decimal(str(amount))
    if amount <= 0:
        raise ValidationError('Credit amount must be positive.')
    with transaction.atomic():
        _locked_user(user_id)
        User.objects.filter(pk=user_id).update(wallet_balance=F('wallet_balance') + amount)
        entry = WalletTransaction.objects.create(
            user_id=user_id,
            type='credit',
            amount=amount,
            description=description,
            transaction_id=transaction_id or '',
        )
    logger.info(f"Credited {amount} to wallet of user {user_id} ({transaction_id})")
    return entry


def withdraw(user_id, amount, bank_details=None):
    try:
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError('Withdrawal amount must be positive.')
        with transaction.atomic():
            user = _locked_user(user_id)
            if user.wallet_balance < amount:
                raise ValidationError('Insufficient balance', balance=str(user.wallet_balance))
            User.objects.filter(pk=user_id).update(wallet_balance=F('wallet_balance') - amount)
            entry = WalletTransaction.objects.create(
                user_id=user_id,
                type='debit',
                amount=amount,
                description='Withdrawal to bank account',
                transaction_id=f"withdraw-{user_id}-{uuid.uuid4().hex[:8]}",
            )
        user.refresh_from_db()
    except DomainError as e:
        return ServiceResult.fail(e)
    logger.info(f"User {user_id} withdrew {amount} (bank details provided: {bool(bank_details)})")
    return ServiceResult.ok({'new_balance': user.wallet_balance, 'withdrawal_amount': amount, 'transaction': entry})


def rate_user(user_id, rater, rating):
    """
    Fold one rating into the user's running average. Independent of any
    contract rating; callers run it as its own operation.
    """
    try:
        if not is_valid_rating(rating):
            raise ValidationError('Rating must be between 1 and 5')
        if rater.pk == int(user_id):
            raise ValidationError('You cannot rate yourself.')
        with transaction.atomic():
            user = _locked_user(user_id)
            total = user.rating_average * user.rating_count + rating
            user.rating_count += 1
            user.rating_average = total / user.rating_count
            user.save(update_fields=['rating_average', 'rating_count'])
    except DomainError as e:
        return ServiceResult.fail(e)
    return ServiceResult.ok(user.rating)


def update_skills(user, submitted):
    try:
        with transaction.atomic():
            locked = _locked_user(user.pk)
            locked.skills = skill_ops.replace_skills(locked.skills, submitted)
            locked.save(update_fields=['skills'])
    except DomainError as e:
        return ServiceResult.fail(e)
    return ServiceResult.ok(locked.skills)


def certify_skill(user_id, skill_name, certificate_hash, tx_id):
    """Store an externally issued certification verbatim against the named skill."""
    try:
        with transaction.atomic():
            user = _locked_user(user_id)
            user.skills = skill_ops.certify_skill(user.skills, skill_name, certificate_hash, tx_id)
            user.save(update_fields=['skills'])
    except DomainError as e:
        return ServiceResult.fail(e)
    logger.info(f"Stored certification of '{skill_name}' for user {user_id} (tx {tx_id})")
    return ServiceResult.ok(skill_ops.find_skill(user.skills, skill_name))
