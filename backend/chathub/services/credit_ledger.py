"""
Credit ledger: the only code path that changes a user's spendable balance
as a side effect of chatting.
"""
from decimal import Decimal
from typing import Tuple
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import F
from chathub.core.config import MINIMUM_CREDITS
from chathub.core.errors import InsufficientCreditsError, NotFoundError
from chathub.core.logging import get_logger

User = get_user_model()
logger = get_logger(__name__)


def get_balance(user_id: int) -> Decimal:
    """Current credit balance of a user."""
    balance = User.objects.filter(id=user_id).values_list('credits_remaining', flat=True).first()
    if balance is None:
        raise NotFoundError("User not found")
    return balance


def has_at_least(user_id: int, threshold: Decimal = MINIMUM_CREDITS) -> bool:
    """Whether the user's balance covers the threshold."""
    return User.objects.filter(id=user_id, credits_remaining__gte=threshold).exists()


def require_minimum_balance(user_id: int, threshold: Decimal = MINIMUM_CREDITS) -> None:
    """Raise InsufficientCreditsError unless the balance covers the threshold."""
    if not has_at_least(user_id, threshold):
        logger.info(f"Rejected request from user {user_id}: balance below {threshold}")
        raise InsufficientCreditsError(
            f"Insufficient credits. A minimum balance of {threshold} credits is required."
        )


def debit(user_id: int, amount: Decimal, tokens: int = 0) -> Decimal:
    """
    Deduct credits from a user's balance.

    The decrement is a single conditional UPDATE, so concurrent requests can
    never drive the balance below zero.

    Args:
        user_id: User ID
        amount: Credits to deduct (>= 0)
        tokens: Tokens consumed, added to the cumulative usage counter

    Returns:
        Balance after the debit

    Raises:
        InsufficientCreditsError: Balance is lower than amount
    """
    if amount < 0:
        raise ValueError("Debit amount must be non-negative")

    updates = {'credits_remaining': F('credits_remaining') - amount}
    if tokens > 0:
        updates['token_usage_count'] = F('token_usage_count') + tokens

    updated = User.objects.filter(id=user_id, credits_remaining__gte=amount).update(**updates)
    if not updated:
        logger.warning(f"Debit of {amount} credits refused for user {user_id}")
        raise InsufficientCreditsError("Insufficient credits to complete this request.")

    balance = get_balance(user_id)
    logger.debug(f"Debited {amount} credits from user {user_id}, balance now {balance}")
    return balance


def settle(user_id: int, amount: Decimal, tokens: int = 0) -> Tuple[Decimal, Decimal]:
    """
    Deduct up to ``amount`` credits, capping at the available balance.

    Used for multi-call sessions whose total cost is only known at the end,
    after the work has already been delivered.

    Returns:
        Tuple of (credits actually charged, balance after the charge)
    """
    with transaction.atomic():
        user = User.objects.select_for_update().only('id', 'credits_remaining').get(id=user_id)
        charged = max(Decimal('0'), min(amount, user.credits_remaining))
        if charged < amount:
            logger.warning(
                f"User {user_id} balance {user.credits_remaining} short of settlement {amount}; "
                f"charging {charged}"
            )
        updates = {'credits_remaining': F('credits_remaining') - charged}
        if tokens > 0:
            updates['token_usage_count'] = F('token_usage_count') + tokens
        User.objects.filter(id=user_id).update(**updates)

    return charged, get_balance(user_id)


def set_balance(user_id: int, amount: Decimal) -> None:
    """Overwrite the balance (plan activation and cancellation only)."""
    User.objects.filter(id=user_id).update(credits_remaining=amount)
    logger.info(f"Set credit balance of user {user_id} to {amount}")
