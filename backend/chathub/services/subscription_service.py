"""
Subscription lifecycle: plan activation, downgrade scheduling, restore and
cancellation, plus the Stripe webhook handlers that drive them.

Only Active and Pending Downgrade subscriptions grant plan benefits; a user
holds at most one of them at a time.
"""

import calendar
import json
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
import stripe
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from chathub.core.config import STRIPE_SECRET_KEY, FREE_TIER_REF
from chathub.core.errors import NotFoundError, UpstreamError, ValidationError
from chathub.core.logging import get_logger
from chathub.db.models.plan import Plan
from chathub.db.models.subscription import Subscription
from chathub.db.models.credit_transaction import CreditTransaction
from chathub.services import credit_ledger

User = get_user_model()
logger = get_logger(__name__)

FREE_PLAN_NAME = "Free"
FREE_TIER_END_DATE = datetime(2099, 12, 31, tzinfo=dt_timezone.utc)

# (name, monthly price, credits per month)
DEFAULT_PLANS = [
    (FREE_PLAN_NAME, Decimal('0'), Decimal('10')),
    ("Starter", Decimal('9.99'), Decimal('1000')),
    ("Pro", Decimal('19.99'), Decimal('2500')),
]


def _stripe():
    stripe.api_key = STRIPE_SECRET_KEY
    return stripe


def add_one_month(value: datetime) -> datetime:
    """Same day next month, clamped to the month's last day."""
    year = value.year + value.month // 12
    month = value.month % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _as_dict(obj) -> Dict[str, Any]:
    """Stripe payload as a plain dict; dicts pass through unchanged."""
    if isinstance(obj, dict):
        return obj
    return obj.to_dict()


def _from_epoch(value) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def _period_end(stripe_subscription) -> datetime:
    """Current period end of a Stripe subscription (top level or first item)."""
    period_end = stripe_subscription.get("current_period_end")
    if not period_end:
        items = (stripe_subscription.get("items") or {}).get("data") or []
        if items:
            period_end = items[0].get("current_period_end")
    return _from_epoch(period_end) or add_one_month(timezone.now())


def is_free_subscription(subscription: Subscription) -> bool:
    return not subscription.provider_ref or subscription.provider_ref == FREE_TIER_REF


def get_plans() -> List[Plan]:
    """All plans, cheapest first."""
    return list(Plan.objects.order_by('price'))


def get_free_plan() -> Plan:
    plan = Plan.objects.filter(price=0).order_by('id').first()
    if plan is None:
        _, price, credits = DEFAULT_PLANS[0]
        plan, _ = Plan.objects.get_or_create(
            name=FREE_PLAN_NAME,
            defaults={'price': price, 'credits_per_month': credits},
        )
    return plan


def get_open_subscription(user_id: int) -> Optional[Subscription]:
    """The user's Active or Pending Downgrade subscription, if any."""
    return (
        Subscription.objects.select_related('plan')
        .filter(user_id=user_id, status__in=Subscription.OPEN_STATUSES)
        .order_by('-created_at')
        .first()
    )


def get_current_plan_info(user_id: int) -> Dict[str, Any]:
    """Summary of the user's plan for the account page."""
    subscription = get_open_subscription(user_id)
    return {
        'planName': subscription.plan.name if subscription else FREE_PLAN_NAME,
        'status': subscription.status if subscription else None,
        'renewalDate': subscription.end_date.isoformat() if subscription else None,
        'isDowngradePending': bool(
            subscription and subscription.status == Subscription.STATUS_PENDING_DOWNGRADE
        ),
        'creditsRemaining': str(credit_ledger.get_balance(user_id)),
    }


def ensure_default_plans() -> List[Plan]:
    """Create the default plans that are missing; existing plans are left untouched."""
    for name, price, credits in DEFAULT_PLANS:
        Plan.objects.get_or_create(
            name=name,
            defaults={'price': price, 'credits_per_month': credits},
        )
    return get_plans()


def create_free_subscription(user_id: int, grant_credits: bool = True) -> Subscription:
    """
    Enroll the user in the free tier.

    Args:
        user_id: User ID
        grant_credits: Reset the balance to the free allowance and record it
    """
    now = timezone.now()
    plan = get_free_plan()
    with transaction.atomic():
        subscription = Subscription.objects.create(
            user_id=user_id,
            plan=plan,
            status=Subscription.STATUS_ACTIVE,
            start_date=now,
            end_date=FREE_TIER_END_DATE,
            payment_status=Subscription.PAYMENT_FREE,
            provider_ref=FREE_TIER_REF,
        )
        if grant_credits:
            CreditTransaction.objects.create(
                user_id=user_id,
                subscription=subscription,
                credits_deducted=credit_ledger.get_balance(user_id),
                credits_added=plan.credits_per_month,
                payment_method='free',
                description="Initial free plan credits",
            )
            credit_ledger.set_balance(user_id, plan.credits_per_month)
    logger.info(f"Created free subscription {subscription.id} for user {user_id}")
    return subscription


def _cancel_provider_subscription(subscription: Subscription) -> None:
    if is_free_subscription(subscription):
        return
    try:
        _stripe().Subscription.cancel(subscription.provider_ref)
    except stripe.StripeError as e:
        logger.error(
            f"Failed to cancel Stripe subscription {subscription.provider_ref}: {e}",
            exc_info=True,
        )


def activate_plan(
    user_id: int,
    plan: Plan,
    provider_ref: str,
    period_end: Optional[datetime] = None,
    provider_info: Optional[Dict[str, Any]] = None,
) -> Subscription:
    """
    Switch a user to a newly paid plan.

    Every open subscription is canceled (and its Stripe counterpart, unless it
    is the free tier), a new Active subscription is created, and the balance
    is reset to the plan's monthly allowance with an audit transaction.

    Args:
        user_id: User ID
        plan: Purchased plan
        provider_ref: Stripe subscription id
        period_end: End of the first billing period (defaults to one month)
        provider_info: Raw provider details kept for support

    Returns:
        The new Active subscription
    """
    now = timezone.now()
    previous = list(Subscription.objects.filter(user_id=user_id, status__in=Subscription.OPEN_STATUSES))
    for subscription in previous:
        if subscription.provider_ref != provider_ref:
            _cancel_provider_subscription(subscription)

    with transaction.atomic():
        Subscription.objects.filter(
            id__in=[s.id for s in previous]
        ).update(status=Subscription.STATUS_CANCELED, end_date=now, updated_at=now)

        subscription = Subscription.objects.create(
            user_id=user_id,
            plan=plan,
            status=Subscription.STATUS_ACTIVE,
            start_date=now,
            end_date=period_end or add_one_month(now),
            payment_status=Subscription.PAYMENT_PAID,
            provider_ref=provider_ref,
            provider_info=provider_info or {},
        )

        old_balance = credit_ledger.get_balance(user_id)
        CreditTransaction.objects.create(
            user_id=user_id,
            subscription=subscription,
            credits_deducted=old_balance,
            credits_added=plan.credits_per_month,
            payment_method='stripe',
            description=f"Plan activated: {plan.name}",
        )
        credit_ledger.set_balance(user_id, plan.credits_per_month)

    logger.info(
        f"Activated plan {plan.name} for user {user_id} "
        f"(subscription {subscription.id}, canceled {len(previous)} previous)"
    )
    return subscription


def request_downgrade(user_id: int) -> Subscription:
    """
    Schedule the end of the paid subscription at its current period end.

    The subscription keeps its benefits until ``end_date`` and becomes
    Pending Downgrade; it is never downgraded immediately.
    """
    subscription = get_open_subscription(user_id)
    if subscription is None:
        raise NotFoundError("No active subscription")
    if is_free_subscription(subscription):
        raise ValidationError("Already on the free plan")
    if subscription.status == Subscription.STATUS_PENDING_DOWNGRADE:
        return subscription

    try:
        _stripe().Subscription.modify(subscription.provider_ref, cancel_at_period_end=True)
    except stripe.StripeError as e:
        logger.error(f"Failed to schedule downgrade for user {user_id}: {e}", exc_info=True)
        raise UpstreamError("Payment provider rejected the downgrade") from e

    subscription.status = Subscription.STATUS_PENDING_DOWNGRADE
    subscription.save(update_fields=['status', 'updated_at'])
    logger.info(f"Downgrade of user {user_id} scheduled for {subscription.end_date.isoformat()}")
    return subscription


def restore_subscription(user_id: int) -> Subscription:
    """Withdraw a scheduled downgrade."""
    subscription = (
        Subscription.objects.select_related('plan')
        .filter(user_id=user_id, status=Subscription.STATUS_PENDING_DOWNGRADE)
        .order_by('-created_at')
        .first()
    )
    if subscription is None:
        raise NotFoundError("No pending downgrade to restore")

    try:
        _stripe().Subscription.modify(subscription.provider_ref, cancel_at_period_end=False)
    except stripe.StripeError as e:
        logger.error(f"Failed to restore subscription for user {user_id}: {e}", exc_info=True)
        raise UpstreamError("Payment provider rejected the restore") from e

    subscription.status = Subscription.STATUS_ACTIVE
    subscription.save(update_fields=['status', 'updated_at'])
    logger.info(f"Restored subscription {subscription.id} for user {user_id}")
    return subscription


def cancel_all_subscriptions(user_id: int) -> int:
    """
    Cancel every open subscription and zero the balance.

    Returns:
        Number of subscriptions canceled
    """
    now = timezone.now()
    subscriptions = list(Subscription.objects.filter(user_id=user_id, status__in=Subscription.OPEN_STATUSES))
    for subscription in subscriptions:
        _cancel_provider_subscription(subscription)

    with transaction.atomic():
        Subscription.objects.filter(id__in=[s.id for s in subscriptions]).update(
            status=Subscription.STATUS_CANCELED, end_date=now, updated_at=now
        )
        CreditTransaction.objects.create(
            user_id=user_id,
            credits_deducted=credit_ledger.get_balance(user_id),
            payment_method='stripe',
            description="All subscriptions canceled",
        )
        credit_ledger.set_balance(user_id, Decimal('0'))

    logger.info(f"Canceled {len(subscriptions)} subscriptions for user {user_id}")
    return len(subscriptions)


def _plan_for_product(product_id: str) -> Plan:
    plan = Plan.objects.filter(stripe_product_id=product_id).first()
    if plan is not None:
        return plan
    product = _as_dict(_stripe().Product.retrieve(product_id))
    plan = Plan.objects.filter(name__iexact=product.get('name', '')).first()
    if plan is None:
        raise NotFoundError(f"No plan configured for product {product_id}")
    return plan


def handle_checkout_completed(session) -> Subscription:
    """checkout.session.completed: activate the purchased plan."""
    user_id = session.get('client_reference_id') or (session.get('metadata') or {}).get('userId')
    subscription_id = session.get('subscription')
    if not user_id or not subscription_id:
        raise ValidationError("Checkout session is missing the user or subscription")
    if not User.objects.filter(id=user_id).exists():
        raise NotFoundError(f"User {user_id} not found")

    stripe_subscription = _as_dict(_stripe().Subscription.retrieve(subscription_id))
    price = stripe_subscription['items']['data'][0]['price']
    plan = _plan_for_product(price['product'])

    customer_id = stripe_subscription.get('customer')
    if customer_id:
        User.objects.filter(id=user_id).update(stripe_customer_id=customer_id)

    return activate_plan(
        int(user_id),
        plan,
        provider_ref=subscription_id,
        period_end=_period_end(stripe_subscription),
        provider_info={'customer': customer_id, 'price': price.get('id')},
    )


def handle_subscription_updated(stripe_subscription) -> Optional[Subscription]:
    """
    customer.subscription.updated: mirror cancel_at_period_end and the period end.

    Only open subscriptions are updated; a Canceled row stays Canceled. A
    Stripe status of canceled is handled like a deletion.
    """
    if stripe_subscription.get('status') == 'canceled':
        return handle_subscription_deleted(stripe_subscription)

    subscription = Subscription.objects.filter(
        provider_ref=stripe_subscription['id'],
        status__in=Subscription.OPEN_STATUSES,
    ).order_by('-created_at').first()
    if subscription is None:
        logger.warning(f"Update for unknown or closed Stripe subscription {stripe_subscription['id']}")
        return None

    subscription.status = (
        Subscription.STATUS_PENDING_DOWNGRADE
        if stripe_subscription.get('cancel_at_period_end')
        else Subscription.STATUS_ACTIVE
    )
    subscription.end_date = _period_end(stripe_subscription)
    subscription.save(update_fields=['status', 'end_date', 'updated_at'])
    logger.info(f"Subscription {subscription.id} is now {subscription.status} until {subscription.end_date.isoformat()}")
    return subscription


def handle_subscription_deleted(stripe_subscription) -> Optional[Subscription]:
    """customer.subscription.deleted: cancel it and fall back to the free tier."""
    subscription = Subscription.objects.filter(
        provider_ref=stripe_subscription['id'],
        status__in=Subscription.OPEN_STATUSES,
    ).first()
    if subscription is None:
        return None

    with transaction.atomic():
        subscription.status = Subscription.STATUS_CANCELED
        subscription.end_date = timezone.now()
        subscription.save(update_fields=['status', 'end_date', 'updated_at'])
        free_subscription = create_free_subscription(subscription.user_id, grant_credits=False)

    return free_subscription


WEBHOOK_HANDLERS = {
    'checkout.session.completed': handle_checkout_completed,
    'customer.subscription.updated': handle_subscription_updated,
    'customer.subscription.deleted': handle_subscription_deleted,
}


def construct_event(payload: bytes, signature: Optional[str], webhook_secret: str):
    """Parse a webhook payload, verifying its signature when a secret is configured."""
    if webhook_secret:
        return _stripe().Webhook.construct_event(payload, signature, webhook_secret)
    return stripe.Event.construct_from(json.loads(payload), STRIPE_SECRET_KEY)


def handle_webhook_event(event) -> bool:
    """
    Dispatch a Stripe event.

    Returns:
        True when the event type is handled, False when it is ignored
    """
    handler = WEBHOOK_HANDLERS.get(event['type'])
    if handler is None:
        logger.debug(f"Ignoring Stripe event {event['type']}")
        return False
    handler(_as_dict(event['data']['object']))
    return True
