"""
Subscription endpoints.
"""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from chathub.core.dependencies import get_current_user
from chathub.core.errors import APIError
from chathub.core.logging import get_logger
from chathub.db.models.plan import Plan
from chathub.db.models.subscription import Subscription
from chathub.services import subscription_service

logger = get_logger(__name__)


def plan_to_dict(plan: Plan) -> dict:
    return {
        'id': plan.id,
        'name': plan.name,
        'price': str(plan.price),
        'creditsPerMonth': str(plan.credits_per_month),
        'stripePriceId': plan.stripe_price_id,
    }


def subscription_to_dict(subscription: Subscription) -> dict:
    return {
        'id': subscription.id,
        'plan': plan_to_dict(subscription.plan),
        'status': subscription.status,
        'startDate': subscription.start_date.isoformat(),
        'endDate': subscription.end_date.isoformat(),
        'paymentStatus': subscription.payment_status,
    }


@csrf_exempt
@require_http_methods(["GET"])
def list_plans(request):
    """Plans available for purchase, cheapest first."""
    return JsonResponse({
        'success': True,
        'plans': [plan_to_dict(plan) for plan in subscription_service.get_plans()],
    })


@csrf_exempt
@require_http_methods(["GET"])
def current_subscription(request):
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    subscription = subscription_service.get_open_subscription(user.id)
    return JsonResponse({
        'success': True,
        'subscription': subscription_to_dict(subscription) if subscription else None,
    })


@csrf_exempt
@require_http_methods(["POST"])
def downgrade(request):
    """
    Schedule a downgrade to the free plan at the end of the current period.

    The subscription becomes Pending Downgrade and keeps its benefits until
    its end date.
    """
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        subscription = subscription_service.request_downgrade(user.id)
    except APIError as e:
        return e.to_response()

    return JsonResponse({
        'success': True,
        'message': f"Your plan will be downgraded on {subscription.end_date.date().isoformat()}",
        'subscription': subscription_to_dict(subscription),
    })


@csrf_exempt
@require_http_methods(["POST"])
def restore(request):
    """Withdraw a scheduled downgrade."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        subscription = subscription_service.restore_subscription(user.id)
    except APIError as e:
        return e.to_response()

    return JsonResponse({'success': True, 'subscription': subscription_to_dict(subscription)})


@csrf_exempt
@require_http_methods(["POST"])
def cancel(request):
    """Cancel every open subscription immediately; the balance drops to zero."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        canceled = subscription_service.cancel_all_subscriptions(user.id)
    except APIError as e:
        return e.to_response()

    logger.info(f"User {user.id} canceled {canceled} subscriptions")
    return JsonResponse({'success': True, 'canceled': canceled})
