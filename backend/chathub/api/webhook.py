"""
Stripe webhook endpoint.
"""
import json
import stripe
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from chathub.core.config import STRIPE_WEBHOOK_SECRET
from chathub.core.errors import APIError
from chathub.core.logging import get_logger
from chathub.services import subscription_service

logger = get_logger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
def stripe_webhook(request):
    """
    Receive Stripe events.

    Handled: checkout.session.completed, customer.subscription.updated and
    customer.subscription.deleted. Other events are acknowledged and ignored.
    """
    try:
        event = subscription_service.construct_event(
            request.body,
            request.headers.get('Stripe-Signature'),
            STRIPE_WEBHOOK_SECRET,
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"Rejected Stripe webhook with invalid signature: {e}")
        return JsonResponse({'error': 'Invalid signature'}, status=400)
    except (ValueError, json.JSONDecodeError):
        return JsonResponse({'error': 'Invalid payload'}, status=400)

    try:
        handled = subscription_service.handle_webhook_event(event)
    except APIError as e:
        logger.error(f"Stripe event {event['type']} failed: {e.message}")
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error handling Stripe event {event['type']}: {e}", exc_info=True)
        return JsonResponse({'error': 'Webhook handling failed'}, status=500)

    logger.info(f"Stripe event {event['type']} {'handled' if handled else 'ignored'}")
    return JsonResponse({'received': True, 'handled': handled})
