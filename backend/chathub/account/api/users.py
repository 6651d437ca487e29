"""
User endpoints: profile, credit balance, usage history and plan.
"""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from chathub.account.services.user_service import get_credit_summary, user_to_dict
from chathub.core.dependencies import get_current_user
from chathub.core.errors import APIError
from chathub.services.subscription_service import get_current_plan_info
from chathub.services.usage_service import get_recent_usage, usage_log_to_dict


@csrf_exempt
@require_http_methods(["GET"])
def get_current_user_endpoint(request):
    """Get current authenticated user profile."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({"error": "Authentication required"}, status=401)

    return JsonResponse(user_to_dict(user))


@csrf_exempt
@require_http_methods(["GET"])
def get_user_credits(request):
    """Current credit balance."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({"error": "Authentication required"}, status=401)

    summary = get_credit_summary(user.id)
    if summary is None:
        return JsonResponse({"error": "User not found"}, status=404)
    return JsonResponse({"success": True, **summary})


@csrf_exempt
@require_http_methods(["GET"])
def get_user_usage(request):
    """The 50 most recent billed model calls."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({"error": "Authentication required"}, status=401)

    logs = get_recent_usage(user.id)
    return JsonResponse({"success": True, "usage": [usage_log_to_dict(log) for log in logs]})


@csrf_exempt
@require_http_methods(["GET"])
def get_user_plan(request):
    """Current plan, status and renewal date."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({"error": "Authentication required"}, status=401)

    try:
        return JsonResponse({"success": True, **get_current_plan_info(user.id)})
    except APIError as e:
        return e.to_response()
