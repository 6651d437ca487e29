"""
User service for profile and credit information.
"""
from typing import Any, Dict, Optional
from django.contrib.auth import get_user_model

User = get_user_model()


def get_user_profile(user_id: int):
    """
    Get user by id.
    Returns: User object or None
    """
    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None


def user_to_dict(user) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "created_at": user.created_at.isoformat(),
        "token_usage_count": user.token_usage_count,
        "credits_remaining": str(user.credits_remaining),
    }


def get_credit_summary(user_id: int) -> Optional[Dict[str, Any]]:
    """Balance and cumulative token usage, or None if the user is missing."""
    user = get_user_profile(user_id)
    if not user:
        return None
    return {
        "credits_remaining": str(user.credits_remaining),
        "token_usage_count": user.token_usage_count,
    }
