"""
Authentication service.
"""
from django.contrib.auth import get_user_model
from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from chathub.core.errors import ValidationError
from chathub.core.logging import get_logger
from chathub.core.security import generate_tokens, refresh_token as refresh_token_func
from chathub.services.subscription_service import create_free_subscription

User = get_user_model()
logger = get_logger(__name__)


def create_user(email: str, password: str, first_name: str = '', last_name: str = ''):
    """
    Create a new user enrolled in the free tier.
    Returns: (user, tokens_dict) or raises ValidationError
    """
    try:
        with transaction.atomic():
            user = User.objects.create_user(
                email=email,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
            create_free_subscription(user.id)
    except IntegrityError:
        raise ValidationError("A user with this email already exists.")

    logger.info(f"Registered user {user.id}")
    return user, generate_tokens(user)


def authenticate_user(email: str, password: str):
    """
    Verify user credentials.
    Returns: (user, tokens_dict) or (None, None) if invalid
    """
    user = authenticate(username=email, password=password)
    if user and user.is_active:
        tokens = generate_tokens(user)
        return user, tokens
    return None, None


def refresh_token(refresh_token_string: str):
    """
    Generate new access token from refresh token.
    Returns: dict with 'access' token or None if invalid
    """
    return refresh_token_func(refresh_token_string)
