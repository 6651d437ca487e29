"""
Authentication endpoints (signup, login, logout, refresh).
"""
import json
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from django.contrib.auth import login as django_login, logout as django_logout
from chathub.account.services.auth_service import (
    create_user,
    authenticate_user,
    refresh_token as refresh_token_service,
)
from chathub.core.errors import APIError
from chathub.core.logging import get_logger

logger = get_logger(__name__)


def _user_payload(user):
    return {
        'id': user.id,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
    }


@csrf_exempt
@require_http_methods(["POST"])
def signup(request):
    """User registration endpoint."""
    try:
        data = json.loads(request.body or b'{}')
        email = data.get('email', '').strip()
        password = data.get('password', '')
        first_name = data.get('first_name', '').strip()
        last_name = data.get('last_name', '').strip()

        if not email or not password:
            return JsonResponse(
                {'error': 'Email and password are required'},
                status=400
            )

        user, tokens = create_user(email, password, first_name, last_name)

        # Also create session for web authentication
        django_login(request, user, backend='django.contrib.auth.backends.ModelBackend')

        return JsonResponse({
            'message': 'User created successfully',
            'user': _user_payload(user),
            'access': tokens['access'],
            'refresh': tokens['refresh'],
        }, status=201)

    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    except APIError as e:
        return JsonResponse({'error': e.message}, status=e.status_code)
    except Exception as e:
        logger.error(f"Signup failed: {e}", exc_info=True)
        return JsonResponse({'error': 'Registration failed'}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def login(request):
    """User login endpoint."""
    try:
        data = json.loads(request.body or b'{}')
        email = data.get('email', '').strip()
        password = data.get('password', '')

        if not email or not password:
            return JsonResponse(
                {'error': 'Email and password are required'},
                status=400
            )

        user, tokens = authenticate_user(email, password)

        if not user:
            return JsonResponse(
                {'error': 'Invalid credentials'},
                status=401
            )

        django_login(request, user, backend='django.contrib.auth.backends.ModelBackend')

        return JsonResponse({
            'message': 'Login successful',
            'user': _user_payload(user),
            'access': tokens['access'],
            'refresh': tokens['refresh'],
        })

    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    except Exception as e:
        logger.error(f"Login failed: {e}", exc_info=True)
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def refresh(request):
    """Token refresh endpoint."""
    try:
        data = json.loads(request.body or b'{}')
        refresh_token_string = data.get('refresh', '')

        if not refresh_token_string:
            return JsonResponse(
                {'error': 'Refresh token is required'},
                status=400
            )

        result = refresh_token_service(refresh_token_string)

        if not result:
            return JsonResponse(
                {'error': 'Invalid refresh token'},
                status=401
            )

        return JsonResponse({
            'access': result['access'],
        })

    except json.JSONDecodeError:
        return JsonResponse({'error': 'Invalid JSON'}, status=400)
    except Exception as e:
        logger.error(f"Token refresh failed: {e}", exc_info=True)
        return JsonResponse({'error': str(e)}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def logout(request):
    """User logout endpoint."""
    django_logout(request)
    return JsonResponse({
        'message': 'Logout successful',
    })
