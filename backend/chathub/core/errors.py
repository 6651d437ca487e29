"""
Custom error classes and error handling.
"""
from django.http import JsonResponse


class APIError(Exception):
    """Base API error class."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

    def to_response(self) -> JsonResponse:
        return JsonResponse({'success': False, 'error': self.message}, status=self.status_code)


class ValidationError(APIError):
    """Request validation error."""
    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, status_code=400)


class InvalidModelError(ValidationError):
    """Unknown model name or missing provider credentials."""
    def __init__(self, message: str = "Invalid model"):
        super().__init__(message)


class AuthenticationError(APIError):
    """Authentication error."""
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class AuthorizationError(APIError):
    """Authorization error."""
    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status_code=403)


class InsufficientCreditsError(AuthorizationError):
    """Balance below the required amount."""
    def __init__(self, message: str = "Insufficient credits"):
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class UpstreamError(APIError):
    """LLM provider or payment provider failure."""
    def __init__(self, message: str = "Upstream service error"):
        super().__init__(message, status_code=502)


class BrainstormError(UpstreamError):
    """Brainstorm session could not be completed."""
    def __init__(self, message: str = "Brainstorm failed"):
        super().__init__(message)
