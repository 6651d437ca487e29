"""
Health check endpoint.
"""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.db import connection
from django.utils import timezone
from chathub.agents.config import MODEL_CONFIGS
from chathub.core.config import LANGFUSE_ENABLED, STRIPE_SECRET_KEY
from chathub.observability.tracing import get_langfuse_client


@require_http_methods(["GET"])
def health_check(request):
    """
    Health check endpoint for monitoring.
    Returns status of the database and the optional integrations.
    """
    services = {}
    overall_status = "healthy"

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        services["database"] = {
            "status": "healthy",
            "message": f"{connection.vendor} connection successful"
        }
    except Exception as e:
        services["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {str(e)}"
        }
        overall_status = "unhealthy"

    configured = [name.value for name, model_config in MODEL_CONFIGS.items() if model_config.api_key]
    services["models"] = {
        "status": "healthy" if configured else "degraded",
        "message": f"Configured: {', '.join(configured)}" if configured else "No model provider configured",
    }

    services["payments"] = {
        "status": "healthy" if STRIPE_SECRET_KEY else "degraded",
        "message": "Stripe configured" if STRIPE_SECRET_KEY else "Stripe key missing",
    }

    # Langfuse is optional and never fails the check
    if LANGFUSE_ENABLED:
        try:
            if get_langfuse_client():
                services["langfuse"] = {
                    "status": "healthy",
                    "message": "Langfuse client initialized"
                }
            else:
                services["langfuse"] = {
                    "status": "degraded",
                    "message": "Langfuse enabled but client not available (check configuration)"
                }
        except Exception as e:
            services["langfuse"] = {
                "status": "unhealthy",
                "message": f"Langfuse connection failed: {str(e)}"
            }
    else:
        services["langfuse"] = {
            "status": "degraded",
            "message": "Langfuse is disabled"
        }

    return JsonResponse({
        "status": overall_status,
        "services": services,
        "timestamp": timezone.now().isoformat(),
    }, status=200 if overall_status == "healthy" else 503)
