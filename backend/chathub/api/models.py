"""
Model configuration endpoints.
"""
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from chathub.agents.config import MODEL_CONFIGS, TOKEN_RATES
from chathub.core.dependencies import get_current_user


def available_models():
    """Public models with their routing and whether the server has credentials for them."""
    return [
        {
            'id': name.value,
            'name': name.value,
            'description': model_config.description,
            'provider': model_config.provider,
            'tokensPerCredit': TOKEN_RATES[name],
            'available': bool(model_config.api_key),
        }
        for name, model_config in MODEL_CONFIGS.items()
    ]


@csrf_exempt
@require_http_methods(["GET"])
def get_available_models(request):
    """
    Get list of available models.

    Returns:
    {
        "models": [
            {
                "id": "ChatGPT",
                "name": "ChatGPT",
                "description": "OpenAI general purpose assistant",
                "provider": "openai",
                "tokensPerCredit": 1278,
                "available": true
            },
            ...
        ]
    }
    """
    user = get_current_user(request)
    if not user:
        return JsonResponse(
            {'error': 'Authentication required'},
            status=401
        )

    return JsonResponse({
        'models': available_models()
    })
