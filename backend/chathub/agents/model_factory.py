"""
Model dispatch: build a LangChain chat model for a public model name.
"""
from typing import Any, List, Optional
from langchain.chat_models import init_chat_model
from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.language_models.chat_models import BaseChatModel
from chathub.agents.config import MODEL_CONFIGS, ModelName, resolve_model_name
from chathub.core.errors import InvalidModelError
from chathub.core.logging import get_logger

logger = get_logger(__name__)


def validate_model_name(model_name: Any) -> ModelName:
    """Resolve a request value to a ModelName or raise InvalidModelError."""
    name = resolve_model_name(model_name)
    if name is None:
        raise InvalidModelError(f"Unsupported model: {model_name}")
    return name


def create_model(
    model_name: Any,
    provider: Optional[str] = None,
    callbacks: Optional[List[BaseCallbackHandler]] = None,
) -> BaseChatModel:
    """
    Create a chat model client.

    Validation happens before any network call: an unknown model, a provider
    that does not serve the model, or missing credentials raise
    InvalidModelError.

    Args:
        model_name: ChatGPT, Claude, Gemini or DeepSeek
        provider: Optional provider to check against the model's routing
        callbacks: LangChain callbacks attached to every call

    Returns:
        Configured BaseChatModel
    """
    name = validate_model_name(model_name)
    model_config = MODEL_CONFIGS[name]

    if provider and provider != model_config.provider:
        raise InvalidModelError(f"{name.value} is not served by provider {provider}")

    api_key = model_config.api_key
    if not api_key:
        logger.error(f"Missing credentials ({model_config.api_key_setting}) for model {name.value}")
        raise InvalidModelError(f"{name.value} is not configured on this server")

    kwargs = {
        "model": model_config.model_id,
        "model_provider": model_config.provider,
        "api_key": api_key,
        "temperature": model_config.temperature,
    }
    if model_config.max_tokens:
        kwargs["max_tokens"] = model_config.max_tokens
    if model_config.base_url:
        kwargs["base_url"] = model_config.base_url
    if callbacks:
        kwargs["callbacks"] = callbacks

    logger.info(f"Creating chat model {name.value} ({model_config.provider}:{model_config.model_id})")
    return init_chat_model(**kwargs)


def get_actual_model_id(llm: BaseChatModel, fallback: str) -> str:
    """Concrete model id reported by a client, if it exposes one."""
    for attr in ("model_name", "model"):
        value = getattr(llm, attr, None)
        if isinstance(value, str) and value:
            return value
    return fallback


def extract_text(message: Any) -> str:
    """Plain text of a model response or stream chunk."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content or "")
