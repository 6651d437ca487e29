"""
Langfuse AI tracing and observability hooks (v3 SDK) - WITH CLIENT CACHING.

SDK v3 uses OpenTelemetry and works with Langfuse server v3+.
Reference: https://python.reference.langfuse.com/langfuse
"""

import threading
import time
from typing import Optional, Dict, Any, List
from langfuse import Langfuse
from langfuse.langchain import CallbackHandler
from chathub.core.config import (
    LANGFUSE_BASE_URL,
    LANGFUSE_ENABLED,
    LANGFUSE_PUBLIC_KEY,
    LANGFUSE_SECRET_KEY,
)
from chathub.core.logging import get_logger

logger = get_logger(__name__)

# Process-wide cache, keyed by public_key
_langfuse_clients: Dict[str, Any] = {}
_callback_handlers: Dict[str, CallbackHandler] = {}
_callback_failure_timestamps: Dict[str, float] = {}
_client_lock = threading.Lock()
_CALLBACK_FAILURE_TTL_SECONDS = 60.0


def get_langfuse_client():
    """
    Get or create the cached Langfuse client.

    Returns None when tracing is disabled or keys are missing.
    """
    if not LANGFUSE_ENABLED:
        return None
    if not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY:
        return None

    cache_key = LANGFUSE_PUBLIC_KEY

    with _client_lock:
        if cache_key in _langfuse_clients:
            return _langfuse_clients[cache_key]

        try:
            client = Langfuse(
                public_key=LANGFUSE_PUBLIC_KEY,
                secret_key=LANGFUSE_SECRET_KEY,
                host=LANGFUSE_BASE_URL,
            )
            _langfuse_clients[cache_key] = client
            logger.debug(f"Created and cached Langfuse client for key: {cache_key[:8]}...")
            return client
        except Exception as e:
            logger.error(f"Failed to create Langfuse client: {e}", exc_info=True)
            return None


def get_callback_handler() -> Optional[CallbackHandler]:
    """
    Get the cached LangChain CallbackHandler.

    A failed construction is not retried for a minute so that a Langfuse
    outage does not slow down every chat request.
    """
    if not LANGFUSE_ENABLED:
        return None
    if not LANGFUSE_PUBLIC_KEY or not LANGFUSE_SECRET_KEY:
        return None

    cache_key = LANGFUSE_PUBLIC_KEY

    with _client_lock:
        if cache_key in _callback_handlers:
            return _callback_handlers[cache_key]

        last_failure = _callback_failure_timestamps.get(cache_key)
        if last_failure and (time.time() - last_failure) < _CALLBACK_FAILURE_TTL_SECONDS:
            return None

    try:
        if not get_langfuse_client():
            with _client_lock:
                _callback_failure_timestamps[cache_key] = time.time()
            return None

        handler = CallbackHandler(public_key=LANGFUSE_PUBLIC_KEY)
        with _client_lock:
            existing = _callback_handlers.get(cache_key)
            if existing:
                return existing
            _callback_handlers[cache_key] = handler
        logger.debug(f"Created and cached CallbackHandler for key: {cache_key[:8]}...")
        return handler
    except Exception as e:
        with _client_lock:
            _callback_failure_timestamps[cache_key] = time.time()
        logger.error(f"Failed to create CallbackHandler: {e}", exc_info=True)
        return None


def cleanup_all_clients():
    """
    Flush and shutdown all cached Langfuse clients.

    Call this during application shutdown.
    """
    with _client_lock:
        for key, client in list(_langfuse_clients.items()):
            try:
                client.flush()
                client.shutdown()
                logger.debug(f"Cleaned up Langfuse client: {key[:8]}...")
            except Exception as e:
                logger.warning(f"Error cleaning up client {key[:8]}: {e}")

        _langfuse_clients.clear()
        _callback_handlers.clear()


def prepare_trace_context(
    user_id: int,
    chat_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Prepare Langfuse trace attributes for a LangChain run.

    Args:
        user_id: User ID
        chat_id: Optional chat identifier, used as the Langfuse session
        metadata: Optional additional metadata

    Returns:
        Run metadata with langfuse_user_id, langfuse_session_id and string values
    """
    context: Dict[str, Any] = {
        "langfuse_user_id": str(user_id),
    }

    if chat_id:
        context["langfuse_session_id"] = str(chat_id)

    if metadata:
        for key, value in metadata.items():
            if value is None:
                continue
            context[str(key)] = value if isinstance(value, str) else str(value)

    return context


def build_run_config(
    user_id: int,
    chat_id: Optional[str] = None,
    run_name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    tags: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    RunnableConfig for a model call, with the Langfuse handler attached when enabled.
    """
    config: Dict[str, Any] = {
        "metadata": prepare_trace_context(user_id, chat_id, metadata),
        "tags": list(tags or []),
    }
    if run_name:
        config["run_name"] = run_name

    handler = get_callback_handler()
    config["callbacks"] = [handler] if handler else []
    return config


def flush_traces():
    """
    Flush all pending traces to Langfuse.

    This ensures traces are sent immediately rather than waiting for background processes.
    """
    if not LANGFUSE_ENABLED:
        return

    try:
        client = get_langfuse_client()
        if client and hasattr(client, "flush"):
            client.flush()
            logger.debug("Flushed Langfuse traces")
    except Exception as e:
        logger.error(f"Failed to flush Langfuse traces: {e}", exc_info=True)
