"""
API usage analytics.
"""
from decimal import Decimal
from typing import List, Optional
from chathub.core.logging import get_logger
from chathub.db.models.session import ChatSession
from chathub.db.models.usage_log import APIUsageLog
from chathub.services.token_calculator import TokenInfo, calculate_api_cost

logger = get_logger(__name__)

RECENT_LOGS_LIMIT = 50


def log_api_usage(
    user_id: int,
    model_name: str,
    token_info: TokenInfo,
    credits_deducted: Decimal,
    chat: Optional[ChatSession] = None,
    messages_used: Optional[List[int]] = None,
    usage_type: str = "chat",
) -> Optional[APIUsageLog]:
    """
    Record one billed model call.

    Best effort: failures are logged and never propagate to the request.

    Returns:
        Created APIUsageLog, or None when logging failed
    """
    try:
        usage_log = APIUsageLog.objects.create(
            user_id=user_id,
            session=chat,
            model_name=model_name,
            usage_type=usage_type,
            prompt_tokens=token_info.prompt_tokens,
            completion_tokens=token_info.completion_tokens,
            tokens_used=token_info.total_tokens,
            credits_deducted=credits_deducted,
            api_cost=calculate_api_cost(model_name, token_info.total_tokens),
            messages_used=messages_used or [],
        )
        logger.debug(
            f"Logged {token_info.total_tokens} tokens ({credits_deducted} credits) "
            f"for user {user_id} on {model_name}"
        )
        return usage_log
    except Exception as e:
        logger.error(f"Failed to log API usage for user {user_id}: {e}", exc_info=True)
        return None


def get_recent_usage(user_id: int, limit: int = RECENT_LOGS_LIMIT) -> List[APIUsageLog]:
    """Most recent usage logs of a user."""
    return list(
        APIUsageLog.objects.filter(user_id=user_id)
        .select_related('session')
        .order_by('-created_at')[:limit]
    )


def usage_log_to_dict(usage_log: APIUsageLog) -> dict:
    return {
        "id": usage_log.id,
        "chatId": usage_log.session.chat_id if usage_log.session else None,
        "model": usage_log.model_name,
        "usageType": usage_log.usage_type,
        "promptTokens": usage_log.prompt_tokens,
        "completionTokens": usage_log.completion_tokens,
        "tokensUsed": usage_log.tokens_used,
        "creditsDeducted": str(usage_log.credits_deducted),
        "apiCost": str(usage_log.api_cost),
        "createdAt": usage_log.created_at.isoformat(),
    }
