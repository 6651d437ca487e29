"""
Rolling chat summaries.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from chathub.agents.model_factory import extract_text
from chathub.agents.prompts import BRAINSTORM_SUMMARY_PROMPT, SUMMARY_GENERATION_PROMPT
from chathub.core import config
from chathub.core.logging import get_logger

logger = get_logger(__name__)


def needs_summary(history_length: int) -> bool:
    """Whether a chat is long enough to maintain a rolling summary."""
    return history_length >= config.SUMMARY_THRESHOLD


def build_summary_messages(
    previous_summary: Optional[str],
    user_message: str,
    ai_response: str,
) -> List[BaseMessage]:
    """Prompt that folds the latest exchange into the previous summary."""
    parts = []
    if previous_summary:
        parts.append(f"Summary so far:\n{previous_summary}")
    parts.append(f"User: {user_message}\nAssistant: {ai_response}")
    return [
        SystemMessage(content=SUMMARY_GENERATION_PROMPT),
        HumanMessage(content="\n\n".join(parts)),
    ]


def generate_summary(
    llm: BaseChatModel,
    previous_summary: Optional[str],
    user_message: str,
    ai_response: str,
    run_config: Optional[Dict[str, Any]] = None,
) -> Optional[str]:
    """
    Produce an updated rolling summary.

    Returns:
        Summary text, or None when the model call failed or returned nothing
    """
    try:
        response = llm.invoke(
            build_summary_messages(previous_summary, user_message, ai_response),
            config=run_config or {},
        )
        summary = extract_text(response).strip()
        return summary or None
    except Exception as e:
        logger.error(f"Summary generation failed: {e}", exc_info=True)
        return None


def build_brainstorm_summary_messages(
    topic: str,
    contributions: Sequence[Tuple[str, str]],
) -> List[BaseMessage]:
    """Prompt summarizing a brainstorm; contributions are (model, text) pairs."""
    transcript = "\n\n".join(f"**{model}:**\n{text}" for model, text in contributions)
    return [
        SystemMessage(content=BRAINSTORM_SUMMARY_PROMPT),
        HumanMessage(content=f"Topic: {topic}\n\n{transcript}"),
    ]
