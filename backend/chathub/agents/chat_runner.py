"""
Regular chat orchestration.

A turn runs validate -> assemble prompt -> invoke -> persist -> summary
maintenance -> usage logging. Credits are only debited after the model
returned a non-empty response, in the same transaction that stores it.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional
from asgiref.sync import sync_to_async
from django.db import transaction
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from chathub.agents.config import ModelName
from chathub.agents.model_factory import (
    create_model,
    extract_text,
    get_actual_model_id,
    validate_model_name,
)
from chathub.agents.models import EventType, StreamStatus
from chathub.agents.prompts import get_system_prompt
from chathub.agents.streaming import ResponseStream, emit_event, error_event, status_event
from chathub.agents.summary import generate_summary, needs_summary
from chathub.core.errors import APIError, UpstreamError
from chathub.core.logging import get_logger
from chathub.db.models.message import Message
from chathub.db.models.session import ChatSession
from chathub.observability.tracing import build_run_config
from chathub.services import chat_service, credit_ledger
from chathub.services.token_calculator import TokenInfo, calculate_credits, calculate_message_tokens
from chathub.services.usage_service import log_api_usage

logger = get_logger(__name__)

# Row kinds that take part in the prompt history
PROMPT_HISTORY_KINDS = (Message.KIND_TEXT, Message.KIND_SUMMARY)


@dataclass
class ChatTurn:
    """Everything a validated request needs to run."""

    user_id: int
    chat: ChatSession
    message: str
    model_name: ModelName
    llm: BaseChatModel
    history: List[Message] = field(default_factory=list)
    history_length: int = 0
    pending_user_message: Optional[Message] = None
    context_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def run_config(self, run_name: str = "chat") -> Dict[str, Any]:
        return build_run_config(
            self.user_id,
            self.chat.chat_id,
            run_name=run_name,
            metadata={"model": self.model_name.value, "context_id": self.context_id},
        )


@dataclass
class ChatTurnResult:
    user_message: Message
    ai_message: Message
    model_requested: str
    model_actual: str
    token_info: TokenInfo
    credits_deducted: Decimal
    credits_remaining: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "userMessage": chat_service.message_to_dict(self.user_message),
            "aiMessage": chat_service.message_to_dict(self.ai_message),
            "model": {
                "requested": self.model_requested,
                "actual": self.model_actual,
            },
            "tokensUsed": self.token_info.to_dict(),
            "creditsDeducted": str(self.credits_deducted),
            "credits_remaining": str(self.credits_remaining),
        }


def prepare_turn(
    user_id: int,
    chat_id: str,
    message: str,
    model_name: Any,
    user_row: Optional[Message] = None,
) -> ChatTurn:
    """
    Validate a chat request and load what the prompt needs.

    Args:
        user_id: User ID
        chat_id: Client chat identifier
        message: User message text
        model_name: Public model name
        user_row: Already persisted user row of this turn; looked up when omitted

    Raises:
        InvalidModelError: Unknown model or provider not configured (400)
        InsufficientCreditsError: Balance below the minimum (403)
        NotFoundError: Chat missing, deleted or owned by someone else (404)
    """
    name = validate_model_name(model_name)
    credit_ledger.require_minimum_balance(user_id)
    chat = chat_service.require_chat(user_id, chat_id)
    llm = create_model(name)

    rows = chat_service.list_messages(chat)
    if user_row is None:
        user_row = chat_service.find_pending_user_message(chat, message)

    history = [
        row for row in rows
        if (user_row is None or row.id != user_row.id)
        and (row.user_input or row.output_type in PROMPT_HISTORY_KINDS)
    ]

    return ChatTurn(
        user_id=user_id,
        chat=chat,
        message=message,
        model_name=name,
        llm=llm,
        history=history,
        history_length=len(rows),
        pending_user_message=user_row,
    )


def build_prompt(
    model_name: ModelName,
    summary: Optional[str],
    history: List[Message],
    user_message: str,
) -> List[BaseMessage]:
    """System prompt (with rolling summary), prior turns, then the new user turn."""
    messages: List[BaseMessage] = [SystemMessage(content=get_system_prompt(model_name, summary))]
    for row in history:
        if row.user_input:
            messages.append(HumanMessage(content=row.user_input))
        else:
            messages.append(AIMessage(content=row.api_response))
    messages.append(HumanMessage(content=user_message))
    return messages


def invoke_model(turn: ChatTurn, messages: List[BaseMessage]) -> str:
    """
    Single model call, no retry.

    Raises:
        UpstreamError: Provider failure or empty response
    """
    try:
        response = turn.llm.invoke(messages, config=turn.run_config())
    except Exception as e:
        logger.error(f"Model {turn.model_name.value} failed for chat {turn.chat.chat_id}: {e}", exc_info=True)
        raise UpstreamError(f"{turn.model_name.value} failed to respond") from e

    text = extract_text(response)
    if not text.strip():
        raise UpstreamError(f"{turn.model_name.value} returned an empty response")
    return text


def complete_turn(turn: ChatTurn, response_text: str, model_actual: str) -> ChatTurnResult:
    """
    Persist the exchange, debit credits, maintain the summary and log usage.

    The assistant row and the charge commit together; the charge is capped
    at the current balance.
    """
    token_info = calculate_message_tokens(turn.message, response_text)
    credits = calculate_credits(turn.model_name, token_info.prompt_tokens, token_info.completion_tokens)

    with transaction.atomic():
        user_row = turn.pending_user_message or chat_service.append_message(
            turn.chat,
            user_input=turn.message,
            context_id=turn.context_id,
        )
        ai_row = chat_service.append_message(
            turn.chat,
            api_response=response_text,
            model=turn.model_name.value,
            credits_deducted=credits,
            context_id=turn.context_id,
        )
        charged, balance = credit_ledger.settle(turn.user_id, credits, tokens=token_info.total_tokens)

    logger.info(
        f"Chat {turn.chat.chat_id}: {turn.model_name.value} used {token_info.total_tokens} tokens, "
        f"charged {charged} of {credits} credits, balance {balance}"
    )

    if needs_summary(turn.history_length):
        summary = generate_summary(
            turn.llm,
            turn.chat.summary,
            turn.message,
            response_text,
            run_config=turn.run_config("summary"),
        )
        if summary:
            chat_service.update_summary(turn.chat, summary)
        else:
            chat_service.touch_updated_at(turn.chat)
    else:
        chat_service.touch_updated_at(turn.chat)

    log_api_usage(
        turn.user_id,
        turn.model_name.value,
        token_info,
        credits,
        chat=turn.chat,
        messages_used=[user_row.id, ai_row.id],
    )

    return ChatTurnResult(
        user_message=user_row,
        ai_message=ai_row,
        model_requested=turn.model_name.value,
        model_actual=model_actual,
        token_info=token_info,
        credits_deducted=charged,
        credits_remaining=balance,
    )


def run_turn(turn: ChatTurn) -> ChatTurnResult:
    """Run a prepared turn to completion."""
    messages = build_prompt(turn.model_name, turn.chat.summary, turn.history, turn.message)
    text = invoke_model(turn, messages)
    return complete_turn(turn, text, get_actual_model_id(turn.llm, turn.model_name.value))


def run_regular_chat(
    user_id: int,
    chat_id: str,
    message: str,
    model_name: Any,
    user_row: Optional[Message] = None,
) -> ChatTurnResult:
    """
    Answer one user message with one model.

    Args:
        user_id: User ID
        chat_id: Client chat identifier
        message: User message text
        model_name: ChatGPT, Claude, Gemini or DeepSeek
        user_row: Already persisted user row of this turn, if known

    Returns:
        ChatTurnResult with both persisted rows and the new balance
    """
    return run_turn(prepare_turn(user_id, chat_id, message, model_name, user_row=user_row))


async def stream_regular_chat(turn: ChatTurn, provider_streaming: bool = True) -> AsyncIterator[Dict[str, Any]]:
    """
    Stream a prepared turn as events.

    Emits messageStart, token events, messageComplete and a terminal status.
    On failure an error event and a failed status are emitted; nothing is
    persisted and nothing is debited.

    Args:
        turn: Prepared turn
        provider_streaming: Stream chunks from the provider; when False the
            complete response is fetched first and replayed
    """
    message_id = turn.context_id
    try:
        messages = build_prompt(turn.model_name, turn.chat.summary, turn.history, turn.message)
        yield emit_event(EventType.MESSAGE_START, {
            "id": message_id,
            "role": "assistant",
            "model": turn.model_name.value,
        })

        stream = ResponseStream(turn.llm, messages, message_id, turn.run_config())
        tokens = stream.provider_tokens() if provider_streaming else stream.replayed_tokens()
        try:
            async for event in tokens:
                yield event
        except Exception as e:
            logger.error(f"Model {turn.model_name.value} failed for chat {turn.chat.chat_id}: {e}", exc_info=True)
            raise UpstreamError(f"{turn.model_name.value} failed to respond") from e

        if not stream.text.strip():
            raise UpstreamError(f"{turn.model_name.value} returned an empty response")

        result = await sync_to_async(complete_turn)(
            turn, stream.text, get_actual_model_id(turn.llm, turn.model_name.value)
        )
        yield emit_event(EventType.MESSAGE_COMPLETE, {
            "id": message_id,
            "text": stream.text,
            **result.to_dict(),
        })
        yield status_event(StreamStatus.COMPLETE)
    except APIError as e:
        logger.warning(f"Chat stream for {turn.chat.chat_id} failed: {e.message}")
        yield error_event(e.message)
        yield status_event(StreamStatus.FAILED, code=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error in chat stream for {turn.chat.chat_id}: {e}", exc_info=True)
        yield error_event("Failed to generate response")
        yield status_event(StreamStatus.FAILED, code=500)
