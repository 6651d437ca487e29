"""
Brainstorm orchestration.

Two models take turns for a configured number of iterations, each answering
the previous one's output, then a third model summarizes the exchange. Every
iteration is persisted as it completes; the accumulated cost is billed once,
after the summary is stored.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple
from asgiref.sync import sync_to_async
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError as PydanticValidationError
from chathub.agents.chat_runner import ChatTurnResult, prepare_turn, run_regular_chat, stream_regular_chat
from chathub.agents.config import DEFAULT_MODEL, ModelName, resolve_model_name
from chathub.agents.model_factory import create_model, extract_text, validate_model_name
from chathub.agents.models import BrainstormSettings, EventType, StreamStatus
from chathub.agents.streaming import ResponseStream, emit_event, error_event, status_event
from chathub.agents.summary import build_brainstorm_summary_messages
from chathub.core.errors import APIError, BrainstormError, InvalidModelError
from chathub.core.logging import get_logger
from chathub.db.models.message import Message
from chathub.db.models.session import ChatSession
from chathub.observability.tracing import build_run_config
from chathub.services import chat_service, credit_ledger
from chathub.services.token_calculator import TokenInfo, calculate_credits, calculate_message_tokens
from chathub.services.usage_service import log_api_usage

logger = get_logger(__name__)

FAILED_ITERATION_TEMPLATE = "_{model} could not respond in this round._"


@dataclass
class BrainstormSession:
    """Validated brainstorm request plus the running totals of its iterations."""

    user_id: int
    chat: ChatSession
    message: str
    settings: BrainstormSettings
    models: Dict[ModelName, BaseChatModel]
    pending_user_message: Optional[Message] = None
    context_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    user_row: Optional[Message] = None
    iterations: List[Message] = field(default_factory=list)
    contributions: List[Tuple[str, str]] = field(default_factory=list)
    total_credits: Decimal = Decimal("0")
    total_tokens: int = 0
    usage: List[Tuple[str, TokenInfo, Decimal, List[int]]] = field(default_factory=list)

    def model_for_iteration(self, index: int) -> Tuple[ModelName, BaseChatModel]:
        name = ModelName(self.settings.model_for_iteration(index))
        return name, self.models[name]

    @property
    def summary_model(self) -> Tuple[ModelName, BaseChatModel]:
        name = ModelName(self.settings.summary_model)
        return name, self.models[name]

    @property
    def last_output(self) -> str:
        """Input of the next iteration: the latest successful output, or the user message."""
        return self.contributions[-1][1] if self.contributions else self.message

    def run_config(self, run_name: str, model_name: ModelName) -> Dict[str, Any]:
        return build_run_config(
            self.user_id,
            self.chat.chat_id,
            run_name=run_name,
            metadata={"model": model_name.value, "context_id": self.context_id, "mode": "brainstorm"},
            tags=["brainstorm"],
        )


@dataclass
class BrainstormResult:
    user_message: Message
    iterations: List[Message]
    summary_message: Message
    total_credits: Decimal
    credits_charged: Decimal
    credits_remaining: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "mode": "brainstorm",
            "userMessage": chat_service.message_to_dict(self.user_message),
            "messages": [chat_service.message_to_dict(row) for row in self.iterations],
            "summary": chat_service.message_to_dict(self.summary_message),
            "creditsDeducted": str(self.credits_charged),
            "credits_remaining": str(self.credits_remaining),
        }


def load_settings(chat: ChatSession, override: Optional[Dict[str, Any]] = None) -> BrainstormSettings:
    """Settings from the request when given, otherwise from the chat."""
    data = override if override is not None else chat.brainstorm_settings
    try:
        return BrainstormSettings.model_validate(data or {})
    except PydanticValidationError as e:
        raise BrainstormError(f"Invalid brainstorm settings: {e.errors()[0].get('msg')}") from e


def prepare_brainstorm(
    user_id: int,
    chat_id: str,
    message: str,
    settings_data: Optional[Dict[str, Any]] = None,
) -> BrainstormSession:
    """
    Validate a brainstorm request and build the model clients it needs.

    Raises:
        InsufficientCreditsError: Balance below the minimum (403)
        NotFoundError: Chat missing or not owned (404)
        BrainstormError: Settings invalid
        InvalidModelError: A configured model is unknown or not configured
    """
    credit_ledger.require_minimum_balance(user_id)
    chat = chat_service.require_chat(user_id, chat_id)
    settings = load_settings(chat, settings_data)

    models: Dict[ModelName, BaseChatModel] = {}
    for value in (settings.main_model, settings.additional_model, settings.summary_model):
        name = validate_model_name(value)
        if name not in models:
            models[name] = create_model(name)

    return BrainstormSession(
        user_id=user_id,
        chat=chat,
        message=message,
        settings=settings,
        models=models,
        pending_user_message=chat_service.find_pending_user_message(chat, message),
    )


def _ensure_user_row(session: BrainstormSession) -> Message:
    if session.user_row is None:
        session.user_row = session.pending_user_message or chat_service.append_message(
            session.chat,
            user_input=session.message,
            kind=Message.KIND_BRAINSTORM,
            context_id=session.context_id,
        )
    return session.user_row


def _iteration_messages(session: BrainstormSession) -> List:
    return [
        SystemMessage(content=session.settings.custom_prompt),
        HumanMessage(content=session.last_output),
    ]


def _record_iteration(session: BrainstormSession, model_name: ModelName, prompt: str, text: str) -> Message:
    token_info = calculate_message_tokens(prompt, text)
    credits = calculate_credits(model_name, token_info.prompt_tokens, token_info.completion_tokens)
    row = chat_service.append_message(
        session.chat,
        api_response=text,
        kind=Message.KIND_BRAINSTORM,
        model=model_name.value,
        credits_deducted=credits,
        context_id=session.context_id,
    )
    session.iterations.append(row)
    session.contributions.append((model_name.value, text))
    session.total_credits += credits
    session.total_tokens += token_info.total_tokens
    session.usage.append((model_name.value, token_info, credits, [row.id]))
    return row


def _record_failed_iteration(session: BrainstormSession, model_name: ModelName, error: Exception) -> Message:
    logger.warning(
        f"Brainstorm iteration {len(session.iterations)} with {model_name.value} failed "
        f"in chat {session.chat.chat_id}: {error}"
    )
    row = chat_service.append_message(
        session.chat,
        api_response=FAILED_ITERATION_TEMPLATE.format(model=model_name.value),
        kind=Message.KIND_BRAINSTORM,
        model=model_name.value,
        credits_deducted=Decimal("0"),
        context_id=session.context_id,
    )
    session.iterations.append(row)
    return row


def _finalize(session: BrainstormSession, model_name: ModelName, summary_prompt: str, summary_text: str) -> BrainstormResult:
    """Store the summary row, settle the total once, then log usage."""
    token_info = calculate_message_tokens(summary_prompt, summary_text)
    credits = calculate_credits(model_name, token_info.prompt_tokens, token_info.completion_tokens)
    summary_row = chat_service.append_message(
        session.chat,
        api_response=summary_text,
        kind=Message.KIND_SUMMARY,
        model=model_name.value,
        credits_deducted=credits,
        context_id=session.context_id,
    )
    session.total_credits += credits
    session.total_tokens += token_info.total_tokens
    session.usage.append((model_name.value, token_info, credits, [summary_row.id]))

    charged, balance = credit_ledger.settle(session.user_id, session.total_credits, tokens=session.total_tokens)
    chat_service.touch_updated_at(session.chat)

    for usage_model, usage_tokens, usage_credits, message_ids in session.usage:
        log_api_usage(
            session.user_id,
            usage_model,
            usage_tokens,
            usage_credits,
            chat=session.chat,
            messages_used=message_ids,
            usage_type="brainstorm",
        )

    logger.info(
        f"Brainstorm in chat {session.chat.chat_id} finished: {len(session.iterations)} iterations, "
        f"cost {session.total_credits}, charged {charged}, balance {balance}"
    )
    return BrainstormResult(
        user_message=session.user_row,
        iterations=list(session.iterations),
        summary_message=summary_row,
        total_credits=session.total_credits,
        credits_charged=charged,
        credits_remaining=balance,
    )


def _summary_messages(session: BrainstormSession) -> List:
    """Summary prompt over every iteration row, placeholders of failed rounds included."""
    transcript = [(row.model, row.api_response) for row in session.iterations]
    return build_brainstorm_summary_messages(session.message, transcript)


def _prompt_text(messages: List) -> str:
    return "\n".join(extract_text(m) for m in messages)


def run_brainstorm(session: BrainstormSession) -> BrainstormResult:
    """
    Run all iterations and the summary.

    A failed iteration is stored as a placeholder at zero cost and the loop
    continues with the last successful output. A failed summary raises
    BrainstormError; nothing is billed in that case.
    """
    _ensure_user_row(session)

    for index in range(session.settings.messages_limit):
        model_name, llm = session.model_for_iteration(index)
        prompt = session.last_output
        try:
            response = llm.invoke(_iteration_messages(session), config=session.run_config("brainstorm", model_name))
            text = extract_text(response)
            if not text.strip():
                raise BrainstormError(f"{model_name.value} returned an empty response")
        except Exception as e:
            _record_failed_iteration(session, model_name, e)
            continue
        _record_iteration(session, model_name, prompt, text)

    summary_name, summary_llm = session.summary_model
    messages = _summary_messages(session)
    try:
        response = summary_llm.invoke(messages, config=session.run_config("brainstorm_summary", summary_name))
        summary_text = extract_text(response)
    except Exception as e:
        logger.error(f"Brainstorm summary failed in chat {session.chat.chat_id}: {e}", exc_info=True)
        raise BrainstormError("Brainstorm summary failed") from e
    if not summary_text.strip():
        raise BrainstormError("Brainstorm summary was empty")

    return _finalize(session, summary_name, _prompt_text(messages), summary_text)


def fallback_model(settings_data: Optional[Dict[str, Any]], chat: Optional[ChatSession] = None) -> ModelName:
    """Main model of the brainstorm when valid, ChatGPT otherwise."""
    data = settings_data if settings_data is not None else (chat.brainstorm_settings if chat else None)
    return resolve_model_name((data or {}).get("mainModel")) or DEFAULT_MODEL


def run_brainstorm_with_fallback(
    user_id: int,
    chat_id: str,
    message: str,
    settings_data: Optional[Dict[str, Any]] = None,
):
    """
    Brainstorm, or answer as a regular chat when the brainstorm fails.

    Returns:
        BrainstormResult, or ChatTurnResult when the fallback ran
    """
    session = None
    try:
        session = prepare_brainstorm(user_id, chat_id, message, settings_data)
        return run_brainstorm(session)
    except (BrainstormError, InvalidModelError) as e:
        chat = session.chat if session else chat_service.get_chat(user_id, chat_id)
        model_name = fallback_model(settings_data, chat)
        logger.warning(f"Brainstorm failed in chat {chat_id} ({e.message}); falling back to {model_name.value}")
        return run_regular_chat(
            user_id,
            chat_id,
            message,
            model_name,
            user_row=session.user_row if session else None,
        )


async def stream_brainstorm(session: BrainstormSession) -> AsyncIterator[Dict[str, Any]]:
    """
    Stream a prepared brainstorm.

    Each iteration emits messageStart, replayed token events and
    messageComplete; the summary emits summaryStart, tokens and
    summaryComplete; brainstormComplete and a complete status follow. If the
    brainstorm fails, a fallback status is emitted and the turn continues as
    a streamed regular chat with the main model.
    """
    try:
        yield status_event(StreamStatus.STARTED, mode="brainstorm", iterations=session.settings.messages_limit)
        await sync_to_async(_ensure_user_row)(session)

        for index in range(session.settings.messages_limit):
            model_name, llm = session.model_for_iteration(index)
            message_id = f"{session.context_id}-{index}"
            prompt = session.last_output
            yield emit_event(EventType.MESSAGE_START, {
                "id": message_id,
                "role": "assistant",
                "model": model_name.value,
                "iteration": index,
            })

            stream = ResponseStream(
                llm, _iteration_messages(session), message_id, session.run_config("brainstorm", model_name)
            )
            try:
                async for event in stream.replayed_tokens():
                    yield event
                if not stream.text.strip():
                    raise BrainstormError(f"{model_name.value} returned an empty response")
            except Exception as e:
                row = await sync_to_async(_record_failed_iteration)(session, model_name, e)
                yield emit_event(EventType.MESSAGE_COMPLETE, {
                    "id": message_id,
                    "iteration": index,
                    "failed": True,
                    "message": chat_service.message_to_dict(row),
                })
                continue

            row = await sync_to_async(_record_iteration)(session, model_name, prompt, stream.text)
            yield emit_event(EventType.MESSAGE_COMPLETE, {
                "id": message_id,
                "iteration": index,
                "text": stream.text,
                "message": chat_service.message_to_dict(row),
            })

        summary_name, summary_llm = session.summary_model
        summary_id = f"{session.context_id}-summary"
        messages = _summary_messages(session)
        yield emit_event(EventType.SUMMARY_START, {"id": summary_id, "model": summary_name.value})

        stream = ResponseStream(
            summary_llm, messages, summary_id, session.run_config("brainstorm_summary", summary_name)
        )
        try:
            async for event in stream.replayed_tokens():
                yield event
        except Exception as e:
            logger.error(f"Brainstorm summary failed in chat {session.chat.chat_id}: {e}", exc_info=True)
            raise BrainstormError("Brainstorm summary failed") from e
        if not stream.text.strip():
            raise BrainstormError("Brainstorm summary was empty")

        result = await sync_to_async(_finalize)(session, summary_name, _prompt_text(messages), stream.text)
        yield emit_event(EventType.SUMMARY_COMPLETE, {
            "id": summary_id,
            "text": stream.text,
            "message": chat_service.message_to_dict(result.summary_message),
        })
        yield emit_event(EventType.BRAINSTORM_COMPLETE, result.to_dict())
        yield status_event(StreamStatus.COMPLETE)
    except BrainstormError as e:
        model_name = ModelName(session.settings.main_model)
        logger.warning(
            f"Brainstorm stream failed in chat {session.chat.chat_id} ({e.message}); "
            f"falling back to {model_name.value}"
        )
        yield status_event(StreamStatus.FALLBACK, reason=e.message, model=model_name.value)
        try:
            turn = await sync_to_async(prepare_turn)(
                session.user_id, session.chat.chat_id, session.message, model_name, user_row=session.user_row
            )
        except APIError as fallback_error:
            yield error_event(fallback_error.message)
            yield status_event(StreamStatus.FAILED, code=fallback_error.status_code)
            return
        async for event in stream_regular_chat(turn, provider_streaming=False):
            yield event
    except APIError as e:
        logger.warning(f"Brainstorm stream for {session.chat.chat_id} failed: {e.message}")
        yield error_event(e.message)
        yield status_event(StreamStatus.FAILED, code=e.status_code)
    except Exception as e:
        logger.error(f"Unexpected error in brainstorm stream for {session.chat.chat_id}: {e}", exc_info=True)
        yield error_event("Brainstorm failed")
        yield status_event(StreamStatus.FAILED, code=500)
