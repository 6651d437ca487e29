"""
Stream event emission for chat responses.

Two ways of producing token events exist and are kept apart:

* provider streaming: chunks come from ``llm.astream`` as the model generates them
* replay: a response that is already complete is re-emitted in fixed-size
  chunks with a short delay, so the client renders it the same way
"""

import asyncio
import json
from typing import Any, AsyncIterator, Dict, List, Optional
from django.core.serializers.json import DjangoJSONEncoder
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from chathub.agents.model_factory import extract_text
from chathub.agents.models import EventType, StreamStatus, TokenEvent
from chathub.core import config
from chathub.core.logging import get_logger

logger = get_logger(__name__)


def emit_event(event_type: EventType, data: Dict[str, Any]) -> Dict[str, Any]:
    """Build a stream event."""
    return {"event": EventType(event_type).value, "data": data}


def status_event(status: StreamStatus, **extra) -> Dict[str, Any]:
    return emit_event(EventType.STATUS, {"status": StreamStatus(status).value, **extra})


def error_event(message: str) -> Dict[str, Any]:
    return emit_event(EventType.ERROR, {"message": message})


def format_event(event: Dict[str, Any]) -> str:
    """Serialize an event as one line of newline-delimited JSON."""
    return json.dumps(event, cls=DjangoJSONEncoder) + "\n"


def token_event(message_id: str, token: str, sequence: int) -> Dict[str, Any]:
    payload = TokenEvent(id=message_id, token=token, sequence=sequence)
    return emit_event(EventType.TOKEN, payload.model_dump())


async def replay_text(
    text: str,
    message_id: str,
    start_sequence: int = 0,
    chunk_size: Optional[int] = None,
    delay: Optional[float] = None,
) -> AsyncIterator[Dict[str, Any]]:
    """
    Re-emit a complete text as token events.

    Args:
        text: Full text to replay
        message_id: Id the client uses to assemble the message
        start_sequence: Sequence number of the first chunk
        chunk_size: Characters per chunk (default from configuration)
        delay: Seconds to wait between chunks (default from configuration)
    """
    chunk_size = chunk_size or config.STREAM_REPLAY_CHUNK_SIZE
    delay = config.STREAM_REPLAY_DELAY_SECONDS if delay is None else delay

    sequence = start_sequence
    for start in range(0, len(text), chunk_size):
        yield token_event(message_id, text[start:start + chunk_size], sequence)
        sequence += 1
        if delay > 0:
            await asyncio.sleep(delay)


class ResponseStream:
    """
    Drives one model call and yields token events for it.

    After iteration, ``text`` holds the complete response.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        messages: List[BaseMessage],
        message_id: str,
        run_config: Optional[Dict[str, Any]] = None,
    ):
        self.llm = llm
        self.messages = messages
        self.message_id = message_id
        self.run_config = run_config or {}
        self.text = ""
        self.sequence = 0
        self.used_fallback = False

    async def provider_tokens(self) -> AsyncIterator[Dict[str, Any]]:
        """
        Stream chunks from the provider as they are generated.

        If the provider stream breaks, the response is requested once more
        without streaming and the part the client has not seen is replayed.
        When the new response does not extend what was already sent, a
        ``reset`` status tells the client to discard its partial text first.
        """
        try:
            async for chunk in self.llm.astream(self.messages, config=self.run_config):
                piece = extract_text(chunk)
                if not piece:
                    continue
                self.text += piece
                yield token_event(self.message_id, piece, self.sequence)
                self.sequence += 1
            return
        except Exception as e:
            logger.warning(
                f"Provider stream failed after {self.sequence} chunks, falling back to a single call: {e}"
            )

        self.used_fallback = True
        response = await self.llm.ainvoke(self.messages, config=self.run_config)
        full_text = extract_text(response)
        if full_text.startswith(self.text):
            remainder = full_text[len(self.text):]
        else:
            yield status_event(StreamStatus.RESET, id=self.message_id)
            remainder = full_text
        self.text = full_text

        async for event in replay_text(remainder, self.message_id, start_sequence=self.sequence):
            self.sequence += 1
            yield event

    async def replayed_tokens(self) -> AsyncIterator[Dict[str, Any]]:
        """Request the complete response, then replay it in fixed-size chunks."""
        response = await self.llm.ainvoke(self.messages, config=self.run_config)
        self.text = extract_text(response)
        async for event in replay_text(self.text, self.message_id, start_sequence=self.sequence):
            self.sequence += 1
            yield event
