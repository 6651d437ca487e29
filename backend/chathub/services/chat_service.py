"""
Chat history store: chat sessions and their ordered message rows.
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from chathub.core.config import ASSISTANT_TIMESTAMP_OFFSET_SECONDS
from chathub.core.errors import NotFoundError, ValidationError
from chathub.core.logging import get_logger
from chathub.db.models.session import ChatSession
from chathub.db.models.message import Message

logger = get_logger(__name__)

DEFAULT_CHAT_TITLE = "New Chat"


def get_chat(user_id: int, chat_id: str, include_deleted: bool = False) -> Optional[ChatSession]:
    """
    Get a chat owned by the user.

    Args:
        user_id: User ID
        chat_id: Client chat identifier
        include_deleted: Also return soft-deleted chats

    Returns:
        ChatSession or None if not found, not owned or deleted
    """
    queryset = ChatSession.objects.filter(chat_id=chat_id, user_id=user_id)
    if not include_deleted:
        queryset = queryset.filter(deleted=False)
    return queryset.first()


def require_chat(user_id: int, chat_id: str) -> ChatSession:
    """Like get_chat, but raises NotFoundError."""
    chat = get_chat(user_id, chat_id)
    if chat is None:
        raise NotFoundError("Chat not found")
    return chat


def get_user_chats(user_id: int) -> List[ChatSession]:
    """Non-deleted chats of a user, most recently active first."""
    return list(ChatSession.objects.filter(user_id=user_id, deleted=False).order_by("-updated_at"))


def save_chat(
    user_id: int,
    chat_id: str,
    title: Optional[str] = None,
    brainstorm_mode: Optional[bool] = None,
    brainstorm_settings: Optional[Dict[str, Any]] = None,
) -> Tuple[ChatSession, bool]:
    """
    Create or update a chat by its client identifier.

    Calling it again with the same chat_id updates the given fields and never
    creates a second chat.

    Returns:
        Tuple of (chat, created)
    """
    if not chat_id:
        raise ValidationError("chatId is required")

    with transaction.atomic():
        chat = ChatSession.objects.select_for_update().filter(chat_id=chat_id).first()
        if chat is not None and chat.user_id != user_id:
            raise NotFoundError("Chat not found")

        if chat is None:
            chat = ChatSession.objects.create(
                user_id=user_id,
                chat_id=chat_id,
                title=title or DEFAULT_CHAT_TITLE,
                brainstorm_mode=bool(brainstorm_mode),
                brainstorm_settings=brainstorm_settings or {},
            )
            logger.debug(f"Created chat {chat_id} for user {user_id}")
            return chat, True

        update_fields = ["updated_at"]
        if title is not None:
            chat.title = title
            update_fields.append("title")
        if brainstorm_mode is not None:
            chat.brainstorm_mode = brainstorm_mode
            update_fields.append("brainstorm_mode")
        if brainstorm_settings is not None:
            chat.brainstorm_settings = brainstorm_settings
            update_fields.append("brainstorm_settings")
        chat.save(update_fields=update_fields)

    logger.debug(f"Updated chat {chat_id} for user {user_id}: {update_fields}")
    return chat, False


def soft_delete_chat(user_id: int, chat_id: str) -> bool:
    """Hide a chat from listings. Messages are kept."""
    updated = ChatSession.objects.filter(chat_id=chat_id, user_id=user_id, deleted=False).update(
        deleted=True, updated_at=timezone.now()
    )
    return updated > 0


def restore_chat(user_id: int, chat_id: str) -> bool:
    """Undo a soft delete."""
    updated = ChatSession.objects.filter(chat_id=chat_id, user_id=user_id, deleted=True).update(
        deleted=False, updated_at=timezone.now()
    )
    return updated > 0


def append_message(
    chat: ChatSession,
    *,
    user_input: str = "",
    api_response: str = "",
    kind: str = Message.KIND_TEXT,
    model: str = "",
    credits_deducted: Decimal = Decimal("0"),
    timestamp: Optional[datetime] = None,
    context_id: str = "",
) -> Message:
    """
    Append one row to a chat.

    The row gets the next sequence number of the chat. Its timestamp is moved
    to one second after the previous row when it would not sort after it.

    Args:
        chat: Target chat
        user_input: User text (exclusive with api_response)
        api_response: Model text (exclusive with user_input)
        kind: text, brainstorm or summary
        model: Public model name that produced the row
        credits_deducted: Credits billed for this row
        timestamp: Row time, defaults to now
        context_id: Correlation id of the request

    Returns:
        Created Message
    """
    if bool(user_input) == bool(api_response):
        raise ValueError("A message row carries exactly one of user_input or api_response")

    timestamp = timestamp or timezone.now()
    with transaction.atomic():
        # Lock the chat row so concurrent writers get distinct sequence numbers
        ChatSession.objects.select_for_update().only("id").get(id=chat.id)
        last = Message.objects.filter(session_id=chat.id).order_by("-sequence").first()
        sequence = last.sequence + 1 if last else 1
        if last and timestamp <= last.timestamp:
            timestamp = last.timestamp + timedelta(seconds=ASSISTANT_TIMESTAMP_OFFSET_SECONDS)

        message = Message.objects.create(
            session_id=chat.id,
            user_input=user_input,
            api_response=api_response,
            input_type=kind,
            output_type=kind,
            model=model,
            credits_deducted=credits_deducted,
            timestamp=timestamp,
            sequence=sequence,
            context_id=context_id,
        )

    logger.debug(f"Appended {message.role} message {message.id} (seq {sequence}) to chat {chat.chat_id}")
    return message


def list_messages(chat: ChatSession) -> List[Message]:
    """All rows of a chat in conversation order."""
    return list(Message.objects.filter(session_id=chat.id).order_by("sequence"))


def find_pending_user_message(chat: ChatSession, text: str) -> Optional[Message]:
    """
    The unanswered user row for this turn, if the client already saved it.

    Only the last row of the chat qualifies, and only when it is a user row
    with the same text.
    """
    last = Message.objects.filter(session_id=chat.id).order_by("-sequence").first()
    if last and last.user_input and last.user_input == text:
        return last
    return None


def update_summary(chat: ChatSession, summary: str) -> None:
    """Store a new rolling summary (also bumps updated_at)."""
    chat.summary = summary
    chat.save(update_fields=["summary", "updated_at"])


def touch_updated_at(chat: ChatSession) -> None:
    """Mark the chat as recently active."""
    ChatSession.objects.filter(id=chat.id).update(updated_at=timezone.now())


def _parse_timestamp(value) -> datetime:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as sent by browsers
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
    if isinstance(value, str):
        parsed = parse_datetime(value)
        if parsed is not None:
            if timezone.is_naive(parsed):
                parsed = timezone.make_aware(parsed, dt_timezone.utc)
            return parsed
    raise ValidationError("timestamp must be an ISO-8601 string or epoch milliseconds")


def save_message(
    user_id: int,
    chat_id: str,
    message: Dict[str, Any],
    chat_metadata: Optional[Dict[str, Any]] = None,
) -> List[Message]:
    """
    Persist a client-side message.

    A legacy combined message carrying both ``userInput`` and ``apiResponse``
    is stored as two rows.

    Args:
        user_id: User ID
        chat_id: Client chat identifier
        message: Dict with userInput, timestamp and optional apiResponse,
            inputType, model, contextId
        chat_metadata: When given, a missing chat is created from it

    Returns:
        Created rows in conversation order

    Raises:
        ValidationError: userInput or timestamp missing
        NotFoundError: Chat soft-deleted, or missing with no metadata to create it
    """
    user_input = (message or {}).get("userInput")
    raw_timestamp = (message or {}).get("timestamp")
    if not user_input or raw_timestamp in (None, ""):
        raise ValidationError("Missing required fields: userInput and timestamp")

    timestamp = _parse_timestamp(raw_timestamp)
    kind = message.get("inputType") or Message.KIND_TEXT
    if kind not in dict(Message.KIND_CHOICES):
        raise ValidationError(f"Unknown message type: {kind}")

    chat = get_chat(user_id, chat_id, include_deleted=True)
    if chat is not None and chat.deleted:
        raise NotFoundError("Chat not found")
    if chat is None:
        if not chat_metadata:
            raise NotFoundError("Chat not found")
        chat, _ = save_chat(
            user_id,
            chat_id,
            title=chat_metadata.get("title"),
            brainstorm_mode=chat_metadata.get("brainstormMode"),
            brainstorm_settings=chat_metadata.get("brainstormSettings"),
        )

    context_id = message.get("contextId") or ""
    rows = [
        append_message(
            chat,
            user_input=user_input,
            kind=kind,
            timestamp=timestamp,
            context_id=context_id,
        )
    ]
    api_response = message.get("apiResponse")
    if api_response:
        rows.append(
            append_message(
                chat,
                api_response=api_response,
                kind=message.get("outputType") or kind,
                model=message.get("model") or "",
                timestamp=timestamp,
                context_id=context_id,
            )
        )

    touch_updated_at(chat)
    return rows


def message_to_dict(message: Message) -> Dict[str, Any]:
    """Client representation of a message row."""
    return {
        "id": message.id,
        "role": message.role,
        "userInput": message.user_input,
        "apiResponse": message.api_response,
        "inputType": message.input_type,
        "outputType": message.output_type,
        "model": message.model,
        "creditsDeducted": str(message.credits_deducted),
        "timestamp": message.timestamp.isoformat(),
        "sequence": message.sequence,
        "contextId": message.context_id,
    }


def chat_to_dict(chat: ChatSession) -> Dict[str, Any]:
    """Client representation of a chat."""
    return {
        "chatId": chat.chat_id,
        "title": chat.title,
        "summary": chat.summary,
        "brainstormMode": chat.brainstorm_mode,
        "brainstormSettings": chat.brainstorm_settings,
        "deleted": chat.deleted,
        "createdAt": chat.created_at.isoformat(),
        "updatedAt": chat.updated_at.isoformat(),
    }
