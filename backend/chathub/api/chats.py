"""
Chat endpoints: model chat (regular and brainstorm, streamed or not) and
chat history persistence.
"""
import json
from typing import Any, AsyncIterator, Dict
from asgiref.sync import sync_to_async
from django.http import JsonResponse, StreamingHttpResponse
from django.views.decorators.http import require_http_methods
from django.views.decorators.csrf import csrf_exempt
from pydantic import ValidationError as PydanticValidationError
from chathub.agents.brainstorm import (
    fallback_model,
    prepare_brainstorm,
    run_brainstorm_with_fallback,
    stream_brainstorm,
)
from chathub.agents.chat_runner import prepare_turn, run_regular_chat, stream_regular_chat
from chathub.agents.models import ChatRequest, StreamStatus
from chathub.agents.streaming import format_event, status_event
from chathub.core.dependencies import get_current_user, get_current_user_async
from chathub.core.errors import APIError, BrainstormError, InvalidModelError, NotFoundError
from chathub.core.logging import get_logger
from chathub.services import chat_service

logger = get_logger(__name__)


def _event_stream_response(events: AsyncIterator[Dict[str, Any]]) -> StreamingHttpResponse:
    async def event_stream():
        async for event in events:
            yield format_event(event)

    response = StreamingHttpResponse(event_stream(), content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    response['X-Accel-Buffering'] = 'no'
    return response


def _validation_message(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")


def _is_brainstorm(chat_request: ChatRequest, user_id: int) -> bool:
    if chat_request.brainstorm_mode is not None:
        return chat_request.brainstorm_mode
    chat = chat_service.get_chat(user_id, chat_request.chat_id)
    return bool(chat and chat.brainstorm_mode)


async def _brainstorm_events(user_id: int, chat_request: ChatRequest) -> AsyncIterator[Dict[str, Any]]:
    """Brainstorm stream, or a regular stream when the brainstorm cannot be set up."""
    try:
        session = await sync_to_async(prepare_brainstorm)(
            user_id, chat_request.chat_id, chat_request.message, chat_request.brainstorm_settings
        )
    except (BrainstormError, InvalidModelError) as e:
        reason = e.message
        chat = await sync_to_async(chat_service.get_chat)(user_id, chat_request.chat_id)
        model_name = fallback_model(chat_request.brainstorm_settings, chat)
        logger.warning(f"Brainstorm setup failed for chat {chat_request.chat_id} ({reason}); using {model_name.value}")
        turn = await sync_to_async(prepare_turn)(user_id, chat_request.chat_id, chat_request.message, model_name)

        async def fallback():
            yield status_event(StreamStatus.FALLBACK, reason=reason, model=model_name.value)
            async for event in stream_regular_chat(turn, provider_streaming=False):
                yield event

        return fallback()
    return stream_brainstorm(session)


@csrf_exempt
@require_http_methods(["POST"])
async def chat_with_gpt(request):
    """
    Answer a user message with one model, or run a brainstorm.

    Request body:
    {
        "chatId": str,
        "message": str,
        "modelName": "ChatGPT" | "Claude" | "Gemini" | "DeepSeek",
        "stream": bool,
        "brainstormMode": bool,
        "brainstormSettings": {...}
    }

    Returns:
        JSON result, or a text/event-stream of one JSON event per line when
        "stream" is true
    """
    user = await get_current_user_async(request)
    if not user:
        logger.warning("Unauthenticated request to chatWithGPT endpoint")
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = json.loads(request.body or b'{}')
        chat_request = ChatRequest.model_validate(data)
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)
    except PydanticValidationError as e:
        return JsonResponse({'success': False, 'error': _validation_message(e)}, status=400)

    try:
        brainstorm = await sync_to_async(_is_brainstorm)(chat_request, user.id)
        logger.info(
            f"chatWithGPT user={user.id} chat={chat_request.chat_id} model={chat_request.model_name} "
            f"brainstorm={brainstorm} stream={chat_request.stream}"
        )

        if chat_request.stream:
            if brainstorm:
                events = await _brainstorm_events(user.id, chat_request)
            else:
                turn = await sync_to_async(prepare_turn)(
                    user.id, chat_request.chat_id, chat_request.message, chat_request.model_name
                )
                events = stream_regular_chat(turn)
            return _event_stream_response(events)

        if brainstorm:
            result = await sync_to_async(run_brainstorm_with_fallback)(
                user.id, chat_request.chat_id, chat_request.message, chat_request.brainstorm_settings
            )
        else:
            result = await sync_to_async(run_regular_chat)(
                user.id, chat_request.chat_id, chat_request.message, chat_request.model_name
            )
        return JsonResponse(result.to_dict())

    except APIError as e:
        logger.warning(f"chatWithGPT failed for user {user.id}: {e.message} ({e.status_code})")
        return e.to_response()
    except Exception as e:
        logger.error(f"Unexpected error in chatWithGPT endpoint: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Failed to generate response'}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def save_message(request):
    """
    Persist a message written on the client.

    Request body:
    {
        "chatId": str,
        "message": {"userInput": str, "timestamp": str | int, "apiResponse": str?, ...},
        "chatMetadata": {"title": str, "brainstormMode": bool, "brainstormSettings": {...}}?
    }
    """
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = json.loads(request.body or b'{}')
        chat_id = data.get('chatId')
        if not chat_id:
            return JsonResponse({'success': False, 'error': 'chatId is required'}, status=400)

        rows = chat_service.save_message(
            user.id,
            chat_id,
            data.get('message') or {},
            chat_metadata=data.get('chatMetadata'),
        )
        return JsonResponse({
            'success': True,
            'messages': [chat_service.message_to_dict(row) for row in rows],
        }, status=201)

    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)
    except APIError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Error saving message: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Failed to save message'}, status=500)


@csrf_exempt
@require_http_methods(["POST"])
def save_chat(request):
    """
    Create a chat, or update it when the chatId already exists.

    Request body:
    {
        "chatId": str,
        "title": str?,
        "brainstormMode": bool?,
        "brainstormSettings": {...}?
    }
    """
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = json.loads(request.body or b'{}')
        chat, created = chat_service.save_chat(
            user.id,
            data.get('chatId'),
            title=data.get('title'),
            brainstorm_mode=data.get('brainstormMode'),
            brainstorm_settings=data.get('brainstormSettings'),
        )
        return JsonResponse({
            'success': True,
            'created': created,
            'chat': chat_service.chat_to_dict(chat),
        }, status=201 if created else 200)

    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)
    except APIError as e:
        return e.to_response()
    except Exception as e:
        logger.error(f"Error saving chat: {e}", exc_info=True)
        return JsonResponse({'success': False, 'error': 'Failed to save chat'}, status=500)


@csrf_exempt
@require_http_methods(["GET"])
def get_chats(request):
    """List the user's chats, most recently active first."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    chats = chat_service.get_user_chats(user.id)
    return JsonResponse({
        'success': True,
        'chats': [chat_service.chat_to_dict(chat) for chat in chats],
    })


@csrf_exempt
@require_http_methods(["GET"])
def get_chat(request, chat_id):
    """A chat with its full history in conversation order."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        chat = chat_service.require_chat(user.id, chat_id)
    except NotFoundError as e:
        return e.to_response()

    return JsonResponse({
        'success': True,
        'chat': chat_service.chat_to_dict(chat),
        'messages': [chat_service.message_to_dict(row) for row in chat_service.list_messages(chat)],
    })


@csrf_exempt
@require_http_methods(["DELETE", "POST"])
def delete_chat(request):
    """Soft-delete a chat."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = json.loads(request.body or b'{}')
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    chat_id = data.get('chatId') or request.GET.get('chatId')
    if not chat_id:
        return JsonResponse({'success': False, 'error': 'chatId is required'}, status=400)
    if not chat_service.soft_delete_chat(user.id, chat_id):
        return JsonResponse({'success': False, 'error': 'Chat not found'}, status=404)

    logger.info(f"User {user.id} deleted chat {chat_id}")
    return JsonResponse({'success': True})


@csrf_exempt
@require_http_methods(["POST"])
def restore_chat(request):
    """Undo a soft delete."""
    user = get_current_user(request)
    if not user:
        return JsonResponse({'success': False, 'error': 'Authentication required'}, status=401)

    try:
        data = json.loads(request.body or b'{}')
    except json.JSONDecodeError:
        return JsonResponse({'success': False, 'error': 'Invalid JSON'}, status=400)

    chat_id = data.get('chatId')
    if not chat_id or not chat_service.restore_chat(user.id, chat_id):
        return JsonResponse({'success': False, 'error': 'Chat not found'}, status=404)

    return JsonResponse({'success': True})
