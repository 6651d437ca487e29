"""
Shared fixtures for the test suite.
"""

from decimal import Decimal
from asgiref.sync import async_to_sync
from django.contrib.auth import get_user_model
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from chathub.db.models import ChatSession

User = get_user_model()


class FailingChatModel(FakeListChatModel):
    """Chat model whose every call fails."""

    def _call(self, *args, **kwargs):
        raise RuntimeError("provider unavailable")

    def _stream(self, *args, **kwargs):
        raise RuntimeError("provider unavailable")
        yield

    async def _astream(self, *args, **kwargs):
        raise RuntimeError("provider unavailable")
        yield


def fake_model(*responses):
    return FakeListChatModel(responses=list(responses))


def failing_model():
    return FailingChatModel(responses=["unused"])


def create_user(email="user@example.com", credits="10"):
    return User.objects.create_user(email=email, password="pass1234", credits_remaining=Decimal(credits))


def create_chat(user, chat_id="chat-1", **kwargs):
    return ChatSession.objects.create(user=user, chat_id=chat_id, title=kwargs.pop("title", "Test chat"), **kwargs)


def collect(events):
    """Drain an async event iterator from synchronous test code."""
    async def gather():
        return [event async for event in events]
    return async_to_sync(gather)()


def event_names(events, skip_tokens=True):
    return [e["event"] for e in events if not (skip_tokens and e["event"] == "token")]


def token_text(events, message_id=None):
    return "".join(
        e["data"]["token"] for e in events
        if e["event"] == "token" and (message_id is None or e["data"]["id"] == message_id)
    )
