"""
Tests for the chat history store.
"""

from datetime import timedelta
from django.test import TestCase
from django.utils import timezone
from chathub.core.errors import NotFoundError, ValidationError
from chathub.db.models import ChatSession, Message
from chathub.services import chat_service
from helpers import create_chat, create_user


class TestAppendMessage(TestCase):

    def setUp(self):
        self.user = create_user()
        self.chat = create_chat(self.user)

    def test_sequence_is_monotonic(self):
        first = chat_service.append_message(self.chat, user_input="Hello")
        second = chat_service.append_message(self.chat, api_response="Hi!", model="ChatGPT")

        self.assertEqual(first.sequence, 1)
        self.assertEqual(second.sequence, 2)
        self.assertEqual([m.role for m in chat_service.list_messages(self.chat)], ["user", "assistant"])

    def test_timestamp_moved_after_previous_row(self):
        now = timezone.now()
        user_row = chat_service.append_message(self.chat, user_input="Hello", timestamp=now)
        ai_row = chat_service.append_message(self.chat, api_response="Hi!", timestamp=now)

        self.assertEqual(ai_row.timestamp, user_row.timestamp + timedelta(seconds=1))

    def test_later_timestamp_is_kept(self):
        now = timezone.now()
        chat_service.append_message(self.chat, user_input="Hello", timestamp=now)
        later = now + timedelta(seconds=30)
        ai_row = chat_service.append_message(self.chat, api_response="Hi!", timestamp=later)

        self.assertEqual(ai_row.timestamp, later)

    def test_row_needs_exactly_one_text(self):
        with self.assertRaises(ValueError):
            chat_service.append_message(self.chat)
        with self.assertRaises(ValueError):
            chat_service.append_message(self.chat, user_input="a", api_response="b")

    def test_pending_user_message_is_last_row_only(self):
        chat_service.append_message(self.chat, user_input="Hello")
        self.assertIsNotNone(chat_service.find_pending_user_message(self.chat, "Hello"))
        self.assertIsNone(chat_service.find_pending_user_message(self.chat, "Other"))

        chat_service.append_message(self.chat, api_response="Hi!")
        self.assertIsNone(chat_service.find_pending_user_message(self.chat, "Hello"))


class TestSaveChat(TestCase):

    def setUp(self):
        self.user = create_user()

    def test_save_chat_is_idempotent(self):
        chat, created = chat_service.save_chat(self.user.id, "chat-x", title="First")
        again, created_again = chat_service.save_chat(self.user.id, "chat-x", title="Renamed")

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(chat.id, again.id)
        self.assertEqual(ChatSession.objects.filter(chat_id="chat-x").count(), 1)
        self.assertEqual(ChatSession.objects.get(chat_id="chat-x").title, "Renamed")

    def test_default_title(self):
        chat, _ = chat_service.save_chat(self.user.id, "chat-y")
        self.assertEqual(chat.title, chat_service.DEFAULT_CHAT_TITLE)

    def test_save_chat_updates_brainstorm_settings(self):
        chat_service.save_chat(self.user.id, "chat-z")
        chat, _ = chat_service.save_chat(
            self.user.id, "chat-z", brainstorm_mode=True, brainstorm_settings={"messagesLimit": 3}
        )

        self.assertTrue(chat.brainstorm_mode)
        self.assertEqual(chat.brainstorm_settings, {"messagesLimit": 3})

    def test_other_users_chat_is_not_found(self):
        chat_service.save_chat(self.user.id, "chat-owned")
        other = create_user(email="other@example.com")

        with self.assertRaises(NotFoundError):
            chat_service.save_chat(other.id, "chat-owned", title="Hijack")

    def test_soft_delete_and_restore(self):
        chat_service.save_chat(self.user.id, "chat-d")

        self.assertTrue(chat_service.soft_delete_chat(self.user.id, "chat-d"))
        self.assertIsNone(chat_service.get_chat(self.user.id, "chat-d"))
        self.assertEqual(chat_service.get_user_chats(self.user.id), [])

        self.assertTrue(chat_service.restore_chat(self.user.id, "chat-d"))
        self.assertIsNotNone(chat_service.get_chat(self.user.id, "chat-d"))


class TestSaveMessage(TestCase):

    def setUp(self):
        self.user = create_user()
        self.chat = create_chat(self.user)

    def test_combined_message_is_split(self):
        rows = chat_service.save_message(self.user.id, "chat-1", {
            "userInput": "What is 2+2?",
            "apiResponse": "4",
            "model": "ChatGPT",
            "timestamp": "2024-05-01T10:00:00Z",
        })

        self.assertEqual([r.role for r in rows], ["user", "assistant"])
        self.assertEqual(rows[1].model, "ChatGPT")
        self.assertGreater(rows[1].timestamp, rows[0].timestamp)
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 2)

    def test_epoch_millisecond_timestamp(self):
        rows = chat_service.save_message(self.user.id, "chat-1", {"userInput": "Hi", "timestamp": 1714557600000})
        self.assertEqual(rows[0].timestamp.year, 2024)

    def test_missing_fields(self):
        for message in ({"timestamp": "2024-05-01T10:00:00Z"}, {"userInput": "Hi"}):
            with self.subTest(message=message):
                with self.assertRaises(ValidationError):
                    chat_service.save_message(self.user.id, "chat-1", message)

    def test_unknown_type(self):
        with self.assertRaises(ValidationError):
            chat_service.save_message(
                self.user.id, "chat-1", {"userInput": "Hi", "timestamp": 1714557600000, "inputType": "image"}
            )

    def test_missing_chat_without_metadata(self):
        with self.assertRaises(NotFoundError):
            chat_service.save_message(self.user.id, "nope", {"userInput": "Hi", "timestamp": 1714557600000})

    def test_missing_chat_created_from_metadata(self):
        rows = chat_service.save_message(
            self.user.id,
            "new-chat",
            {"userInput": "Hi", "timestamp": 1714557600000},
            chat_metadata={"title": "Fresh", "brainstormMode": True},
        )

        chat = ChatSession.objects.get(chat_id="new-chat")
        self.assertEqual(chat.title, "Fresh")
        self.assertTrue(chat.brainstorm_mode)
        self.assertEqual(rows[0].session_id, chat.id)

    def test_deleted_chat_rejects_messages(self):
        chat_service.soft_delete_chat(self.user.id, "chat-1")

        with self.assertRaises(NotFoundError):
            chat_service.save_message(
                self.user.id,
                "chat-1",
                {"userInput": "Hi", "timestamp": 1714557600000},
                chat_metadata={"title": "Again"},
            )

        self.chat.refresh_from_db()
        self.assertTrue(self.chat.deleted)
        self.assertEqual(self.chat.title, "Test chat")
        self.assertFalse(Message.objects.filter(session=self.chat).exists())

    def test_message_to_dict(self):
        row = chat_service.append_message(self.chat, user_input="Hello", context_id="ctx")
        data = chat_service.message_to_dict(row)

        self.assertEqual(data["role"], "user")
        self.assertEqual(data["userInput"], "Hello")
        self.assertEqual(data["sequence"], 1)
        self.assertEqual(data["contextId"], "ctx")
