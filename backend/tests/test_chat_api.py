"""
Tests for the chat endpoints.
"""

import json
from decimal import Decimal
from unittest.mock import patch
from django.test import TestCase
from chathub.agents.config import ModelName
from chathub.core.security import generate_tokens
from chathub.db.models import ChatSession, Message
from helpers import create_chat, create_user, fake_model


def post_json(client, url, payload, **extra):
    return client.post(url, data=json.dumps(payload), content_type="application/json", **extra)


def parse_stream(response):
    body = b"".join(response).decode()
    return [json.loads(line) for line in body.splitlines() if line.strip()]


class TestChatWithGPT(TestCase):
    url = "/api/chat/chatWithGPT/"

    def setUp(self):
        self.user = create_user(credits="10")
        self.chat = create_chat(self.user)
        self.client.force_login(self.user)

    def test_requires_authentication(self):
        self.client.logout()
        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT"})
        self.assertEqual(response.status_code, 401)

    def test_jwt_authentication(self):
        self.client.logout()
        token = generate_tokens(self.user)["access"]
        with patch("chathub.agents.chat_runner.create_model", return_value=fake_model("Hello!")):
            response = post_json(
                self.client, self.url,
                {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT"},
                HTTP_AUTHORIZATION=f"Bearer {token}",
            )
        self.assertEqual(response.status_code, 200)

    def test_missing_fields(self):
        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Hi"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_blank_message(self):
        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "  ", "modelName": "ChatGPT"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_model(self):
        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "GPT-9"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_chat(self):
        with patch("chathub.agents.chat_runner.create_model", return_value=fake_model("Hello!")):
            response = post_json(self.client, self.url, {"chatId": "missing", "message": "Hi", "modelName": "ChatGPT"})
        self.assertEqual(response.status_code, 404)

    def test_insufficient_credits(self):
        self.user.credits_remaining = Decimal("0.05")
        self.user.save()

        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT"})

        self.assertEqual(response.status_code, 403)
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 0)

    @patch("chathub.agents.chat_runner.create_model")
    def test_regular_chat(self, mock_create):
        mock_create.return_value = fake_model("Hello from the model")

        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT"})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["aiMessage"]["apiResponse"], "Hello from the model")
        self.assertEqual(data["model"]["requested"], "ChatGPT")
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 2)

    @patch("chathub.agents.chat_runner.create_model")
    def test_regular_chat_stream(self, mock_create):
        mock_create.return_value = fake_model("Streamed hello")

        response = post_json(
            self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT", "stream": True}
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Type"].startswith("text/event-stream"))
        self.assertEqual(response["Cache-Control"], "no-cache")
        events = parse_stream(response)
        self.assertEqual(events[0]["event"], "messageStart")
        self.assertEqual(events[-1], {"event": "status", "data": {"status": "complete"}})
        text = "".join(e["data"]["token"] for e in events if e["event"] == "token")
        self.assertEqual(text, "Streamed hello")
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 2)

    def test_stream_setup_errors_are_json(self):
        self.user.credits_remaining = Decimal("0")
        self.user.save()

        response = post_json(
            self.client, self.url, {"chatId": "chat-1", "message": "Hi", "modelName": "ChatGPT", "stream": True}
        )

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.streaming)

    @patch("chathub.agents.brainstorm.create_model")
    def test_brainstorm_from_chat_settings(self, mock_create):
        ChatSession.objects.filter(id=self.chat.id).update(
            brainstorm_mode=True,
            brainstorm_settings={"messagesLimit": 2, "mainModel": "ChatGPT", "additionalModel": "Claude"},
        )
        models = {
            ModelName.CHATGPT: fake_model("GPT idea", "Summary"),
            ModelName.CLAUDE: fake_model("Claude idea"),
        }
        mock_create.side_effect = lambda name: models[name]

        response = post_json(self.client, self.url, {"chatId": "chat-1", "message": "Picnic", "modelName": "ChatGPT"})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data["mode"], "brainstorm")
        self.assertEqual([m["model"] for m in data["messages"]], ["ChatGPT", "Claude"])
        self.assertEqual(data["summary"]["apiResponse"], "Summary")

    @patch("chathub.agents.chat_runner.create_model")
    @patch("chathub.agents.brainstorm.create_model")
    def test_brainstorm_stream_setup_failure_falls_back(self, mock_create, mock_chat_create):
        mock_chat_create.return_value = fake_model("Plain answer")

        response = post_json(self.client, self.url, {
            "chatId": "chat-1",
            "message": "Picnic",
            "modelName": "ChatGPT",
            "stream": True,
            "brainstormMode": True,
            "brainstormSettings": {"messagesLimit": 0},
        })

        events = parse_stream(response)
        self.assertEqual(events[0]["data"]["status"], "fallback")
        self.assertIn("Invalid brainstorm settings", events[0]["data"]["reason"])
        self.assertEqual(events[-1]["data"]["status"], "complete")
        mock_create.assert_not_called()


class TestChatHistoryEndpoints(TestCase):

    def setUp(self):
        self.user = create_user()
        self.client.force_login(self.user)

    def test_save_chat_twice_updates_title(self):
        first = post_json(self.client, "/api/chat/saveChat/", {"chatId": "c-1", "title": "Draft"})
        second = post_json(self.client, "/api/chat/saveChat/", {"chatId": "c-1", "title": "Final"})

        self.assertEqual(first.status_code, 201)
        self.assertEqual(second.status_code, 200)
        self.assertFalse(second.json()["created"])
        self.assertEqual(ChatSession.objects.filter(chat_id="c-1").count(), 1)
        self.assertEqual(ChatSession.objects.get(chat_id="c-1").title, "Final")

    def test_save_message_splits_combined_row(self):
        create_chat(self.user, chat_id="c-2")

        response = post_json(self.client, "/api/chat/saveMessage/", {
            "chatId": "c-2",
            "message": {"userInput": "Q", "apiResponse": "A", "timestamp": "2024-05-01T10:00:00Z"},
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual([m["role"] for m in response.json()["messages"]], ["user", "assistant"])

    def test_save_message_validation(self):
        create_chat(self.user, chat_id="c-3")

        response = post_json(self.client, "/api/chat/saveMessage/", {"chatId": "c-3", "message": {"userInput": "Q"}})

        self.assertEqual(response.status_code, 400)

    def test_get_chat_returns_ordered_history(self):
        chat = create_chat(self.user, chat_id="c-4")
        post_json(self.client, "/api/chat/saveMessage/", {
            "chatId": "c-4",
            "message": {"userInput": "Q", "apiResponse": "A", "timestamp": 1714557600000},
        })

        response = self.client.get("/api/chat/getChat/c-4/")

        self.assertEqual(response.status_code, 200)
        messages = response.json()["messages"]
        self.assertEqual([m["userInput"] or m["apiResponse"] for m in messages], ["Q", "A"])
        self.assertEqual(response.json()["chat"]["chatId"], chat.chat_id)

    def test_get_chat_of_other_user(self):
        other = create_user(email="other@example.com")
        create_chat(other, chat_id="theirs")

        self.assertEqual(self.client.get("/api/chat/getChat/theirs/").status_code, 404)

    def test_delete_and_restore(self):
        create_chat(self.user, chat_id="c-5")

        response = self.client.delete("/api/chat/deleteChat/", data=json.dumps({"chatId": "c-5"}), content_type="application/json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/chat/getChats/").json()["chats"], [])

        response = post_json(self.client, "/api/chat/restoreChat/", {"chatId": "c-5"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(self.client.get("/api/chat/getChats/").json()["chats"]), 1)
