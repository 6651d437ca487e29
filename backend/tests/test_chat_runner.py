"""
Tests for regular chat orchestration.
"""

from decimal import Decimal
from unittest.mock import patch
from django.test import TestCase
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from chathub.agents.chat_runner import build_prompt, prepare_turn, run_regular_chat
from chathub.agents.config import ModelName
from chathub.core.errors import InsufficientCreditsError, InvalidModelError, NotFoundError, UpstreamError
from chathub.db.models import APIUsageLog, Message
from chathub.services import chat_service
from chathub.services.token_calculator import calculate_credits, calculate_tokens
from helpers import create_chat, create_user, failing_model, fake_model

REPLY = "Hi there, how can I help you today?"


@patch("chathub.agents.chat_runner.create_model")
class TestRegularChat(TestCase):

    def setUp(self):
        self.user = create_user(credits="10")
        self.chat = create_chat(self.user)

    def test_debits_after_response(self, mock_create):
        mock_create.return_value = fake_model(REPLY)

        result = run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        rows = list(Message.objects.filter(session=self.chat).order_by("sequence"))
        self.assertEqual(len(rows), 2)
        user_row, ai_row = rows
        self.assertEqual(user_row.user_input, "Hello")
        self.assertEqual(ai_row.api_response, REPLY)
        self.assertEqual(ai_row.model, "ChatGPT")
        self.assertGreater(ai_row.timestamp, user_row.timestamp)

        expected = calculate_credits("ChatGPT", calculate_tokens("Hello"), calculate_tokens(REPLY))
        self.user.refresh_from_db()
        self.assertEqual(self.user.credits_remaining, Decimal("10") - expected)
        self.assertEqual(ai_row.credits_deducted, expected)
        self.assertEqual(result.credits_deducted, expected)
        self.assertEqual(result.credits_remaining, self.user.credits_remaining)
        self.assertEqual(self.user.token_usage_count, result.token_info.total_tokens)

    def test_response_payload(self, mock_create):
        mock_create.return_value = fake_model(REPLY)

        data = run_regular_chat(self.user.id, "chat-1", "Hello", "Claude").to_dict()

        self.assertTrue(data["success"])
        self.assertEqual(data["model"]["requested"], "Claude")
        self.assertEqual(data["aiMessage"]["apiResponse"], REPLY)
        self.assertEqual(data["userMessage"]["userInput"], "Hello")
        self.assertIn("totalTokens", data["tokensUsed"])

    def test_usage_is_logged(self, mock_create):
        mock_create.return_value = fake_model(REPLY)

        run_regular_chat(self.user.id, "chat-1", "Hello", "Gemini")

        log = APIUsageLog.objects.get(user=self.user)
        self.assertEqual(log.model_name, "Gemini")
        self.assertEqual(log.session_id, self.chat.id)
        self.assertEqual(len(log.messages_used), 2)

    def test_low_balance_is_rejected_before_model_call(self, mock_create):
        self.user.credits_remaining = Decimal("0.05")
        self.user.save()

        with self.assertRaises(InsufficientCreditsError):
            run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        mock_create.assert_not_called()
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 0)

    def test_reply_costing_more_than_balance_is_kept(self, mock_create):
        self.user.credits_remaining = Decimal("0.15")
        self.user.save()
        long_reply = "x" * 2000
        mock_create.return_value = fake_model(long_reply)

        result = run_regular_chat(self.user.id, "chat-1", "Hello", "Claude")

        cost = calculate_credits("Claude", calculate_tokens("Hello"), calculate_tokens(long_reply))
        self.assertGreater(cost, Decimal("0.15"))
        self.assertEqual(result.ai_message.api_response, long_reply)
        self.assertEqual(result.credits_deducted, Decimal("0.15"))
        self.assertEqual(result.credits_remaining, Decimal("0"))
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 2)

    def test_model_failure_leaves_balance_unchanged(self, mock_create):
        mock_create.return_value = failing_model()

        with self.assertRaises(UpstreamError) as ctx:
            run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        self.assertEqual(ctx.exception.status_code, 502)
        self.user.refresh_from_db()
        self.assertEqual(self.user.credits_remaining, Decimal("10"))
        self.assertFalse(Message.objects.filter(session=self.chat).exclude(api_response="").exists())

    def test_empty_response_is_a_failure(self, mock_create):
        mock_create.return_value = fake_model("   ")

        with self.assertRaises(UpstreamError):
            run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        self.assertEqual(Message.objects.filter(session=self.chat).count(), 0)

    def test_unknown_model(self, mock_create):
        with self.assertRaises(InvalidModelError):
            run_regular_chat(self.user.id, "chat-1", "Hello", "GPT-9")
        mock_create.assert_not_called()

    def test_other_users_chat(self, mock_create):
        other = create_user(email="other@example.com")
        with self.assertRaises(NotFoundError):
            run_regular_chat(other.id, "chat-1", "Hello", "ChatGPT")

    def test_saved_user_message_is_reused(self, mock_create):
        mock_create.return_value = fake_model(REPLY)
        chat_service.append_message(self.chat, user_input="Hello")

        run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        self.assertEqual(Message.objects.filter(session=self.chat).exclude(user_input="").count(), 1)
        self.assertEqual(Message.objects.filter(session=self.chat).count(), 2)

    def test_summary_updated_once_history_is_long(self, mock_create):
        for i in range(5):
            chat_service.append_message(self.chat, user_input=f"Question {i}")
            chat_service.append_message(self.chat, api_response=f"Answer {i}")
        mock_create.return_value = fake_model(REPLY, "The user asked five questions.")

        run_regular_chat(self.user.id, "chat-1", "One more", "ChatGPT")

        self.chat.refresh_from_db()
        self.assertEqual(self.chat.summary, "The user asked five questions.")

    def test_short_history_keeps_no_summary(self, mock_create):
        mock_create.return_value = fake_model(REPLY)

        run_regular_chat(self.user.id, "chat-1", "Hello", "ChatGPT")

        self.chat.refresh_from_db()
        self.assertIsNone(self.chat.summary)


class TestPrompt(TestCase):

    def setUp(self):
        self.user = create_user()
        self.chat = create_chat(self.user)

    def test_prompt_order_and_summary(self):
        chat_service.append_message(self.chat, user_input="First")
        chat_service.append_message(self.chat, api_response="Reply")

        messages = build_prompt(ModelName.CLAUDE, "Earlier we discussed cats.", chat_service.list_messages(self.chat), "Next")

        self.assertIsInstance(messages[0], SystemMessage)
        self.assertIn("Claude", messages[0].content)
        self.assertIn("Earlier we discussed cats.", messages[0].content)
        self.assertEqual([type(m) for m in messages[1:]], [HumanMessage, AIMessage, HumanMessage])
        self.assertEqual(messages[-1].content, "Next")

    @patch("chathub.agents.chat_runner.create_model")
    def test_brainstorm_iterations_are_not_history(self, mock_create):
        mock_create.return_value = fake_model(REPLY)
        chat_service.append_message(self.chat, user_input="Topic", kind=Message.KIND_BRAINSTORM)
        chat_service.append_message(self.chat, api_response="Idea", kind=Message.KIND_BRAINSTORM)
        chat_service.append_message(self.chat, api_response="Summary", kind=Message.KIND_SUMMARY)

        turn = prepare_turn(self.user.id, "chat-1", "Next", "ChatGPT")

        self.assertEqual([row.text for row in turn.history], ["Topic", "Summary"])
        self.assertEqual(turn.history_length, 3)
