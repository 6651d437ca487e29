"""
Chat message model.
"""

from decimal import Decimal
from django.db import models
from django.utils import timezone
from .session import ChatSession


class Message(models.Model):
    """
    One half of a conversational exchange.

    A row carries either the user's input or the model's response, never both.
    Rows are immutable once written and ordered by ``sequence`` within a chat.
    """

    KIND_TEXT = "text"
    KIND_BRAINSTORM = "brainstorm"
    KIND_SUMMARY = "summary"

    KIND_CHOICES = [
        (KIND_TEXT, "Text"),
        (KIND_BRAINSTORM, "Brainstorm"),
        (KIND_SUMMARY, "Summary"),
    ]

    session = models.ForeignKey(
        ChatSession, on_delete=models.CASCADE, related_name="messages"
    )
    user_input = models.TextField(blank=True, default="")
    api_response = models.TextField(blank=True, default="")
    input_type = models.CharField(max_length=20, choices=KIND_CHOICES, default=KIND_TEXT)
    output_type = models.CharField(max_length=20, choices=KIND_CHOICES, default=KIND_TEXT)
    model = models.CharField(max_length=50, blank=True, default="")
    credits_deducted = models.DecimalField(
        max_digits=14, decimal_places=6, default=Decimal("0")
    )
    timestamp = models.DateTimeField(default=timezone.now)
    sequence = models.PositiveIntegerField(
        help_text="Monotonic position of the row inside its chat"
    )
    context_id = models.CharField(
        max_length=64,
        blank=True,
        default="",
        help_text="Correlation id shared by the rows of one request",
    )

    class Meta:
        db_table = "messages"
        ordering = ["sequence"]
        verbose_name = "Message"
        verbose_name_plural = "Messages"
        constraints = [
            models.UniqueConstraint(
                fields=["session", "sequence"], name="messages_session_sequence_uniq"
            ),
        ]
        indexes = [
            models.Index(fields=["session", "timestamp"], name="messages_session_3c1d9a_idx"),
        ]

    @property
    def role(self) -> str:
        return "user" if self.user_input else "assistant"

    @property
    def text(self) -> str:
        return self.user_input or self.api_response

    def __str__(self):
        return f"{self.role}: {self.text[:50]}..."
