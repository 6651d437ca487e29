"""
API usage log model.
"""
from decimal import Decimal
from django.db import models
from django.conf import settings
from .session import ChatSession


class APIUsageLog(models.Model):
    """Per-call record of token usage, credits charged and provider cost."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='usage_logs'
    )
    session = models.ForeignKey(
        ChatSession,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='usage_logs'
    )
    model_name = models.CharField(max_length=50)
    usage_type = models.CharField(max_length=20, default="chat")
    prompt_tokens = models.IntegerField(default=0)
    completion_tokens = models.IntegerField(default=0)
    tokens_used = models.IntegerField(default=0)
    credits_deducted = models.DecimalField(max_digits=14, decimal_places=6, default=Decimal("0"))
    api_cost = models.DecimalField(
        max_digits=14,
        decimal_places=8,
        default=Decimal("0"),
        help_text="Estimated provider cost in USD",
    )
    messages_used = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'api_usage_logs'
        ordering = ['-created_at']
        verbose_name = 'API Usage Log'
        verbose_name_plural = 'API Usage Logs'
        indexes = [
            models.Index(fields=['user', '-created_at'], name='api_usage_l_user_id_4f8b2c_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} {self.model_name}: {self.tokens_used} tokens"
