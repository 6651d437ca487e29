"""
Chat session model.
"""
from django.db import models
from django.conf import settings


class ChatSession(models.Model):
    """Chat session model for storing conversation sessions."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='chat_sessions'
    )
    chat_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Client-generated chat identifier"
    )
    title = models.CharField(max_length=255, blank=True, default='')
    summary = models.TextField(
        blank=True,
        null=True,
        help_text="Rolling summary of earlier turns, injected into the system prompt"
    )
    brainstorm_mode = models.BooleanField(default=False)
    brainstorm_settings = models.JSONField(default=dict, blank=True)
    deleted = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'chat_sessions'
        ordering = ['-updated_at']
        verbose_name = 'Chat Session'
        verbose_name_plural = 'Chat Sessions'
        indexes = [
            models.Index(fields=['user', 'deleted', '-updated_at'], name='chat_sessio_user_id_0b6f2e_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.title or 'Untitled'} ({self.chat_id})"
