"""
Pydantic models for chat requests, brainstorm settings and stream events.
"""

from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from chathub.agents.config import DEFAULT_MODEL
from chathub.agents.prompts import DEFAULT_BRAINSTORM_PROMPT

MAX_BRAINSTORM_ITERATIONS = 10


class EventType(str, Enum):
    """Stream event names."""
    MESSAGE_START = "messageStart"
    TOKEN = "token"
    MESSAGE_COMPLETE = "messageComplete"
    SUMMARY_START = "summaryStart"
    SUMMARY_COMPLETE = "summaryComplete"
    BRAINSTORM_COMPLETE = "brainstormComplete"
    STATUS = "status"
    ERROR = "error"


class StreamStatus(str, Enum):
    """Values of the status event."""
    STARTED = "started"
    FALLBACK = "fallback"
    RESET = "reset"
    COMPLETE = "complete"
    FAILED = "failed"


class TokenEvent(BaseModel):
    """One chunk of a message being streamed."""

    id: str
    token: str
    sequence: int = Field(..., ge=0)


class ChatRequest(BaseModel):
    """Body of the chatWithGPT endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    chat_id: str = Field(..., min_length=1, alias="chatId")
    message: str = Field(..., min_length=1)
    model_name: str = Field(..., min_length=1, alias="modelName")
    stream: bool = False
    brainstorm_mode: Optional[bool] = Field(default=None, alias="brainstormMode")
    brainstorm_settings: Optional[Dict[str, Any]] = Field(default=None, alias="brainstormSettings")

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v


class BrainstormSettings(BaseModel):
    """Per-chat brainstorm configuration."""

    model_config = ConfigDict(populate_by_name=True)

    messages_limit: int = Field(default=2, ge=1, le=MAX_BRAINSTORM_ITERATIONS, alias="messagesLimit")
    custom_prompt: str = Field(default=DEFAULT_BRAINSTORM_PROMPT, alias="customPrompt")
    main_model: str = Field(default=DEFAULT_MODEL.value, alias="mainModel")
    additional_model: str = Field(default=DEFAULT_MODEL.value, alias="additionalModel")
    summary_model: str = Field(default=DEFAULT_MODEL.value, alias="summaryModel")

    @field_validator("custom_prompt")
    @classmethod
    def default_blank_prompt(cls, v: str) -> str:
        return v if v and v.strip() else DEFAULT_BRAINSTORM_PROMPT

    def model_for_iteration(self, index: int) -> str:
        """Main model on even iterations, additional model on odd ones."""
        return self.main_model if index % 2 == 0 else self.additional_model
