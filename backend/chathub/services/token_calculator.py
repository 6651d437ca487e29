"""
Token and credit arithmetic.

Token counts are a deterministic approximation (four characters per token) so
that the amount billed never depends on provider-side tokenizers.
"""
import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from chathub.agents.config import (
    ModelName,
    TOKEN_RATES,
    API_PRICING_PER_TOKEN,
    DEFAULT_MODEL,
    resolve_model_name,
)

CHARS_PER_TOKEN = 4
CREDIT_QUANTUM = Decimal("0.000001")


@dataclass(frozen=True)
class TokenInfo:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int

    def to_dict(self) -> dict:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


def calculate_tokens(text: str) -> int:
    """Approximate token count of a text: ceil(len / 4)."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def calculate_message_tokens(prompt: str, completion: str) -> TokenInfo:
    """Token usage of one prompt/completion exchange."""
    prompt_tokens = calculate_tokens(prompt)
    completion_tokens = calculate_tokens(completion)
    return TokenInfo(
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
    )


def _rate_key(model) -> ModelName:
    return resolve_model_name(model) or DEFAULT_MODEL


def calculate_credits(model, prompt_tokens: int, completion_tokens: int) -> Decimal:
    """
    Credits charged for a model call.

    Args:
        model: Public model name; unknown names are billed at the ChatGPT rate
        prompt_tokens: Tokens sent to the model
        completion_tokens: Tokens returned by the model

    Returns:
        Credit cost rounded to six decimal places
    """
    total = Decimal(prompt_tokens + completion_tokens)
    rate = Decimal(TOKEN_RATES[_rate_key(model)])
    return (total / rate).quantize(CREDIT_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_api_cost(model, total_tokens: int) -> Decimal:
    """Estimated provider cost in USD for the given number of tokens."""
    return API_PRICING_PER_TOKEN[_rate_key(model)] * Decimal(total_tokens)
