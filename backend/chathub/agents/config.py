"""
Static model configuration: provider routing, credit rates and pricing.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional
from chathub.core import config


class ModelName(str, Enum):
    """Public model names accepted by the chat endpoints."""
    CHATGPT = "ChatGPT"
    CLAUDE = "Claude"
    GEMINI = "Gemini"
    DEEPSEEK = "DeepSeek"


@dataclass(frozen=True)
class ModelConfig:
    provider: str
    model_id_setting: str
    api_key_setting: str
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    base_url_setting: Optional[str] = None
    description: str = ""

    @property
    def model_id(self) -> str:
        return getattr(config, self.model_id_setting)

    @property
    def api_key(self) -> str:
        return getattr(config, self.api_key_setting)

    @property
    def base_url(self) -> Optional[str]:
        if not self.base_url_setting:
            return None
        return getattr(config, self.base_url_setting)


MODEL_CONFIGS: Dict[ModelName, ModelConfig] = {
    ModelName.CHATGPT: ModelConfig(
        provider="openai",
        model_id_setting="CHATGPT_MODEL_ID",
        api_key_setting="OPENAI_API_KEY",
        max_tokens=1024,
        description="OpenAI general purpose assistant",
    ),
    ModelName.CLAUDE: ModelConfig(
        provider="anthropic",
        model_id_setting="CLAUDE_MODEL_ID",
        api_key_setting="ANTHROPIC_API_KEY",
        max_tokens=1024,
        description="Anthropic assistant with long-form reasoning",
    ),
    ModelName.GEMINI: ModelConfig(
        provider="google_genai",
        model_id_setting="GEMINI_MODEL_ID",
        api_key_setting="GOOGLE_API_KEY",
        description="Google DeepMind multimodal assistant",
    ),
    # DeepSeek exposes an OpenAI-compatible API
    ModelName.DEEPSEEK: ModelConfig(
        provider="openai",
        model_id_setting="DEEPSEEK_MODEL_ID",
        api_key_setting="DEEPSEEK_API_KEY",
        max_tokens=750,
        base_url_setting="DEEPSEEK_BASE_URL",
        description="Efficient and affordable reasoning",
    ),
}

DEFAULT_MODEL = ModelName.CHATGPT

# Tokens bought by one credit
TOKEN_RATES: Dict[ModelName, int] = {
    ModelName.CHATGPT: 1278,
    ModelName.GEMINI: 42624,
    ModelName.DEEPSEEK: 23164,
    ModelName.CLAUDE: 888,
}

# Estimated provider cost in USD per token
API_PRICING_PER_TOKEN: Dict[ModelName, Decimal] = {
    ModelName.CHATGPT: Decimal("0.00001"),
    ModelName.GEMINI: Decimal("0.0000025"),
    ModelName.DEEPSEEK: Decimal("0.0000018"),
    ModelName.CLAUDE: Decimal("0.000003"),
}


def resolve_model_name(value) -> Optional[ModelName]:
    """Map a request value to a ModelName, or None when unknown."""
    if isinstance(value, ModelName):
        return value
    try:
        return ModelName(value)
    except ValueError:
        return None
