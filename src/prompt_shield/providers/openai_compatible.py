"""
OpenAI-Compatible Provider Implementation

Integration with endpoints that implement the OpenAI chat-completions API
(Groq, vLLM, LM Studio, Ollama, ...). Defaults to Groq, where the scanner's
default classification model is served.
"""

import logging

from .base import ProviderConfig
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAICompatibleProvider(OpenAIProvider):
    """
    OpenAI-compatible API provider implementation.

    Uses the OpenAI SDK against a custom base URL.
    """

    def __init__(self, config: ProviderConfig) -> None:
        """Initialize OpenAI-compatible provider (base_url defaults to Groq)."""
        if not config.base_url:
            config = config.model_copy(update={"base_url": GROQ_BASE_URL})
        super().__init__(config)

    def _validate_config(self) -> None:
        """Validate OpenAI-compatible provider configuration."""
        if not self.config.base_url:
            raise ValueError("base_url is required for OpenAI-compatible provider")

        if not self.config.base_url.startswith(("http://", "https://")):
            raise ValueError("base_url must start with http:// or https://")

    @property
    def name(self) -> str:
        """Return provider name."""
        return "openai-compatible"
