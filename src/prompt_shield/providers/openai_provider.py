"""
OpenAI Provider Implementation

Chat-completions backend for the semantic scanner using the official
OpenAI SDK. Supports JSON mode through response_format.
"""

import logging
from typing import Any

try:
    import openai
    from openai import AsyncOpenAI

    OPENAI_AVAILABLE = True
except ImportError:
    openai = None  # type: ignore[assignment]
    AsyncOpenAI = None  # type: ignore[assignment, misc]
    OPENAI_AVAILABLE = False

from ..errors import DependencyError
from .base import BaseProvider, CompletionRequest, CompletionResponse, ProviderConfig

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """OpenAI chat-completions provider."""

    sdk = openai

    def __init__(self, config: ProviderConfig) -> None:
        """
        Initialize the provider and its async client.

        Raises:
            DependencyError: If the OpenAI SDK is not installed
            ValueError: If configuration is invalid
        """
        super().__init__(config)

        if not OPENAI_AVAILABLE or AsyncOpenAI is None:
            raise DependencyError(
                package="openai",
                feature=f"{self.name} provider",
                install_hint="pip install 'openai>=1.0.0'",
            )

        self.client = AsyncOpenAI(**config.client_kwargs())

        logger.info(
            f"{self.name} provider initialized",
            extra={"provider": self.name, "base_url": config.base_url or "default", "timeout": config.timeout},
        )

    def _validate_config(self) -> None:
        if not self.config.api_key:
            raise ValueError("OpenAI API key is required. Set OPENAI_API_KEY environment variable.")

    @property
    def name(self) -> str:
        return "openai"

    @property
    def supports_json_mode(self) -> bool:
        return True

    def _build_params(self, request: CompletionRequest) -> dict[str, Any]:
        params: dict[str, Any] = {
            "model": request.model,
            "messages": request.messages,
            "temperature": request.temperature,
        }
        if request.max_tokens:
            params["max_tokens"] = request.max_tokens
        if request.json_response:
            params["response_format"] = {"type": "json_object"}
        params.update(request.extra)
        return params

    async def _send(self, request: CompletionRequest) -> CompletionResponse:
        response = await self.client.chat.completions.create(**self._build_params(request))

        choice = response.choices[0]
        usage = response.usage
        return CompletionResponse(
            content=choice.message.content or "",
            model=request.model,
            usage={
                "prompt_tokens": usage.prompt_tokens if usage else 0,
                "completion_tokens": usage.completion_tokens if usage else 0,
                "total_tokens": usage.total_tokens if usage else 0,
            },
            finish_reason=choice.finish_reason or "unknown",
            provider=self.name,
        )

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing {self.name} client: {e}", extra={"provider": self.name, "error": str(e)})
