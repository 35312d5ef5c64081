"""
Anthropic Provider Implementation

Messages-API backend for the semantic scanner. Anthropic has no JSON mode,
so the scanner's system prompt alone asks for a JSON object reply.
"""

import logging
from typing import Any

try:
    import anthropic
    from anthropic import AsyncAnthropic

    ANTHROPIC_AVAILABLE = True
except ImportError:
    anthropic = None  # type: ignore[assignment]
    AsyncAnthropic = None  # type: ignore[assignment, misc]
    ANTHROPIC_AVAILABLE = False

from ..errors import DependencyError
from .base import BaseProvider, CompletionRequest, CompletionResponse, ProviderConfig

logger = logging.getLogger(__name__)

# The Messages API requires max_tokens
DEFAULT_MAX_TOKENS = 1024


def split_system_message(messages: list[dict[str, str]]) -> tuple[str | None, list[dict[str, Any]]]:
    """Separate the system message (a top-level parameter here) from the conversation turns."""
    system: str | None = None
    turns: list[dict[str, Any]] = []
    for message in messages:
        if message.get("role") == "system":
            system = message.get("content", "")
        else:
            turns.append({"role": message.get("role", "user"), "content": message.get("content", "")})
    return system, turns


class AnthropicProvider(BaseProvider):
    """Anthropic (Claude) Messages API provider."""

    sdk = anthropic

    def __init__(self, config: ProviderConfig) -> None:
        """
        Initialize the provider and its async client.

        Raises:
            DependencyError: If the Anthropic SDK is not installed
            ValueError: If configuration is invalid
        """
        super().__init__(config)

        if not ANTHROPIC_AVAILABLE or AsyncAnthropic is None:
            raise DependencyError(
                package="anthropic",
                feature="Anthropic provider",
                install_hint="pip install 'anthropic>=0.25.0'",
            )

        self.client = AsyncAnthropic(**config.client_kwargs())
        logger.info("Anthropic provider initialized", extra={"provider": self.name, "timeout": config.timeout})

    def _validate_config(self) -> None:
        if not self.config.api_key:
            raise ValueError("Anthropic API key is required. Set ANTHROPIC_API_KEY environment variable.")

    @property
    def name(self) -> str:
        return "anthropic"

    async def _send(self, request: CompletionRequest) -> CompletionResponse:
        system, turns = split_system_message(request.messages)

        params: dict[str, Any] = {
            "model": request.model,
            "messages": turns,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system:
            params["system"] = system
        params.update(request.extra)

        response = await self.client.messages.create(**params)

        usage = response.usage
        input_tokens = usage.input_tokens if usage else 0
        output_tokens = usage.output_tokens if usage else 0
        return CompletionResponse(
            # Content comes back as a list of blocks
            content="".join(block.text for block in response.content or [] if hasattr(block, "text")),
            model=request.model,
            usage={
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
            finish_reason=response.stop_reason or "unknown",
            provider=self.name,
        )

    async def close(self) -> None:
        try:
            await self.client.close()
        except Exception as e:
            logger.warning(f"Error closing Anthropic client: {e}", extra={"provider": self.name, "error": str(e)})
