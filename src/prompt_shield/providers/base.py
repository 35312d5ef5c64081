"""
Base Provider Interface

The semantic scanner makes exactly one kind of call: a short chat completion
with a hard timeout. BaseProvider.complete() owns that contract (enabled
check, timeout, latency, error translation); concrete providers only turn a
CompletionRequest into an SDK call and the SDK reply into a
CompletionResponse.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Any

from pydantic import BaseModel, Field

from ..errors import ProviderError, ProviderRateLimitError, ProviderTimeoutError, ShieldError

logger = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """Connection settings for one provider client."""

    api_key: str = Field(..., description="API key for the provider")
    base_url: str | None = Field(None, description="Custom base URL (optional)")
    timeout: float = Field(30.0, gt=0.0, description="Request timeout in seconds")
    max_retries: int = Field(0, ge=0, description="SDK-level retry attempts")
    enabled: bool = Field(True, description="Whether this provider is enabled")

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments shared by the OpenAI and Anthropic async clients."""
        kwargs: dict[str, Any] = {"api_key": self.api_key, "timeout": self.timeout, "max_retries": self.max_retries}
        if self.base_url:
            kwargs["base_url"] = self.base_url
        return kwargs


class CompletionRequest(BaseModel):
    """Standardized completion request."""

    model: str = Field(..., description="Model identifier")
    messages: list[dict[str, str]] = Field(..., description="Chat messages")
    temperature: float = Field(0.0, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int | None = Field(None, description="Maximum tokens to generate")
    timeout: float | None = Field(None, gt=0.0, description="Per-request timeout override in seconds")
    json_response: bool = Field(False, description="Ask for a JSON object reply where the backend supports it")
    extra: dict[str, Any] = Field(default_factory=dict, description="Provider-specific parameters")


class CompletionResponse(BaseModel):
    """Standardized completion response."""

    content: str = Field(..., description="Generated content")
    model: str = Field(..., description="Model used")
    usage: dict[str, int] = Field(default_factory=dict, description="Token usage statistics")
    finish_reason: str = Field("unknown", description="Why generation stopped")
    provider: str = Field(..., description="Provider name")
    latency_ms: float = Field(0.0, description="Request latency in milliseconds")


class BaseProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses implement name, _validate_config() and _send(). SDK
    exceptions are mapped by _translate_error(); the default wraps anything
    unexpected in ProviderError.
    """

    # SDK module whose exception classes _translate_error() understands
    sdk: ModuleType | None = None

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config
        self._validate_config()

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate provider-specific configuration.

        Raises:
            ValueError: If configuration is invalid
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g. 'openai', 'anthropic')."""

    @property
    def supports_json_mode(self) -> bool:
        """Whether the backend can be forced to reply with a JSON object."""
        return False

    @abstractmethod
    async def _send(self, request: CompletionRequest) -> CompletionResponse:
        """Make the SDK call; latency is filled in by complete()."""

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """
        Run one completion under the request (or client) timeout.

        Raises:
            RuntimeError: If the provider is disabled
            ProviderTimeoutError: If the call does not finish in time
            ProviderRateLimitError: If the backend rate-limits the call
            ProviderError: For any other failure
        """
        if not self.config.enabled:
            logger.warning(
                f"Attempted to use disabled provider: {self.name}",
                extra={"provider": self.name, "model": request.model},
            )
            raise RuntimeError(f"Provider {self.name} is disabled")

        timeout = request.timeout if request.timeout is not None else self.config.timeout
        start_time = time.perf_counter()

        logger.debug(
            f"Calling {self.name} with model {request.model}",
            extra={"provider": self.name, "model": request.model, "message_count": len(request.messages)},
        )

        try:
            response = await asyncio.wait_for(self._send(request), timeout=timeout)
        except TimeoutError as e:
            logger.warning(
                f"{self.name} request timed out after {timeout}s",
                extra={"provider": self.name, "model": request.model, "timeout": timeout},
            )
            raise ProviderTimeoutError(self.name, timeout) from e
        except ShieldError:
            raise
        except Exception as e:
            raise self._translate_error(e, request, timeout) from e

        return response.model_copy(update={"latency_ms": (time.perf_counter() - start_time) * 1000})

    def _translate_error(self, error: Exception, request: CompletionRequest, timeout: float) -> ShieldError:
        """Map an SDK exception onto the ShieldError hierarchy."""
        sdk = self.sdk
        details: dict[str, Any] = {"provider": self.name, "model": request.model, "error": str(error)}

        if sdk is not None:
            if isinstance(error, sdk.APITimeoutError):
                return ProviderTimeoutError(self.name, timeout)

            if isinstance(error, sdk.RateLimitError):
                retry_after = getattr(error, "retry_after", None)
                logger.warning(f"{self.name} rate limit exceeded", extra={**details, "retry_after": retry_after})
                return ProviderRateLimitError(self.name, retry_after)

            if isinstance(error, sdk.AuthenticationError):
                logger.error(f"{self.name} authentication failed: {error}", extra=details)
                return ProviderError(f"{self.name} authentication failed. Check your API key.", details=details)

            if isinstance(error, sdk.APIError):
                details["status_code"] = getattr(error, "status_code", None)
                logger.error(f"{self.name} API error: {error}", extra=details)
                return ProviderError(f"{self.name} API error: {error}", details=details)

        logger.error(f"Unexpected error calling {self.name}: {error}", extra=details, exc_info=error)
        return ProviderError(f"Unexpected error calling {self.name}: {error}", details=details)

    async def close(self) -> None:
        """Release client resources. Override if needed."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, enabled={self.config.enabled})"
