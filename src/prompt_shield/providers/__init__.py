"""
Providers Module

Unified interface for the LLM backends the semantic scanner calls.

Public API:
    - BaseProvider: Abstract base class for all providers
    - ProviderConfig: Base configuration for providers
    - CompletionRequest / CompletionResponse: Standardized request/response

    Provider implementations:
    - OpenAIProvider: OpenAI chat completions
    - OpenAICompatibleProvider: Custom OpenAI-compatible endpoints (Groq by default)
    - AnthropicProvider: Anthropic Messages API

    Factory functions:
    - create_provider(), get_provider(), list_providers()
    - get_factory(), close_all_providers(), reset_factory()

Usage:
    >>> from prompt_shield.providers import create_provider, ProviderConfig
    >>> provider = create_provider("openai-compatible", ProviderConfig(api_key="gsk_..."))
"""

from .anthropic_provider import AnthropicProvider
from .base import (
    BaseProvider,
    CompletionRequest,
    CompletionResponse,
    ProviderConfig,
)
from .factory import (
    ProviderFactory,
    close_all_providers,
    create_provider,
    get_factory,
    get_provider,
    list_providers,
    reset_factory,
)
from .openai_compatible import GROQ_BASE_URL, OpenAICompatibleProvider
from .openai_provider import OpenAIProvider

__all__ = [
    # Base classes and models
    "BaseProvider",
    "ProviderConfig",
    "CompletionRequest",
    "CompletionResponse",
    # Provider implementations
    "OpenAIProvider",
    "AnthropicProvider",
    "OpenAICompatibleProvider",
    "GROQ_BASE_URL",
    # Factory and utilities
    "ProviderFactory",
    "create_provider",
    "get_provider",
    "list_providers",
    "get_factory",
    "close_all_providers",
    "reset_factory",
]
