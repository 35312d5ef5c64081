"""
Provider Factory

Creates and caches the provider instances used by the semantic scanner, so
one client (and its connection pool) is shared per provider, endpoint and
key. A process-wide factory backs the module-level helpers.
"""

import logging

from .anthropic_provider import AnthropicProvider
from .base import BaseProvider, ProviderConfig
from .openai_compatible import OpenAICompatibleProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

ProviderKey = tuple[str, str, str]


class ProviderFactory:
    """Factory for creating and managing LLM providers."""

    _PROVIDERS: dict[str, type[BaseProvider]] = {
        "openai": OpenAIProvider,
        "anthropic": AnthropicProvider,
        "openai-compatible": OpenAICompatibleProvider,
    }

    def __init__(self) -> None:
        self._instances: dict[ProviderKey, BaseProvider] = {}

    @staticmethod
    def _key(provider_name: str, config: ProviderConfig) -> ProviderKey:
        return provider_name, config.base_url or "default", config.api_key[:8]

    def create_provider(self, provider_name: str, config: ProviderConfig) -> BaseProvider:
        """
        Create or retrieve a provider instance.

        Raises:
            ValueError: If the provider is unknown or its configuration is invalid
            DependencyError: If the provider SDK is not installed
        """
        provider_name = provider_name.lower().strip()
        provider_class = self._PROVIDERS.get(provider_name)
        if provider_class is None:
            supported = ", ".join(self._PROVIDERS)
            raise ValueError(f"Unsupported provider: {provider_name}. Supported providers: {supported}")

        key = self._key(provider_name, config)
        instance = self._instances.get(key)
        if instance is not None:
            instance.config.enabled = config.enabled
            return instance

        instance = provider_class(config)
        self._instances[key] = instance
        logger.info(f"Created {provider_name} provider instance", extra={"provider": provider_name})
        return instance

    def get_provider(self, provider_name: str) -> BaseProvider | None:
        """First cached instance for a provider name, or None."""
        provider_name = provider_name.lower().strip()
        return next((p for (name, _, _), p in self._instances.items() if name == provider_name), None)

    def list_providers(self) -> dict[str, BaseProvider]:
        """Enabled provider instances keyed by name."""
        return {p.name: p for p in self._instances.values() if p.config.enabled}

    async def close_all(self) -> None:
        """Close every cached provider; a failing close is logged and skipped."""
        for provider in self._instances.values():
            try:
                await provider.close()
            except Exception as e:
                logger.error(
                    f"Error closing provider {provider.name}: {e}",
                    extra={"provider": provider.name, "error": str(e)},
                )
        self._instances.clear()

    def reset(self) -> None:
        """Forget all instances without closing them."""
        self._instances.clear()

    @classmethod
    def get_supported_providers(cls) -> list[str]:
        return list(cls._PROVIDERS)


# Global factory instance
_factory: ProviderFactory | None = None


def get_factory() -> ProviderFactory:
    global _factory

    if _factory is None:
        _factory = ProviderFactory()

    return _factory


def create_provider(provider_name: str, config: ProviderConfig) -> BaseProvider:
    return get_factory().create_provider(provider_name, config)


def get_provider(provider_name: str) -> BaseProvider | None:
    return get_factory().get_provider(provider_name)


def list_providers() -> dict[str, BaseProvider]:
    return get_factory().list_providers()


async def close_all_providers() -> None:
    """Close all providers held by the global factory."""
    await get_factory().close_all()


def reset_factory() -> None:
    """Drop the global factory (tests)."""
    global _factory
    if _factory:
        _factory.reset()
    _factory = None
