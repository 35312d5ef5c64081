"""
Prompt Shield - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import logging
import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from prompt_shield.config import reset_config
from prompt_shield.providers.base import CompletionResponse
from prompt_shield.providers.factory import reset_factory
from prompt_shield.security.recorder import AttackRecorder, set_attack_recorder
from prompt_shield.security.semantic_scanner import SemanticScanner
from prompt_shield.telemetry.store import MemoryAttackStore

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"

# Keys from the developer's shell must not switch on real providers
PROVIDER_ENV_VARS = (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "OPENAI_COMPATIBLE_API_KEY",
    "GROQ_API_KEY",
)


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> Generator[None, None, None]:
    """Clear provider keys, run from an empty directory and reset singletons around each test."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    package_logger = logging.getLogger("prompt_shield")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)

    reset_config()
    set_attack_recorder(None)
    reset_factory()
    yield
    reset_config()
    set_attack_recorder(None)
    reset_factory()


@pytest.fixture
def memory_store() -> MemoryAttackStore:
    return MemoryAttackStore()


@pytest.fixture
def recorder(memory_store: MemoryAttackStore) -> AttackRecorder:
    """Recorder with a small capacity writing to an in-memory store."""
    return AttackRecorder(store=memory_store, capacity=20, flush_interval_seconds=60.0)


def make_provider(content: str | None = None, side_effect: Any = None, json_mode: bool = True) -> MagicMock:
    """Mock provider whose complete() returns content (or raises side_effect)."""
    provider = MagicMock()
    provider.name = "mock"
    provider.supports_json_mode = json_mode
    provider.close = AsyncMock()
    if side_effect is not None:
        provider.complete = AsyncMock(side_effect=side_effect)
    else:
        provider.complete = AsyncMock(
            return_value=CompletionResponse(content=content or "", model="mock-model", provider="mock")
        )
    return provider


@pytest.fixture
def unsafe_scanner() -> SemanticScanner:
    """Scanner whose classifier flags every input."""
    provider = make_provider(
        '{"safe": false, "reason": "Attempts to override instructions", '
        '"confidence": 0.92, "categories": ["instruction-override", "jailbreak"]}'
    )
    return SemanticScanner(provider=provider, timeout_ms=1000)


@pytest.fixture
def safe_scanner() -> SemanticScanner:
    """Scanner whose classifier clears every input."""
    provider = make_provider('{"safe": true, "confidence": 0.95, "categories": ["none"]}')
    return SemanticScanner(provider=provider, timeout_ms=1000)


@pytest.fixture
def disabled_scanner() -> SemanticScanner:
    return SemanticScanner(provider=None)


@pytest.fixture
def sample_business_context() -> str:
    """Benign business description, about 60 characters per sentence."""
    return "Acme builds accounting software for small retail businesses. " * 100


@pytest.fixture
def provider_factory() -> Any:
    """Builder for mock providers: provider_factory(content=..., side_effect=...)."""
    return make_provider
