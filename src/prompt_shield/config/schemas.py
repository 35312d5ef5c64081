"""
Prompt Shield - Configuration Schemas

Defines typed configuration models using Pydantic for validation and type safety.
All configuration must be defined here and validated at startup.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Pipeline thresholds and field limits live with the security package;
# imported here so there is a single source of truth.
from ..security.config import FieldLimits as FieldLimits
from ..security.config import SecurityConfig as SecurityConfig


class Environment(str, Enum):
    """Runtime environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class LogLevel(str, Enum):
    """Log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ScannerProvider(str, Enum):
    """Backends the semantic scanner can call."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OPENAI_COMPATIBLE = "openai-compatible"


class StoreBackend(str, Enum):
    """Supported attack store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class ScannerConfig(BaseModel):
    """Semantic (LLM-based) scanner configuration."""

    enabled: bool = Field(default=True, description="Run the semantic scan on high-risk requests")
    provider: ScannerProvider = Field(
        default=ScannerProvider.OPENAI_COMPATIBLE, description="Provider used for the classification call"
    )
    model: str = Field(default="llama-3.1-8b-instant", description="Classification model")
    timeout_ms: int = Field(default=3000, ge=1, description="Hard client-side timeout in milliseconds")
    max_input_chars: int = Field(default=2000, ge=1, description="Characters of input sent to the classifier")


class RecorderConfig(BaseModel):
    """Attack recorder (telemetry) configuration."""

    enabled: bool = Field(default=True, description="Record high-risk requests")
    capacity: int = Field(default=20, ge=1, description="Buffer size that triggers a flush")
    flush_interval_seconds: float = Field(default=60.0, gt=0.0, description="Periodic flush interval")
    snippet_max_chars: int = Field(default=2000, ge=1, description="Characters of input kept per record")
    backend: StoreBackend = Field(default=StoreBackend.MEMORY, description="Where flushed batches go")
    db_path: str = Field(default="./data/attacks.db", description="SQLite database path (sqlite backend)")

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, v: str, info: Any) -> str:
        """Ensure a path is given when the sqlite backend is selected."""
        if info.data.get("backend") == StoreBackend.SQLITE and not v:
            raise ValueError("db_path is required when recorder backend is 'sqlite'")
        return v


class ProviderSettings(BaseModel):
    """Configuration for a single LLM provider."""

    enabled: bool = Field(default=False, description="Whether this provider is enabled")
    api_key: str | None = Field(default=None, description="API key for the provider")
    model: str | None = Field(default=None, description="Model override for the scanner")
    base_url: str | None = Field(default=None, description="Custom base URL (optional, for openai-compatible)")
    timeout: float = Field(default=30.0, gt=0.0, description="Client timeout in seconds")
    max_retries: int = Field(default=0, ge=0, description="Maximum retry attempts")


class ProvidersConfig(BaseModel):
    """Configuration for LLM providers."""

    openai: ProviderSettings = Field(default_factory=ProviderSettings)
    anthropic: ProviderSettings = Field(default_factory=ProviderSettings)
    openai_compatible: ProviderSettings = Field(
        default_factory=ProviderSettings,
        description="OpenAI-compatible endpoint (Groq when no base_url is set)",
    )

    def for_provider(self, provider: "ScannerProvider | str") -> ProviderSettings:
        """Settings block for a scanner provider name."""
        name = provider.value if isinstance(provider, ScannerProvider) else str(provider)
        return getattr(self, name.replace("-", "_"))


class ShieldConfig(BaseModel):
    """Root configuration for Prompt Shield."""

    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Runtime environment")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    security: SecurityConfig = Field(default_factory=SecurityConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    recorder: RecorderConfig = Field(default_factory=RecorderConfig)
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)
