"""
Prompt Shield - Configuration Module

Provides typed configuration loading and validation.
"""

from .loader import get_config, load_config, reload_config, reset_config
from .schemas import (
    Environment,
    FieldLimits,
    LogLevel,
    ProviderSettings,
    ProvidersConfig,
    RecorderConfig,
    ScannerConfig,
    ScannerProvider,
    SecurityConfig,
    ShieldConfig,
    StoreBackend,
)

__all__ = [
    # Loader functions
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    # Main config
    "ShieldConfig",
    # Enums
    "Environment",
    "LogLevel",
    "ScannerProvider",
    "StoreBackend",
    # Config sections
    "SecurityConfig",
    "FieldLimits",
    "ScannerConfig",
    "RecorderConfig",
    "ProviderSettings",
    "ProvidersConfig",
]
