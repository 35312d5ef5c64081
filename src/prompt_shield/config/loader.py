"""
Prompt Shield - Configuration Loader

Loads and validates configuration from environment variables and .env files.
Provides a singleton configuration instance for the runtime.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..security.config import load_security_config
from .schemas import ShieldConfig

logger = logging.getLogger(__name__)

_config_instance: ShieldConfig | None = None


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _provider_settings(prefix: str, fallback_key: str | None = None) -> dict:
    api_key = os.getenv(f"{prefix}_API_KEY") or (os.getenv(fallback_key) if fallback_key else None)
    return {
        # Auto-enable providers when an api_key is set
        "enabled": bool(api_key),
        "api_key": api_key,
        "model": os.getenv(f"{prefix}_MODEL"),
        "base_url": os.getenv(f"{prefix}_BASE_URL"),
        "timeout": float(os.getenv(f"{prefix}_TIMEOUT", "30.0")),
        "max_retries": int(os.getenv(f"{prefix}_MAX_RETRIES", "0")),
    }


def load_config(
    env_file: str | None = None,
    reload: bool = False,
) -> ShieldConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Path to .env file (default: .env in the working directory)
        reload: Force reload even if config already loaded

    Returns:
        Validated ShieldConfig instance

    Raises:
        ConfigurationError: If configuration is invalid
    """
    global _config_instance

    if _config_instance is not None and not reload:
        return _config_instance

    env_path = Path(env_file) if env_file else Path.cwd() / ".env"

    if env_path.exists():
        logger.info(f"Loading environment from {env_path}")
        try:
            load_dotenv(env_path, override=True)
        except Exception as e:
            logger.error(
                f"Failed to load .env file from {env_path}: {e}",
                extra={"path": str(env_path), "error": str(e)},
            )
            raise ConfigurationError(
                f"Failed to load environment file: {e}",
                details={"path": str(env_path), "error": str(e)},
            ) from e
    else:
        logger.debug("No .env file found, using environment variables only")

    try:
        config_dict = {
            "environment": os.getenv("ENVIRONMENT", "development"),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "log_json": _flag("LOG_JSON", "false"),
            "security": load_security_config(),
            "scanner": {
                "enabled": _flag("SCANNER_ENABLED", "true"),
                "provider": os.getenv("SCANNER_PROVIDER", "openai-compatible"),
                "model": os.getenv("SCANNER_MODEL", "llama-3.1-8b-instant"),
                "timeout_ms": int(os.getenv("SCANNER_TIMEOUT_MS", "3000")),
                "max_input_chars": int(os.getenv("SCANNER_MAX_INPUT_CHARS", "2000")),
            },
            "recorder": {
                "enabled": _flag("RECORDER_ENABLED", "true"),
                "capacity": int(os.getenv("RECORDER_CAPACITY", "20")),
                "flush_interval_seconds": float(os.getenv("RECORDER_FLUSH_INTERVAL_SECONDS", "60")),
                "snippet_max_chars": int(os.getenv("RECORDER_SNIPPET_MAX_CHARS", "2000")),
                "backend": os.getenv("RECORDER_BACKEND", "memory"),
                "db_path": os.getenv("RECORDER_DB_PATH", "./data/attacks.db"),
            },
            "providers": {
                "openai": _provider_settings("OPENAI"),
                "anthropic": _provider_settings("ANTHROPIC"),
                "openai_compatible": _provider_settings("OPENAI_COMPATIBLE", fallback_key="GROQ_API_KEY"),
            },
        }
        _config_instance = ShieldConfig(**config_dict)  # type: ignore[arg-type]
    except (ValidationError, ValueError) as e:
        errors = e.errors() if isinstance(e, ValidationError) else [{"msg": str(e)}]
        logger.error(
            f"Configuration validation failed: {e}",
            extra={"validation_errors": errors},
        )
        raise ConfigurationError(
            "Configuration validation failed. Check your environment variables and configuration.",
            details={"validation_errors": errors},
        ) from e

    logger.info(
        f"Configuration loaded successfully (environment: {_config_instance.environment})",
        extra={
            "environment": _config_instance.environment,
            "scanner_provider": _config_instance.scanner.provider,
            "recorder_backend": _config_instance.recorder.backend,
        },
    )
    return _config_instance


def get_config() -> ShieldConfig:
    """
    Get the current configuration instance, loading it on first access.

    Returns:
        Current ShieldConfig instance
    """
    if _config_instance is None:
        return load_config()

    return _config_instance


def reload_config(env_file: str | None = None) -> ShieldConfig:
    """
    Force reload configuration.

    Args:
        env_file: Optional path to .env file

    Returns:
        Reloaded ShieldConfig instance
    """
    return load_config(env_file=env_file, reload=True)


def reset_config() -> None:
    """Drop the cached configuration (used by tests)."""
    global _config_instance
    _config_instance = None
