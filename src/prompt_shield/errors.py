"""
Prompt Shield - Core Error Types

Defines the exception hierarchy for the prompt-injection defense pipeline.
All exceptions inherit from ShieldError for consistent error handling.

Taxonomy:
- Validation problems in untrusted input are never raised; they are handled
  by truncation and redaction inside the sanitizer.
- Transport problems with the semantic scanner fail open with a reason code.
- Policy violations (critical risk) raise PromptBlockedError, the only error
  a caller's workflow is expected to abort on.
- Telemetry failures are dropped and logged at debug level.
"""

from enum import Enum
from typing import Any

BLOCKED_MESSAGE = "Your input contains suspicious patterns. Please remove special instructions and try again."


class ErrorCode(str, Enum):
    """
    Standard error codes for MCP tool responses.

    Used for structured error handling and client-side error recovery.
    """

    # Input validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Policy errors
    PROMPT_BLOCKED = "PROMPT_BLOCKED"

    # Provider errors
    PROVIDER_ERROR = "PROVIDER_ERROR"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"

    # Feature availability errors
    FEATURE_DISABLED = "FEATURE_DISABLED"

    # Telemetry errors
    STORE_FAILURE = "STORE_FAILURE"

    # Internal errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShieldError(Exception):
    """Base exception for all Prompt Shield errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        status_code: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(ShieldError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=500)


class ValidationError(ShieldError):
    """Raised when tool input validation fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=400)


class PromptBlockedError(ShieldError):
    """
    Raised when a request is refused because of a critical-risk finding.

    The message is deliberately generic: it never names the pattern that
    matched, so the detection rules are not taught back to the sender.
    """

    def __init__(self, risk_level: str = "critical", source: str | None = None):
        details: dict[str, Any] = {"risk_level": risk_level, "error_code": ErrorCode.PROMPT_BLOCKED.value}
        if source:
            details["source"] = source
        super().__init__(BLOCKED_MESSAGE, details, status_code=422)
        self.risk_level = risk_level
        self.source = source


class ProviderError(ShieldError):
    """Base exception for provider-related errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, status_code=502)


class ProviderTimeoutError(ProviderError):
    """Raised when provider call times out."""

    def __init__(self, provider: str, timeout: float):
        message = f"Provider {provider} timed out after {timeout}s"
        super().__init__(message, {"provider": provider, "timeout": timeout})


class ProviderRateLimitError(ProviderError):
    """Raised when provider rate limit is hit."""

    def __init__(self, provider: str, retry_after: int | None = None):
        message = f"Provider {provider} rate limit exceeded"
        details: dict[str, Any] = {"provider": provider, "error_code": ErrorCode.RATE_LIMITED}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, details)
        self.status_code = 429


class StoreError(ShieldError):
    """Raised when the attack store cannot persist a batch."""

    def __init__(self, backend: str, details: dict[str, Any] | None = None):
        message = f"Failed to persist attack records to backend: {backend}"
        super().__init__(message, details, status_code=500)


class DependencyError(ShieldError):
    """Raised when an optional SDK needed by a provider is not installed."""

    def __init__(self, package: str, feature: str | None = None, install_hint: str | None = None):
        message = f"Required dependency '{package}' is missing" + (f" for {feature}" if feature else "")
        if install_hint:
            message += f". Install with: {install_hint}"
        super().__init__(
            message,
            {"package": package, "feature": feature, "install_hint": install_hint},
            status_code=500,
        )


def make_error_response(
    error_code: ErrorCode,
    message: str,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Create a standardized error response for MCP tools.

    Example:
        >>> make_error_response(ErrorCode.PROMPT_BLOCKED, BLOCKED_MESSAGE, {"risk_level": "critical"})
        {
            "success": False,
            "error_code": "PROMPT_BLOCKED",
            "message": "Your input contains suspicious patterns. ...",
            "details": {"risk_level": "critical"}
        }
    """
    return {
        "success": False,
        "error_code": error_code.value,
        "message": message,
        "details": context or {},
    }


# Most specific first: subclasses must be matched before their bases
_ERROR_CODES: tuple[tuple[type[Exception], ErrorCode], ...] = (
    (PromptBlockedError, ErrorCode.PROMPT_BLOCKED),
    (ProviderRateLimitError, ErrorCode.RATE_LIMITED),
    (ProviderTimeoutError, ErrorCode.PROVIDER_TIMEOUT),
    (ProviderError, ErrorCode.PROVIDER_ERROR),
    (ValidationError, ErrorCode.INVALID_INPUT),
    (StoreError, ErrorCode.STORE_FAILURE),
    (ConfigurationError, ErrorCode.FEATURE_DISABLED),
)


def extract_error_code(error: Exception) -> ErrorCode:
    """Map an exception to the ErrorCode reported in tool responses."""
    for error_type, code in _ERROR_CODES:
        if isinstance(error, error_type):
            return code
    return ErrorCode.INTERNAL_ERROR
