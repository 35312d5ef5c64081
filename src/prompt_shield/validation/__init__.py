"""
Prompt Shield - Input Validation Module

Pydantic-based validation for all MCP tool inputs.
"""

from .decorators import validate_input
from .tool_schemas import (
    CheckStatusInput,
    EncodeAsDataInput,
    FlushAttackBufferInput,
    SanitizeAssistantContextInput,
    SanitizeEmbeddedInputInput,
    SanitizeInputInput,
    ScanOutputInput,
    ValidatePromptInput,
)

__all__ = [
    # Decorator
    "validate_input",
    # Tool input schemas
    "SanitizeInputInput",
    "SanitizeAssistantContextInput",
    "SanitizeEmbeddedInputInput",
    "ValidatePromptInput",
    "ScanOutputInput",
    "EncodeAsDataInput",
    "FlushAttackBufferInput",
    "CheckStatusInput",
]
