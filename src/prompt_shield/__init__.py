"""
Prompt Shield - Prompt Injection Defense

Layered defense for LLM applications that interpolate untrusted text into
prompts: pattern-based sanitization, risk classification, data envelopes,
an LLM-backed semantic scanner, prompt and output validation, and batched
recording of detected attacks.
"""

__version__ = "0.1.0"

from .errors import PromptBlockedError, ShieldError
from .pipeline import PromptShield
from .security import (
    AssistantContextInput,
    EmbeddedWriterInput,
    RiskLevel,
    encode_as_data,
    sanitize_input,
    scan_model_output,
    validate_system_prompt,
)
from .server import mcp

__all__ = [
    "PromptShield",
    "PromptBlockedError",
    "ShieldError",
    "AssistantContextInput",
    "EmbeddedWriterInput",
    "RiskLevel",
    "encode_as_data",
    "sanitize_input",
    "scan_model_output",
    "validate_system_prompt",
    "mcp",
]
