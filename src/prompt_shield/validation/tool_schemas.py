"""
Prompt Shield - Tool Input Validation Schemas

Pydantic models for validating all MCP tool inputs.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

# Ceiling on raw text accepted by any tool; sanitizers truncate far below this
MAX_TOOL_TEXT = 200_000


class SanitizeInputInput(BaseModel):
    """Input validation for sanitize_input tool."""

    text: str | None = Field(default=None, max_length=MAX_TOOL_TEXT, description="Untrusted text to sanitize")
    max_length: int | None = Field(
        default=None,
        ge=0,
        le=MAX_TOOL_TEXT,
        description="Characters to keep; defaults to the limit of field_label",
    )
    field_label: str = Field(
        default="custom_prompt",
        min_length=1,
        max_length=64,
        description="Field name (selects the default limit and labels findings)",
    )


class SanitizeAssistantContextInput(BaseModel):
    """Input validation for sanitize_assistant_context tool."""

    company_name: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    business_context: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    user_context: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    team_context: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    metadata: dict[str, Any] | None = Field(default=None, description="Extra context, sanitized as compact JSON")


class SanitizeEmbeddedInputInput(BaseModel):
    """Input validation for sanitize_embedded_input tool."""

    selected_text: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    custom_prompt: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    document_title: str | None = Field(default=None, max_length=MAX_TOOL_TEXT)
    metadata: dict[str, Any] | None = Field(default=None)
    semantic_scan: bool = Field(default=True, description="Run the semantic scan on high-risk input")


class ValidatePromptInput(BaseModel):
    """Input validation for validate_prompt tool."""

    prompt: str = Field(..., min_length=1, max_length=MAX_TOOL_TEXT, description="Fully assembled prompt")


class ScanOutputInput(BaseModel):
    """Input validation for scan_output tool."""

    output: str = Field(..., max_length=MAX_TOOL_TEXT, description="Model reply to inspect")


class EncodeAsDataInput(BaseModel):
    """Input validation for encode_as_data tool."""

    label: str = Field(..., min_length=1, max_length=100, description="Envelope label")
    content: Any = Field(..., description="Content to wrap (any JSON value)")

    @field_validator("label")
    @classmethod
    def validate_label_not_empty(cls, v: str) -> str:
        """Ensure label is not just whitespace."""
        if not v.strip():
            raise ValueError("label cannot be empty or only whitespace")
        return v.strip()


class FlushAttackBufferInput(BaseModel):
    """Input validation for flush_attack_buffer tool (no parameters)."""

    pass


class CheckStatusInput(BaseModel):
    """Input validation for check_status tool."""

    include_details: bool = Field(default=False, description="Include configuration details")
