"""
Security Configuration

Field length limits and thresholds for the sanitization pipeline.
Zero ML dependencies - pure pattern matching.
"""

import os

from pydantic import BaseModel, Field, field_validator

from .risk import RiskLevel


class FieldLimits(BaseModel):
    """Maximum characters kept per untrusted field"""

    company_name: int = Field(default=100, ge=0)
    business_context: int = Field(default=5000, ge=0)
    user_context: int = Field(default=2000, ge=0)
    team_context: int = Field(default=3000, ge=0)
    custom_prompt: int = Field(default=1000, ge=0)
    selected_text: int = Field(default=10000, ge=0)
    document_title: int = Field(default=200, ge=0)
    metadata: int = Field(default=500, ge=0, description="Limit applied to metadata serialized as JSON")


class SecurityConfig(BaseModel):
    """Prompt-injection defense configuration"""

    log_threshold: RiskLevel = Field(
        default=RiskLevel.HIGH, description="Only log detections at or above this aggregate risk"
    )

    max_prompt_length: int = Field(
        default=50000, ge=1, description="Assembled prompts longer than this are flagged (not blocked)"
    )

    max_instruction_markers: int = Field(
        default=10, ge=0, description="More instruction-marker phrases than this in one prompt is a threat signal"
    )

    field_limits: FieldLimits = Field(default_factory=FieldLimits)

    @field_validator("log_threshold", mode="before")
    @classmethod
    def parse_log_threshold(cls, v: object) -> RiskLevel:
        if isinstance(v, (str, int)):
            return RiskLevel.parse(v)
        return v  # type: ignore[return-value]


def load_security_config() -> SecurityConfig:
    """
    Load security configuration from environment variables.

    Environment Variables:
        SECURITY_LOG_THRESHOLD: Minimum risk level that gets logged (default: high)
        SECURITY_MAX_PROMPT_LENGTH: Assembled prompt ceiling (default: 50000)
        SECURITY_MAX_INSTRUCTION_MARKERS: Instruction marker ceiling (default: 10)
        SECURITY_LIMIT_<FIELD>: Per-field limit override, e.g. SECURITY_LIMIT_CUSTOM_PROMPT=2000
    """
    limits = {
        name: int(os.environ[f"SECURITY_LIMIT_{name.upper()}"])
        for name in FieldLimits.model_fields
        if os.getenv(f"SECURITY_LIMIT_{name.upper()}")
    }

    return SecurityConfig(
        log_threshold=os.getenv("SECURITY_LOG_THRESHOLD", "high"),
        max_prompt_length=int(os.getenv("SECURITY_MAX_PROMPT_LENGTH", "50000")),
        max_instruction_markers=int(os.getenv("SECURITY_MAX_INSTRUCTION_MARKERS", "10")),
        field_limits=FieldLimits(**limits),
    )
