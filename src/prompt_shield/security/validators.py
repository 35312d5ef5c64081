"""
Prompt and Output Validators

Last line of defense on both sides of the model call:
- validate_system_prompt() runs on the fully assembled instruction text right
  before dispatch and catches injection introduced by template concatenation.
- scan_model_output() inspects the reply for phrasing that suggests a
  jailbreak succeeded or the system prompt leaked. It is advisory and never
  redacts anything.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from .config import SecurityConfig
from .patterns import OUTPUT_COMPROMISE_PATTERNS, OUTPUT_LEAK_PHRASES, PATTERN_BANK, might_contain_injection
from .risk import RiskLevel

logger = logging.getLogger(__name__)

INSTRUCTION_MARKERS = re.compile(r"You are|Your role|IMPORTANT:|CRITICAL:", re.IGNORECASE)

_PROMPT_PREVIEW_CHARS = 40
_OUTPUT_PREVIEW_CHARS = 50


@dataclass
class PromptValidationResult:
    """Result from validating an assembled prompt or a model reply"""

    is_valid: bool
    risk_level: RiskLevel
    threats: list[str] = field(default_factory=list)
    jailbreak_detected: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "threats": list(self.threats),
            "risk_level": self.risk_level.label,
        }


def validate_system_prompt(system_prompt: str, config: SecurityConfig | None = None) -> PromptValidationResult:
    """
    Validate the final instruction text before it is sent to the model.

    Checks:
    - Total length under the configured ceiling (flagged, never blocking on its own)
    - Quick-check gate + full signature bank over the whole text
    - Count of instruction-marker phrases ("You are", "IMPORTANT:", ...)

    Risk:
    - no threats: safe
    - any signature match: critical
    - two or more other threats: high
    - otherwise: medium

    Args:
        system_prompt: Fully assembled prompt
        config: Security configuration (defaults if None)

    Returns:
        PromptValidationResult; is_valid is False only when risk is critical
    """
    config = config or SecurityConfig()
    threats: list[str] = []
    jailbreak = False

    if len(system_prompt) > config.max_prompt_length:
        threats.append(f"System prompt exceeds safe length ({config.max_prompt_length} characters)")

    if might_contain_injection(system_prompt):
        for signature in PATTERN_BANK:
            match = signature.search(system_prompt)
            if match:
                jailbreak = True
                threats.append(
                    f"Jailbreak in prompt ({signature.category.value}): {match.group(0)[:_PROMPT_PREVIEW_CHARS]}"
                )

    marker_count = len(INSTRUCTION_MARKERS.findall(system_prompt))
    if marker_count > config.max_instruction_markers:
        threats.append(f"Suspicious instruction markers: {marker_count}")

    if not threats:
        risk_level = RiskLevel.SAFE
    elif jailbreak:
        risk_level = RiskLevel.CRITICAL
    elif len(threats) >= 2:
        risk_level = RiskLevel.HIGH
    else:
        risk_level = RiskLevel.MEDIUM

    is_valid = risk_level is not RiskLevel.CRITICAL
    if not is_valid:
        logger.error(
            "Blocked unsafe system prompt",
            extra={"threats": threats, "risk_level": risk_level.label},
        )

    return PromptValidationResult(
        is_valid=is_valid,
        risk_level=risk_level,
        threats=threats,
        jailbreak_detected=jailbreak,
    )


def scan_model_output(output: str) -> PromptValidationResult:
    """
    Scan a model reply for signs that the defenses were bypassed.

    Any compromise pattern or system-prompt leak phrase makes the reply
    critical and invalid.
    """
    threats: list[str] = []

    for pattern in OUTPUT_COMPROMISE_PATTERNS:
        match = pattern.search(output)
        if match:
            threats.append(f"Jailbreak in output: {match.group(0)[:_OUTPUT_PREVIEW_CHARS]}")

    lowered = output.lower()
    if any(phrase in lowered for phrase in OUTPUT_LEAK_PHRASES):
        threats.append("Output may leak system prompt")

    if threats:
        logger.error("Compromised model output", extra={"threats": threats})

    return PromptValidationResult(
        is_valid=not threats,
        risk_level=RiskLevel.CRITICAL if threats else RiskLevel.SAFE,
        threats=threats,
        jailbreak_detected=bool(threats),
    )
