"""
Input Sanitizer

Cleans one untrusted field before it is interpolated into instructions for
a model, and reports what it found.

Steps, in order:
1. Empty or whitespace-only input short-circuits to a safe, empty result.
2. Truncate to the field limit (matches are only reported inside the kept prefix).
3. Strip control characters other than tab and newline.
4. Collapse whitespace runs to single spaces and trim.
5. Redact literal role-delimiter markers ("SYSTEM:", "<|im_start|>", ...).
6. If the quick-check gate fires, redact every signature match with a
   category-tagged marker.
7. Clamp back to the field limit (redaction markers can be longer than what
   they replace).
8. Classify the field's risk from the collected findings.

Normalization runs before matching so that no signature can be assembled
afterwards by removing characters or whitespace: the output never contains
an unredacted match and re-sanitizing it adds nothing.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from .patterns import MARKER_PATTERNS, PATTERN_BANK, might_contain_injection
from .risk import Finding, FindingKind, RiskLevel, ThreatCategory, classify_field_risk

REDACTION_MARKER = "[REDACTED]"
BLOCKED_MARKER = "[BLOCKED:{category}]"

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_WHITESPACE_RUN = re.compile(r"\s+")

# Longest prefix of a match quoted back in a threat description
_MATCH_PREVIEW_CHARS = 50


@dataclass(frozen=True)
class SanitizationResult:
    """Outcome of sanitizing one field."""

    sanitized_text: str
    was_modified: bool = False
    findings: tuple[Finding, ...] = ()
    risk_level: RiskLevel = RiskLevel.SAFE
    categories: tuple[ThreatCategory, ...] = field(default=())

    @property
    def threats(self) -> list[str]:
        """Human-readable findings, in detection order."""
        return [f.description for f in self.findings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sanitized": self.sanitized_text,
            "was_modified": self.was_modified,
            "threats": self.threats,
            "risk_level": self.risk_level.label,
            "categories": [c.value for c in self.categories],
        }


EMPTY_RESULT = SanitizationResult(sanitized_text="")


def sanitize_input(raw_input: str | None, max_length: int, field_label: str = "input") -> SanitizationResult:
    """
    Sanitize one untrusted field.

    Args:
        raw_input: Untrusted text (None is treated as empty)
        max_length: Maximum number of characters to keep
        field_label: Field name, used only to label findings

    Returns:
        SanitizationResult with the cleaned text and its risk assessment

    Raises:
        ValueError: If max_length is negative
    """
    if max_length < 0:
        raise ValueError(f"max_length must be non-negative, got {max_length} for {field_label}")

    text = raw_input or ""
    if not text.strip():
        return EMPTY_RESULT

    findings: list[Finding] = []
    categories: list[ThreatCategory] = []
    modified = False

    # 1. Truncate to prevent token flooding
    if len(text) > max_length:
        findings.append(
            Finding(FindingKind.TRUNCATION, f"Truncated {field_label} from {len(text)} to {max_length} chars")
        )
        text = text[:max_length]
        modified = True

    # 2. Null bytes and control characters (tab/newline survive until whitespace collapse)
    stripped = _CONTROL_CHARS.sub("", text)
    if stripped != text:
        findings.append(Finding(FindingKind.CONTROL_CHARS, "Removed control characters"))
        text = stripped
        modified = True

    # 3. Excessive whitespace can hide injections
    collapsed = _WHITESPACE_RUN.sub(" ", text).strip()
    if collapsed != text.strip():
        modified = True
    text = collapsed

    # 4. Role delimiters
    for literal, pattern, category in MARKER_PATTERNS:
        if pattern.search(text):
            findings.append(Finding(FindingKind.MARKER, f'Dangerous keyword: "{literal}"', category))
            if category is not None and category not in categories:
                categories.append(category)
            text = pattern.sub(REDACTION_MARKER, text)
            modified = True

    # 5. Signature bank, only when the gate says it can possibly match
    if might_contain_injection(text):
        for signature in PATTERN_BANK:
            match = signature.search(text)
            if match is None:
                continue
            preview = match.group(0)[:_MATCH_PREVIEW_CHARS]
            findings.append(
                Finding(
                    FindingKind.PATTERN,
                    f"Jailbreak ({signature.category.value}): {preview}",
                    signature.category,
                )
            )
            if signature.category not in categories:
                categories.append(signature.category)
            marker = BLOCKED_MARKER.format(category=signature.category.value)
            text = signature.pattern.sub(marker, text)
            modified = True

    if len(text) > max_length:
        text = text[:max_length].rstrip()

    return SanitizationResult(
        sanitized_text=text,
        was_modified=modified,
        findings=tuple(findings),
        risk_level=classify_field_risk(findings),
        categories=tuple(categories),
    )
