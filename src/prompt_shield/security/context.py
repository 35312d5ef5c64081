"""
Context Bundles

Field-by-field sanitization of the two caller-supplied bundles:
- assistant context (company, business, user and team descriptions, metadata)
- embedded writer input (selected text, custom instruction, document title, metadata)

Each field is sanitized with its own length limit, the per-field levels are
reduced to one request-level verdict, and the whole thing is summarized in a
SanitizationReport. Nothing here keeps a reference to the input after the
call returns.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from .config import SecurityConfig
from .encoder import encode_as_data
from .risk import RiskLevel, aggregate_risk
from .sanitizer import SanitizationResult, sanitize_input
from .semantic_scanner import SemanticScanResult

logger = logging.getLogger(__name__)

ASSISTANT_CONTEXT = "assistant-context"
EMBEDDED_WRITER = "embedded-writer"


class AssistantContextInput(BaseModel):
    """Context fields interpolated into an assistant's system prompt."""

    company_name: str | None = None
    business_context: str | None = None
    user_context: str | None = None
    team_context: str | None = None
    metadata: dict[str, Any] | None = None


class EmbeddedWriterInput(BaseModel):
    """Inputs from an in-document writing assistant."""

    selected_text: str | None = None
    custom_prompt: str | None = None
    document_title: str | None = None
    metadata: dict[str, Any] | None = Field(default=None)

    def scan_text(self) -> str:
        """Raw text the semantic scanner looks at: custom prompt and selection."""
        return "\n\n".join(part for part in (self.custom_prompt, self.selected_text) if part)


@dataclass
class SanitizationReport:
    """Request-level summary over all sanitized fields."""

    total_threats: int
    highest_risk_level: RiskLevel
    details: dict[str, SanitizationResult]
    should_block: bool = False
    llm_scanned: bool = False
    llm_verified: bool = False
    scan_result: SemanticScanResult | None = None

    @property
    def threats(self) -> list[str]:
        return [threat for result in self.details.values() for threat in result.threats]

    @property
    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for result in self.details.values():
            for category in result.categories:
                seen.setdefault(category.value, None)
        return list(seen)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_threats": self.total_threats,
            "highest_risk_level": self.highest_risk_level.label,
            "should_block": self.should_block,
            "llm_scanned": self.llm_scanned,
            "llm_verified": self.llm_verified,
            "categories": self.categories,
            "details": {
                name: {
                    "threats": result.threats,
                    "risk_level": result.risk_level.label,
                    "categories": [c.value for c in result.categories],
                    "was_modified": result.was_modified,
                }
                for name, result in self.details.items()
            },
            "scan": self.scan_result.to_dict() if self.scan_result else None,
        }


@dataclass
class SanitizedAssistantContext:
    company_name: str
    business_context: str
    user_context: str
    team_context: str
    metadata: str
    report: SanitizationReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "company_name": self.company_name,
            "business_context": self.business_context,
            "user_context": self.user_context,
            "team_context": self.team_context,
            "metadata": self.metadata,
            "report": self.report.to_dict(),
        }


@dataclass
class SanitizedEmbeddedInput:
    """Sanitized writer input; selected_text and custom_prompt are already data envelopes."""

    selected_text: str
    custom_prompt: str
    document_title: str
    metadata: str
    report: SanitizationReport = field(repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected_text": self.selected_text,
            "custom_prompt": self.custom_prompt,
            "document_title": self.document_title,
            "metadata": self.metadata,
            "report": self.report.to_dict(),
        }


def serialize_metadata(metadata: dict[str, Any] | None) -> str:
    """Compact JSON for metadata, "" when there is none."""
    if not metadata:
        return ""
    return json.dumps(metadata, separators=(",", ":"), ensure_ascii=False, default=str)


def build_report(results: dict[str, SanitizationResult]) -> SanitizationReport:
    """Aggregate per-field results: highest level wins, threat counts add up."""
    return SanitizationReport(
        total_threats=sum(len(result.findings) for result in results.values()),
        highest_risk_level=aggregate_risk(result.risk_level for result in results.values()),
        details=results,
    )


def log_report(report: SanitizationReport, threshold: RiskLevel, context: str) -> None:
    """Log a report's threats when the request-level risk reaches the threshold."""
    if report.total_threats == 0 or report.highest_risk_level < threshold:
        return

    logger.warning(
        f"Threats detected in {context}",
        extra={
            "context": context,
            "total_threats": report.total_threats,
            "highest_risk_level": report.highest_risk_level.label,
            "should_block": report.should_block,
            "llm_verified": report.llm_verified,
            "fields": {
                name: {"threats": result.threats, "risk_level": result.risk_level.label}
                for name, result in report.details.items()
                if result.findings
            },
        },
    )


def sanitize_assistant_context(
    data: AssistantContextInput,
    config: SecurityConfig | None = None,
) -> SanitizedAssistantContext:
    """
    Sanitize every assistant-context field with its own limit.

    Args:
        data: Raw context fields
        config: Security configuration (defaults if None)

    Returns:
        SanitizedAssistantContext with plain sanitized strings and a report
    """
    config = config or SecurityConfig()
    limits = config.field_limits

    results = {
        "company_name": sanitize_input(data.company_name, limits.company_name, "company_name"),
        "business_context": sanitize_input(data.business_context, limits.business_context, "business_context"),
        "user_context": sanitize_input(data.user_context, limits.user_context, "user_context"),
        "team_context": sanitize_input(data.team_context, limits.team_context, "team_context"),
        "metadata": sanitize_input(serialize_metadata(data.metadata), limits.metadata, "metadata"),
    }

    report = build_report(results)
    log_report(report, config.log_threshold, ASSISTANT_CONTEXT)

    return SanitizedAssistantContext(
        company_name=results["company_name"].sanitized_text,
        business_context=results["business_context"].sanitized_text,
        user_context=results["user_context"].sanitized_text,
        team_context=results["team_context"].sanitized_text,
        metadata=results["metadata"].sanitized_text,
        report=report,
    )


def sanitize_embedded_fields(data: EmbeddedWriterInput, config: SecurityConfig) -> SanitizedEmbeddedInput:
    """
    Sanitize writer input without logging or scanning.

    should_block is set when the custom prompt alone is critical.
    """
    limits = config.field_limits

    results = {
        "selected_text": sanitize_input(data.selected_text, limits.selected_text, "selected_text"),
        "custom_prompt": sanitize_input(data.custom_prompt, limits.custom_prompt, "custom_prompt"),
        "document_title": sanitize_input(data.document_title, limits.document_title, "document_title"),
        "metadata": sanitize_input(serialize_metadata(data.metadata), limits.metadata, "metadata"),
    }

    report = build_report(results)
    report.should_block = results["custom_prompt"].risk_level is RiskLevel.CRITICAL

    return SanitizedEmbeddedInput(
        selected_text=encode_as_data("selected_text", results["selected_text"].sanitized_text),
        custom_prompt=encode_as_data("custom_prompt", results["custom_prompt"].sanitized_text),
        document_title=results["document_title"].sanitized_text,
        metadata=results["metadata"].sanitized_text,
        report=report,
    )


def sanitize_embedded_input(
    data: EmbeddedWriterInput,
    config: SecurityConfig | None = None,
) -> SanitizedEmbeddedInput:
    """
    Synchronous writer-input sanitization (no semantic scan, no recording).

    Args:
        data: Raw writer input
        config: Security configuration (defaults if None)

    Returns:
        SanitizedEmbeddedInput; selected_text and custom_prompt are data envelopes
    """
    config = config or SecurityConfig()
    sanitized = sanitize_embedded_fields(data, config)
    log_report(sanitized.report, config.log_threshold, EMBEDDED_WRITER)
    return sanitized
