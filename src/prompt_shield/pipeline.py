"""
Prompt Shield - Pipeline Facade

PromptShield bundles configuration, the semantic scanner and the attack
recorder behind the operations a caller needs around one model call:

    shield = PromptShield()
    writer = await shield.guard_embedded_input(EmbeddedWriterInput(custom_prompt=note))
    prompt = TEMPLATE.format(selection=writer.selected_text, request=writer.custom_prompt)
    shield.ensure_prompt_safe(prompt)
    reply = await call_model(prompt)
    if not shield.scan_output(reply).is_valid:
        reply = FALLBACK_MESSAGE

Everything except the semantic scan is synchronous and pure. The only error a
caller should ever see from here is PromptBlockedError.
"""

import logging
from typing import Any

from .config import ShieldConfig, get_config
from .errors import PromptBlockedError
from .security.context import (
    ASSISTANT_CONTEXT,
    EMBEDDED_WRITER,
    AssistantContextInput,
    EmbeddedWriterInput,
    SanitizationReport,
    SanitizedAssistantContext,
    SanitizedEmbeddedInput,
    log_report,
    sanitize_assistant_context,
    sanitize_embedded_fields,
)
from .security.encoder import encode_as_data
from .security.recorder import AttackRecorder, DetectedAttack, get_attack_recorder
from .security.risk import RiskLevel
from .security.sanitizer import SanitizationResult, sanitize_input
from .security.semantic_scanner import SemanticScanner, create_semantic_scanner
from .security.validators import PromptValidationResult, scan_model_output, validate_system_prompt

logger = logging.getLogger(__name__)

# Requests at or above this level are scanned semantically and recorded
ESCALATION_LEVEL = RiskLevel.HIGH

LLM_DETECTED = "llm-detected"


class PromptShield:
    """Entry point for the prompt-injection defense pipeline."""

    def __init__(
        self,
        config: ShieldConfig | None = None,
        scanner: SemanticScanner | None = None,
        recorder: AttackRecorder | None = None,
    ):
        """
        Initialize the pipeline.

        Args:
            config: Root configuration (global config if None)
            scanner: Semantic scanner (built from config if None)
            recorder: Attack recorder (process-wide recorder if None)
        """
        self.config = config or get_config()
        self.security = self.config.security
        self.scanner = scanner or create_semantic_scanner(self.config.scanner, self.config.providers)
        self.recorder = recorder or get_attack_recorder()

    # Sanitization

    def sanitize_input(
        self,
        text: str | None,
        max_length: int | None = None,
        field_label: str = "input",
    ) -> SanitizationResult:
        """
        Sanitize one field.

        When max_length is omitted and field_label names a known field, that
        field's limit applies; otherwise the custom-prompt limit does.
        """
        if max_length is None:
            limits = self.security.field_limits
            # Declared limit fields only
            max_length = limits.model_dump().get(field_label, limits.custom_prompt)
        return sanitize_input(text, max_length, field_label)

    def sanitize_assistant_context(self, data: AssistantContextInput) -> SanitizedAssistantContext:
        """Sanitize assistant-context fields; high-risk requests are recorded."""
        sanitized = sanitize_assistant_context(data, self.security)
        report = sanitized.report
        if report.highest_risk_level >= ESCALATION_LEVEL:
            source = "\n\n".join(
                part for part in (data.business_context, data.user_context, data.team_context) if part
            )
            self._record(source, report, ASSISTANT_CONTEXT)
        return sanitized

    def sanitize_embedded_input(self, data: EmbeddedWriterInput) -> SanitizedEmbeddedInput:
        """Synchronous writer-input sanitization (no semantic scan, no recording)."""
        sanitized = sanitize_embedded_fields(data, self.security)
        log_report(sanitized.report, self.security.log_threshold, EMBEDDED_WRITER)
        return sanitized

    async def sanitize_embedded_input_async(self, data: EmbeddedWriterInput) -> SanitizedEmbeddedInput:
        """
        Writer-input sanitization with semantic scan and recording.

        High-risk requests are sent to the semantic scanner (when available).
        A confirmed attack escalates the request to critical and sets
        should_block. Every high-risk request produces one DetectedAttack.
        """
        sanitized = sanitize_embedded_fields(data, self.security)
        report = sanitized.report
        scan_text = data.scan_text()

        if report.highest_risk_level >= ESCALATION_LEVEL and self.scanner.available:
            scan = await self.scanner.scan(scan_text)
            report.llm_scanned = True
            report.scan_result = scan

            if not scan.safe:
                report.llm_verified = True
                report.should_block = True
                report.highest_risk_level = RiskLevel.CRITICAL

        log_report(report, self.security.log_threshold, EMBEDDED_WRITER)

        if report.highest_risk_level >= ESCALATION_LEVEL:
            self._record(scan_text, report, EMBEDDED_WRITER)

        return sanitized

    def _record(self, source: str, report: SanitizationReport, context: str) -> None:
        threats = report.threats
        categories = report.categories

        if report.llm_verified and report.scan_result is not None:
            scan = report.scan_result
            threats.append(scan.reason or "LLM detected")
            scanned = [c for c in scan.categories if c != "none"] or [LLM_DETECTED]
            categories = list(dict.fromkeys([*categories, *scanned]))

        self.recorder.record(
            DetectedAttack(
                input_snippet=source,
                threats=threats,
                categories=categories,
                risk_level=report.highest_risk_level,
                context=context,
                llm_verified=report.llm_verified,
            )
        )

    # Validation

    def validate_prompt(self, prompt: str) -> PromptValidationResult:
        """Validate the fully assembled prompt before dispatch."""
        return validate_system_prompt(prompt, self.security)

    def scan_output(self, output: str) -> PromptValidationResult:
        """Scan a model reply for signs of a successful jailbreak or prompt leak."""
        return scan_model_output(output)

    def ensure_prompt_safe(self, prompt: str) -> PromptValidationResult:
        """
        Validate the assembled prompt and refuse to continue when it is critical.

        Raises:
            PromptBlockedError: If the prompt must not be dispatched
        """
        result = self.validate_prompt(prompt)
        if not result.is_valid:
            raise PromptBlockedError(risk_level=result.risk_level.label, source="system_prompt")
        return result

    async def guard_embedded_input(self, data: EmbeddedWriterInput) -> SanitizedEmbeddedInput:
        """
        Sanitize writer input and refuse to continue when it should be blocked.

        Raises:
            PromptBlockedError: If the custom prompt is critical or the semantic scan confirmed an attack
        """
        sanitized = await self.sanitize_embedded_input_async(data)
        report = sanitized.report
        if report.should_block:
            source = "semantic_scan" if report.llm_verified else "custom_prompt"
            logger.error(
                "Blocked embedded writer input",
                extra={"risk_level": report.highest_risk_level.label, "source": source},
            )
            raise PromptBlockedError(risk_level=report.highest_risk_level.label, source=source)
        return sanitized

    # Envelope

    @staticmethod
    def encode_as_data(label: str, content: Any) -> str:
        return encode_as_data(label, content)

    # Lifecycle

    def start(self) -> None:
        """Start the recorder's periodic flush (requires a running event loop)."""
        self.recorder.start()

    async def stop(self) -> None:
        """Stop the recorder with a final flush and close the scanner's provider."""
        await self.recorder.stop()
        if self.scanner.provider is not None:
            await self.scanner.provider.close()
