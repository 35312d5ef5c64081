"""
Prompt Shield MCP Tools

Exposes the defense pipeline as MCP tools. The server registers thin
wrappers around this class; keeping the logic here lets it be called (and
tested) without an MCP transport.

Every method returns a plain dict with "success". A blocked request is
reported as a PROMPT_BLOCKED error response carrying the generic message,
never the detection details.
"""

import logging
from typing import Any

from .errors import BLOCKED_MESSAGE, ErrorCode, PromptBlockedError, make_error_response
from .observability import trace
from .pipeline import PromptShield
from .providers.factory import list_providers
from .security.context import AssistantContextInput, EmbeddedWriterInput

logger = logging.getLogger(__name__)

SERVICE_NAME = "prompt-shield"


def _blocked_response(error: PromptBlockedError) -> dict[str, Any]:
    return make_error_response(
        error_code=ErrorCode.PROMPT_BLOCKED,
        message=BLOCKED_MESSAGE,
        context={"risk_level": error.risk_level},
    )


class ShieldTools:
    """
    MCP tools for prompt-injection defense.

    Tools:
    - sanitize_input: Sanitize one untrusted field
    - sanitize_assistant_context: Sanitize an assistant-context bundle
    - sanitize_embedded_input: Sanitize (and optionally scan) writer input
    - validate_prompt: Check an assembled prompt before dispatch
    - scan_output: Check a model reply for compromise or leaks
    - encode_as_data: Wrap content in a data envelope
    - flush_attack_buffer: Persist buffered attack records now
    - check_status: Pipeline health and configuration
    """

    def __init__(self, shield: PromptShield | None = None) -> None:
        """
        Initialize shield tools.

        Args:
            shield: Pipeline facade (built from global config if None)
        """
        self.shield = shield or PromptShield()

        logger.info(
            "Prompt shield tools initialized",
            extra={
                "scanner_available": self.shield.scanner.available,
                "recorder_store": self.shield.recorder.store.name,
            },
        )

    def sanitize_input(
        self,
        text: str | None = None,
        max_length: int | None = None,
        field_label: str = "custom_prompt",
    ) -> dict[str, Any]:
        with trace("tool.sanitize_input", field_label=field_label):
            result = self.shield.sanitize_input(text, max_length, field_label)
        return {"success": True, **result.to_dict()}

    def sanitize_assistant_context(
        self,
        company_name: str | None = None,
        business_context: str | None = None,
        user_context: str | None = None,
        team_context: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Sanitize assistant-context fields, each with its own length limit.

        High-risk requests are recorded for later analysis.
        """
        data = AssistantContextInput(
            company_name=company_name,
            business_context=business_context,
            user_context=user_context,
            team_context=team_context,
            metadata=metadata,
        )
        with trace("tool.sanitize_assistant_context"):
            sanitized = self.shield.sanitize_assistant_context(data)
        return {"success": True, **sanitized.to_dict()}

    async def sanitize_embedded_input(
        self,
        selected_text: str | None = None,
        custom_prompt: str | None = None,
        document_title: str | None = None,
        metadata: dict[str, Any] | None = None,
        semantic_scan: bool = True,
    ) -> dict[str, Any]:
        """
        Sanitize writer input and wrap selection and instruction as data.

        With semantic_scan, high-risk input is confirmed by the classifier and
        recorded, and input that should be blocked yields PROMPT_BLOCKED.
        Without it, the synchronous path runs and should_block is only
        reported.
        """
        data = EmbeddedWriterInput(
            selected_text=selected_text,
            custom_prompt=custom_prompt,
            document_title=document_title,
            metadata=metadata,
        )

        if not semantic_scan:
            with trace("tool.sanitize_embedded_input", semantic_scan=False):
                sanitized = self.shield.sanitize_embedded_input(data)
            return {"success": True, **sanitized.to_dict()}

        with trace("tool.sanitize_embedded_input", semantic_scan=True):
            try:
                sanitized = await self.shield.guard_embedded_input(data)
            except PromptBlockedError as e:
                return _blocked_response(e)
        return {"success": True, **sanitized.to_dict()}

    def validate_prompt(self, prompt: str) -> dict[str, Any]:
        """Validate an assembled prompt; critical prompts yield PROMPT_BLOCKED."""
        with trace("tool.validate_prompt"):
            try:
                result = self.shield.ensure_prompt_safe(prompt)
            except PromptBlockedError as e:
                return _blocked_response(e)
        return {"success": True, **result.to_dict()}

    def scan_output(self, output: str) -> dict[str, Any]:
        with trace("tool.scan_output"):
            result = self.shield.scan_output(output)
        return {"success": True, **result.to_dict()}

    def encode_as_data(self, label: str, content: Any) -> dict[str, Any]:
        with trace("tool.encode_as_data", label=label):
            envelope = self.shield.encode_as_data(label, content)
        return {"success": True, "label": label, "envelope": envelope}

    async def flush_attack_buffer(self) -> dict[str, Any]:
        """Persist whatever the recorder is holding."""
        with trace("tool.flush_attack_buffer"):
            await self.shield.recorder.wait_idle()
            written = await self.shield.recorder.flush()
        return {"success": True, "written": written, "recorder": self.shield.recorder.get_stats()}

    def check_status(self, include_details: bool = False) -> dict[str, Any]:
        """
        Report pipeline health.

        Args:
            include_details: Include configuration and provider details

        Returns:
            Status information
        """
        config = self.shield.config
        scanner = self.shield.scanner

        status: dict[str, Any] = {
            "success": True,
            "status": "healthy",
            "service": SERVICE_NAME,
            "environment": config.environment,
            "scanner": {
                "available": scanner.available,
                "provider": scanner.provider.name if scanner.provider else None,
                "model": scanner.model,
            },
            "recorder": self.shield.recorder.get_stats(),
        }

        if include_details:
            status["config"] = {
                "log_threshold": config.security.log_threshold.label,
                "max_prompt_length": config.security.max_prompt_length,
                "max_instruction_markers": config.security.max_instruction_markers,
                "field_limits": config.security.field_limits.model_dump(),
                "scanner": config.scanner.model_dump(mode="json"),
                "recorder": config.recorder.model_dump(mode="json"),
            }
            status["providers"] = sorted(list_providers())

        return status
