"""
Prompt Shield - Server

FastMCP server using stdio transport (Model Context Protocol).

- Tools are thin wrappers; logic lives in ShieldTools
- Inputs are validated with Pydantic schemas before a tool body runs
- Logs go to stderr (stdout carries the protocol)
- Shutdown flushes buffered attack records and closes provider clients
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP

from .config import load_config
from .observability import setup_logging
from .pipeline import PromptShield
from .providers.factory import close_all_providers
from .tools import ShieldTools
from .validation import validate_input
from .validation.tool_schemas import (
    CheckStatusInput,
    EncodeAsDataInput,
    FlushAttackBufferInput,
    SanitizeAssistantContextInput,
    SanitizeEmbeddedInputInput,
    SanitizeInputInput,
    ScanOutputInput,
    ValidatePromptInput,
)

logger = logging.getLogger(__name__)

# Global state
_tools: ShieldTools | None = None


def get_tools() -> ShieldTools:
    """Tools instance, created on first use if the lifespan has not run."""
    global _tools

    if _tools is None:
        _tools = ShieldTools()

    return _tools


async def initialize_server() -> None:
    """Initialize server resources on startup."""
    global _tools

    if _tools is not None:
        return

    config = load_config()
    setup_logging(config.log_level, json_output=config.log_json)
    logger.info(f"Initializing Prompt Shield server (environment: {config.environment})")

    try:
        shield = PromptShield(config=config)
        shield.start()
        _tools = ShieldTools(shield)
    except Exception as e:
        logger.error(f"Failed to initialize server: {e}", exc_info=True)
        raise

    logger.info(
        "Prompt Shield server initialized",
        extra={
            "scanner_available": shield.scanner.available,
            "recorder_backend": config.recorder.backend,
        },
    )


async def cleanup_server() -> None:
    """Cleanup server resources on shutdown."""
    global _tools

    if _tools is None:
        return

    logger.info("Shutting down Prompt Shield server...")

    try:
        await _tools.shield.stop()
        await close_all_providers()
    except Exception as e:
        logger.error(f"Error during cleanup: {e}", exc_info=True)
    finally:
        _tools = None

    logger.info("Prompt Shield server cleanup complete")


@asynccontextmanager
async def server_lifespan(server: Any) -> Any:
    """Server lifespan manager (startup/shutdown)."""
    await initialize_server()
    try:
        yield
    finally:
        await cleanup_server()


# Create FastMCP server with lifespan
mcp = FastMCP("Prompt Shield - Prompt Injection Defense", lifespan=server_lifespan)


@mcp.tool()
@validate_input(SanitizeInputInput)
async def sanitize_input(
    text: str | None = None,
    max_length: int | None = None,
    field_label: str = "custom_prompt",
) -> dict[str, Any]:
    """
    Sanitize one untrusted text field.

    Truncates, strips control characters, collapses whitespace, redacts
    role markers and replaces known jailbreak phrasing.

    Args:
        text: Untrusted text
        max_length: Characters to keep (defaults to the limit of field_label)
        field_label: Field name used for the default limit and in findings

    Returns:
        Sanitized text, modification flag, threats, risk level and categories
    """
    return get_tools().sanitize_input(text=text, max_length=max_length, field_label=field_label)


@mcp.tool()
@validate_input(SanitizeAssistantContextInput)
async def sanitize_assistant_context(
    company_name: str | None = None,
    business_context: str | None = None,
    user_context: str | None = None,
    team_context: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Sanitize the context fields interpolated into an assistant's system prompt.

    Returns:
        Sanitized fields and a request-level report
    """
    return get_tools().sanitize_assistant_context(
        company_name=company_name,
        business_context=business_context,
        user_context=user_context,
        team_context=team_context,
        metadata=metadata,
    )


@mcp.tool()
@validate_input(SanitizeEmbeddedInputInput)
async def sanitize_embedded_input(
    selected_text: str | None = None,
    custom_prompt: str | None = None,
    document_title: str | None = None,
    metadata: dict[str, Any] | None = None,
    semantic_scan: bool = True,
) -> dict[str, Any]:
    """
    Sanitize writer input; selected text and custom prompt come back as data envelopes.

    Args:
        selected_text: Text selected in the document
        custom_prompt: The user's instruction
        document_title: Title of the document
        metadata: Extra context
        semantic_scan: Confirm high-risk input with the semantic scanner

    Returns:
        Sanitized fields and report, or PROMPT_BLOCKED
    """
    return await get_tools().sanitize_embedded_input(
        selected_text=selected_text,
        custom_prompt=custom_prompt,
        document_title=document_title,
        metadata=metadata,
        semantic_scan=semantic_scan,
    )


@mcp.tool()
@validate_input(ValidatePromptInput)
async def validate_prompt(prompt: str) -> dict[str, Any]:
    """
    Validate a fully assembled prompt right before it is sent to a model.

    Returns:
        is_valid, threats and risk level, or PROMPT_BLOCKED when critical
    """
    return get_tools().validate_prompt(prompt=prompt)


@mcp.tool()
@validate_input(ScanOutputInput)
async def scan_output(output: str) -> dict[str, Any]:
    """Scan a model reply for signs of a successful jailbreak or system-prompt leak."""
    return get_tools().scan_output(output=output)


@mcp.tool()
@validate_input(EncodeAsDataInput)
async def encode_as_data(label: str, content: Any) -> dict[str, Any]:
    """Wrap content in a <DATA> envelope so the model treats it as data, not instructions."""
    return get_tools().encode_as_data(label=label, content=content)


@mcp.tool()
@validate_input(FlushAttackBufferInput)
async def flush_attack_buffer() -> dict[str, Any]:
    """Persist buffered attack records now."""
    return await get_tools().flush_attack_buffer()


@mcp.tool()
@validate_input(CheckStatusInput)
async def check_status(include_details: bool = False) -> dict[str, Any]:
    """
    Check pipeline health and status.

    Args:
        include_details: Include configuration and provider details

    Returns:
        System status information
    """
    return get_tools().check_status(include_details=include_details)


def main() -> None:
    """CLI entry point for prompt-shield command."""
    mcp.run()


if __name__ == "__main__":
    main()
