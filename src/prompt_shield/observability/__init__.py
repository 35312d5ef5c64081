"""
Prompt Shield - Observability Module

All logging setup and trace-id handling goes through this module.

Usage:
    from prompt_shield.observability import setup_logging, trace

    setup_logging("INFO", json_output=True)

    with trace("tool.validate_prompt"):
        # traced code here
        pass
"""

from .monitoring import (
    JSONFormatter,
    generate_trace_id,
    get_trace_id,
    reset_trace_id,
    set_trace_id,
    setup_logging,
    trace,
)

__all__ = [
    "JSONFormatter",
    "setup_logging",
    "trace",
    "get_trace_id",
    "set_trace_id",
    "reset_trace_id",
    "generate_trace_id",
]
