"""
Prompt Shield - Observability

Structured logging for the whole package: a JSON formatter, trace ids carried
in context variables, and a span helper that logs durations.
"""

import contextvars
import json
import logging
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

PACKAGE_LOGGER = "prompt_shield"

# Trace ID context variable, one per tool call / request
_trace_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

# Attributes every LogRecord has; anything else came in through extra={...}
_RESERVED_ATTRS = frozenset(
    {
        "args",
        "msg",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "name",
        "message",
    }
)


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        trace_id = _trace_id_ctx.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        for key, value in record.__dict__.items():
            if key not in log_data and not key.startswith("_") and key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Logs go to stderr: stdout belongs to the MCP stdio transport.

    Args:
        level: Log level name
        json_output: Use JSONFormatter instead of a plain text format

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level.upper())
    logger.propagate = False
    return logger


def get_trace_id() -> str | None:
    """Get current trace ID from context."""
    return _trace_id_ctx.get()


def set_trace_id(trace_id: str | None) -> contextvars.Token[str | None]:
    """Set trace ID in context; returns a token for reset_trace_id()."""
    return _trace_id_ctx.set(trace_id)


def reset_trace_id(token: contextvars.Token[str | None]) -> None:
    _trace_id_ctx.reset(token)


def generate_trace_id() -> str:
    """Generate a new trace ID and set it in context."""
    trace_id = str(uuid4())
    _trace_id_ctx.set(trace_id)
    return trace_id


@contextmanager
def trace(span_name: str, **tags: Any) -> Generator[str, None, None]:
    """
    Run a block under a fresh trace id and log its duration at debug level.

    Example:
        with trace("tool.sanitize_input"):
            result = sanitize_input(text, 1000)
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    token = _trace_id_ctx.set(str(uuid4()))
    trace_id = _trace_id_ctx.get() or ""
    start_time = time.perf_counter()

    try:
        yield trace_id
    except Exception as e:
        logger.error(
            f"Span error: {span_name}",
            extra={"span_name": span_name, "error": str(e), "tags": tags},
            exc_info=True,
        )
        raise
    finally:
        logger.debug(
            f"Span completed: {span_name}",
            extra={
                "span_name": span_name,
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                "tags": tags,
            },
        )
        _trace_id_ctx.reset(token)
