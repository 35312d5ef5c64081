"""
Prompt Shield - Validation Decorators

Applies Pydantic validation to MCP tool inputs and turns failures into
structured INVALID_INPUT responses.
"""

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ErrorCode, make_error_response

logger = logging.getLogger(__name__)


def _invalid_input_response(func_name: str, error: ValidationError, kwargs: dict[str, Any]) -> dict[str, Any]:
    validation_errors = [
        {
            "field": " -> ".join(str(loc) for loc in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]

    logger.warning(
        f"Input validation failed for {func_name}",
        extra={
            "function": func_name,
            "validation_errors": validation_errors,
            "input_keys": sorted(kwargs),
        },
    )

    return make_error_response(
        error_code=ErrorCode.INVALID_INPUT,
        message="Input validation failed",
        context={"validation_errors": validation_errors, "function": func_name},
    )


def validate_input(schema: type[BaseModel]) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator to validate tool inputs using Pydantic schema.

    The wrapped function receives the validated fields as keyword arguments.
    Only validation itself is guarded here; errors raised by the tool body
    propagate to the caller.

    Args:
        schema: Pydantic model class for input validation

    Example:
        >>> @validate_input(ValidatePromptInput)
        ... async def validate_prompt(prompt: str):
        ...     ...

    Error Response:
        {
            "success": False,
            "error_code": "INVALID_INPUT",
            "message": "Input validation failed",
            "details": {
                "validation_errors": [
                    {"field": "prompt", "message": "String should have at least 1 character", "type": "string_too_short"}
                ],
                "function": "validate_prompt"
            }
        }
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                validated = schema(**kwargs)
            except ValidationError as e:
                return _invalid_input_response(func.__name__, e, kwargs)
            return await func(*args, **validated.model_dump())

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                validated = schema(**kwargs)
            except ValidationError as e:
                return _invalid_input_response(func.__name__, e, kwargs)
            return func(*args, **validated.model_dump())

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
