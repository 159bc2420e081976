"""Tool definitions, execution context and errors.

The registry, built-ins and parallel executor live in their own modules
(``toolhost.tools.registry``, ``toolhost.tools.builtin``,
``toolhost.tools.parallel``) and are imported from there.
"""

from .context import ToolContext
from .definition import ToolDefinition, ToolExecutor, ToolParam, parse_args
from .errors import (
    DeniedError,
    ExecutionError,
    FatalError,
    InvalidArgsError,
    MissingDependencyError,
    NotFoundError,
    RespondToModelError,
    ToolError,
    ToolTimeoutError,
)

__all__ = [
    "DeniedError",
    "ExecutionError",
    "FatalError",
    "InvalidArgsError",
    "MissingDependencyError",
    "NotFoundError",
    "RespondToModelError",
    "ToolContext",
    "ToolDefinition",
    "ToolError",
    "ToolExecutor",
    "ToolParam",
    "ToolTimeoutError",
    "parse_args",
]
