"""Tool-layer error taxonomy.

Every failure that crosses the tool-execution boundary is a ``ToolError``
subclass. ``str(error)`` is the text shown to the model or the user.
"""


class ToolError(Exception):
    """Base class for tool execution failures."""

    prefix = "tool error"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class InvalidArgsError(ToolError):
    """Malformed or missing tool arguments. Not retried."""

    prefix = "invalid tool arguments"


class ExecutionError(ToolError):
    """Runtime failure (I/O error, non-zero exit, exited session)."""

    prefix = "tool execution failed"


class NotFoundError(ToolError):
    """Unknown tool or PTY session."""

    prefix = "tool not found"


class DeniedError(ToolError):
    """Sandbox or permission refusal."""

    prefix = "permission denied"


class RespondToModelError(ToolError):
    """A correction the model is expected to act on, e.g. a bad offset."""

    prefix = "tool input rejected"

    def __str__(self) -> str:
        return self.message


class FatalError(ToolError):
    """Unrecoverable failure."""

    prefix = "fatal tool error"


class ToolTimeoutError(ToolError):
    """A tool-managed wall-clock limit expired."""

    prefix = "tool timed out"

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"exceeded {timeout_ms}ms")


class MissingDependencyError(ToolError):
    """A required external binary is not installed."""

    prefix = "missing dependency"
