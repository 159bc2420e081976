"""Built-in tool set."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from toolhost.pty.manager import PtySessionManager
from toolhost.tracking import DiffTracker
from toolhost.utils.async_bridge import LoopBridge

from .context import ToolContext
from .definition import ToolDefinition, ToolParam, parse_args
from .errors import InvalidArgsError
from .handlers import (
    file_read_tool,
    ls_tool,
    patch_tool,
    plan_tool,
    rollback_tool,
    search_tool,
    shell_tool,
    shell_write_tool,
)
from .handlers.search import SEARCH_TIMEOUT_SECONDS
from .handlers.shell import DEFAULT_SHELL


class EchoArgs(BaseModel):
    text: str


def execute_echo(ctx: ToolContext, args: Any) -> str:
    if not isinstance(args, dict) or "text" not in args:
        raise InvalidArgsError("missing 'text'")
    return parse_args(EchoArgs, args).text


def execute_time_now(ctx: ToolContext, args: Any) -> str:
    return datetime.now(timezone.utc).isoformat()


def echo_tool() -> ToolDefinition:
    return ToolDefinition(
        name="echo",
        description="Echo back the provided text.",
        params=(ToolParam("text", "Text to echo back."),),
        required=("text",),
        executor=execute_echo,
    )


def time_now_tool() -> ToolDefinition:
    return ToolDefinition(
        name="time_now",
        description="Return the current UTC time in RFC3339 format.",
        executor=execute_time_now,
    )


@dataclass
class ToolRuntime:
    """Shared state behind the stateful built-ins.

    One runtime is created per process: the PTY manager and the change
    tracker live for as long as the registry that uses them.
    """

    manager: PtySessionManager = field(default_factory=PtySessionManager)
    bridge: LoopBridge = field(default_factory=LoopBridge)
    tracker: DiffTracker = field(default_factory=DiffTracker)
    search_timeout: float = SEARCH_TIMEOUT_SECONDS
    default_shell: str = DEFAULT_SHELL

    def shutdown(self) -> None:
        """Terminate every PTY session and stop the bridge loop."""
        if self.bridge.is_running:
            self.bridge.run(self.manager.terminate_all())
        self.bridge.stop()


def builtin_tools() -> list[ToolDefinition]:
    """Stateless built-ins only."""
    return [echo_tool(), time_now_tool()]


def builtin_tools_with_runtime(runtime: ToolRuntime) -> list[ToolDefinition]:
    """All built-ins, wired to the runtime's PTY manager and tracker."""
    return builtin_tools() + [
        file_read_tool(),
        ls_tool(),
        search_tool(runtime.search_timeout),
        patch_tool(runtime.tracker),
        plan_tool(),
        shell_tool(runtime.manager, runtime.bridge, runtime.default_shell),
        shell_write_tool(runtime.manager, runtime.bridge),
        rollback_tool(runtime.tracker),
    ]
