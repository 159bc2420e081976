"""shell and shell_write: run commands in PTY sessions."""

from typing import Any, Optional

from pydantic import BaseModel, NonNegativeInt

from toolhost.pty.manager import PtySessionManager
from toolhost.utils.async_bridge import LoopBridge

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam, parse_args

DEFAULT_SHELL = "/bin/bash"

YIELD_PARAM = ToolParam(
    "yield_time_ms",
    "How long to wait for output before returning (default 5000ms).",
    "number",
)


class ShellArgs(BaseModel):
    cmd: str
    workdir: Optional[str] = None
    shell: Optional[str] = None
    yield_time_ms: Optional[NonNegativeInt] = None


class ShellWriteArgs(BaseModel):
    session_id: NonNegativeInt
    chars: str
    yield_time_ms: Optional[NonNegativeInt] = None


def shell_tool(
    manager: PtySessionManager, bridge: LoopBridge, default_shell: str = DEFAULT_SHELL
) -> ToolDefinition:
    def execute_shell(ctx: ToolContext, args: Any) -> str:
        shell_args = parse_args(ShellArgs, args)
        output = bridge.run(
            manager.spawn(
                shell_args.shell or default_shell,
                shell_args.cmd,
                shell_args.workdir or ctx.working_dir,
                shell_args.yield_time_ms,
            )
        )
        return output.to_json()

    return ToolDefinition(
        name="shell",
        description=(
            "Execute a shell command in a PTY. Returns output and session_id for "
            "follow-up writes. Use shell_write to send input to an existing session."
        ),
        params=(
            ToolParam("cmd", "Shell command to execute."),
            ToolParam("workdir", "Working directory for the command (defaults to current dir)."),
            ToolParam("shell", f"Shell binary to use (defaults to {default_shell})."),
            YIELD_PARAM,
        ),
        required=("cmd",),
        executor=execute_shell,
    )


def shell_write_tool(manager: PtySessionManager, bridge: LoopBridge) -> ToolDefinition:
    def execute_shell_write(ctx: ToolContext, args: Any) -> str:
        write_args = parse_args(ShellWriteArgs, args)
        output = bridge.run(
            manager.write(
                write_args.session_id,
                write_args.chars,
                write_args.yield_time_ms,
            )
        )
        return output.to_json()

    return ToolDefinition(
        name="shell_write",
        description=(
            "Write characters to an existing PTY session. Use the session_id from a "
            "previous shell call. Returns new output from the session."
        ),
        params=(
            ToolParam("session_id", "Session ID from a previous shell call.", "number"),
            ToolParam("chars", "Characters to send to the session (can include \\n for enter)."),
            YIELD_PARAM,
        ),
        required=("session_id", "chars"),
        executor=execute_shell_write,
    )
