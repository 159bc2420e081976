"""Approval policy for tool calls."""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .safe_commands import is_safe_command_line

# Tools known not to modify anything
NON_MUTATING_TOOLS: frozenset[str] = frozenset(
    {"echo", "time_now", "file_read", "search", "ls", "rollback"}
)
# Tools known to write files or have side effects
MUTATING_TOOLS: frozenset[str] = frozenset({"shell", "shell_write", "patch", "plan"})

DISABLED_MESSAGE = "Tool execution disabled"
APPROVAL_REQUIRED_MESSAGE = "Tool execution requires approval"


class ToolExecutionMode(Enum):
    """Whether tool calls run, ask first, or never run."""

    ALWAYS = "always"
    ASK = "ask"
    NEVER = "never"

    @classmethod
    def parse(cls, value: str) -> "ToolExecutionMode":
        normalized = value.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        valid = ", ".join(mode.value for mode in cls)
        raise ValueError(f"Invalid tool execution mode '{value}'. Valid modes: {valid}")


class ApprovalDecision(Enum):
    EXECUTE = "execute"
    ASK = "ask"
    DECLINE = "decline"


@dataclass(frozen=True)
class ApprovalResult:
    """Outcome of the approval policy for one call."""

    decision: ApprovalDecision
    reason: Optional[str] = None

    @property
    def should_execute(self) -> bool:
        return self.decision is ApprovalDecision.EXECUTE


def is_mutating_tool(name: str) -> bool:
    """Unknown tools count as mutating."""
    if name in MUTATING_TOOLS:
        return True
    if name in NON_MUTATING_TOOLS:
        return False
    return True


def requires_approval(name: str, arguments: str, mode: ToolExecutionMode) -> ApprovalResult:
    """Decide whether a tool call may run without asking the user.

    In ask mode, read-only tools and ``shell`` calls whose command is a
    known-safe command run straight away; everything else needs approval.
    """
    if mode is ToolExecutionMode.NEVER:
        return ApprovalResult(ApprovalDecision.DECLINE, DISABLED_MESSAGE)
    if mode is ToolExecutionMode.ALWAYS:
        return ApprovalResult(ApprovalDecision.EXECUTE)

    if not is_mutating_tool(name):
        return ApprovalResult(ApprovalDecision.EXECUTE)
    if name == "shell" and _shell_command_is_safe(arguments):
        return ApprovalResult(ApprovalDecision.EXECUTE)
    return ApprovalResult(ApprovalDecision.ASK, APPROVAL_REQUIRED_MESSAGE)


def _shell_command_is_safe(arguments: str) -> bool:
    try:
        args = json.loads(arguments) if arguments.strip() else {}
    except json.JSONDecodeError:
        return False
    command = args.get("cmd") if isinstance(args, dict) else None
    if not isinstance(command, str):
        return False
    return is_safe_command_line(command)
