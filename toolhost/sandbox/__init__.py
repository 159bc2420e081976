"""Sandbox permissions, safe-command detection and approval policy."""

from .approval import ToolExecutionMode, is_mutating_tool, requires_approval
from .permissions import SandboxLevel, SandboxPermissions
from .safe_commands import is_safe_command

__all__ = [
    "SandboxLevel",
    "SandboxPermissions",
    "ToolExecutionMode",
    "is_mutating_tool",
    "is_safe_command",
    "requires_approval",
]
