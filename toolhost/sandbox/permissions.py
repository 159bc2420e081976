"""Sandbox permission levels for tool execution.

These are advisory checks on the paths tools write to, not OS isolation.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SandboxLevel(Enum):
    """How much of the filesystem tools may modify."""

    READ_ONLY = "read-only"
    WORKSPACE_WRITE = "workspace-write"
    FULL_ACCESS = "full-access"

    @classmethod
    def parse(cls, value: str) -> "SandboxLevel":
        """Parse a level name; accepts ``-`` or ``_`` separators."""
        normalized = value.strip().lower().replace("_", "-")
        if normalized == "danger-full-access":
            normalized = cls.FULL_ACCESS.value
        for level in cls:
            if level.value == normalized:
                return level
        valid = ", ".join(level.value for level in cls)
        raise ValueError(f"Invalid sandbox level '{value}'. Valid levels: {valid}")

    @property
    def allows_write(self) -> bool:
        return self in (SandboxLevel.WORKSPACE_WRITE, SandboxLevel.FULL_ACCESS)

    @property
    def allows_outside_workspace(self) -> bool:
        return self is SandboxLevel.FULL_ACCESS


@dataclass(frozen=True)
class SandboxPermissions:
    """Sandbox level plus the workspace root used by workspace-write."""

    level: SandboxLevel = SandboxLevel.WORKSPACE_WRITE
    workspace_root: Optional[str] = None

    def with_workspace(self, root: str) -> "SandboxPermissions":
        return SandboxPermissions(level=self.level, workspace_root=root)

    def is_write_allowed(self, path: str) -> bool:
        """Check if a path may be created, modified or deleted.

        Read-only never writes and full access always does. Workspace-write
        allows the root itself and anything beneath it, or everything when
        no root is set.
        """
        if self.level is SandboxLevel.READ_ONLY:
            return False
        if self.level is SandboxLevel.FULL_ACCESS:
            return True
        if self.workspace_root is None:
            return True
        root = os.path.normpath(os.path.abspath(self.workspace_root))
        target = os.path.normpath(os.path.abspath(path))
        return target == root or target.startswith(root.rstrip(os.sep) + os.sep)
