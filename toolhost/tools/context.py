"""Execution context passed to every tool call."""

from dataclasses import dataclass, field

from toolhost.sandbox.permissions import SandboxPermissions


@dataclass(frozen=True)
class ToolContext:
    """Per-turn settings for tool execution.

    Built once per agent turn and never mutated while a call runs.
    ``timeout_ms`` of 0 disables the timeout check and an empty
    ``allowed_paths`` means any path is accepted.
    """

    working_dir: str
    timeout_ms: int = 0
    allowed_paths: tuple[str, ...] = ()
    sandbox: SandboxPermissions = field(default_factory=SandboxPermissions)
