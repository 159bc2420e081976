"""PTY session management for interactive shell commands."""

from .broadcast import OutputBroadcast, OutputReceiver
from .manager import PtySessionManager
from .process import ShellProcess
from .session import PtySession
from .types import PtyOutput, PtySessionConfig, SessionId

__all__ = [
    "OutputBroadcast",
    "OutputReceiver",
    "PtyOutput",
    "PtySession",
    "PtySessionConfig",
    "PtySessionManager",
    "SessionId",
    "ShellProcess",
]
