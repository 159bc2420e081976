"""PTY session types and dataclasses."""

import json
from dataclasses import dataclass
from typing import Optional

# Session ids are issued by the manager, starting at 1
SessionId = int

DEFAULT_YIELD_TIME_MS = 5000
MAX_OUTPUT_BYTES = 100_000


@dataclass
class PtySessionConfig:
    """Configuration for spawning a PTY session."""

    shell: str = "/bin/bash"
    working_directory: str = "."
    rows: int = 24
    cols: int = 120
    write_queue_size: int = 128
    read_chunk_size: int = 4096
    read_poll_interval: float = 0.1


@dataclass
class PtyOutput:
    """Output collected from a session during one yield window."""

    output: str
    session_id: SessionId
    exit_code: Optional[int] = None
    duration_secs: float = 0.0
    has_exited: bool = False

    def to_dict(self) -> dict:
        return {
            "output": self.output,
            "metadata": {
                "exit_code": self.exit_code,
                "duration_seconds": self.duration_secs,
                "session_id": self.session_id,
                "has_exited": self.has_exited,
            },
        }

    def to_json(self) -> str:
        """Render the shell tool result string."""
        return json.dumps(self.to_dict())
