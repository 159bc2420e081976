"""Low-level shell process management with pexpect."""

import errno
import os
import select
import signal
from pathlib import Path
from typing import Optional

import pexpect
from loguru import logger

from toolhost.tools.errors import ExecutionError

from .types import PtySessionConfig


class ShellProcess:
    """Low-level pexpect wrapper for one ``shell -c command`` child.

    Handles spawning, raw pty I/O and the lifecycle of the pexpect child.
    Reads go straight to the pty master fd so a reader thread never shares
    pexpect's internal buffers with the writer.
    """

    def __init__(self, config: PtySessionConfig) -> None:
        self.config = config
        self.child: Optional[pexpect.spawn] = None
        self.exit_code: Optional[int] = None

    def spawn(self, command: str) -> None:
        """Spawn ``config.shell -c command`` attached to a new pty.

        Raises
        ------
        ExecutionError
            If the working directory is missing or the shell cannot start.
        """
        cwd = Path(self.config.working_directory).expanduser()
        if not cwd.is_dir():
            raise ExecutionError(f"working directory does not exist: {cwd}")

        env = os.environ.copy()
        env["TERM"] = "xterm-256color"
        env["COLUMNS"] = str(self.config.cols)
        env["LINES"] = str(self.config.rows)

        logger.debug(f"Spawning {self.config.shell} -c {command!r} in {cwd}")

        try:
            self.child = pexpect.spawn(
                self.config.shell,
                args=["-c", command],
                cwd=str(cwd),
                env=env,
                echo=False,
                dimensions=(self.config.rows, self.config.cols),
            )
        except (pexpect.ExceptionPexpect, OSError) as e:
            raise ExecutionError(f"failed to spawn {self.config.shell}: {e}") from e

    @property
    def pid(self) -> Optional[int]:
        """Get the process ID."""
        if self.child is not None:
            return self.child.pid
        return None

    @property
    def exited(self) -> bool:
        return self.exit_code is not None

    def read_chunk(self, timeout: float) -> Optional[bytes]:
        """Read whatever the pty has, waiting at most ``timeout`` seconds.

        Returns
        -------
        Optional[bytes]
            The bytes read, ``b""`` when nothing arrived in time, or None on
            end of stream.
        """
        fd = self.child.child_fd
        try:
            ready, _, _ = select.select([fd], [], [], timeout)
        except InterruptedError:
            return b""
        except (OSError, ValueError):
            # fd closed underneath us
            return None
        if not ready:
            return b""
        try:
            data = os.read(fd, self.config.read_chunk_size)
        except BlockingIOError:
            return b""
        except InterruptedError:
            return b""
        except OSError as e:
            # Linux reports EIO on the master once the slave side is gone
            if e.errno == errno.EIO:
                return None
            raise
        return data or None

    def send(self, data: bytes) -> None:
        """Write bytes to the child's terminal."""
        self.child.send(data)

    def wait(self) -> int:
        """Block until the child exits and record its exit code.

        A child killed by a signal reports ``128 + signal``, as shells do.
        """
        try:
            status = self.child.wait()
        except pexpect.ExceptionPexpect:
            # Already reaped by ptyprocess; isalive() copies its status onto the child
            self.child.isalive()
            status = self.child.exitstatus
        if status is None and self.child.signalstatus is not None:
            status = 128 + self.child.signalstatus
        self.exit_code = status if status is not None else -1
        return self.exit_code

    def kill(self) -> None:
        """Send SIGKILL unless the child has already exited."""
        if self.child is None or self.exited:
            return
        try:
            os.kill(self.child.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass

    def close(self) -> None:
        """Release the pty. Call only after the wait has returned."""
        if self.child is None:
            return
        try:
            self.child.close(force=True)
        except (pexpect.ExceptionPexpect, OSError) as e:
            logger.debug(f"Error closing pty for pid {self.pid}: {e}")
