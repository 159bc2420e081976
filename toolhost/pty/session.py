"""A single spawned shell process attached to a pty.

Each session runs three workers: a reader thread that moves pty output into
the broadcast, a writer task that drains the input queue, and a wait thread
that records the exit status. Both threads run on the session's own
two-worker executor so a slow child never starves the default pool.
"""

import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, Optional

from loguru import logger

from toolhost.tools.errors import ExecutionError

from .broadcast import OutputBroadcast, OutputReceiver
from .process import ShellProcess
from .types import MAX_OUTPUT_BYTES, PtyOutput, PtySessionConfig, SessionId

# How long teardown waits for the child to be reaped before giving up on the pty
RELEASE_TIMEOUT = 5.0


class PtySession:
    """Manages one ``shell -c command`` child and its output channel."""

    def __init__(self, session_id: SessionId, config: PtySessionConfig) -> None:
        self.session_id = session_id
        self.config = config
        self.process = ShellProcess(config)
        self.output = OutputBroadcast()
        self.command: Optional[str] = None

        self.created_at = datetime.now()
        self.last_activity = datetime.now()
        self.busy = False

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._executor = ThreadPoolExecutor(
            max_workers=2, thread_name_prefix=f"pty-{session_id}"
        )
        self._stop = threading.Event()
        self._exited = threading.Event()
        self._exit_future: Optional[asyncio.Future] = None
        self._write_queue: Optional[asyncio.Queue] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._terminated = False

    async def start(self, command: str) -> OutputReceiver:
        """Spawn the child and start its workers.

        Returns the initial receiver, subscribed before the reader starts so
        no early output is missed.
        """
        self._loop = asyncio.get_running_loop()
        self.command = command
        self.process.spawn(command)
        self.process.child.delaybeforesend = None

        receiver = self.output.subscribe()
        self._exit_future = self._loop.create_future()
        self._write_queue = asyncio.Queue(maxsize=self.config.write_queue_size)

        self._loop.run_in_executor(self._executor, self._read_loop)
        self._loop.run_in_executor(self._executor, self._wait_loop)
        self._writer_task = asyncio.create_task(self._write_loop())

        logger.info(f"Spawned PTY session {self.session_id} (pid {self.pid}): {command!r}")
        return receiver

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid

    @property
    def has_exited(self) -> bool:
        return self._exited.is_set()

    @property
    def exit_code(self) -> Optional[int]:
        return self.process.exit_code

    def subscribe(self) -> OutputReceiver:
        """Receiver for all output produced from now on."""
        return self.output.subscribe()

    async def write(self, data: bytes) -> None:
        """Queue bytes for the child's stdin, in order.

        Raises
        ------
        ExecutionError
            If the child has already exited or the session was terminated.
        """
        if self.has_exited or self._terminated:
            raise ExecutionError(f"Session {self.session_id} has already exited")
        self.last_activity = datetime.now()
        await self._write_queue.put(data)

    async def collect(
        self,
        receiver: OutputReceiver,
        yield_time_ms: int,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
    ) -> PtyOutput:
        """Gather output from ``receiver`` for at most ``yield_time_ms``.

        Stops early once ``max_output_bytes`` have been collected or the
        channel closes and the exit status is known. The receiver is closed
        on return.
        """
        loop = asyncio.get_running_loop()
        start = loop.time()
        deadline = start + yield_time_ms / 1000.0
        collected = bytearray()
        self.busy = True
        try:
            while len(collected) < max_output_bytes:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    chunk = await receiver.recv(timeout=remaining)
                except asyncio.TimeoutError:
                    break
                if chunk is None:
                    await self._await_exit(deadline - loop.time())
                    break
                collected.extend(chunk)
        finally:
            receiver.close()
            self.busy = False
            self.last_activity = datetime.now()

        return PtyOutput(
            output=bytes(collected[:max_output_bytes]).decode("utf-8", errors="replace"),
            session_id=self.session_id,
            exit_code=self.exit_code if self.has_exited else None,
            duration_secs=loop.time() - start,
            has_exited=self.has_exited,
        )

    def terminate(self) -> None:
        """Stop the reader, kill the child and release the pty.

        Idempotent and non-blocking; safe to call from any thread.
        """
        if self._terminated:
            return
        self._terminated = True
        self._stop.set()
        self.process.kill()
        if self._writer_task is not None and not self._writer_task.done():
            self._call_in_loop(self._writer_task.cancel)
        self._executor.submit(self._release)
        self._executor.shutdown(wait=False)
        logger.debug(f"Terminated PTY session {self.session_id}")

    def idle_seconds(self) -> float:
        return (datetime.now() - self.last_activity).total_seconds()

    def info(self) -> dict:
        return {
            "session_id": self.session_id,
            "command": self.command,
            "shell": self.config.shell,
            "working_directory": self.config.working_directory,
            "created_at": self.created_at.isoformat(),
            "last_activity": self.last_activity.isoformat(),
            "idle_seconds": self.idle_seconds(),
            "has_exited": self.has_exited,
            "exit_code": self.exit_code,
            "pid": self.pid,
        }

    async def _await_exit(self, timeout: float) -> None:
        if self._exit_future.done() or timeout <= 0:
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._exit_future), timeout)
        except asyncio.TimeoutError:
            pass

    def _read_loop(self) -> None:
        """Runs on the session executor until EOF or termination."""
        while not self._stop.is_set():
            try:
                chunk = self.process.read_chunk(self.config.read_poll_interval)
            except OSError as e:
                logger.error(f"PTY read failed for session {self.session_id}: {e}")
                break
            if chunk is None:
                break
            if chunk:
                self._call_in_loop(self.output.publish, chunk)
        self._call_in_loop(self.output.close)

    def _wait_loop(self) -> None:
        """Runs on the session executor; the only caller of waitpid for the child."""
        code = self.process.wait()
        self._exited.set()
        self._call_in_loop(self._set_exit, code)

    def _set_exit(self, code: int) -> None:
        if self._exit_future is not None and not self._exit_future.done():
            self._exit_future.set_result(code)
        logger.debug(f"PTY session {self.session_id} exited with code {code}")

    async def _write_loop(self) -> None:
        while True:
            data = await self._write_queue.get()
            try:
                await asyncio.to_thread(self.process.send, data)
            except OSError as e:
                logger.error(f"PTY write failed for session {self.session_id}: {e}")
                return

    def _release(self) -> None:
        if self.process.child is None:
            return
        if not self._exited.wait(RELEASE_TIMEOUT):
            logger.warning(
                f"PTY session {self.session_id} (pid {self.pid}) not reaped "
                f"after {RELEASE_TIMEOUT}s, leaving pty open"
            )
            return
        self.process.close()

    def _call_in_loop(self, callback: Callable, *args) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop closed between the check and the call
            pass
