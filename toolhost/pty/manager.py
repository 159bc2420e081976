"""PTY session manager for concurrently running shell sessions.

Sessions live in a dict keyed by an integer id that is never reused. The
table is guarded by a reader/writer lock that is held only for lookups and
table updates, never across pty I/O.
"""

import asyncio
import itertools
import threading
from typing import TYPE_CHECKING, Optional

from loguru import logger

from toolhost.tools.errors import ExecutionError, NotFoundError
from toolhost.utils.rwlock import AsyncRWLock

from .session import PtySession
from .types import DEFAULT_YIELD_TIME_MS, MAX_OUTPUT_BYTES, PtyOutput, PtySessionConfig, SessionId

if TYPE_CHECKING:
    from toolhost.config import PtySettings


class PtySessionManager:
    """Spawns, multiplexes and tears down PTY sessions."""

    def __init__(
        self,
        max_sessions: int = 32,
        idle_timeout_seconds: float = 1800.0,
        cleanup_interval_seconds: float = 60.0,
        default_yield_time_ms: int = DEFAULT_YIELD_TIME_MS,
        max_output_bytes: int = MAX_OUTPUT_BYTES,
        rows: int = 24,
        cols: int = 120,
    ) -> None:
        self.max_sessions = max_sessions
        self.idle_timeout_seconds = idle_timeout_seconds
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self.default_yield_time_ms = default_yield_time_ms
        self.max_output_bytes = max_output_bytes
        self.rows = rows
        self.cols = cols

        self._sessions: dict[SessionId, PtySession] = {}
        self._lock = AsyncRWLock()
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()
        self._cleanup_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: "PtySettings") -> "PtySessionManager":
        return cls(
            max_sessions=settings.max_sessions,
            idle_timeout_seconds=settings.idle_timeout,
            cleanup_interval_seconds=settings.cleanup_interval,
            default_yield_time_ms=settings.yield_time_ms,
            max_output_bytes=settings.max_output_bytes,
            rows=settings.rows,
            cols=settings.cols,
        )

    def _next_id(self) -> SessionId:
        with self._id_lock:
            return next(self._ids)

    async def spawn(
        self,
        shell: str,
        command: str,
        working_dir: str,
        yield_time_ms: Optional[int] = None,
    ) -> PtyOutput:
        """Start ``shell -c command`` in a new session and collect its first output.

        Args:
            shell: Shell binary, e.g. /bin/bash
            command: Command passed to ``shell -c``
            working_dir: Working directory of the child
            yield_time_ms: How long to collect output (default 5000)

        Returns:
            PtyOutput for the first yield window. If the process exited
            during that window the session has already been evicted.

        Raises:
            ExecutionError: If the child cannot be spawned or the session
                limit is reached with nothing to evict.
        """
        await self._make_room()

        session_id = self._next_id()
        session = PtySession(
            session_id,
            PtySessionConfig(
                shell=shell,
                working_directory=working_dir,
                rows=self.rows,
                cols=self.cols,
            ),
        )
        try:
            receiver = await session.start(command)
        except ExecutionError:
            session.terminate()
            raise

        async with self._lock.write():
            self._sessions[session_id] = session
        logger.debug(f"Registered PTY session {session_id} (total: {len(self._sessions)})")

        output = await session.collect(
            receiver, self._yield_ms(yield_time_ms), self.max_output_bytes
        )
        if output.has_exited:
            await self._evict(session_id)
        return output

    async def write(
        self,
        session_id: SessionId,
        data: str,
        yield_time_ms: Optional[int] = None,
    ) -> PtyOutput:
        """Send characters to a running session and collect what follows.

        An empty ``data`` just polls for new output.

        Raises:
            NotFoundError: If the id is unknown.
            ExecutionError: If the session's process has already exited.
        """
        async with self._lock.read():
            session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"unknown session id {session_id}")
        if session.has_exited:
            await self._evict(session_id)
            raise ExecutionError(f"Session {session_id} has already exited")

        # Subscribe before writing so the response cannot be missed
        receiver = session.subscribe()
        if data:
            try:
                await session.write(data.encode("utf-8"))
            except ExecutionError:
                receiver.close()
                await self._evict(session_id)
                raise

        output = await session.collect(
            receiver, self._yield_ms(yield_time_ms), self.max_output_bytes
        )
        if output.has_exited:
            await self._evict(session_id)
        return output

    async def get(self, session_id: SessionId) -> Optional[PtySession]:
        async with self._lock.read():
            return self._sessions.get(session_id)

    async def remove(self, session_id: SessionId) -> bool:
        """Terminate and remove a session.

        Returns True if the session was found and removed.
        """
        removed = await self._evict(session_id)
        if removed:
            logger.info(f"Removed PTY session {session_id}")
        return removed

    async def list_sessions(self) -> list[SessionId]:
        """List live session ids in creation order."""
        async with self._lock.read():
            return sorted(self._sessions)

    def session_count(self) -> int:
        """Get number of tracked sessions.

        Note: len() on a CPython dict is atomic, so no lock needed here.
        """
        return len(self._sessions)

    def session_info(self, session_id: Optional[SessionId] = None) -> Optional[dict] | list[dict]:
        """Get info about session(s).

        Args:
            session_id: Optional id to look up

        Returns:
            If session_id provided: dict with session info, or None if not found.
            Otherwise: list of dicts for all sessions.
        """
        # Take a snapshot to avoid reading the dict while it may be modified
        snapshot = dict(self._sessions)
        if session_id is not None:
            session = snapshot.get(session_id)
            return session.info() if session else None
        return [snapshot[key].info() for key in sorted(snapshot)]

    async def terminate_all(self) -> None:
        """Stop the idle reaper and terminate every session (for shutdown)."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
        self._cleanup_task = None

        async with self._lock.write():
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            session.terminate()
        logger.info(f"Terminated all PTY sessions ({len(sessions)})")

    def close_nowait(self) -> None:
        """Best-effort teardown that never blocks.

        Does nothing if the table is currently locked; otherwise terminates
        every session.
        """
        if not self._lock.try_acquire_write():
            return
        try:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        finally:
            self._lock.release_write()

        task = self._cleanup_task
        if task is not None and not task.done() and not task.get_loop().is_closed():
            task.get_loop().call_soon_threadsafe(task.cancel)
        for session in sessions:
            session.terminate()

    def __del__(self) -> None:
        if getattr(self, "_sessions", None):
            self.close_nowait()

    async def start_cleanup_loop(self, interval: Optional[float] = None) -> None:
        """Start background cleanup task."""
        if interval is not None:
            self.cleanup_interval_seconds = interval

        async def cleanup_loop():
            while True:
                await asyncio.sleep(self.cleanup_interval_seconds)
                await self._cleanup_idle_sessions()

        self._cleanup_task = asyncio.create_task(cleanup_loop())
        logger.info(
            f"Started PTY cleanup loop (interval: {self.cleanup_interval_seconds}s, "
            f"idle timeout: {self.idle_timeout_seconds}s)"
        )

    async def _cleanup_idle_sessions(self) -> int:
        """Remove sessions that exited or have been idle too long.

        Returns number of sessions cleaned up.
        """
        to_remove: list[SessionId] = []

        async with self._lock.read():
            for session_id, session in self._sessions.items():
                if session.has_exited:
                    logger.info(f"Cleaning up exited PTY session {session_id}")
                    to_remove.append(session_id)
                    continue
                idle = session.idle_seconds()
                if not session.busy and idle > self.idle_timeout_seconds:
                    logger.info(
                        f"Cleaning up idle PTY session {session_id} (idle for {idle:.0f}s)"
                    )
                    to_remove.append(session_id)

        for session_id in to_remove:
            await self._evict(session_id)

        if to_remove:
            logger.info(f"Cleaned up {len(to_remove)} PTY session(s)")
        return len(to_remove)

    async def _make_room(self) -> None:
        """Evict one session if the table is full.

        Exited sessions go first, then the least recently used idle one.
        """
        async with self._lock.write():
            if len(self._sessions) < self.max_sessions:
                return
            victim: Optional[PtySession] = None
            for session in self._sessions.values():
                if session.has_exited:
                    victim = session
                    break
                if session.busy:
                    continue
                if victim is None or session.last_activity < victim.last_activity:
                    victim = session
            if victim is None:
                raise ExecutionError(
                    f"Max sessions ({self.max_sessions}) reached and no idle sessions to evict"
                )
            del self._sessions[victim.session_id]

        logger.info(f"Evicting PTY session {victim.session_id} to stay under {self.max_sessions}")
        victim.terminate()

    async def _evict(self, session_id: SessionId) -> bool:
        async with self._lock.write():
            session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.terminate()
        logger.debug(f"Evicted PTY session {session_id}")
        return True

    def _yield_ms(self, yield_time_ms: Optional[int]) -> int:
        if yield_time_ms is None or yield_time_ms <= 0:
            return self.default_yield_time_ms
        return yield_time_ms
