"""Run coroutines from synchronous code on a dedicated event loop thread."""

import asyncio
import concurrent.futures
import threading
from typing import Any, Coroutine, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class LoopBridge:
    """A background event loop that synchronous callers can block on.

    Tool executors are plain functions, while the PTY manager is async. The
    bridge owns one long-lived loop on a daemon thread so every session's
    tasks live on the same loop no matter which thread issued the call.
    """

    def __init__(self, name: str = "toolhost-loop") -> None:
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        """The bridge loop, started on first use."""
        self._ensure_started()
        return self._loop

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_started(self) -> None:
        if self.is_running:
            return
        with self._start_lock:
            if self.is_running:
                return
            loop = asyncio.new_event_loop()
            ready = threading.Event()

            def run() -> None:
                asyncio.set_event_loop(loop)
                loop.call_soon(ready.set)
                loop.run_forever()

            thread = threading.Thread(target=run, name=self.name, daemon=True)
            thread.start()
            ready.wait()
            self._loop = loop
            self._thread = thread
            logger.debug(f"Started event loop thread {self.name}")

    def submit(self, coro: Coroutine[Any, Any, T]) -> "concurrent.futures.Future[T]":
        """Schedule a coroutine on the bridge loop and return its future."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: Optional[float] = None) -> T:
        """Block the calling thread until the coroutine finishes on the bridge loop.

        Raises
        ------
        RuntimeError
            If called from the bridge thread itself, which would deadlock.
        """
        if self._thread is not None and threading.current_thread() is self._thread:
            coro.close()
            raise RuntimeError("LoopBridge.run() called from its own loop thread")
        return self.submit(coro).result(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop and join the thread. Safe to call more than once."""
        with self._start_lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if thread.is_alive():
            logger.warning(f"Event loop thread {self.name} did not stop within {timeout}s")
            return
        loop.close()
        logger.debug(f"Stopped event loop thread {self.name}")
