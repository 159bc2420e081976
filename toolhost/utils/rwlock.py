"""Asyncio reader/writer lock.

Readers share the lock; a writer holds it exclusively. Waiting writers block
new readers so table updates are not starved by a stream of lookups.
"""

import asyncio
from collections import deque
from contextlib import asynccontextmanager
from typing import AsyncIterator


class AsyncRWLock:
    """Reader/writer lock for coroutines running on one event loop."""

    def __init__(self) -> None:
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0
        self._waiters: deque[asyncio.Future] = deque()

    @property
    def locked(self) -> bool:
        """True while any reader or the writer holds the lock."""
        return self._writer or self._readers > 0

    async def acquire_read(self) -> None:
        while self._writer or self._writers_waiting:
            await self._wait()
        self._readers += 1

    def release_read(self) -> None:
        if self._readers <= 0:
            raise RuntimeError("release_read() called without a held read lock")
        self._readers -= 1
        if self._readers == 0:
            self._wake_all()

    async def acquire_write(self) -> None:
        self._writers_waiting += 1
        try:
            while self._writer or self._readers:
                await self._wait()
        finally:
            self._writers_waiting -= 1
        self._writer = True

    def try_acquire_write(self) -> bool:
        """Take the write lock only if it is free right now. Never blocks."""
        if self._writer or self._readers:
            return False
        self._writer = True
        return True

    def release_write(self) -> None:
        if not self._writer:
            raise RuntimeError("release_write() called without a held write lock")
        self._writer = False
        self._wake_all()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        await self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        await self.acquire_write()
        try:
            yield
        finally:
            self.release_write()

    async def _wait(self) -> None:
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        finally:
            try:
                self._waiters.remove(fut)
            except ValueError:
                pass

    def _wake_all(self) -> None:
        # Releases may happen off-loop during best-effort teardown
        for fut in list(self._waiters):
            loop = fut.get_loop()
            if loop.is_closed():
                continue
            loop.call_soon_threadsafe(_resolve, fut)


def _resolve(fut: asyncio.Future) -> None:
    if not fut.done():
        fut.set_result(None)
