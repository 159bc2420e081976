"""Unit tests for the asyncio reader/writer lock."""

import asyncio

import pytest

from toolhost.utils.rwlock import AsyncRWLock


class TestAsyncRWLock:
    """Tests for AsyncRWLock."""

    @pytest.mark.asyncio
    async def test_readers_share(self):
        """Several readers hold the lock at once."""
        lock = AsyncRWLock()
        inside = 0
        peak = 0

        async def reader():
            nonlocal inside, peak
            async with lock.read():
                inside += 1
                peak = max(peak, inside)
                await asyncio.sleep(0.01)
                inside -= 1

        await asyncio.gather(*(reader() for _ in range(3)))
        assert peak == 3
        assert not lock.locked

    @pytest.mark.asyncio
    async def test_writer_excludes_readers(self):
        """A reader waits until the writer releases."""
        lock = AsyncRWLock()
        events = []

        async def writer():
            async with lock.write():
                events.append("write-start")
                await asyncio.sleep(0.02)
                events.append("write-end")

        async def reader():
            await asyncio.sleep(0.005)
            async with lock.read():
                events.append("read")

        await asyncio.gather(writer(), reader())
        assert events == ["write-start", "write-end", "read"]

    @pytest.mark.asyncio
    async def test_waiting_writer_blocks_new_readers(self):
        """Readers arriving after a waiting writer go after it."""
        lock = AsyncRWLock()
        events = []
        await lock.acquire_read()

        async def writer():
            async with lock.write():
                events.append("write")

        async def late_reader():
            async with lock.read():
                events.append("late-read")

        writer_task = asyncio.create_task(writer())
        await asyncio.sleep(0)
        reader_task = asyncio.create_task(late_reader())
        await asyncio.sleep(0.01)
        assert events == []

        lock.release_read()
        await asyncio.gather(writer_task, reader_task)
        assert events == ["write", "late-read"]

    @pytest.mark.asyncio
    async def test_try_acquire_write(self):
        """try_acquire_write fails while held and succeeds when free."""
        lock = AsyncRWLock()
        await lock.acquire_read()
        assert not lock.try_acquire_write()
        lock.release_read()

        assert lock.try_acquire_write()
        assert lock.locked
        lock.release_write()
        assert not lock.locked

    def test_release_without_acquire(self):
        """Releasing an unheld lock is a programming error."""
        lock = AsyncRWLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()
