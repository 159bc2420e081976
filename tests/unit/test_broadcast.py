"""Unit tests for PTY output broadcast."""

import asyncio

import pytest

from toolhost.pty.broadcast import OutputBroadcast


class TestOutputBroadcast:
    """Tests for OutputBroadcast and OutputReceiver."""

    @pytest.mark.asyncio
    async def test_every_receiver_gets_every_chunk(self):
        """Each subscriber sees all chunks in order."""
        broadcast = OutputBroadcast()
        first, second = broadcast.subscribe(), broadcast.subscribe()

        assert broadcast.publish(b"a") == 2
        broadcast.publish(b"b")

        assert [await first.recv(), await first.recv()] == [b"a", b"b"]
        assert [await second.recv(), await second.recv()] == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_late_subscriber_misses_earlier_chunks(self):
        """Subscribers only see chunks published after subscribing."""
        broadcast = OutputBroadcast()
        broadcast.subscribe()
        broadcast.publish(b"early")
        late = broadcast.subscribe()
        broadcast.publish(b"late")
        assert await late.recv() == b"late"

    @pytest.mark.asyncio
    async def test_close_drains_then_none(self):
        """After close, buffered chunks are delivered and then None."""
        broadcast = OutputBroadcast()
        receiver = broadcast.subscribe()
        broadcast.publish(b"last")
        broadcast.close()

        assert await receiver.recv() == b"last"
        assert await receiver.recv() is None
        assert receiver.closed
        assert broadcast.publish(b"ignored") == 0

    @pytest.mark.asyncio
    async def test_subscribe_after_close(self):
        """Subscribing to a closed broadcast yields a closed receiver."""
        broadcast = OutputBroadcast()
        broadcast.close()
        assert await broadcast.subscribe().recv() is None

    @pytest.mark.asyncio
    async def test_recv_timeout(self):
        """recv raises TimeoutError when nothing arrives."""
        receiver = OutputBroadcast().subscribe()
        with pytest.raises(asyncio.TimeoutError):
            await receiver.recv(timeout=0.01)

    @pytest.mark.asyncio
    async def test_recv_wakes_on_publish(self):
        """A waiting recv returns once a chunk is published."""
        broadcast = OutputBroadcast()
        receiver = broadcast.subscribe()
        loop = asyncio.get_running_loop()
        loop.call_later(0.01, broadcast.publish, b"hello")
        assert await receiver.recv(timeout=1.0) == b"hello"

    @pytest.mark.asyncio
    async def test_lagging_receiver_drops_oldest(self):
        """A full receiver drops its oldest chunks."""
        broadcast = OutputBroadcast(capacity=2)
        receiver = broadcast.subscribe()
        for chunk in (b"1", b"2", b"3"):
            broadcast.publish(chunk)

        assert receiver.lagged == 1
        assert await receiver.recv() == b"2"
        assert await receiver.recv() == b"3"

    def test_close_unsubscribes(self):
        """A closed receiver no longer counts as a subscriber."""
        broadcast = OutputBroadcast()
        receiver = broadcast.subscribe()
        receiver.close()
        assert broadcast.receiver_count == 0
