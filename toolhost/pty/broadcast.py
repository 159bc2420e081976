"""Fan-out of PTY output chunks to any number of receivers."""

import asyncio
from collections import deque
from typing import Optional

from loguru import logger

# Chunks buffered per receiver before the oldest are dropped
DEFAULT_CAPACITY = 256


class OutputReceiver:
    """One subscriber's view of the broadcast.

    A receiver sees every chunk published after it subscribed, in order. If
    it falls more than ``capacity`` chunks behind, the oldest are dropped and
    counted in ``lagged``.
    """

    def __init__(self, broadcast: "OutputBroadcast", capacity: int) -> None:
        self._broadcast = broadcast
        self._chunks: deque[bytes] = deque()
        self._capacity = capacity
        self._event = asyncio.Event()
        self._closed = False
        self.lagged = 0

    def _push(self, chunk: bytes) -> None:
        if len(self._chunks) >= self._capacity:
            self._chunks.popleft()
            self.lagged += 1
            if self.lagged == 1:
                logger.warning("PTY output receiver is lagging, dropping oldest chunks")
        self._chunks.append(chunk)
        self._event.set()

    def _close(self) -> None:
        self._closed = True
        self._event.set()

    @property
    def closed(self) -> bool:
        """True once the channel is closed and every buffered chunk is consumed."""
        return self._closed and not self._chunks

    async def recv(self, timeout: Optional[float] = None) -> Optional[bytes]:
        """Wait for the next chunk.

        Returns
        -------
        Optional[bytes]
            The chunk, or None when the channel is closed and drained.

        Raises
        ------
        asyncio.TimeoutError
            If no chunk arrives within ``timeout`` seconds.
        """
        while not self._chunks:
            if self._closed:
                return None
            self._event.clear()
            if timeout is None:
                await self._event.wait()
            else:
                await asyncio.wait_for(self._event.wait(), timeout)
        return self._chunks.popleft()

    def close(self) -> None:
        """Stop receiving. Buffered chunks are discarded."""
        self._broadcast._unsubscribe(self)
        self._chunks.clear()
        self._close()


class OutputBroadcast:
    """Multi-subscriber broadcast of byte chunks.

    Must be used from a single event loop; other threads publish through
    ``loop.call_soon_threadsafe``.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        self.capacity = capacity
        self._receivers: list[OutputReceiver] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_count(self) -> int:
        return len(self._receivers)

    def subscribe(self) -> OutputReceiver:
        """Create a receiver for all chunks published from now on."""
        receiver = OutputReceiver(self, self.capacity)
        if self._closed:
            receiver._close()
        else:
            self._receivers.append(receiver)
        return receiver

    def publish(self, chunk: bytes) -> int:
        """Deliver a chunk to every receiver. Returns the receiver count."""
        if self._closed or not chunk:
            return 0
        for receiver in self._receivers:
            receiver._push(chunk)
        return len(self._receivers)

    def close(self) -> None:
        """Close the channel; receivers drain what they hold, then see None."""
        if self._closed:
            return
        self._closed = True
        for receiver in self._receivers:
            receiver._close()
        self._receivers.clear()

    def _unsubscribe(self, receiver: OutputReceiver) -> None:
        try:
            self._receivers.remove(receiver)
        except ValueError:
            pass
