"""Unit tests for LoopBridge."""

import asyncio
import threading

import pytest

from toolhost.utils.async_bridge import LoopBridge


@pytest.fixture
def bridge():
    bridge = LoopBridge(name="test-bridge")
    yield bridge
    bridge.stop()


class TestLoopBridge:
    """Tests for running coroutines from synchronous code."""

    def test_run_returns_result(self, bridge):
        """run blocks until the coroutine finishes."""

        async def add(a, b):
            await asyncio.sleep(0)
            return a + b

        assert bridge.run(add(1, 2)) == 3
        assert bridge.is_running

    def test_runs_on_bridge_thread(self, bridge):
        """Coroutines execute on the bridge's own thread."""

        async def thread_name():
            return threading.current_thread().name

        assert bridge.run(thread_name()) == "test-bridge"

    def test_exceptions_propagate(self, bridge):
        """Exceptions raised in the coroutine reach the caller."""

        async def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            bridge.run(fail())

    def test_same_loop_across_calls(self, bridge):
        """All calls share one loop."""

        async def current_loop():
            return asyncio.get_running_loop()

        assert bridge.run(current_loop()) is bridge.run(current_loop())

    def test_run_from_bridge_thread_rejected(self, bridge):
        """Calling run from the loop thread raises instead of deadlocking."""

        async def nested():
            inner = asyncio.sleep(0)
            with pytest.raises(RuntimeError):
                bridge.run(inner)
            return True

        assert bridge.run(nested())

    def test_stop_is_idempotent(self):
        """stop can be called before start and more than once."""
        bridge = LoopBridge()
        bridge.stop()
        bridge.run(asyncio.sleep(0))
        bridge.stop()
        bridge.stop()
        assert not bridge.is_running
