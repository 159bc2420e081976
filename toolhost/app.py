#!/usr/bin/env python3
"""
toolhost - stdio tool server

Reads one JSON request per line from stdin::

    {"id": "call_1", "name": "shell", "arguments": "{\\"cmd\\": \\"ls\\"}"}

and writes one JSON response per line to stdout::

    {"id": "call_1", "name": "shell", "ok": true, "output": "..."}

Requests run concurrently under the parallel executor's read/write limits,
so responses may arrive out of order; ``id`` correlates them. Logs go to
stderr.
"""

import asyncio
import json
import signal
import sys
from typing import Any, Optional, TextIO

from loguru import logger

from toolhost.config import Config, config
from toolhost.pty.manager import PtySessionManager
from toolhost.sandbox.approval import ToolExecutionMode, requires_approval
from toolhost.tools.builtin import ToolRuntime
from toolhost.tools.context import ToolContext
from toolhost.tools.parallel import ParallelExecutor, ToolInvocation
from toolhost.tools.registry import ToolRegistry
from toolhost.tracking import DiffTracker

# Longest request line accepted from stdin
MAX_LINE_BYTES = 16 * 1024 * 1024

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> None:
    """Send all log output to stderr; stdout carries responses only."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)


def build_runtime(cfg: Config) -> ToolRuntime:
    settings = cfg.settings
    return ToolRuntime(
        manager=PtySessionManager.from_settings(settings.pty),
        tracker=DiffTracker(max_groups=settings.tools.change_history),
        search_timeout=settings.tools.search_timeout,
        default_shell=cfg.DEFAULT_SHELL,
    )


def parse_request(line: str) -> ToolInvocation:
    """Turn one request line into an invocation.

    ``arguments`` may be a JSON string or an inline object.

    Raises:
        ValueError: If the line is not a JSON object with a string ``name``.
    """
    try:
        request = json.loads(line)
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid request JSON: {e}") from e
    if not isinstance(request, dict):
        raise ValueError("request must be a JSON object")
    name = request.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("request is missing 'name'")

    arguments = request.get("arguments", "")
    if arguments is None:
        arguments = ""
    elif not isinstance(arguments, str):
        arguments = json.dumps(arguments)

    request_id = request.get("id")
    return ToolInvocation(
        id="" if request_id is None else str(request_id),
        name=name,
        arguments=arguments,
    )


class ToolServer:
    """Dispatches request lines to the registry and writes responses."""

    def __init__(
        self,
        registry: ToolRegistry,
        context: ToolContext,
        mode: ToolExecutionMode,
        executor: Optional[ParallelExecutor] = None,
        out: Optional[TextIO] = None,
    ) -> None:
        self.registry = registry
        self.context = context
        self.mode = mode
        self.executor = executor or ParallelExecutor()
        self.out = out or sys.stdout

    async def handle_line(self, line: str) -> dict[str, Any]:
        """Process one request line and return the response object."""
        try:
            invocation = parse_request(line)
        except ValueError as e:
            logger.warning(f"Rejected request: {e}")
            return {"id": None, "name": None, "ok": False, "output": f"Tool error: {e}"}

        approval = requires_approval(invocation.name, invocation.arguments, self.mode)
        if not approval.should_execute:
            logger.info(f"Not running {invocation.name} ({invocation.id}): {approval.reason}")
            return self._response(invocation, False, approval.reason)

        logger.debug(f"Running {invocation.name} ({invocation.id})")
        result = await self.executor.execute_one(invocation, self.registry, self.context)
        if result.ok:
            return self._response(invocation, True, result.output)
        return self._response(invocation, False, f"Tool error: {result.error}")

    def write_response(self, response: dict[str, Any]) -> None:
        self.out.write(json.dumps(response, ensure_ascii=False) + "\n")
        self.out.flush()

    async def serve(self, reader: asyncio.StreamReader, shutdown_event: asyncio.Event) -> None:
        """Handle lines until EOF or shutdown, then wait for in-flight calls.

        On shutdown, calls that have not finished are cancelled.
        """
        in_flight: set[asyncio.Task] = set()
        stop = asyncio.create_task(shutdown_event.wait())
        try:
            while True:
                next_line = asyncio.create_task(reader.readline())
                done, _ = await asyncio.wait(
                    {next_line, stop}, return_when=asyncio.FIRST_COMPLETED
                )
                if stop in done:
                    next_line.cancel()
                    for task in in_flight:
                        task.cancel()
                    break

                raw = next_line.result()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").strip()
                if not line:
                    continue
                task = asyncio.create_task(self._handle_and_write(line))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)

            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)
        finally:
            stop.cancel()

    async def _handle_and_write(self, line: str) -> None:
        self.write_response(await self.handle_line(line))

    @staticmethod
    def _response(invocation: ToolInvocation, ok: bool, output: Optional[str]) -> dict[str, Any]:
        return {
            "id": invocation.id or None,
            "name": invocation.name,
            "ok": ok,
            "output": output or "",
        }


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


async def shutdown(runtime: ToolRuntime) -> None:
    """Graceful shutdown: terminate PTY sessions and stop the bridge loop."""
    logger.info("Shutting down - terminating PTY sessions...")
    if runtime.bridge.is_running:
        await asyncio.wrap_future(runtime.bridge.submit(runtime.manager.terminate_all()))
    runtime.bridge.stop()
    logger.info("All sessions terminated")


async def main():
    """Main application entry point."""
    configure_logging(config.LOG_LEVEL)

    errors = config.validate_required()
    if errors:
        logger.error("Configuration errors:")
        for error in errors:
            logger.error(f"  - {error}")
        sys.exit(1)

    runtime = build_runtime(config)
    registry = ToolRegistry.from_config(config, runtime)
    registry.load_user_tools(config.USER_TOOLS_FILE)

    server = ToolServer(
        registry,
        config.build_tool_context(),
        config.execution_mode,
        ParallelExecutor(config.settings.parallel),
    )

    await asyncio.wrap_future(runtime.bridge.submit(runtime.manager.start_cleanup_loop()))

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        shutdown_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler)

    logger.info("Starting toolhost...")
    logger.info(f"Working directory: {config.DEFAULT_WORKING_DIR}")
    logger.info(f"Execution mode: {config.execution_mode.value}, sandbox: {config.SANDBOX_LEVEL}")

    reader = await open_stdin_reader()
    try:
        await server.serve(reader, shutdown_event)
    finally:
        await shutdown(runtime)


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
