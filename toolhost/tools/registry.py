"""Tool registry: lookup, argument validation and dispatch."""

import asyncio
import json
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from loguru import logger

from .builtin import ToolRuntime, builtin_tools, builtin_tools_with_runtime
from .context import ToolContext
from .definition import ToolDefinition
from .errors import ExecutionError, InvalidArgsError, NotFoundError
from .user_tools import UserToolsConfig

if TYPE_CHECKING:
    from toolhost.config import Config


class ToolRegistry:
    """Ordered collection of tools keyed by name.

    Registering a tool whose name is already taken replaces the old
    definition, so user tools can override built-ins.
    """

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None) -> None:
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or ():
            self.register(tool)

    @classmethod
    def from_config(
        cls, cfg: "Config", runtime: Optional[ToolRuntime] = None
    ) -> "ToolRegistry":
        """Build the built-in tool set, keeping only enabled tools.

        Without a runtime only the stateless built-ins are available.
        An empty ``TOOLS_ENABLED`` keeps every tool.
        """
        tools = builtin_tools_with_runtime(runtime) if runtime else builtin_tools()
        enabled = cfg.TOOLS_ENABLED
        if enabled:
            tools = [tool for tool in tools if tool.name in enabled]
        registry = cls(tools)
        logger.info(f"Registered {len(registry)} tools: {', '.join(registry.tool_names())}")
        return registry

    def __len__(self) -> int:
        return len(self._tools)

    def register(self, tool: ToolDefinition) -> None:
        if tool.name in self._tools:
            logger.debug(f"Replacing tool '{tool.name}'")
            # Re-insert so the replacement sorts last, like a fresh registration
            del self._tools[tool.name]
        self._tools[tool.name] = tool

    def load_user_tools(self, path: Union[str, Path]) -> int:
        """Add tools from a user tools YAML file.

        Load failures are logged and ignored. Returns the number of tools added.
        """
        try:
            user_config = UserToolsConfig.load(path)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load user tools from {path}: {e}")
            return 0
        for user_tool in user_config.tools:
            self.register(user_tool.to_definition())
        if user_config.tools:
            logger.info(f"Loaded {len(user_config.tools)} user tools from {path}")
        return len(user_config.tools)

    def tool_names(self) -> list[str]:
        return list(self._tools)

    def has_tool(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def function_schemas(self) -> list[dict]:
        """Function descriptions for every registered tool, in order."""
        return [tool.function_schema() for tool in self._tools.values()]

    def execute(self, name: str, args_json: str, context: ToolContext) -> str:
        """Run a tool synchronously.

        The timeout is checked after the executor returns; a slow tool is
        never interrupted, its result is replaced by an error instead.

        Raises
        ------
        ToolError
            Any failure: unknown tool, bad arguments, disallowed path,
            executor error or exceeded timeout.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise NotFoundError(name)
        args = parse_args(args_json)
        validate_allowed_paths(args, context)

        start = time.monotonic()
        try:
            result = tool.executor(context, args)
        finally:
            elapsed_ms = (time.monotonic() - start) * 1000
            logger.debug(f"Tool {name} finished in {elapsed_ms:.1f}ms")
            enforce_timeout(elapsed_ms, context.timeout_ms)
        return result

    async def execute_async(self, name: str, args_json: str, context: ToolContext) -> str:
        """``execute`` on a worker thread."""
        return await asyncio.to_thread(self.execute, name, args_json, context)


def parse_args(raw: Optional[str]) -> Any:
    """Parse a JSON argument string; blank input is an empty object."""
    if raw is None or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidArgsError(str(e)) from e


def validate_allowed_paths(args: Any, context: ToolContext) -> None:
    """Check ``path`` and ``paths`` arguments against the allow-list.

    Matching is a plain string prefix test.
    """
    if not context.allowed_paths or not isinstance(args, dict):
        return
    paths = []
    if isinstance(args.get("path"), str):
        paths.append(args["path"])
    if isinstance(args.get("paths"), list):
        paths.extend(value for value in args["paths"] if isinstance(value, str))
    for path in paths:
        if not any(path.startswith(root) for root in context.allowed_paths):
            raise ExecutionError(f"path not allowed: {path}")


def enforce_timeout(elapsed_ms: float, timeout_ms: int) -> None:
    if timeout_ms and elapsed_ms > timeout_ms:
        raise ExecutionError(f"tool exceeded timeout of {timeout_ms}ms")
