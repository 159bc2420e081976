"""User-defined command tools, persisted as YAML.

Example document::

    tools:
      - name: git_status
        description: Get git status
        command: git status
      - name: greet
        description: Say hello
        params:
          - name: who
            required: true
        command: echo hello {{who}}

Each tool runs its ``command`` through ``/bin/bash -c`` (``/bin/sh`` when
bash is missing) after replacing every ``{{param}}`` with the matching
argument.
"""

import json
import os
import subprocess
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from loguru import logger
from pydantic import BaseModel, Field

from .context import ToolContext
from .definition import ToolDefinition, ToolParam
from .errors import ExecutionError, InvalidArgsError

PathLike = Union[str, Path]


class UserToolParam(BaseModel):
    name: str
    param_type: str = "string"
    description: str = ""
    required: bool = False


class UserTool(BaseModel):
    """A command template exposed to the model as a tool."""

    name: str
    description: str
    params: list[UserToolParam] = Field(default_factory=list)
    command: str

    def to_definition(self) -> ToolDefinition:
        command = self.command
        tool_name = self.name

        def execute_user_tool(ctx: ToolContext, args: Any) -> str:
            return execute_command_tool(command, tool_name, ctx, args)

        return ToolDefinition(
            name=self.name,
            description=self.description,
            params=tuple(
                ToolParam(p.name, p.description, p.param_type) for p in self.params
            ),
            required=tuple(p.name for p in self.params if p.required),
            executor=execute_user_tool,
        )


class UserToolsConfig(BaseModel):
    """The whole user tools document."""

    tools: list[UserTool] = Field(default_factory=list)

    @classmethod
    def load(cls, path: PathLike) -> "UserToolsConfig":
        """Read the YAML document at ``path``; a missing file is an empty config.

        Raises
        ------
        OSError
            If the file exists but cannot be read.
        ValueError
            If the YAML is malformed or does not match the schema.
        """
        path = Path(path).expanduser()
        if not path.exists():
            return cls()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        return cls.model_validate(data)

    def save(self, path: PathLike) -> None:
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            yaml.safe_dump(self.model_dump(), sort_keys=False), encoding="utf-8"
        )
        logger.debug(f"Saved {len(self.tools)} user tools to {path}")

    def add_tool(self, tool: UserTool) -> None:
        """Add a tool, replacing any existing tool with the same name."""
        self.tools = [t for t in self.tools if t.name != tool.name]
        self.tools.append(tool)

    def remove_tool(self, name: str) -> bool:
        before = len(self.tools)
        self.tools = [t for t in self.tools if t.name != name]
        return len(self.tools) < before

    def get_tool(self, name: str) -> Optional[UserTool]:
        return next((t for t in self.tools if t.name == name), None)


def substitute_params(template: str, args: Any) -> str:
    """Replace ``{{key}}`` placeholders with argument values.

    Strings are inserted as-is; other JSON values use their JSON text.

    Raises
    ------
    InvalidArgsError
        If any placeholder is left unfilled.
    """
    command = template
    if isinstance(args, dict):
        for key, value in args.items():
            replacement = value if isinstance(value, str) else json.dumps(value)
            command = command.replace("{{" + key + "}}", replacement)
    if "{{" in command and "}}" in command:
        raise InvalidArgsError("Missing required parameters in command")
    return command


def _shell_binary() -> str:
    return "/bin/bash" if os.path.exists("/bin/bash") else "/bin/sh"


def execute_command_tool(
    template: str, tool_name: str, ctx: ToolContext, args: Any
) -> str:
    command = substitute_params(template, args)
    logger.debug(f"Running user tool {tool_name}: {command}")
    try:
        result = subprocess.run(
            [_shell_binary(), "-c", command],
            cwd=ctx.working_dir,
            stdin=subprocess.DEVNULL,
            capture_output=True,
        )
    except OSError as e:
        raise ExecutionError(f"Failed to execute {tool_name}: {e}") from e

    stdout = result.stdout.decode("utf-8", errors="replace")
    stderr = result.stderr.decode("utf-8", errors="replace")

    if result.returncode == 0:
        # Some commands only write to stderr
        if not stdout and stderr:
            return stderr
        return stdout

    message = f"{tool_name} exited with code {result.returncode}"
    if stderr:
        message += f"\nstderr: {stderr}"
    if stdout:
        message += f"\nstdout: {stdout}"
    raise ExecutionError(message)
