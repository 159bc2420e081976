"""ls: breadth-first directory listing."""

import os
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, NonNegativeInt

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam, parse_args
from ..errors import ExecutionError, RespondToModelError

DEFAULT_OFFSET = 1
DEFAULT_LIMIT = 25
DEFAULT_DEPTH = 2
MAX_ENTRY_LENGTH = 500
INDENT_SPACES = 2


class LsArgs(BaseModel):
    dir_path: str
    offset: NonNegativeInt = DEFAULT_OFFSET
    limit: NonNegativeInt = DEFAULT_LIMIT
    depth: NonNegativeInt = DEFAULT_DEPTH


class EntryKind(Enum):
    DIRECTORY = "/"
    FILE = ""
    SYMLINK = "@"
    OTHER = "?"

    @classmethod
    def of(cls, entry: os.DirEntry) -> "EntryKind":
        try:
            if entry.is_symlink():
                return cls.SYMLINK
            if entry.is_dir(follow_symlinks=False):
                return cls.DIRECTORY
            if entry.is_file(follow_symlinks=False):
                return cls.FILE
        except OSError:
            pass
        return cls.OTHER


@dataclass
class DirEntry:
    name: str
    display_name: str
    depth: int
    kind: EntryKind

    def format(self) -> str:
        indent = " " * (self.depth * INDENT_SPACES)
        return f"{indent}{self.display_name}{self.kind.value}"


def _read_dir_sorted(directory: Path) -> list[tuple[Path, str, EntryKind]]:
    try:
        with os.scandir(directory) as it:
            entries = [(Path(entry.path), entry.name, EntryKind.of(entry)) for entry in it]
    except OSError as e:
        raise ExecutionError(f"Failed to read dir: {e}") from e
    entries.sort(key=lambda item: item[1])
    return entries


def collect_entries(root: Path, max_depth: int) -> list[DirEntry]:
    """Walk ``root`` breadth-first, sorting each directory's entries by name."""
    entries: list[DirEntry] = []
    queue: deque[tuple[Path, tuple[str, ...], int]] = deque([(root, (), max_depth)])

    while queue:
        current, prefix, remaining = queue.popleft()
        for entry_path, name, kind in _read_dir_sorted(current):
            relative = prefix + (name,)
            entries.append(
                DirEntry(
                    name="/".join(relative)[:MAX_ENTRY_LENGTH],
                    display_name=name[:MAX_ENTRY_LENGTH],
                    depth=len(prefix),
                    kind=kind,
                )
            )
            if kind is EntryKind.DIRECTORY and remaining > 1:
                queue.append((entry_path, relative, remaining - 1))
    return entries


def slice_entries(entries: list[DirEntry], offset: int, limit: int) -> list[str]:
    if not entries:
        return []
    start = offset - 1
    if start >= len(entries):
        raise RespondToModelError("offset exceeds entry count")
    end = min(start + limit, len(entries))
    formatted = [entry.format() for entry in entries[start:end]]
    if end < len(entries):
        formatted.append(f"More than {limit} entries found")
    return formatted


def execute_ls(ctx: ToolContext, args: Any) -> str:
    ls_args = parse_args(LsArgs, args)

    if ls_args.offset == 0:
        raise RespondToModelError("offset must be a 1-indexed entry number")
    if ls_args.limit == 0:
        raise RespondToModelError("limit must be greater than zero")
    if ls_args.depth == 0:
        raise RespondToModelError("depth must be greater than zero")

    path = Path(ls_args.dir_path)
    if not path.is_absolute():
        raise RespondToModelError("dir_path must be an absolute path")
    if not path.is_dir():
        raise RespondToModelError("dir_path is not a directory")

    listing = slice_entries(collect_entries(path, ls_args.depth), ls_args.offset, ls_args.limit)
    return "\n".join([f"Absolute path: {path}", *listing])


def ls_tool() -> ToolDefinition:
    return ToolDefinition(
        name="ls",
        description=(
            "List directory contents with recursive traversal. "
            "Returns file names with type indicators (/ for dirs, @ for symlinks)."
        ),
        params=(
            ToolParam("dir_path", "Absolute path to the directory to list."),
            ToolParam("offset", "1-indexed entry number to start from (default: 1).", "number"),
            ToolParam("limit", "Maximum entries to return (default: 25).", "number"),
            ToolParam("depth", "Maximum directory depth (default: 2).", "number"),
        ),
        required=("dir_path",),
        executor=execute_ls,
    )
