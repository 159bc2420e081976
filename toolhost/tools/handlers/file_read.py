"""file_read: line-numbered file reading with an indentation-aware block mode."""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, NonNegativeInt

from toolhost.utils.text import split_lines

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam, parse_args
from ..errors import ExecutionError, RespondToModelError

TAB_WIDTH = 4
MAX_LINE_LENGTH = 500
DEFAULT_OFFSET = 1
DEFAULT_LIMIT = 2000


class ReadMode(str, Enum):
    SLICE = "slice"
    INDENTATION = "indentation"


class IndentationArgs(BaseModel):
    anchor_line: Optional[NonNegativeInt] = None
    max_levels: NonNegativeInt = 0
    include_siblings: bool = False
    include_header: bool = True
    max_lines: Optional[NonNegativeInt] = None


class FileReadArgs(BaseModel):
    file_path: str
    offset: NonNegativeInt = DEFAULT_OFFSET
    limit: NonNegativeInt = DEFAULT_LIMIT
    mode: ReadMode = ReadMode.SLICE
    indentation: IndentationArgs = Field(default_factory=IndentationArgs)


@dataclass
class LineRecord:
    number: int
    raw: str
    indent: int


def measure_indent(line: str) -> int:
    """Leading whitespace width; a tab counts as TAB_WIDTH columns."""
    width = 0
    for char in line:
        if char == " ":
            width += 1
        elif char == "\t":
            width += TAB_WIDTH
        else:
            break
    return width


def truncate_line(line: str) -> str:
    return line[:MAX_LINE_LENGTH]


def format_line(number: int, raw: str) -> str:
    return f"L{number}: {truncate_line(raw)}"


def read_lines(path: Path) -> list[str]:
    try:
        return split_lines(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as e:
        raise ExecutionError(str(e)) from e


def read_slice(path: Path, offset: int, limit: int) -> list[str]:
    """Lines ``offset`` .. ``offset + limit - 1`` (1-indexed)."""
    lines = read_lines(path)
    if offset > len(lines):
        raise RespondToModelError("offset exceeds file length")
    start = offset - 1
    end = min(start + limit, len(lines))
    return [format_line(start + i + 1, line) for i, line in enumerate(lines[start:end])]


def effective_indents(records: list[LineRecord]) -> list[int]:
    """Indent per line, with blank lines carrying the previous line's indent."""
    effective = []
    previous = 0
    for record in records:
        if record.raw.strip():
            previous = record.indent
        effective.append(previous)
    return effective


def read_indentation(path: Path, offset: int, limit: int, opts: IndentationArgs) -> list[str]:
    """Expand outward from an anchor line while lines stay at or above an indent floor.

    The floor is the anchor's indent minus ``max_levels`` indentation levels
    (no floor when ``max_levels`` is 0). Lines are added alternately above
    and below the anchor until either side drops below the floor or the
    line budget is used up. Blank lines at both ends are trimmed.
    """
    records = [
        LineRecord(number=i + 1, raw=line, indent=measure_indent(line))
        for i, line in enumerate(read_lines(path))
    ]
    if not records:
        return []

    anchor_line = opts.anchor_line if opts.anchor_line is not None else offset
    if anchor_line == 0 or anchor_line > len(records):
        raise RespondToModelError("anchor_line exceeds file length")

    anchor = anchor_line - 1
    indents = effective_indents(records)
    if opts.max_levels == 0:
        floor = 0
    else:
        floor = max(indents[anchor] - opts.max_levels * TAB_WIDTH, 0)

    max_lines = opts.max_lines if opts.max_lines is not None else limit
    budget = min(limit, max_lines, len(records))
    if budget <= 1:
        return [format_line(records[anchor].number, records[anchor].raw)]

    out: deque[LineRecord] = deque([records[anchor]])
    up = anchor - 1
    down = anchor + 1
    while len(out) < budget:
        progressed = False
        if up >= 0:
            if indents[up] >= floor:
                out.appendleft(records[up])
                up -= 1
                progressed = True
            else:
                up = -1
        if down < len(records) and len(out) < budget:
            if indents[down] >= floor:
                out.append(records[down])
                down += 1
                progressed = True
            else:
                down = len(records)
        if not progressed:
            break

    while out and not out[0].raw.strip():
        out.popleft()
    while out and not out[-1].raw.strip():
        out.pop()
    return [format_line(record.number, record.raw) for record in out]


def execute_file_read(ctx: ToolContext, args: Any) -> str:
    read_args = parse_args(FileReadArgs, args)

    if read_args.offset == 0:
        raise RespondToModelError("offset must be a 1-indexed line number")
    if read_args.limit == 0:
        raise RespondToModelError("limit must be greater than zero")

    path = Path(read_args.file_path)
    if not path.is_absolute():
        raise RespondToModelError("file_path must be an absolute path")

    if read_args.mode is ReadMode.INDENTATION:
        lines = read_indentation(path, read_args.offset, read_args.limit, read_args.indentation)
    else:
        lines = read_slice(path, read_args.offset, read_args.limit)
    return "\n".join(lines)


def file_read_tool() -> ToolDefinition:
    return ToolDefinition(
        name="file_read",
        description=(
            "Read a file with optional indentation-aware block extraction. "
            "Use mode='indentation' to extract code blocks based on indentation."
        ),
        params=(
            ToolParam("file_path", "Absolute path to the file to read."),
            ToolParam("offset", "1-indexed line number to start from (default: 1).", "number"),
            ToolParam("limit", "Maximum lines to return (default: 2000).", "number"),
            ToolParam("mode", "Read mode: 'slice' (default) or 'indentation'."),
            ToolParam(
                "indentation",
                "Options for indentation mode: anchor_line, max_levels (0 = unlimited), "
                "include_siblings, include_header, max_lines.",
                "object",
            ),
        ),
        required=("file_path",),
        executor=execute_file_read,
    )
