"""search: list files whose contents match a regex, via ripgrep."""

import shutil
import subprocess
from typing import Any, Optional

from loguru import logger
from pydantic import BaseModel, NonNegativeInt

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam, parse_args
from ..errors import ExecutionError, MissingDependencyError, ToolTimeoutError

DEFAULT_LIMIT = 100
MAX_LIMIT = 2000
SEARCH_TIMEOUT_SECONDS = 30.0

RIPGREP_MISSING = (
    "ripgrep (rg) is not installed. Install with: brew install ripgrep (macOS), "
    "apt install ripgrep (Ubuntu), or cargo install ripgrep"
)


class SearchArgs(BaseModel):
    pattern: str
    include: Optional[str] = None
    path: Optional[str] = None
    limit: NonNegativeInt = DEFAULT_LIMIT


def check_ripgrep_available() -> None:
    """Raise MissingDependencyError unless ``rg --version`` succeeds."""
    if shutil.which("rg") is None:
        raise MissingDependencyError(RIPGREP_MISSING)
    try:
        result = subprocess.run(["rg", "--version"], capture_output=True, timeout=10)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise MissingDependencyError(RIPGREP_MISSING) from e
    if result.returncode != 0:
        raise MissingDependencyError(RIPGREP_MISSING)


def build_command(args: SearchArgs, search_path: str) -> list[str]:
    cmd = ["rg", "--files-with-matches", "--no-messages", "--color=never"]
    if args.include:
        cmd.extend(["--glob", args.include])
    cmd.extend([args.pattern, search_path])
    return cmd


def run_search(cmd: list[str], timeout: float) -> str:
    """Run ripgrep and return its stdout, killing it after ``timeout`` seconds."""
    try:
        result = subprocess.run(
            cmd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        logger.warning(f"ripgrep timed out after {timeout}s: {cmd}")
        raise ToolTimeoutError(int(timeout * 1000)) from e
    except OSError as e:
        raise ExecutionError(f"Failed to spawn rg: {e}") from e
    return result.stdout.decode("utf-8", errors="replace")


def format_results(stdout: str, limit: int) -> str:
    all_files = stdout.splitlines()
    files = all_files[:limit]
    if not files:
        return "No matches found."

    lines = [f"Found {len(files)} file(s) matching pattern:"]
    lines.extend(files)
    result = "\n".join(lines) + "\n"
    if len(all_files) > limit:
        result += f"\n(Results truncated to {limit} files)"
    return result


def search_tool(timeout: float = SEARCH_TIMEOUT_SECONDS) -> ToolDefinition:
    def execute_search(ctx: ToolContext, args: Any) -> str:
        search_args = parse_args(SearchArgs, args)
        check_ripgrep_available()

        search_path = search_args.path or ctx.working_dir
        limit = min(search_args.limit, MAX_LIMIT)
        stdout = run_search(build_command(search_args, search_path), timeout)
        return format_results(stdout, limit)

    return ToolDefinition(
        name="search",
        description=(
            "Search for files matching a regex pattern using ripgrep. "
            "Returns file paths containing matches. Requires ripgrep (rg) installed."
        ),
        params=(
            ToolParam("pattern", "Regex pattern to search for."),
            ToolParam("include", "Glob pattern to filter files (e.g., '*.rs', '*.py')."),
            ToolParam("path", "Directory to search in (defaults to working directory)."),
            ToolParam("limit", "Maximum file paths to return (default: 100, max: 2000).", "number"),
        ),
        required=("pattern",),
        executor=execute_search,
    )
