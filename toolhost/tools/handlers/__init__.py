"""Built-in tool handlers."""

from .file_read import file_read_tool
from .ls import ls_tool
from .patch import patch_tool
from .plan import plan_tool
from .rollback import rollback_tool
from .search import search_tool
from .shell import shell_tool, shell_write_tool

__all__ = [
    "file_read_tool",
    "ls_tool",
    "patch_tool",
    "plan_tool",
    "rollback_tool",
    "search_tool",
    "shell_tool",
    "shell_write_tool",
]
