"""Unit tests for the ls tool."""

import os

import pytest

from toolhost.tools.errors import RespondToModelError
from toolhost.tools.handlers.ls import execute_ls


@pytest.fixture
def tree(workspace):
    (workspace / "a.txt").write_text("a")
    sub = workspace / "sub"
    sub.mkdir()
    (sub / "inner.txt").write_text("inner")
    (sub / "deeper").mkdir()
    (sub / "deeper" / "hidden.txt").write_text("x")
    return workspace


class TestLs:
    """Tests for directory listing."""

    def test_breadth_first_listing(self, tool_context, tree):
        """Entries are sorted per directory and indented by depth."""
        result = execute_ls(tool_context, {"dir_path": str(tree)})
        assert result == (
            f"Absolute path: {tree}\n"
            "a.txt\n"
            "sub/\n"
            "  deeper/\n"
            "  inner.txt"
        )

    def test_depth_one(self, tool_context, tree):
        """depth=1 lists only the top level."""
        result = execute_ls(tool_context, {"dir_path": str(tree), "depth": 1})
        assert result.split("\n")[1:] == ["a.txt", "sub/"]

    def test_depth_three_reaches_nested_files(self, tool_context, tree):
        """Deeper levels appear after shallower ones."""
        result = execute_ls(tool_context, {"dir_path": str(tree), "depth": 3})
        assert result.split("\n")[-1] == "    hidden.txt"

    def test_limit_and_truncation_notice(self, tool_context, tree):
        """Truncated listings end with a notice."""
        result = execute_ls(tool_context, {"dir_path": str(tree), "limit": 1})
        assert result.split("\n")[1:] == ["a.txt", "More than 1 entries found"]

    def test_offset(self, tool_context, tree):
        """offset skips entries (1-indexed)."""
        result = execute_ls(tool_context, {"dir_path": str(tree), "offset": 2, "limit": 1})
        assert result.split("\n")[1:] == ["sub/", "More than 1 entries found"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlink_marker(self, tool_context, tree):
        """Symlinks are marked with @."""
        os.symlink(tree / "a.txt", tree / "link")
        result = execute_ls(tool_context, {"dir_path": str(tree), "depth": 1})
        assert "link@" in result.split("\n")

    def test_empty_directory(self, tool_context, workspace):
        """An empty directory lists only its path."""
        empty = workspace / "empty"
        empty.mkdir()
        assert execute_ls(tool_context, {"dir_path": str(empty)}) == f"Absolute path: {empty}"

    @pytest.mark.parametrize(
        "args,message",
        [
            ({"offset": 0}, "1-indexed"),
            ({"limit": 0}, "limit"),
            ({"depth": 0}, "depth"),
            ({"offset": 10}, "offset exceeds entry count"),
        ],
    )
    def test_invalid_ranges(self, tool_context, tree, args, message):
        """Zero or out-of-range arguments are returned to the model."""
        with pytest.raises(RespondToModelError, match=message):
            execute_ls(tool_context, {"dir_path": str(tree), **args})

    def test_relative_and_non_directory(self, tool_context, tree):
        """Relative paths and files are rejected."""
        with pytest.raises(RespondToModelError, match="absolute"):
            execute_ls(tool_context, {"dir_path": "sub"})
        with pytest.raises(RespondToModelError, match="not a directory"):
            execute_ls(tool_context, {"dir_path": str(tree / "a.txt")})
