"""Unit tests for the search tool (ripgrep is faked)."""

import subprocess

import pytest

from toolhost.tools.errors import MissingDependencyError, ToolTimeoutError
from toolhost.tools.handlers import search
from toolhost.tools.handlers.search import SearchArgs, build_command, format_results, search_tool


class _FakeRipgrep:
    """Stands in for subprocess.run, recording the search invocation."""

    def __init__(self, stdout: bytes = b"", timeout: bool = False) -> None:
        self.stdout = stdout
        self.timeout = timeout
        self.search_calls = []

    def __call__(self, cmd, **kwargs):
        if cmd == ["rg", "--version"]:
            return subprocess.CompletedProcess(cmd, 0, stdout=b"ripgrep 14.0.0", stderr=b"")
        self.search_calls.append((cmd, kwargs))
        if self.timeout:
            raise subprocess.TimeoutExpired(cmd, kwargs.get("timeout"))
        return subprocess.CompletedProcess(cmd, 0, stdout=self.stdout, stderr=b"")


@pytest.fixture
def fake_rg(monkeypatch):
    def install(**kwargs):
        fake = _FakeRipgrep(**kwargs)
        monkeypatch.setattr(search.shutil, "which", lambda name: "/usr/bin/rg")
        monkeypatch.setattr(search.subprocess, "run", fake)
        return fake

    return install


class TestSearchTool:
    """Tests for the search executor."""

    def test_lists_matching_files(self, tool_context, fake_rg):
        """Matching paths are listed with a count."""
        fake = fake_rg(stdout=b"src/a.py\nsrc/b.py\n")
        result = search_tool().executor(tool_context, {"pattern": "TODO", "include": "*.py"})

        assert result == "Found 2 file(s) matching pattern:\nsrc/a.py\nsrc/b.py\n"
        cmd, kwargs = fake.search_calls[0]
        assert cmd == [
            "rg",
            "--files-with-matches",
            "--no-messages",
            "--color=never",
            "--glob",
            "*.py",
            "TODO",
            tool_context.working_dir,
        ]
        assert kwargs["timeout"] == 30.0

    def test_no_matches(self, tool_context, fake_rg):
        """Empty output reports no matches."""
        fake_rg(stdout=b"")
        assert search_tool().executor(tool_context, {"pattern": "x"}) == "No matches found."

    def test_timeout(self, tool_context, fake_rg):
        """A search exceeding its time limit raises ToolTimeoutError."""
        fake_rg(timeout=True)
        with pytest.raises(ToolTimeoutError, match="exceeded 500ms"):
            search_tool(timeout=0.5).executor(tool_context, {"pattern": "x"})

    def test_missing_ripgrep(self, tool_context, monkeypatch):
        """A missing rg binary is reported as a missing dependency."""
        monkeypatch.setattr(search.shutil, "which", lambda name: None)
        with pytest.raises(MissingDependencyError, match="ripgrep"):
            search_tool().executor(tool_context, {"pattern": "x"})


class TestHelpers:
    """Tests for command building and result formatting."""

    def test_build_command_without_glob(self):
        """No --glob is passed without include."""
        cmd = build_command(SearchArgs(pattern="foo"), "/repo")
        assert "--glob" not in cmd
        assert cmd[-2:] == ["foo", "/repo"]

    def test_truncation(self):
        """Results past the limit are cut with a notice."""
        result = format_results("a\nb\nc\n", 2)
        assert result == "Found 2 file(s) matching pattern:\na\nb\n\n(Results truncated to 2 files)"
