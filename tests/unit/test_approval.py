"""Unit tests for the tool approval policy."""

import json

import pytest

from toolhost.sandbox.approval import (
    APPROVAL_REQUIRED_MESSAGE,
    DISABLED_MESSAGE,
    ApprovalDecision,
    ToolExecutionMode,
    is_mutating_tool,
    requires_approval,
)


def _shell_args(cmd: str) -> str:
    return json.dumps({"cmd": cmd})


class TestToolExecutionMode:
    """Tests for ToolExecutionMode parsing."""

    def test_parse(self):
        """Modes parse case-insensitively."""
        assert ToolExecutionMode.parse("ALWAYS") is ToolExecutionMode.ALWAYS
        assert ToolExecutionMode.parse(" ask ") is ToolExecutionMode.ASK

    def test_parse_invalid(self):
        """Unknown modes raise ValueError."""
        with pytest.raises(ValueError):
            ToolExecutionMode.parse("sometimes")


class TestIsMutatingTool:
    """Tests for mutating tool classification."""

    @pytest.mark.parametrize("name", ["echo", "time_now", "file_read", "search", "ls", "rollback"])
    def test_read_only_tools(self, name):
        """Read-only built-ins do not mutate."""
        assert not is_mutating_tool(name)

    @pytest.mark.parametrize("name", ["shell", "shell_write", "patch", "plan"])
    def test_mutating_tools(self, name):
        """Shell and patch tools mutate."""
        assert is_mutating_tool(name)

    def test_unknown_tool_is_mutating(self):
        """User tools are assumed to mutate."""
        assert is_mutating_tool("deploy")


class TestRequiresApproval:
    """Tests for requires_approval."""

    def test_never_declines(self):
        """Never mode declines everything, even read-only tools."""
        result = requires_approval("echo", '{"text": "hi"}', ToolExecutionMode.NEVER)
        assert result.decision is ApprovalDecision.DECLINE
        assert result.reason == DISABLED_MESSAGE
        assert not result.should_execute

    def test_always_executes(self):
        """Always mode runs mutating tools without asking."""
        result = requires_approval("patch", "{}", ToolExecutionMode.ALWAYS)
        assert result.should_execute

    def test_ask_runs_read_only_tools(self):
        """Ask mode auto-approves read-only tools."""
        assert requires_approval("file_read", "{}", ToolExecutionMode.ASK).should_execute

    def test_ask_runs_safe_shell_commands(self):
        """Ask mode auto-approves shell calls running safe commands."""
        result = requires_approval("shell", _shell_args("git status"), ToolExecutionMode.ASK)
        assert result.should_execute

    def test_ask_requires_approval_for_unsafe_shell(self):
        """Unsafe shell commands need approval."""
        result = requires_approval("shell", _shell_args("rm -rf build"), ToolExecutionMode.ASK)
        assert result.decision is ApprovalDecision.ASK
        assert result.reason == APPROVAL_REQUIRED_MESSAGE

    @pytest.mark.parametrize("cmd", ["ls\nrm -rf /", "ls & rm -rf /"])
    def test_ask_requires_approval_for_hidden_second_command(self, cmd):
        """A safe first command does not carry an unsafe second one through."""
        result = requires_approval("shell", _shell_args(cmd), ToolExecutionMode.ASK)
        assert result.decision is ApprovalDecision.ASK

    def test_ask_requires_approval_for_malformed_shell_args(self):
        """Unparseable shell arguments are never auto-approved."""
        result = requires_approval("shell", "{not json", ToolExecutionMode.ASK)
        assert result.decision is ApprovalDecision.ASK

    def test_ask_requires_approval_for_shell_write(self):
        """Writing to a session always needs approval in ask mode."""
        result = requires_approval("shell_write", '{"session_id": 1, "chars": "ls\\n"}', ToolExecutionMode.ASK)
        assert result.decision is ApprovalDecision.ASK

    def test_ask_requires_approval_for_patch(self):
        """Patches need approval in ask mode."""
        assert requires_approval("patch", "{}", ToolExecutionMode.ASK).decision is ApprovalDecision.ASK
