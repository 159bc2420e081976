"""Unit tests for the plan tool."""

import pytest

from toolhost.tools.errors import InvalidArgsError, RespondToModelError
from toolhost.tools.handlers.plan import execute_plan


class TestPlan:
    """Tests for plan rendering."""

    def test_render(self, tool_context):
        """Plans render with status icons and progress."""
        result = execute_plan(
            tool_context,
            {
                "explanation": "Started tests",
                "plan": [
                    {"step": "Write code", "status": "completed"},
                    {"step": "Write tests", "status": "in_progress"},
                    {"step": "Release", "status": "pending"},
                ],
            },
        )
        assert result == (
            "Plan update: Started tests\n\n"
            "Current plan:\n"
            "1. [✓] Write code\n"
            "2. [→] Write tests\n"
            "3. [ ] Release\n"
            "\nProgress: 1/3 completed"
        )

    def test_without_explanation(self, tool_context):
        """The explanation header is optional."""
        result = execute_plan(tool_context, {"plan": [{"step": "Only", "status": "pending"}]})
        assert result.startswith("Current plan:\n")

    def test_single_in_progress(self, tool_context):
        """More than one in_progress task is rejected."""
        plan = [{"step": "a", "status": "in_progress"}, {"step": "b", "status": "in_progress"}]
        with pytest.raises(RespondToModelError, match="Only one task"):
            execute_plan(tool_context, {"plan": plan})

    def test_invalid_status(self, tool_context):
        """Unknown statuses are argument errors."""
        with pytest.raises(InvalidArgsError):
            execute_plan(tool_context, {"plan": [{"step": "a", "status": "done"}]})
