"""rollback: undo, list or forget tracked file changes."""

import json
from typing import Any

from toolhost.tracking import DiffTracker, RollbackError

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam
from ..errors import InvalidArgsError, RespondToModelError


def _count(args: dict) -> int:
    count = args.get("count")
    if isinstance(count, int) and not isinstance(count, bool) and count >= 0:
        return count
    return 1


def rollback_tool(tracker: DiffTracker) -> ToolDefinition:
    def execute_rollback(ctx: ToolContext, args: Any) -> str:
        action = args.get("action") if isinstance(args, dict) else None
        if not isinstance(action, str):
            raise InvalidArgsError("missing 'action' parameter")

        if action == "rollback":
            try:
                result = tracker.rollback(_count(args))
            except RollbackError as e:
                raise RespondToModelError(f"Rollback failed: {e}") from e
            return json.dumps(
                {
                    "success": result.is_success(),
                    "rolled_back": result.rolled_back_groups,
                    "restored_files": [str(path) for path in result.restored_files],
                    "errors": [
                        {"file": str(path), "error": error} for path, error in result.errors
                    ],
                },
                indent=2,
            )

        if action == "summary":
            summary = tracker.summary()
            if not summary:
                return json.dumps({"message": "No changes tracked", "changes": []})
            changes = [
                {
                    "index": item.index,
                    "tool": item.tool_name,
                    "description": item.description,
                    "file_count": item.file_count,
                }
                for item in summary
            ]
            return json.dumps({"total_groups": len(summary), "changes": changes}, indent=2)

        if action == "clear":
            tracker.clear()
            return json.dumps({"success": True, "message": "Change tracking cleared"})

        raise InvalidArgsError(
            f"Unknown action: '{action}'. Use 'rollback', 'summary', or 'clear'."
        )

    return ToolDefinition(
        name="rollback",
        description=(
            "Rollback file changes made by tools. Can rollback the last N change groups "
            "or show a summary of changes."
        ),
        params=(
            ToolParam(
                "action",
                "Action to perform: 'rollback' to undo changes, 'summary' to list changes, "
                "'clear' to discard tracking.",
            ),
            ToolParam(
                "count",
                "Number of change groups to rollback (default: 1). "
                "Only used with 'rollback' action.",
                "number",
            ),
        ),
        required=("action",),
        executor=execute_rollback,
    )
