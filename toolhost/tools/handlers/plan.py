"""plan: record and render the agent's task plan."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam, parse_args
from ..errors import RespondToModelError


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


STATUS_ICONS = {
    TaskStatus.PENDING: "[ ]",
    TaskStatus.IN_PROGRESS: "[→]",
    TaskStatus.COMPLETED: "[✓]",
}


class PlanItem(BaseModel):
    step: str
    status: TaskStatus


class PlanArgs(BaseModel):
    explanation: Optional[str] = None
    plan: list[PlanItem]


def render_plan(args: PlanArgs) -> str:
    in_progress = sum(1 for item in args.plan if item.status is TaskStatus.IN_PROGRESS)
    if in_progress > 1:
        raise RespondToModelError("Only one task can be in_progress at a time")

    output = ""
    if args.explanation is not None:
        output += f"Plan update: {args.explanation}\n\n"
    output += "Current plan:\n"
    for i, item in enumerate(args.plan, start=1):
        output += f"{i}. {STATUS_ICONS[item.status]} {item.step}\n"

    completed = sum(1 for item in args.plan if item.status is TaskStatus.COMPLETED)
    output += f"\nProgress: {completed}/{len(args.plan)} completed"
    return output


def execute_plan(ctx: ToolContext, args: Any) -> str:
    return render_plan(parse_args(PlanArgs, args))


def plan_tool() -> ToolDefinition:
    return ToolDefinition(
        name="plan",
        description=(
            "Update the task plan. Use to track progress on multi-step tasks. "
            "Only one task can be in_progress at a time."
        ),
        params=(
            ToolParam("explanation", "Optional explanation of what changed in the plan."),
            ToolParam(
                "plan",
                "Array of plan items with 'step' (string) and "
                "'status' (pending|in_progress|completed).",
                "array",
                items="object",
            ),
        ),
        required=("plan",),
        executor=execute_plan,
    )
