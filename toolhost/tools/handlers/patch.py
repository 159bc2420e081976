"""patch: apply JSON, freeform or unified-diff file modifications."""

from pathlib import Path
from typing import Any, Optional

from loguru import logger

from toolhost.diff import (
    DiffApplyError,
    DiffIOError,
    DiffParseError,
    apply_diff,
    parse_unified_diff,
)
from toolhost.diff.apply import backup_path, resolve_target_path
from toolhost.patch import PatchApplier, is_freeform_patch, parse_freeform_patch, parse_json_patches
from toolhost.patch.executor import TOOL_NAME, check_write_allowed
from toolhost.tracking import ChangeGroup, DiffTracker

from ..context import ToolContext
from ..definition import ToolDefinition, ToolParam
from ..errors import ExecutionError, InvalidArgsError, RespondToModelError


def _snapshot(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ExecutionError(f"Failed to read file: {e}") from e


def apply_unified_diff(
    text: str, ctx: ToolContext, tracker: Optional[DiffTracker] = None
) -> str:
    """Apply every hunk of a unified diff relative to the working directory."""
    try:
        view = parse_unified_diff(text)
    except DiffParseError as e:
        raise InvalidArgsError(f"Failed to parse diff: {e}") from e
    view.accept_all()

    base_dir = Path(ctx.working_dir)
    originals: dict[Path, Optional[str]] = {}
    backups: dict[Path, Optional[str]] = {}
    for diff_file in view.files:
        try:
            full_path = base_dir / resolve_target_path(diff_file)
        except DiffApplyError as e:
            raise RespondToModelError(str(e)) from e
        check_write_allowed(full_path, ctx)
        if full_path not in originals:
            originals[full_path] = _snapshot(full_path)
            backups[backup_path(full_path)] = _snapshot(backup_path(full_path))

    try:
        applied = apply_diff(view, base_dir)
    except DiffIOError as e:
        raise ExecutionError(str(e)) from e
    except DiffApplyError as e:
        raise RespondToModelError(str(e)) from e

    group = ChangeGroup(TOOL_NAME, "apply unified diff")
    for path in dict.fromkeys(applied):
        original = originals.get(path)
        if original is None:
            group.record_create(path)
            continue
        group.record_modify(path, original)
        # apply_diff copied the old contents to <path>.bak before writing
        backup = backup_path(path)
        previous_backup = backups.get(backup)
        if previous_backup is None:
            group.record_create(backup)
        else:
            group.record_modify(backup, previous_backup)
    if tracker is not None:
        tracker.add_group(group)
    logger.debug(f"Applied unified diff to {len(applied)} file(s)")
    return "\n".join(f"Updated file: {path}" for path in applied)


def patch_tool(tracker: Optional[DiffTracker] = None) -> ToolDefinition:
    def apply_text(text: str, ctx: ToolContext) -> str:
        if is_freeform_patch(text):
            return PatchApplier(ctx, tracker).apply(parse_freeform_patch(text))
        return apply_unified_diff(text, ctx, tracker)

    def execute_patch(ctx: ToolContext, args: Any) -> str:
        if isinstance(args, str):
            return apply_text(args, ctx)
        if isinstance(args, dict):
            if "patches" not in args:
                raise InvalidArgsError("Expected 'patches' array or freeform text")
            patches = args["patches"]
            if isinstance(patches, str):
                return apply_text(patches, ctx)
            return PatchApplier(ctx, tracker).apply(parse_json_patches(patches))
        if isinstance(args, list):
            return PatchApplier(ctx, tracker).apply(parse_json_patches(args))
        raise InvalidArgsError("Invalid patch format")

    return ToolDefinition(
        name="patch",
        description=(
            "Apply file modifications. Accepts JSON format with patches array, "
            "or freeform text format starting with '*** Begin Patch', or a unified diff."
        ),
        params=(
            ToolParam(
                "patches",
                "Array of patch operations (JSON) or freeform patch text.",
                "array",
                items="object",
            ),
        ),
        required=("patches",),
        executor=execute_patch,
    )
