"""Apply structured patches to the filesystem."""

from pathlib import Path
from typing import Optional

from loguru import logger

from toolhost.tools.context import ToolContext
from toolhost.tools.errors import DeniedError, ExecutionError, RespondToModelError
from toolhost.tracking import ChangeGroup, DiffTracker

from .modification import apply_modification
from .types import AddFile, DeleteFile, Patch, PatchHunk, UpdateFile

TOOL_NAME = "patch"


def resolve_path(path: str, ctx: ToolContext) -> Path:
    """Absolute paths pass through; relative ones are joined to the working dir."""
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    return Path(ctx.working_dir) / candidate


def check_write_allowed(path: Path, ctx: ToolContext, verb: str = "Write") -> None:
    if not ctx.sandbox.is_write_allowed(str(path)):
        target = "for" if verb == "Delete" else "to"
        raise DeniedError(f"{verb} not allowed {target}: {path}")


def _read(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ExecutionError(f"Failed to read file: {e}") from e


def _write(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExecutionError(f"Failed to create directory: {e}") from e
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ExecutionError(f"Failed to write file: {e}") from e


class PatchApplier:
    """Applies patch hunks in order, recording each change for rollback.

    Changes made before a failing hunk stay on disk and are still recorded,
    so a partial patch can be rolled back.
    """

    def __init__(self, ctx: ToolContext, tracker: Optional[DiffTracker] = None) -> None:
        self.ctx = ctx
        self.tracker = tracker

    def apply(self, patch: Patch, description: str = "apply patch") -> str:
        group = ChangeGroup(TOOL_NAME, description)
        results = []
        try:
            for hunk in patch.hunks:
                results.append(self.apply_hunk(hunk, group))
        finally:
            if self.tracker is not None:
                self.tracker.add_group(group)
        return "\n".join(results)

    def apply_hunk(self, hunk: PatchHunk, group: ChangeGroup) -> str:
        if isinstance(hunk, AddFile):
            return self._add(hunk, group)
        if isinstance(hunk, DeleteFile):
            return self._delete(hunk, group)
        return self._update(hunk, group)

    def _add(self, hunk: AddFile, group: ChangeGroup) -> str:
        full_path = resolve_path(hunk.path, self.ctx)
        check_write_allowed(full_path, self.ctx)

        original = _read(full_path) if full_path.is_file() else None
        _write(full_path, hunk.content)
        if original is None:
            group.record_create(full_path)
        else:
            group.record_modify(full_path, original)
        logger.debug(f"Added file {full_path}")
        return f"Added file: {full_path}"

    def _delete(self, hunk: DeleteFile, group: ChangeGroup) -> str:
        full_path = resolve_path(hunk.path, self.ctx)
        check_write_allowed(full_path, self.ctx, verb="Delete")

        if not full_path.exists():
            raise RespondToModelError(f"File does not exist: {full_path}")
        original = _read(full_path)
        try:
            full_path.unlink()
        except OSError as e:
            raise ExecutionError(f"Failed to delete file: {e}") from e
        group.record_delete(full_path, original)
        logger.debug(f"Deleted file {full_path}")
        return f"Deleted file: {full_path}"

    def _update(self, hunk: UpdateFile, group: ChangeGroup) -> str:
        full_path = resolve_path(hunk.path, self.ctx)
        check_write_allowed(full_path, self.ctx)

        original = _read(full_path)
        new_content = apply_modification(original, hunk.context, hunk.remove, hunk.add)

        if hunk.new_path is None:
            _write(full_path, new_content)
            group.record_modify(full_path, original)
            return f"Updated file: {full_path}"

        target = resolve_path(hunk.new_path, self.ctx)
        check_write_allowed(target, self.ctx)
        _write(target, new_content)
        if target != full_path:
            try:
                full_path.unlink()
            except OSError as e:
                raise ExecutionError(f"Failed to remove old file: {e}") from e
        group.record_rename(full_path, target, original)
        logger.debug(f"Moved {full_path} -> {target}")
        return f"Updated and moved: {full_path} -> {target}"


def apply_patch(patch: Patch, ctx: ToolContext, tracker: Optional[DiffTracker] = None) -> str:
    """Apply every hunk and return one result line per hunk."""
    return PatchApplier(ctx, tracker).apply(patch)
