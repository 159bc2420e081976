"""Tracks file changes made by tools so they can be rolled back."""

import threading
from pathlib import Path

from loguru import logger

from .types import (
    ChangeGroup,
    ChangeSummary,
    ChangeType,
    FileChange,
    NoChangesError,
    RollbackResult,
)

DEFAULT_MAX_GROUPS = 100


def rollback_change(change: FileChange) -> None:
    """Undo a single change.

    Raises
    ------
    RuntimeError
        With a short description when the change cannot be undone.
    """
    if change.change_type is ChangeType.CREATED:
        try:
            change.path.unlink()
        except OSError as e:
            raise RuntimeError(f"Failed to delete file: {e}") from e
        return

    if change.original_content is None:
        raise RuntimeError("No original content recorded")

    if change.change_type is ChangeType.MODIFIED:
        _write(change.path, change.original_content)
    elif change.change_type is ChangeType.DELETED:
        _make_parents(change.path)
        _write(change.path, change.original_content)
    elif change.change_type is ChangeType.RENAMED:
        if change.path.exists():
            try:
                change.path.unlink()
            except OSError as e:
                raise RuntimeError(f"Failed to delete: {e}") from e
        _make_parents(change.renamed_from)
        _write(change.renamed_from, change.original_content)


def _make_parents(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(f"Failed to create dir: {e}") from e


def _write(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise RuntimeError(f"Failed to restore file: {e}") from e


class DiffTracker:
    """Bounded history of change groups, newest last.

    Thread-safe: tool executors run on worker threads.
    """

    def __init__(self, max_groups: int = DEFAULT_MAX_GROUPS) -> None:
        self.max_groups = max_groups
        self._groups: list[ChangeGroup] = []
        self._lock = threading.Lock()

    def add_group(self, group: ChangeGroup) -> None:
        """Append a group, dropping the oldest beyond ``max_groups``."""
        if not group.changes:
            return
        with self._lock:
            self._groups.append(group)
            overflow = len(self._groups) - self.max_groups
            if overflow > 0:
                del self._groups[:overflow]
        logger.debug(
            f"Tracked {len(group.changes)} change(s) from {group.tool_name}: {group.description}"
        )

    def rollback(self, count: int = 1) -> RollbackResult:
        """Undo the newest ``count`` groups, newest first.

        Failures are collected per file and do not stop the rollback.

        Raises
        ------
        NoChangesError
            If nothing is tracked.
        """
        with self._lock:
            if not self._groups:
                raise NoChangesError()
            count = min(count, len(self._groups))
            popped = [self._groups.pop() for _ in range(count)]

        result = RollbackResult()
        for group in popped:
            for change in reversed(group.changes):
                try:
                    rollback_change(change)
                except RuntimeError as e:
                    logger.error(f"Rollback of {change.path} failed: {e}")
                    result.errors.append((change.path, str(e)))
                else:
                    result.restored_files.append(change.path)
            result.rolled_back_groups.append(group.tool_name)
        logger.info(result.format())
        return result

    def summary(self) -> list[ChangeSummary]:
        with self._lock:
            return [
                ChangeSummary(
                    index=index,
                    tool_name=group.tool_name,
                    description=group.description,
                    file_count=len(group.changes),
                    timestamp=group.timestamp,
                )
                for index, group in enumerate(self._groups)
            ]

    def group_count(self) -> int:
        with self._lock:
            return len(self._groups)

    def clear(self) -> None:
        with self._lock:
            self._groups.clear()
