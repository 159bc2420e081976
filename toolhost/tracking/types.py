"""Types for file change tracking."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


class ChangeType(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass
class FileChange:
    """One file mutation, with the content needed to undo it.

    For renames ``path`` is the new location and ``renamed_from`` the old one.
    """

    path: Path
    change_type: ChangeType
    original_content: Optional[str] = None
    renamed_from: Optional[Path] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ChangeGroup:
    """All file changes made by a single tool invocation."""

    tool_name: str
    description: str
    changes: list[FileChange] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def add_change(self, change: FileChange) -> None:
        self.changes.append(change)

    def record_create(self, path: Path) -> None:
        self.add_change(FileChange(Path(path), ChangeType.CREATED))

    def record_modify(self, path: Path, original_content: str) -> None:
        self.add_change(FileChange(Path(path), ChangeType.MODIFIED, original_content))

    def record_delete(self, path: Path, original_content: str) -> None:
        self.add_change(FileChange(Path(path), ChangeType.DELETED, original_content))

    def record_rename(self, from_path: Path, to_path: Path, original_content: str) -> None:
        self.add_change(
            FileChange(
                Path(to_path),
                ChangeType.RENAMED,
                original_content,
                renamed_from=Path(from_path),
            )
        )


@dataclass
class ChangeSummary:
    index: int
    tool_name: str
    description: str
    file_count: int
    timestamp: datetime


@dataclass
class RollbackResult:
    rolled_back_groups: list[str] = field(default_factory=list)
    restored_files: list[Path] = field(default_factory=list)
    errors: list[tuple[Path, str]] = field(default_factory=list)

    def is_success(self) -> bool:
        return not self.errors

    def format(self) -> str:
        """Human-readable summary of the rollback."""
        lines = []
        if self.rolled_back_groups:
            lines.append(
                f"Rolled back {len(self.rolled_back_groups)} change group(s): "
                f"{', '.join(self.rolled_back_groups)}"
            )
        if self.restored_files:
            lines.append(f"Restored {len(self.restored_files)} file(s):")
            lines.extend(f"  - {path}" for path in self.restored_files)
        if self.errors:
            lines.append(f"Errors ({len(self.errors)}):")
            lines.extend(f"  - {path}: {error}" for path, error in self.errors)
        return "\n".join(lines)


class RollbackError(Exception):
    """Rollback could not start."""


class NoChangesError(RollbackError):
    def __init__(self) -> None:
        super().__init__("No changes to rollback")
