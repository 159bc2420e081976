"""File change tracking with rollback."""

from .tracker import DiffTracker
from .types import (
    ChangeGroup,
    ChangeSummary,
    ChangeType,
    FileChange,
    NoChangesError,
    RollbackError,
    RollbackResult,
)

__all__ = [
    "ChangeGroup",
    "ChangeSummary",
    "ChangeType",
    "DiffTracker",
    "FileChange",
    "NoChangesError",
    "RollbackError",
    "RollbackResult",
]
