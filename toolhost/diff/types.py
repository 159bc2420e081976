"""Unified diff model: files, hunks and lines."""

from dataclasses import dataclass, field
from enum import Enum


class LineKind(Enum):
    CONTEXT = " "
    ADD = "+"
    REMOVE = "-"


class HunkDecision(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SKIPPED = "skipped"


@dataclass
class DiffLine:
    kind: LineKind
    content: str


@dataclass
class DiffHunk:
    """One ``@@`` section. Start lines are 1-indexed."""

    header: str
    old_start: int
    new_start: int
    lines: list[DiffLine] = field(default_factory=list)
    decision: HunkDecision = HunkDecision.PENDING
    old_count: int = 1
    new_count: int = 1
    # Set by a "\ No newline at end of file" marker on that side
    old_no_newline: bool = False
    new_no_newline: bool = False

    def set_decision(self, decision: HunkDecision) -> None:
        self.decision = decision


@dataclass
class DiffFile:
    old_path: str
    new_path: str
    hunks: list[DiffHunk] = field(default_factory=list)


@dataclass
class DiffView:
    files: list[DiffFile] = field(default_factory=list)

    def accept_all(self) -> "DiffView":
        """Mark every hunk accepted; returns self for chaining."""
        for diff_file in self.files:
            for hunk in diff_file.hunks:
                hunk.set_decision(HunkDecision.ACCEPTED)
        return self


class DiffParseError(Exception):
    """The text is not a usable unified diff."""


class EmptyDiffError(DiffParseError):
    def __init__(self) -> None:
        super().__init__("diff is empty")


class MissingFileHeaderError(DiffParseError):
    def __init__(self) -> None:
        super().__init__("missing file header before hunk")


class InvalidHunkHeaderError(DiffParseError):
    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"invalid hunk header: {header}")


class DiffApplyError(Exception):
    """A parsed diff could not be applied."""


class NothingToApplyError(DiffApplyError):
    def __init__(self) -> None:
        super().__init__("no accepted hunks to apply")


class InvalidPathError(DiffApplyError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"unsupported diff path: {path}")


class ContextMismatchError(DiffApplyError):
    def __init__(self) -> None:
        super().__init__("context mismatch while applying diff")


class MissingFileError(DiffApplyError):
    def __init__(self) -> None:
        super().__init__("missing file header for diff")


class DiffIOError(DiffApplyError):
    def __init__(self, error: Exception) -> None:
        self.error = error
        super().__init__(f"io error: {error}")
