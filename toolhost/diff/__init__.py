"""Unified diff parsing and hunk-level application."""

from .apply import apply_diff
from .parser import parse_unified_diff
from .types import (
    ContextMismatchError,
    DiffApplyError,
    DiffFile,
    DiffHunk,
    DiffIOError,
    DiffLine,
    DiffParseError,
    DiffView,
    EmptyDiffError,
    HunkDecision,
    InvalidHunkHeaderError,
    InvalidPathError,
    LineKind,
    MissingFileError,
    MissingFileHeaderError,
    NothingToApplyError,
)

__all__ = [
    "ContextMismatchError",
    "DiffApplyError",
    "DiffFile",
    "DiffHunk",
    "DiffIOError",
    "DiffLine",
    "DiffParseError",
    "DiffView",
    "EmptyDiffError",
    "HunkDecision",
    "InvalidHunkHeaderError",
    "InvalidPathError",
    "LineKind",
    "MissingFileError",
    "MissingFileHeaderError",
    "NothingToApplyError",
    "apply_diff",
    "parse_unified_diff",
]
