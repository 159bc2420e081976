"""Apply accepted hunks of a DiffView to files on disk."""

import shutil
from pathlib import Path, PurePosixPath
from typing import Optional

from loguru import logger

from toolhost.utils.text import split_lines

from .types import (
    ContextMismatchError,
    DiffFile,
    DiffHunk,
    DiffIOError,
    DiffView,
    HunkDecision,
    InvalidPathError,
    LineKind,
    MissingFileError,
    NothingToApplyError,
)

DEV_NULL = "/dev/null"


def apply_diff(diff: DiffView, base_dir: Path) -> list[Path]:
    """Apply every file that has at least one accepted hunk.

    Returns the full paths written. A file whose hunks do not match is left
    untouched; files before it in the diff have already been written.

    Raises
    ------
    DiffApplyError
        NothingToApply when no hunk is accepted, InvalidPath for absolute or
        parent-relative targets, ContextMismatch when a context or removed
        line differs, MissingFile when both paths are ``/dev/null``, or
        DiffIOError on filesystem failures.
    """
    applied: list[Path] = []
    any_accepted = False
    for diff_file in diff.files:
        if any(h.decision is HunkDecision.ACCEPTED for h in diff_file.hunks):
            any_accepted = True
            applied.append(apply_file(diff_file, Path(base_dir)))
    if not any_accepted:
        raise NothingToApplyError()
    return applied


def apply_file(diff_file: DiffFile, base_dir: Path) -> Path:
    full_path = base_dir / resolve_target_path(diff_file)
    original, had_newline = _read_lines(full_path)

    output: list[str] = []
    index = 0
    last_hunk: Optional[DiffHunk] = None
    for hunk in diff_file.hunks:
        if hunk.decision is not HunkDecision.ACCEPTED:
            continue
        # A hunk that removes nothing inserts after old_start rather than at it
        start = hunk.old_start if hunk.old_count == 0 else max(hunk.old_start - 1, 0)
        if start > len(original) or start < index:
            raise ContextMismatchError()
        output.extend(original[index:start])
        index = _apply_hunk_lines(hunk, original, start, output)
        last_hunk = hunk
    reached_end = index >= len(original)
    output.extend(original[index:])

    trailing_newline = _trailing_newline(output, original, had_newline, last_hunk, reached_end)
    _write_with_backup(full_path, output, trailing_newline)
    logger.debug(f"Applied diff to {full_path}")
    return full_path


def _trailing_newline(
    output: list[str],
    original: list[str],
    had_newline: bool,
    last_hunk: Optional[DiffHunk],
    reached_end: bool,
) -> bool:
    """Decide whether the written file ends with a newline.

    The original's final newline is kept unless the last hunk rewrote the end
    of the file: then a ``\\ No newline at end of file`` marker on the new side
    drops it, and one on the old side only, or an empty original, adds it.
    """
    if not output:
        return False
    if last_hunk is None or not reached_end:
        return had_newline
    if last_hunk.new_no_newline:
        return False
    if last_hunk.old_no_newline or not original:
        return True
    return had_newline


def resolve_target_path(diff_file: DiffFile) -> PurePosixPath:
    """New path unless it is ``/dev/null``, then the old path."""
    if diff_file.new_path != DEV_NULL:
        raw = diff_file.new_path
    elif diff_file.old_path != DEV_NULL:
        raw = diff_file.old_path
    else:
        raise MissingFileError()
    return sanitize_path(raw)


def sanitize_path(raw: str) -> PurePosixPath:
    path = PurePosixPath(raw)
    if path.is_absolute() or Path(raw).is_absolute() or ".." in path.parts:
        raise InvalidPathError(raw)
    return path


def _read_lines(path: Path) -> tuple[list[str], bool]:
    try:
        contents = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return [], False
    except (OSError, UnicodeDecodeError) as e:
        raise DiffIOError(e) from e
    return split_lines(contents), contents.endswith("\n")


def _apply_hunk_lines(hunk: DiffHunk, original: list[str], index: int, output: list[str]) -> int:
    for line in hunk.lines:
        if line.kind is LineKind.ADD:
            output.append(line.content)
            continue
        if index >= len(original) or original[index] != line.content:
            raise ContextMismatchError()
        if line.kind is LineKind.CONTEXT:
            output.append(original[index])
        index += 1
    return index


def backup_path(path: Path) -> Path:
    """Where apply_diff keeps the previous contents of ``path``."""
    return path.with_name(f"{path.name}.bak")


def _write_with_backup(path: Path, lines: list[str], trailing_newline: bool) -> None:
    contents = "\n".join(lines)
    if trailing_newline:
        contents += "\n"
    try:
        if path.exists():
            shutil.copyfile(path, backup_path(path))
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents, encoding="utf-8")
    except OSError as e:
        raise DiffIOError(e) from e
