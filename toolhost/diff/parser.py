"""Unified diff parser."""

from typing import Optional

from toolhost.utils.text import split_lines

from .types import (
    DiffFile,
    DiffHunk,
    DiffLine,
    DiffView,
    EmptyDiffError,
    InvalidHunkHeaderError,
    LineKind,
    MissingFileHeaderError,
)

_LINE_KINDS = {kind.value: kind for kind in LineKind}


def parse_unified_diff(text: str) -> DiffView:
    """Parse ``---``/``+++``/``@@`` sections into a DiffView.

    While a hunk still expects lines according to its ``@@`` counts, every
    ``+``, ``-`` or space-prefixed line belongs to it, even one that looks
    like a ``---``/``+++`` header. A ``\\ No newline at end of file`` marker
    flags the side of the line before it. Other lines outside a hunk are
    ignored. All hunks start out pending.

    Raises
    ------
    DiffParseError
        On a ``+++`` or ``@@`` without a file header, a malformed ``@@``
        line, or when no file sections are found.
    """
    view = DiffView()
    current: Optional[DiffFile] = None
    pending_old: Optional[str] = None
    old_left = new_left = 0

    lines = split_lines(text)
    for index, line in enumerate(lines):
        hunk = current.hunks[-1] if current is not None and current.hunks else None

        if hunk is not None and line.startswith("\\"):
            mark_no_newline(hunk)
            continue

        if hunk is not None and (old_left > 0 or new_left > 0):
            if not _starts_file_section(lines, index):
                # Editors often strip the lone space of an empty context line
                kind = _LINE_KINDS.get(line[:1]) if line else LineKind.CONTEXT
                if kind is not None:
                    hunk.lines.append(DiffLine(kind=kind, content=line[1:]))
                    if kind is not LineKind.ADD:
                        old_left -= 1
                    if kind is not LineKind.REMOVE:
                        new_left -= 1
                    continue
            old_left = new_left = 0

        if line.startswith("--- "):
            pending_old = clean_path(line[4:].strip())
            continue
        if line.startswith("+++ "):
            if pending_old is None:
                raise MissingFileHeaderError()
            current = DiffFile(old_path=pending_old, new_path=clean_path(line[4:].strip()))
            view.files.append(current)
            pending_old = None
            continue
        if line.startswith("@@"):
            old_start, old_count, new_start, new_count = parse_hunk_ranges(line)
            if current is None:
                raise MissingFileHeaderError()
            current.hunks.append(
                DiffHunk(
                    header=line,
                    old_start=old_start,
                    new_start=new_start,
                    old_count=old_count,
                    new_count=new_count,
                )
            )
            old_left, new_left = old_count, new_count
            continue
        if hunk is None:
            continue
        # Lines past the counted body still join the hunk when they look like hunk lines
        kind = _LINE_KINDS.get(line[:1])
        if kind is not None:
            hunk.lines.append(DiffLine(kind=kind, content=line[1:]))

    if not view.files:
        raise EmptyDiffError()
    return view


def _starts_file_section(lines: list[str], index: int) -> bool:
    """A ``---``/``+++``/``@@`` triple starts a new file even inside a miscounted hunk."""
    return (
        lines[index].startswith("--- ")
        and index + 2 < len(lines)
        and lines[index + 1].startswith("+++ ")
        and lines[index + 2].startswith("@@")
    )


def mark_no_newline(hunk: DiffHunk) -> None:
    """Apply a ``\\ No newline at end of file`` marker to the preceding line's side."""
    if not hunk.lines:
        return
    kind = hunk.lines[-1].kind
    if kind is not LineKind.ADD:
        hunk.old_no_newline = True
    if kind is not LineKind.REMOVE:
        hunk.new_no_newline = True


def parse_hunk_header(line: str) -> tuple[int, int]:
    """Return ``(old_start, new_start)`` from ``@@ -a,b +c,d @@``."""
    old_start, _, new_start, _ = parse_hunk_ranges(line)
    return old_start, new_start


def parse_hunk_ranges(line: str) -> tuple[int, int, int, int]:
    """Return ``(old_start, old_count, new_start, new_count)``; counts default to 1."""
    trimmed = line.strip()
    start = trimmed.find("@@")
    if start < 0:
        raise InvalidHunkHeaderError(line)
    rest = trimmed[start + 2 :]
    end = rest.find("@@")
    if end < 0:
        raise InvalidHunkHeaderError(line)
    parts = rest[:end].split()
    if len(parts) < 2:
        raise InvalidHunkHeaderError(line)
    return _parse_range(parts[0], "-") + _parse_range(parts[1], "+")


def _parse_range(token: str, prefix: str) -> tuple[int, int]:
    if not token.startswith(prefix):
        raise InvalidHunkHeaderError(token)
    start, _, count = token[1:].partition(",")
    if not start.isdigit() or (count and not count.isdigit()):
        raise InvalidHunkHeaderError(token)
    return int(start), int(count) if count else 1


def clean_path(raw: str) -> str:
    """Strip git's ``a/`` and ``b/`` prefixes."""
    while raw.startswith("a/"):
        raw = raw[2:]
    while raw.startswith("b/"):
        raw = raw[2:]
    return raw
