"""Content edits for update hunks."""

from typing import Optional

from toolhost.tools.errors import RespondToModelError
from toolhost.utils.text import split_lines


def _matches_at(lines: list[str], pattern: list[str], start: int) -> bool:
    """Each file line contains the stripped pattern line."""
    if start + len(pattern) > len(lines):
        return False
    return all(pat.strip() in line for pat, line in zip(pattern, lines[start:]))


def _find(lines: list[str], pattern: list[str]) -> Optional[int]:
    for start in range(len(lines) - len(pattern) + 1):
        if _matches_at(lines, pattern, start):
            return start
    return None


def apply_modification(
    content: str,
    context: Optional[str],
    remove: Optional[str],
    add: str,
) -> str:
    """Return ``content`` with ``add`` spliced in.

    Lines are matched loosely: a file line matches when it contains the
    pattern line with surrounding whitespace stripped. With ``context`` the
    new lines go right after the first match, replacing ``remove`` when it
    follows the context. With only ``remove`` the first match is replaced.
    With neither, ``add`` is appended. A trailing newline is kept.

    Raises
    ------
    RespondToModelError
        If the context or the lines to remove cannot be found.
    """
    had_newline = content.endswith("\n")
    context_lines = split_lines(context) if context else []
    remove_lines = split_lines(remove) if remove else []

    if not context_lines and not remove_lines:
        result = content
        if result and not had_newline:
            result += "\n"
        result += add
        if had_newline and add and not result.endswith("\n"):
            result += "\n"
        return result

    lines = split_lines(content)
    if context_lines:
        found = _find(lines, context_lines)
        if found is None:
            raise RespondToModelError(
                f"context not found in file: {context_lines[0].strip()!r}"
            )
        insert_at = found + len(context_lines)
        if remove_lines and not _matches_at(lines, remove_lines, insert_at):
            raise RespondToModelError(
                f"lines to remove not found after context: {remove_lines[0].strip()!r}"
            )
    else:
        found = _find(lines, remove_lines)
        if found is None:
            raise RespondToModelError(
                f"lines to remove not found in file: {remove_lines[0].strip()!r}"
            )
        insert_at = found

    result_lines = lines[:insert_at] + split_lines(add) + lines[insert_at + len(remove_lines) :]
    result = "\n".join(result_lines)
    if had_newline and result_lines:
        result += "\n"
    return result
