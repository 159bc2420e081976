"""Parsers for the JSON and freeform patch formats."""

from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from toolhost.tools.errors import InvalidArgsError
from toolhost.utils.text import split_lines

from .types import AddFile, DeleteFile, Patch, PatchHunk, UpdateFile

BEGIN_MARKER = "*** Begin Patch"
END_MARKER = "*** End Patch"
ADD_PREFIX = "*** Add File: "
DELETE_PREFIX = "*** Delete File: "
UPDATE_PREFIX = "*** Update File: "
MOVE_PREFIX = "*** Move to: "
EOF_MARKER = "*** End of File"


class JsonPatchHunk(BaseModel):
    path: str
    operation: str
    content: Optional[str] = None
    context: Optional[str] = None
    remove: Optional[str] = None
    new_path: Optional[str] = None


def parse_json_patches(value: Any) -> Patch:
    """Build a Patch from a list of ``{path, operation, ...}`` objects."""
    if not isinstance(value, list):
        raise InvalidArgsError("Invalid JSON patch format: expected an array of patches")
    hunks: list[PatchHunk] = []
    for raw in value:
        try:
            hunk = JsonPatchHunk.model_validate(raw)
        except ValidationError as e:
            raise InvalidArgsError(f"Invalid JSON patch format: {e}") from e
        hunks.append(_convert_json_hunk(hunk))
    return Patch(hunks=hunks)


def _convert_json_hunk(hunk: JsonPatchHunk) -> PatchHunk:
    if hunk.operation == "add":
        if hunk.content is None:
            raise InvalidArgsError("'add' operation requires 'content'")
        return AddFile(path=hunk.path, content=hunk.content)
    if hunk.operation == "delete":
        return DeleteFile(path=hunk.path)
    if hunk.operation == "update":
        return UpdateFile(
            path=hunk.path,
            add=hunk.content or "",
            context=hunk.context,
            remove=hunk.remove,
            new_path=hunk.new_path,
        )
    raise InvalidArgsError(
        f"Unknown operation: {hunk.operation}. Use 'add', 'update', or 'delete'"
    )


def is_freeform_patch(text: str) -> bool:
    return text.lstrip().startswith(BEGIN_MARKER)


def parse_freeform_patch(text: str) -> Patch:
    """Parse the ``*** Begin Patch`` / ``*** End Patch`` text format.

    Raises
    ------
    InvalidArgsError
        When the envelope or a section header is malformed.
    """
    lines = split_lines(text.strip())
    if not lines or lines[0].strip() != BEGIN_MARKER:
        raise InvalidArgsError(f"Freeform patch must start with '{BEGIN_MARKER}'")
    if lines[-1].strip() != END_MARKER:
        raise InvalidArgsError(f"Failed to parse patch: missing '{END_MARKER}'")

    body = lines[1:-1]
    hunks: list[PatchHunk] = []
    i = 0
    while i < len(body):
        line = body[i]
        if line.startswith(ADD_PREFIX):
            i, hunk = _parse_add(body, i + 1, line[len(ADD_PREFIX) :].strip())
        elif line.startswith(DELETE_PREFIX):
            hunk = DeleteFile(path=line[len(DELETE_PREFIX) :].strip())
            i += 1
        elif line.startswith(UPDATE_PREFIX):
            i, hunk = _parse_update(body, i + 1, line[len(UPDATE_PREFIX) :].strip())
        elif not line.strip():
            i += 1
            continue
        else:
            raise InvalidArgsError(f"Failed to parse patch: unexpected line {i + 2}: {line!r}")
        if not hunk.path:
            raise InvalidArgsError(f"Failed to parse patch: missing file name on line {i + 1}")
        hunks.append(hunk)
    return Patch(hunks=hunks)


def _is_section_header(line: str) -> bool:
    return line.startswith((ADD_PREFIX, DELETE_PREFIX, UPDATE_PREFIX))


def _parse_add(body: list[str], i: int, path: str) -> tuple[int, AddFile]:
    content: list[str] = []
    while i < len(body) and not _is_section_header(body[i]):
        line = body[i]
        if not line:
            i += 1
            continue
        if not line.startswith("+"):
            raise InvalidArgsError(
                f"Failed to parse patch: added file lines must start with '+': {line!r}"
            )
        content.append(line[1:])
        i += 1
    text = "\n".join(content) + "\n" if content else ""
    return i, AddFile(path=path, content=text)


def _parse_update(body: list[str], i: int, path: str) -> tuple[int, UpdateFile]:
    new_path = None
    if i < len(body) and body[i].startswith(MOVE_PREFIX):
        new_path = body[i][len(MOVE_PREFIX) :].strip()
        i += 1

    context: list[str] = []
    remove: list[str] = []
    add: list[str] = []
    while i < len(body) and not _is_section_header(body[i]):
        line = body[i]
        i += 1
        if line.startswith("@@"):
            anchor = line[2:].strip()
            if anchor:
                context.append(anchor)
        elif line.strip() == EOF_MARKER:
            continue
        elif line.startswith("+"):
            add.append(line[1:])
        elif line.startswith("-"):
            remove.append(line[1:])
        elif line.startswith(" "):
            context.append(line[1:])
        elif not line:
            continue
        else:
            raise InvalidArgsError(f"Failed to parse patch: unexpected change line {line!r}")

    return i, UpdateFile(
        path=path,
        new_path=new_path,
        context="\n".join(context) if context else None,
        remove="\n".join(remove) if remove else None,
        add="\n".join(add),
    )
