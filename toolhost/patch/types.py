"""Structured patch model."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class AddFile:
    path: str
    content: str


@dataclass(frozen=True)
class DeleteFile:
    path: str


@dataclass(frozen=True)
class UpdateFile:
    """Edit a file in place, optionally moving it to ``new_path``.

    ``add`` is inserted after ``context`` (and in place of ``remove``); with
    neither set it is appended to the end of the file.
    """

    path: str
    add: str = ""
    context: Optional[str] = None
    remove: Optional[str] = None
    new_path: Optional[str] = None


PatchHunk = Union[AddFile, DeleteFile, UpdateFile]


@dataclass
class Patch:
    hunks: list[PatchHunk] = field(default_factory=list)
