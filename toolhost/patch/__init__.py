"""Structured file patches: JSON and freeform formats."""

from .executor import PatchApplier, apply_patch
from .modification import apply_modification
from .parser import is_freeform_patch, parse_freeform_patch, parse_json_patches
from .types import AddFile, DeleteFile, Patch, PatchHunk, UpdateFile

__all__ = [
    "AddFile",
    "DeleteFile",
    "Patch",
    "PatchApplier",
    "PatchHunk",
    "UpdateFile",
    "apply_modification",
    "apply_patch",
    "is_freeform_patch",
    "parse_freeform_patch",
    "parse_json_patches",
]
