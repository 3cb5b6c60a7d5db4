"""Surgical file editing — unified diffs, line ranges, syntax-tree edits."""

from .models import (
    DiffChange, DiffHunk, UnifiedDiff,
    LineRange, EntityTarget, EditOperation, StructuralModification,
    EditResult, ValidationError, ValidationReport,
    FileEdit, MultiFileEdit, MultiFileEditResult, EntityLocation,
    operation_from_dict, multi_file_edit_from_dict,
)
from .diff_parser import DiffParser
from .patch_applier import DiffApplier, MatchMode
from .line_editor import LineRangeEditor
from .structural_editor import StructuralEditor
from .validator import EditValidator, NewErrorKey
from .multi_file import MultiFileEditor
from .editor import DiffEditor

__all__ = [
    "DiffChange", "DiffHunk", "UnifiedDiff",
    "LineRange", "EntityTarget", "EditOperation", "StructuralModification",
    "EditResult", "ValidationError", "ValidationReport",
    "FileEdit", "MultiFileEdit", "MultiFileEditResult", "EntityLocation",
    "operation_from_dict", "multi_file_edit_from_dict",
    "DiffParser",
    "DiffApplier", "MatchMode",
    "LineRangeEditor",
    "StructuralEditor",
    "EditValidator", "NewErrorKey",
    "MultiFileEditor",
    "DiffEditor",
]
