"""
Data model shared by the editing components.

All values here are transient and caller-owned: every operation builds new
instances and nothing is cached between calls.  Line numbers are 1-indexed
throughout.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional, Union

# Change kinds inside a hunk
CHANGE_CONTEXT = "context"
CHANGE_ADD = "add"
CHANGE_REMOVE = "remove"

ENTITY_TYPES = (
    "function", "class", "method", "import",
    "export", "variable", "interface", "type",
)

OPERATION_TYPES = (
    "insert", "delete", "replace", "insertAfter", "insertBefore", "applyDiff",
)

MODIFICATION_TYPES = (
    "insertFunction", "insertClass", "insertMethod", "insertProperty",
    "insertImport", "insertParameter", "modifyFunction", "modifyClass",
    "deleteEntity", "renameEntity", "wrapInTryCatch",
)


# ---------------------------------------------------------------------------
# Unified diff
# ---------------------------------------------------------------------------

@dataclass
class DiffChange:
    """One body line of a hunk."""
    type: str                          # "context" | "add" | "remove"
    content: str
    line_number: Optional[int] = None


@dataclass
class DiffHunk:
    """A contiguous block of changes plus its position metadata."""
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    changes: list[DiffChange] = field(default_factory=list)
    header: Optional[str] = None

    @property
    def removed_count(self) -> int:
        """Lines this hunk consumes from the old file (context + remove)."""
        return sum(1 for c in self.changes if c.type != CHANGE_ADD)

    @property
    def added_lines(self) -> list[str]:
        """Lines this hunk produces in the new file (context + add)."""
        return [c.content for c in self.changes if c.type != CHANGE_REMOVE]


@dataclass
class UnifiedDiff:
    """One logical patch for one file."""
    old_file: str
    new_file: str = ""
    hunks: list[DiffHunk] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Edit operations
# ---------------------------------------------------------------------------

@dataclass
class LineRange:
    start_line: int
    end_line: int


@dataclass
class EntityTarget:
    entity_type: str
    entity_name: str
    member_name: Optional[str] = None


@dataclass
class EditOperation:
    """A single edit against one file, addressed by lines or by entity."""
    type: str
    target: Union[LineRange, EntityTarget, None] = None
    content: Optional[str] = None


@dataclass
class StructuralModification:
    """A named, tree-based transformation request."""
    type: str
    target: Optional[str] = None
    code: Optional[str] = None
    new_name: Optional[str] = None
    position: Optional[str] = None     # "before" | "after" | "start" | "end"
    relative_to: Optional[str] = None
    member: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "StructuralModification":
        return cls(
            type=data.get("type", ""),
            target=data.get("target"),
            code=data.get("code"),
            new_name=request_field(data, "new_name"),
            position=data.get("position"),
            relative_to=request_field(data, "relative_to"),
            member=data.get("member"),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class ValidationError:
    type: str                          # "syntax" | "type" | "semantic"
    message: str
    line: Optional[int] = None
    column: Optional[int] = None
    code: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EditResult:
    """Outcome of one edit.  A failed result never carries content."""
    success: bool
    content: Optional[str] = None
    diff: Optional[str] = None
    error: Optional[str] = None
    validation_errors: Optional[list[ValidationError]] = None

    def __post_init__(self) -> None:
        if not self.success and self.content is not None:
            raise ValueError("A failed EditResult must not carry content")

    @classmethod
    def ok(cls, content: str, diff: Optional[str] = None) -> "EditResult":
        return cls(success=True, content=content, diff=diff)

    @classmethod
    def fail(
        cls,
        error: str,
        validation_errors: Optional[list[ValidationError]] = None,
    ) -> "EditResult":
        return cls(success=False, error=error, validation_errors=validation_errors)

    def to_dict(self) -> dict:
        data: dict = {"success": self.success}
        if self.content is not None:
            data["content"] = self.content
        if self.diff is not None:
            data["diff"] = self.diff
        if self.error is not None:
            data["error"] = self.error
        if self.validation_errors is not None:
            data["validation_errors"] = [e.to_dict() for e in self.validation_errors]
        return data


@dataclass
class ValidationReport:
    """Result of comparing diagnostics before and after an edit."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    new_errors: list[ValidationError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "new_errors": [e.to_dict() for e in self.new_errors],
        }


@dataclass
class FileEdit:
    path: str
    operations: list[EditOperation] = field(default_factory=list)


@dataclass
class MultiFileEdit:
    files: list[FileEdit] = field(default_factory=list)
    commit_message: Optional[str] = None


@dataclass
class MultiFileEditResult:
    success: bool
    results: dict[str, EditResult] = field(default_factory=dict)
    errors: Optional[list[str]] = None
    rollback_available: bool = False
    commit_message: Optional[str] = None

    def approved_contents(self) -> dict[str, str]:
        """Contents the caller may persist: all files on success, none otherwise."""
        if not self.success:
            return {}
        return {
            path: result.content
            for path, result in self.results.items()
            if result.success and result.content is not None
        }

    def to_dict(self) -> dict:
        data: dict = {
            "success": self.success,
            "results": {p: r.to_dict() for p, r in self.results.items()},
            "rollback_available": self.rollback_available,
        }
        if self.errors:
            data["errors"] = list(self.errors)
        if self.commit_message is not None:
            data["commit_message"] = self.commit_message
        return data


@dataclass
class EntityLocation:
    """Where a named declaration lives in a file."""
    name: str
    kind: str
    start_line: int
    end_line: int
    text: str

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Parsing helpers for JSON-shaped requests
# ---------------------------------------------------------------------------


def request_field(data: dict, key: str, default=None):
    """Read *key* from a request dict, accepting its camelCase spelling too."""
    if key in data:
        return data[key]
    head, *rest = key.split("_")
    return data.get(head + "".join(part.title() for part in rest), default)


def operation_from_dict(data: dict) -> EditOperation:
    """Build an EditOperation from a request dict.

    A target with ``start_line`` is a line range; a target with
    ``entity_name`` is an entity.
    """
    raw_target = data.get("target") or {}
    target: Union[LineRange, EntityTarget, None] = None
    start = request_field(raw_target, "start_line")
    entity_name = request_field(raw_target, "entity_name")
    if start is not None:
        target = LineRange(
            start_line=int(start),
            end_line=int(request_field(raw_target, "end_line", start)),
        )
    elif entity_name is not None:
        target = EntityTarget(
            entity_type=request_field(raw_target, "entity_type", "function"),
            entity_name=entity_name,
            member_name=request_field(raw_target, "member_name"),
        )
    return EditOperation(
        type=data.get("type", ""),
        target=target,
        content=data.get("content"),
    )


def multi_file_edit_from_dict(data: dict) -> MultiFileEdit:
    files = [
        FileEdit(
            path=f["path"],
            operations=[operation_from_dict(op) for op in f.get("operations", [])],
        )
        for f in data.get("files", [])
    ]
    return MultiFileEdit(files=files, commit_message=request_field(data, "commit_message"))
