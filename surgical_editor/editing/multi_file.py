"""
Multi-file editor — applies edits to several files as one transaction.

The transaction is atomic by convention: nothing here writes to disk.
Callers persist :meth:`MultiFileEditResult.approved_contents` (empty unless
every file succeeded) or restore from :meth:`MultiFileEditor.get_backups`.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..syntax import SyntaxWorkspace, TreeSitterProvider
from .diff_parser import DiffParser
from .line_editor import LineRangeEditor
from .models import (
    EditOperation,
    EditResult,
    EntityTarget,
    LineRange,
    MultiFileEdit,
    MultiFileEditResult,
    StructuralModification,
)
from .patch_applier import DiffApplier
from .structural_editor import StructuralEditor
from .validator import EditValidator

logger = logging.getLogger(__name__)

_INSERT_BY_ENTITY = {
    "function": "insertFunction",
    "class": "insertClass",
    "method": "insertMethod",
    "import": "insertImport",
}


def entity_modification_type(op_type: str, entity_type: str) -> str:
    """Map an entity-targeted operation to a structural modification type."""
    if op_type == "delete":
        return "deleteEntity"
    if op_type in ("insert", "insertAfter", "insertBefore"):
        return _INSERT_BY_ENTITY.get(entity_type, "insertFunction")
    if op_type == "replace" and entity_type == "class":
        return "modifyClass"
    return "modifyFunction"


class MultiFileEditor:
    """Run a :class:`MultiFileEdit` over in-memory file contents.

    Transaction states, each logged: Idle -> BackedUp -> Applying ->
    [Validating] -> Committed | Aborted.
    """

    def __init__(
        self,
        validator: Optional[EditValidator] = None,
        applier: Optional[DiffApplier] = None,
        parser: Optional[DiffParser] = None,
        provider: Optional[TreeSitterProvider] = None,
    ) -> None:
        self._provider = provider or TreeSitterProvider()
        self._validator = validator or EditValidator(self._provider)
        self._parser = parser or DiffParser()
        self._applier = applier or DiffApplier(parser=self._parser)
        self._backups: dict[str, str] = {}

    def apply_multi_file_edit(
        self,
        files: dict[str, str],
        edits: MultiFileEdit,
        validate: bool = True,
    ) -> MultiFileEditResult:
        """Apply *edits* to *files* (``{path: content}``).

        Every file is attempted even after another fails, so the result
        reports all problems at once; ``success`` is true only when none
        failed.
        """
        self._backups = dict(files)
        logger.info("[MultiEdit] BackedUp: %d file(s)", len(self._backups))

        workspace = SyntaxWorkspace(self._provider)
        structural = StructuralEditor(workspace)
        results: dict[str, EditResult] = {}
        errors: list[str] = []

        logger.info("[MultiEdit] Applying: %d file edit(s)", len(edits.files))
        for file_edit in edits.files:
            path = file_edit.path
            original = files.get(path)
            if original is None:
                errors.append(f"File not found: {path}")
                continue

            current = original
            failed: Optional[EditResult] = None
            for operation in file_edit.operations:
                result = self._apply_operation(current, path, operation, structural)
                if not result.success:
                    failed = result
                    break
                current = result.content

            if failed is not None:
                logger.info("[MultiEdit] %s failed: %s", path, failed.error)
                results[path] = failed
                errors.append(f"{path}: {failed.error}")
                continue

            if validate and current != original:
                logger.debug("[MultiEdit] Validating %s", path)
                report = self._validator.validate_edit(original, current, path)
                if not report.valid:
                    messages = ", ".join(e.message for e in report.new_errors)
                    errors.append(f"{path}: Validation failed - {messages}")
                    results[path] = EditResult.fail(
                        "Validation failed", validation_errors=report.new_errors,
                    )
                    continue

            results[path] = EditResult.ok(
                current, diff=self._parser.generate(original, current, path),
            )

        workspace.clear()
        if errors:
            logger.warning("[MultiEdit] Aborted: %d error(s)", len(errors))
        else:
            logger.info("[MultiEdit] Committed: %d file(s)", len(results))

        return MultiFileEditResult(
            success=not errors,
            results=results,
            errors=errors or None,
            rollback_available=bool(self._backups),
            commit_message=edits.commit_message,
        )

    def get_backups(self) -> dict[str, str]:
        """Copy of the contents captured at the start of the last transaction."""
        return dict(self._backups)

    def clear_backups(self) -> None:
        self._backups.clear()

    # ------------------------------------------------------------------
    # Single operation
    # ------------------------------------------------------------------

    def _apply_operation(
        self,
        content: str,
        path: str,
        operation: EditOperation,
        structural: StructuralEditor,
    ) -> EditResult:
        if operation.type == "applyDiff":
            if not operation.content:
                return EditResult.fail("content is required")
            return self._applier.apply_diff_string(content, operation.content)

        target = operation.target
        if isinstance(target, LineRange):
            new = operation.content or ""
            if operation.type == "replace":
                return LineRangeEditor.replace_lines(content, target.start_line, target.end_line, new)
            if operation.type == "delete":
                return LineRangeEditor.delete_lines(content, target.start_line, target.end_line)
            if operation.type == "insertAfter":
                return LineRangeEditor.insert_after(content, target.end_line, new)
            if operation.type == "insertBefore":
                return LineRangeEditor.insert_before(content, target.start_line, new)
            return EditResult.fail(f"Unknown operation type: {operation.type}")

        if isinstance(target, EntityTarget):
            modification = StructuralModification(
                type=entity_modification_type(operation.type, target.entity_type),
                target=target.entity_name,
                code=operation.content,
                member=target.member_name,
            )
            return structural.modify(content, path, modification)

        return EditResult.fail("target is required")
