"""
DiffEditor — single entry point over the diff, line, structural,
validation and multi-file components.
"""

from __future__ import annotations

from typing import Optional

from ..config import Config
from ..syntax import SyntaxWorkspace, TreeSitterProvider
from .diff_parser import DiffParser
from .line_editor import LineRangeEditor
from .models import (
    EditResult,
    EntityLocation,
    MultiFileEdit,
    MultiFileEditResult,
    StructuralModification,
    UnifiedDiff,
    ValidationError,
    ValidationReport,
    request_field,
)
from .multi_file import MultiFileEditor
from .patch_applier import DiffApplier
from .structural_editor import StructuralEditor
from .validator import EditValidator


class DiffEditor:
    """Facade exposing every editing operation.

    Parameters
    ----------
    config:
        Settings for match mode, diff context, indentation and validation.
        Defaults to :meth:`Config.load`.
    """

    def __init__(self, config: Optional[Config] = None) -> None:
        self.config = config or Config.load()
        self._provider = TreeSitterProvider(indent=self.config.indent_unit)
        self._parser = DiffParser(context_lines=self.config.CONTEXT_LINES)
        self._applier = DiffApplier(self.config.MATCH_MODE, parser=self._parser)
        self._validator = EditValidator(self._provider, self.config.NEW_ERROR_KEY)
        self._structural = StructuralEditor(SyntaxWorkspace(self._provider))
        self._multi = MultiFileEditor(
            validator=self._validator,
            applier=self._applier,
            parser=self._parser,
            provider=self._provider,
        )

    # -- diffs -------------------------------------------------------------

    def parse_diff(self, diff_text: str) -> list[UnifiedDiff]:
        return self._parser.parse(diff_text)

    def generate_diff(self, old_content: str, new_content: str, path: str = "file") -> str:
        return self._parser.generate(old_content, new_content, path)

    def apply_diff(self, content: str, diff: UnifiedDiff) -> EditResult:
        return self._applier.apply(content, diff)

    def apply_diff_string(self, content: str, diff_text: str) -> EditResult:
        return self._applier.apply_diff_string(content, diff_text)

    # -- line ranges -------------------------------------------------------

    def replace_lines(self, content: str, start_line: int, end_line: int, new_content: str) -> EditResult:
        return LineRangeEditor.replace_lines(content, start_line, end_line, new_content)

    def insert_after(self, content: str, line: int, new_content: str) -> EditResult:
        return LineRangeEditor.insert_after(content, line, new_content)

    def insert_before(self, content: str, line: int, new_content: str) -> EditResult:
        return LineRangeEditor.insert_before(content, line, new_content)

    def delete_lines(self, content: str, start_line: int, end_line: int) -> EditResult:
        return LineRangeEditor.delete_lines(content, start_line, end_line)

    # -- structural --------------------------------------------------------

    def ast_modify(self, content: str, path: str, modification: StructuralModification) -> EditResult:
        return self._structural.modify(content, path, modification)

    def add_function(
        self,
        content: str,
        path: str,
        code: str,
        position: Optional[str] = None,
        relative_to: Optional[str] = None,
    ) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="insertFunction", code=code, position=position, relative_to=relative_to,
        ))

    def edit_function(self, content: str, path: str, name: str, new_body: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="modifyFunction", target=name, code=new_body,
        ))

    def add_import(self, content: str, path: str, import_statement: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="insertImport", code=import_statement,
        ))

    def delete_entity(self, content: str, path: str, name: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="deleteEntity", target=name,
        ))

    def rename_entity(self, content: str, path: str, old_name: str, new_name: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="renameEntity", target=old_name, new_name=new_name,
        ))

    def add_method(self, content: str, path: str, class_name: str, method_code: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="insertMethod", target=class_name, code=method_code,
        ))

    def wrap_in_try_catch(self, content: str, path: str, function_name: str) -> EditResult:
        return self.ast_modify(content, path, StructuralModification(
            type="wrapInTryCatch", target=function_name,
        ))

    def find_entity(
        self, content: str, path: str, name: str, member: Optional[str] = None,
    ) -> Optional[EntityLocation]:
        return self._structural.find_entity(content, path, name, member)

    # -- validation --------------------------------------------------------

    def validate(self, content: str, path: str) -> list[ValidationError]:
        return self._validator.validate(content, path)

    def is_syntax_valid(self, content: str, path: str) -> bool:
        return self._validator.is_syntax_valid(content, path)

    def validate_edit(self, original: str, edited: str, path: str) -> ValidationReport:
        return self._validator.validate_edit(original, edited, path)

    # -- multi-file --------------------------------------------------------

    def multi_file_edit(
        self,
        files: dict[str, str],
        edits: MultiFileEdit,
        validate: Optional[bool] = None,
    ) -> MultiFileEditResult:
        if validate is None:
            validate = self.config.VALIDATE_EDITS
        return self._multi.apply_multi_file_edit(files, edits, validate)

    def get_backups(self) -> dict[str, str]:
        return self._multi.get_backups()

    def clear_backups(self) -> None:
        self._multi.clear_backups()

    def clear(self) -> None:
        """Drop parsed units and backups held from earlier calls."""
        self._structural.workspace.clear()
        self._multi.clear_backups()

    # -- preview -----------------------------------------------------------

    def preview_edit(self, content: str, path: str, edit: dict) -> dict:
        """Apply *edit* in memory and describe the outcome without persisting.

        *edit* holds exactly one of ``diff`` (unified diff text),
        ``modification`` (a structural modification dict) or ``line_range``
        (``start_line``/``end_line`` plus ``content``, replacing the range).
        The returned dict has ``success`` and, on success, ``preview``,
        ``diff`` and ``validation``; on failure, ``error``.
        """
        if edit.get("diff"):
            result = self.apply_diff_string(content, edit["diff"])
        elif edit.get("modification"):
            result = self.ast_modify(
                content, path, StructuralModification.from_dict(edit["modification"]),
            )
        elif request_field(edit, "line_range"):
            raw = request_field(edit, "line_range")
            try:
                start = int(request_field(raw, "start_line", 0))
                end = int(request_field(raw, "end_line", start))
            except (TypeError, ValueError):
                return {"success": False, "error": "start_line and end_line must be integers"}
            result = self.replace_lines(
                content, start, end, raw.get("content", edit.get("content", "")),
            )
        else:
            return {"success": False, "error": "No valid edit specified"}

        if not result.success:
            return {"success": False, "error": result.error}

        report = self.validate_edit(content, result.content, path)
        return {
            "success": True,
            "preview": result.content,
            "diff": self.generate_diff(content, result.content, path),
            "validation": report.to_dict(),
        }
