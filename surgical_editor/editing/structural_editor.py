"""
Structural editor — entity-level edits driven by a syntax tree.

Each call parses the content into a :class:`SourceUnit`, applies one
:class:`StructuralModification` and returns the full regenerated text.
Supports JavaScript, JSX, TypeScript and TSX sources.
"""

from __future__ import annotations

import logging
import re
import textwrap
from typing import Callable, Optional

from ..syntax import (
    Declaration,
    SourceUnit,
    SyntaxEditError,
    SyntaxWorkspace,
    UnsupportedLanguageError,
)
from .models import EditResult, EntityLocation, StructuralModification

logger = logging.getLogger(__name__)

_IMPORT_RE = re.compile(
    r"""import\s+(?:(\w+)(?:\s*,\s*)?)?(?:\{([^}]+)\})?\s+from\s+['"]([^'"]+)['"]"""
)


class StructuralEditor:
    """Apply named, tree-based transformations to one file at a time."""

    def __init__(self, workspace: Optional[SyntaxWorkspace] = None) -> None:
        self._workspace = workspace if workspace is not None else SyntaxWorkspace()
        self._handlers: dict[str, Callable[[SourceUnit, StructuralModification], EditResult]] = {
            "insertFunction": self._insert_declaration,
            "insertClass": self._insert_declaration,
            "insertMethod": self._insert_method,
            "insertProperty": self._insert_property,
            "insertParameter": self._insert_parameter,
            "insertImport": self._insert_import,
            "modifyFunction": self._modify_function,
            "modifyClass": self._modify_class,
            "deleteEntity": self._delete_entity,
            "renameEntity": self._rename_entity,
            "wrapInTryCatch": self._wrap_in_try_catch,
        }

    @property
    def workspace(self) -> SyntaxWorkspace:
        return self._workspace

    def supports(self, path: str) -> bool:
        return self._workspace.provider.supports_structural(path)

    def modify(
        self,
        content: str,
        path: str,
        modification: StructuralModification,
        workspace: Optional[SyntaxWorkspace] = None,
    ) -> EditResult:
        """Apply *modification* to *content* parsed as *path*.

        Parameters
        ----------
        content:
            Current source text.
        path:
            File path; its extension selects the grammar.
        modification:
            The transformation to apply.
        workspace:
            Workspace to parse into; defaults to the editor's own.
        """
        handler = self._handlers.get(modification.type)
        if handler is None:
            return EditResult.fail(f"Unknown modification type: {modification.type}")

        if workspace is None:
            workspace = self._workspace
        if not workspace.provider.supports_structural(path):
            return EditResult.fail(f"Unsupported file type for structural edits: {path}")

        with workspace.lock:
            try:
                unit = workspace.parse(path, content)
                result = handler(unit, modification)
            except (SyntaxEditError, UnsupportedLanguageError) as exc:
                return EditResult.fail(str(exc))
            except Exception as exc:
                logger.exception(
                    "[Structural] %s on %s raised unexpectedly", modification.type, path,
                )
                return EditResult.fail(f"{type(exc).__name__}: {exc}")

        if result.success:
            logger.info(
                "[Structural] %s %s in %s",
                modification.type, modification.target or "", path,
            )
        return result

    def find_entity(
        self,
        content: str,
        path: str,
        name: str,
        member: Optional[str] = None,
    ) -> Optional[EntityLocation]:
        """Locate the top-level declaration *name* (or its *member*)."""
        if not self.supports(path):
            return None
        with self._workspace.lock:
            unit = self._workspace.parse(path, content)
            decl = unit.find_declaration(name)
            if decl is not None and member:
                decl = decl.get_member(member)
            if decl is None:
                return None
            return EntityLocation(
                name=decl.name,
                kind=decl.kind,
                start_line=decl.start_line_number,
                end_line=decl.end_line_number,
                text=decl.text,
            )

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def _insert_declaration(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.code:
            return _missing("code")

        if mod.position == "start":
            after_imports = max(
                (i + 1 for i, s in enumerate(unit.get_statements()) if s.type == "import_statement"),
                default=0,
            )
            unit.insert_statements(after_imports, mod.code)
        elif mod.position == "end" or not mod.relative_to:
            unit.add_statements(mod.code)
        else:
            anchor = unit.find_declaration(mod.relative_to)
            if anchor is None:
                return EditResult.fail(f'Target "{mod.relative_to}" not found')
            index = anchor.child_index()
            unit.insert_statements(index if mod.position == "before" else index + 1, mod.code)
        return _done(unit)

    def _insert_method(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.code:
            return _missing("code")
        cls = unit.get_class(mod.target)
        if cls is None:
            return EditResult.fail(f'Class "{mod.target}" not found')
        cls.add_member(mod.code)
        return _done(unit)

    def _insert_property(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.code:
            return _missing("code")
        owner = unit.get_class(mod.target) or unit.get_interface(mod.target)
        if owner is None:
            return EditResult.fail(f'Class/Interface "{mod.target}" not found')
        owner.add_member(mod.code)
        return _done(unit)

    def _insert_parameter(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.code:
            return _missing("code")
        func = self._callable(unit, mod)
        if func is None:
            return _function_not_found(mod)
        func.add_parameter(mod.code)
        return _done(unit)

    def _insert_import(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.code:
            return _missing("code")

        match = _IMPORT_RE.search(mod.code)
        if match:
            default_import, named, module_specifier = match.groups()
            named_imports = [n.strip() for n in (named or "").split(",") if n.strip()]
            unit.add_import_declaration(
                module_specifier,
                default_import=default_import,
                named_imports=named_imports or None,
            )
        elif unit.get_statements():
            unit.insert_statements(0, mod.code)
        else:
            unit.add_statements(mod.code)
        return _done(unit)

    # ------------------------------------------------------------------
    # Modifications
    # ------------------------------------------------------------------

    def _modify_function(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.code:
            return _missing("code")

        func = self._callable(unit, mod)
        if func is None:
            return _function_not_found(mod)
        if func.kind == "variable":
            func.set_initializer(mod.code)
        else:
            func.set_body_text(mod.code)
        return _done(unit)

    def _modify_class(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.code:
            return _missing("code")
        cls = unit.get_class(mod.target)
        if cls is None:
            return EditResult.fail(f'Class "{mod.target}" not found')
        cls.set_body_text(mod.code)
        return _done(unit)

    def _delete_entity(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")

        decl = unit.find_declaration(mod.target)
        if decl is not None and mod.member:
            decl = decl.get_member(mod.member)
            if decl is None:
                return EditResult.fail(f'Entity "{mod.target}.{mod.member}" not found')
        if decl is None:
            return EditResult.fail(f'Entity "{mod.target}" not found')
        decl.remove()
        return _done(unit)

    def _rename_entity(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")
        if not mod.new_name:
            return _missing("new_name")

        decl = unit.find_declaration(mod.target)
        if decl is None:
            return EditResult.fail(f'Entity "{mod.target}" not found')
        decl.rename(mod.new_name)
        return _done(unit)

    def _wrap_in_try_catch(self, unit: SourceUnit, mod: StructuralModification) -> EditResult:
        if not mod.target:
            return _missing("target")

        func = self._callable(unit, mod)
        if func is None or func.kind == "variable":
            return _function_not_found(mod)
        body = func.get_body()
        if body is None or body.type != "statement_block":
            return EditResult.fail("Function has no block body")

        name = f"{mod.target}.{mod.member}" if mod.member else mod.target
        statements = textwrap.indent(func.body_statements_text(), unit.indent)
        wrapped = (
            f"try {{\n{statements}\n}} catch (error) {{\n"
            f"{unit.indent}console.error('Error in {name}:', error);\n"
            f"{unit.indent}throw error;\n}}"
        )
        func.set_body_text(wrapped)
        return _done(unit)

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _callable(unit: SourceUnit, mod: StructuralModification) -> Optional[Declaration]:
        """Function, function-valued variable, or class method addressed by *mod*."""
        if mod.member:
            cls = unit.get_class(mod.target)
            if cls is None:
                return None
            member = cls.get_member(mod.member)
            return member if member is not None and member.kind == "method" else None
        func = unit.get_function(mod.target)
        if func is not None:
            return func
        var = unit.get_variable_declaration(mod.target)
        if var is not None and var.is_function_valued():
            return var
        return None


def _missing(field: str) -> EditResult:
    return EditResult.fail(f"{field} is required")


def _function_not_found(mod: StructuralModification) -> EditResult:
    if mod.member:
        return EditResult.fail(f'Function "{mod.target}.{mod.member}" not found')
    return EditResult.fail(f'Function "{mod.target}" not found')


def _done(unit: SourceUnit) -> EditResult:
    return EditResult.ok(unit.get_full_text())
