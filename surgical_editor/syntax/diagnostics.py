"""
Diagnostics pass over a tree-sitter tree.

Reports ``ERROR`` nodes (unexpected syntax), ``MISSING`` nodes (tokens the
parser had to invent) and, for JavaScript/TypeScript, duplicate top-level
declarations.  Messages never embed positions so that the same problem is
recognised before and after an edit that shifts lines.

Every diagnostic produced here is ``CATEGORY_ERROR``.  A tree-sitter tree
carries no type or binding information, so nothing in this pass can support a
softer category; the validator's ``"type"`` bucket only fills from a provider
that reports other categories.
"""

from __future__ import annotations

from dataclasses import dataclass

from .parser import STRUCTURAL_LANGUAGES, node_text

CATEGORY_ERROR = "error"

CODE_UNEXPECTED = "SYN001"
CODE_MISSING = "SYN002"
CODE_DUPLICATE = "DUP001"

_SNIPPET_LIMIT = 40

_BLOCK_SCOPED_DECLARATIONS = (
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
)


@dataclass
class Diagnostic:
    category: str    # "error" | "warning" | "suggestion" | "message"
    message: str
    line: int        # 1-indexed
    column: int      # 1-indexed
    code: str


def collect_diagnostics(root, language: str) -> list[Diagnostic]:
    """Return every diagnostic for the tree rooted at *root*, in source order."""
    diagnostics = _syntax_diagnostics(root)
    if language in STRUCTURAL_LANGUAGES:
        diagnostics.extend(_duplicate_declarations(root))
    return diagnostics


def _syntax_diagnostics(root) -> list[Diagnostic]:
    found: list[Diagnostic] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR":
            found.append(_diagnostic(node, CODE_UNEXPECTED, _unexpected_message(node)))
            continue
        if node.is_missing:
            found.append(_diagnostic(node, CODE_MISSING, f"'{node.type}' expected."))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    return found


def _unexpected_message(node) -> str:
    text = node_text(node).strip()
    snippet = text.split("\n", 1)[0].strip()
    if not snippet:
        return "Unexpected syntax."
    if len(snippet) > _SNIPPET_LIMIT:
        snippet = snippet[:_SNIPPET_LIMIT] + "..."
    return f"Unexpected syntax: '{snippet}'"


def _duplicate_declarations(root) -> list[Diagnostic]:
    seen: set[str] = set()
    found: list[Diagnostic] = []
    for statement in root.named_children:
        decl = statement
        if statement.type == "export_statement":
            decl = statement.child_by_field_name("declaration")
            if decl is None:
                continue
        for name_node in _declared_names(decl):
            name = node_text(name_node)
            if name in seen:
                found.append(_diagnostic(
                    name_node, CODE_DUPLICATE, f"Duplicate declaration '{name}'.",
                ))
            seen.add(name)
    return found


def _declared_names(decl) -> list:
    if decl.type in _BLOCK_SCOPED_DECLARATIONS:
        name = decl.child_by_field_name("name")
        return [name] if name is not None else []
    if decl.type == "lexical_declaration":
        names = []
        for declarator in decl.named_children:
            if declarator.type != "variable_declarator":
                continue
            name = declarator.child_by_field_name("name")
            if name is not None and name.type == "identifier":
                names.append(name)
        return names
    return []


def _diagnostic(node, code: str, message: str) -> Diagnostic:
    return Diagnostic(
        category=CATEGORY_ERROR,
        message=message,
        line=node.start_point[0] + 1,
        column=node.start_point[1] + 1,
        code=code,
    )
