"""
Mutable source wrapper over a tree-sitter tree.

A :class:`SourceUnit` owns the bytes of one file and the tree parsed from
them.  Every mutation splices the bytes and re-parses, so node objects and
:class:`Declaration` handles obtained before a mutation are stale afterwards.
Lookups only consider top-level declarations (optionally wrapped in
``export``), matching how module-level entities are addressed by name.
"""

from __future__ import annotations

import logging
import textwrap
from typing import Iterator, Optional

from .diagnostics import Diagnostic, collect_diagnostics
from .parser import line_indent, line_start, node_text

logger = logging.getLogger(__name__)


class SyntaxEditError(Exception):
    """Raised when a requested tree mutation does not fit the target node."""


# ---------------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------------

FUNCTION_KINDS = ("function_declaration", "generator_function_declaration")
CLASS_KINDS = ("class_declaration", "abstract_class_declaration")
VARIABLE_KINDS = ("lexical_declaration", "variable_declaration")
INTERFACE_KINDS = ("interface_declaration",)
TYPE_ALIAS_KINDS = ("type_alias_declaration",)
ENUM_KINDS = ("enum_declaration",)

FUNCTION_VALUE_KINDS = (
    "arrow_function", "function_expression", "function",
    "generator_function",
)

_BLOCK_LIKE = FUNCTION_KINDS + CLASS_KINDS + INTERFACE_KINDS + ENUM_KINDS

_TRIVIA = ("comment", "hash_bang_line")

_MEMBER_KINDS = (
    "method_definition", "field_definition", "public_field_definition",
    "method_signature", "abstract_method_signature", "property_signature",
)

_FUNCTION_SCOPES = FUNCTION_KINDS + FUNCTION_VALUE_KINDS + ("method_definition",)
_BLOCK_SCOPES = ("statement_block", "class_static_block", "switch_case", "switch_default")

_REFERENCE_KINDS = ("identifier", "type_identifier", "shorthand_property_identifier")
_IMPORT_PARENTS = ("import_specifier", "namespace_import", "import_clause")


def _same_node(a, b) -> bool:
    return (
        a is not None and b is not None
        and a.type == b.type
        and a.start_byte == b.start_byte
        and a.end_byte == b.end_byte
    )


def _unwrap_export(statement):
    if statement.type == "export_statement":
        return statement.child_by_field_name("declaration")
    return statement


def _name_of(node) -> Optional[str]:
    name = node.child_by_field_name("name") or node.child_by_field_name("property")
    return node_text(name) if name is not None else None


def _binding_names(node) -> set[str]:
    """Names bound by a declaration or parameter pattern."""
    names: set[str] = set()
    stack = [node]
    while stack:
        n = stack.pop()
        t = n.type
        if t in ("identifier", "shorthand_property_identifier_pattern", "type_identifier"):
            names.add(node_text(n))
        elif t == "assignment_pattern":
            left = n.child_by_field_name("left")
            if left is not None:
                stack.append(left)
        elif t == "pair_pattern":
            value = n.child_by_field_name("value")
            if value is not None:
                stack.append(value)
        elif t in ("required_parameter", "optional_parameter"):
            pattern = n.child_by_field_name("pattern")
            if pattern is not None:
                stack.append(pattern)
        elif t == "variable_declarator":
            name = n.child_by_field_name("name")
            if name is not None:
                stack.append(name)
        elif t in FUNCTION_KINDS + CLASS_KINDS:
            name = n.child_by_field_name("name")
            if name is not None:
                names.add(node_text(name))
        elif t in VARIABLE_KINDS + (
            "formal_parameters", "object_pattern", "array_pattern", "rest_pattern",
        ):
            stack.extend(n.named_children)
    return names


# ---------------------------------------------------------------------------
# Declaration handle
# ---------------------------------------------------------------------------

class Declaration:
    """A named declaration inside a :class:`SourceUnit`.

    ``node`` is the declaration itself (for variables, the declarator);
    ``statement`` is the node removed or used as an insertion anchor
    (the top-level statement, including any ``export`` wrapper).
    """

    def __init__(self, unit: "SourceUnit", node, statement, kind: str, name: str) -> None:
        self.unit = unit
        self.node = node
        self.statement = statement
        self.kind = kind
        self.name = name

    @property
    def name_node(self):
        return self.node.child_by_field_name("name") or self.node.child_by_field_name("property")

    @property
    def text(self) -> str:
        return node_text(self.node)

    @property
    def start_line_number(self) -> int:
        return self.node.start_point[0] + 1

    @property
    def end_line_number(self) -> int:
        return self.node.end_point[0] + 1

    def child_index(self) -> int:
        """Index of this declaration's statement among the unit's statements."""
        for index, statement in enumerate(self.unit.get_statements()):
            if _same_node(statement, self.statement):
                return index
        raise SyntaxEditError(f'"{self.name}" is not a top-level statement')

    # -- reads -----------------------------------------------------------

    def get_body(self):
        return self.node.child_by_field_name("body")

    def get_initializer(self):
        return self.node.child_by_field_name("value")

    def is_function_valued(self) -> bool:
        value = self.get_initializer()
        return value is not None and value.type in FUNCTION_VALUE_KINDS

    def get_member(self, name: str) -> Optional["Declaration"]:
        body = self.get_body()
        if body is None:
            return None
        for member in body.named_children:
            if member.type in _MEMBER_KINDS and _name_of(member) == name:
                kind = "method" if "method" in member.type else "property"
                return Declaration(self.unit, member, member, kind, name)
        return None

    def body_statements_text(self) -> str:
        """Dedented source of the statements inside a block body."""
        body = self.get_body()
        if body is None or body.type != "statement_block":
            raise SyntaxEditError(f'"{self.name}" has no block body')
        statements = body.named_children
        if not statements:
            return ""
        source = self.unit.source
        start = line_start(source, statements[0].start_byte)
        if source[start:statements[0].start_byte].strip():
            start = statements[0].start_byte
        text = source[start:statements[-1].end_byte].decode("utf-8")
        return textwrap.dedent(text)

    # -- mutations -------------------------------------------------------

    def remove(self) -> None:
        self.unit.remove_node(self.statement)

    def rename(self, new_name: str) -> int:
        return self.unit.rename_declaration(self, new_name)

    def set_body_text(self, text: str) -> None:
        body = self.get_body()
        if body is None or body.type not in ("statement_block", "class_body"):
            raise SyntaxEditError(f'"{self.name}" has no block body')
        self.unit.replace_block(body, text)

    def set_initializer(self, text: str) -> None:
        value = self.get_initializer()
        if value is None:
            anchor = self.node.child_by_field_name("type") or self.name_node
            self.unit.replace_range(anchor.end_byte, anchor.end_byte, " = " + text.strip())
        else:
            self.unit.replace_range(value.start_byte, value.end_byte, text.strip())

    def add_member(self, text: str) -> None:
        body = self.get_body()
        if body is None:
            raise SyntaxEditError(f'"{self.name}" has no member body')
        self.unit.append_to_block(body, text, spaced=self.kind == "class")

    def add_parameter(self, text: str) -> None:
        target = self.node
        if self.kind == "variable":
            target = self.get_initializer()
            if target is None or target.type not in FUNCTION_VALUE_KINDS:
                raise SyntaxEditError(f'"{self.name}" is not a function')
        params = target.child_by_field_name("parameters")
        if params is None:
            single = target.child_by_field_name("parameter")
            if single is None:
                raise SyntaxEditError(f'"{self.name}" has no parameter list')
            self.unit.replace_range(
                single.start_byte, single.end_byte,
                f"({node_text(single)}, {text.strip()})",
            )
            return
        existing = [p for p in params.named_children if p.type not in _TRIVIA]
        if existing:
            end = existing[-1].end_byte
            self.unit.replace_range(end, end, ", " + text.strip())
        else:
            close = params.end_byte - 1
            self.unit.replace_range(close, close, text.strip())


# ---------------------------------------------------------------------------
# Source unit
# ---------------------------------------------------------------------------

class SourceUnit:
    """One parsed file whose text can be edited through its syntax tree."""

    def __init__(self, path: str, text: str, language: str, parser, indent: str = "    ") -> None:
        self.path = path
        self.language = language
        self.indent = indent
        self._parser = parser
        self._source = text.encode("utf-8")
        self._tree = parser.parse(self._source)

    @property
    def source(self) -> bytes:
        return self._source

    @property
    def root(self):
        return self._tree.root_node

    def get_full_text(self) -> str:
        return self._source.decode("utf-8")

    def get_pre_emit_diagnostics(self) -> list[Diagnostic]:
        return collect_diagnostics(self.root, self.language)

    # -- statements ------------------------------------------------------

    def get_statements(self) -> list:
        return [n for n in self.root.named_children if n.type not in _TRIVIA]

    def get_import_statements(self) -> list:
        return [s for s in self.get_statements() if s.type == "import_statement"]

    # -- lookups ---------------------------------------------------------

    def get_function(self, name: str) -> Optional[Declaration]:
        return self._find(FUNCTION_KINDS, "function", name)

    def get_class(self, name: str) -> Optional[Declaration]:
        return self._find(CLASS_KINDS, "class", name)

    def get_variable_declaration(self, name: str) -> Optional[Declaration]:
        return self._find(VARIABLE_KINDS, "variable", name)

    def get_interface(self, name: str) -> Optional[Declaration]:
        return self._find(INTERFACE_KINDS, "interface", name)

    def get_type_alias(self, name: str) -> Optional[Declaration]:
        return self._find(TYPE_ALIAS_KINDS, "type", name)

    def get_enum(self, name: str) -> Optional[Declaration]:
        return self._find(ENUM_KINDS, "enum", name)

    def find_declaration(self, name: str) -> Optional[Declaration]:
        """First declaration named *name*, searching every kind in a fixed order."""
        for lookup in (
            self.get_function, self.get_class, self.get_variable_declaration,
            self.get_interface, self.get_type_alias, self.get_enum,
        ):
            decl = lookup(name)
            if decl is not None:
                return decl
        return None

    def _find(self, kinds: tuple, kind: str, name: str) -> Optional[Declaration]:
        for statement in self.get_statements():
            decl = _unwrap_export(statement)
            if decl is None or decl.type not in kinds:
                continue
            if kind == "variable":
                for declarator in decl.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    name_node = declarator.child_by_field_name("name")
                    if name_node is not None and node_text(name_node) == name:
                        return Declaration(self, declarator, statement, kind, name)
            elif _name_of(decl) == name:
                return Declaration(self, decl, statement, kind, name)
        return None

    # -- low-level splicing ---------------------------------------------

    def replace_range(self, start: int, end: int, text: str | bytes) -> None:
        self.replace_ranges([(start, end, text)])

    def replace_ranges(self, edits: list[tuple[int, int, str | bytes]]) -> None:
        """Apply non-overlapping byte-range replacements and re-parse once."""
        source = self._source
        for start, end, text in sorted(edits, key=lambda e: e[0], reverse=True):
            data = text.encode("utf-8") if isinstance(text, str) else text
            source = source[:start] + data + source[end:]
        self._source = source
        self._tree = self._parser.parse(source)

    def node_span(self, node) -> tuple[int, int]:
        """Byte span of *node* widened to its own-line leading comments,
        a same-line trailing comment and a trailing ``;`` token."""
        source = self._source
        start, end = node.start_byte, node.end_byte

        row = node.start_point[0]
        prev = node.prev_named_sibling
        while (
            prev is not None
            and prev.type == "comment"
            and prev.end_point[0] == row - 1
            and not source[line_start(source, prev.start_byte):prev.start_byte].strip()
        ):
            start = prev.start_byte
            row = prev.start_point[0]
            prev = prev.prev_named_sibling

        nxt = node.next_sibling
        if nxt is not None and nxt.type == ";" and nxt.start_point[0] == node.end_point[0]:
            end = nxt.end_byte
            nxt = nxt.next_sibling
        if nxt is not None and nxt.type == "comment" and nxt.start_point[0] == node.end_point[0]:
            end = nxt.end_byte
        return start, end

    # -- structural mutations -------------------------------------------

    def remove_node(self, node) -> None:
        """Delete *node* with its comments, whole lines and one spare blank line."""
        source = self._source
        start, end = self.node_span(node)

        ls = line_start(source, start)
        if not source[ls:start].strip():
            start = ls
        newline = source.find(b"\n", end)
        line_end = len(source) if newline == -1 else newline
        if not source[end:line_end].strip():
            end = len(source) if newline == -1 else newline + 1

        if end >= len(source):
            while start >= 2 and source[start - 2:start] == b"\n\n":
                start -= 1
        else:
            newline = source.find(b"\n", end)
            next_line = source[end:len(source) if newline == -1 else newline]
            before = source[:start]
            prev_blank = start == 0 or before.endswith(b"\n\n")
            if not next_line.strip() and (prev_blank or before.rstrip().endswith(b"{")):
                end = len(source) if newline == -1 else newline + 1
            elif next_line.strip().startswith(b"}") and before.endswith(b"\n\n"):
                # No blank line left dangling before a closing brace
                start -= 1

        self.replace_range(start, end, b"")

    def add_statements(self, text: str) -> None:
        """Append statements at the end of the file."""
        body = _normalize_block(text)
        current = self.get_full_text()
        if not current.strip():
            self.replace_range(0, len(self._source), body + "\n")
            return
        statements = self.get_statements()
        prefix = "" if current.endswith("\n") else "\n"
        last_block_like = bool(statements) and _unwrap_export(statements[-1]) is not None \
            and _unwrap_export(statements[-1]).type in _BLOCK_LIKE
        if (self._is_block_like(body) or last_block_like) and not (current + prefix).endswith("\n\n"):
            prefix += "\n"
        end = len(self._source)
        self.replace_range(end, end, prefix + body + "\n")

    def insert_statements(self, index: int, text: str) -> None:
        """Insert statements so the first of them lands at statement *index*."""
        statements = self.get_statements()
        if index >= len(statements):
            self.add_statements(text)
            return
        body = _normalize_block(text)
        anchor_start, _ = self.node_span(statements[max(index, 0)])
        pos = line_start(self._source, anchor_start)
        if self._source[pos:anchor_start].strip():
            pos = anchor_start
        separator = "\n\n" if self._is_block_like(body) else "\n"
        self.replace_range(pos, pos, body + separator)

    def add_import_declaration(
        self,
        module_specifier: str,
        default_import: Optional[str] = None,
        named_imports: Optional[list[str]] = None,
    ) -> str:
        """Add an import after the existing imports (or at the top).

        Returns the import text that was inserted.
        """
        parts: list[str] = []
        if default_import:
            parts.append(default_import)
        if named_imports:
            parts.append("{ " + ", ".join(named_imports) + " }")
        if parts:
            text = f'import {", ".join(parts)} from "{module_specifier}";'
        else:
            text = f'import "{module_specifier}";'

        imports = self.get_import_statements()
        if imports:
            _, end = self.node_span(imports[-1])
            self.replace_range(end, end, "\n" + text)
        else:
            self.insert_statements(0, text)
        return text

    def replace_block(self, block, text: str) -> None:
        """Replace the contents of a ``{ ... }`` block, re-indenting *text*."""
        base = line_indent(self._source, block.start_byte)
        inner = base + self.indent
        body = textwrap.dedent(text).strip("\n")
        if body.strip():
            lines = [inner + line if line.strip() else "" for line in body.split("\n")]
            new = "{\n" + "\n".join(lines) + "\n" + base + "}"
        else:
            new = "{\n" + base + "}"
        self.replace_range(block.start_byte, block.end_byte, new)

    def append_to_block(self, block, text: str, spaced: bool = False) -> None:
        """Append a member before the closing brace of *block*."""
        source = self._source
        base = line_indent(source, block.start_byte)
        members = [c for c in block.named_children if c.type not in _TRIVIA]
        inner = base + self.indent
        if members and line_start(source, members[0].start_byte) > block.start_byte:
            inner = line_indent(source, members[0].start_byte)

        body = textwrap.dedent(text).strip("\n")
        lines = [inner + line if line.strip() else "" for line in body.split("\n")]

        cut = block.end_byte - 1
        while cut > block.start_byte + 1 and source[cut - 1:cut] in (b" ", b"\t", b"\r", b"\n"):
            cut -= 1
        separator = "\n\n" if members and spaced else "\n"
        new = separator + "\n".join(lines) + "\n" + base + "}"
        self.replace_range(cut, block.end_byte, new)

    # -- rename ----------------------------------------------------------

    def rename_declaration(self, declaration: Declaration, new_name: str) -> int:
        """Rename *declaration* and every reference resolving to it.

        References inside a scope that re-declares the name are left alone,
        as are member names and import specifiers.  Returns the number of
        sites rewritten.
        """
        old = declaration.name
        name_node = declaration.name_node
        edits: list[tuple[int, int, str]] = []
        for node in self._iter_named(old):
            if _same_node(node, name_node):
                edits.append((node.start_byte, node.end_byte, new_name))
                continue
            parent = node.parent
            if parent is not None and parent.type in _IMPORT_PARENTS:
                continue
            if self._is_shadowed(node, old):
                continue
            if node.type == "shorthand_property_identifier":
                edits.append((node.start_byte, node.end_byte, f"{old}: {new_name}"))
            else:
                edits.append((node.start_byte, node.end_byte, new_name))
        self.replace_ranges(edits)
        logger.debug("[Structural] Renamed %s -> %s at %d site(s)", old, new_name, len(edits))
        return len(edits)

    def _iter_named(self, name: str) -> Iterator:
        encoded = name.encode("utf-8")
        stack = [self.root]
        while stack:
            node = stack.pop()
            if node.type in _REFERENCE_KINDS and node.text == encoded:
                yield node
                continue
            stack.extend(reversed(node.children))

    def _is_shadowed(self, node, name: str) -> bool:
        child = node
        scope = node.parent
        while scope is not None and scope.type != "program":
            if self._declares_locally(scope, child, name):
                return True
            child = scope
            scope = scope.parent
        return False

    @staticmethod
    def _declares_locally(scope, came_from, name: str) -> bool:
        t = scope.type
        if t in _FUNCTION_SCOPES:
            params = scope.child_by_field_name("parameters") or scope.child_by_field_name("parameter")
            if params is not None and name in _binding_names(params):
                return True
            own_name = scope.child_by_field_name("name")
            if t in FUNCTION_VALUE_KINDS and own_name is not None and node_text(own_name) == name:
                return True
            return False
        if t in _BLOCK_SCOPES:
            for statement in scope.named_children:
                if statement.type in VARIABLE_KINDS + FUNCTION_KINDS + CLASS_KINDS \
                        and name in _binding_names(statement):
                    return True
            return False
        if t == "for_statement":
            init = scope.child_by_field_name("initializer")
            return init is not None and name in _binding_names(init)
        if t == "for_in_statement":
            left = scope.child_by_field_name("left")
            kind = scope.child_by_field_name("kind")
            return kind is not None and left is not None and name in _binding_names(left)
        if t == "catch_clause":
            param = scope.child_by_field_name("parameter")
            return param is not None and name in _binding_names(param)
        return False

    # -- helpers ---------------------------------------------------------

    def _is_block_like(self, text: str) -> bool:
        tree = self._parser.parse(text.encode("utf-8"))
        for node in tree.root_node.named_children:
            if node.type in _TRIVIA:
                continue
            decl = _unwrap_export(node)
            return decl is not None and decl.type in _BLOCK_LIKE
        return False


def _normalize_block(text: str) -> str:
    return textwrap.dedent(text).strip("\n").rstrip()
