"""Tests for the StructuralEditor (tree-sitter backed)."""

from unittest.mock import patch

import pytest

from surgical_editor.editing.models import StructuralModification
from surgical_editor.editing.structural_editor import StructuralEditor
from surgical_editor.syntax import SourceUnit, SyntaxWorkspace, TreeSitterProvider


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def editor():
    """Editor whose generated blocks use two-space indentation."""
    return StructuralEditor(SyntaxWorkspace(TreeSitterProvider(indent="  ")))


def _mod(type_: str, **kwargs) -> StructuralModification:
    return StructuralModification(type=type_, **kwargs)


# ---------------------------------------------------------------------------
# insertImport
# ---------------------------------------------------------------------------

class TestInsertImport:
    def test_import_goes_above_untouched_code(self, editor):
        content = "function add(a,b){return a+b;}\nconsole.log(add(1,2));"
        result = editor.modify(
            content, "math.js", _mod("insertImport", code='import { z } from "./z";'),
        )
        assert result.success
        assert result.content == (
            'import { z } from "./z";\n'
            "function add(a,b){return a+b;}\n"
            "console.log(add(1,2));"
        )

    def test_import_goes_after_existing_imports(self, editor):
        content = 'import a from "a";\nimport { b } from "b";\n\nconst x = 1;\n'
        result = editor.modify(
            content, "app.js", _mod("insertImport", code="import c, { d, e } from 'c'"),
        )
        assert result.content == (
            'import a from "a";\n'
            'import { b } from "b";\n'
            'import c, { d, e } from "c";\n'
            "\n"
            "const x = 1;\n"
        )

    def test_default_import_only(self, editor):
        result = editor.modify(
            "run();\n", "app.js", _mod("insertImport", code="import React from 'react';"),
        )
        assert result.content == 'import React from "react";\nrun();\n'

    def test_unmatched_import_is_inserted_literally(self, editor):
        result = editor.modify(
            "run();\n", "app.js", _mod("insertImport", code='import "./styles.css";'),
        )
        assert result.content == 'import "./styles.css";\nrun();\n'

    def test_import_into_empty_file(self, editor):
        result = editor.modify("", "app.js", _mod("insertImport", code='import "./polyfill";'))
        assert result.content == 'import "./polyfill";\n'

    def test_code_required(self, editor):
        result = editor.modify("run();\n", "app.js", _mod("insertImport"))
        assert not result.success
        assert result.error == "code is required"


# ---------------------------------------------------------------------------
# insertFunction / insertClass
# ---------------------------------------------------------------------------

class TestInsertDeclaration:
    def test_append_at_end(self, editor):
        result = editor.modify(
            "function a() {}\n", "app.js",
            _mod("insertFunction", code="function b() {\n  return 1;\n}"),
        )
        assert result.content == "function a() {}\n\nfunction b() {\n  return 1;\n}\n"

    def test_insert_before_relative_declaration(self, editor):
        content = "function a() {}\n\nfunction c() {}\n"
        result = editor.modify(
            content, "app.js",
            _mod("insertFunction", code="function b() {}", position="before", relative_to="c"),
        )
        assert result.content == "function a() {}\n\nfunction b() {}\n\nfunction c() {}\n"

    def test_insert_after_relative_variable(self, editor):
        content = "const handler = () => 1;\nfunction last() {}\n"
        result = editor.modify(
            content, "app.js",
            _mod("insertFunction", code="function middle() {}", relative_to="handler"),
        )
        lines = result.content.split("\n")
        assert lines.index("function middle() {}") < lines.index("function last() {}")
        assert lines[0] == "const handler = () => 1;"

    def test_insert_at_start_goes_below_imports(self, editor):
        content = 'import a from "a";\n\nfunction main() {}\n'
        result = editor.modify(
            content, "app.js",
            _mod("insertFunction", code="function helper() {}", position="start"),
        )
        assert result.content == (
            'import a from "a";\n\nfunction helper() {}\n\nfunction main() {}\n'
        )

    def test_relative_target_missing(self, editor):
        result = editor.modify(
            "function a() {}\n", "app.js",
            _mod("insertFunction", code="function b() {}", relative_to="zzz"),
        )
        assert result.error == 'Target "zzz" not found'

    def test_insert_class(self, editor):
        result = editor.modify(
            "const x = 1;\n", "app.ts",
            _mod("insertClass", code="class Point {\n  x = 0;\n}"),
        )
        assert result.content == "const x = 1;\n\nclass Point {\n  x = 0;\n}\n"


# ---------------------------------------------------------------------------
# Members and parameters
# ---------------------------------------------------------------------------

GREETER = """\
class Greeter {
  hello() {
    return 'hi';
  }
}
"""


class TestMembers:
    def test_insert_method(self, editor):
        result = editor.modify(
            GREETER, "greeter.js",
            _mod("insertMethod", target="Greeter", code="bye() {\n  return 'bye';\n}"),
        )
        assert result.content == (
            "class Greeter {\n"
            "  hello() {\n"
            "    return 'hi';\n"
            "  }\n"
            "\n"
            "  bye() {\n"
            "    return 'bye';\n"
            "  }\n"
            "}\n"
        )

    def test_insert_method_into_empty_class(self, editor):
        result = editor.modify(
            "class Empty {}\n", "e.js", _mod("insertMethod", target="Empty", code="run() {}"),
        )
        assert result.content == "class Empty {\n  run() {}\n}\n"

    def test_insert_method_unknown_class(self, editor):
        result = editor.modify(
            GREETER, "greeter.js", _mod("insertMethod", target="Nope", code="x() {}"),
        )
        assert result.error == 'Class "Nope" not found'

    def test_insert_property_into_interface(self, editor):
        content = "interface User {\n  id: number;\n}\n"
        result = editor.modify(
            content, "user.ts", _mod("insertProperty", target="User", code="name: string;"),
        )
        assert result.content == "interface User {\n  id: number;\n  name: string;\n}\n"

    def test_insert_property_unknown_owner(self, editor):
        result = editor.modify(
            "const a = 1;\n", "a.ts", _mod("insertProperty", target="User", code="x: 1;"),
        )
        assert result.error == 'Class/Interface "User" not found'

    def test_insert_parameter(self, editor):
        result = editor.modify(
            "function greet(name) {}\n", "g.js",
            _mod("insertParameter", target="greet", code="greeting = 'Hi'"),
        )
        assert result.content == "function greet(name, greeting = 'Hi') {}\n"

    def test_insert_parameter_into_empty_list(self, editor):
        result = editor.modify(
            "const go = () => 1;\n", "g.js",
            _mod("insertParameter", target="go", code="speed"),
        )
        assert result.content == "const go = (speed) => 1;\n"


# ---------------------------------------------------------------------------
# modifyFunction / modifyClass / wrapInTryCatch
# ---------------------------------------------------------------------------

class TestModify:
    def test_replace_function_body(self, editor):
        content = "function add(a, b) {\n  return a - b;\n}\n"
        result = editor.modify(
            content, "math.js", _mod("modifyFunction", target="add", code="return a + b;"),
        )
        assert result.content == "function add(a, b) {\n  return a + b;\n}\n"

    def test_exported_function(self, editor):
        content = "export function add(a, b) { return a - b; }\n"
        result = editor.modify(
            content, "math.ts", _mod("modifyFunction", target="add", code="return a + b;"),
        )
        assert result.content == "export function add(a, b) {\n  return a + b;\n}\n"

    def test_arrow_function_variable_gets_new_initializer(self, editor):
        result = editor.modify(
            "const double = (x) => x + x;\n", "m.js",
            _mod("modifyFunction", target="double", code="(x) => x * 2"),
        )
        assert result.content == "const double = (x) => x * 2;\n"

    def test_plain_variable_is_not_a_function(self, editor):
        result = editor.modify(
            "const limit = 10;\n", "m.js",
            _mod("modifyFunction", target="limit", code="return 1;"),
        )
        assert result.error == 'Function "limit" not found'

    def test_method_body_via_member(self, editor):
        result = editor.modify(
            GREETER, "greeter.js",
            _mod("modifyFunction", target="Greeter", member="hello", code="return 'hey';"),
        )
        assert "    return 'hey';" in result.content
        assert "return 'hi'" not in result.content

    def test_code_required(self, editor):
        result = editor.modify(
            "function f() {}\n", "f.js", _mod("modifyFunction", target="f"),
        )
        assert result.error == "code is required"

    def test_target_required(self, editor):
        result = editor.modify("function f() {}\n", "f.js", _mod("modifyFunction", code="x"))
        assert result.error == "target is required"

    def test_modify_class_replaces_members(self, editor):
        result = editor.modify(
            GREETER, "greeter.js",
            _mod("modifyClass", target="Greeter", code="greet() {\n  return 'yo';\n}"),
        )
        assert result.content == (
            "class Greeter {\n  greet() {\n    return 'yo';\n  }\n}\n"
        )

    def test_wrap_in_try_catch(self, editor):
        content = "function load() {\n  const data = read();\n  return data;\n}\n"
        result = editor.modify(content, "load.js", _mod("wrapInTryCatch", target="load"))
        assert result.content == (
            "function load() {\n"
            "  try {\n"
            "    const data = read();\n"
            "    return data;\n"
            "  } catch (error) {\n"
            "    console.error('Error in load:', error);\n"
            "    throw error;\n"
            "  }\n"
            "}\n"
        )

    def test_wrap_unknown_function(self, editor):
        result = editor.modify("const a = 1;\n", "a.js", _mod("wrapInTryCatch", target="a"))
        assert result.error == 'Function "a" not found'


# ---------------------------------------------------------------------------
# deleteEntity
# ---------------------------------------------------------------------------

class TestDeleteEntity:
    def test_delete_first_function_and_blank_line(self, editor):
        content = "function foo() {}\n\nfunction bar() {}\n"
        result = editor.modify(content, "a.js", _mod("deleteEntity", target="foo"))
        assert result.content == "function bar() {}\n"

    def test_delete_last_function(self, editor):
        content = "function foo() {}\n\nfunction bar() {}\n"
        result = editor.modify(content, "a.js", _mod("deleteEntity", target="bar"))
        assert result.content == "function foo() {}\n"

    def test_delete_variable_statement(self, editor):
        result = editor.modify(
            "const a = 1;\nconst b = 2;\n", "a.js", _mod("deleteEntity", target="a"),
        )
        assert result.content == "const b = 2;\n"

    def test_leading_comment_goes_with_declaration(self, editor):
        content = "// helper\nfunction h() {}\n\nfunction main() {}\n"
        result = editor.modify(content, "a.js", _mod("deleteEntity", target="h"))
        assert result.content == "function main() {}\n"

    def test_delete_type_alias(self, editor):
        content = "interface A {\n  x: number;\n}\n\ntype B = string;\n"
        result = editor.modify(content, "a.ts", _mod("deleteEntity", target="B"))
        assert result.content == "interface A {\n  x: number;\n}\n"

    def test_delete_interface(self, editor):
        content = "interface A {\n  x: number;\n}\n\nconst keep = 1;\n"
        result = editor.modify(content, "a.ts", _mod("deleteEntity", target="A"))
        assert result.content == "const keep = 1;\n"

    def test_delete_class_member(self, editor):
        content = "class A {\n  a() {}\n\n  b() {}\n}\n"
        first = editor.modify(content, "a.js", _mod("deleteEntity", target="A", member="a"))
        second = editor.modify(content, "a.js", _mod("deleteEntity", target="A", member="b"))
        assert first.content == "class A {\n  b() {}\n}\n"
        assert second.content == "class A {\n  a() {}\n}\n"

    def test_not_found(self, editor):
        result = editor.modify("const a = 1;\n", "a.js", _mod("deleteEntity", target="zzz"))
        assert not result.success
        assert result.content is None
        assert result.error == 'Entity "zzz" not found'


# ---------------------------------------------------------------------------
# renameEntity
# ---------------------------------------------------------------------------

class TestRenameEntity:
    def test_declaration_and_call_site(self, editor):
        result = editor.modify(
            "function foo(){} \n foo();", "a.js",
            _mod("renameEntity", target="foo", new_name="bar"),
        )
        assert result.content == "function bar(){} \n bar();"
        assert "foo" not in result.content

    def test_shadowed_locals_and_members_untouched(self, editor):
        content = (
            "function foo() {}\n"
            "function use(foo) { return foo; }\n"
            "const o = { foo };\n"
            "console.log(o.foo);\n"
            "foo();\n"
        )
        result = editor.modify(
            content, "a.js", _mod("renameEntity", target="foo", new_name="bar"),
        )
        assert result.content == (
            "function bar() {}\n"
            "function use(foo) { return foo; }\n"
            "const o = { foo: bar };\n"
            "console.log(o.foo);\n"
            "bar();\n"
        )

    def test_block_scoped_redeclaration_untouched(self, editor):
        content = (
            "const count = 1;\n"
            "function f() {\n"
            "  const count = 2;\n"
            "  return count;\n"
            "}\n"
            "export default count;\n"
        )
        result = editor.modify(
            content, "a.js", _mod("renameEntity", target="count", new_name="total"),
        )
        assert result.content == (
            "const total = 1;\n"
            "function f() {\n"
            "  const count = 2;\n"
            "  return count;\n"
            "}\n"
            "export default total;\n"
        )

    def test_class_and_type_references(self, editor):
        result = editor.modify(
            "class User {}\nconst u: User = new User();\n", "u.ts",
            _mod("renameEntity", target="User", new_name="Account"),
        )
        assert result.content == "class Account {}\nconst u: Account = new Account();\n"

    def test_recursive_reference(self, editor):
        result = editor.modify(
            "function fact(n) { return n ? n * fact(n - 1) : 1; }\n", "f.js",
            _mod("renameEntity", target="fact", new_name="factorial"),
        )
        assert result.content == (
            "function factorial(n) { return n ? n * factorial(n - 1) : 1; }\n"
        )

    def test_new_name_required(self, editor):
        result = editor.modify(
            "function foo() {}\n", "a.js", _mod("renameEntity", target="foo"),
        )
        assert result.error == "new_name is required"

    def test_not_found(self, editor):
        result = editor.modify(
            "function foo() {}\n", "a.js",
            _mod("renameEntity", target="nope", new_name="x"),
        )
        assert result.error == 'Entity "nope" not found'


# ---------------------------------------------------------------------------
# Dispatch and failures
# ---------------------------------------------------------------------------

class TestDispatch:
    def test_unknown_type(self, editor):
        result = editor.modify("x;\n", "a.js", _mod("explode"))
        assert result.error == "Unknown modification type: explode"

    @pytest.mark.parametrize("path", ["notes.txt", "script.py"])
    def test_unsupported_file(self, editor, path):
        result = editor.modify("x = 1\n", path, _mod("deleteEntity", target="x"))
        assert not result.success
        assert result.error == f"Unsupported file type for structural edits: {path}"

    def test_provider_exception_is_captured(self, editor):
        with patch.object(SourceUnit, "add_statements", side_effect=RuntimeError("boom")):
            result = editor.modify(
                "x;\n", "a.js", _mod("insertFunction", code="function f() {}"),
            )
        assert not result.success
        assert result.error == "RuntimeError: boom"

    def test_explicit_workspace_receives_unit(self, editor):
        workspace = SyntaxWorkspace(TreeSitterProvider())
        editor.modify("x;\n", "a.js", _mod("insertImport", code='import "y";'), workspace)
        assert workspace.paths() == ["a.js"]
        assert editor.workspace.paths() == []

    def test_empty_workspace_is_kept(self):
        workspace = SyntaxWorkspace(TreeSitterProvider(indent="  "))
        editor = StructuralEditor(workspace)
        assert editor.workspace is workspace

        result = editor.modify(
            "class Box {}\n", "a.js", _mod("insertMethod", target="Box", code="open() {}"),
        )
        assert result.content == "class Box {\n  open() {}\n}\n"
        assert workspace.paths() == ["a.js"]


class TestFindEntity:
    def test_function_location(self, editor):
        content = "const a = 1;\n\nfunction target() {\n  return a;\n}\n"
        entity = editor.find_entity(content, "a.js", "target")
        assert entity.kind == "function"
        assert (entity.start_line, entity.end_line) == (3, 5)
        assert entity.text.startswith("function target()")

    def test_class_member(self, editor):
        entity = editor.find_entity(GREETER, "g.js", "Greeter", member="hello")
        assert entity.kind == "method"
        assert entity.start_line == 2

    def test_missing(self, editor):
        assert editor.find_entity("const a = 1;\n", "a.js", "b") is None
