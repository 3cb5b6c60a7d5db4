"""Tests for the MultiFileEditor transaction."""

import pytest

from surgical_editor.editing.models import (
    EditOperation,
    EntityTarget,
    FileEdit,
    LineRange,
    MultiFileEdit,
    multi_file_edit_from_dict,
)
from surgical_editor.editing.multi_file import MultiFileEditor, entity_modification_type
from surgical_editor.syntax import TreeSitterProvider


FILES = {
    "a.js": "const a = 1;\nexport { a };\n",
    "b.js": "const x = 1;\nexport { x };\n",
}


def _replace(path: str, line: int, text: str) -> FileEdit:
    return FileEdit(path, [EditOperation("replace", LineRange(line, line), text)])


class TestTransaction:
    def test_all_files_succeed(self):
        edits = MultiFileEdit(
            files=[_replace("a.js", 1, "const a = 2;"), _replace("b.js", 1, "const x = 2;")],
            commit_message="bump constants",
        )
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)

        assert result.success
        assert result.errors is None
        assert result.commit_message == "bump constants"
        assert result.approved_contents() == {
            "a.js": "const a = 2;\nexport { a };\n",
            "b.js": "const x = 2;\nexport { x };\n",
        }
        assert result.results["a.js"].diff.startswith("--- a/a.js\n+++ b/a.js\n")

    def test_new_error_in_one_file_aborts_everything(self):
        edits = MultiFileEdit(files=[
            _replace("a.js", 1, "const a = 2;"),
            FileEdit("b.js", [EditOperation("insertAfter", LineRange(1, 1), "const x = 2;")]),
        ])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)

        assert not result.success
        assert result.approved_contents() == {}
        assert result.errors == ["b.js: Validation failed - Duplicate declaration 'x'."]
        assert result.results["a.js"].success
        failed = result.results["b.js"]
        assert failed.error == "Validation failed"
        assert failed.content is None
        assert failed.validation_errors[0].code == "DUP001"

    def test_validation_can_be_skipped(self):
        edits = MultiFileEdit(files=[
            FileEdit("b.js", [EditOperation("insertAfter", LineRange(1, 1), "const x = 2;")]),
        ])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits, validate=False)
        assert result.success
        assert "const x = 2;" in result.approved_contents()["b.js"]

    def test_missing_file(self):
        edits = MultiFileEdit(files=[_replace("c.js", 1, "x")])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert not result.success
        assert result.errors == ["File not found: c.js"]
        assert "c.js" not in result.results

    def test_operation_failure_stops_that_file(self):
        edits = MultiFileEdit(files=[FileEdit("a.js", [
            EditOperation("replace", LineRange(1, 1), "const a = 5;"),
            EditOperation("delete", LineRange(7, 9)),
        ])])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.errors == ["a.js: Invalid line range: 7-9 (file has 3 lines)"]
        assert result.results["a.js"].content is None

    def test_operations_apply_in_order(self):
        edits = MultiFileEdit(files=[FileEdit("a.js", [
            EditOperation("insertBefore", LineRange(1, 1), "// header"),
            EditOperation("replace", LineRange(2, 2), "const a = 3;"),
        ])])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.approved_contents()["a.js"] == "// header\nconst a = 3;\nexport { a };\n"

    def test_apply_diff_operation(self):
        diff = "--- a/a.js\n+++ b/a.js\n@@ -1,1 +1,1 @@\n-const a = 1;\n+const a = 10;\n"
        edits = MultiFileEdit(files=[FileEdit("a.js", [EditOperation("applyDiff", content=diff)])])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.approved_contents()["a.js"].startswith("const a = 10;\n")

    def test_apply_diff_requires_content(self):
        edits = MultiFileEdit(files=[FileEdit("a.js", [EditOperation("applyDiff")])])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.errors == ["a.js: content is required"]

    def test_unknown_line_operation(self):
        edits = MultiFileEdit(files=[
            FileEdit("a.js", [EditOperation("move", LineRange(1, 1), "x")]),
        ])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.errors == ["a.js: Unknown operation type: move"]

    def test_target_required(self):
        edits = MultiFileEdit(files=[FileEdit("a.js", [EditOperation("replace", content="x")])])
        result = MultiFileEditor().apply_multi_file_edit(FILES, edits)
        assert result.errors == ["a.js: target is required"]

    def test_entity_operation_uses_structural_editor(self):
        files = {"math.js": "function add(a, b) {\n  return a - b;\n}\n"}
        edits = MultiFileEdit(files=[FileEdit("math.js", [
            EditOperation("replace", EntityTarget("function", "add"), "return a + b;"),
        ])])
        result = MultiFileEditor().apply_multi_file_edit(files, edits)
        assert result.approved_contents()["math.js"] == (
            "function add(a, b) {\n    return a + b;\n}\n"
        )

    def test_entity_operation_uses_provider_indent(self):
        files = {"math.js": "function add(a, b) {\n  return a - b;\n}\n"}
        edits = MultiFileEdit(files=[FileEdit("math.js", [
            EditOperation("replace", EntityTarget("function", "add"), "return a + b;"),
        ])])
        editor = MultiFileEditor(provider=TreeSitterProvider(indent="  "))
        result = editor.apply_multi_file_edit(files, edits)
        assert result.approved_contents()["math.js"] == (
            "function add(a, b) {\n  return a + b;\n}\n"
        )

    def test_input_is_not_mutated(self):
        files = dict(FILES)
        edits = MultiFileEdit(files=[_replace("a.js", 1, "const a = 2;")])
        MultiFileEditor().apply_multi_file_edit(files, edits)
        assert files == FILES


class TestBackups:
    def test_backups_hold_original_contents(self):
        editor = MultiFileEditor()
        result = editor.apply_multi_file_edit(
            FILES, MultiFileEdit(files=[_replace("a.js", 1, "const a = 2;")]),
        )
        assert result.rollback_available
        assert editor.get_backups() == FILES

    def test_backups_are_copies(self):
        editor = MultiFileEditor()
        editor.apply_multi_file_edit(FILES, MultiFileEdit())
        editor.get_backups()["a.js"] = "tampered"
        assert editor.get_backups()["a.js"] == FILES["a.js"]

    def test_clear_backups(self):
        editor = MultiFileEditor()
        editor.apply_multi_file_edit(FILES, MultiFileEdit())
        editor.clear_backups()
        assert editor.get_backups() == {}

    def test_next_transaction_replaces_backups(self):
        editor = MultiFileEditor()
        editor.apply_multi_file_edit(FILES, MultiFileEdit())
        editor.apply_multi_file_edit({"only.js": "1;\n"}, MultiFileEdit())
        assert editor.get_backups() == {"only.js": "1;\n"}


class TestEntityMapping:
    @pytest.mark.parametrize("op,entity,expected", [
        ("delete", "class", "deleteEntity"),
        ("insert", "function", "insertFunction"),
        ("insertAfter", "class", "insertClass"),
        ("insertBefore", "method", "insertMethod"),
        ("insert", "import", "insertImport"),
        ("insert", "variable", "insertFunction"),
        ("replace", "class", "modifyClass"),
        ("replace", "function", "modifyFunction"),
        ("replace", "method", "modifyFunction"),
    ])
    def test_mapping(self, op, entity, expected):
        assert entity_modification_type(op, entity) == expected


class TestFromDict:
    def test_request_shapes(self):
        edits = multi_file_edit_from_dict({
            "commitMessage": "rename",
            "files": [{
                "path": "a.js",
                "operations": [
                    {"type": "replace", "target": {"startLine": 2, "endLine": 3}, "content": "x"},
                    {"type": "delete", "target": {"entity_name": "f", "entity_type": "function"}},
                    {"type": "insertAfter", "target": {"start_line": 4}, "content": "y"},
                ],
            }],
        })
        ops = edits.files[0].operations
        assert edits.commit_message == "rename"
        assert ops[0].target == LineRange(2, 3)
        assert ops[1].target == EntityTarget("function", "f")
        assert ops[2].target == LineRange(4, 4)
