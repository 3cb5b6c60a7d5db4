"""
Action layer — JSON-shaped edit requests against files under a workspace root.

This is the caller that persists: the editing core only returns content,
and every write happens here, after the edit (and its validation) succeeded.
Responses are plain dicts carrying an HTTP-like ``status``.

Request keys are snake_case; the camelCase spelling of each key is accepted
as well (``start_line`` or ``startLine``).
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

from .config import Config
from .editing import (
    DiffEditor,
    EditResult,
    StructuralModification,
    multi_file_edit_from_dict,
)
from .editing.models import request_field
from .syntax import STRUCTURAL_LANGUAGES, detect_language

logger = logging.getLogger(__name__)

_TMP_SUFFIX = ".surgical_edit_tmp"


class ActionError(Exception):
    """A request that cannot be served; carries the response status."""

    def __init__(self, message: str, status: int = 400) -> None:
        super().__init__(message)
        self.status = status

    def to_response(self) -> dict:
        return {"status": self.status, "success": False, "error": str(self)}


def _require(body: dict, *keys: str) -> list:
    """Return the values of *keys*, failing with 400 when any is missing."""
    values = [request_field(body, k) for k in keys]
    if any(v is None or v == "" for v in values):
        if len(keys) == 1:
            names = keys[0]
        else:
            names = ", ".join(keys[:-1]) + " and " + keys[-1]
        raise ActionError(f"{names} {'is' if len(keys) == 1 else 'are'} required")
    return values


def _as_int(value, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ActionError(f"{field} must be an integer") from None


def safe_write(file_path: str, content: str) -> None:
    """Write content to file atomically via temp file + rename."""
    abs_path = os.path.abspath(file_path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    tmp_path = abs_path + _TMP_SUFFIX

    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_path, abs_path)
    except Exception:
        # Clean up temp file on failure
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class ActionHandler:
    """Dispatch edit actions for files inside *root*.

    Parameters
    ----------
    root:
        Workspace root; paths in requests are resolved against it and may
        not escape it.  Defaults to ``config.WORKSPACE_ROOT``.
    editor:
        The editing facade to use; built from *config* when omitted.
    config:
        Settings; defaults to :meth:`Config.load`.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        editor: Optional[DiffEditor] = None,
        config: Optional[Config] = None,
    ) -> None:
        self.config = config or (editor.config if editor else Config.load())
        self.root = os.path.realpath(root or self.config.WORKSPACE_ROOT)
        self.editor = editor or DiffEditor(self.config)
        self._actions: dict[str, Callable[[dict], dict]] = {
            "apply-diff": self._apply_diff,
            "generate-diff": self._generate_diff,
            "parse-diff": self._parse_diff,
            "replace-lines": self._replace_lines,
            "insert-after": self._insert_after,
            "insert-before": self._insert_before,
            "delete-lines": self._delete_lines,
            "ast-modify": self._ast_modify,
            "add-function": self._add_function,
            "edit-function": self._edit_function,
            "add-import": self._add_import,
            "delete-entity": self._delete_entity,
            "rename-entity": self._rename_entity,
            "add-method": self._add_method,
            "validate": self._validate,
            "preview-edit": self._preview_edit,
            "multi-file-edit": self._multi_file_edit,
            "find-entity": self._find_entity,
        }

    @property
    def actions(self) -> list[str]:
        return list(self._actions)

    def handle(self, request: dict) -> dict:
        """Serve one request; never raises."""
        action = request.get("action")
        handler = self._actions.get(action)
        if handler is None:
            return {"status": 400, "success": False, "error": f"Unknown action: {action}"}

        try:
            response = handler(request)
        except ActionError as exc:
            logger.info("[Actions] %s rejected: %s", action, exc)
            return exc.to_response()
        except Exception as exc:
            logger.exception("[Actions] %s failed", action)
            return {"status": 500, "success": False, "error": str(exc)}

        response.setdefault("status", 200)
        logger.info("[Actions] %s -> %d", action, response["status"])
        return response

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------

    def resolve(self, rel_path: str) -> str:
        """Absolute path of *rel_path* inside the root, or 403."""
        full = os.path.realpath(os.path.join(self.root, rel_path))
        if os.path.commonpath([full, self.root]) != self.root:
            raise ActionError(f"Access denied: {rel_path}", status=403)
        return full

    @staticmethod
    def _read(full_path: str) -> str:
        try:
            with open(full_path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except OSError as exc:
            raise ActionError(f"Cannot read {full_path}: {exc.strerror}", status=404) from exc

    def _validates(self, rel_path: str) -> bool:
        return self.config.VALIDATE_EDITS and detect_language(rel_path) in STRUCTURAL_LANGUAGES

    def _edit_file(
        self,
        body: dict,
        rel_path: str,
        edit: Callable[[str], EditResult],
        failure_status: int = 400,
    ) -> dict:
        """Read, edit, validate and (unless ``dry_run``) write one file."""
        full = self.resolve(rel_path)
        content = self._read(full)

        result = edit(content)
        if not result.success:
            return {"status": failure_status, "success": False, "error": result.error}

        if self._validates(rel_path):
            report = self.editor.validate_edit(content, result.content, rel_path)
            if not report.valid:
                return {
                    "status": 422,
                    "success": False,
                    "error": "Validation failed",
                    "validation_errors": [e.to_dict() for e in report.new_errors],
                }

        dry_run = bool(request_field(body, "dry_run", False))
        if not dry_run:
            try:
                safe_write(full, result.content)
            except OSError as exc:
                logger.error("[Actions] Write failed for %s: %s", rel_path, exc)
                return {"status": 500, "success": False, "error": f"Write failed: {exc}"}

        return {
            "success": True,
            "content": result.content,
            "diff": self.editor.generate_diff(content, result.content, rel_path),
            "dry_run": dry_run,
        }

    # ------------------------------------------------------------------
    # Diff actions
    # ------------------------------------------------------------------

    def _apply_diff(self, body: dict) -> dict:
        path, diff = _require(body, "path", "diff")
        return self._edit_file(
            body, path, lambda c: self.editor.apply_diff_string(c, diff), failure_status=409,
        )

    def _generate_diff(self, body: dict) -> dict:
        path = _require(body, "path")[0]
        new_content = request_field(body, "new_content")
        if new_content is None:
            raise ActionError("path and new_content are required")
        full = self.resolve(path)
        old_content = self._read(full) if os.path.isfile(full) else ""
        diff = self.editor.generate_diff(old_content, new_content, path)
        return {"success": True, "diff": diff, "has_changes": bool(diff)}

    def _parse_diff(self, body: dict) -> dict:
        diff = _require(body, "diff")[0]
        return {"success": True, "diffs": [d.to_dict() for d in self.editor.parse_diff(diff)]}

    # ------------------------------------------------------------------
    # Line-range actions
    # ------------------------------------------------------------------

    def _replace_lines(self, body: dict) -> dict:
        path, start, end = _require(body, "path", "start_line", "end_line")
        start, end = _as_int(start, "start_line"), _as_int(end, "end_line")
        new_content = request_field(body, "content")
        if new_content is None:
            raise ActionError("content is required")
        return self._edit_file(
            body, path, lambda c: self.editor.replace_lines(c, start, end, new_content),
        )

    def _insert_after(self, body: dict) -> dict:
        path, line, new_content = self._line_args(body)
        return self._edit_file(body, path, lambda c: self.editor.insert_after(c, line, new_content))

    def _insert_before(self, body: dict) -> dict:
        path, line, new_content = self._line_args(body)
        return self._edit_file(body, path, lambda c: self.editor.insert_before(c, line, new_content))

    def _delete_lines(self, body: dict) -> dict:
        path, start, end = _require(body, "path", "start_line", "end_line")
        start, end = _as_int(start, "start_line"), _as_int(end, "end_line")
        return self._edit_file(
            body, path, lambda c: self.editor.delete_lines(c, start, end),
        )

    @staticmethod
    def _line_args(body: dict) -> tuple[str, int, str]:
        path = _require(body, "path")[0]
        line = request_field(body, "line")
        new_content = request_field(body, "content")
        if line is None or new_content is None:
            raise ActionError("path, line and content are required")
        return path, _as_int(line, "line"), new_content

    # ------------------------------------------------------------------
    # Structural actions
    # ------------------------------------------------------------------

    def _ast_modify(self, body: dict) -> dict:
        path, raw = _require(body, "path", "modification")
        modification = StructuralModification.from_dict(raw)
        return self._edit_file(
            body, path, lambda c: self.editor.ast_modify(c, path, modification),
        )

    def _add_function(self, body: dict) -> dict:
        path, code = _require(body, "path", "function_code")
        position = request_field(body, "position")
        relative_to = request_field(body, "relative_to")
        return self._edit_file(
            body, path,
            lambda c: self.editor.add_function(c, path, code, position, relative_to),
        )

    def _edit_function(self, body: dict) -> dict:
        path, name, new_body = _require(body, "path", "function_name", "new_body")
        return self._edit_file(
            body, path, lambda c: self.editor.edit_function(c, path, name, new_body),
        )

    def _add_import(self, body: dict) -> dict:
        path, statement = _require(body, "path", "import_statement")
        return self._edit_file(
            body, path, lambda c: self.editor.add_import(c, path, statement),
        )

    def _delete_entity(self, body: dict) -> dict:
        path, name = _require(body, "path", "entity_name")
        return self._edit_file(
            body, path, lambda c: self.editor.delete_entity(c, path, name),
        )

    def _rename_entity(self, body: dict) -> dict:
        path, old_name, new_name = _require(body, "path", "old_name", "new_name")
        return self._edit_file(
            body, path, lambda c: self.editor.rename_entity(c, path, old_name, new_name),
        )

    def _add_method(self, body: dict) -> dict:
        path, class_name, code = _require(body, "path", "class_name", "method_code")
        return self._edit_file(
            body, path, lambda c: self.editor.add_method(c, path, class_name, code),
        )

    # ------------------------------------------------------------------
    # Read-only actions
    # ------------------------------------------------------------------

    def _validate(self, body: dict) -> dict:
        path = _require(body, "path")[0]
        content = request_field(body, "content")
        if content is None:
            content = self._read(self.resolve(path))
        errors = self.editor.validate(content, path)
        return {
            "success": True,
            "valid": not errors,
            "errors": [e.to_dict() for e in errors],
        }

    def _preview_edit(self, body: dict) -> dict:
        path, edit = _require(body, "path", "edit")
        content = self._read(self.resolve(path))
        preview = self.editor.preview_edit(content, path, edit)
        if not preview["success"]:
            preview["status"] = 400
        return preview

    def _find_entity(self, body: dict) -> dict:
        path, name = _require(body, "path", "entity_name")
        content = self._read(self.resolve(path))
        entity = self.editor.find_entity(content, path, name, request_field(body, "member"))
        if entity is None:
            return {"status": 404, "success": False, "error": f'Entity "{name}" not found'}
        return {"success": True, "entity": entity.to_dict()}

    # ------------------------------------------------------------------
    # Multi-file
    # ------------------------------------------------------------------

    def _multi_file_edit(self, body: dict) -> dict:
        raw = request_field(body, "edits")
        if not isinstance(raw, dict) or not isinstance(raw.get("files"), list):
            raise ActionError("edits.files array is required")
        edits = multi_file_edit_from_dict(raw)

        files: dict[str, str] = {}
        full_paths: dict[str, str] = {}
        read_errors: list[str] = []
        for file_edit in edits.files:
            try:
                full = self.resolve(file_edit.path)
                files[file_edit.path] = self._read(full)
                full_paths[file_edit.path] = full
            except ActionError as exc:
                read_errors.append(f"{file_edit.path}: {exc}")
        if read_errors:
            return {"status": 400, "success": False, "errors": read_errors}

        validate = request_field(body, "validate")
        result = self.editor.multi_file_edit(
            files, edits, None if validate is None else bool(validate),
        )
        if not result.success:
            response = result.to_dict()
            response["status"] = 400
            return response

        approved = result.approved_contents()
        if request_field(body, "dry_run", False):
            return self._multi_file_response(result, dry_run=True)

        written: list[str] = []
        try:
            for path, content in approved.items():
                safe_write(full_paths[path], content)
                written.append(path)
        except OSError as exc:
            logger.error(
                "[Actions] Write failed for %s, rolling back %d file(s): %s",
                path, len(written), exc,
            )
            backups = self.editor.get_backups()
            for rollback_path in written:
                try:
                    safe_write(full_paths[rollback_path], backups[rollback_path])
                except OSError as rb_exc:
                    logger.error(
                        "[Actions] Rollback failed for %s: %s", rollback_path, rb_exc,
                    )
            return {
                "status": 500,
                "success": False,
                "errors": [f"{path}: Write failed: {exc}"],
                "rolled_back": written,
            }

        return self._multi_file_response(result, dry_run=False)

    @staticmethod
    def _multi_file_response(result, dry_run: bool) -> dict:
        return {
            "success": True,
            "results": {
                path: {"success": r.success, "diff": r.diff}
                for path, r in result.results.items()
            },
            "commit_message": result.commit_message,
            "dry_run": dry_run,
        }
