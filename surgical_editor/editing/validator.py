"""
Edit validator — isolates the diagnostics an edit introduced.

Diagnostics come from the syntax-tree provider; the validator only maps
them to :class:`ValidationError` and diffs the before/after sets.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..syntax import TreeSitterProvider
from ..syntax.diagnostics import CATEGORY_ERROR
from .models import ValidationError, ValidationReport

logger = logging.getLogger(__name__)


class NewErrorKey(str, Enum):
    """What makes two diagnostics 'the same' across an edit."""
    MESSAGE = "message"
    MESSAGE_LINE = "message_line"

    @classmethod
    def parse(cls, value: "str | NewErrorKey") -> "NewErrorKey":
        if isinstance(value, NewErrorKey):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning("[Validate] Unknown new-error key %r, using message", value)
            return cls.MESSAGE


class EditValidator:
    """Validate source text and compare diagnostics before and after an edit."""

    def __init__(
        self,
        provider: Optional[TreeSitterProvider] = None,
        new_error_key: NewErrorKey | str = NewErrorKey.MESSAGE,
    ) -> None:
        self._provider = provider or TreeSitterProvider()
        self._key = NewErrorKey.parse(new_error_key)

    def validate(self, content: str, path: str) -> list[ValidationError]:
        """Return every diagnostic for *content*; ``[]`` for unsupported files."""
        if not self._provider.supports(path):
            return []
        try:
            unit = self._provider.parse(path, content)
            diagnostics = unit.get_pre_emit_diagnostics()
        except Exception as exc:
            logger.warning("[Validate] Provider failed on %s: %s", path, exc)
            return [ValidationError(type="syntax", message=f"Parse error: {exc}")]

        return [
            ValidationError(
                type="syntax" if d.category == CATEGORY_ERROR else "type",
                message=d.message,
                line=d.line,
                column=d.column,
                code=d.code,
            )
            for d in diagnostics
        ]

    def is_syntax_valid(self, content: str, path: str) -> bool:
        return not any(e.type == "syntax" for e in self.validate(content, path))

    def validate_edit(self, original: str, edited: str, path: str) -> ValidationReport:
        """Diagnostics of *edited* that *original* did not already have.

        ``valid`` is true when the edit introduced no new diagnostic, even if
        the file had pre-existing ones.
        """
        before = {self._key_of(e) for e in self.validate(original, path)}
        errors = self.validate(edited, path)
        new_errors = [e for e in errors if self._key_of(e) not in before]
        if new_errors:
            logger.info(
                "[Validate] %s: %d new diagnostic(s) after edit", path, len(new_errors),
            )
        return ValidationReport(valid=not new_errors, errors=errors, new_errors=new_errors)

    def _key_of(self, error: ValidationError):
        if self._key is NewErrorKey.MESSAGE_LINE:
            return (error.message, error.line)
        return error.message
