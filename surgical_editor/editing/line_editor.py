"""
Line-range editor — surgical edits addressed by 1-indexed line numbers.
"""

from __future__ import annotations

from .models import EditResult


class LineRangeEditor:
    """Stateless line operations on ``content.split("\\n")``.

    Every method returns an :class:`EditResult` and never raises for
    out-of-range requests.
    """

    @staticmethod
    def replace_lines(content: str, start_line: int, end_line: int, new_content: str) -> EditResult:
        """Replace lines ``start_line..end_line`` (inclusive) with *new_content*."""
        lines = content.split("\n")
        if start_line < 1 or end_line > len(lines) or start_line > end_line:
            return EditResult.fail(
                f"Invalid line range: {start_line}-{end_line} "
                f"(file has {len(lines)} lines)"
            )
        lines[start_line - 1:end_line] = new_content.split("\n")
        return EditResult.ok("\n".join(lines))

    @staticmethod
    def insert_after(content: str, line: int, new_content: str) -> EditResult:
        """Insert *new_content* after *line*; ``0`` prepends."""
        lines = content.split("\n")
        if line < 0 or line > len(lines):
            return EditResult.fail(
                f"Invalid line number: {line} (file has {len(lines)} lines)"
            )
        lines[line:line] = new_content.split("\n")
        return EditResult.ok("\n".join(lines))

    @staticmethod
    def insert_before(content: str, line: int, new_content: str) -> EditResult:
        """Insert *new_content* before *line*; ``total + 1`` appends."""
        lines = content.split("\n")
        if line < 1 or line > len(lines) + 1:
            return EditResult.fail(
                f"Invalid line number: {line} (file has {len(lines)} lines)"
            )
        lines[line - 1:line - 1] = new_content.split("\n")
        return EditResult.ok("\n".join(lines))

    @staticmethod
    def delete_lines(content: str, start_line: int, end_line: int) -> EditResult:
        lines = content.split("\n")
        if start_line < 1 or end_line > len(lines) or start_line > end_line:
            return EditResult.fail(
                f"Invalid line range: {start_line}-{end_line} "
                f"(file has {len(lines)} lines)"
            )
        del lines[start_line - 1:end_line]
        return EditResult.ok("\n".join(lines))
