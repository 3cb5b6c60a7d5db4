"""
Diff parser — parses unified diff text into structured patches and
generates unified diffs between two versions of a file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .models import (
    CHANGE_ADD, CHANGE_CONTEXT, CHANGE_REMOVE,
    DiffChange, DiffHunk, UnifiedDiff,
)

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT_LINES = 3

# Patterns
_HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
_PATH_PREFIX = re.compile(r"^[ab]/")

# Op kinds produced by the LCS backtrack
_EQUAL = "equal"
_INSERT = "insert"
_DELETE = "delete"


@dataclass
class DiffOp:
    """One entry of the line-level edit script."""
    kind: str        # "equal" | "insert" | "delete"
    old_index: int   # 0-indexed; for inserts, the old position before which it lands
    new_index: int   # 0-indexed; for deletes, the new position it would have had
    line: str


def _strip_path(raw: str) -> str:
    """Drop the ``a/`` / ``b/`` prefix and any tab-separated timestamp."""
    return _PATH_PREFIX.sub("", raw).split("\t")[0]


def _body_follows(lines: list[str], index: int) -> bool:
    """True when another hunk body line comes after *index* before the next
    hunk or file header."""
    for line in lines[index + 1:]:
        if line.startswith(("@@", "--- ", "+++ ")):
            return False
        if line.startswith((" ", "+", "-")):
            return True
    return False


class DiffParser:
    """Parse and generate unified diffs."""

    def __init__(self, context_lines: int = DEFAULT_CONTEXT_LINES) -> None:
        self._context = context_lines

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, diff_text: str) -> list[UnifiedDiff]:
        """Parse unified diff text, possibly holding several file diffs.

        Parameters
        ----------
        diff_text:
            Raw unified diff text.

        Returns
        -------
        list[UnifiedDiff]
            One entry per ``--- `` file header, in input order.  Hunks that
            appear before any file header are ignored.
        """
        diffs: list[UnifiedDiff] = []
        current_diff: UnifiedDiff | None = None
        current_hunk: DiffHunk | None = None
        old_line = new_line = 0
        # Body lines the current hunk header still promises
        old_left = new_left = 0

        lines = diff_text.split("\n")
        for index, line in enumerate(lines):
            expecting = current_hunk is not None and (old_left > 0 or new_left > 0)

            if not expecting and line.startswith("--- "):
                if current_diff is not None and current_hunk is not None:
                    current_diff.hunks.append(current_hunk)
                if current_diff is not None:
                    diffs.append(current_diff)
                current_diff = UnifiedDiff(old_file=_strip_path(line[4:]))
                current_hunk = None
                continue

            if not expecting and line.startswith("+++ ") and current_diff is not None:
                current_diff.new_file = _strip_path(line[4:])
                continue

            if line.startswith("@@"):
                if current_diff is not None and current_hunk is not None:
                    current_diff.hunks.append(current_hunk)
                current_hunk = None
                match = _HUNK_HEADER.match(line)
                if match is None:
                    logger.warning("[Patch] Malformed hunk header skipped: %r", line)
                    continue
                if current_diff is None:
                    logger.debug("[Patch] Hunk without file header ignored: %r", line)
                    continue
                old_line = int(match.group(1))
                new_line = int(match.group(3))
                current_hunk = DiffHunk(
                    old_start=old_line,
                    old_lines=int(match.group(2) or "1"),
                    new_start=new_line,
                    new_lines=int(match.group(4) or "1"),
                    header=(match.group(5) or "").strip() or None,
                )
                old_left = current_hunk.old_lines
                new_left = current_hunk.new_lines
                continue

            if current_hunk is None:
                continue

            if line.startswith("+"):
                current_hunk.changes.append(
                    DiffChange(CHANGE_ADD, line[1:], new_line)
                )
                new_line += 1
                new_left -= 1
            elif line.startswith("-"):
                current_hunk.changes.append(
                    DiffChange(CHANGE_REMOVE, line[1:], old_line)
                )
                old_line += 1
                old_left -= 1
            elif line.startswith(" ") or (
                line == "" and (expecting or _body_follows(lines, index))
            ):
                # A blank line is context unless it trails the hunk
                current_hunk.changes.append(
                    DiffChange(CHANGE_CONTEXT, line[1:], old_line)
                )
                old_line += 1
                new_line += 1
                old_left -= 1
                new_left -= 1
            # Anything else ("\ No newline at end of file", "index ...") is ignored

        if current_diff is not None and current_hunk is not None:
            current_diff.hunks.append(current_hunk)
        if current_diff is not None:
            diffs.append(current_diff)

        logger.debug(
            "[Patch] Parsed %d file diff(s), %d hunk(s)",
            len(diffs), sum(len(d.hunks) for d in diffs),
        )
        return diffs

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate(self, old_content: str, new_content: str, path: str = "file") -> str:
        """Generate a unified diff turning *old_content* into *new_content*.

        Returns an empty string when the two contents are identical.
        """
        old_lines = old_content.split("\n")
        new_lines = new_content.split("\n")

        ops = compute_diff(old_lines, new_lines)
        if all(op.kind == _EQUAL for op in ops):
            return ""

        output = [f"--- a/{path}", f"+++ b/{path}"]
        for hunk in self.group_into_hunks(ops):
            output.append(
                f"@@ -{hunk.old_start},{hunk.old_lines} "
                f"+{hunk.new_start},{hunk.new_lines} @@"
            )
            for change in hunk.changes:
                if change.type == CHANGE_ADD:
                    output.append("+" + change.content)
                elif change.type == CHANGE_REMOVE:
                    output.append("-" + change.content)
                else:
                    output.append(" " + change.content)
        return "\n".join(output)

    def group_into_hunks(self, ops: list[DiffOp]) -> list[DiffHunk]:
        """Group an edit script into hunks with surrounding context.

        Change clusters separated by at most twice the context size of
        equal lines share a hunk.
        """
        context = self._context
        hunks: list[DiffHunk] = []
        hunk: DiffHunk | None = None
        last_change = -1

        for i, op in enumerate(ops):
            if op.kind == _EQUAL:
                continue

            if hunk is None or i - last_change - 1 > 2 * context:
                if hunk is not None:
                    _add_context(hunk, ops, last_change + 1,
                                 min(last_change + 1 + context, len(ops)))
                    hunks.append(hunk)
                start = max(0, i - context)
                hunk = DiffHunk(
                    old_start=ops[start].old_index + 1,
                    old_lines=0,
                    new_start=ops[start].new_index + 1,
                    new_lines=0,
                )
                _add_context(hunk, ops, start, i)
            else:
                _add_context(hunk, ops, last_change + 1, i)

            if op.kind == _DELETE:
                hunk.changes.append(DiffChange(CHANGE_REMOVE, op.line))
                hunk.old_lines += 1
            else:
                hunk.changes.append(DiffChange(CHANGE_ADD, op.line))
                hunk.new_lines += 1
            last_change = i

        if hunk is not None:
            _add_context(hunk, ops, last_change + 1,
                         min(last_change + 1 + context, len(ops)))
            hunks.append(hunk)

        # An empty side is addressed by the line it follows ("-3,0" inserts after line 3)
        for h in hunks:
            if h.old_lines == 0:
                h.old_start -= 1
            if h.new_lines == 0:
                h.new_start -= 1
        return hunks


# ---------------------------------------------------------------------------
# LCS edit script
# ---------------------------------------------------------------------------

def compute_diff(old_lines: list[str], new_lines: list[str]) -> list[DiffOp]:
    """Return the ordered equal/insert/delete script between two line lists.

    The common prefix and suffix are matched directly; the middle is
    solved with the longest-common-subsequence table.
    """
    m, n = len(old_lines), len(new_lines)

    prefix = 0
    while prefix < m and prefix < n and old_lines[prefix] == new_lines[prefix]:
        prefix += 1
    suffix = 0
    while (
        suffix < m - prefix
        and suffix < n - prefix
        and old_lines[m - 1 - suffix] == new_lines[n - 1 - suffix]
    ):
        suffix += 1

    ops = [DiffOp(_EQUAL, i, i, old_lines[i]) for i in range(prefix)]
    ops.extend(_lcs_ops(
        old_lines[prefix:m - suffix],
        new_lines[prefix:n - suffix],
        prefix,
        prefix,
    ))
    for k in range(suffix):
        ops.append(DiffOp(
            _EQUAL, m - suffix + k, n - suffix + k, old_lines[m - suffix + k],
        ))
    return ops


def _lcs_ops(
    a: list[str],
    b: list[str],
    old_offset: int,
    new_offset: int,
) -> list[DiffOp]:
    """Backtrack an O(len(a)·len(b)) LCS table into an edit script."""
    m, n = len(a), len(b)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        ai = a[i - 1]
        for j in range(1, n + 1):
            if ai == b[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])

    ops: list[DiffOp] = []
    i, j = m, n
    while i > 0 or j > 0:
        if i > 0 and j > 0 and a[i - 1] == b[j - 1]:
            ops.append(DiffOp(_EQUAL, old_offset + i - 1, new_offset + j - 1, a[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            ops.append(DiffOp(_INSERT, old_offset + i, new_offset + j - 1, b[j - 1]))
            j -= 1
        else:
            ops.append(DiffOp(_DELETE, old_offset + i - 1, new_offset + j, a[i - 1]))
            i -= 1
    ops.reverse()
    return ops


def _add_context(hunk: DiffHunk, ops: list[DiffOp], start: int, end: int) -> None:
    for c in range(start, end):
        if ops[c].kind == _EQUAL:
            hunk.changes.append(DiffChange(CHANGE_CONTEXT, ops[c].line))
            hunk.old_lines += 1
            hunk.new_lines += 1
