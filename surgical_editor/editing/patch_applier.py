"""
Patch applier — applies parsed unified diffs to in-memory content.

Nothing here touches the filesystem; callers persist the returned content.
"""

from __future__ import annotations

import logging
from enum import Enum

from .diff_parser import DiffParser
from .models import CHANGE_ADD, DiffHunk, EditResult, UnifiedDiff

logger = logging.getLogger(__name__)


class MatchMode(str, Enum):
    """How strictly context/remove lines must match the target content."""
    EXACT = "exact"
    WHITESPACE = "whitespace"   # exact, or equal once surrounding whitespace is stripped

    @classmethod
    def parse(cls, value: "str | MatchMode") -> "MatchMode":
        if isinstance(value, MatchMode):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            logger.warning("[Patch] Unknown match mode %r, using whitespace", value)
            return cls.WHITESPACE


class HunkMismatch(Exception):
    """Raised internally when a hunk does not fit the target lines."""


class DiffApplier:
    """Apply unified diffs to content strings."""

    def __init__(
        self,
        match_mode: MatchMode | str = MatchMode.WHITESPACE,
        parser: DiffParser | None = None,
    ) -> None:
        self._mode = MatchMode.parse(match_mode)
        self._parser = parser or DiffParser()

    @property
    def match_mode(self) -> MatchMode:
        return self._mode

    def apply(self, content: str, diff: UnifiedDiff) -> EditResult:
        """Apply every hunk of *diff* to *content*.

        Hunks are applied bottom-up (descending ``old_start``) so earlier
        splices never shift the positions of hunks still to be applied.
        *content* itself is never modified; on failure no content is returned.
        """
        lines = content.split("\n")
        hunks = sorted(diff.hunks, key=lambda h: h.old_start, reverse=True)

        for hunk in hunks:
            try:
                self._apply_hunk(lines, hunk)
            except HunkMismatch as exc:
                logger.warning(
                    "[Patch] Hunk at line %d failed for %s: %s",
                    hunk.old_start, diff.new_file or diff.old_file, exc,
                )
                return EditResult.fail(str(exc))

        return EditResult.ok("\n".join(lines))

    def apply_multiple(self, content: str, diffs: list[UnifiedDiff]) -> EditResult:
        """Apply *diffs* in order against progressively updated content.

        The first failing diff ends the chain and its failure is returned;
        diffs applied before it are not rolled back into a partial result.
        """
        current = content
        for index, diff in enumerate(diffs, start=1):
            result = self.apply(current, diff)
            if not result.success:
                logger.info(
                    "[Patch] Diff %d/%d failed after %d applied",
                    index, len(diffs), index - 1,
                )
                return result
            current = result.content
        return EditResult.ok(current)

    def apply_diff_string(self, content: str, diff_text: str) -> EditResult:
        """Parse *diff_text* and apply every file diff it contains."""
        diffs = self._parser.parse(diff_text)
        if not diffs:
            return EditResult.fail("No valid diffs found in input")
        return self.apply_multiple(content, diffs)

    # ------------------------------------------------------------------
    # Single-hunk application
    # ------------------------------------------------------------------

    def _apply_hunk(self, lines: list[str], hunk: DiffHunk) -> None:
        """Verify then splice *hunk* into *lines* in place.

        The list is only mutated once every context/remove line matched.
        """
        start = hunk.old_start - 1
        if hunk.removed_count == 0:
            # Pure insertion: "-N,0" lands after line N
            start = hunk.old_start
        if start < 0:
            raise HunkMismatch(f"Invalid hunk start line {hunk.old_start}")
        if start > len(lines):
            raise HunkMismatch(
                f"Hunk at line {hunk.old_start} extends beyond file end"
            )

        index = start
        for change in hunk.changes:
            if change.type == CHANGE_ADD:
                continue
            if index >= len(lines):
                raise HunkMismatch(
                    f"Hunk at line {hunk.old_start} extends beyond file end"
                )
            actual = lines[index]
            if not self._lines_match(change.content, actual):
                raise HunkMismatch(
                    f'Context mismatch at line {index + 1}. '
                    f'Expected: "{change.content}", Found: "{actual}"'
                )
            index += 1

        lines[start:start + hunk.removed_count] = hunk.added_lines

    def _lines_match(self, expected: str, actual: str) -> bool:
        if expected == actual:
            return True
        if self._mode is MatchMode.WHITESPACE:
            return expected.strip() == actual.strip()
        return False
