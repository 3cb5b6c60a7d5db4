"""
Syntax workspace — parsed units for the files touched by one transaction.

A workspace is created per request (or per multi-file transaction) and
dropped afterwards, so nothing parsed for one caller leaks into another.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from .parser import STRUCTURAL_LANGUAGES, detect_language, get_ts_parser
from .source_unit import SourceUnit

logger = logging.getLogger(__name__)


class UnsupportedLanguageError(Exception):
    """Raised when no tree-sitter grammar is available for a file."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Unsupported file type: {path}")
        self.path = path


class TreeSitterProvider:
    """Builds :class:`SourceUnit` objects from file paths and text."""

    def __init__(self, indent: str = "    ") -> None:
        self.indent = indent

    def language_for(self, path: str) -> Optional[str]:
        return detect_language(path)

    def supports(self, path: str) -> bool:
        language = detect_language(path)
        return language is not None and get_ts_parser(language) is not None

    def supports_structural(self, path: str) -> bool:
        return detect_language(path) in STRUCTURAL_LANGUAGES and self.supports(path)

    def parse(self, path: str, text: str) -> SourceUnit:
        language = detect_language(path)
        parser = get_ts_parser(language) if language else None
        if parser is None:
            raise UnsupportedLanguageError(path)
        return SourceUnit(path, text, language, parser, indent=self.indent)


class SyntaxWorkspace:
    """Per-transaction cache of parsed units keyed by path.

    Hold ``lock`` around sequences of ``parse`` and mutation calls when a
    workspace is shared between threads.
    """

    def __init__(self, provider: Optional[TreeSitterProvider] = None) -> None:
        self.provider = provider or TreeSitterProvider()
        self.lock = threading.RLock()
        self._units: dict[str, SourceUnit] = {}

    def parse(self, path: str, text: str) -> SourceUnit:
        """Parse *text* as *path*, replacing any unit already held for it."""
        with self.lock:
            unit = self.provider.parse(path, text)
            self._units[path] = unit
            logger.debug("[Workspace] Parsed %s (%s)", path, unit.language)
            return unit

    def get(self, path: str) -> Optional[SourceUnit]:
        return self._units.get(path)

    def paths(self) -> list[str]:
        return list(self._units)

    def clear(self) -> None:
        with self.lock:
            self._units.clear()

    def __len__(self) -> int:
        return len(self._units)
