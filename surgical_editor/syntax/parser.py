"""
Tree-sitter language loading for the syntax-tree provider.

Supports: JavaScript (incl. JSX), TypeScript, TSX for structural edits and
diagnostics; Python for diagnostics only.

Uses tree-sitter >= 0.22 API with individual language packages.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language mapping
# ---------------------------------------------------------------------------

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".py": "python",
    ".pyi": "python",
}

SUPPORTED_LANGUAGES: set[str] = set(EXTENSION_TO_LANGUAGE.values())

# Languages whose trees the structural editor knows how to transform
STRUCTURAL_LANGUAGES: frozenset[str] = frozenset({"javascript", "typescript", "tsx"})

TYPESCRIPT_LANGUAGES: frozenset[str] = frozenset({"typescript", "tsx"})


def detect_language(file_path: str) -> Optional[str]:
    """
    Return the tree-sitter language name for *file_path*, or None if unsupported.

    Parameters
    ----------
    file_path:
        Any file path; only the extension is examined.
    """
    ext = os.path.splitext(file_path)[1].lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


# ---------------------------------------------------------------------------
# Language → (tree-sitter Language object) lookup
# ---------------------------------------------------------------------------

def _get_lang_func(language: str):
    """Return the tree-sitter language() function for *language*, or None."""
    try:
        if language == "javascript":
            import tree_sitter_javascript as m  # type: ignore
            return m.language
        elif language == "typescript":
            import tree_sitter_typescript as m  # type: ignore
            return m.language_typescript
        elif language == "tsx":
            import tree_sitter_typescript as m  # type: ignore
            return m.language_tsx
        elif language == "python":
            import tree_sitter_python as m  # type: ignore
            return m.language
    except ImportError:
        logger.warning("tree-sitter grammar for %s is not installed", language)
    return None


# Cache Language and Parser objects; both are immutable once built
_LANG_CACHE: dict[str, object] = {}
_PARSER_CACHE: dict[str, object] = {}


def get_ts_language(language: str):
    """
    Return the tree_sitter.Language object for *language*, or None.

    Caches results for performance.
    """
    if language in _LANG_CACHE:
        return _LANG_CACHE[language]
    import tree_sitter as ts  # type: ignore
    func = _get_lang_func(language)
    if func is None:
        return None
    lang_obj = ts.Language(func())
    _LANG_CACHE[language] = lang_obj
    return lang_obj


def get_ts_parser(language: str):
    """
    Return a tree-sitter Parser configured for *language*, or None.

    Caches parsers for performance.
    """
    if language in _PARSER_CACHE:
        return _PARSER_CACHE[language]
    import tree_sitter as ts  # type: ignore
    lang_obj = get_ts_language(language)
    if lang_obj is None:
        return None
    parser = ts.Parser(lang_obj)
    _PARSER_CACHE[language] = parser
    return parser


# ---------------------------------------------------------------------------
# Node text helpers
# ---------------------------------------------------------------------------

def node_text(node) -> str:
    """Decode a tree-sitter Node's text as UTF-8."""
    if node is None:
        return ""
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def line_start(source: bytes, offset: int) -> int:
    """Byte offset of the start of the line containing *offset*."""
    return source.rfind(b"\n", 0, offset) + 1


def line_indent(source: bytes, offset: int) -> str:
    """Leading whitespace of the line containing *offset*."""
    start = line_start(source, offset)
    end = start
    while end < len(source) and source[end:end + 1] in (b" ", b"\t"):
        end += 1
    return source[start:end].decode("utf-8")
