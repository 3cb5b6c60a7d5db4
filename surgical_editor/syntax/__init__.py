"""
Syntax-tree provider backed by tree-sitter.

Public surface::

    from surgical_editor.syntax import SyntaxWorkspace, TreeSitterProvider
"""

from .diagnostics import Diagnostic, collect_diagnostics
from .parser import STRUCTURAL_LANGUAGES, detect_language
from .source_unit import Declaration, SourceUnit, SyntaxEditError
from .workspace import SyntaxWorkspace, TreeSitterProvider, UnsupportedLanguageError

__all__ = [
    "Declaration",
    "Diagnostic",
    "STRUCTURAL_LANGUAGES",
    "SourceUnit",
    "SyntaxEditError",
    "SyntaxWorkspace",
    "TreeSitterProvider",
    "UnsupportedLanguageError",
    "collect_diagnostics",
    "detect_language",
]
