"""
surgical_editor — precise, reviewable and reversible source edits.

Public API for library usage::

    from surgical_editor import DiffEditor

    editor = DiffEditor()
    result = editor.add_import(source, "src/app.ts", 'import { z } from "./z";')
    if result.success:
        print(result.content)
"""

from .config import Config
from .editing import (
    DiffEditor,
    EditResult,
    MultiFileEdit,
    MultiFileEditResult,
    StructuralModification,
)
from .actions import ActionHandler

__all__ = [
    "ActionHandler",
    "Config",
    "DiffEditor",
    "EditResult",
    "MultiFileEdit",
    "MultiFileEditResult",
    "StructuralModification",
]
