"""
Display helpers — log file setup and terminal output for the CLI.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime

from .editing.models import EntityLocation, ValidationError

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
_DATE_FORMAT = "%H:%M:%S"


def setup_logger(log_dir: str = ".surgical_edit/logs", verbose: bool = False) -> logging.Logger:
    """Creates a file logger for the package. All verbose output goes here.

    With *verbose*, INFO and above is echoed to stderr as well.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"edit_{timestamp}.log")

    logger = logging.getLogger("surgical_editor")
    logger.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(fh)

    if verbose:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.INFO)
        sh.setFormatter(logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(sh)

    return logger


def _use_color(stream) -> bool:
    return hasattr(stream, "isatty") and stream.isatty() and not os.getenv("NO_COLOR")


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    colored: list[str] = []
    for line in diff_text.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            colored.append(f"\033[1m{line}\033[0m")  # bold
        elif line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def print_diff(diff_text: str, stream=None) -> None:
    stream = stream or sys.stdout
    if not diff_text:
        print("  (no changes)", file=stream)
        return
    print(format_colored_diff(diff_text) if _use_color(stream) else diff_text, file=stream)


def print_validation(path: str, errors: list[ValidationError], stream=None) -> None:
    """Print diagnostics one per line as ``path:line:col: [code] message``."""
    stream = stream or sys.stdout
    if not errors:
        print(f"{path}: OK", file=stream)
        return
    for e in errors:
        location = f"{path}:{e.line or 0}:{e.column or 0}"
        code = f" [{e.code}]" if e.code else ""
        print(f"{location}: {e.type}{code} {e.message}", file=stream)
    print(f"\n{len(errors)} problem(s)", file=stream)


def print_entity(path: str, entity: EntityLocation, stream=None) -> None:
    stream = stream or sys.stdout
    print(
        f"{entity.kind:<10}  {entity.name:<30}  "
        f"{path}:{entity.start_line}-{entity.end_line}",
        file=stream,
    )
    print("-" * 60, file=stream)
    print(entity.text, file=stream)
