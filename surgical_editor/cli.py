"""
`surgical-edit` command line interface.

Commands
--------
surgical-edit run REQUEST.json               -- serve one JSON action request
surgical-edit run -                          -- read the request from stdin
surgical-edit apply-diff PATH --diff FILE    -- apply a unified diff to PATH
surgical-edit apply-diff PATH --dry-run      -- show the result, write nothing
surgical-edit diff OLD NEW [--label NAME]    -- unified diff between two files
surgical-edit validate PATH                  -- list syntax diagnostics
surgical-edit find PATH NAME [--member M]    -- locate a declaration

Global options: --config FILE, --root DIR, --verbose.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional

from .actions import ActionHandler
from .config import Config
from .display import print_diff, print_entity, print_validation, setup_logger
from .editing import DiffEditor

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as exc:
        print(f"Cannot read {path}: {exc.strerror}", file=sys.stderr)
        sys.exit(1)


def _load_config(args: argparse.Namespace) -> Config:
    config = Config.load(args.config)
    if args.root:
        config.WORKSPACE_ROOT = args.root
    return config


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_run(args: argparse.Namespace, config: Config) -> int:
    """Serve one JSON request and print the JSON response."""
    raw = _read_text(args.request)
    try:
        request = json.loads(raw)
    except json.JSONDecodeError as exc:
        print(f"Invalid JSON request: {exc}", file=sys.stderr)
        return 1
    if not isinstance(request, dict):
        print("Invalid JSON request: expected an object", file=sys.stderr)
        return 1

    response = ActionHandler(editor=DiffEditor(config)).handle(request)
    print(json.dumps(response, indent=2))
    return 0 if response.get("success") else 1


def _cmd_apply_diff(args: argparse.Namespace, config: Config) -> int:
    """Apply a unified diff (from --diff or stdin) to PATH."""
    request = {
        "action": "apply-diff",
        "path": os.path.relpath(os.path.abspath(args.path), os.path.abspath(config.WORKSPACE_ROOT)),
        "diff": _read_text(args.diff or "-"),
        "dry_run": args.dry_run,
    }
    response = ActionHandler(editor=DiffEditor(config)).handle(request)
    if not response.get("success"):
        print(f"Error: {response.get('error')}", file=sys.stderr)
        for e in response.get("validation_errors", []):
            print(f"  line {e.get('line')}: {e.get('message')}", file=sys.stderr)
        return 1

    print_diff(response.get("diff", ""))
    if args.dry_run:
        print("\n(dry run: nothing written)")
    return 0


def _cmd_diff(args: argparse.Namespace, config: Config) -> int:
    """Print the unified diff turning OLD into NEW."""
    editor = DiffEditor(config)
    old = _read_text(args.old)
    new = _read_text(args.new)
    diff = editor.generate_diff(old, new, args.label or args.new)
    if diff:
        print_diff(diff)
    return 0


def _cmd_validate(args: argparse.Namespace, config: Config) -> int:
    """Print diagnostics for PATH; exit 1 when there are syntax errors."""
    editor = DiffEditor(config)
    errors = editor.validate(_read_text(args.path), args.path)
    print_validation(args.path, errors)
    return 1 if any(e.type == "syntax" for e in errors) else 0


def _cmd_find(args: argparse.Namespace, config: Config) -> int:
    """Print the location and text of declaration NAME in PATH."""
    editor = DiffEditor(config)
    entity = editor.find_entity(_read_text(args.path), args.path, args.name, args.member)
    if entity is None:
        label = f"{args.name}.{args.member}" if args.member else args.name
        print(f'Entity "{label}" not found', file=sys.stderr)
        return 1
    print_entity(args.path, entity)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="surgical-edit",
        description="Precise, reviewable edits to source files.",
    )
    parser.add_argument("--config", help="Path to a .surgical_edit.yaml file")
    parser.add_argument("--root", help="Workspace root (default: config or CWD)")
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Echo log output to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    # --- run ---
    run_p = subparsers.add_parser("run", help="Serve one JSON action request")
    run_p.add_argument(
        "request", nargs="?", default="-",
        help="Request file (default: read stdin)",
    )
    run_p.set_defaults(func=_cmd_run)

    # --- apply-diff ---
    apply_p = subparsers.add_parser("apply-diff", help="Apply a unified diff to a file")
    apply_p.add_argument("path", help="File to patch")
    apply_p.add_argument("--diff", help="Diff file (default: read stdin)")
    apply_p.add_argument(
        "--dry-run", action="store_true",
        help="Show the resulting diff without writing",
    )
    apply_p.set_defaults(func=_cmd_apply_diff)

    # --- diff ---
    diff_p = subparsers.add_parser("diff", help="Unified diff between two files")
    diff_p.add_argument("old", help="Original file")
    diff_p.add_argument("new", help="Updated file")
    diff_p.add_argument("--label", help="Path shown in the diff headers")
    diff_p.set_defaults(func=_cmd_diff)

    # --- validate ---
    validate_p = subparsers.add_parser("validate", help="List syntax diagnostics")
    validate_p.add_argument("path", help="File to validate")
    validate_p.set_defaults(func=_cmd_validate)

    # --- find ---
    find_p = subparsers.add_parser("find", help="Locate a declaration by name")
    find_p.add_argument("path", help="File to search")
    find_p.add_argument("name", help="Top-level declaration name")
    find_p.add_argument("--member", help="Class member inside NAME")
    find_p.set_defaults(func=_cmd_find)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = _load_config(args)
    setup_logger(config.LOG_DIR, verbose=args.verbose)
    logger.debug("[CLI] %s (root=%s)", args.command, config.WORKSPACE_ROOT)
    return args.func(args, config)


if __name__ == "__main__":
    sys.exit(main())
