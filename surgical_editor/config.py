"""
Configuration — loads settings from .surgical_edit.yaml, environment variables,
and built-in defaults (in that priority order: CLI args > env > YAML > defaults).
"""

import os

import yaml


_DEFAULTS = {
    "match_mode": "whitespace",
    "context_lines": 3,
    "validate_edits": True,
    "new_error_key": "message",
    "indent": 4,
    "workspace_root": ".",
    "log_dir": ".surgical_edit/logs",
}

# Config file search locations
_CONFIG_FILENAMES = [".surgical_edit.yaml", ".surgical_edit.yml"]


def _find_config_file(explicit_path: str | None = None) -> str | None:
    """Find the config file. Checks explicit path, CWD, then user home."""
    if explicit_path:
        if os.path.isfile(explicit_path):
            return explicit_path
        return None

    # Search CWD first, then home directory
    search_dirs = [os.getcwd(), os.path.expanduser("~")]
    for d in search_dirs:
        for name in _CONFIG_FILENAMES:
            path = os.path.join(d, name)
            if os.path.isfile(path):
                return path
    return None


def _load_yaml(path: str) -> dict:
    """Load YAML file, returns empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}
    except (OSError, yaml.YAMLError):
        return {}


class Config:
    """Editor configuration.

    Settings are resolved in priority order:
    1. CLI arguments (handled by caller)
    2. Environment variables (``SURGICAL_EDIT_*``)
    3. .surgical_edit.yaml config file
    4. Built-in defaults
    """

    def __init__(self, yaml_data: dict | None = None):
        yd = yaml_data or {}

        # Helper: env var > yaml > default
        def _get(env_key: str, yaml_key: str, default, cast=str):
            env_val = os.getenv(env_key)
            if env_val is not None:
                return cast(env_val)
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return cast(yaml_val)
            return default

        def _get_bool(env_key: str, yaml_key: str, default: bool) -> bool:
            env_val = os.getenv(env_key)
            if env_val is not None:
                return env_val.lower() == "true"
            yaml_val = yd.get(yaml_key)
            if yaml_val is not None:
                return bool(yaml_val)
            return default

        # Diff matching and generation
        self.MATCH_MODE = _get("SURGICAL_EDIT_MATCH_MODE", "match_mode",
                               _DEFAULTS["match_mode"]).lower()
        self.CONTEXT_LINES = _get("SURGICAL_EDIT_CONTEXT_LINES", "context_lines",
                                  _DEFAULTS["context_lines"], cast=int)

        # Validation
        self.VALIDATE_EDITS = _get_bool("SURGICAL_EDIT_VALIDATE", "validate_edits",
                                        _DEFAULTS["validate_edits"])
        self.NEW_ERROR_KEY = _get("SURGICAL_EDIT_NEW_ERROR_KEY", "new_error_key",
                                  _DEFAULTS["new_error_key"]).lower()

        # Indentation unit for generated blocks, in spaces
        self.INDENT = _get("SURGICAL_EDIT_INDENT", "indent",
                           _DEFAULTS["indent"], cast=int)

        # Files outside this root are never touched by the action layer
        self.WORKSPACE_ROOT = _get("SURGICAL_EDIT_ROOT", "workspace_root",
                                   _DEFAULTS["workspace_root"])

        self.LOG_DIR = _get("SURGICAL_EDIT_LOG_DIR", "log_dir",
                            _DEFAULTS["log_dir"])

    @property
    def indent_unit(self) -> str:
        return " " * max(self.INDENT, 0)

    @classmethod
    def load(cls, config_path: str | None = None) -> "Config":
        """Load config from YAML file (if found) + env vars + defaults."""
        path = _find_config_file(config_path)
        yaml_data = _load_yaml(path) if path else {}
        return cls(yaml_data)
