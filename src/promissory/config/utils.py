# src/promissory/config/utils.py

"""Configuration utilities and shared constants.

Pure helpers that can be imported without creating circular dependencies.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# --- Constants ---

ENV_PREFIX = "PROMISSORY_"

PYPROJECT_PATH_VAR = "PROMISSORY_PYPROJECT_PATH"
DEBUG_CONFIG_VAR = "PROMISSORY_DEBUG_CONFIG"

_TRUTHY = {"1", "true", "yes", "on"}


# --- Path Utilities ---


def get_pyproject_path() -> Path:
    """Return the project pyproject.toml path, honoring the env override."""
    if override := os.environ.get(PYPROJECT_PATH_VAR):
        return Path(override)
    return Path.cwd() / "pyproject.toml"


# --- Field Specification Helpers ---


def field_spec_hint(field: str) -> str:
    """Return a compact hint for setting a config field via env or files."""
    env_key = f"{ENV_PREFIX}{field.upper()}"
    return f"Set {env_key} or [tool.promissory] {field} in pyproject.toml."


def should_emit_debug() -> bool:
    """Return True when the config audit is enabled via environment."""
    return os.environ.get(DEBUG_CONFIG_VAR, "").strip().lower() in _TRUTHY


def coerce_bool(value: str) -> bool:
    """Convert string to boolean using common conventions."""
    return value.strip().lower() in _TRUTHY


def log_level_number(name: str) -> int:
    """Map a level name such as ``"WARNING"`` to its numeric value.

    Raises:
        ValueError: If the name is not a registered logging level.
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {name!r}")
    return level
