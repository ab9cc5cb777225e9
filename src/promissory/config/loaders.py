# src/promissory/config/loaders.py

"""Configuration loaders for environment and files.

Pure data loading functions: each returns a plain dictionary that the core
resolver merges. No validation happens here.
"""

from __future__ import annotations

import os
import tomllib
from typing import TYPE_CHECKING, Any

from . import utils

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

CONFIG_TOOL_NAME = "promissory"

# Meta/control variables that steer resolution but aren't config fields
META_ENV_FIELDS = {"pyproject_path", "debug_config"}


def load_env() -> Mapping[str, Any]:
    """Load configuration from ``PROMISSORY_*`` environment variables.

    Performs schema-informed coercion for boolean fields; everything else is
    passed through as a string and left to the schema to validate.
    """
    from .core import Settings  # local import to keep loaders import-light

    config: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(utils.ENV_PREFIX):
            continue
        field_name = key[len(utils.ENV_PREFIX) :].lower()
        if field_name in META_ENV_FIELDS:
            continue
        info = Settings.model_fields.get(field_name)
        if info is not None and info.annotation is bool:
            config[field_name] = utils.coerce_bool(value)
        else:
            config[field_name] = value
    return config


def _read_toml(path: Path) -> dict[str, Any]:
    """Read a TOML file, returning an empty dict when missing or unreadable."""
    if not path.exists():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return {}


def load_pyproject() -> Mapping[str, Any]:
    """Load the ``[tool.promissory]`` table from the project pyproject.toml."""
    data = _read_toml(utils.get_pyproject_path())
    section = data.get("tool", {}).get(CONFIG_TOOL_NAME, {})
    return dict(section) if isinstance(section, dict) else {}
