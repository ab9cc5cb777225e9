# src/promissory/config/__init__.py

"""Configuration management for promissory.

Resolve-once, freeze-then-flow: configuration is resolved into an immutable
FrozenConfig that promises consult at construction time.

Key exports:
- resolve_config: Main API for configuration resolution
- get_config: Ambient (or process-wide) configuration
- config_scope: Context manager for scoped configuration
- FrozenConfig: Immutable configuration payload
- Settings: Pydantic schema for validation and defaults
"""

# ruff: noqa: I001

from .core import (
    FieldOrigin,
    FrozenConfig,
    Origin,
    Settings,
    SourceMap,
    audit_lines,
    config_scope,
    get_config,
    reload_config,
    resolve_config,
)
from .utils import field_spec_hint

__all__ = [  # noqa: RUF022
    # Main public API
    "resolve_config",
    "get_config",
    "reload_config",
    "config_scope",
    "FrozenConfig",
    # Schema and audit
    "Settings",
    "Origin",
    "FieldOrigin",
    "SourceMap",
    "audit_lines",
    "field_spec_hint",
]
