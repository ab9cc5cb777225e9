# src/promissory/config/core.py

"""Core configuration schema and resolution.

- Single source of truth for fields, defaults and validation (Settings)
- Immutable runtime payload (FrozenConfig)
- Layered resolution with audit tracking (SourceMap)
- Guarded ambient scope for entry-time convenience
"""

from __future__ import annotations

from contextlib import contextmanager, suppress
import contextvars
from dataclasses import dataclass
from enum import Enum
from functools import cache
from typing import TYPE_CHECKING, Any, Literal, overload
import warnings

from pydantic import BaseModel, Field, ValidationError, field_validator

from promissory.errors import ConfigurationError

from .utils import ENV_PREFIX, field_spec_hint, log_level_number, should_emit_debug

if TYPE_CHECKING:
    from collections.abc import Generator, Mapping

ContextKind = Literal["queue", "asyncio"]

# --- Schema (Pydantic wall) ---


class Settings(BaseModel):
    """Pydantic schema for configuration validation and defaults."""

    strict_settlement: bool = Field(default=False)
    report_unhandled: bool = Field(default=True)
    unhandled_log_level: str = Field(default="WARNING", min_length=1)
    execution_context: ContextKind = Field(default="queue")

    model_config = {"extra": "forbid"}

    @field_validator("unhandled_log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept any case and validate against registered logging levels."""
        if isinstance(v, str):
            v = v.strip().upper()
            log_level_number(v)
        return v

    @field_validator("execution_context", mode="before")
    @classmethod
    def normalize_context(cls, v: Any) -> Any:
        """Trim and lowercase the context kind."""
        if isinstance(v, str):
            return v.strip().lower()
        return v


@cache
def _default_settings() -> dict[str, Any]:
    return Settings().model_dump()


# --- Immutable runtime payload ---


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration consulted by promises and contexts."""

    strict_settlement: bool
    report_unhandled: bool
    unhandled_log_level: str
    execution_context: ContextKind

    @property
    def unhandled_log_levelno(self) -> int:
        """Numeric logging level for unhandled rejection reports."""
        return log_level_number(self.unhandled_log_level)


# --- Audit types ---


class Origin(str, Enum):
    """Source origin for configuration field values."""

    DEFAULT = "default"
    PROJECT = "project"
    ENV = "env"
    OVERRIDES = "overrides"


@dataclass(frozen=True)
class FieldOrigin:
    """Tracks the origin and context of a configuration field value."""

    origin: Origin
    env_key: str | None = None  # e.g., "PROMISSORY_STRICT_SETTLEMENT"
    file: str | None = None  # e.g., "/srv/app/pyproject.toml"


SourceMap = dict[str, FieldOrigin]


# --- Ambient scope (guarded) ---

_AMBIENT: contextvars.ContextVar[FrozenConfig | None] = contextvars.ContextVar(
    "promissory_ambient_config", default=None
)

_DOTENV_LOADED: bool = False


@contextmanager
def config_scope(
    cfg_or_overrides: Mapping[str, Any] | FrozenConfig | None = None,
    **overrides: object,
) -> Generator[FrozenConfig]:
    """Run a block with a specific configuration as the ambient one.

    Promises created inside the block read this configuration. Thread-safe
    and async-safe (backed by a context variable).

    Example:
        with config_scope(strict_settlement=True):
            p = Promise()
            p.fulfill(1)
            p.fulfill(2)  # raises AlreadySettledError
    """
    if isinstance(cfg_or_overrides, FrozenConfig):
        cfg = cfg_or_overrides
    else:
        combined = {**(cfg_or_overrides or {}), **overrides}
        cfg = resolve_config(overrides=combined)

    token = _AMBIENT.set(cfg)
    try:
        yield cfg
    finally:
        _AMBIENT.reset(token)


def get_config() -> FrozenConfig:
    """Return the ambient configuration, or the process-wide one."""
    cfg = _AMBIENT.get()
    if cfg is not None:
        return cfg
    return _process_config()


@cache
def _process_config() -> FrozenConfig:
    return resolve_config()


def reload_config() -> FrozenConfig:
    """Drop the cached process-wide configuration and resolve it again."""
    _process_config.cache_clear()
    return _process_config()


def _try_load_dotenv() -> None:
    """Load a .env file once per process; failures are ignored."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    _DOTENV_LOADED = True
    with suppress(Exception):
        from dotenv import load_dotenv

        load_dotenv()


# --- Public resolution API ---


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[True],
) -> tuple[FrozenConfig, SourceMap]: ...


@overload
def resolve_config(
    overrides: Mapping[str, Any] | None = ...,
    *,
    explain: Literal[False] = ...,
) -> FrozenConfig: ...


def resolve_config(
    overrides: Mapping[str, Any] | None = None,
    *,
    explain: bool = False,
) -> FrozenConfig | tuple[FrozenConfig, SourceMap]:
    """Resolve configuration from all sources into a FrozenConfig.

    Precedence: defaults < pyproject ``[tool.promissory]`` < ``PROMISSORY_*``
    environment < overrides.

    Args:
        overrides: Programmatic configuration overrides.
        explain: If True, return ``(config, source_map)`` for auditing.

    Raises:
        ConfigurationError: If validation fails.
    """
    _try_load_dotenv()

    from .loaders import load_env, load_pyproject

    merged, sources = _resolve_layers(
        overrides=overrides or {},
        env=load_env(),
        project=load_pyproject(),
    )

    try:
        settings = Settings.model_validate(merged)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(p) for p in err.get("loc", ())) or "config"
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[13:]
        hint = field_spec_hint(field) if field in Settings.model_fields else None
        if err.get("type") == "extra_forbidden":
            hint = f"Known fields: {', '.join(sorted(Settings.model_fields))}"
        raise ConfigurationError(
            f"Configuration validation failed for {field!r}: {msg}", hint=hint
        ) from e

    frozen = FrozenConfig(**settings.model_dump())

    if not explain and should_emit_debug():
        with suppress(Exception):
            warnings.warn(
                "Config audit\n" + "\n".join(audit_lines(frozen, sources)),
                stacklevel=2,
            )

    return (frozen, sources) if explain else frozen


def _resolve_layers(
    *,
    overrides: Mapping[str, Any],
    env: Mapping[str, Any],
    project: Mapping[str, Any],
) -> tuple[dict[str, Any], SourceMap]:
    """Merge layers with last-wins precedence and record where values came from."""
    from .utils import get_pyproject_path

    out: dict[str, Any] = dict(_default_settings())
    src: SourceMap = {k: FieldOrigin(origin=Origin.DEFAULT) for k in out}

    for k, v in project.items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.PROJECT, file=str(get_pyproject_path()))
    for k, v in env.items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.ENV, env_key=f"{ENV_PREFIX}{k.upper()}")
    for k, v in overrides.items():
        out[k] = v
        src[k] = FieldOrigin(origin=Origin.OVERRIDES)

    return out, src


# --- Audit helpers ---


def _origin_label(field: str, where: FieldOrigin) -> str:
    match where.origin:
        case Origin.ENV:
            return f"env:{where.env_key or ENV_PREFIX + field.upper()}"
        case Origin.PROJECT:
            return f"file:{where.file or 'pyproject.toml'}"
        case _:
            return where.origin.value


def audit_lines(cfg: FrozenConfig, sources: SourceMap) -> list[str]:
    """Return one ``field: value (origin)`` line per configuration field."""
    lines = []
    for field in cfg.__dataclass_fields__:
        where = sources.get(field, FieldOrigin(origin=Origin.DEFAULT))
        lines.append(f"{field}: {getattr(cfg, field)!r} ({_origin_label(field, where)})")
    return lines
