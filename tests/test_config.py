"""Configuration resolution: defaults, layers, validation, scope."""

from __future__ import annotations

import pytest

from promissory.config import (
    FrozenConfig,
    Origin,
    audit_lines,
    config_scope,
    get_config,
    reload_config,
    resolve_config,
)
from promissory.errors import ConfigurationError

pytestmark = pytest.mark.unit


def _write_project(tmp_path, body: str) -> None:
    (tmp_path / "pyproject.toml").write_text(body)


def test_defaults() -> None:
    cfg = resolve_config()
    assert cfg == FrozenConfig(
        strict_settlement=False,
        report_unhandled=True,
        unhandled_log_level="WARNING",
        execution_context="queue",
    )
    assert cfg.unhandled_log_levelno == 30


def test_env_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMISSORY_STRICT_SETTLEMENT", "yes")
    monkeypatch.setenv("PROMISSORY_UNHANDLED_LOG_LEVEL", "error")
    cfg, sources = resolve_config(explain=True)
    assert cfg.strict_settlement is True
    assert cfg.unhandled_log_level == "ERROR"
    assert sources["strict_settlement"].origin is Origin.ENV
    assert sources["strict_settlement"].env_key == "PROMISSORY_STRICT_SETTLEMENT"


def test_project_table_is_read(tmp_path) -> None:
    _write_project(
        tmp_path,
        '[tool.promissory]\nreport_unhandled = false\nexecution_context = "asyncio"\n',
    )
    cfg, sources = resolve_config(explain=True)
    assert cfg.report_unhandled is False
    assert cfg.execution_context == "asyncio"
    assert sources["report_unhandled"].origin is Origin.PROJECT
    assert sources["report_unhandled"].file == str(tmp_path / "pyproject.toml")


def test_precedence_overrides_env_project(
    tmp_path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_project(
        tmp_path,
        '[tool.promissory]\nunhandled_log_level = "INFO"\nstrict_settlement = true\n',
    )
    monkeypatch.setenv("PROMISSORY_UNHANDLED_LOG_LEVEL", "ERROR")

    cfg, sources = resolve_config(
        overrides={"unhandled_log_level": "CRITICAL"}, explain=True
    )

    assert cfg.unhandled_log_level == "CRITICAL"
    assert cfg.strict_settlement is True
    assert sources["unhandled_log_level"].origin is Origin.OVERRIDES
    assert sources["strict_settlement"].origin is Origin.PROJECT
    assert sources["report_unhandled"].origin is Origin.DEFAULT


def test_unreadable_project_file_is_ignored(tmp_path) -> None:
    _write_project(tmp_path, "this is [not toml")
    assert resolve_config().strict_settlement is False


def test_execution_context_is_normalized() -> None:
    assert resolve_config({"execution_context": " AsyncIO "}).execution_context == "asyncio"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"execution_context": "threads"}, "execution_context"),
        ({"unhandled_log_level": "LOUD"}, "unhandled_log_level"),
    ],
)
def test_invalid_values_raise_configuration_error(overrides, field) -> None:
    with pytest.raises(ConfigurationError, match=field) as exc:
        resolve_config(overrides)
    assert exc.value.hint is not None
    assert f"PROMISSORY_{field.upper()}" in exc.value.hint


def test_unknown_field_is_rejected() -> None:
    with pytest.raises(ConfigurationError) as exc:
        resolve_config({"stict_settlement": True})
    assert "strict_settlement" in (exc.value.hint or "")


def test_config_scope_sets_and_restores_ambient() -> None:
    baseline = get_config()
    with config_scope(strict_settlement=True) as scoped:
        assert get_config() is scoped
        assert scoped.strict_settlement is True
    assert get_config() is baseline


def test_config_scope_accepts_frozen_config() -> None:
    cfg = resolve_config({"report_unhandled": False})
    with config_scope(cfg) as scoped:
        assert scoped is cfg


def test_reload_config_picks_up_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_config().strict_settlement is False
    monkeypatch.setenv("PROMISSORY_STRICT_SETTLEMENT", "1")
    assert get_config().strict_settlement is False
    assert reload_config().strict_settlement is True


def test_audit_lines_show_origins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMISSORY_STRICT_SETTLEMENT", "true")
    lines = audit_lines(*resolve_config(explain=True))
    assert "strict_settlement: True (env:PROMISSORY_STRICT_SETTLEMENT)" in lines
    assert "execution_context: 'queue' (default)" in lines


def test_debug_flag_emits_audit_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PROMISSORY_DEBUG_CONFIG", "1")
    with pytest.warns(UserWarning, match="Config audit"):
        resolve_config()
