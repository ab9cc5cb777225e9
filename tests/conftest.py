"""Pytest configuration and fixtures.

Provides environment isolation and a fresh execution context per test. All
fixtures here are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os
from typing import TYPE_CHECKING

import pytest

from promissory.config import reload_config
from promissory.scheduler import QueueContext, set_default_context, use_context

if TYPE_CHECKING:
    from collections.abc import Iterator

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_promissory_env(block_dotenv, monkeypatch, tmp_path):
    """Clear PROMISSORY_* variables and point config at an empty project.

    The process-wide config is re-resolved so each test starts from defaults.
    """
    for key in list(os.environ.keys()):
        if key.startswith("PROMISSORY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PROMISSORY_PYPROJECT_PATH", str(tmp_path / "pyproject.toml"))
    reload_config()
    yield
    set_default_context(None)


# =============================================================================
# Execution Context
# =============================================================================


@pytest.fixture(autouse=True)
def ctx(isolate_promissory_env) -> Iterator[QueueContext]:
    """A fresh QueueContext installed as the ambient context.

    Request it by name to drive reactions with ``ctx.run_pending()``.
    """
    context = QueueContext()
    with use_context(context):
        yield context


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)
