"""promissory: a small Promise primitive with all/race combinators.

Public API:
    - Promise: single-settlement deferred value with then()/otherwise()
    - all(), race(): derive one promise from many
    - resolve(), reject(): promises that already carry an outcome
    - QueueContext, AsyncioContext: where reactions run
    - config_scope(), resolve_config(): configuration

Example:
    import promissory

    a, b = promissory.Promise(), promissory.Promise()
    combined = promissory.all({"a": a, "b": b})
    b.fulfill(2)
    a.fulfill(1)
    assert combined.wait() == {"a": 1, "b": 2}
"""

from __future__ import annotations

import logging

from promissory.combinators import all, race, reject, resolve  # noqa: A004
from promissory.config import FrozenConfig, config_scope, get_config, resolve_config
from promissory.errors import (
    AlreadySettledError,
    ConfigurationError,
    CyclicResolutionError,
    InvalidArgumentError,
    NeverSettledError,
    PromissoryError,
    RejectedError,
)
from promissory.promise import Promise, PromiseState
from promissory.scheduler import (
    AsyncioContext,
    ExecutionContext,
    QueueContext,
    get_context,
    set_default_context,
    use_context,
)

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("promissory")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("promissory").addHandler(logging.NullHandler())

__all__ = [
    "AlreadySettledError",
    "AsyncioContext",
    "ConfigurationError",
    "CyclicResolutionError",
    "ExecutionContext",
    "FrozenConfig",
    "InvalidArgumentError",
    "NeverSettledError",
    "Promise",
    "PromiseState",
    "PromissoryError",
    "QueueContext",
    "RejectedError",
    "all",
    "config_scope",
    "get_config",
    "get_context",
    "race",
    "reject",
    "resolve",
    "resolve_config",
    "set_default_context",
    "use_context",
]
