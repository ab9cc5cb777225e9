"""Execution contexts that run promise reactions on a later turn.

A context only has to offer ``call_soon(callback)``: run the zero-argument
callback after the current unit of work, FIFO among callbacks it was given.
Two implementations ship here:

- ``QueueContext``: an explicit FIFO queue driven by the caller (or by
  ``Promise.wait()``). This is the default.
- ``AsyncioContext``: hands callbacks to an asyncio event loop.
"""

from __future__ import annotations

import asyncio
from collections import deque
from contextlib import contextmanager
from contextvars import ContextVar
import logging
import threading
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from promissory.config import get_config
from promissory.errors import InvalidArgumentError, PromissoryError

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

log = logging.getLogger(__name__)


@runtime_checkable
class ExecutionContext(Protocol):
    """Anything that can run a callback on a later turn, in FIFO order."""

    def call_soon(self, callback: Callable[[], object]) -> None: ...  # noqa: D102


@runtime_checkable
class DrivableContext(ExecutionContext, Protocol):
    """A context the caller can drive synchronously."""

    def run_until(self, predicate: Callable[[], bool]) -> bool: ...  # noqa: D102


class QueueContext:
    """FIFO queue of callbacks, run only when the owner drives it.

    Callbacks queued while the queue is being drained are run in the same
    drain, after everything queued before them.
    """

    def __init__(self) -> None:
        self._queue: deque[Callable[[], object]] = deque()

    def call_soon(self, callback: Callable[[], object]) -> None:
        self._queue.append(callback)

    @property
    def pending(self) -> int:
        """Number of callbacks waiting to run."""
        return len(self._queue)

    def run_once(self) -> bool:
        """Run the oldest queued callback. Returns False if the queue was empty."""
        if not self._queue:
            return False
        callback = self._queue.popleft()
        callback()
        return True

    def run_pending(self) -> int:
        """Run callbacks until the queue is empty; return how many ran."""
        count = 0
        while self.run_once():
            count += 1
        return count

    def run_until(self, predicate: Callable[[], bool]) -> bool:
        """Run callbacks until *predicate* holds or the queue is empty.

        Returns the final value of the predicate.
        """
        while not predicate():
            if not self.run_once():
                return predicate()
        return True

    def __repr__(self) -> str:
        return f"<QueueContext pending={len(self._queue)}>"


class AsyncioContext:
    """Schedule callbacks on an asyncio event loop.

    With no explicit loop, the loop running at scheduling time is used.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            raise PromissoryError(
                "AsyncioContext has no event loop to schedule on",
                hint="Pass loop=... or settle promises from inside a running loop.",
            ) from None

    def call_soon(self, callback: Callable[[], object]) -> None:
        self.loop.call_soon(callback)

    def __repr__(self) -> str:
        return f"<AsyncioContext loop={self._loop!r}>"


# --- Ambient selection ---

_AMBIENT: ContextVar[ExecutionContext | None] = ContextVar(
    "promissory_execution_context", default=None
)
_default: ExecutionContext | None = None
_default_lock = threading.Lock()


def _build_default() -> ExecutionContext:
    kind = get_config().execution_context
    log.debug("Creating default %s execution context", kind)
    if kind == "asyncio":
        return AsyncioContext()
    return QueueContext()


def get_context() -> ExecutionContext:
    """Return the ambient execution context, or the process default."""
    global _default
    ctx = _AMBIENT.get()
    if ctx is not None:
        return ctx
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = _build_default()
    return _default


def set_default_context(ctx: ExecutionContext | None) -> None:
    """Replace the process default context; None rebuilds it from config."""
    global _default
    with _default_lock:
        _default = ctx


@contextmanager
def use_context(ctx: ExecutionContext) -> Generator[ExecutionContext]:
    """Make *ctx* the ambient execution context inside the block."""
    if not isinstance(ctx, ExecutionContext):
        raise InvalidArgumentError(
            f"{ctx!r} does not provide call_soon()",
            hint="Pass an object with a call_soon(callback) method, e.g. QueueContext().",
        )
    token = _AMBIENT.set(ctx)
    try:
        yield ctx
    finally:
        _AMBIENT.reset(token)
