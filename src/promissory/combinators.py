"""Combinators that derive one promise from many.

- all(): fulfill when every input fulfills; reject on the first rejection.
- race(): settle like whichever input settles first.
- resolve()/reject(): promises already carrying an outcome.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
import threading
from typing import TYPE_CHECKING, Any

from promissory.errors import InvalidArgumentError
from promissory.iteration import iter_items
from promissory.promise import Promise

if TYPE_CHECKING:
    from collections.abc import Hashable, Iterable

log = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class _Latch:
    """A one-shot flag with an optional countdown.

    Exactly one caller wins: the first to claim(), or the caller whose
    count_down() brings *remaining* to zero, whichever comes first.
    """

    remaining: int = 0
    _claimed: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def count_down(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self.remaining -= 1
            if self.remaining > 0:
                return False
            self._claimed = True
            return True


def _collect(promises: Iterable[Promise[Any]] | Mapping[Any, Promise[Any]]) -> list[
    tuple[Hashable, Promise[Any]]
]:
    """Consume the input once and check every element before anything is wired."""
    items = list(iter_items(promises))
    for key, item in items:
        if not isinstance(item, Promise):
            raise InvalidArgumentError(
                f"Element {key!r} is a {type(item).__name__}, not a Promise",
                hint="Wrap plain values with promissory.resolve().",
            )
    return items


def _result_for(items: list[tuple[Hashable, Promise[Any]]]) -> Promise[Any]:
    """A pending result bound to the first input's context, else the ambient one."""
    return Promise(context=items[0][1].context if items else None)


def all(  # noqa: A001
    promises: Iterable[Promise[Any]] | Mapping[Any, Promise[Any]],
) -> Promise[Any]:
    """Return a promise for the values of all *promises*.

    The result is a dict for mapping input (same keys, same order) and a list
    otherwise (input order). Inputs may fulfill in any order. The first input
    to reject, in time, rejects the result immediately; anything settling
    afterwards is ignored. Empty input fulfills immediately. The result shares
    the execution context of the first input.

    Raises:
        InvalidArgumentError: If *promises* is not an iterable of promises.
    """
    keyed = isinstance(promises, Mapping)
    items = _collect(promises)
    result = _result_for(items)

    # The total is fixed before any reaction can run.
    total = len(items)
    values: list[Any] = [_MISSING] * total
    latch = _Latch(remaining=total)

    def finish() -> None:
        if keyed:
            result.fulfill({key: v for (key, _), v in zip(items, values)})
        else:
            result.fulfill(values)

    if total == 0:
        finish()
        return result

    def on_fulfilled(index: int, value: Any) -> None:
        values[index] = value
        if latch.count_down():
            finish()

    def on_rejected(key: Hashable, reason: Any) -> None:
        if latch.claim():
            log.debug("all(): input %r rejected first", key)
            result.reject(reason)

    for index, (key, promise) in enumerate(items):
        promise.then(
            lambda value, i=index: on_fulfilled(i, value),
            lambda reason, k=key: on_rejected(k, reason),
        )
    return result


def race(
    promises: Iterable[Promise[Any]] | Mapping[Any, Promise[Any]],
) -> Promise[Any]:
    """Return a promise that settles like the first of *promises* to settle.

    Later outcomes, fulfilled or rejected, are discarded. With no inputs the
    returned promise never settles: there is no first event among zero
    events, and any reactions attached to it stay registered for its lifetime.
    The result shares the execution context of the first input.

    Raises:
        InvalidArgumentError: If *promises* is not an iterable of promises.
    """
    items = _collect(promises)
    result = _result_for(items)
    latch = _Latch()

    def on_fulfilled(value: Any) -> None:
        if latch.claim():
            result.fulfill(value)

    def on_rejected(reason: Any) -> None:
        if latch.claim():
            result.reject(reason)

    for _, promise in items:
        promise.then(on_fulfilled, on_rejected)
    return result


def resolve(value: Any) -> Promise[Any]:
    """Return a promise fulfilled with *value*.

    A promise argument is followed rather than wrapped.
    """
    if isinstance(value, Promise):
        return value.then()
    promise: Promise[Any] = Promise()
    promise.fulfill(value)
    return promise


def reject(reason: BaseException) -> Promise[Any]:
    """Return a promise rejected with exactly *reason*.

    Raises:
        InvalidArgumentError: If *reason* is not an exception instance.
    """
    if not isinstance(reason, BaseException):
        raise InvalidArgumentError(
            f"Rejection reason must be an exception, got {type(reason).__name__}",
            hint="Pass an exception instance such as ValueError('why').",
        )
    promise: Promise[Any] = Promise()
    promise.reject(reason)
    return promise
