"""The Promise state machine.

A promise starts PENDING and settles exactly once, to FULFILLED with a value
or REJECTED with a reason. Reactions registered with ``then()`` never run
synchronously: they are handed to the promise's execution context and run
on a later turn, in registration order.

Fulfilling a promise with another promise does not nest them. The receiver
is *locked in* (still pending, deaf to further settlement calls) and adopts
the other promise's outcome once it is known.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from functools import partial
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from promissory.config import get_config
from promissory.errors import (
    AlreadySettledError,
    CyclicResolutionError,
    NeverSettledError,
    PromissoryError,
    RejectedError,
)
from promissory.scheduler import DrivableContext, get_context

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from promissory.scheduler import ExecutionContext

log = logging.getLogger(__name__)

T = TypeVar("T")


class PromiseState(str, Enum):
    """Settlement state of a promise."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(slots=True)
class _Reaction:
    """One registration against a promise.

    Missing handlers forward the outcome to *target* unchanged. A *follow*
    reaction delivers to a target that is locked in to this promise.
    """

    target: Promise[Any]
    on_fulfilled: Callable[[Any], Any] | None = None
    on_rejected: Callable[[Any], Any] | None = None
    follow: bool = False


class Promise(Generic[T]):
    """A single-assignment container for a future value or error.

    Example:
        p = Promise()
        p.then(print)
        p.fulfill("hello")
        get_context().run_pending()  # prints "hello"

    Args:
        executor: Optional ``executor(fulfill, reject)`` called immediately.
            If it raises, the promise is rejected with that exception.
        context: Execution context for this promise's reactions. Defaults to
            the ambient context (see ``promissory.scheduler.get_context``).
    """

    def __init__(
        self,
        executor: Callable[[Callable[[Any], None], Callable[[Any], None]], Any]
        | None = None,
        *,
        context: ExecutionContext | None = None,
    ) -> None:
        self._state = PromiseState.PENDING
        self._result: Any = None
        self._reactions: list[_Reaction] = []
        self._following: Promise[Any] | None = None
        self._locked = False
        self._handled = False
        self._config = get_config()
        self._context = context if context is not None else get_context()

        if executor is not None:
            try:
                executor(self.fulfill, self.reject)
            except AlreadySettledError:
                raise
            except Exception as exc:
                if self._is_open():
                    self._settle(PromiseState.REJECTED, exc)

    # --- Introspection ---

    @property
    def state(self) -> PromiseState:
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is PromiseState.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self._state is PromiseState.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self._state is PromiseState.REJECTED

    @property
    def value(self) -> T:
        """The fulfillment value. Raises unless the promise is fulfilled."""
        if self._state is not PromiseState.FULFILLED:
            raise PromissoryError(f"Promise is {self._state.value}, not fulfilled")
        return self._result

    @property
    def reason(self) -> Any:
        """The rejection reason. Raises unless the promise is rejected.

        Reading the reason counts as handling the rejection.
        """
        if self._state is not PromiseState.REJECTED:
            raise PromissoryError(f"Promise is {self._state.value}, not rejected")
        self._handled = True
        return self._result

    @property
    def handled(self) -> bool:
        """True once any reaction was attached (or the reason was read)."""
        return self._handled

    @property
    def context(self) -> ExecutionContext:
        return self._context

    # --- Reactions ---

    def then(
        self,
        on_fulfilled: Callable[[T], Any] | None = None,
        on_rejected: Callable[[Any], Any] | None = None,
    ) -> Promise[Any]:
        """Register reactions and return a promise for their result.

        - A missing reaction forwards the outcome unchanged.
        - A reaction returning a promise makes the returned promise follow it.
        - A reaction raising an exception rejects the returned promise.
        """
        child: Promise[Any] = Promise(context=self._context)
        self._add_reaction(_Reaction(child, on_fulfilled, on_rejected))
        return child

    def otherwise(self, on_rejected: Callable[[Any], Any]) -> Promise[Any]:
        """Shorthand for ``then(None, on_rejected)``."""
        return self.then(None, on_rejected)

    # --- Settlement ---

    def fulfill(self, value: Any = None) -> None:
        """Fulfill with *value*, or follow it if it is a promise.

        Calls on a settled or locked-in promise are ignored (or raise
        AlreadySettledError in strict mode).

        Raises:
            CyclicResolutionError: If *value* is this promise, or a promise
                that ends up following this one.
        """
        if self._accepts("fulfill"):
            self._resolve(value)

    def reject(self, reason: Any) -> None:
        """Reject with *reason*, stored verbatim."""
        if self._accepts("reject"):
            self._settle(PromiseState.REJECTED, reason)

    # --- Waiting ---

    def wait(self) -> T:
        """Drive the execution context until this promise settles.

        Returns the fulfillment value or raises the rejection reason
        (non-exception reasons are wrapped in RejectedError).

        Raises:
            NeverSettledError: If the context runs out of work first.
            PromissoryError: If the context cannot be driven synchronously.
        """
        if self._state is PromiseState.PENDING:
            ctx = self._context
            if not isinstance(ctx, DrivableContext):
                raise PromissoryError(
                    f"Cannot wait() on a promise bound to {ctx!r}",
                    hint="Use 'await promise' inside the event loop instead.",
                )
            if not ctx.run_until(lambda: self._state is not PromiseState.PENDING):
                raise NeverSettledError(
                    "Execution context has no more work; this promise will never settle",
                    hint="Make sure something fulfills or rejects the promise.",
                )
        return self._outcome()

    def __await__(self) -> Generator[Any, None, T]:
        if self._state is PromiseState.PENDING and not isinstance(
            self._context, DrivableContext
        ):
            waiter = asyncio.get_running_loop().create_future()

            def wake(_: Any) -> None:
                if not waiter.done():
                    waiter.set_result(None)

            self.then(wake, wake)
            yield from waiter
            return self._outcome()
        return self.wait()

    # --- Internals ---

    def _is_open(self) -> bool:
        return self._state is PromiseState.PENDING and not self._locked

    def _accepts(self, op: str) -> bool:
        if self._is_open():
            return True
        where = "locked in to another promise" if self._locked else self._state.value
        if self._config.strict_settlement:
            raise AlreadySettledError(
                f"Cannot {op} a promise that is already {where}",
                hint="A promise settles once; create a new promise instead.",
            )
        log.debug("Ignoring %s on promise already %s", op, where)
        return False

    def _resolve(self, value: Any) -> None:
        if not isinstance(value, Promise):
            self._settle(PromiseState.FULFILLED, value)
            return
        node: Promise[Any] | None = value
        while node is not None:
            if node is self:
                raise CyclicResolutionError(
                    "A promise cannot follow itself",
                    hint="Resolve with a value or with an unrelated promise.",
                )
            node = node._following
        self._locked = True
        self._following = value
        log.debug("%r follows %r", self, value)
        value._add_reaction(_Reaction(self, follow=True))

    def _settle(self, state: PromiseState, result: Any) -> None:
        if self._state is not PromiseState.PENDING:
            return
        self._state = state
        self._result = result
        self._following = None
        reactions, self._reactions = self._reactions, []
        log.debug("%r settled, %d reaction(s) queued", self, len(reactions))
        for reaction in reactions:
            self._schedule(reaction)

    def _add_reaction(self, reaction: _Reaction) -> None:
        self._handled = True
        if self._state is PromiseState.PENDING:
            self._reactions.append(reaction)
        else:
            self._schedule(reaction)

    def _schedule(self, reaction: _Reaction) -> None:
        self._context.call_soon(partial(self._react, reaction))

    def _react(self, reaction: _Reaction) -> None:
        target = reaction.target
        if self._state is PromiseState.FULFILLED:
            handler = reaction.on_fulfilled
        else:
            handler = reaction.on_rejected
        if handler is None:
            state, outcome = self._state, self._result
        else:
            try:
                state, outcome = PromiseState.FULFILLED, handler(self._result)
            except Exception as exc:
                state, outcome = PromiseState.REJECTED, exc
        # Only a follow reaction may settle a target that is no longer open.
        if not (reaction.follow or target._is_open()):
            log.debug(
                "Discarding %s outcome; %r was settled elsewhere", state.value, target
            )
            return
        if state is PromiseState.REJECTED:
            target._settle(state, outcome)
            return
        try:
            target._resolve(outcome)
        except CyclicResolutionError as exc:
            target._settle(PromiseState.REJECTED, exc)

    def _outcome(self) -> T:
        if self._state is PromiseState.FULFILLED:
            return self._result
        self._handled = True
        reason = self._result
        if isinstance(reason, BaseException):
            raise reason
        raise RejectedError(reason)

    def __del__(self) -> None:
        if getattr(self, "_state", None) is not PromiseState.REJECTED or self._handled:
            return
        if not self._config.report_unhandled:
            return
        reason = self._result
        log.log(
            self._config.unhandled_log_levelno,
            "Unhandled promise rejection: %r",
            reason,
            exc_info=reason if isinstance(reason, BaseException) else None,
        )

    def __repr__(self) -> str:
        if self._state is PromiseState.PENDING:
            detail = "pending, locked in" if self._locked else "pending"
        else:
            detail = f"{self._state.value} {self._result!r}"
        return f"<{type(self).__name__} {detail}>"
