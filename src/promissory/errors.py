"""Exception hierarchy for promissory."""

from __future__ import annotations

from typing import Any


class PromissoryError(Exception):
    """Base exception for all promissory errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(PromissoryError):
    """Configuration validation or resolution failed."""


class InvalidArgumentError(PromissoryError, TypeError):
    """A combinator received something that is not an iterable of promises."""


class AlreadySettledError(PromissoryError):
    """A settled (or locked-in) promise was settled again in strict mode."""


class CyclicResolutionError(PromissoryError, TypeError):
    """A promise would end up following itself."""


class NeverSettledError(PromissoryError):
    """The execution context ran out of work while a promise was still pending."""


class RejectedError(PromissoryError):
    """Raised for a rejection whose reason is not an exception.

    The original reason is kept verbatim on ``reason``.
    """

    def __init__(self, reason: Any, *, hint: str | None = None) -> None:
        super().__init__(f"Promise rejected with {reason!r}", hint=hint)
        self.reason = reason
